from datetime import date, datetime

from pydantic import BaseModel, Field

from app.models.substitute_assignment import SubstituteStatus
from app.schemas.timetable import TimetableEntryOut


class SubstituteCreate(BaseModel):
    original_entry_id: str = Field(min_length=1, max_length=36)
    substitute_teacher_id: str = Field(min_length=1, max_length=64)
    assignment_date: date
    reason: str | None = Field(default=None, max_length=1000)
    require_confirmation: bool = False


class SubstituteStatusUpdate(BaseModel):
    status: SubstituteStatus


class SubstituteOut(BaseModel):
    id: str
    school_id: str
    original_entry_id: str
    original_teacher_id: str
    substitute_teacher_id: str
    assignment_date: date
    reason: str | None = None
    created_by: str
    status: SubstituteStatus
    cancelled_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class SubstituteDetailOut(SubstituteOut):
    entry: TimetableEntryOut | None = None
    original_teacher_name: str | None = None
    substitute_teacher_name: str | None = None


class CompletedSubstitutesOut(BaseModel):
    completed_count: int
    substitute_ids: list[str]
