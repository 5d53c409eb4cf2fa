from datetime import date, datetime

from pydantic import BaseModel, Field

from app.models.period_swap import SwapStatus
from app.schemas.timetable import TimetableEntryOut


class SwapRequestCreate(BaseModel):
    entry_id_1: str = Field(min_length=1, max_length=36)
    entry_id_2: str = Field(min_length=1, max_length=36)
    swap_date: date
    reason: str | None = Field(default=None, max_length=1000)


class SwapReject(BaseModel):
    rejection_reason: str | None = Field(default=None, max_length=1000)


class SwapRequestOut(BaseModel):
    id: str
    school_id: str
    requested_by: str
    entry_id_1: str
    entry_id_2: str
    swap_date: date
    reason: str | None = None
    status: SwapStatus
    approved_by: str | None = None
    approved_at: datetime | None = None
    rejection_reason: str | None = None
    processed_at: datetime | None = None
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class SwapRequestDetailOut(SwapRequestOut):
    entry_1: TimetableEntryOut | None = None
    entry_2: TimetableEntryOut | None = None
    requester_name: str | None = None
