from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator, model_validator

from app.models.enums import DayOfWeek, LifecycleStatus, PeriodType
from app.schemas.calendar import TimetableConfigOut, normalize_day_value


class _EntrySlotFields(BaseModel):
    @field_validator("day_of_week", mode="before", check_fields=False)
    @classmethod
    def normalize_day(cls, value):
        return normalize_day_value(value)


class TimetableEntryCreate(_EntrySlotFields):
    class_id: str = Field(min_length=1, max_length=64)
    section_id: str = Field(min_length=1, max_length=64)
    subject_id: str = Field(min_length=1, max_length=64)
    teacher_id: str = Field(min_length=1, max_length=64)
    day_of_week: DayOfWeek
    period_number: int = Field(ge=1, le=50)
    room_id: str | None = Field(default=None, max_length=64)
    shift_id: str | None = Field(default=None, max_length=64)
    effective_from: date | None = None
    effective_to: date | None = None
    notes: str | None = Field(default=None, max_length=1000)

    @model_validator(mode="after")
    def validate_effective_range(self) -> "TimetableEntryCreate":
        if self.effective_from and self.effective_to and self.effective_to < self.effective_from:
            raise ValueError("effective_to must not be before effective_from")
        return self


class TimetableEntryUpdate(_EntrySlotFields):
    class_id: str | None = Field(default=None, min_length=1, max_length=64)
    section_id: str | None = Field(default=None, min_length=1, max_length=64)
    subject_id: str | None = Field(default=None, min_length=1, max_length=64)
    teacher_id: str | None = Field(default=None, min_length=1, max_length=64)
    day_of_week: DayOfWeek | None = None
    period_number: int | None = Field(default=None, ge=1, le=50)
    room_id: str | None = Field(default=None, max_length=64)
    shift_id: str | None = Field(default=None, max_length=64)
    effective_from: date | None = None
    effective_to: date | None = None
    notes: str | None = Field(default=None, max_length=1000)


class TimetableEntryOut(BaseModel):
    id: str
    school_id: str
    class_id: str
    section_id: str
    subject_id: str
    teacher_id: str
    day_of_week: DayOfWeek
    period_number: int
    room_id: str | None = None
    shift_id: str | None = None
    period_type: PeriodType
    effective_from: date | None = None
    effective_to: date | None = None
    notes: str | None = None
    status: LifecycleStatus
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class ScheduledEntryOut(TimetableEntryOut):
    period_defined: bool = True
    teacher_name: str | None = None
    subject_name: str | None = None


class ScheduleView(BaseModel):
    config: TimetableConfigOut | None = None
    entries: list[ScheduledEntryOut]


class BulkEntryCreate(BaseModel):
    entries: list[TimetableEntryCreate] = Field(min_length=1, max_length=500)


class BulkEntryFailure(BaseModel):
    index: int
    entry: TimetableEntryCreate
    reason: str
    conflicts: list[dict] = Field(default_factory=list)


class BulkEntryResult(BaseModel):
    created: list[TimetableEntryOut]
    failed: list[BulkEntryFailure]
