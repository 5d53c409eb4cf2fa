from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, Field, field_validator, model_validator

from app.models.enums import DayOfWeek, LifecycleStatus, PeriodType

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def parse_time_to_minutes(value: str) -> int:
    if not TIME_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM 24-hour format")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def normalize_day_value(value):
    if isinstance(value, str):
        return value.strip().lower()
    return value


class _TimeRange(BaseModel):
    start_time: str
    end_time: str

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, value: str) -> str:
        if not TIME_PATTERN.match(value):
            raise ValueError("Time must be in HH:MM 24-hour format")
        return value

    @model_validator(mode="after")
    def validate_time_order(self):
        if parse_time_to_minutes(self.end_time) <= parse_time_to_minutes(self.start_time):
            raise ValueError("end_time must be after start_time")
        return self


class ShiftDefinition(_TimeRange):
    shift_id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=100)


class PeriodDefinition(_TimeRange):
    period_number: int = Field(ge=1, le=50)
    name: str | None = Field(default=None, max_length=100)
    duration: int | None = Field(default=None, ge=1, le=600)
    type: PeriodType = PeriodType.regular
    shift_id: str | None = Field(default=None, max_length=64)
    is_double_period: bool = False

    @model_validator(mode="after")
    def fill_duration(self) -> "PeriodDefinition":
        if self.duration is None:
            self.duration = parse_time_to_minutes(self.end_time) - parse_time_to_minutes(self.start_time)
        if not self.name:
            self.name = f"Period {self.period_number}"
        return self


def _check_unique(values: list, label: str) -> None:
    seen: set = set()
    duplicates: set = set()
    for value in values:
        if value in seen:
            duplicates.add(value)
        seen.add(value)
    if duplicates:
        raise ValueError(f"Duplicate {label}: {', '.join(sorted(str(item) for item in duplicates))}")


class CalendarStructure(BaseModel):
    working_days: list[DayOfWeek] | None = Field(default=None, max_length=7)
    shifts: list[ShiftDefinition] | None = Field(default=None, max_length=10)
    periods: list[PeriodDefinition] | None = Field(default=None, max_length=50)

    @field_validator("working_days", mode="before")
    @classmethod
    def normalize_days(cls, value):
        if isinstance(value, list):
            return [normalize_day_value(item) for item in value]
        return value

    @model_validator(mode="after")
    def validate_uniqueness(self):
        if self.working_days is not None:
            _check_unique([day.value for day in self.working_days], "working days")
        if self.shifts is not None:
            _check_unique([shift.shift_id for shift in self.shifts], "shift ids")
        if self.periods is not None:
            _check_unique([period.period_number for period in self.periods], "period numbers")
        return self


class TimetableConfigCreate(CalendarStructure):
    academic_year: str = Field(min_length=4, max_length=20)


class TimetableConfigUpdate(CalendarStructure):
    academic_year: str | None = Field(default=None, min_length=4, max_length=20)


class TimetableConfigOut(BaseModel):
    id: str
    school_id: str
    academic_year: str
    working_days: list[str]
    periods: list[PeriodDefinition]
    shifts: list[ShiftDefinition]
    is_active: bool
    status: LifecycleStatus
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}
