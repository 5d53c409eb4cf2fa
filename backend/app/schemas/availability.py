from datetime import date
from typing import Literal

from pydantic import BaseModel

from app.models.enums import DayOfWeek
from app.schemas.room import RoomOut


class FreeTeacherOut(BaseModel):
    teacher_id: str
    name: str
    email: str | None = None
    department: str | None = None
    subjects: list[str]


class FreeTeachersOut(BaseModel):
    day_of_week: DayOfWeek
    period_number: int
    period_defined: bool
    on_date: date | None = None
    teachers: list[FreeTeacherOut]


class FreeRoomsOut(BaseModel):
    day_of_week: DayOfWeek
    period_number: int
    period_defined: bool
    rooms: list[RoomOut]


class TeacherLeaveOut(BaseModel):
    teacher_id: str
    teacher_name: str | None = None
    leave_type: str
    reason: str | None = None
    start_date: date
    end_date: date


class TeachersOnLeaveOut(BaseModel):
    on_date: date
    teacher_ids: list[str]
    leaves: list[TeacherLeaveOut]


class SubstituteCandidateOut(BaseModel):
    teacher_id: str
    name: str
    subject_match: Literal["explicit", "unrestricted"]
    weekly_periods: int


class SubstituteSuggestionsOut(BaseModel):
    entry_id: str
    on_date: date
    day_of_week: DayOfWeek
    period_number: int
    subject_id: str
    candidates: list[SubstituteCandidateOut]


class FreePeriodOut(BaseModel):
    period_number: int
    name: str | None = None
    start_time: str
    end_time: str


class TeacherFreePeriodsOut(BaseModel):
    teacher_id: str
    free_periods: dict[str, list[FreePeriodOut]]
