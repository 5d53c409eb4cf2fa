from datetime import date
from typing import Literal

from pydantic import BaseModel, Field

from app.models.enums import DayOfWeek
from app.schemas.timetable import TimetableEntryOut


class SubjectRef(BaseModel):
    subject_id: str
    name: str


class TeacherWorkloadOut(BaseModel):
    teacher_id: str
    teacher_name: str
    email: str | None = None
    periods_per_week: int
    max_periods_per_week: int
    workload_percentage: int
    periods_per_day: dict[str, int]
    subjects: list[SubjectRef]
    class_count: int


class WorkloadReportOut(BaseModel):
    total_teachers: int
    average_workload_percentage: int
    max_periods_per_week: int
    teachers: list[TeacherWorkloadOut]


class SubjectDistributionOut(BaseModel):
    subject_id: str
    name: str
    code: str = ""
    periods_per_week: int
    class_count: int


class TimetableSummaryOut(BaseModel):
    has_active_config: bool
    academic_year: str | None = None
    working_days: list[str]
    periods_per_day: int
    total_entries: int
    total_teachers: int
    total_classes: int
    total_sections: int
    total_subjects: int
    fill_rate: int


class GridCell(BaseModel):
    period_number: int
    entry: TimetableEntryOut | None = None
    subject_name: str | None = None
    teacher_name: str | None = None
    class_name: str | None = None
    room_name: str | None = None


class UnplacedEntry(BaseModel):
    entry: TimetableEntryOut
    reason: Literal["period_undefined", "day_not_working"]


class GridAnomaly(BaseModel):
    day_of_week: DayOfWeek
    period_number: int
    entries: list[str]


class TimetableGridOut(BaseModel):
    kind: Literal["class", "teacher"]
    owner_id: str
    owner_name: str
    section_id: str | None = None
    academic_year: str
    period_numbers: list[int]
    days: dict[str, list[GridCell]]
    unplaced_entries: list[UnplacedEntry] = Field(default_factory=list)
    anomalies: list[GridAnomaly] = Field(default_factory=list)


class EffectiveEntryOut(BaseModel):
    entry: TimetableEntryOut
    teaching_teacher_id: str
    source: Literal["weekly", "substitute", "swap"]
    substitute_id: str | None = None
    swap_id: str | None = None
    swapped_with_entry_id: str | None = None


class EffectiveScheduleOut(BaseModel):
    on_date: date
    day_of_week: DayOfWeek
    entries: list[EffectiveEntryOut]
