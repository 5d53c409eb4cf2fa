from enum import Enum


class LifecycleStatus(str, Enum):
    active = "active"
    inactive = "inactive"


class DayOfWeek(str, Enum):
    monday = "monday"
    tuesday = "tuesday"
    wednesday = "wednesday"
    thursday = "thursday"
    friday = "friday"
    saturday = "saturday"
    sunday = "sunday"

    @classmethod
    def from_date(cls, value) -> "DayOfWeek":
        return list(cls)[value.weekday()]


class PeriodType(str, Enum):
    regular = "regular"
    break_ = "break"
    lunch = "lunch"
    assembly = "assembly"
    pt = "pt"
    lab = "lab"
    free = "free"


# Periods that can carry a timetable entry.
SCHEDULABLE_PERIOD_TYPES = frozenset({PeriodType.regular, PeriodType.lab, PeriodType.pt})
