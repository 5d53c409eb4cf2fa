from typing import Literal

from pydantic import BaseModel

from app.models.enums import DayOfWeek

ConflictType = Literal["teacher", "room", "section"]


class ConflictDetail(BaseModel):
    type: ConflictType
    day_of_week: DayOfWeek
    period_number: int
    resource_id: str
    description: str
    entries: list[str]


class ConflictReport(BaseModel):
    total_conflicts: int
    conflicts: list[ConflictDetail]
