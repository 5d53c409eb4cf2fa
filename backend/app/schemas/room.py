from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from app.models.enums import DayOfWeek, LifecycleStatus
from app.models.room import RoomType
from app.schemas.calendar import normalize_day_value


class RoomBase(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    code: str = Field(min_length=1, max_length=50)
    type: RoomType = RoomType.classroom
    capacity: int = Field(default=40, ge=1, le=2000)
    floor: str | None = Field(default=None, max_length=50)
    building: str | None = Field(default=None, max_length=200)
    equipment: list[str] = Field(default_factory=list, max_length=100)

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        return value.strip().upper()


class RoomCreate(RoomBase):
    pass


class RoomUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    code: str | None = Field(default=None, min_length=1, max_length=50)
    type: RoomType | None = None
    capacity: int | None = Field(default=None, ge=1, le=2000)
    floor: str | None = Field(default=None, max_length=50)
    building: str | None = Field(default=None, max_length=200)
    equipment: list[str] | None = Field(default=None, max_length=100)
    is_available: bool | None = None

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: str | None) -> str | None:
        return value.strip().upper() if value is not None else None


class RoomOut(RoomBase):
    id: str
    school_id: str
    is_available: bool
    status: LifecycleStatus
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class RoomBookedPeriod(BaseModel):
    entry_id: str
    period_number: int
    class_id: str
    section_id: str
    subject_id: str
    teacher_id: str


class RoomAvailabilityOut(BaseModel):
    room: RoomOut
    day_of_week: DayOfWeek
    booked_periods: list[RoomBookedPeriod]
    free_periods: list[int]

    @field_validator("day_of_week", mode="before")
    @classmethod
    def normalize_day(cls, value):
        return normalize_day_value(value)
