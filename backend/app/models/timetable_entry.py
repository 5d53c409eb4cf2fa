import uuid
from datetime import date, datetime

from sqlalchemy import Date, DateTime, Enum as SAEnum, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base
from app.models.enums import DayOfWeek, LifecycleStatus, PeriodType

ACTIVE_ENTRY_PREDICATE = "status = 'active'"


class TimetableEntry(Base):
    __tablename__ = "timetable_entries"
    # Storage-level guard against check-then-act races on slot writes.
    __table_args__ = (
        Index(
            "uq_timetable_entries_teacher_slot",
            "school_id",
            "day_of_week",
            "period_number",
            "teacher_id",
            unique=True,
            sqlite_where=text(ACTIVE_ENTRY_PREDICATE),
            postgresql_where=text(ACTIVE_ENTRY_PREDICATE),
        ),
        Index(
            "uq_timetable_entries_room_slot",
            "school_id",
            "day_of_week",
            "period_number",
            "room_id",
            unique=True,
            sqlite_where=text(f"{ACTIVE_ENTRY_PREDICATE} AND room_id IS NOT NULL"),
            postgresql_where=text(f"{ACTIVE_ENTRY_PREDICATE} AND room_id IS NOT NULL"),
        ),
        Index(
            "uq_timetable_entries_section_slot",
            "school_id",
            "day_of_week",
            "period_number",
            "class_id",
            "section_id",
            unique=True,
            sqlite_where=text(ACTIVE_ENTRY_PREDICATE),
            postgresql_where=text(ACTIVE_ENTRY_PREDICATE),
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    school_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    class_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    section_id: Mapped[str] = mapped_column(String(64), nullable=False)
    subject_id: Mapped[str] = mapped_column(String(64), nullable=False)
    teacher_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    day_of_week: Mapped[DayOfWeek] = mapped_column(SAEnum(DayOfWeek, name="day_of_week"), nullable=False)
    period_number: Mapped[int] = mapped_column(Integer, nullable=False)
    room_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    shift_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    period_type: Mapped[PeriodType] = mapped_column(
        SAEnum(PeriodType, name="period_type", values_callable=lambda members: [item.value for item in members]),
        nullable=False,
        default=PeriodType.regular,
    )
    effective_from: Mapped[date | None] = mapped_column(Date, nullable=True)
    effective_to: Mapped[date | None] = mapped_column(Date, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[LifecycleStatus] = mapped_column(
        SAEnum(LifecycleStatus, name="lifecycle_status"),
        nullable=False,
        default=LifecycleStatus.active,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    @property
    def is_active(self) -> bool:
        return self.status == LifecycleStatus.active
