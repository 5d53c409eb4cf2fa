import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, Index, JSON, String, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base
from app.models.enums import LifecycleStatus


class TimetableConfig(Base):
    __tablename__ = "timetable_configs"
    __table_args__ = (
        UniqueConstraint("school_id", "academic_year", name="uq_timetable_configs_school_year"),
        Index(
            "uq_timetable_configs_active_school",
            "school_id",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    school_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    academic_year: Mapped[str] = mapped_column(String(20), nullable=False)
    working_days: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    periods: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    shifts: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[LifecycleStatus] = mapped_column(
        SAEnum(LifecycleStatus, name="lifecycle_status"),
        nullable=False,
        default=LifecycleStatus.active,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())
