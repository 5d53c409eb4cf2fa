import uuid
from datetime import date, datetime
from enum import Enum

from sqlalchemy import Date, DateTime, Enum as SAEnum, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class ApplicantType(str, Enum):
    teacher = "teacher"
    student = "student"


class LeaveStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    cancelled = "cancelled"


class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    school_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    applicant_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    applicant_type: Mapped[ApplicantType] = mapped_column(
        SAEnum(ApplicantType, name="leave_applicant_type"),
        nullable=False,
    )
    applicant_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    leave_type: Mapped[str] = mapped_column(String(50), nullable=False, default="casual")
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[LeaveStatus] = mapped_column(
        SAEnum(LeaveStatus, name="leave_status"),
        nullable=False,
        default=LeaveStatus.pending,
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
