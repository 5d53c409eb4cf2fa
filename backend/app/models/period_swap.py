import uuid
from datetime import date, datetime
from enum import Enum

from sqlalchemy import Date, DateTime, Enum as SAEnum, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class SwapStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    cancelled = "cancelled"


def swap_pair_key(entry_id_1: str, entry_id_2: str) -> str:
    first, second = sorted((entry_id_1, entry_id_2))
    return f"{first}|{second}"


class PeriodSwapRequest(Base):
    __tablename__ = "period_swap_requests"
    __table_args__ = (
        Index(
            "uq_period_swap_requests_pending_pair_date",
            "school_id",
            "pair_key",
            "swap_date",
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    school_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    requested_by: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    entry_id_1: Mapped[str] = mapped_column(String(36), nullable=False)
    entry_id_2: Mapped[str] = mapped_column(String(36), nullable=False)
    pair_key: Mapped[str] = mapped_column(String(80), nullable=False)
    swap_date: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[SwapStatus] = mapped_column(
        SAEnum(SwapStatus, name="swap_status"),
        nullable=False,
        default=SwapStatus.pending,
    )
    approved_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())
