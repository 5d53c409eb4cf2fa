import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum as SAEnum, JSON, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base
from app.models.enums import LifecycleStatus


class SchoolClass(Base):
    __tablename__ = "school_classes"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    school_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    # [{"section_id": ..., "name": ...}]
    sections: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    status: Mapped[LifecycleStatus] = mapped_column(
        SAEnum(LifecycleStatus, name="lifecycle_status"),
        nullable=False,
        default=LifecycleStatus.active,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
