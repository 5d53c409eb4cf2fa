from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.activity_log import ActivityLog

logger = logging.getLogger(__name__)


def log_activity(
    db: Session,
    *,
    school_id: str,
    actor_id: str | None,
    action: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
    details: dict | None = None,
) -> None:
    """Record an audit row. A failed write is logged and never aborts the caller."""
    record = ActivityLog(
        school_id=school_id,
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details or {},
    )
    try:
        with db.begin_nested():
            db.add(record)
            db.flush()
    except SQLAlchemyError as exc:
        logger.warning("Failed to write activity log %s for %s %s: %s", action, entity_type, entity_id, exc)
