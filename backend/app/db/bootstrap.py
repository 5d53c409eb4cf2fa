from __future__ import annotations

import logging

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine

from app.core.exceptions import ConfigurationError
from app import models  # noqa: F401
from app.db.base import Base
from app.db.session import engine as default_engine

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "timetable_configs": {"id", "school_id", "academic_year", "working_days", "periods", "shifts", "is_active"},
    "timetable_entries": {
        "id",
        "school_id",
        "class_id",
        "section_id",
        "teacher_id",
        "day_of_week",
        "period_number",
        "room_id",
        "status",
    },
    "substitute_assignments": {"id", "school_id", "original_entry_id", "assignment_date", "status"},
    "period_swap_requests": {"id", "school_id", "pair_key", "swap_date", "status"},
    "teachers": {"id", "school_id", "subjects", "status"},
}

# Unique indexes that arbitrate concurrent writers; the service must not run without them.
REQUIRED_UNIQUE_INDEXES: dict[str, set[str]] = {
    "timetable_configs": {"uq_timetable_configs_active_school"},
    "timetable_entries": {
        "uq_timetable_entries_teacher_slot",
        "uq_timetable_entries_room_slot",
        "uq_timetable_entries_section_slot",
    },
    "substitute_assignments": {"uq_substitute_assignments_open_entry_day"},
    "period_swap_requests": {"uq_period_swap_requests_pending_pair_date"},
}


def _ensure_teacher_subjects_column(bind: Engine) -> None:
    with bind.begin() as connection:
        inspector = inspect(connection)
        if "teachers" not in set(inspector.get_table_names()):
            return
        column_names = {item["name"] for item in inspector.get_columns("teachers")}
        if "subjects" in column_names:
            return
        if connection.dialect.name == "postgresql":
            connection.execute(text("ALTER TABLE teachers ADD COLUMN subjects JSONB NOT NULL DEFAULT '[]'::jsonb"))
            return
        connection.execute(text("ALTER TABLE teachers ADD COLUMN subjects JSON NOT NULL DEFAULT '[]'"))


def _assert_required_columns(bind: Engine) -> None:
    with bind.begin() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        missing_tables = [name for name in REQUIRED_COLUMNS if name not in table_names]
        if missing_tables:
            raise ConfigurationError(f"Missing required tables: {', '.join(sorted(missing_tables))}")

        missing_columns: list[str] = []
        for table_name, required in REQUIRED_COLUMNS.items():
            existing = {item["name"] for item in inspector.get_columns(table_name)}
            for column_name in sorted(required - existing):
                missing_columns.append(f"{table_name}.{column_name}")
        if missing_columns:
            raise ConfigurationError(f"Missing required columns: {', '.join(missing_columns)}")


def _assert_unique_indexes(bind: Engine) -> None:
    with bind.begin() as connection:
        inspector = inspect(connection)
        missing: list[str] = []
        for table_name, required in REQUIRED_UNIQUE_INDEXES.items():
            present = {item["name"] for item in inspector.get_indexes(table_name) if item.get("unique")}
            missing.extend(f"{table_name}.{name}" for name in sorted(required - present))
        if missing:
            raise ConfigurationError(f"Missing uniqueness indexes: {', '.join(missing)}")


def ensure_runtime_schema_compatibility(bind: Engine | None = None) -> None:
    bind = bind or default_engine
    try:
        # Ensure missing tables are present before additive compatibility patches.
        Base.metadata.create_all(bind=bind)
        _ensure_teacher_subjects_column(bind)
        _assert_required_columns(bind)
        _assert_unique_indexes(bind)
    except Exception as exc:  # pragma: no cover - runtime environment dependent
        logger.exception("Runtime schema compatibility bootstrap failed")
        raise RuntimeError("Runtime schema compatibility bootstrap failed") from exc
