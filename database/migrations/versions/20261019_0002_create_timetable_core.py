"""create timetable configs, rooms and entries

Revision ID: 20261019_0002
Revises: 20261019_0001
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "20261019_0002"
down_revision = "20261019_0001"
branch_labels = None
depends_on = None


DAY_VALUES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
PERIOD_TYPE_VALUES = ("regular", "break", "lunch", "assembly", "pt", "lab", "free")
ROOM_TYPE_VALUES = ("classroom", "lab", "library", "auditorium", "sports", "other")
ACTIVE_ENTRY_PREDICATE = "status = 'active'"

lifecycle_status = postgresql.ENUM("active", "inactive", name="lifecycle_status", create_type=False)
day_of_week = postgresql.ENUM(*DAY_VALUES, name="day_of_week", create_type=False)
period_type = postgresql.ENUM(*PERIOD_TYPE_VALUES, name="period_type", create_type=False)
room_type = postgresql.ENUM(*ROOM_TYPE_VALUES, name="room_type", create_type=False)


def upgrade() -> None:
    bind = op.get_bind()
    sa.Enum(*DAY_VALUES, name="day_of_week").create(bind, checkfirst=True)
    sa.Enum(*PERIOD_TYPE_VALUES, name="period_type").create(bind, checkfirst=True)
    sa.Enum(*ROOM_TYPE_VALUES, name="room_type").create(bind, checkfirst=True)

    op.create_table(
        "timetable_configs",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("school_id", sa.String(length=64), nullable=False),
        sa.Column("academic_year", sa.String(length=20), nullable=False),
        sa.Column("working_days", sa.JSON(), nullable=False),
        sa.Column("periods", sa.JSON(), nullable=False),
        sa.Column("shifts", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("status", lifecycle_status, nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("school_id", "academic_year", name="uq_timetable_configs_school_year"),
    )
    op.create_index("ix_timetable_configs_school_id", "timetable_configs", ["school_id"], unique=False)
    op.create_index(
        "uq_timetable_configs_active_school",
        "timetable_configs",
        ["school_id"],
        unique=True,
        sqlite_where=sa.text("is_active = 1"),
        postgresql_where=sa.text("is_active"),
    )

    op.create_table(
        "rooms",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("school_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("type", room_type, nullable=False, server_default="classroom"),
        sa.Column("capacity", sa.Integer(), nullable=False, server_default="40"),
        sa.Column("floor", sa.String(length=50), nullable=True),
        sa.Column("building", sa.String(length=200), nullable=True),
        sa.Column("equipment", sa.JSON(), nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("status", lifecycle_status, nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("school_id", "code", name="uq_rooms_school_code"),
    )
    op.create_index("ix_rooms_school_id", "rooms", ["school_id"], unique=False)

    op.create_table(
        "timetable_entries",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("school_id", sa.String(length=64), nullable=False),
        sa.Column("class_id", sa.String(length=64), nullable=False),
        sa.Column("section_id", sa.String(length=64), nullable=False),
        sa.Column("subject_id", sa.String(length=64), nullable=False),
        sa.Column("teacher_id", sa.String(length=64), nullable=False),
        sa.Column("day_of_week", day_of_week, nullable=False),
        sa.Column("period_number", sa.Integer(), nullable=False),
        sa.Column("room_id", sa.String(length=64), nullable=True),
        sa.Column("shift_id", sa.String(length=64), nullable=True),
        sa.Column("period_type", period_type, nullable=False, server_default="regular"),
        sa.Column("effective_from", sa.Date(), nullable=True),
        sa.Column("effective_to", sa.Date(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", lifecycle_status, nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_timetable_entries_school_id", "timetable_entries", ["school_id"], unique=False)
    op.create_index("ix_timetable_entries_class_id", "timetable_entries", ["class_id"], unique=False)
    op.create_index("ix_timetable_entries_teacher_id", "timetable_entries", ["teacher_id"], unique=False)
    op.create_index("ix_timetable_entries_room_id", "timetable_entries", ["room_id"], unique=False)
    op.create_index(
        "uq_timetable_entries_teacher_slot",
        "timetable_entries",
        ["school_id", "day_of_week", "period_number", "teacher_id"],
        unique=True,
        sqlite_where=sa.text(ACTIVE_ENTRY_PREDICATE),
        postgresql_where=sa.text(ACTIVE_ENTRY_PREDICATE),
    )
    op.create_index(
        "uq_timetable_entries_room_slot",
        "timetable_entries",
        ["school_id", "day_of_week", "period_number", "room_id"],
        unique=True,
        sqlite_where=sa.text(f"{ACTIVE_ENTRY_PREDICATE} AND room_id IS NOT NULL"),
        postgresql_where=sa.text(f"{ACTIVE_ENTRY_PREDICATE} AND room_id IS NOT NULL"),
    )
    op.create_index(
        "uq_timetable_entries_section_slot",
        "timetable_entries",
        ["school_id", "day_of_week", "period_number", "class_id", "section_id"],
        unique=True,
        sqlite_where=sa.text(ACTIVE_ENTRY_PREDICATE),
        postgresql_where=sa.text(ACTIVE_ENTRY_PREDICATE),
    )


def downgrade() -> None:
    for name in (
        "uq_timetable_entries_section_slot",
        "uq_timetable_entries_room_slot",
        "uq_timetable_entries_teacher_slot",
        "ix_timetable_entries_room_id",
        "ix_timetable_entries_teacher_id",
        "ix_timetable_entries_class_id",
        "ix_timetable_entries_school_id",
    ):
        op.drop_index(name, table_name="timetable_entries")
    op.drop_table("timetable_entries")
    op.drop_index("ix_rooms_school_id", table_name="rooms")
    op.drop_table("rooms")
    op.drop_index("uq_timetable_configs_active_school", table_name="timetable_configs")
    op.drop_index("ix_timetable_configs_school_id", table_name="timetable_configs")
    op.drop_table("timetable_configs")

    bind = op.get_bind()
    sa.Enum(name="room_type").drop(bind, checkfirst=True)
    sa.Enum(name="period_type").drop(bind, checkfirst=True)
    sa.Enum(name="day_of_week").drop(bind, checkfirst=True)
