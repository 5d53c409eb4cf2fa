"""create school roster tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


LIFECYCLE_VALUES = ("active", "inactive")
lifecycle_status = postgresql.ENUM(*LIFECYCLE_VALUES, name="lifecycle_status", create_type=False)
leave_applicant_type = postgresql.ENUM("teacher", "student", name="leave_applicant_type", create_type=False)
leave_status = postgresql.ENUM(
    "pending", "approved", "rejected", "cancelled", name="leave_status", create_type=False
)


def upgrade() -> None:
    bind = op.get_bind()
    sa.Enum(*LIFECYCLE_VALUES, name="lifecycle_status").create(bind, checkfirst=True)
    sa.Enum("teacher", "student", name="leave_applicant_type").create(bind, checkfirst=True)
    sa.Enum("pending", "approved", "rejected", "cancelled", name="leave_status").create(bind, checkfirst=True)

    op.create_table(
        "teachers",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("school_id", sa.String(length=64), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("department", sa.String(length=200), nullable=True),
        sa.Column("subjects", sa.JSON(), nullable=False),
        sa.Column("status", lifecycle_status, nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_teachers_school_id", "teachers", ["school_id"], unique=False)

    op.create_table(
        "subjects",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("school_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False, server_default=""),
        sa.Column("status", lifecycle_status, nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_subjects_school_id", "subjects", ["school_id"], unique=False)

    op.create_table(
        "school_classes",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("school_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("sections", sa.JSON(), nullable=False),
        sa.Column("status", lifecycle_status, nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_school_classes_school_id", "school_classes", ["school_id"], unique=False)

    op.create_table(
        "leave_requests",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("school_id", sa.String(length=64), nullable=False),
        sa.Column("applicant_id", sa.String(length=64), nullable=False),
        sa.Column("applicant_type", leave_applicant_type, nullable=False),
        sa.Column("applicant_name", sa.String(length=200), nullable=True),
        sa.Column("leave_type", sa.String(length=50), nullable=False, server_default="casual"),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("status", leave_status, nullable=False, server_default="pending"),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_leave_requests_school_id", "leave_requests", ["school_id"], unique=False)
    op.create_index("ix_leave_requests_applicant_id", "leave_requests", ["applicant_id"], unique=False)

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("school_id", sa.String(length=64), nullable=False),
        sa.Column("actor_id", sa.String(length=64), nullable=True),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("entity_type", sa.String(length=100), nullable=True),
        sa.Column("entity_id", sa.String(length=100), nullable=True),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_activity_logs_school_id", "activity_logs", ["school_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_activity_logs_school_id", table_name="activity_logs")
    op.drop_table("activity_logs")
    op.drop_index("ix_leave_requests_applicant_id", table_name="leave_requests")
    op.drop_index("ix_leave_requests_school_id", table_name="leave_requests")
    op.drop_table("leave_requests")
    op.drop_index("ix_school_classes_school_id", table_name="school_classes")
    op.drop_table("school_classes")
    op.drop_index("ix_subjects_school_id", table_name="subjects")
    op.drop_table("subjects")
    op.drop_index("ix_teachers_school_id", table_name="teachers")
    op.drop_table("teachers")

    bind = op.get_bind()
    sa.Enum(name="leave_status").drop(bind, checkfirst=True)
    sa.Enum(name="leave_applicant_type").drop(bind, checkfirst=True)
    sa.Enum(name="lifecycle_status").drop(bind, checkfirst=True)
