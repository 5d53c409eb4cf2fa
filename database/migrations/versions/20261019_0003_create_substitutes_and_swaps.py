"""create substitute assignments and period swap requests

Revision ID: 20261019_0003
Revises: 20261019_0002
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "20261019_0003"
down_revision = "20261019_0002"
branch_labels = None
depends_on = None


SUBSTITUTE_STATUS_VALUES = ("pending", "confirmed", "completed", "cancelled")
SWAP_STATUS_VALUES = ("pending", "approved", "rejected", "cancelled")
OPEN_SUBSTITUTE_PREDICATE = "status IN ('pending', 'confirmed')"
PENDING_SWAP_PREDICATE = "status = 'pending'"

substitute_status = postgresql.ENUM(*SUBSTITUTE_STATUS_VALUES, name="substitute_status", create_type=False)
swap_status = postgresql.ENUM(*SWAP_STATUS_VALUES, name="swap_status", create_type=False)


def upgrade() -> None:
    bind = op.get_bind()
    sa.Enum(*SUBSTITUTE_STATUS_VALUES, name="substitute_status").create(bind, checkfirst=True)
    sa.Enum(*SWAP_STATUS_VALUES, name="swap_status").create(bind, checkfirst=True)

    op.create_table(
        "substitute_assignments",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("school_id", sa.String(length=64), nullable=False),
        sa.Column("original_entry_id", sa.String(length=36), nullable=False),
        sa.Column("original_teacher_id", sa.String(length=64), nullable=False),
        sa.Column("substitute_teacher_id", sa.String(length=64), nullable=False),
        sa.Column("assignment_date", sa.Date(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("created_by", sa.String(length=64), nullable=False),
        sa.Column("status", substitute_status, nullable=False, server_default="confirmed"),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    for column in ("school_id", "original_entry_id", "original_teacher_id", "substitute_teacher_id", "assignment_date"):
        op.create_index(f"ix_substitute_assignments_{column}", "substitute_assignments", [column], unique=False)
    op.create_index(
        "uq_substitute_assignments_open_entry_day",
        "substitute_assignments",
        ["school_id", "original_entry_id", "assignment_date"],
        unique=True,
        sqlite_where=sa.text(OPEN_SUBSTITUTE_PREDICATE),
        postgresql_where=sa.text(OPEN_SUBSTITUTE_PREDICATE),
    )

    op.create_table(
        "period_swap_requests",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("school_id", sa.String(length=64), nullable=False),
        sa.Column("requested_by", sa.String(length=64), nullable=False),
        sa.Column("entry_id_1", sa.String(length=36), nullable=False),
        sa.Column("entry_id_2", sa.String(length=36), nullable=False),
        sa.Column("pair_key", sa.String(length=80), nullable=False),
        sa.Column("swap_date", sa.Date(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("status", swap_status, nullable=False, server_default="pending"),
        sa.Column("approved_by", sa.String(length=64), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_period_swap_requests_school_id", "period_swap_requests", ["school_id"], unique=False)
    op.create_index("ix_period_swap_requests_requested_by", "period_swap_requests", ["requested_by"], unique=False)
    op.create_index(
        "uq_period_swap_requests_pending_pair_date",
        "period_swap_requests",
        ["school_id", "pair_key", "swap_date"],
        unique=True,
        sqlite_where=sa.text(PENDING_SWAP_PREDICATE),
        postgresql_where=sa.text(PENDING_SWAP_PREDICATE),
    )


def downgrade() -> None:
    op.drop_index("uq_period_swap_requests_pending_pair_date", table_name="period_swap_requests")
    op.drop_index("ix_period_swap_requests_requested_by", table_name="period_swap_requests")
    op.drop_index("ix_period_swap_requests_school_id", table_name="period_swap_requests")
    op.drop_table("period_swap_requests")
    op.drop_index("uq_substitute_assignments_open_entry_day", table_name="substitute_assignments")
    for column in ("assignment_date", "substitute_teacher_id", "original_teacher_id", "original_entry_id", "school_id"):
        op.drop_index(f"ix_substitute_assignments_{column}", table_name="substitute_assignments")
    op.drop_table("substitute_assignments")

    bind = op.get_bind()
    sa.Enum(name="swap_status").drop(bind, checkfirst=True)
    sa.Enum(name="substitute_status").drop(bind, checkfirst=True)
