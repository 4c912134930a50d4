"""Create tasks, calibration_entries, settings and routines

Revision ID: 4a9e1c7b2d30
Revises:
Create Date: 2026-10-18
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "4a9e1c7b2d30"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "tasks",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("tag", sa.String(), nullable=True),
        sa.Column("next_action", sa.String(), nullable=True),
        sa.Column("impact", sa.Integer(), nullable=True),
        sa.Column("consequences", sa.Integer(), nullable=True),
        sa.Column("friction", sa.Integer(), nullable=True),
        sa.Column("leverage", sa.Integer(), nullable=True),
        sa.Column("energy_match", sa.Integer(), nullable=True),
        sa.Column("time_criticality", sa.Integer(), nullable=True),
        sa.Column("estimate_bucket", sa.Integer(), nullable=True),
        sa.Column("confidence", sa.String(), nullable=True),
        sa.Column("actual_bucket", sa.Integer(), nullable=True),
        sa.Column("scheduled_for_date", sa.Date(), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("is_top3", sa.Boolean(), nullable=False),
        sa.Column("top3_order", sa.Integer(), nullable=True),
        sa.Column("top3_date", sa.Date(), nullable=True),
        sa.Column("top3_locked", sa.Boolean(), nullable=False),
        sa.Column("recurrence", sa.String(), nullable=True),
        sa.Column("recurrence_day", sa.Integer(), nullable=True),
        sa.Column("parent_id", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("started_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    for column in ("status", "tag", "scheduled_for_date", "due_date", "is_top3", "parent_id", "created_at"):
        op.create_index(op.f(f"ix_tasks_{column}"), "tasks", [column], unique=False)

    op.create_table(
        "calibration_entries",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("tag", sa.String(), nullable=False),
        sa.Column("estimate_bucket", sa.Integer(), nullable=False),
        sa.Column("actual_bucket", sa.Integer(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_calibration_entries_tag"), "calibration_entries", ["tag"], unique=False)
    op.create_index(op.f("ix_calibration_entries_completed_at"), "calibration_entries", ["completed_at"], unique=False)

    op.create_table(
        "settings",
        sa.Column("key", sa.String(), nullable=False),
        sa.Column("value", sa.JSON(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("key"),
    )

    op.create_table(
        "routines",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("items", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("routines")
    op.drop_table("settings")
    op.drop_index(op.f("ix_calibration_entries_completed_at"), table_name="calibration_entries")
    op.drop_index(op.f("ix_calibration_entries_tag"), table_name="calibration_entries")
    op.drop_table("calibration_entries")
    for column in ("created_at", "parent_id", "is_top3", "due_date", "scheduled_for_date", "tag", "status"):
        op.drop_index(op.f(f"ix_tasks_{column}"), table_name="tasks")
    op.drop_table("tasks")
