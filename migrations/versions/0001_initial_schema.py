"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18 00:00:00.000000

Tables owned by the admin panel and read by the engine:
recurring_transactions, habits, habit_logs.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- ENUM types ---
    recurring_tx_type_enum = sa.Enum("earning", "expense", name="recurring_tx_type_enum")
    recurring_tx_type_enum.create(op.get_bind(), checkfirst=True)

    # --- recurring_transactions ---
    op.create_table(
        "recurring_transactions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(256), nullable=False),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("tx_type", sa.Enum(
            "earning", "expense", name="recurring_tx_type_enum", create_type=False,
        ), nullable=False),
        sa.Column("category", sa.String(64), nullable=True),
        sa.Column("frequency", sa.String(16), nullable=False),
        sa.Column("occurrence_day", sa.Integer(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "end_date IS NULL OR end_date >= start_date",
            name="ck_recurring_end_after_start",
        ),
    )
    op.create_index("ix_recurring_transactions_id", "recurring_transactions", ["id"])

    # --- habits ---
    op.create_table(
        "habits",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(128), nullable=False),
        sa.Column("color", sa.String(32), nullable=False, server_default="#22c55e"),
        sa.Column("target_per_week", sa.Integer(), nullable=False, server_default="7"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "target_per_week BETWEEN 1 AND 7",
            name="ck_habits_target_per_week",
        ),
    )
    op.create_index("ix_habits_id", "habits", ["id"])

    # --- habit_logs (duplicates allowed; the analyzer deduplicates) ---
    op.create_table(
        "habit_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("habit_id", sa.Integer(), nullable=False),
        sa.Column("completed_date", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["habit_id"], ["habits.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_habit_logs_id", "habit_logs", ["id"])
    op.create_index("ix_habit_logs_habit_id", "habit_logs", ["habit_id"])
    op.create_index("ix_habit_logs_completed_date", "habit_logs", ["completed_date"])


def downgrade() -> None:
    op.drop_table("habit_logs")
    op.drop_table("habits")
    op.drop_table("recurring_transactions")

    op.execute("DROP TYPE IF EXISTS recurring_tx_type_enum")
