"""add recurring_transactions.last_processed_date

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-18

Day of the most recent occurrence the admin panel has already logged as a
transaction. Forecasts resume from the occurrence after it.
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        "recurring_transactions",
        sa.Column("last_processed_date", sa.Date(), nullable=True),
    )


def downgrade() -> None:
    op.drop_column("recurring_transactions", "last_processed_date")
