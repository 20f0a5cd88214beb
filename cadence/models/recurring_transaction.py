from datetime import datetime, date
from sqlalchemy import Integer, String, Text, Numeric, Boolean, DateTime, Date, Enum, func
from sqlalchemy.orm import Mapped, mapped_column
from decimal import Decimal
import enum

from cadence.db.base import Base


class TransactionType(str, enum.Enum):
    earning = "earning"
    expense = "expense"


class RecurringTransaction(Base):
    """
    Recurring income/expense rule maintained by the finance admin screen.

    `frequency` holds one of the Frequency values in
    cadence/services/recurrence.py; `occurrence_day` is a weekday index
    (0 = Sunday) for weekly / bi-weekly rules and a day-of-month for
    monthly ones.
    """

    __tablename__ = "recurring_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    description: Mapped[str] = mapped_column(String(256), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    tx_type: Mapped[str] = mapped_column(
        Enum(TransactionType, name="recurring_tx_type_enum"),
        nullable=False,
        default=TransactionType.expense,
    )
    category: Mapped[str | None] = mapped_column(String(64), nullable=True)
    frequency: Mapped[str] = mapped_column(String(16), nullable=False)
    occurrence_day: Mapped[int | None] = mapped_column(Integer, nullable=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    # last occurrence already logged as a transaction; forecasts resume after it
    last_processed_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
