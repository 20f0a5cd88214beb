from .recurring_transaction import RecurringTransaction
from .habit import Habit, HabitLog

__all__ = [
    "RecurringTransaction",
    "Habit",
    "HabitLog",
]
