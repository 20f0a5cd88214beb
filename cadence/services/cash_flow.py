"""
Cash-flow projection over the recurring-transaction forecast.

Every day of the window gets the net change of the transactions scheduled
on it and the running balance carried forward from an opening balance.
Earnings add to the balance, expenses subtract from it.

Pure functions only: no DB, no clock.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Union

from cadence.core.errors import InvalidRangeError, ValidationError
from cadence.services.calendar_dates import days_between, parse_calendar_date

_SIGNS = {"earning": Decimal(1), "expense": Decimal(-1)}


@dataclass(frozen=True)
class CashFlowEntry:
    day: date
    amount: Decimal   # signed: earnings positive, expenses negative
    label: str


@dataclass(frozen=True)
class CashFlowDay:
    day: date
    change: Decimal
    balance: Decimal
    events: tuple[str, ...]


def signed_amount(amount: Union[Decimal, int, str], tx_type: str) -> Decimal:
    """Amount with the sign implied by the transaction type."""
    try:
        sign = _SIGNS[tx_type]
    except KeyError:
        raise ValidationError(
            "tx_type must be earning or expense.", field="tx_type", value=tx_type
        ) from None
    return sign * Decimal(str(amount))


def project_cash_flow(
    entries: Iterable[CashFlowEntry],
    window_start: Union[date, str],
    window_end: Union[date, str],
    opening_balance: Decimal = Decimal("0"),
) -> list[CashFlowDay]:
    """One row per day of [window_start, window_end]; entries outside it are ignored."""
    first = parse_calendar_date(window_start, "window_start")
    last = parse_calendar_date(window_end, "window_end")
    if last < first:
        raise InvalidRangeError(first, last)

    changes: dict[date, Decimal] = {}
    events: dict[date, list[str]] = {}
    for entry in entries:
        if not first <= entry.day <= last:
            continue
        changes[entry.day] = changes.get(entry.day, Decimal("0")) + entry.amount
        events.setdefault(entry.day, []).append(entry.label)

    rows = []
    balance = opening_balance
    for offset in range(days_between(last, first) + 1):
        day = first + timedelta(days=offset)
        change = changes.get(day, Decimal("0"))
        balance += change
        rows.append(CashFlowDay(
            day=day,
            change=change,
            balance=balance,
            events=tuple(events.get(day, ())),
        ))
    return rows
