"""
Calendar-date primitives shared by the recurrence expander and the
consistency analyzer.

A calendar date is a plain `datetime.date`: no time-of-day, no timezone.
At every boundary it travels as `YYYY-MM-DD`.

Weekday indices follow the `occurrence_day` convention stored by the admin
panel: 0 = Sunday, 1 = Monday, ... 6 = Saturday.
"""
from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from typing import Any

from dateutil.relativedelta import relativedelta

from cadence.core.errors import ValidationError

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


# ---------------------------------------------------------------------------
# Parsing / formatting
# ---------------------------------------------------------------------------

def parse_calendar_date(value: Any, field: str) -> date:
    """
    Coerce `value` into a calendar date or raise ValidationError naming `field`.

    Accepts a `date` or a strict `YYYY-MM-DD` string. Timestamps are
    rejected: converting them would depend on a timezone.
    """
    if isinstance(value, datetime):
        raise ValidationError(
            f"{field} must be a calendar date without time-of-day.",
            field=field,
            value=value.isoformat(),
        )
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if _ISO_DATE_RE.match(text):
            try:
                return date.fromisoformat(text)
            except ValueError:
                pass
    raise ValidationError(
        f"{field} is not a valid YYYY-MM-DD calendar date.",
        field=field,
        value=value,
    )


def format_calendar_date(day: date) -> str:
    return day.isoformat()


# ---------------------------------------------------------------------------
# Arithmetic
# ---------------------------------------------------------------------------

def add_days(day: date, n: int) -> date:
    return day + timedelta(days=n)


def clamp_add_days(day: date, n: int) -> date:
    """add_days, pinned to date.min / date.max at the ends of the calendar."""
    try:
        return add_days(day, n)
    except OverflowError:
        return date.max if n > 0 else date.min


def add_weeks(day: date, n: int) -> date:
    return day + timedelta(weeks=n)


def add_months(day: date, n: int) -> date:
    """Jan 31 + 1 month = Feb 28/29: the day is clamped, never rolled over."""
    return day + relativedelta(months=n)


def add_years(day: date, n: int) -> date:
    """Feb 29 + 1 year = Feb 28."""
    return day + relativedelta(years=n)


def with_day_of_month(day: date, dom: int) -> date:
    """Force the day-of-month, clamped to the length of `day`'s month."""
    # relativedelta(day=N) clamps to the month's last day
    return day + relativedelta(day=dom)


def weekday_index(day: date) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return day.isoweekday() % 7


def next_weekday(day: date, weekday: int) -> date:
    """First date strictly after `day` falling on `weekday` (0 = Sunday)."""
    delta = (weekday - weekday_index(day)) % 7
    return day + timedelta(days=delta or 7)


def days_between(later: date, earlier: date) -> int:
    """Signed calendar-day difference `later - earlier`."""
    return (later - earlier).days
