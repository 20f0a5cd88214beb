"""
Recurrence Expander — turns a recurring rule into concrete calendar dates.

Frequencies
-----------
  daily      cursor + 1 day
  weekly     next date strictly after cursor on the anchor weekday,
             or cursor + 7 days when unanchored
  bi-weekly  same weekday search, started from cursor + 7 days
             (14-day cadence), or cursor + 14 days when unanchored
  monthly    cursor + 1 month (clamped), then the anchor day-of-month is
             forced, clamped to the month's last day
  yearly     cursor + 1 year (Feb 29 clamps to Feb 28)

Month overflow
--------------
An anchor of 31 applied to a 28/29/30-day month lands on that month's last
day (2024-01-31 -> 2024-02-29 -> 2024-03-31). It never rolls over into the
following month, and because the anchor is re-applied every step, a short
month does not drag later occurrences earlier.

Termination
-----------
Every expansion walk is bounded by an explicit ceiling: the number of days
between the rule's start and the stop date, plus EXPANSION_CEILING_MARGIN.
Daily is the densest frequency, so a correct rule can never reach it. A
cursor that fails to advance, or a walk that reaches the ceiling, raises
NonTerminationGuardError and is logged as a defect.

A step that would leave the representable calendar (past 9999-12-31) ends
the sequence normally.

Resuming
--------
A rule that has already been processed up to some day resumes from the
occurrence after it: `expand(..., resume_after=last_processed_date)` starts
the walk at next_occurrence(last_processed_date) instead of start_date.
A resume day before start_date is ignored.

Pure functions only: no DB, no clock. "Today" is always passed in.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Hashable, Iterable, Iterator, Mapping, Optional, Union

from cadence.core.errors import (
    InvalidRangeError,
    NonTerminationGuardError,
    ValidationError,
)
from cadence.services.calendar_dates import (
    add_days,
    add_months,
    add_weeks,
    add_years,
    clamp_add_days,
    days_between,
    next_weekday,
    parse_calendar_date,
    with_day_of_month,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

class Frequency(str, enum.Enum):
    daily = "daily"
    weekly = "weekly"
    bi_weekly = "bi-weekly"
    monthly = "monthly"
    yearly = "yearly"


class OccurrenceStatus(str, enum.Enum):
    overdue = "overdue"
    due = "due"
    upcoming = "upcoming"


# Valid anchor range per frequency; frequencies not listed ignore the anchor.
_ANCHOR_BOUNDS: dict[Frequency, tuple[int, int]] = {
    Frequency.weekly: (0, 6),
    Frequency.bi_weekly: (0, 6),
    Frequency.monthly: (1, 31),
}

EXPANSION_CEILING_MARGIN = 2


# ---------------------------------------------------------------------------
# Rule
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RecurringRule:
    frequency: Frequency
    start_date: date
    occurrence_day: Optional[int] = None
    end_date: Optional[date] = None

    @classmethod
    def build(
        cls,
        frequency: Union[Frequency, str],
        start_date: Union[date, str],
        occurrence_day: Union[int, str, None] = None,
        end_date: Union[date, str, None] = None,
    ) -> "RecurringRule":
        """Validate raw field values and return an immutable rule."""
        freq = _parse_frequency(frequency)
        start = parse_calendar_date(start_date, "start_date")
        end = parse_calendar_date(end_date, "end_date") if end_date is not None else None
        if end is not None and end < start:
            raise ValidationError(
                f"end_date {end} is before start_date {start}.",
                field="end_date",
                value=end,
                details={"start_date": str(start)},
            )
        return cls(
            frequency=freq,
            start_date=start,
            occurrence_day=_parse_anchor(freq, occurrence_day),
            end_date=end,
        )

    @classmethod
    def from_record(cls, record: Any) -> "RecurringRule":
        """Build from any object exposing the rule columns (e.g. an ORM row)."""
        return cls.build(
            frequency=record.frequency,
            start_date=record.start_date,
            occurrence_day=record.occurrence_day,
            end_date=record.end_date,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "frequency": self.frequency.value,
            "start_date": str(self.start_date),
            "occurrence_day": self.occurrence_day,
            "end_date": str(self.end_date) if self.end_date else None,
        }


def _parse_frequency(value: Union[Frequency, str]) -> Frequency:
    try:
        return Frequency(value)
    except ValueError:
        raise ValidationError(
            f"frequency must be one of {', '.join(f.value for f in Frequency)}.",
            field="frequency",
            value=value,
        ) from None


def _parse_anchor(freq: Frequency, value: Union[int, str, None]) -> Optional[int]:
    if freq not in _ANCHOR_BOUNDS or value is None or value == "":
        return None
    if isinstance(value, bool):
        anchor = None
    elif isinstance(value, int):
        anchor = value
    else:
        try:
            anchor = int(str(value).strip())
        except ValueError:
            anchor = None
    low, high = _ANCHOR_BOUNDS[freq]
    if anchor is None or not low <= anchor <= high:
        raise ValidationError(
            f"occurrence_day for a {freq.value} rule must be between {low} and {high}.",
            field="occurrence_day",
            value=value,
        )
    return anchor


def _coerce_rule(rule: Union[RecurringRule, Mapping[str, Any]]) -> RecurringRule:
    """Re-validate rule input so a hand-built rule with raw strings still fails cleanly."""
    if isinstance(rule, Mapping):
        return RecurringRule.build(
            frequency=rule.get("frequency"),
            start_date=rule.get("start_date"),
            occurrence_day=rule.get("occurrence_day"),
            end_date=rule.get("end_date"),
        )
    if isinstance(rule.start_date, date) and (
        rule.end_date is None or isinstance(rule.end_date, date)
    ) and isinstance(rule.frequency, Frequency):
        return rule
    return RecurringRule.from_record(rule)


# ---------------------------------------------------------------------------
# next_occurrence
# ---------------------------------------------------------------------------

def _weekday_anchor(rule: RecurringRule) -> Optional[int]:
    day = rule.occurrence_day
    if day is not None and 0 <= day <= 6:
        return day
    return None


def _month_anchor(rule: RecurringRule) -> Optional[int]:
    day = rule.occurrence_day
    if day is not None and 1 <= day <= 31:
        return day
    return None


def next_occurrence(cursor: Union[date, str], rule: RecurringRule) -> date:
    """Return the occurrence that follows `cursor` under `rule.frequency`."""
    current = parse_calendar_date(cursor, "cursor")
    freq = rule.frequency

    if freq == Frequency.daily:
        return add_days(current, 1)

    if freq == Frequency.weekly:
        anchor = _weekday_anchor(rule)
        if anchor is not None:
            return next_weekday(current, anchor)
        return add_weeks(current, 1)

    if freq == Frequency.bi_weekly:
        anchor = _weekday_anchor(rule)
        if anchor is not None:
            return next_weekday(add_weeks(current, 1), anchor)
        return add_weeks(current, 2)

    if freq == Frequency.monthly:
        candidate = add_months(current, 1)
        anchor = _month_anchor(rule)
        if anchor is not None:
            candidate = with_day_of_month(candidate, anchor)
        return candidate

    if freq == Frequency.yearly:
        return add_years(current, 1)

    raise ValidationError(
        f"Unsupported frequency {freq!r}.", field="frequency", value=freq
    )


# ---------------------------------------------------------------------------
# expand
# ---------------------------------------------------------------------------

def expansion_ceiling(start: date, stop: date) -> int:
    """Maximum number of cursor steps a walk from `start` to `stop` may take."""
    return max(days_between(stop, start), 0) + EXPANSION_CEILING_MARGIN


def _guard(rule: RecurringRule, ceiling: int, reason: str) -> NonTerminationGuardError:
    logger.error(
        "Recurrence expansion aborted (%s): rule=%s ceiling=%d",
        reason, rule.to_dict(), ceiling,
    )
    return NonTerminationGuardError(
        message=f"Recurrence expansion aborted: {reason}.",
        rule=rule.to_dict(),
        ceiling=ceiling,
    )


def _first_cursor(rule: RecurringRule, resume_after: Optional[date]) -> date:
    if resume_after is None or resume_after < rule.start_date:
        return rule.start_date
    return next_occurrence(resume_after, rule)


def _walk(
    rule: RecurringRule,
    range_start: date,
    range_end: date,
    resume_after: Optional[date] = None,
) -> Iterator[date]:
    stop = range_end if rule.end_date is None else min(range_end, rule.end_date)
    try:
        cursor = _first_cursor(rule, resume_after)
    except (OverflowError, ValueError):
        return
    if stop < cursor:
        return

    ceiling = expansion_ceiling(cursor, stop)
    steps = 0
    while cursor <= stop:
        if cursor >= range_start:
            yield cursor
        try:
            following = next_occurrence(cursor, rule)
        except (OverflowError, ValueError):
            # no representable date after cursor
            return
        steps += 1
        if following <= cursor:
            raise _guard(rule, ceiling, f"cursor did not advance past {cursor}")
        if steps > ceiling:
            raise _guard(rule, ceiling, f"iteration ceiling {ceiling} reached")
        cursor = following


class OccurrenceSeries:
    """
    Lazily generated, restartable sequence of occurrence dates.

    Each iteration starts a fresh walk from the rule's start date, so the
    series can be consumed any number of times with identical results.
    """

    def __init__(
        self,
        rule: RecurringRule,
        range_start: date,
        range_end: date,
        resume_after: Optional[date] = None,
    ):
        self.rule = rule
        self.range_start = range_start
        self.range_end = range_end
        self.resume_after = resume_after

    def __iter__(self) -> Iterator[date]:
        return _walk(self.rule, self.range_start, self.range_end, self.resume_after)

    def to_list(self) -> list[date]:
        return list(self)

    def first(self) -> Optional[date]:
        return next(iter(self), None)

    def count(self) -> int:
        return sum(1 for _ in self)

    def __repr__(self) -> str:
        return (
            f"OccurrenceSeries({self.rule.frequency.value}, "
            f"{self.range_start}..{self.range_end})"
        )


def expand(
    rule: Union[RecurringRule, Mapping[str, Any]],
    range_start: Union[date, str],
    range_end: Union[date, str],
    resume_after: Union[date, str, None] = None,
    max_span_days: Optional[int] = None,
) -> OccurrenceSeries:
    """
    Occurrences of `rule` inside [range_start, range_end], both inclusive.

    Input is validated eagerly (ValidationError / InvalidRangeError); the
    dates themselves are produced lazily. `resume_after` is the rule's last
    processed day; `max_span_days` caps the window size in days.
    """
    checked = _coerce_rule(rule)
    start = parse_calendar_date(range_start, "range_start")
    end = parse_calendar_date(range_end, "range_end")
    if end < start:
        raise InvalidRangeError(start, end)
    if max_span_days is not None and days_between(end, start) + 1 > max_span_days:
        raise InvalidRangeError(start, end, max_span_days=max_span_days)
    resume = (
        parse_calendar_date(resume_after, "last_processed_date")
        if resume_after is not None else None
    )
    logger.debug(
        "Expanding %s rule over %s..%s (resume after %s)",
        checked.frequency.value, start, end, resume,
    )
    return OccurrenceSeries(checked, start, end, resume)


# ---------------------------------------------------------------------------
# Upcoming schedule / multi-rule forecast
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ScheduledOccurrence:
    day: date
    status: OccurrenceStatus


@dataclass(frozen=True)
class ForecastItem:
    key: Hashable
    day: date
    status: OccurrenceStatus


@dataclass
class ForecastResult:
    as_of: date
    window_start: date
    window_end: date
    items: list[ForecastItem] = field(default_factory=list)
    failures: dict[Hashable, str] = field(default_factory=dict)  # key -> error code


def _status(day: date, as_of: date) -> OccurrenceStatus:
    if day < as_of:
        return OccurrenceStatus.overdue
    if day == as_of:
        return OccurrenceStatus.due
    return OccurrenceStatus.upcoming


def _window(as_of: date, look_behind_days: int, look_ahead_days: int) -> tuple[date, date]:
    if look_behind_days < 0:
        raise ValidationError(
            "look_behind_days must not be negative.",
            field="look_behind_days",
            value=look_behind_days,
        )
    if look_ahead_days < 0:
        raise ValidationError(
            "look_ahead_days must not be negative.",
            field="look_ahead_days",
            value=look_ahead_days,
        )
    return clamp_add_days(as_of, -look_behind_days), clamp_add_days(as_of, look_ahead_days)


def _last_processed(rule: Any) -> Any:
    if isinstance(rule, Mapping):
        return rule.get("last_processed_date")
    return getattr(rule, "last_processed_date", None)


def upcoming_occurrences(
    rule: Union[RecurringRule, Mapping[str, Any]],
    as_of: Union[date, str],
    look_behind_days: int = 7,
    look_ahead_days: int = 30,
    last_processed_date: Union[date, str, None] = None,
) -> list[ScheduledOccurrence]:
    """
    Occurrences around `as_of`, tagged overdue / due / upcoming.

    With `last_processed_date` only the occurrences after it are pending,
    so an already processed occurrence is never reported as overdue.
    """
    today = parse_calendar_date(as_of, "as_of")
    window_start, window_end = _window(today, look_behind_days, look_ahead_days)
    return [
        ScheduledOccurrence(day=d, status=_status(d, today))
        for d in expand(rule, window_start, window_end, resume_after=last_processed_date)
    ]


def forecast(
    rules: Union[Mapping[Hashable, Any], Iterable[tuple[Hashable, Any]]],
    as_of: Union[date, str],
    horizon_days: int,
    look_behind_days: int = 0,
) -> ForecastResult:
    """
    Merge the schedules of several keyed rules into one chronological list.

    Each rule resumes after its `last_processed_date` when it carries one
    (a mapping key or an attribute, as on the ORM row). A rule that fails
    validation or trips the termination guard is left out of `items` and
    reported in `failures`; the other rules still forecast normally.
    """
    today = parse_calendar_date(as_of, "as_of")
    window_start, window_end = _window(today, look_behind_days, horizon_days)
    pairs = rules.items() if isinstance(rules, Mapping) else rules

    result = ForecastResult(as_of=today, window_start=window_start, window_end=window_end)
    for key, rule in pairs:
        try:
            days = expand(
                rule, window_start, window_end, resume_after=_last_processed(rule)
            ).to_list()
        except (ValidationError, NonTerminationGuardError) as exc:
            logger.warning("Skipping rule %s in forecast: %s %s", key, exc.code, exc.message)
            result.failures[key] = exc.code
            continue
        result.items.extend(
            ForecastItem(key=key, day=d, status=_status(d, today)) for d in days
        )

    result.items.sort(key=lambda item: item.day)
    return result
