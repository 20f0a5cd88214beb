"""
Consistency Analyzer — streak and completion metrics for a habit.

Definitions
-----------
Completion rate
    Distinct completion dates inside the 14-day trailing window
    [as_of - 13, as_of], as a rounded percentage of 14, capped at 100.

Streak
    Walks the whole log newest first. A newest completion older than the
    day before as_of means streak 0; otherwise 1 plus one per consecutive
    one-day step. A completion dated after as_of keeps the streak alive and
    is counted like any other.

The log is a set of calendar dates: duplicates collapse on input and
never count twice. The rate window ends on as_of, so later completions
only ever affect the streak.

Public API
----------
calculate_habit_stats(habit, as_of)   -> HabitStats
weekly_progress(habit, as_of)         -> WeeklyProgress
yearly_heatmap(habit, year, as_of)    -> list[HeatmapCell]
is_perfect_day(habits, day)           -> bool
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Hashable, Iterable, Union

from cadence.core.errors import ValidationError
from cadence.services.calendar_dates import clamp_add_days, days_between, parse_calendar_date

TRAILING_WINDOW_DAYS = 14
PROGRESS_WINDOW_DAYS = 7


# ---------------------------------------------------------------------------
# Input / result types (plain dataclasses — no ORM, no Pydantic)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class HabitSnapshot:
    id: Hashable
    target_per_week: int
    completed_dates: frozenset[date]

    @classmethod
    def build(
        cls,
        habit_id: Hashable,
        target_per_week: int,
        completed_dates: Iterable[Union[date, str]],
    ) -> "HabitSnapshot":
        if isinstance(target_per_week, bool) or not isinstance(target_per_week, int) \
                or not 1 <= target_per_week <= 7:
            raise ValidationError(
                "target_per_week must be an integer between 1 and 7.",
                field="target_per_week",
                value=target_per_week,
            )
        days = set()
        for index, raw in enumerate(completed_dates):
            try:
                days.add(parse_calendar_date(raw, "completed_date"))
            except ValidationError as exc:
                raise ValidationError(
                    f"Habit log entry {index} is not a valid YYYY-MM-DD date.",
                    field="completed_date",
                    value=raw,
                    details={"habit_id": habit_id, "index": index},
                ) from exc
        return cls(id=habit_id, target_per_week=target_per_week, completed_dates=frozenset(days))

    @classmethod
    def from_record(cls, habit: Any) -> "HabitSnapshot":
        """Build from an ORM Habit with its `logs` relationship loaded."""
        return cls.build(
            habit_id=habit.id,
            target_per_week=habit.target_per_week,
            completed_dates=[log.completed_date for log in habit.logs],
        )


@dataclass(frozen=True)
class HabitStats:
    streak: int
    completion_rate: int   # 0 – 100


@dataclass(frozen=True)
class WeeklyProgress:
    completed: int         # distinct days in [as_of - 6, as_of]
    target: int            # target_per_week
    percent: int           # 0 – 100


class HeatmapStatus(str, enum.Enum):
    done = "done"
    missed = "missed"
    future = "future"


@dataclass(frozen=True)
class HeatmapCell:
    day: date
    status: HeatmapStatus


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _percent(count: int, total: int) -> int:
    raw = Decimal(count) / Decimal(total) * 100
    return min(int(raw.quantize(Decimal("1"), rounding=ROUND_HALF_UP)), 100)


def _newest_first(habit: HabitSnapshot) -> list[date]:
    return sorted(habit.completed_dates, reverse=True)


def _count_between(days: Iterable[date], first: date, last: date) -> int:
    return sum(1 for d in days if first <= d <= last)


def _streak(newest_first: list[date], as_of: date) -> int:
    if not newest_first:
        return 0
    if days_between(as_of, newest_first[0]) > 1:
        return 0
    streak = 1
    for current, older in zip(newest_first, newest_first[1:]):
        gap = days_between(current, older)
        if gap == 1:
            streak += 1
        elif gap == 0:
            continue
        else:
            break
    return streak


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------

def calculate_habit_stats(habit: HabitSnapshot, as_of: Union[date, str]) -> HabitStats:
    """Current streak and 14-day completion rate as of the given day."""
    today = parse_calendar_date(as_of, "as_of")
    if not habit.completed_dates:
        return HabitStats(streak=0, completion_rate=0)

    window_start = clamp_add_days(today, -(TRAILING_WINDOW_DAYS - 1))
    in_window = _count_between(habit.completed_dates, window_start, today)

    return HabitStats(
        streak=_streak(_newest_first(habit), today),
        completion_rate=_percent(in_window, TRAILING_WINDOW_DAYS),
    )


def weekly_progress(habit: HabitSnapshot, as_of: Union[date, str]) -> WeeklyProgress:
    """Completions in the trailing 7 days measured against target_per_week."""
    today = parse_calendar_date(as_of, "as_of")
    window_start = clamp_add_days(today, -(PROGRESS_WINDOW_DAYS - 1))
    completed = _count_between(habit.completed_dates, window_start, today)
    return WeeklyProgress(
        completed=completed,
        target=habit.target_per_week,
        percent=_percent(completed, habit.target_per_week),
    )


def yearly_heatmap(
    habit: HabitSnapshot,
    year: int,
    as_of: Union[date, str],
) -> list[HeatmapCell]:
    """One cell per calendar day of `year`, oldest first."""
    today = parse_calendar_date(as_of, "as_of")
    if not 1 <= year <= 9999:
        raise ValidationError("year is out of range.", field="year", value=year)

    cells = []
    first = date(year, 1, 1)
    for offset in range(days_between(date(year, 12, 31), first) + 1):
        day = first + timedelta(days=offset)
        if day > today:
            status = HeatmapStatus.future
        elif day in habit.completed_dates:
            status = HeatmapStatus.done
        else:
            status = HeatmapStatus.missed
        cells.append(HeatmapCell(day=day, status=status))
    return cells


def is_perfect_day(habits: Iterable[HabitSnapshot], day: Union[date, str]) -> bool:
    """True when there is at least one habit and every habit was completed on `day`."""
    target = parse_calendar_date(day, "day")
    snapshots = list(habits)
    if not snapshots:
        return False
    return all(target in h.completed_dates for h in snapshots)
