"""
Habits router — consistency metrics over the habit log.

POST /habits/stats                 — stats for an ad-hoc completion log
GET  /habits/perfect-day           — every active habit done on a day?
GET  /habits/{habit_id}/stats      — streak, 14-day rate, weekly progress
GET  /habits/{habit_id}/heatmap    — yearly done/missed/future grid
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from cadence.core.errors import HabitNotFoundError
from cadence.db.base import get_db
from cadence.models.habit import Habit
from cadence.schemas.common import ENGINE_ERROR_RESPONSES
from cadence.schemas.habits import (
    HabitDetailStatsResponse,
    HabitStatsRequest,
    HabitStatsResponse,
    HeatmapCellResponse,
    HeatmapResponse,
    PerfectDayResponse,
    WeeklyProgressResponse,
)
from cadence.services.calendar_dates import format_calendar_date, parse_calendar_date
from cadence.services.consistency import (
    HabitSnapshot,
    HeatmapStatus,
    calculate_habit_stats,
    is_perfect_day,
    weekly_progress,
    yearly_heatmap,
)

router = APIRouter(prefix="/habits", tags=["habits"])


def _today() -> date:
    return datetime.now(tz=timezone.utc).date()


def _as_of(raw: Optional[str]) -> date:
    return parse_calendar_date(raw, "as_of") if raw is not None else _today()


def _load_habit(db: Session, habit_id: int) -> Habit:
    habit = db.get(Habit, habit_id)
    if habit is None:
        raise HabitNotFoundError(habit_id)
    return habit


# ---------------------------------------------------------------------------
# POST /habits/stats
# ---------------------------------------------------------------------------

@router.post(
    "/stats",
    response_model=HabitStatsResponse,
    summary="Streak and completion rate for a completion log",
    responses=ENGINE_ERROR_RESPONSES,
)
def habit_stats_adhoc(payload: HabitStatsRequest):
    """
    Compute metrics for a log supplied in the body.

    - **streak** — consecutive days ending today or yesterday.
    - **completion_rate** — distinct days done in the trailing 14, as a percent.
    """
    as_of = _as_of(payload.as_of)
    snapshot = HabitSnapshot.build(
        habit_id=None,
        target_per_week=payload.target_per_week,
        completed_dates=payload.completed_dates,
    )
    stats = calculate_habit_stats(snapshot, as_of)
    return HabitStatsResponse(
        as_of=format_calendar_date(as_of),
        streak=stats.streak,
        completion_rate=stats.completion_rate,
    )


# ---------------------------------------------------------------------------
# GET /habits/perfect-day
# ---------------------------------------------------------------------------

@router.get(
    "/perfect-day",
    response_model=PerfectDayResponse,
    summary="Whether every active habit was completed on a day",
    responses=ENGINE_ERROR_RESPONSES,
)
def perfect_day(
    day: Optional[str] = Query(
        default=None,
        description="Day to check (YYYY-MM-DD). Defaults to today (UTC).",
        examples=["2026-02-21"],
    ),
    db: Session = Depends(get_db),
):
    target = parse_calendar_date(day, "day") if day is not None else _today()
    habits = db.query(Habit).filter(Habit.is_active == True).all()  # noqa
    snapshots = [HabitSnapshot.from_record(h) for h in habits]
    completed = sum(1 for s in snapshots if target in s.completed_dates)
    return PerfectDayResponse(
        day=format_calendar_date(target),
        is_perfect=is_perfect_day(snapshots, target),
        active_habits=len(snapshots),
        completed_habits=completed,
    )


# ---------------------------------------------------------------------------
# GET /habits/{habit_id}/stats
# ---------------------------------------------------------------------------

@router.get(
    "/{habit_id}/stats",
    response_model=HabitDetailStatsResponse,
    summary="Consistency metrics for a stored habit",
    responses={404: {"description": "Habit not found."}, **ENGINE_ERROR_RESPONSES},
)
def habit_stats(
    habit_id: int,
    as_of: Optional[str] = Query(
        default=None,
        description="Reference day (YYYY-MM-DD). Defaults to today (UTC).",
    ),
    db: Session = Depends(get_db),
):
    """Recomputed from the current log on every call; nothing is cached."""
    habit = _load_habit(db, habit_id)
    reference = _as_of(as_of)
    snapshot = HabitSnapshot.from_record(habit)
    stats = calculate_habit_stats(snapshot, reference)
    progress = weekly_progress(snapshot, reference)
    return HabitDetailStatsResponse(
        habit_id=habit.id,
        title=habit.title,
        as_of=format_calendar_date(reference),
        streak=stats.streak,
        completion_rate=stats.completion_rate,
        weekly_progress=WeeklyProgressResponse(
            completed=progress.completed,
            target=progress.target,
            percent=progress.percent,
        ),
    )


# ---------------------------------------------------------------------------
# GET /habits/{habit_id}/heatmap
# ---------------------------------------------------------------------------

@router.get(
    "/{habit_id}/heatmap",
    response_model=HeatmapResponse,
    summary="Yearly consistency grid for a stored habit",
    responses={404: {"description": "Habit not found."}, **ENGINE_ERROR_RESPONSES},
)
def habit_heatmap(
    habit_id: int,
    year: Optional[int] = Query(default=None, ge=1, le=9999, description="Defaults to as_of's year."),
    as_of: Optional[str] = Query(default=None, description="Days after this are `future`."),
    db: Session = Depends(get_db),
):
    habit = _load_habit(db, habit_id)
    reference = _as_of(as_of)
    cells = yearly_heatmap(HabitSnapshot.from_record(habit), year or reference.year, reference)
    return HeatmapResponse(
        habit_id=habit.id,
        year=year or reference.year,
        done_days=sum(1 for c in cells if c.status == HeatmapStatus.done),
        cells=[HeatmapCellResponse(date=format_calendar_date(c.day), status=c.status.value) for c in cells],
    )
