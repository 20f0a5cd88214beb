"""
Habit consistency schemas.

POST /habits/stats              → HabitStatsRequest / HabitStatsResponse
GET  /habits/{habit_id}/stats   → HabitDetailStatsResponse
GET  /habits/{habit_id}/heatmap → HeatmapResponse
GET  /habits/perfect-day        → PerfectDayResponse
"""
from typing import Optional
from pydantic import BaseModel, Field


class HabitStatsRequest(BaseModel):
    target_per_week: int = Field(default=7, description="Weekly goal, 1–7.")
    completed_dates: list[str] = Field(
        default_factory=list,
        description="Completion log as YYYY-MM-DD strings; order and duplicates don't matter.",
    )
    as_of: Optional[str] = Field(default=None, description="Reference day. Defaults to today (UTC).")


class HabitStatsResponse(BaseModel):
    as_of: str
    streak: int = Field(ge=0)
    completion_rate: int = Field(ge=0, le=100, description="Percent of the trailing 14 days.")


class WeeklyProgressResponse(BaseModel):
    completed: int
    target: int
    percent: int = Field(ge=0, le=100)


class HabitDetailStatsResponse(HabitStatsResponse):
    habit_id: int
    title: str
    weekly_progress: WeeklyProgressResponse


class HeatmapCellResponse(BaseModel):
    date: str
    status: str = Field(description='"done" | "missed" | "future"')


class HeatmapResponse(BaseModel):
    habit_id: int
    year: int
    done_days: int
    cells: list[HeatmapCellResponse]


class PerfectDayResponse(BaseModel):
    day: str
    is_perfect: bool
    active_habits: int
    completed_habits: int
