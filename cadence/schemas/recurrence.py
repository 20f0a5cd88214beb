"""
Recurrence schemas.

POST /recurrence/expand                      → ExpandRequest  / ExpandResponse
POST /recurrence/next                        → NextRequest    / NextResponse
GET  /recurrence/rules/{rule_id}/occurrences → ExpandResponse
GET  /recurrence/rules/{rule_id}/upcoming    → RuleUpcomingResponse
GET  /recurrence/upcoming                    → UpcomingResponse
GET  /recurrence/cash-flow                   → CashFlowResponse

Dates are plain `YYYY-MM-DD` strings in both directions. Request dates are
validated by the engine so errors name the offending field.
"""
from typing import Optional
from pydantic import BaseModel, Field


class RuleIn(BaseModel):
    frequency: str = Field(
        description='"daily" | "weekly" | "bi-weekly" | "monthly" | "yearly"',
        examples=["monthly"],
    )
    start_date: str = Field(description="First occurrence (inclusive).", examples=["2024-01-31"])
    occurrence_day: Optional[int] = Field(
        default=None,
        description="Weekday 0–6 (0 = Sunday) for weekly/bi-weekly, day-of-month 1–31 for monthly.",
    )
    end_date: Optional[str] = Field(default=None, description="Last allowed date (inclusive).")


class RuleOut(BaseModel):
    frequency: str
    start_date: str
    occurrence_day: Optional[int] = None
    end_date: Optional[str] = None


class ExpandRequest(RuleIn):
    range_start: str = Field(examples=["2024-01-01"])
    range_end: str = Field(examples=["2024-12-31"])


class ExpandResponse(BaseModel):
    rule: RuleOut
    range_start: str
    range_end: str
    count: int
    occurrences: list[str] = Field(description="Ascending, duplicate-free.")


class NextRequest(RuleIn):
    cursor: str = Field(description="Date to advance from.", examples=["2024-03-04"])


class NextResponse(BaseModel):
    cursor: str
    next_occurrence: str


class UpcomingItem(BaseModel):
    rule_id: int
    description: str
    amount: str
    tx_type: str
    category: Optional[str] = None
    date: str
    status: str = Field(description='"overdue" | "due" | "upcoming"')


class UpcomingResponse(BaseModel):
    as_of: str
    window_start: str
    window_end: str
    total: int
    items: list[UpcomingItem]
    failed_rule_ids: list[int] = Field(
        default_factory=list,
        description="Active rules that could not be expanded (invalid data or guard trip).",
    )


class ScheduledItem(BaseModel):
    date: str
    status: str = Field(description='"overdue" | "due" | "upcoming"')


class RuleUpcomingResponse(BaseModel):
    rule_id: int
    as_of: str
    last_processed_date: Optional[str] = Field(
        default=None, description="Occurrences on or before this day are already processed."
    )
    items: list[ScheduledItem]


class CashFlowDayOut(BaseModel):
    date: str
    change: str
    balance: str
    events: list[str] = Field(default_factory=list, description='e.g. "-1200.00: Rent"')


class CashFlowResponse(BaseModel):
    as_of: str
    opening_balance: str
    closing_balance: str
    days: list[CashFlowDayOut]
    failed_rule_ids: list[int] = Field(default_factory=list)
