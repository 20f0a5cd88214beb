"""
Recurrence router.

POST /recurrence/expand                        — expand an ad-hoc rule over a window
POST /recurrence/next                          — single step from a cursor
GET  /recurrence/rules/{rule_id}/occurrences   — expand a persisted rule
GET  /recurrence/rules/{rule_id}/upcoming      — pending occurrences of a persisted rule
GET  /recurrence/upcoming                      — forecast across all active rules
GET  /recurrence/cash-flow                     — daily running balance of the forecast
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from cadence.core.config import settings
from cadence.core.errors import RuleNotFoundError
from cadence.db.base import get_db
from cadence.models.recurring_transaction import RecurringTransaction
from cadence.schemas.common import ENGINE_ERROR_RESPONSES
from cadence.schemas.recurrence import (
    CashFlowDayOut,
    CashFlowResponse,
    ExpandRequest,
    ExpandResponse,
    NextRequest,
    NextResponse,
    RuleOut,
    RuleUpcomingResponse,
    ScheduledItem,
    UpcomingItem,
    UpcomingResponse,
)
from cadence.services.calendar_dates import format_calendar_date, parse_calendar_date
from cadence.services.cash_flow import CashFlowEntry, project_cash_flow, signed_amount
from cadence.services.recurrence import (
    OccurrenceSeries,
    RecurringRule,
    expand,
    forecast,
    next_occurrence,
    upcoming_occurrences,
)

router = APIRouter(prefix="/recurrence", tags=["recurrence"])


def _today() -> date:
    return datetime.now(tz=timezone.utc).date()


def _ev(v) -> str:
    """Extract bare string value from a str-enum or plain str."""
    return v.value if hasattr(v, "value") else str(v)


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def _rule_from_payload(payload) -> RecurringRule:
    return RecurringRule.build(
        frequency=payload.frequency,
        start_date=payload.start_date,
        occurrence_day=payload.occurrence_day,
        end_date=payload.end_date,
    )


def _series_to_response(series: OccurrenceSeries) -> ExpandResponse:
    days = [format_calendar_date(d) for d in series]
    return ExpandResponse(
        rule=RuleOut(**series.rule.to_dict()),
        range_start=format_calendar_date(series.range_start),
        range_end=format_calendar_date(series.range_end),
        count=len(days),
        occurrences=days,
    )


def _load_rule(db: Session, rule_id: int) -> RecurringTransaction:
    record = db.get(RecurringTransaction, rule_id)
    if record is None:
        raise RuleNotFoundError(rule_id)
    return record


def _active_rules(db: Session) -> list[RecurringTransaction]:
    return (
        db.query(RecurringTransaction)
        .filter(RecurringTransaction.is_active == True)  # noqa
        .order_by(RecurringTransaction.id)
        .all()
    )


# ---------------------------------------------------------------------------
# POST /recurrence/expand
# ---------------------------------------------------------------------------

@router.post(
    "/expand",
    response_model=ExpandResponse,
    summary="Expand a recurring rule into dates",
    responses=ENGINE_ERROR_RESPONSES,
)
def expand_rule(payload: ExpandRequest):
    """
    Return every occurrence of the rule inside `[range_start, range_end]`
    (both inclusive), also bounded by the rule's own `start_date` / `end_date`.

    The rule's `start_date` is always its first occurrence. Monthly anchors
    beyond a month's length clamp to that month's last day. Windows wider
    than `MAX_EXPANSION_SPAN_DAYS` are rejected with `INVALID_RANGE`.
    """
    rule = _rule_from_payload(payload)
    series = expand(
        rule, payload.range_start, payload.range_end,
        max_span_days=settings.MAX_EXPANSION_SPAN_DAYS,
    )
    return _series_to_response(series)


# ---------------------------------------------------------------------------
# POST /recurrence/next
# ---------------------------------------------------------------------------

@router.post(
    "/next",
    response_model=NextResponse,
    summary="Next occurrence after a cursor date",
    responses=ENGINE_ERROR_RESPONSES,
)
def next_rule_occurrence(payload: NextRequest):
    """Advance one step. "Next" is strict: a cursor on the anchor weekday moves a full cycle."""
    rule = _rule_from_payload(payload)
    following = next_occurrence(payload.cursor, rule)
    return NextResponse(cursor=payload.cursor, next_occurrence=format_calendar_date(following))


# ---------------------------------------------------------------------------
# GET /recurrence/rules/{rule_id}/occurrences
# ---------------------------------------------------------------------------

@router.get(
    "/rules/{rule_id}/occurrences",
    response_model=ExpandResponse,
    summary="Expand a stored recurring transaction",
    responses={404: {"description": "Rule not found."}, **ENGINE_ERROR_RESPONSES},
)
def rule_occurrences(
    rule_id: int,
    range_start: str = Query(description="Window start (YYYY-MM-DD).", examples=["2024-01-01"]),
    range_end: str = Query(description="Window end (YYYY-MM-DD).", examples=["2024-03-31"]),
    db: Session = Depends(get_db),
):
    """The rule's full schedule in the window, processed occurrences included."""
    rule = RecurringRule.from_record(_load_rule(db, rule_id))
    series = expand(rule, range_start, range_end, max_span_days=settings.MAX_EXPANSION_SPAN_DAYS)
    return _series_to_response(series)


# ---------------------------------------------------------------------------
# GET /recurrence/rules/{rule_id}/upcoming
# ---------------------------------------------------------------------------

@router.get(
    "/rules/{rule_id}/upcoming",
    response_model=RuleUpcomingResponse,
    summary="Pending occurrences of a stored recurring transaction",
    responses={404: {"description": "Rule not found."}, **ENGINE_ERROR_RESPONSES},
)
def rule_upcoming(
    rule_id: int,
    as_of: Optional[str] = Query(default=None, description="Reference day (YYYY-MM-DD)."),
    days: Optional[int] = Query(default=None, ge=0, le=366, description="Look-ahead in days."),
    look_behind: Optional[int] = Query(default=None, ge=0, le=366),
    db: Session = Depends(get_db),
):
    """
    Occurrences after the rule's `last_processed_date`, tagged
    `overdue` / `due` / `upcoming` relative to `as_of`.
    """
    record = _load_rule(db, rule_id)
    reference = parse_calendar_date(as_of, "as_of") if as_of is not None else _today()
    scheduled = upcoming_occurrences(
        RecurringRule.from_record(record),
        reference,
        look_behind_days=settings.FORECAST_LOOK_BEHIND_DAYS if look_behind is None else look_behind,
        look_ahead_days=settings.FORECAST_HORIZON_DAYS if days is None else days,
        last_processed_date=record.last_processed_date,
    )
    return RuleUpcomingResponse(
        rule_id=record.id,
        as_of=format_calendar_date(reference),
        last_processed_date=(
            format_calendar_date(record.last_processed_date)
            if record.last_processed_date else None
        ),
        items=[
            ScheduledItem(date=format_calendar_date(s.day), status=_ev(s.status))
            for s in scheduled
        ],
    )


# ---------------------------------------------------------------------------
# GET /recurrence/upcoming
# ---------------------------------------------------------------------------

@router.get(
    "/upcoming",
    response_model=UpcomingResponse,
    summary="Projected occurrences of all active recurring transactions",
    responses=ENGINE_ERROR_RESPONSES,
)
def upcoming(
    as_of: Optional[str] = Query(
        default=None,
        description="Reference day (YYYY-MM-DD). Defaults to today (UTC).",
        examples=["2026-02-21"],
    ),
    days: Optional[int] = Query(default=None, ge=0, le=366, description="Look-ahead in days."),
    look_behind: Optional[int] = Query(
        default=None, ge=0, le=366, description="Include overdue items this many days back."
    ),
    db: Session = Depends(get_db),
):
    """
    Forecast every active rule over `[as_of - look_behind, as_of + days]`.

    Each rule resumes after its `last_processed_date`, so only pending
    occurrences are listed. Items are ordered by date and tagged `overdue`,
    `due` or `upcoming`. A rule whose stored data cannot be expanded is
    reported in `failed_rule_ids` instead of failing the whole request.
    """
    records = _active_rules(db)
    by_id = {r.id: r for r in records}
    result = forecast(
        ((r.id, r) for r in records),
        as_of=as_of or _today(),
        horizon_days=settings.FORECAST_HORIZON_DAYS if days is None else days,
        look_behind_days=settings.FORECAST_LOOK_BEHIND_DAYS if look_behind is None else look_behind,
    )

    items = []
    for item in result.items:
        record = by_id[item.key]
        items.append(UpcomingItem(
            rule_id=record.id,
            description=record.description,
            amount=str(record.amount),
            tx_type=_ev(record.tx_type),
            category=record.category,
            date=format_calendar_date(item.day),
            status=_ev(item.status),
        ))
    return UpcomingResponse(
        as_of=format_calendar_date(result.as_of),
        window_start=format_calendar_date(result.window_start),
        window_end=format_calendar_date(result.window_end),
        total=len(items),
        items=items,
        failed_rule_ids=sorted(result.failures),
    )


# ---------------------------------------------------------------------------
# GET /recurrence/cash-flow
# ---------------------------------------------------------------------------

@router.get(
    "/cash-flow",
    response_model=CashFlowResponse,
    summary="Daily running balance of projected recurring transactions",
    responses=ENGINE_ERROR_RESPONSES,
)
def cash_flow(
    as_of: Optional[str] = Query(default=None, description="First projected day (YYYY-MM-DD)."),
    days: Optional[int] = Query(default=None, ge=0, le=366, description="Days after as_of."),
    opening_balance: Decimal = Query(default=Decimal("0"), description="Balance before as_of."),
    db: Session = Depends(get_db),
):
    """
    One row per day of `[as_of, as_of + days]` with the net change of the
    pending occurrences due that day and the balance carried forward.
    """
    records = _active_rules(db)
    by_id = {r.id: r for r in records}
    result = forecast(
        ((r.id, r) for r in records),
        as_of=as_of or _today(),
        horizon_days=settings.FORECAST_HORIZON_DAYS if days is None else days,
    )

    entries = []
    for item in result.items:
        record = by_id[item.key]
        amount = signed_amount(record.amount, _ev(record.tx_type))
        entries.append(CashFlowEntry(
            day=item.day,
            amount=amount,
            label=f"{amount:+.2f}: {record.description}",
        ))
    rows = project_cash_flow(entries, result.window_start, result.window_end, opening_balance)

    return CashFlowResponse(
        as_of=format_calendar_date(result.as_of),
        opening_balance=str(opening_balance),
        closing_balance=str(rows[-1].balance),
        days=[
            CashFlowDayOut(
                date=format_calendar_date(r.day),
                change=str(r.change),
                balance=str(r.balance),
                events=list(r.events),
            )
            for r in rows
        ],
        failed_rule_ids=sorted(result.failures),
    )
