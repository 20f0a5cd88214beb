"""
Custom exception hierarchy for Cadence.

Rule: every error has a machine-readable `code` string so callers can
branch on it without parsing English messages. Engine errors are scoped to
the single rule or habit being processed; none of them is fatal to the
process.
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class CadenceException(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(CadenceException):
    """Malformed date input, invalid range, or invalid rule/habit field."""
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_INPUT"

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any = None,
        details: dict[str, Any] | None = None,
    ):
        payload: dict[str, Any] = {}
        if field is not None:
            payload["field"] = field
            payload["value"] = None if value is None else str(value)
        payload.update(details or {})
        self.field = field
        super().__init__(message=message, details=payload)


class InvalidRangeError(ValidationError):
    code = "INVALID_RANGE"

    def __init__(self, range_start, range_end, max_span_days: int | None = None):
        details = {"range_start": str(range_start), "range_end": str(range_end)}
        if max_span_days is None:
            message = f"range_end {range_end} is before range_start {range_start}."
        else:
            message = f"Range {range_start}..{range_end} spans more than {max_span_days} days."
            details["max_span_days"] = max_span_days
        super().__init__(message=message, details=details)


class NonTerminationGuardError(CadenceException):
    """
    The expansion walk hit its iteration ceiling or stopped advancing.
    Signals a calendar-arithmetic defect or inconsistent rule data, never a
    genuinely infinite schedule.
    """
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "NON_TERMINATION_GUARD"

    def __init__(self, message: str, rule: dict[str, Any], ceiling: int):
        super().__init__(
            message=message,
            details={"rule": rule, "ceiling": ceiling},
        )


class RuleNotFoundError(CadenceException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "RULE_NOT_FOUND"

    def __init__(self, rule_id: int):
        super().__init__(
            message=f"Recurring rule {rule_id} does not exist.",
            details={"rule_id": rule_id},
        )


class HabitNotFoundError(CadenceException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "HABIT_NOT_FOUND"

    def __init__(self, habit_id: int):
        super().__init__(
            message=f"Habit {habit_id} does not exist.",
            details={"habit_id": habit_id},
        )


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def cadence_exception_handler(request: Request, exc: CadenceException) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = []
    for error in exc.errors():
        field_errors.append({
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": field_errors},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
