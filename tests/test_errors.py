"""
Tests for error handling: exception classes, their envelopes, and the
HTTP status codes the API maps them to.
"""
import pytest
from datetime import date

from cadence.core.errors import (
    CadenceException,
    HabitNotFoundError,
    InvalidRangeError,
    NonTerminationGuardError,
    RuleNotFoundError,
    ValidationError,
)


# ---------------------------------------------------------------------------
# Unit tests on exception classes
# ---------------------------------------------------------------------------

class TestExceptionClasses:
    def test_validation_error_names_field(self):
        err = ValidationError("bad date", field="start_date", value="2024-02-30")
        assert err.http_status == 422
        assert err.code == "INVALID_INPUT"
        d = err.to_dict()
        assert d["details"] == {"field": "start_date", "value": "2024-02-30"}

    def test_validation_error_extra_details(self):
        err = ValidationError("bad entry", field="completed_date", value="x", details={"index": 3})
        assert err.details["index"] == 3
        assert err.details["field"] == "completed_date"

    def test_invalid_range_is_validation_error(self):
        err = InvalidRangeError(date(2024, 2, 1), date(2024, 1, 1))
        assert isinstance(err, ValidationError)
        assert err.http_status == 422
        assert err.code == "INVALID_RANGE"
        assert err.details == {"range_start": "2024-02-01", "range_end": "2024-01-01"}

    def test_invalid_range_for_oversized_window(self):
        err = InvalidRangeError(date(2024, 1, 1), date(9999, 12, 31), max_span_days=3660)
        assert err.code == "INVALID_RANGE"
        assert err.details["max_span_days"] == 3660
        assert "3660" in err.message

    def test_guard_error(self):
        err = NonTerminationGuardError("stuck", rule={"frequency": "daily"}, ceiling=12)
        assert err.http_status == 500
        assert err.code == "NON_TERMINATION_GUARD"
        assert err.details["ceiling"] == 12
        assert not isinstance(err, ValidationError)

    def test_not_found_errors(self):
        assert RuleNotFoundError(7).http_status == 404
        assert RuleNotFoundError(7).code == "RULE_NOT_FOUND"
        assert HabitNotFoundError(9).details == {"habit_id": 9}

    def test_to_dict_without_details(self):
        err = CadenceException("boom")
        d = err.to_dict()
        assert d == {"code": "INTERNAL_ERROR", "message": "boom"}
        assert "details" not in d


# ---------------------------------------------------------------------------
# Integration tests on HTTP error responses
# ---------------------------------------------------------------------------

_RULE = {"frequency": "daily", "start_date": "2024-01-01"}


class TestEngineErrorResponses:
    def test_bad_start_date_names_field(self, client):
        r = client.post("/recurrence/expand", json={
            **_RULE, "start_date": "2024-02-30",
            "range_start": "2024-01-01", "range_end": "2024-01-31",
        })
        assert r.status_code == 422
        body = r.json()
        assert body["code"] == "INVALID_INPUT"
        assert body["details"]["field"] == "start_date"

    def test_inverted_range(self, client):
        r = client.post("/recurrence/expand", json={
            **_RULE, "range_start": "2024-02-01", "range_end": "2024-01-01",
        })
        assert r.status_code == 422
        assert r.json()["code"] == "INVALID_RANGE"

    def test_bad_anchor(self, client):
        r = client.post("/recurrence/expand", json={
            "frequency": "weekly", "start_date": "2024-01-01", "occurrence_day": 7,
            "range_start": "2024-01-01", "range_end": "2024-01-31",
        })
        assert r.status_code == 422
        assert r.json()["details"]["field"] == "occurrence_day"

    def test_bad_habit_log_entry(self, client):
        r = client.post("/habits/stats", json={
            "completed_dates": ["2024-03-01", "yesterday"], "as_of": "2024-03-02",
        })
        assert r.status_code == 422
        body = r.json()
        assert body["code"] == "INVALID_INPUT"
        assert body["details"]["index"] == 1

    def test_guard_trip_returns_500_envelope(self, client, monkeypatch):
        from cadence.services import recurrence
        monkeypatch.setattr(recurrence, "next_occurrence", lambda cursor, rule: cursor)
        r = client.post("/recurrence/expand", json={
            **_RULE, "range_start": "2024-01-01", "range_end": "2024-01-10",
        })
        assert r.status_code == 500
        body = r.json()
        assert body["code"] == "NON_TERMINATION_GUARD"
        assert body["details"]["rule"]["frequency"] == "daily"


class TestRequestValidationErrors:
    def test_missing_frequency(self, client):
        r = client.post("/recurrence/expand", json={
            "start_date": "2024-01-01", "range_start": "2024-01-01", "range_end": "2024-01-31",
        })
        assert r.status_code == 422
        body = r.json()
        assert body["code"] == "VALIDATION_ERROR"
        fields = [e["field"] for e in body["details"]["errors"]]
        assert any("frequency" in f for f in fields)

    @pytest.mark.parametrize("path", [
        "/recurrence/upcoming?days=-1",
        "/habits/1/heatmap?year=0",
    ])
    def test_query_bounds(self, client, path):
        r = client.get(path)
        assert r.status_code == 422
        assert r.json()["code"] == "VALIDATION_ERROR"
