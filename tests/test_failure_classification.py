"""
Tests for the Failure Classification System.

These tests verify the core invariant:

    Every failure must be classified and explained.
    Degraded decks are successes with warnings, never failures.
"""

import logging

import pytest

from commanderforge.models.failure import (
    ApiResponse,
    CommanderNotFoundError,
    FailureKind,
    InsufficientPoolError,
    InvalidWeightsError,
    KnownError,
    OutcomeType,
    PriceLookupError,
    create_known_failure,
    create_success,
    create_unknown_failure,
    finalize_response,
)
from commanderforge.telemetry import EventLog


class TestFailureEnvelope:
    """Tests for the ApiResponse failure envelope."""

    def test_success_response_structure(self) -> None:
        response = create_success({"data": "value"})

        assert response.outcome == OutcomeType.SUCCESS
        assert response.data == {"data": "value"}
        assert response.failure is None

    def test_known_failure_response_structure(self) -> None:
        """Known failure response has correct structure."""
        response = ApiResponse.known_failure(
            kind=FailureKind.NOT_FOUND,
            message="Resource not found",
            detail="Commander 'xyz' does not exist",
        )

        assert response.outcome == OutcomeType.KNOWN_FAILURE
        assert response.data is None
        assert response.failure is not None
        assert response.failure.kind == FailureKind.NOT_FOUND

    def test_unknown_failure_hides_exception_message(self) -> None:
        """Only the exception type is exposed."""
        response = create_unknown_failure(RuntimeError("secret internals"))

        assert response.outcome == OutcomeType.UNKNOWN_FAILURE
        assert response.failure is not None
        assert response.failure.detail == "RuntimeError"
        assert "secret" not in response.failure.message

    def test_known_failure_uses_standard_message(self) -> None:
        response = create_known_failure(FailureKind.CANCELLED, "cancelled after stages: filter")

        assert response.failure is not None
        assert response.failure.kind == FailureKind.CANCELLED
        assert response.failure.detail == "cancelled after stages: filter"

    def test_finalize_rejects_failure_without_details(self) -> None:
        with pytest.raises(ValueError):
            finalize_response(ApiResponse(outcome=OutcomeType.KNOWN_FAILURE))

    def test_finalize_rejects_success_with_failure(self) -> None:
        response = create_known_failure(FailureKind.UNKNOWN, "x")
        response.outcome = OutcomeType.SUCCESS

        with pytest.raises(ValueError):
            finalize_response(response)


class TestKnownErrors:
    """Engine exceptions carry their classification and status code."""

    @pytest.mark.parametrize(
        ("error", "kind", "status_code"),
        [
            (InsufficientPoolError("Marwyn", 12, 60), FailureKind.INSUFFICIENT_POOL, 422),
            (InvalidWeightsError("all zero"), FailureKind.INVALID_INPUT, 400),
            (CommanderNotFoundError("Nobody"), FailureKind.NOT_FOUND, 404),
            (PriceLookupError("Sol Ring", 6), FailureKind.EXTERNAL_API_ERROR, 502),
        ],
    )
    def test_classification(self, error: KnownError, kind: FailureKind, status_code: int) -> None:
        response = error.to_response()

        assert error.kind == kind
        assert error.status_code == status_code
        assert response.outcome == OutcomeType.KNOWN_FAILURE
        assert response.failure is not None
        assert response.failure.suggestion

    def test_insufficient_pool_message(self) -> None:
        error = InsufficientPoolError("Marwyn", 12, 60)

        assert "found 12 non-land candidates, need at least 60" in str(error)


class TestEventLog:
    def test_events_recorded_in_order_and_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        log = EventLog()

        with caplog.at_level(logging.INFO, logger="commanderforge.telemetry"):
            log.emit("filter", legal=120)
            log.emit("allocate", slot_budget=63)

        assert [event.stage for event in log.events] == ["filter", "allocate"]
        assert log.events[0].fields == {"legal": 120}
        record = next(r for r in caplog.records if r.getMessage() == "allocate")
        assert record.stage_fields == {"slot_budget": 63}
