"""
Failure Envelope - Unified Outcome Classification.

This module defines the response envelope used by the HTTP surface and the
exception taxonomy raised by the deck assembly engine.

Outcome types:
- Success: Deck generated (possibly with warnings)
- KnownFailure: The engine knows why generation could not complete
- UnknownFailure: The engine does not know why it failed

Degraded results (short deck, over budget, adjusted quotas) are NOT failures.
They complete successfully and carry warnings instead.

AUTHORITY BOUNDARY:
All user-visible responses MUST pass through `finalize_response()`.
"""

from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field


class FailureKind(str, Enum):
    """Classification of failure types."""

    # Input validation failures
    INVALID_INPUT = "invalid_input"

    # Resource failures
    NOT_FOUND = "not_found"
    INSUFFICIENT_POOL = "insufficient_pool"

    # Run control
    CANCELLED = "cancelled"

    # Service failures
    EXTERNAL_API_ERROR = "external_api_error"

    # Unknown
    UNKNOWN = "unknown"


class OutcomeType(str, Enum):
    """High-level outcome classification."""

    SUCCESS = "success"
    KNOWN_FAILURE = "known_failure"
    UNKNOWN_FAILURE = "unknown_failure"


T = TypeVar("T")


class FailureDetail(BaseModel):
    """Detailed information about a failure."""

    kind: FailureKind = Field(
        ...,
        description="Classification of the failure",
    )
    message: str = Field(
        ...,
        description="User-appropriate explanation of what went wrong",
    )
    detail: str | None = Field(
        default=None,
        description="Additional technical detail (optional)",
    )
    suggestion: str | None = Field(
        default=None,
        description="Suggested action for the user",
    )


class ApiResponse(BaseModel, Generic[T]):
    """
    Universal response envelope for all API endpoints.

    Every response is classified into one of three outcome types,
    ensuring no failure reaches the user unexplained.
    """

    outcome: OutcomeType = Field(
        ...,
        description="High-level classification of the result",
    )
    data: T | None = Field(
        default=None,
        description="Response data (present on success)",
    )
    failure: FailureDetail | None = Field(
        default=None,
        description="Failure details (present on non-success)",
    )

    @classmethod
    def known_failure(
        cls,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
    ) -> "ApiResponse[Any]":
        """
        Create a known failure response.

        Use when the engine knows exactly why the operation failed.
        Example: Commander not found, candidate pool too small.
        """
        return cls(
            outcome=OutcomeType.KNOWN_FAILURE,
            failure=FailureDetail(
                kind=kind,
                message=message,
                detail=detail,
                suggestion=suggestion,
            ),
        )


# Standard exception types that map to known failures


class KnownError(Exception):
    """
    Base class for exceptions that represent known, explainable failures.

    Subclass this for errors where the system knows exactly what went wrong.
    """

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
        status_code: int = 400,
    ):
        self.kind = kind
        self.message = message
        self.detail = detail
        self.suggestion = suggestion
        self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> ApiResponse[Any]:
        """Convert to a finalized ApiResponse."""
        return finalize_response(
            ApiResponse.known_failure(
                kind=self.kind,
                message=self.message,
                detail=self.detail,
                suggestion=self.suggestion,
            )
        )


class InsufficientPoolError(KnownError):
    """
    Raised when too few legal non-land cards remain for a commander.

    This error is FATAL and non-retryable. It indicates a data problem
    (tiny color identity, stale card data), not a transient one. The engine
    never relaxes constraints on its own; the caller may retry differently.
    """

    def __init__(self, commander_name: str, available: int, minimum: int):
        self.commander_name = commander_name
        self.available = available
        self.minimum = minimum
        super().__init__(
            kind=FailureKind.INSUFFICIENT_POOL,
            message=(
                f"Not enough legal cards to build around {commander_name}: "
                f"found {available} non-land candidates, need at least {minimum}."
            ),
            detail=f"legal non-land pool: {available}/{minimum}",
            suggestion=(
                "Refresh the card database or choose a commander with a wider color identity."
            ),
            status_code=422,
        )


class InvalidWeightsError(KnownError):
    """Raised when category weights cannot fill any non-land slot."""

    def __init__(self, detail: str):
        super().__init__(
            kind=FailureKind.INVALID_INPUT,
            message="Category weights exclude every card type that could fill the deck.",
            detail=detail,
            suggestion="Give at least one of creatures, artifacts, enchantments, "
            "instants or sorceries a weight above 0.",
            status_code=400,
        )


class CommanderNotFoundError(KnownError):
    """Raised when the requested commander is not in the card repository."""

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(
            kind=FailureKind.NOT_FOUND,
            message=f"Commander '{identifier}' was not found.",
            detail=f"identifier: {identifier}",
            suggestion="Check the spelling or use the card's Scryfall id.",
            status_code=404,
        )


class PriceLookupError(KnownError):
    """Raised when the price source keeps throttling or failing after all retries."""

    def __init__(self, card_name: str, attempts: int, detail: str | None = None):
        self.card_name = card_name
        self.attempts = attempts
        super().__init__(
            kind=FailureKind.EXTERNAL_API_ERROR,
            message=f"Price lookup for '{card_name}' failed after {attempts} attempts.",
            detail=detail,
            suggestion="Retry later or generate without a budget.",
            status_code=502,
        )


# =============================================================================
# FAILURE AUTHORITY BOUNDARY
# =============================================================================

STANDARD_MESSAGES: dict[OutcomeType, str] = {
    OutcomeType.KNOWN_FAILURE: "The operation failed due to a known issue.",
    OutcomeType.UNKNOWN_FAILURE: (
        "I failed and I don't know why. Try simplifying the request or retrying."
    ),
}

STANDARD_SUGGESTIONS: dict[OutcomeType, str] = {
    OutcomeType.KNOWN_FAILURE: "Check the error details and adjust your request.",
    OutcomeType.UNKNOWN_FAILURE: "If this persists, please report the issue.",
}


def finalize_response(response: ApiResponse[Any]) -> ApiResponse[Any]:
    """
    Finalize a response through the authority boundary.

    Every response that passes through this function is guaranteed to
    have a valid outcome classification and failure details if not successful.

    Raises:
        ValueError: If response structure is invalid
    """
    if response.outcome == OutcomeType.SUCCESS:
        if response.failure is not None:
            raise ValueError("Success response must not have failure details")
    else:
        if response.failure is None:
            raise ValueError(f"{response.outcome.value} response must have failure details")

    return response


def create_unknown_failure(exception: Exception) -> ApiResponse[Any]:
    """
    Create an unknown failure response from an exception.

    The message is fixed and cannot be customized. Only the exception
    type name is exposed.
    """
    response: ApiResponse[Any] = ApiResponse(
        outcome=OutcomeType.UNKNOWN_FAILURE,
        failure=FailureDetail(
            kind=FailureKind.UNKNOWN,
            message=STANDARD_MESSAGES[OutcomeType.UNKNOWN_FAILURE],
            detail=type(exception).__name__,
            suggestion=STANDARD_SUGGESTIONS[OutcomeType.UNKNOWN_FAILURE],
        ),
    )

    return finalize_response(response)


def create_known_failure(kind: FailureKind, reason: str) -> ApiResponse[Any]:
    """
    Create a known failure response.

    The message is standardized. Only the reason (technical detail) varies.
    """
    response: ApiResponse[Any] = ApiResponse(
        outcome=OutcomeType.KNOWN_FAILURE,
        failure=FailureDetail(
            kind=kind,
            message=STANDARD_MESSAGES[OutcomeType.KNOWN_FAILURE],
            detail=reason,
            suggestion=STANDARD_SUGGESTIONS[OutcomeType.KNOWN_FAILURE],
        ),
    )

    return finalize_response(response)


def create_success(data: T) -> ApiResponse[T]:
    """Create a finalized success response."""
    response = ApiResponse[T](outcome=OutcomeType.SUCCESS, data=data)
    return finalize_response(response)
