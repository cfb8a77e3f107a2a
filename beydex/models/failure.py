"""
Failure envelope: classified, user-presentable errors.

Every failure that can reach a client is classified by kind and carries a
user-appropriate message. Transport errors (httpx, anthropic, SQLAlchemy)
are caught nearest their call site and re-raised as one of the KnownError
subclasses below.

Envelope outcomes:
- KnownFailure: System knows why it failed (timeout, not found, ...)
- UnknownFailure: System does not know why it failed

Low-confidence identifications and "already in your collection" are NOT
failures. They are success-shaped results and never pass through here.
"""

from enum import Enum

from pydantic import BaseModel, Field


class FailureKind(str, Enum):
    """Classification of failure types."""

    # Input validation failures
    INVALID_INPUT = "invalid_input"

    # Resource failures
    NOT_FOUND = "not_found"

    # Service failures
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    SERVICE_UNAVAILABLE = "service_unavailable"
    EXTERNAL_API_ERROR = "external_api_error"
    STORAGE_ERROR = "storage_error"

    # Unknown
    UNKNOWN = "unknown"


class OutcomeType(str, Enum):
    """High-level outcome classification."""

    KNOWN_FAILURE = "known_failure"
    UNKNOWN_FAILURE = "unknown_failure"


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
    retryable: bool = Field(
        default=False,
        description="True if repeating the same request may succeed",
    )


class ApiResponse(BaseModel):
    """Failure envelope rendered by the application error handlers."""

    outcome: OutcomeType = Field(
        ...,
        description="High-level classification of the result",
    )
    failure: FailureDetail | None = Field(
        default=None,
        description="What went wrong",
    )

    @classmethod
    def known_failure(
        cls,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
        retryable: bool = False,
    ) -> "ApiResponse":
        """Create a known failure response."""
        return cls(
            outcome=OutcomeType.KNOWN_FAILURE,
            failure=FailureDetail(
                kind=kind,
                message=message,
                detail=detail,
                suggestion=suggestion,
                retryable=retryable,
            ),
        )

    @classmethod
    def unknown_failure(cls, detail: str | None = None) -> "ApiResponse":
        """
        Create an unknown failure response.

        The message is fixed. Only the technical detail varies.
        """
        return cls(
            outcome=OutcomeType.UNKNOWN_FAILURE,
            failure=FailureDetail(
                kind=FailureKind.UNKNOWN,
                message="Something went wrong. Please try again.",
                detail=detail,
                suggestion="If this persists, please report the issue.",
            ),
        )


class KnownError(Exception):
    """
    Base class for exceptions that represent known, explainable failures.

    Subclass this for errors where the system knows exactly what went wrong.
    """

    retryable: bool = False

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

    def to_response(self) -> ApiResponse:
        """Convert to an ApiResponse."""
        return ApiResponse.known_failure(
            kind=self.kind,
            message=self.message,
            detail=self.detail,
            suggestion=self.suggestion,
            retryable=self.retryable,
        )


class RequestTimeoutError(KnownError):
    """An external call exceeded its time budget."""

    retryable = True

    def __init__(self, operation: str, timeout: float):
        self.operation = operation
        self.timeout = timeout
        super().__init__(
            kind=FailureKind.TIMEOUT,
            message="The request timed out.",
            detail=f"{operation} exceeded {timeout:g}s",
            suggestion="Please try again.",
            status_code=504,
        )


class SearchTimeoutError(RequestTimeoutError):
    """The wiki search endpoint exceeded its time budget."""

    def __init__(self, timeout: float):
        super().__init__("search", timeout)
        self.message = "Search timed out - try again."


class PageNotFoundError(KnownError):
    """The wiki has no page for the requested slug."""

    def __init__(self, slug: str):
        self.slug = slug
        super().__init__(
            kind=FailureKind.NOT_FOUND,
            message="Beyblade page not found.",
            detail=f"No wiki page for slug '{slug}'",
            suggestion="Check the spelling or pick another search result.",
            status_code=404,
        )


class WikiServiceError(KnownError):
    """The wiki answered with an error status or an unreadable body."""

    retryable = True

    def __init__(self, detail: str):
        super().__init__(
            kind=FailureKind.EXTERNAL_API_ERROR,
            message="The Beyblade wiki could not be reached.",
            detail=detail,
            suggestion="Please try again in a moment.",
            status_code=502,
        )


class AIServiceError(KnownError):
    """The generative backend failed to produce a completion."""

    retryable = True

    def __init__(self, detail: str, status_code: int = 502):
        kind = FailureKind.RATE_LIMITED if status_code == 429 else FailureKind.EXTERNAL_API_ERROR
        message = (
            "Rate limit exceeded. Please try again later."
            if status_code == 429
            else "The identification service failed."
        )
        super().__init__(
            kind=kind,
            message=message,
            detail=detail,
            suggestion="Please try again in a moment.",
            status_code=status_code,
        )


class LookupUnavailableError(KnownError):
    """Text lookup failed after exhausting its retries."""

    retryable = True

    def __init__(self, attempts: int, detail: str | None = None):
        self.attempts = attempts
        super().__init__(
            kind=FailureKind.SERVICE_UNAVAILABLE,
            message="The server is slow right now. Please try again in a few seconds.",
            detail=detail or f"Failed after {attempts} attempts",
            status_code=503,
        )


class ObjectStoreError(KnownError):
    """Reading from or writing to the object store failed."""

    def __init__(self, key: str, detail: str):
        self.key = key
        super().__init__(
            kind=FailureKind.STORAGE_ERROR,
            message="The file could not be stored.",
            detail=f"{key}: {detail}",
            status_code=500,
        )
