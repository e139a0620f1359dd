"""
Error Kinds

Every failure the service reports carries one ErrorKind. There is a single
exception type, ShortenerError, instead of a class per failure; the HTTP
layer turns the kind into a status code in one place.

Kinds:
- VALIDATION: malformed input, not retryable without change
- NOT_FOUND: no record for the given short code
- CONFLICT: uniqueness races that outlived the generator's retries
- RATE_LIMITED: quota exceeded, retry after the window resets
- SERVICE_UNAVAILABLE: store unreachable or timed out, retryable
- INTERNAL: anything unexpected
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Stable error taxonomy surfaced to callers."""

    VALIDATION = "validation_error"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    RATE_LIMITED = "rate_limited"
    SERVICE_UNAVAILABLE = "service_unavailable"
    INTERNAL = "internal_error"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]

    @property
    def retryable(self) -> bool:
        return self in (ErrorKind.RATE_LIMITED, ErrorKind.SERVICE_UNAVAILABLE)

    @property
    def operational(self) -> bool:
        """False for faults that indicate a bug rather than a bad request or outage."""
        return self is not ErrorKind.INTERNAL


_STATUS_CODES = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.SERVICE_UNAVAILABLE: 503,
    ErrorKind.INTERNAL: 500,
}


class ShortenerError(Exception):
    """
    Failure raised by the shortener core.

    Args:
        kind: Classification of the failure
        message: Caller-safe description
        detail: Diagnostic text (driver messages etc.), only shown in debug mode
        retry_after: Seconds until a rate-limited request may be retried
        headers: Extra response headers, e.g. the rejecting quota of a rate limit
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        detail: Optional[str] = None,
        retry_after: Optional[int] = None,
        headers: Optional[dict[str, str]] = None,
    ):
        self.kind = kind
        self.message = message
        self.detail = detail
        self.retry_after = retry_after
        self.headers = headers or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"ShortenerError({self.kind.name}, {self.message!r})"

    @classmethod
    def validation(cls, message: str, detail: Optional[str] = None) -> "ShortenerError":
        return cls(ErrorKind.VALIDATION, message, detail)

    @classmethod
    def not_found(cls, short_code: str) -> "ShortenerError":
        return cls(ErrorKind.NOT_FOUND, f"Short code '{short_code}' not found")
