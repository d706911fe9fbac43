"""Custom exceptions for the Websets MCP server."""

from enum import Enum
from typing import Any, Dict, Optional


class ApiErrorType(str, Enum):
    """Classified kinds of API failures."""

    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    AUTHENTICATION = "AUTHENTICATION_ERROR"
    AUTHORIZATION = "AUTHORIZATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    VALIDATION = "VALIDATION_ERROR"
    RATE_LIMIT = "RATE_LIMIT_EXCEEDED"
    SERVER_ERROR = "SERVER_ERROR"
    CIRCUIT_BREAKER_OPEN = "CIRCUIT_BREAKER_OPEN"


# Kinds that are worth retrying. Every other kind is permanent.
RETRYABLE_ERROR_TYPES = frozenset(
    {
        ApiErrorType.RATE_LIMIT,
        ApiErrorType.SERVER_ERROR,
        ApiErrorType.NETWORK_ERROR,
        ApiErrorType.TIMEOUT_ERROR,
    }
)

_USER_MESSAGES = {
    ApiErrorType.AUTHENTICATION: "Authentication failed. Please check your API key.",
    ApiErrorType.AUTHORIZATION: "Access denied. You may not have permission for this operation.",
    ApiErrorType.VALIDATION: "Invalid request data. Please check your input parameters.",
    ApiErrorType.NOT_FOUND: "The requested resource was not found.",
    ApiErrorType.RATE_LIMIT: "Rate limit exceeded. Please try again later.",
    ApiErrorType.SERVER_ERROR: "Server error occurred. Please try again later.",
    ApiErrorType.NETWORK_ERROR: "Network connection failed. Please check your internet connection.",
    ApiErrorType.TIMEOUT_ERROR: "Request timed out. Please try again.",
    ApiErrorType.CIRCUIT_BREAKER_OPEN: "Service temporarily unavailable. Please try again later.",
}


class WebsetsException(Exception):
    """Base class for all exceptions raised by this package."""

    def __init__(self, message: str = "Websets error"):
        self.message = message
        super().__init__(message)


class WebsetsApiError(WebsetsException):
    """A classified API failure.

    This is the only error type callers of the API client ever see: raw
    transport exceptions are converted by the error handler before they
    leave the request pipeline.

    Attributes:
        kind: Classified error category
        code: Server-provided error code, or the kind value when absent
        message: Human readable message (secrets masked)
        details: Normalized detail payload (secrets masked)
        status: HTTP status code when the failure carried one
    """

    def __init__(
        self,
        kind: ApiErrorType,
        message: str,
        code: Optional[str] = None,
        details: Any = None,
        status: Optional[int] = None,
    ):
        self.kind = kind
        self.code = code or kind.value
        self.details = details
        self.status = status
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_ERROR_TYPES

    @property
    def user_message(self) -> str:
        """Short explanation suitable for showing to an end user."""
        return _USER_MESSAGES.get(self.kind) or self.message or "An unexpected error occurred."

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "code": self.code,
            "kind": self.kind.value,
            "message": self.message,
        }
        if self.status is not None:
            data["status"] = self.status
        if self.details is not None:
            data["details"] = self.details
        return data

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value}, code={self.code!r}, message={self.message!r})"


class CircuitOpenError(WebsetsApiError):
    """Raised when the circuit breaker rejects a call without running it."""

    def __init__(self, message: str = "Circuit breaker is open", retry_after_ms: Optional[int] = None):
        self.retry_after_ms = retry_after_ms
        details = {"retryAfterMs": retry_after_ms} if retry_after_ms is not None else None
        super().__init__(ApiErrorType.CIRCUIT_BREAKER_OPEN, message, details=details)


class ServiceValidationError(WebsetsException, ValueError):
    """Raised when service parameters fail client-side validation."""


class OperationTimeoutError(WebsetsException):
    """Raised when polling for an asynchronous operation runs out of attempts."""

    def __init__(self, message: str, attempts: int):
        self.attempts = attempts
        super().__init__(message)
