"""Error classification and retry policy for the Websets API client.

Raw failures (httpx exceptions, HTTP error responses, plain strings) are
mapped onto :class:`ApiErrorType`, which alone decides retryability and
backoff. The executor never inspects raw exceptions itself: it asks
:func:`ApiErrorHandler.evaluate` for a tagged outcome.
"""

import json
import logging
import random
import socket
import traceback
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar, Union

import httpx

from exa_websets.app.core.logging import get_log_context, get_logger
from exa_websets.app.core.security import mask_sensitive_data
from exa_websets.app.exceptions import (
    ApiErrorType,
    CircuitOpenError,
    RETRYABLE_ERROR_TYPES,
    WebsetsApiError,
)

logger = get_logger(__name__)

T = TypeVar("T")

NETWORK_EXCEPTIONS = (
    httpx.NetworkError,
    httpx.RemoteProtocolError,
    ConnectionError,
    socket.gaierror,
)

TIMEOUT_EXCEPTIONS = (httpx.TimeoutException, TimeoutError)

# Severity used by log_error for each kind
_LOG_LEVELS = {
    ApiErrorType.AUTHENTICATION: (logging.ERROR, "Auth Error"),
    ApiErrorType.AUTHORIZATION: (logging.ERROR, "Auth Error"),
    ApiErrorType.VALIDATION: (logging.WARNING, "Validation Error"),
    ApiErrorType.NOT_FOUND: (logging.WARNING, "Not Found"),
    ApiErrorType.RATE_LIMIT: (logging.WARNING, "Rate Limited"),
    ApiErrorType.SERVER_ERROR: (logging.ERROR, "Server Error"),
    ApiErrorType.NETWORK_ERROR: (logging.WARNING, "Network Error"),
    ApiErrorType.TIMEOUT_ERROR: (logging.WARNING, "Network Error"),
    ApiErrorType.CIRCUIT_BREAKER_OPEN: (logging.ERROR, "Circuit Breaker Open"),
}


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Attempt succeeded."""

    value: T


@dataclass(frozen=True)
class Retryable:
    """Attempt failed with a transient error; another attempt may succeed."""

    error: WebsetsApiError


@dataclass(frozen=True)
class Fatal:
    """Attempt failed permanently; retrying cannot help."""

    error: WebsetsApiError


Outcome = Union[Ok, Retryable, Fatal]


def _response_of(error: Any) -> Any:
    if isinstance(error, httpx.HTTPStatusError):
        return error.response
    return getattr(error, "response", None)


def _status_of(error: Any) -> Optional[int]:
    """Extract an HTTP status from an error carrying a response."""
    if isinstance(error, WebsetsApiError):
        return error.status
    response = _response_of(error)
    if response is None:
        return None
    status = getattr(response, "status_code", None)
    if status is None:
        status = getattr(response, "status", None)
    return status if isinstance(status, int) else None


def _body_of(error: Any) -> Any:
    """Return the decoded response body of an error, if any."""
    response = _response_of(error)
    if response is None:
        return None
    if isinstance(response, httpx.Response):
        try:
            return response.json()
        except (ValueError, json.JSONDecodeError):
            return response.text or None
    return getattr(response, "data", None)


def _message_of(error: Any) -> str:
    if isinstance(error, str):
        return error
    message = getattr(error, "message", None)
    if isinstance(message, str) and message:
        return message
    return str(error)


class ApiErrorHandler:
    """Stateless classification, retry and logging helpers."""

    @staticmethod
    def classify(error: Any) -> ApiErrorType:
        """Classify a raw failure.

        Precedence (first match wins): connection failure, timeout, HTTP
        status, circuit breaker, then a network error by default. The
        "timeout" message check is skipped for errors carrying an HTTP status.

        Args:
            error: Exception, error-like object or string

        Returns:
            The classified error kind
        """
        if isinstance(error, WebsetsApiError):
            return error.kind

        if isinstance(error, NETWORK_EXCEPTIONS):
            return ApiErrorType.NETWORK_ERROR

        message = _message_of(error) if error is not None else ""
        status = _status_of(error)
        if isinstance(error, TIMEOUT_EXCEPTIONS) or (not status and "timeout" in message.lower()):
            return ApiErrorType.TIMEOUT_ERROR

        if status:
            if status == 401:
                return ApiErrorType.AUTHENTICATION
            if status == 403:
                return ApiErrorType.AUTHORIZATION
            if status == 404:
                return ApiErrorType.NOT_FOUND
            if status in (400, 422):
                return ApiErrorType.VALIDATION
            if status == 429:
                return ApiErrorType.RATE_LIMIT
            if status >= 500:
                return ApiErrorType.SERVER_ERROR

        if isinstance(error, CircuitOpenError) or "circuit breaker" in message.lower():
            return ApiErrorType.CIRCUIT_BREAKER_OPEN

        return ApiErrorType.NETWORK_ERROR

    @staticmethod
    def should_retry(error_type: Any) -> bool:
        """Whether a failure of this kind is worth another attempt."""
        return error_type in RETRYABLE_ERROR_TYPES

    @staticmethod
    def is_temporary_error(error_type: Any) -> bool:
        return ApiErrorHandler.should_retry(error_type)

    @staticmethod
    def is_permanent_error(error_type: Any) -> bool:
        return isinstance(error_type, ApiErrorType) and not ApiErrorHandler.is_temporary_error(error_type)

    @staticmethod
    def get_retry_delay(
        attempt: int,
        error_type: ApiErrorType,
        base_delay: float = 1000,
        max_delay: float = 10000,
    ) -> int:
        """Calculate the backoff before the next attempt.

        Rate limit errors wait twice the plain exponential delay with no
        jitter. Everything else gets up to 10% additive jitter.

        Args:
            attempt: Zero-based retry index (the first retry uses 0)
            error_type: Classified kind of the failure
            base_delay: Base delay in milliseconds
            max_delay: Cap in milliseconds

        Returns:
            Delay in milliseconds
        """
        exponential_delay = base_delay * (2 ** attempt)

        if error_type == ApiErrorType.RATE_LIMIT:
            return int(min(exponential_delay * 2, max_delay))

        jitter = random.uniform(0, 0.1) * exponential_delay
        return int(min(exponential_delay + jitter, max_delay))

    @staticmethod
    def create_api_error(error: Any) -> WebsetsApiError:
        """Normalize any failure into a masked :class:`WebsetsApiError`.

        A structured ``{"error": {"code", "message", "details"}}`` body from
        the server wins. Otherwise the exception message is used and the
        details carry the exception type, HTTP status and stack. Strings
        become the message as-is.

        Args:
            error: Exception, error-like object or string

        Returns:
            A classified error; already classified errors are returned as-is
        """
        if isinstance(error, WebsetsApiError):
            return error

        kind = ApiErrorHandler.classify(error)
        status = _status_of(error)
        code: Optional[str] = None
        message = "An unknown error occurred"
        details: Any = None

        body = _body_of(error)
        server_error = body.get("error") if isinstance(body, dict) else None

        if isinstance(server_error, dict):
            code = server_error.get("code") or None
            message = server_error.get("message") or message
            details = server_error.get("details")
        elif isinstance(error, BaseException):
            message = _message_of(error) or type(error).__name__
            details = {"exception": type(error).__name__}
            if status is not None:
                details["status"] = status
            if body is not None:
                details["response"] = body if isinstance(body, (dict, list)) else str(body)[:500]
            if error.__traceback__ is not None:
                details["stack"] = "".join(traceback.format_exception(error)).strip()
        elif isinstance(error, str):
            message = error

        return WebsetsApiError(
            kind=kind,
            message=mask_sensitive_data(message),
            code=code,
            details=mask_sensitive_data(details),
            status=status,
        )

    @staticmethod
    def evaluate(error: Any) -> Outcome:
        """Turn a raw failure into a tagged retry decision."""
        api_error = ApiErrorHandler.create_api_error(error)
        if ApiErrorHandler.should_retry(api_error.kind):
            return Retryable(api_error)
        return Fatal(api_error)

    @staticmethod
    def format_error_message(error: WebsetsApiError) -> str:
        """Render ``code: message - details`` with secrets masked."""
        message = f"{error.code}: {error.message}"

        if error.details:
            details = mask_sensitive_data(error.details)
            if isinstance(details, str):
                message += f" - {details}"
            else:
                try:
                    message += f" - {json.dumps(details, default=str)}"
                except (TypeError, ValueError):
                    message += " - [Complex error details]"

        return message

    @staticmethod
    def log_error(error: WebsetsApiError, context: Optional[str] = None, **log_context: Any) -> None:
        """Log a classified error at a level matching its severity."""
        level, label = _LOG_LEVELS.get(error.kind, (logging.ERROR, "Unknown Error"))
        prefix = f"[{context}] " if context else ""
        logger.log(
            level,
            f"{prefix}{label}: {ApiErrorHandler.format_error_message(error)}",
            extra=get_log_context(error_kind=error.kind.value, status_code=error.status, **log_context),
        )

    @staticmethod
    def get_user_friendly_message(error: WebsetsApiError) -> str:
        return error.user_message


classify = ApiErrorHandler.classify
should_retry = ApiErrorHandler.should_retry
get_retry_delay = ApiErrorHandler.get_retry_delay
create_api_error = ApiErrorHandler.create_api_error
