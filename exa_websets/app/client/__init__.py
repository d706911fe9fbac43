"""Resilient Websets API client package.

This package provides:
- Token bucket rate limiting (RateLimiter)
- Circuit breaking (CircuitBreaker, CircuitState)
- Error classification and retry policy (ApiErrorHandler)
- The request executor tying them together (WebsetsApiClient)
"""

from exa_websets.app.client.api_client import ApiResponse, RetryAttempt, WebsetsApiClient
from exa_websets.app.client.circuit_breaker import CircuitBreaker, CircuitState
from exa_websets.app.client.error_handler import (
    ApiErrorHandler,
    Fatal,
    Ok,
    Retryable,
    classify,
    create_api_error,
    get_retry_delay,
    should_retry,
)
from exa_websets.app.client.rate_limiter import RateLimiter

__all__ = [
    # Executor
    "ApiResponse",
    "RetryAttempt",
    "WebsetsApiClient",
    # Circuit breaker
    "CircuitBreaker",
    "CircuitState",
    # Error handling
    "ApiErrorHandler",
    "Fatal",
    "Ok",
    "Retryable",
    "classify",
    "create_api_error",
    "get_retry_delay",
    "should_retry",
    # Rate limiting
    "RateLimiter",
]
