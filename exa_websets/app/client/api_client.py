"""Resilient HTTP client for the Websets API.

Every call goes through the same pipeline:

    circuit breaker -> [rate limiter token -> HTTP request -> classify] x (1 + retries)

The whole retry sequence runs inside one circuit breaker call, so an open
circuit rejects a request before any attempt is made, and a request that
exhausts its retries counts as a single breaker failure.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from exa_websets.app.client.circuit_breaker import CircuitBreaker
from exa_websets.app.client.error_handler import ApiErrorHandler, Fatal, Ok, Outcome
from exa_websets.app.client.rate_limiter import Clock, RateLimiter
from exa_websets.app.core.config import Settings, settings as default_settings
from exa_websets.app.core.http_client import create_http_client, ms_to_timeout
from exa_websets.app.core.logging import get_log_context, get_logger
from exa_websets.app.core.security import TokenProvider
from exa_websets.app.exceptions import ApiErrorType, WebsetsApiError, WebsetsException

logger = get_logger(__name__)


@dataclass
class ApiResponse:
    """Normalized successful response."""

    data: Any
    status: int
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass
class RetryAttempt:
    """One failed attempt inside a single logical request."""

    attempt_number: int
    delay_ms: int = 0
    error: Optional[WebsetsApiError] = None


class WebsetsApiClient:
    """HTTP client with rate limiting, circuit breaking and retries.

    Each instance owns its rate limiter, circuit breaker and httpx client;
    nothing is shared between instances, so clients for different API keys
    never throttle or trip each other.

    Usage:
        async with WebsetsApiClient() as client:
            response = await client.get("/websets", params={"limit": 10})
            print(response.data)
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        token_provider: Optional[TokenProvider] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Optional[Clock] = None,
    ):
        """Initialize the client.

        Args:
            config: Settings to use (default: global settings)
            token_provider: Supplies the x-api-key header (default: config.api_key)
            http_client: Optional externally managed httpx client
            clock: Millisecond clock shared by the limiter and breaker
        """
        self.config = config or default_settings
        self.token_provider = token_provider or TokenProvider(lambda: self.config.api_key)
        self._owns_http_client = http_client is None
        self._http_client = http_client or create_http_client(self.config)

        self.rate_limiter = RateLimiter(
            requests_per_second=self.config.rate_limit,
            burst_size=self.config.burst_size,
            clock=clock,
        )
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=self.config.circuit_breaker_threshold,
            timeout=self.config.circuit_breaker_timeout,
            monitoring_period=self.config.circuit_breaker_monitoring_period,
            clock=clock,
        )

        logger.info("WebsetsApiClient initialized")

    @property
    def http_client(self) -> httpx.AsyncClient:
        return self._http_client

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None, **options: Any) -> ApiResponse:
        return await self.request("GET", path, params=params, **options)

    async def post(self, path: str, body: Any = None, **options: Any) -> ApiResponse:
        return await self.request("POST", path, body=body, **options)

    async def put(self, path: str, body: Any = None, **options: Any) -> ApiResponse:
        return await self.request("PUT", path, body=body, **options)

    async def patch(self, path: str, body: Any = None, **options: Any) -> ApiResponse:
        return await self.request("PATCH", path, body=body, **options)

    async def delete(self, path: str, **options: Any) -> ApiResponse:
        return await self.request("DELETE", path, **options)

    async def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        retries: Optional[int] = None,
    ) -> ApiResponse:
        """Send a request through the resilient pipeline.

        Args:
            method: HTTP method
            path: Path relative to the base URL, or an absolute URL
            body: JSON body
            params: Query parameters (None values are dropped)
            headers: Extra headers for this call
            timeout: Per-attempt timeout in milliseconds (default: config.timeout)
            retries: Retries after the first attempt (default: config.retry_attempts)

        Returns:
            The normalized response

        Raises:
            WebsetsApiError: Classified failure (CircuitOpenError when open)
        """
        try:
            api_key = self.token_provider.get_token()
        except WebsetsException as e:
            raise WebsetsApiError(ApiErrorType.AUTHENTICATION, e.message) from e

        request_headers = {"x-api-key": api_key}
        if headers:
            request_headers.update(headers)
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        max_retries = self.config.retry_attempts if retries is None else retries
        timeout_ms = timeout or self.config.timeout

        return await self.circuit_breaker.execute(
            lambda: self._execute_with_retry(
                method.upper(), path, body, params, request_headers, timeout_ms, max_retries
            )
        )

    async def _execute_with_retry(
        self,
        method: str,
        path: str,
        body: Any,
        params: Optional[Dict[str, Any]],
        headers: Dict[str, str],
        timeout_ms: float,
        max_retries: int,
    ) -> ApiResponse:
        history: List[RetryAttempt] = []
        last_error: Optional[WebsetsApiError] = None

        for attempt in range(max_retries + 1):
            await self.rate_limiter.wait_for_token()

            outcome = await self._attempt(method, path, body, params, headers, timeout_ms)
            if isinstance(outcome, Ok):
                return outcome.value

            last_error = outcome.error
            record = RetryAttempt(attempt_number=attempt + 1, error=last_error)
            history.append(record)

            ApiErrorHandler.log_error(
                last_error,
                f"Attempt {attempt + 1}/{max_retries + 1}",
                method=method,
                path=path,
                attempt=attempt + 1,
            )

            if isinstance(outcome, Fatal) or attempt >= max_retries:
                break

            record.delay_ms = ApiErrorHandler.get_retry_delay(
                attempt,
                last_error.kind,
                self.config.retry_delay,
                self.config.max_retry_delay,
            )
            logger.info(
                f"Retrying {method} {path} in {record.delay_ms}ms...",
                extra=get_log_context(method=method, path=path, attempt=attempt + 1),
            )
            await asyncio.sleep(record.delay_ms / 1000.0)

        if last_error is None:
            raise WebsetsApiError(ApiErrorType.NETWORK_ERROR, f"{method} {path} failed without an error")

        if len(history) > 1:
            kinds = ", ".join(r.error.kind.value for r in history if r.error is not None)
            logger.warning(f"{method} {path} failed after {len(history)} attempts: {kinds}")
        raise last_error

    async def _attempt(
        self,
        method: str,
        path: str,
        body: Any,
        params: Optional[Dict[str, Any]],
        headers: Dict[str, str],
        timeout_ms: float,
    ) -> Outcome:
        """Make one HTTP call and turn its result into an outcome."""
        if self.config.enable_logging:
            logger.debug(f"Making {method} request to {path}", extra=get_log_context(method=method, path=path))

        started = time.perf_counter()
        try:
            response = await self._http_client.request(
                method,
                path,
                json=body,
                params=params,
                headers=headers,
                timeout=ms_to_timeout(timeout_ms),
            )
            response.raise_for_status()
        except Exception as e:
            return ApiErrorHandler.evaluate(e)

        if self.config.enable_logging:
            duration_ms = round((time.perf_counter() - started) * 1000, 2)
            logger.debug(
                f"Received {response.status_code} response from {path}",
                extra=get_log_context(
                    method=method, path=path, status_code=response.status_code, duration_ms=duration_ms
                ),
            )
        return Ok(self._create_api_response(response))

    @staticmethod
    def _create_api_response(response: httpx.Response) -> ApiResponse:
        data: Any = None
        if response.content:
            try:
                data = response.json()
            except ValueError:
                data = response.text
        return ApiResponse(data=data, status=response.status_code, headers=dict(response.headers))

    def get_stats(self) -> Dict[str, Any]:
        """Rate limiter and circuit breaker snapshots."""
        return {
            "rateLimiter": self.rate_limiter.get_stats(),
            "circuitBreaker": self.circuit_breaker.get_state(),
        }

    def update_config(self, **changes: Any) -> None:
        """Apply configuration changes to a running client.

        The new settings are validated as a whole before anything changes.
        Rate limit changes always reset the token bucket.

        Args:
            **changes: Settings field names and new values
        """
        self.config = self.config.with_changes(**changes)

        if "rate_limit" in changes or "burst_size" in changes:
            self.rate_limiter.update_options(
                requests_per_second=changes.get("rate_limit"),
                burst_size=changes.get("burst_size"),
            )

        if "timeout" in changes:
            self._http_client.timeout = ms_to_timeout(self.config.timeout)

        if "circuit_breaker_threshold" in changes:
            self.circuit_breaker.failure_threshold = self.config.circuit_breaker_threshold
        if "circuit_breaker_timeout" in changes:
            self.circuit_breaker.timeout = self.config.circuit_breaker_timeout

        logger.info("WebsetsApiClient configuration updated")

    def reset(self) -> None:
        """Reset the rate limiter and circuit breaker."""
        self.rate_limiter.reset()
        self.circuit_breaker.reset()
        logger.info("WebsetsApiClient state reset")

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self._http_client.aclose()

    async def __aenter__(self) -> "WebsetsApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
