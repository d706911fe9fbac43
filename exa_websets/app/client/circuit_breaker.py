"""Circuit breaker for the Websets API client.

The breaker fails fast once the API has failed ``failure_threshold`` times,
stays open for ``timeout`` milliseconds, then lets a single trial request through
(half-open). A successful trial closes it again; a failed trial reopens it.
"""

import threading
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from exa_websets.app.client.rate_limiter import Clock, monotonic_ms
from exa_websets.app.core.logging import get_logger
from exa_websets.app.exceptions import CircuitOpenError

logger = get_logger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half-open"


class CircuitBreaker:
    """Circuit breaker wrapping async operations.

    Successes also decay the failure count: once ``successes`` reaches the
    threshold, both counters go back to zero even while closed, so
    scattered failures over a long healthy period never trip the breaker.

    State checks and transitions run under a lock; the wrapped operation
    itself runs outside it.

    Usage:
        breaker = CircuitBreaker(failure_threshold=5, timeout=60000)
        result = await breaker.execute(lambda: client.get("/websets"))
    """

    def __init__(
        self,
        failure_threshold: int,
        timeout: float,
        monitoring_period: float = 60000,
        clock: Optional[Clock] = None,
    ):
        """Initialize the circuit breaker.

        Args:
            failure_threshold: Failures needed to open the circuit
            timeout: Milliseconds to stay open before probing
            monitoring_period: Reported in stats only
            clock: Callable returning the current time in milliseconds
        """
        self.failure_threshold = failure_threshold
        self.timeout = timeout
        self.monitoring_period = monitoring_period
        self._clock = clock or monotonic_ms
        self._lock = threading.Lock()

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._last_failure_time: float = 0

        logger.info(f"Circuit breaker initialized: threshold={failure_threshold}, timeout={timeout}ms")

    @property
    def state(self) -> CircuitState:
        return self._state

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run ``operation`` under circuit breaker protection.

        Args:
            operation: Zero-argument coroutine function to run

        Returns:
            Whatever ``operation`` returns

        Raises:
            CircuitOpenError: If the circuit is open; ``operation`` is not run
            Exception: Whatever ``operation`` raised, after recording the failure
        """
        self._before_call()

        try:
            result = await operation()
        except BaseException as exc:
            if isinstance(exc, Exception):
                self._on_failure()
            raise

        self._on_success()
        return result

    def get_state(self) -> Dict[str, Any]:
        """Read-only snapshot of the breaker."""
        with self._lock:
            return {
                "state": self._state.value,
                "failures": self._failure_count,
                "successes": self._success_count,
                "lastFailureTime": self._last_failure_time,
                "failureThreshold": self.failure_threshold,
                "timeout": self.timeout,
                "monitoringPeriod": self.monitoring_period,
            }

    def reset(self) -> None:
        """Force the breaker closed and clear all counters."""
        with self._lock:
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._success_count = 0
            self._last_failure_time = 0
        logger.info("Circuit breaker reset to closed state")

    def _before_call(self) -> None:
        with self._lock:
            if self._state != CircuitState.OPEN:
                return

            elapsed = self._clock() - self._last_failure_time
            if elapsed < self.timeout:
                raise CircuitOpenError(retry_after_ms=int(self.timeout - elapsed))

            self._state = CircuitState.HALF_OPEN
        logger.info("Circuit breaker transitioning to half-open")

    def _on_success(self) -> None:
        closed_from_half_open = False
        with self._lock:
            self._success_count += 1

            if self._state == CircuitState.HALF_OPEN:
                self._state = CircuitState.CLOSED
                self._failure_count = 0
                closed_from_half_open = True

            if self._success_count >= self.failure_threshold:
                self._failure_count = 0
                self._success_count = 0

        if closed_from_half_open:
            logger.info("Circuit breaker closed after successful half-open attempt")

    def _on_failure(self) -> None:
        opened = None
        with self._lock:
            self._failure_count += 1
            self._last_failure_time = self._clock()

            if self._state == CircuitState.HALF_OPEN:
                self._state = CircuitState.OPEN
                opened = "Circuit breaker opened from half-open state"
            elif self._failure_count >= self.failure_threshold:
                if self._state != CircuitState.OPEN:
                    opened = f"Circuit breaker opened after {self._failure_count} failures"
                self._state = CircuitState.OPEN

        if opened:
            logger.warning(opened)
