"""Token bucket rate limiter for outbound API requests.

Tokens refill continuously from the time elapsed since the last refill
rather than in fixed ticks, so fractional tokens accumulate between calls.
"""

import asyncio
import math
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from exa_websets.app.core.logging import get_logger

logger = get_logger(__name__)

Clock = Callable[[], float]


def monotonic_ms() -> float:
    """Default clock: monotonic time in milliseconds."""
    return time.monotonic() * 1000.0


@dataclass
class RateLimiterState:
    """Mutable bucket state owned by one RateLimiter."""

    tokens: float
    last_refill: float


class RateLimiter:
    """Token bucket rate limiter.

    The bucket starts full at ``burst_size`` tokens and refills at
    ``requests_per_second``. ``requests_per_second`` must be positive; that
    is enforced by the settings loader, not here.

    Refill, check and decrement happen inside one lock so concurrent callers
    never double-spend a token. The lock is never held across an await.

    Usage:
        limiter = RateLimiter(requests_per_second=10)
        await limiter.wait_for_token()
        # make the request
    """

    def __init__(
        self,
        requests_per_second: float,
        burst_size: Optional[float] = None,
        clock: Optional[Clock] = None,
    ):
        """Initialize the rate limiter.

        Args:
            requests_per_second: Steady state refill rate
            burst_size: Bucket capacity (default: 2x requests_per_second)
            clock: Callable returning the current time in milliseconds
        """
        self._clock = clock or monotonic_ms
        self._lock = threading.Lock()
        self.requests_per_second = requests_per_second
        self.burst_size = burst_size if burst_size is not None else requests_per_second * 2
        self._state = RateLimiterState(tokens=self.burst_size, last_refill=self._clock())

        logger.info(
            f"Rate limiter initialized: {self.requests_per_second} req/s, burst: {self.burst_size}"
        )

    async def acquire(self) -> bool:
        """Try to take one token without waiting.

        Returns:
            True if a token was consumed, False if the bucket is empty
        """
        return self.try_acquire()

    def try_acquire(self) -> bool:
        """Synchronous form of :meth:`acquire`."""
        with self._lock:
            self._refill()
            if self._state.tokens >= 1:
                self._state.tokens -= 1
                return True
            return False

    async def wait_for_token(self) -> None:
        """Suspend until a token has been consumed.

        There is no upper bound on the wait; each round sleeps for exactly
        the time the next token needs.
        """
        while not self.try_acquire():
            wait_ms = self.get_wait_time()
            logger.debug(f"Rate limited, waiting {wait_ms}ms for next token")
            await asyncio.sleep(wait_ms / 1000.0)

    def get_available_tokens(self) -> int:
        """Return the number of whole tokens available right now."""
        with self._lock:
            self._refill()
            return math.floor(self._state.tokens)

    def get_wait_time(self) -> int:
        """Return milliseconds until the next token becomes available."""
        with self._lock:
            self._refill()
            return self._wait_time_locked()

    def reset(self) -> None:
        """Refill the bucket and restart the refill clock."""
        with self._lock:
            self._reset_locked()

    def update_options(
        self,
        requests_per_second: Optional[float] = None,
        burst_size: Optional[float] = None,
    ) -> None:
        """Change the rate and/or capacity and reset the bucket.

        When only the rate changes, the burst size follows it at 2x.

        Args:
            requests_per_second: New refill rate
            burst_size: New bucket capacity
        """
        with self._lock:
            if requests_per_second is not None:
                self.requests_per_second = requests_per_second
            if burst_size is not None:
                self.burst_size = burst_size
            elif requests_per_second is not None:
                self.burst_size = requests_per_second * 2
            self._reset_locked()

        logger.info(
            f"Rate limiter updated: {self.requests_per_second} req/s, burst: {self.burst_size}"
        )

    def get_stats(self) -> Dict[str, Any]:
        """Snapshot of configuration and current bucket level."""
        with self._lock:
            self._refill()
            return {
                "requestsPerSecond": self.requests_per_second,
                "burstSize": self.burst_size,
                "availableTokens": math.floor(self._state.tokens),
                "waitTime": self._wait_time_locked(),
            }

    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self._state.last_refill
        if elapsed <= 0:
            return

        tokens_to_add = (elapsed / 1000.0) * self.requests_per_second
        self._state.tokens = min(self._state.tokens + tokens_to_add, self.burst_size)
        self._state.last_refill = now

    def _wait_time_locked(self) -> int:
        if self._state.tokens >= 1:
            return 0
        tokens_needed = 1 - self._state.tokens
        ms_per_token = 1000.0 / self.requests_per_second
        return math.ceil(tokens_needed * ms_per_token)

    def _reset_locked(self) -> None:
        self._state = RateLimiterState(tokens=self.burst_size, last_refill=self._clock())
