"""
Token-window rate limiter with exponential backoff.

All reads and writes of the timestamp window and failure counters happen
under one ``asyncio.Lock`` so concurrent callers are serialized.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..config.settings import RateLimitConfig

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 1.0


class RateLimiter:
    """Gate for external-service calls.

    Args:
        config: Window ceiling and backoff parameters
        clock: Monotonic clock in seconds
        sleep: Awaitable sleep, injectable for tests
    """

    def __init__(
        self,
        config: Optional[RateLimitConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.config = config or RateLimitConfig()
        self.clock = clock
        self.sleep = sleep
        self.timestamps: List[float] = []
        self.failure_count = 0
        self.last_failure_at: Optional[float] = None
        self.current_delay = self.config.initial_request_delay
        self._lock = asyncio.Lock()

    def _prune(self, now: float) -> None:
        self.timestamps = [t for t in self.timestamps if now - t < WINDOW_SECONDS]

    async def wait_if_needed(self) -> None:
        """Block until a request may be issued, then record it."""
        async with self._lock:
            if self.failure_count and self.last_failure_at is not None:
                backoff = self.config.backoff_delay(self.failure_count)
                remaining = backoff - (self.clock() - self.last_failure_at)
                if remaining > 0:
                    logger.debug(f"Backoff active ({self.failure_count} failures), waiting {remaining:.2f}s")
                    await self.sleep(remaining)

            if self.timestamps:
                since_last = self.clock() - self.timestamps[-1]
                if since_last < self.current_delay:
                    await self.sleep(self.current_delay - since_last)

            while True:
                now = self.clock()
                self._prune(now)
                if len(self.timestamps) < self.config.requests_per_second:
                    break
                wait = WINDOW_SECONDS - (now - self.timestamps[0])
                await self.sleep(max(wait, 0.001))

            self.timestamps.append(self.clock())

    def can_proceed(self) -> bool:
        """Non-blocking check that ignores the adaptive spacing."""
        now = self.clock()
        self._prune(now)
        if self.failure_count and self.last_failure_at is not None:
            if now - self.last_failure_at < self.config.backoff_delay(self.failure_count):
                return False
        return len(self.timestamps) < self.config.requests_per_second

    def record_success(self) -> None:
        self.failure_count = 0
        self.last_failure_at = None

    def record_failure(self, error: Optional[Exception] = None) -> None:
        self.failure_count += 1
        self.last_failure_at = self.clock()
        logger.warning(
            f"Recorded failure #{self.failure_count}"
            + (f": {error}" if error else "")
            + f", next backoff {self.config.backoff_delay(self.failure_count):.1f}s"
        )

    def ease_delay(self) -> float:
        """Multiplicative decrease after a successful call."""
        self.current_delay = max(self.current_delay * self.config.ease_factor,
                                 self.config.min_request_delay)
        return self.current_delay

    def grow_delay(self) -> float:
        """Multiplicative increase after a rate-limit response."""
        self.current_delay = min(self.current_delay * self.config.grow_factor,
                                 self.config.max_request_delay)
        return self.current_delay

    def requests_in_window(self) -> int:
        now = self.clock()
        return sum(1 for t in self.timestamps if now - t < WINDOW_SECONDS)

    def state(self) -> Dict[str, Any]:
        return {
            'requests_in_window': self.requests_in_window(),
            'requests_per_second': self.config.requests_per_second,
            'failure_count': self.failure_count,
            'backoff_delay': self.config.backoff_delay(self.failure_count),
            'current_delay': round(self.current_delay, 3),
        }
