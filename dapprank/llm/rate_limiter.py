"""Sliding-window rate limiter shared by every classifier call in a run."""
import asyncio
import logging
import math
import time
from collections import deque
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60.0
WINDOW_MARGIN_SECONDS = 0.1
ERROR_MEMORY_SECONDS = 120.0
ERROR_COOLDOWN_SECONDS = 5.0


class RateLimiter:
    """Gate each request passes through before reaching the classifier.

    Enforces at most ``max_requests_per_minute`` requests in any 60 second
    window, a minimum spacing of ``60 / limit * 1.1`` seconds between
    requests, and a short cooldown after the provider rejected a request.
    """

    def __init__(
        self,
        max_requests_per_minute: int = 50,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_requests_per_minute < 1:
            raise ValueError("max_requests_per_minute must be at least 1")
        self.max_requests_per_minute = max_requests_per_minute
        self.min_delay = math.ceil(60000 / max_requests_per_minute * 1.1) / 1000
        self._clock = clock
        self._sleep = sleep
        self._timestamps: deque[float] = deque()
        self._last_rate_limit_error: float | None = None
        self._lock = asyncio.Lock()
        logger.debug(
            "Rate limiter initialized: %d requests/min, %.2fs between requests",
            max_requests_per_minute, self.min_delay,
        )

    def on_rate_limit_error(self) -> None:
        self._last_rate_limit_error = self._clock()

    def _prune(self, now: float) -> None:
        while self._timestamps and now - self._timestamps[0] >= WINDOW_SECONDS:
            self._timestamps.popleft()

    async def wait_for_slot(self) -> None:
        async with self._lock:
            now = self._clock()
            if self._last_rate_limit_error is not None:
                since_error = now - self._last_rate_limit_error
                if since_error < ERROR_MEMORY_SECONDS:
                    extra = max(0.0, ERROR_COOLDOWN_SECONDS - since_error)
                    if extra > 0:
                        logger.debug("Rate limit: waiting %.1fs after a rejected request", extra)
                        await self._sleep(extra)
                        now = self._clock()

            self._prune(now)
            if len(self._timestamps) >= self.max_requests_per_minute:
                wait = WINDOW_SECONDS - (now - self._timestamps[0]) + WINDOW_MARGIN_SECONDS
                if wait > 0:
                    logger.debug(
                        "Rate limit: waiting %.1fs (%d/%d requests in last minute)",
                        wait, len(self._timestamps), self.max_requests_per_minute,
                    )
                    await self._sleep(wait)
                    now = self._clock()

            if self._timestamps:
                since_last = now - self._timestamps[-1]
                if since_last < self.min_delay:
                    await self._sleep(self.min_delay - since_last)

            self._timestamps.append(self._clock())

    def get_current_count(self) -> int:
        self._prune(self._clock())
        return len(self._timestamps)
