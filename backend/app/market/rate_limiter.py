"""Minute/hour request budget for the upstream quote provider."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from .errors import RateLimitExceeded

logger = logging.getLogger(__name__)

MINUTE = 60.0
HOUR = 3600.0


class RateLimiter:
    """Gates upstream requests against a per-minute and per-hour budget.

    Admission order:
      1. Roll the hour window if it has elapsed.
      2. Hour budget exhausted -> RateLimitExceeded immediately (no queuing).
      3. Minute budget exhausted -> sleep until the minute window ends.
      4. Sleep out whatever remains of the minimum spacing since the last request.
      5. Count the request and grant it.

    Each window opens at the first admission counted in it and lasts a
    minute or an hour from there.

    Concurrent callers are serialized, so no two admissions are granted
    closer together than ``min_spacing``.
    """

    def __init__(
        self,
        max_per_minute: int = 20,
        max_per_hour: int = 800,
        min_spacing: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._max_per_minute = max_per_minute
        self._max_per_hour = max_per_hour
        self._min_spacing = min_spacing
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()

        now = clock()
        self._minute_count = 0
        self._hour_count = 0
        self._minute_window_start = now
        self._hour_window_start = now
        self._last_request: float | None = None

    async def acquire(self) -> None:
        """Wait until one more upstream request is allowed.

        Raises RateLimitExceeded if the hourly budget is spent.
        """
        async with self._lock:
            now = self._clock()

            if now - self._hour_window_start >= HOUR:
                self._hour_count = 0
                self._hour_window_start = now

            if self._hour_count >= self._max_per_hour:
                retry_in = HOUR - (now - self._hour_window_start)
                logger.warning("Hourly request budget exhausted, resets in %.0fs", retry_in)
                raise RateLimitExceeded(
                    f"hourly budget of {self._max_per_hour} requests exhausted"
                )

            if now - self._minute_window_start >= MINUTE:
                self._minute_count = 0
                self._minute_window_start = now

            if self._minute_count >= self._max_per_minute:
                wait = MINUTE - (now - self._minute_window_start)
                if wait > 0:
                    logger.debug("Minute budget reached, waiting %.1fs", wait)
                    await self._sleep(wait)
                self._minute_count = 0
                self._minute_window_start = self._clock()

            if self._last_request is not None:
                elapsed = self._clock() - self._last_request
                if elapsed < self._min_spacing:
                    await self._sleep(self._min_spacing - elapsed)

            now = self._clock()
            if self._minute_count == 0:
                self._minute_window_start = now
            if self._hour_count == 0:
                self._hour_window_start = now
            self._minute_count += 1
            self._hour_count += 1
            self._last_request = now

    def update_limits(
        self,
        max_per_minute: int | None = None,
        max_per_hour: int | None = None,
        min_spacing: float | None = None,
    ) -> None:
        """Change budgets on a live limiter. Counters are kept."""
        if max_per_minute is not None:
            if max_per_minute < 1:
                raise ValueError("max_per_minute must be at least 1")
            self._max_per_minute = max_per_minute
        if max_per_hour is not None:
            if max_per_hour < 1:
                raise ValueError("max_per_hour must be at least 1")
            self._max_per_hour = max_per_hour
        if min_spacing is not None:
            if min_spacing < 0:
                raise ValueError("min_spacing must not be negative")
            self._min_spacing = min_spacing

    def status(self) -> dict:
        """Current counters and budgets."""
        now = self._clock()
        minute_count = 0 if now - self._minute_window_start >= MINUTE else self._minute_count
        hour_count = 0 if now - self._hour_window_start >= HOUR else self._hour_count
        return {
            "requests_this_minute": minute_count,
            "requests_this_hour": hour_count,
            "max_per_minute": self._max_per_minute,
            "max_per_hour": self._max_per_hour,
        }
