"""Rate-limited, retrying wrapper around a QuoteProvider."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from .errors import FetchFailed, ProviderError, ProviderTimeout
from .interface import QuoteProvider
from .models import Quote
from .rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


class RetryingFetcher:
    """Fetches live quotes with a per-attempt timeout and fixed-delay retries.

    Each attempt first takes an admission from the RateLimiter. Timeouts and
    provider exceptions count as failed attempts; after ``max_retries``
    retries the last error is raised wrapped in FetchFailed.
    RateLimitExceeded is never retried and propagates unchanged.
    """

    def __init__(
        self,
        provider: QuoteProvider,
        rate_limiter: RateLimiter,
        timeout: float = 8.0,
        max_retries: int = 2,
        retry_delay: float = 5.0,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._provider = provider
        self._limiter = rate_limiter
        self._timeout = timeout
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._clock = clock
        self._sleep = sleep

    @property
    def provider(self) -> QuoteProvider:
        return self._provider

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._limiter

    async def fetch(self, symbol: str) -> Quote:
        attempts = 0
        while True:
            await self._limiter.acquire()
            attempts += 1
            try:
                return await self._attempt(symbol)
            except ProviderError as error:
                if attempts > self._max_retries:
                    raise FetchFailed(symbol, error, attempts) from error
                logger.warning(
                    "Fetch attempt %d for %s failed (%s), retrying in %.1fs",
                    attempts,
                    symbol,
                    error.message,
                    self._retry_delay,
                )
            await self._sleep(self._retry_delay)

    async def _attempt(self, symbol: str) -> Quote:
        """One provider call under the timeout. All failures become ProviderError."""
        try:
            payload = await asyncio.wait_for(self._provider.quote(symbol), self._timeout)
        except asyncio.TimeoutError:
            raise ProviderTimeout(symbol, f"no answer within {self._timeout:.1f}s") from None
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(symbol, f"{type(e).__name__}: {e}") from e
        return Quote.from_provider(symbol, payload, fetched_at=self._clock())
