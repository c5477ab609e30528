"""Fixtures for market data tests.

Provides a scripted QuoteProvider and a manager factory wired to a fake clock,
so tests control upstream behavior and time without network or real sleeps.
"""

from collections.abc import Callable
from typing import Any

import pytest
import pytest_asyncio

from app.market.cache import FreshnessCache
from app.market.fallback import FallbackGenerator
from app.market.fetcher import RetryingFetcher
from app.market.interface import QuoteProvider
from app.market.manager import AggregationManager
from app.market.rate_limiter import RateLimiter


def payload(price: float, change: float = 0.0, change_percent: float = 0.0, volume: int = 1000) -> dict:
    """A well-formed provider payload."""
    return {
        "price": price,
        "change": change,
        "changePercent": change_percent,
        "volume": volume,
        "timestamp": 1_700_000_000,
    }


class ScriptedProvider(QuoteProvider):
    """QuoteProvider whose answer per symbol is set by the test.

    A response may be a payload, an exception instance (raised), or a callable
    taking the symbol. Symbols without a response raise ConnectionError.
    """

    name = "scripted"

    def __init__(self, responses: dict[str, Any] | None = None) -> None:
        self.responses: dict[str, Any] = dict(responses or {})
        self.calls: list[str] = []
        self.closes = 0

    async def quote(self, symbol: str) -> Any:
        self.calls.append(symbol)
        response = self.responses.get(symbol, ConnectionError(f"{symbol} unavailable"))
        if isinstance(response, BaseException):
            raise response
        if callable(response):
            return response(symbol)
        return response

    async def close(self) -> None:
        self.closes += 1

    def set_quote(self, symbol: str, price: float, change: float = 0.0, change_percent: float = 0.0) -> None:
        self.responses[symbol] = payload(price, change, change_percent)

    def fail(self, symbol: str, error: BaseException | None = None) -> None:
        self.responses[symbol] = error or ConnectionError(f"{symbol} unavailable")

    def call_count(self, symbol: str) -> int:
        return self.calls.count(symbol)


@pytest.fixture
def provider():
    return ScriptedProvider()


@pytest_asyncio.fixture
async def make_manager(clock) -> Callable[..., AggregationManager]:
    """Build an AggregationManager on the fake clock with no retry or spacing delays.

    The poll interval is long and uses real sleep, so the background loop never
    fires during a test; ticks are driven with manager.refresh().
    """
    managers: list[AggregationManager] = []

    def _make(
        provider: QuoteProvider,
        *,
        max_retries: int = 0,
        max_per_hour: int = 800,
        cache_ttl: float = 90.0,
        poll_interval: float = 3600.0,
        default_symbols: tuple[str, ...] = ("AAPL", "MSFT"),
    ) -> AggregationManager:
        limiter = RateLimiter(
            max_per_minute=1000,
            max_per_hour=max_per_hour,
            min_spacing=0.0,
            clock=clock,
            sleep=clock.sleep,
        )
        fetcher = RetryingFetcher(
            provider,
            limiter,
            timeout=1.0,
            max_retries=max_retries,
            retry_delay=0.0,
            clock=clock,
            sleep=clock.sleep,
        )
        manager = AggregationManager(
            fetcher=fetcher,
            cache=FreshnessCache(ttl=cache_ttl, clock=clock),
            fallback=FallbackGenerator(seed=7, clock=clock),
            poll_interval=poll_interval,
            default_symbols=default_symbols,
            clock=clock,
        )
        managers.append(manager)
        return manager

    yield _make
    for manager in managers:
        await manager.teardown()
