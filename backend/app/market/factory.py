"""Factories that wire the market data subsystem together."""

from __future__ import annotations

import logging

from .cache import FreshnessCache
from .config import MarketDataConfig
from .fallback import FallbackGenerator
from .fetcher import RetryingFetcher
from .interface import QuoteProvider
from .manager import AggregationManager
from .rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


def create_quote_provider(config: MarketDataConfig) -> QuoteProvider:
    """Pick the upstream based on configuration.

    - massive_api_key set and non-empty -> MassiveQuoteProvider (real market data)
    - Otherwise -> SimulatedQuoteProvider (GBM simulation)
    """
    api_key = config.massive_api_key.strip()

    if api_key:
        from .massive_client import MassiveQuoteProvider

        logger.info("Quote provider: Massive API (real data)")
        return MassiveQuoteProvider(api_key=api_key)
    else:
        from .simulator import SimulatedQuoteProvider

        logger.info("Quote provider: GBM Simulator")
        return SimulatedQuoteProvider()


def create_market_data_manager(
    config: MarketDataConfig | None = None,
    provider: QuoteProvider | None = None,
) -> AggregationManager:
    """Build one AggregationManager for the hosting process.

    Returns an uninitialized manager. Caller must await manager.initialize(symbols)
    and, on shutdown, manager.teardown().
    """
    config = config or MarketDataConfig.from_env()
    provider = provider or create_quote_provider(config)

    rate_limiter = RateLimiter(
        max_per_minute=config.max_requests_per_minute,
        max_per_hour=config.max_requests_per_hour,
        min_spacing=config.min_request_spacing,
    )
    fetcher = RetryingFetcher(
        provider,
        rate_limiter,
        timeout=config.fetch_timeout,
        max_retries=config.max_retries,
        retry_delay=config.retry_delay,
    )
    return AggregationManager(
        fetcher=fetcher,
        cache=FreshnessCache(ttl=config.cache_ttl),
        fallback=FallbackGenerator(
            default_price=config.fallback_default_price,
            volume=config.fallback_volume,
        ),
        poll_interval=config.poll_interval,
        default_symbols=config.default_symbols,
    )
