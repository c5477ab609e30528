"""Market data aggregation subsystem.

Public API:
    Quote                      - Immutable quote with quality/source tags
    QualityTag, SourceTag      - live/cached/mock and provider/cache/fallback
    MarketDataConfig           - Polling, caching and rate limit tunables
    QuoteProvider              - Abstract upstream quote capability
    AggregationManager         - Tracks symbols, polls, serves snapshots
    create_market_data_manager - Factory that wires a manager for one process
    create_quote_provider      - Factory that selects Massive or the simulator
    create_stream_router       - FastAPI router factory for the SSE endpoint
"""

from .config import MarketDataConfig
from .errors import (
    FetchFailed,
    InitializationFailed,
    MarketDataError,
    ProviderError,
    ProviderTimeout,
    RateLimitExceeded,
)
from .factory import create_market_data_manager, create_quote_provider
from .interface import QuoteProvider
from .manager import AggregationManager
from .models import QualityTag, Quote, SourceTag
from .stream import create_stream_router

__all__ = [
    "Quote",
    "QualityTag",
    "SourceTag",
    "MarketDataConfig",
    "QuoteProvider",
    "AggregationManager",
    "create_market_data_manager",
    "create_quote_provider",
    "create_stream_router",
    "MarketDataError",
    "ProviderError",
    "ProviderTimeout",
    "RateLimitExceeded",
    "FetchFailed",
    "InitializationFailed",
]
