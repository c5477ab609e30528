"""Configuration for the market data subsystem."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

DEFAULT_SYMBOLS: tuple[str, ...] = ("^GSPC", "AAPL", "GOOGL", "MSFT", "TSLA")


@dataclass(frozen=True)
class MarketDataConfig:
    """Tunables for polling, caching, rate limiting and retries.

    Durations are in seconds. The defaults follow the upstream's recommended
    refresh cadence of 90s and keep well inside a free-tier request budget.
    """

    poll_interval: float = 90.0
    cache_ttl: float = 90.0
    max_requests_per_minute: int = 20
    max_requests_per_hour: int = 800
    min_request_spacing: float = 3.0
    fetch_timeout: float = 8.0
    max_retries: int = 2
    retry_delay: float = 5.0
    default_symbols: tuple[str, ...] = DEFAULT_SYMBOLS
    fallback_default_price: float = 100.0
    fallback_volume: int = 1_000_000
    massive_api_key: str = field(default="", repr=False)

    def __post_init__(self) -> None:
        for name in ("poll_interval", "cache_ttl", "fetch_timeout"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        for name in ("min_request_spacing", "retry_delay"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")
        if self.max_requests_per_minute < 1 or self.max_requests_per_hour < 1:
            raise ValueError("request budgets must be at least 1")
        if self.max_retries < 0:
            raise ValueError("max_retries must not be negative")
        if self.fallback_default_price <= 0:
            raise ValueError("fallback_default_price must be positive")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> MarketDataConfig:
        """Build a config from MARKET_DATA_* environment variables.

        Unset or blank variables keep their defaults.
        """
        env = os.environ if environ is None else environ
        kwargs: dict = {}

        floats = {
            "MARKET_DATA_POLL_INTERVAL": "poll_interval",
            "MARKET_DATA_CACHE_TTL": "cache_ttl",
            "MARKET_DATA_MIN_REQUEST_SPACING": "min_request_spacing",
            "MARKET_DATA_FETCH_TIMEOUT": "fetch_timeout",
            "MARKET_DATA_RETRY_DELAY": "retry_delay",
        }
        ints = {
            "MARKET_DATA_MAX_REQUESTS_PER_MINUTE": "max_requests_per_minute",
            "MARKET_DATA_MAX_REQUESTS_PER_HOUR": "max_requests_per_hour",
            "MARKET_DATA_MAX_RETRIES": "max_retries",
        }

        for var, name in floats.items():
            raw = env.get(var, "").strip()
            if raw:
                kwargs[name] = _parse(var, raw, float)
        for var, name in ints.items():
            raw = env.get(var, "").strip()
            if raw:
                kwargs[name] = _parse(var, raw, int)

        raw_symbols = env.get("MARKET_DATA_DEFAULT_SYMBOLS", "")
        symbols = tuple(s.strip().upper() for s in raw_symbols.split(",") if s.strip())
        if symbols:
            kwargs["default_symbols"] = symbols

        kwargs["massive_api_key"] = env.get("MASSIVE_API_KEY", "").strip()
        return cls(**kwargs)


def _parse(var: str, raw: str, kind: type) -> float | int:
    try:
        return kind(raw)
    except ValueError:
        raise ValueError(f"{var}={raw!r} is not a valid {kind.__name__}") from None
