"""Exceptions raised by the market data subsystem."""

from __future__ import annotations


class MarketDataError(Exception):
    """Base class for all market data errors."""


class ProviderError(MarketDataError):
    """A single upstream quote request failed."""

    def __init__(self, symbol: str, message: str) -> None:
        self.symbol = symbol
        self.message = message
        super().__init__(f"{symbol}: {message}")


class ProviderTimeout(ProviderError):
    """The upstream did not answer within the fetch timeout."""


class RateLimitExceeded(MarketDataError):
    """The hourly request budget is exhausted."""


class FetchFailed(MarketDataError):
    """Every attempt for a symbol failed. The last attempt error is the cause."""

    def __init__(self, symbol: str, cause: ProviderError, attempts: int) -> None:
        self.symbol = symbol
        self.cause = cause
        self.attempts = attempts
        super().__init__(f"{symbol}: giving up after {attempts} attempt(s): {cause.message}")


class InitializationFailed(MarketDataError):
    """The aggregation manager could not be started."""
