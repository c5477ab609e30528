"""Abstract interface for upstream quote providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class QuoteProvider(ABC):
    """Contract for an upstream quote source.

    Providers are treated as unreliable: they may raise anything, hang, or
    return partially filled payloads. Callers never use a provider directly
    for prices. RetryingFetcher wraps it with a timeout, retries and the
    rate limiter, and Quote.from_provider turns the raw payload into a Quote.

    Lifecycle:
        provider = create_quote_provider(config)
        payload = await provider.quote("AAPL")
        # {"price": 190.5, "change": 1.2, "changePercent": 0.63,
        #  "volume": 51234000, "timestamp": 1707580800}
        await provider.close()
    """

    name: str = "provider"

    @abstractmethod
    async def quote(self, symbol: str) -> Any:
        """Fetch the latest quote for one symbol.

        Returns a mapping with ``price``, ``change``, ``changePercent``,
        ``volume`` and ``timestamp`` keys. Any of them may be missing.
        Raises on failure.
        """

    async def close(self) -> None:
        """Release resources. Safe to call multiple times."""
