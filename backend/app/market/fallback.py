"""Synthetic quotes for when neither the provider nor the cache can answer."""

from __future__ import annotations

import math
import time
from collections.abc import Callable, Mapping

import numpy as np

from .models import QualityTag, Quote, SourceTag
from .seed_prices import REFERENCE_PRICES


class FallbackGenerator:
    """Produces a well-formed mock quote for any symbol. Never raises.

    The price is the symbol's reference price nudged by at most
    ``max_change_percent`` in either direction, so a dashboard still shows
    something plausible while the provider is down.
    """

    def __init__(
        self,
        reference_prices: Mapping[str, float] | None = None,
        default_price: float = 100.0,
        volume: int = 1_000_000,
        max_change_percent: float = 0.5,
        seed: int | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._prices = dict(REFERENCE_PRICES if reference_prices is None else reference_prices)
        self._default_price = default_price
        self._volume = max(int(volume), 0)
        self._max_change_percent = abs(max_change_percent)
        self._rng = np.random.default_rng(seed)
        self._clock = clock

    def reference_price(self, symbol: str) -> float:
        price = self._prices.get(symbol, self._default_price)
        if not math.isfinite(price) or price <= 0:
            return self._default_price
        return price

    def generate(self, symbol: str) -> Quote:
        base = self.reference_price(symbol)
        pct = float(self._rng.uniform(-self._max_change_percent, self._max_change_percent))
        price = round(base * (1 + pct / 100), 2)
        now = self._clock()
        return Quote(
            symbol=symbol,
            price=price,
            change=round(price - base, 2),
            change_percent=round(pct, 4),
            volume=self._volume,
            quote_timestamp=now,
            fetched_at=now,
            quality=QualityTag.MOCK,
            source=SourceTag.FALLBACK,
        )
