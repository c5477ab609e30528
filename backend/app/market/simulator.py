"""GBM-based simulated quote provider for running without an API key."""

from __future__ import annotations

import logging
import math
import random
import time
from collections.abc import Callable

import numpy as np

from .interface import QuoteProvider
from .seed_prices import (
    DEFAULT_DRIFT,
    DEFAULT_VOLATILITY,
    REFERENCE_PRICES,
    REFERENCE_VOLUMES,
    VOLATILITY,
)

logger = logging.getLogger(__name__)


class SimulatedQuoteProvider(QuoteProvider):
    """QuoteProvider that walks each symbol's price with geometric Brownian motion.

    Math:
        S(t+dt) = S(t) * exp((mu - sigma^2/2) * dt + sigma * sqrt(dt) * Z)

    dt is the wall time since the symbol was last quoted, expressed as a
    fraction of a trading year, so moves scale naturally with the poll
    interval. Change and percent change are reported against the price the
    symbol started the session at.
    """

    # 252 trading days * 6.5 hours/day * 3600 seconds/hour
    TRADING_SECONDS_PER_YEAR = 252 * 6.5 * 3600

    name = "simulator"

    def __init__(
        self,
        event_probability: float = 0.001,
        seed: int | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._event_prob = event_probability
        self._rng = np.random.default_rng(seed)
        self._random = random.Random(seed)
        self._clock = clock
        self._open: dict[str, float] = {}
        self._prices: dict[str, float] = {}
        self._volumes: dict[str, int] = {}
        self._last_step: dict[str, float] = {}

    async def quote(self, symbol: str) -> dict:
        now = self._clock()
        if symbol not in self._prices:
            self._seed(symbol, now)
        else:
            self._step(symbol, now)

        price = round(self._prices[symbol], 2)
        open_price = self._open[symbol]
        change = price - open_price
        return {
            "price": price,
            "change": round(change, 2),
            "changePercent": round(change / open_price * 100, 4),
            "volume": self._volumes[symbol],
            "timestamp": now,
        }

    def _seed(self, symbol: str, now: float) -> None:
        price = REFERENCE_PRICES.get(symbol)
        if price is None:
            price = self._random.uniform(50.0, 300.0)
        self._open[symbol] = price
        self._prices[symbol] = price
        self._volumes[symbol] = 0
        self._last_step[symbol] = now

    def _step(self, symbol: str, now: float) -> None:
        elapsed = max(now - self._last_step[symbol], 0.0)
        self._last_step[symbol] = now
        if elapsed == 0:
            return

        dt = elapsed / self.TRADING_SECONDS_PER_YEAR
        sigma = VOLATILITY.get(symbol, DEFAULT_VOLATILITY)
        drift = (DEFAULT_DRIFT - 0.5 * sigma**2) * dt
        diffusion = sigma * math.sqrt(dt) * float(self._rng.standard_normal())
        self._prices[symbol] *= math.exp(drift + diffusion)

        # Occasional news-style jump
        if self._random.random() < self._event_prob:
            shock = self._random.uniform(0.02, 0.05) * self._random.choice([-1, 1])
            self._prices[symbol] *= 1 + shock
            logger.debug("Simulated %+.1f%% jump on %s", shock * 100, symbol)

        daily = REFERENCE_VOLUMES.get(symbol, 1_000_000)
        share_of_day = min(elapsed / (6.5 * 3600), 1.0)
        self._volumes[symbol] += int(daily * share_of_day * float(self._rng.uniform(0.5, 1.5)))
