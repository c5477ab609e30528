"""Polling aggregation manager: the public face of the market data subsystem."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterable
from enum import Enum
from threading import Lock

from .cache import FreshnessCache
from .errors import FetchFailed, InitializationFailed, RateLimitExceeded
from .fallback import FallbackGenerator
from .fetcher import RetryingFetcher
from .hub import Callback, Subscription, SubscriptionHub
from .models import QualityTag, Quote
from .scheduler import PeriodicTask
from .singleflight import SingleFlight

logger = logging.getLogger(__name__)

_INITIALIZE = "initialize"


class ManagerState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


def normalize_symbols(symbols: Iterable[str]) -> list[str]:
    """Strip and upper-case symbols, dropping blanks and duplicates (order kept)."""
    seen: dict[str, None] = {}
    for symbol in symbols:
        value = str(symbol).strip().upper()
        if value:
            seen.setdefault(value, None)
    return list(seen)


class AggregationManager:
    """Owns the tracked symbol set and the latest-quote snapshot.

    Every tracked symbol is resolved through a three-tier chain: a live fetch
    (rate limited, retried), then the freshness cache, then a synthetic quote.
    A tick therefore always leaves each symbol with *some* quote, and provider
    outages only show up as a lower quality tag.

    Readers (get_market_data, get_symbol_data, get_status) see the snapshot
    as of the last committed tick or symbol addition. Subscribers get the full
    snapshot after every tick.

    Lifecycle:
        manager = create_market_data_manager(config)
        await manager.initialize(["AAPL", "MSFT"])
        unsubscribe = manager.subscribe(callback)
        await manager.update_symbols(["AAPL", "TSLA"])
        ...
        await manager.teardown()
    """

    def __init__(
        self,
        fetcher: RetryingFetcher,
        cache: FreshnessCache,
        fallback: FallbackGenerator,
        poll_interval: float = 90.0,
        default_symbols: Iterable[str] = (),
        hub: SubscriptionHub | None = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._fetcher = fetcher
        self._cache = cache
        self._fallback = fallback
        self._hub = hub or SubscriptionHub()
        self._clock = clock
        self._default_symbols = normalize_symbols(default_symbols)
        self._poller = PeriodicTask(poll_interval, self._tick, name="market-data-poller", sleep=sleep)
        self._flight = SingleFlight()

        self._lock = Lock()
        self._snapshot: dict[str, Quote] = {}
        self._tracked: dict[str, None] = {}  # Insertion-ordered set
        self._pending_initial: dict[str, None] = {}

        self._state = ManagerState.UNINITIALIZED
        self._refreshing = False
        self._generation = 0  # Bumped on teardown; stale work checks it before committing
        self._last_tick: float | None = None

    # --- Lifecycle ---

    @property
    def state(self) -> ManagerState:
        return self._state

    @property
    def is_initialized(self) -> bool:
        return self._state is ManagerState.READY

    async def initialize(self, symbols: Iterable[str] = ()) -> None:
        """Fetch the initial symbols once, then start the poll loop.

        Idempotent. Concurrent callers share one initialization and all see
        its outcome; symbols from every caller end up tracked. Raises
        InitializationFailed if startup fails, after which it may be retried.
        """
        if self._state is ManagerState.READY:
            return

        requested = normalize_symbols(symbols)
        for symbol in requested:
            self._pending_initial.setdefault(symbol, None)

        await self._flight.do(_INITIALIZE, self._initialize)

        # Symbols from callers that joined after the initial fetch started
        missing = [s for s in requested if s not in self._tracked]
        if missing and self._state is ManagerState.READY:
            await self._add_symbols(missing)

    async def teardown(self) -> None:
        """Stop polling and drop all state. Safe to call multiple times."""
        self._generation += 1
        self._flight.clear()
        await self._poller.stop()
        with self._lock:
            self._snapshot.clear()
            self._tracked.clear()
        self._pending_initial.clear()
        self._hub.clear()
        self._state = ManagerState.UNINITIALIZED
        self._refreshing = False
        self._last_tick = None

        provider = self._fetcher.provider
        try:
            await provider.close()
        except Exception:
            logger.exception("Error closing quote provider %s", provider.name)
        logger.info("Market data manager torn down")

    # --- Read path ---

    def get_market_data(self, symbols: Iterable[str]) -> list[Quote]:
        """Snapshot quotes for the requested symbols. Unknown symbols are omitted."""
        wanted = normalize_symbols(symbols)
        with self._lock:
            return [self._snapshot[s] for s in wanted if s in self._snapshot]

    def get_all_market_data(self) -> list[Quote]:
        with self._lock:
            return list(self._snapshot.values())

    async def get_symbol_data(self, symbol: str) -> Quote | None:
        """Snapshot quote for a symbol, fetching and tracking it if it is missing."""
        normalized = normalize_symbols([symbol])
        if not normalized:
            return None
        symbol = normalized[0]

        with self._lock:
            quote = self._snapshot.get(symbol)
        if quote is not None:
            return quote

        logger.info("Symbol %s not in snapshot, fetching", symbol)
        try:
            if self._state is ManagerState.READY:
                await self._flight.do(("symbol", symbol), lambda: self._add_symbols([symbol]))
            else:
                await self.initialize([symbol])
        except Exception:
            logger.exception("Could not fetch data for %s", symbol)
            return None

        with self._lock:
            return self._snapshot.get(symbol)

    def get_tracked_symbols(self) -> list[str]:
        with self._lock:
            return list(self._tracked)

    # --- Write path ---

    async def update_symbols(self, symbols: Iterable[str]) -> None:
        """Replace the tracked set.

        Removed symbols leave the snapshot immediately. Added symbols are
        fetched right away and subscribers receive just those new quotes.
        Before the manager is ready this is the same as initialize(symbols).
        """
        wanted = normalize_symbols(symbols)
        if self._state is not ManagerState.READY:
            await self.initialize(wanted)
            return

        with self._lock:
            removed = [s for s in self._tracked if s not in wanted]
            added = [s for s in wanted if s not in self._tracked]
            for symbol in removed:
                del self._tracked[symbol]
                self._snapshot.pop(symbol, None)

        if removed:
            logger.info("Stopped tracking %s", ", ".join(removed))
        if not added:
            return

        logger.info("Adding symbols %s", ", ".join(added))
        try:
            await self._add_symbols(added)
        except Exception:
            logger.exception("Error adding symbols %s", ", ".join(added))

    # --- Subscriptions ---

    def subscribe(self, callback: Callback) -> Subscription:
        """Register for snapshot updates. Returns a handle; call it to unsubscribe.

        If data is already available the callback is invoked once right away
        with the current snapshot.
        """
        subscription = self._hub.register(callback)
        current = self.get_all_market_data()
        if current:
            self._hub.deliver(callback, current)
        return subscription

    # --- Diagnostics ---

    def get_status(self) -> dict:
        with self._lock:
            tracked = len(self._tracked)
        return {
            "state": self._state.value,
            "ready": self._state is ManagerState.READY,
            "refreshing": self._refreshing,
            "tracked_symbol_count": tracked,
            "subscriber_count": len(self._hub),
            "last_tick_timestamp": self._last_tick,
        }

    def get_rate_limit_status(self) -> dict:
        return self._fetcher.rate_limiter.status()

    def get_cache_stats(self) -> dict:
        return self._cache.stats()

    # --- Polling ---

    async def refresh(self) -> None:
        """Run one poll tick now. Skipped if a tick is already running."""
        await self._tick()

    async def _tick(self) -> None:
        if self._state is not ManagerState.READY:
            return
        if self._refreshing:
            logger.warning("Previous market data tick still running, skipping")
            return

        generation = self._generation
        self._refreshing = True
        try:
            symbols = self.get_tracked_symbols()
            quotes = await self._resolve_all(symbols)
            if generation != self._generation:
                logger.info("Manager torn down mid-tick, discarding %d quotes", len(quotes))
                return
            self._commit(quotes)
            self._last_tick = self._clock()
            self._hub.notify_all(self.get_all_market_data())
        finally:
            if generation == self._generation:
                self._refreshing = False

    async def _initialize(self) -> None:
        generation = self._generation
        symbols = list(self._pending_initial) or list(self._default_symbols)
        self._pending_initial.clear()
        self._state = ManagerState.INITIALIZING
        logger.info("Initializing market data manager with %s", ", ".join(symbols))

        try:
            with self._lock:
                for symbol in symbols:
                    self._tracked.setdefault(symbol, None)
            quotes = await self._resolve_all(symbols)
            if generation != self._generation:
                raise InitializationFailed("manager was torn down during initialization")
            self._commit(quotes)
            self._last_tick = self._clock()
            self._poller.start()
        except Exception as e:
            if generation == self._generation:
                with self._lock:
                    self._snapshot.clear()
                    self._tracked.clear()
                self._pending_initial.clear()
                self._state = ManagerState.UNINITIALIZED
            logger.error("Market data manager initialization failed: %s", e)
            if isinstance(e, InitializationFailed):
                raise
            raise InitializationFailed(f"market data manager failed to start: {e}") from e

        # Late joiners add their own symbols once this returns
        self._pending_initial.clear()
        self._state = ManagerState.READY
        logger.info("Market data manager ready, tracking %d symbols", len(symbols))
        self._hub.notify_all(self.get_all_market_data())

    async def _add_symbols(self, symbols: list[str]) -> None:
        """Track and fetch symbols outside the regular tick."""
        generation = self._generation
        with self._lock:
            for symbol in symbols:
                self._tracked.setdefault(symbol, None)
        quotes = await self._resolve_all(symbols)
        if generation != self._generation:
            return
        committed = self._commit(quotes)
        if committed:
            self._hub.notify_all(committed)

    async def _resolve_all(self, symbols: list[str]) -> list[Quote]:
        quotes = await asyncio.gather(*(self._resolve(s) for s in symbols))
        if quotes:
            counts = {tag: sum(1 for q in quotes if q.quality is tag) for tag in QualityTag}
            logger.debug(
                "Resolved %d symbols: %d live, %d cached, %d mock",
                len(quotes),
                counts[QualityTag.LIVE],
                counts[QualityTag.CACHED],
                counts[QualityTag.MOCK],
            )
        return list(quotes)

    async def _resolve(self, symbol: str) -> Quote:
        """Live, else cached, else mock."""
        try:
            quote = await self._fetcher.fetch(symbol)
        except (FetchFailed, RateLimitExceeded) as e:
            cached = self._cache.get(symbol)
            if cached is not None:
                logger.warning("Serving cached quote for %s: %s", symbol, e)
                return cached
            logger.warning("Serving mock quote for %s: %s", symbol, e)
            return self._fallback.generate(symbol)
        self._cache.put(symbol, quote)
        return quote

    def _commit(self, quotes: list[Quote]) -> list[Quote]:
        """Write quotes for still-tracked symbols into the snapshot in one step."""
        with self._lock:
            committed = [q for q in quotes if q.symbol in self._tracked]
            for quote in committed:
                self._snapshot[quote.symbol] = quote
        return committed
