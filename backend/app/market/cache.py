"""Thread-safe quote cache with a freshness window."""

from __future__ import annotations

import time
from collections.abc import Callable
from threading import Lock

from .models import QualityTag, Quote, SourceTag


class FreshnessCache:
    """Last known live quote per symbol, served only while younger than ``ttl``.

    Writers: the aggregation manager, after every successful live fetch.
    Readers: the aggregation manager, as the second tier of its fallback chain.

    Expired entries are evicted when they are looked up; there is no sweeper.
    """

    def __init__(self, ttl: float = 90.0, clock: Callable[[], float] = time.time) -> None:
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[str, Quote] = {}
        self._lock = Lock()
        self._hits = 0
        self._misses = 0

    @property
    def ttl(self) -> float:
        return self._ttl

    def get(self, symbol: str) -> Quote | None:
        """Fresh quote for a symbol, tagged cached, or None on a miss."""
        with self._lock:
            entry = self._entries.get(symbol)
            if entry is None:
                self._misses += 1
                return None
            if self._clock() - entry.fetched_at >= self._ttl:
                del self._entries[symbol]
                self._misses += 1
                return None
            self._hits += 1
            return entry.retag(QualityTag.CACHED, SourceTag.CACHE)

    def put(self, symbol: str, quote: Quote) -> None:
        with self._lock:
            self._entries[symbol] = quote

    def remove(self, symbol: str) -> None:
        with self._lock:
            self._entries.pop(symbol, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> dict:
        """Size, cached symbols and hit statistics.

        ``size`` counts stored entries, including expired ones not yet evicted.
        """
        with self._lock:
            lookups = self._hits + self._misses
            return {
                "size": len(self._entries),
                "symbols": list(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": round(self._hits / lookups, 4) if lookups else 0.0,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, symbol: str) -> bool:
        with self._lock:
            return symbol in self._entries
