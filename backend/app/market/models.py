"""Data models for market data."""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any

from .errors import ProviderError

# Unix timestamps above this are assumed to be milliseconds
_MILLISECONDS_THRESHOLD = 1e11


class QualityTag(str, Enum):
    """How trustworthy a quote is."""

    LIVE = "live"
    CACHED = "cached"
    MOCK = "mock"


class SourceTag(str, Enum):
    """Where a quote came from."""

    PROVIDER = "provider"
    CACHE = "cache"
    FALLBACK = "fallback"


@dataclass(frozen=True, slots=True)
class Quote:
    """Immutable point-in-time reading for a single symbol."""

    symbol: str
    price: float
    change: float
    change_percent: float
    volume: int
    quote_timestamp: float  # Unix seconds, as reported upstream
    fetched_at: float  # Unix seconds, when we retrieved it
    quality: QualityTag
    source: SourceTag

    @property
    def direction(self) -> str:
        """'up', 'down', or 'flat'."""
        if self.change > 0:
            return "up"
        elif self.change < 0:
            return "down"
        return "flat"

    def retag(self, quality: QualityTag, source: SourceTag) -> Quote:
        """Return a copy with different quality/source tags."""
        return replace(self, quality=quality, source=source)

    def to_dict(self) -> dict:
        """Serialize for JSON / SSE transmission."""
        return {
            "symbol": self.symbol,
            "price": self.price,
            "change": self.change,
            "change_percent": self.change_percent,
            "volume": self.volume,
            "quote_timestamp": self.quote_timestamp,
            "fetched_at": self.fetched_at,
            "quality": self.quality.value,
            "source": self.source.value,
            "direction": self.direction,
        }

    @classmethod
    def from_provider(cls, symbol: str, payload: Any, fetched_at: float) -> Quote:
        """Build a live quote from an untrusted provider payload.

        All coercion happens here: missing or garbage numbers become 0,
        negative volume becomes 0, and an unusable timestamp becomes ``fetched_at``.
        Raises ProviderError if the payload is not a mapping at all.
        """
        if not isinstance(payload, Mapping):
            raise ProviderError(symbol, f"unexpected payload type {type(payload).__name__}")

        change_percent = payload.get("changePercent", payload.get("change_percent"))
        return cls(
            symbol=symbol,
            price=_coerce_float(payload.get("price")),
            change=_coerce_float(payload.get("change")),
            change_percent=_coerce_float(change_percent),
            volume=max(_coerce_int(payload.get("volume")), 0),
            quote_timestamp=_coerce_timestamp(payload.get("timestamp"), default=fetched_at),
            fetched_at=fetched_at,
            quality=QualityTag.LIVE,
            source=SourceTag.PROVIDER,
        )


def _coerce_float(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool):
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(result):
        return default
    return result


def _coerce_int(value: Any, default: int = 0) -> int:
    result = _coerce_float(value, default=float(default))
    return int(result)


def _coerce_timestamp(value: Any, default: float) -> float:
    if isinstance(value, datetime):
        return value.timestamp()
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp()
        except ValueError:
            pass
    ts = _coerce_float(value, default=-1.0)
    if ts <= 0:
        return default
    if ts > _MILLISECONDS_THRESHOLD:
        return ts / 1000.0
    return ts
