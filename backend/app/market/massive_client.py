"""Massive (Polygon.io) API client for live quotes."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from .interface import QuoteProvider

logger = logging.getLogger(__name__)


class MassiveQuoteProvider(QuoteProvider):
    """QuoteProvider backed by the Massive (Polygon.io) REST API.

    Each quote() call asks GET /v2/snapshot/locale/us/markets/stocks/tickers
    for a single ticker. The REST client is synchronous, so calls run in a
    worker thread. Budgeting and retries are the caller's job.
    """

    name = "massive"

    def __init__(self, api_key: str, client: Any = None) -> None:
        self._api_key = api_key
        self._client = client

    async def quote(self, symbol: str) -> dict:
        snapshot = await asyncio.to_thread(self._fetch_snapshot, symbol)
        if snapshot is None:
            raise LookupError(f"no snapshot returned for {symbol}")
        return self._to_payload(snapshot)

    async def close(self) -> None:
        self._client = None

    def _get_client(self) -> Any:
        if self._client is None:
            # Lazy import: the massive package is only needed for live data.
            from massive import RESTClient

            self._client = RESTClient(api_key=self._api_key)
            logger.info("Massive REST client created")
        return self._client

    def _fetch_snapshot(self, symbol: str) -> Any:
        """Synchronous call to the Massive REST API. Runs in a thread."""
        from massive.rest.models import SnapshotMarketType

        snapshots = self._get_client().get_snapshot_all(
            market_type=SnapshotMarketType.STOCKS,
            tickers=[symbol],
        )
        for snap in snapshots or []:
            if getattr(snap, "ticker", None) == symbol:
                return snap
        return None

    @staticmethod
    def _to_payload(snap: Any) -> dict:
        """Pull the fields we care about off a snapshot. Missing ones stay None."""
        last_trade = getattr(snap, "last_trade", None)
        day = getattr(snap, "day", None)
        timestamp = getattr(last_trade, "timestamp", None)
        return {
            "price": getattr(last_trade, "price", None),
            "change": getattr(snap, "todays_change", None),
            "changePercent": getattr(snap, "todays_change_percent", None),
            "volume": getattr(day, "volume", None),
            # Massive timestamps are Unix milliseconds (or nanoseconds on some feeds)
            "timestamp": _to_seconds(timestamp),
        }


def _to_seconds(timestamp: Any) -> Any:
    if not isinstance(timestamp, (int, float)) or isinstance(timestamp, bool):
        return timestamp
    if timestamp > 1e17:
        return timestamp / 1e9
    if timestamp > 1e11:
        return timestamp / 1000.0
    return timestamp
