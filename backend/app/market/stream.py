"""SSE broadcaster for live quote updates."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from .manager import AggregationManager
from .models import Quote

logger = logging.getLogger(__name__)


def create_stream_router(manager: AggregationManager) -> APIRouter:
    """Create the SSE streaming router bound to one manager.

    This factory pattern lets us inject the manager without globals.
    """
    router = APIRouter(prefix="/api/stream", tags=["streaming"])

    @router.get("/quotes")
    async def stream_quotes(request: Request) -> StreamingResponse:
        """SSE endpoint for quote updates.

        Each poll tick pushes the tracked symbols' quotes to the client as:

            data: {"AAPL": {"symbol": "AAPL", "price": 190.50, "quality": "live", ...}, ...}

        Includes a retry directive so the browser auto-reconnects on
        disconnection (EventSource built-in behavior).
        """
        return StreamingResponse(
            _generate_events(manager, request),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",  # Disable nginx buffering if proxied
            },
        )

    return router


class _PendingQuotes:
    """Latest undelivered quote per symbol for one client.

    A slow client never queues more than one quote per symbol.
    """

    def __init__(self) -> None:
        self._quotes: dict[str, Quote] = {}
        self._ready = asyncio.Event()

    def push(self, quotes: list[Quote]) -> None:
        for quote in quotes:
            self._quotes[quote.symbol] = quote
        if self._quotes:
            self._ready.set()

    async def wait(self, timeout: float) -> dict[str, Quote]:
        try:
            await asyncio.wait_for(self._ready.wait(), timeout)
        except asyncio.TimeoutError:
            return {}
        self._ready.clear()
        drained, self._quotes = self._quotes, {}
        return drained


async def _generate_events(
    manager: AggregationManager,
    request: Request,
    keepalive: float = 15.0,
) -> AsyncGenerator[str, None]:
    """Async generator that yields SSE-formatted quote events.

    Stops when the client disconnects (detected via request.is_disconnected()).
    """
    # Tell the client to retry after 1 second if the connection drops
    yield "retry: 1000\n\n"

    pending = _PendingQuotes()
    unsubscribe = manager.subscribe(pending.push)
    client_ip = request.client.host if request.client else "unknown"
    logger.info("SSE client connected: %s", client_ip)

    try:
        while True:
            if await request.is_disconnected():
                logger.info("SSE client disconnected: %s", client_ip)
                break

            quotes = await pending.wait(keepalive)
            if quotes:
                data = {symbol: quote.to_dict() for symbol, quote in quotes.items()}
                yield f"data: {json.dumps(data)}\n\n"
            else:
                yield ": keepalive\n\n"
    except asyncio.CancelledError:
        logger.info("SSE stream cancelled for: %s", client_ip)
    finally:
        unsubscribe()
