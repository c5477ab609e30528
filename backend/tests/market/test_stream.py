"""Tests for the SSE quote stream."""

import json

import pytest

from app.market.config import MarketDataConfig
from app.market.factory import create_market_data_manager
from app.market.models import QualityTag, Quote, SourceTag
from app.market.stream import _generate_events, _PendingQuotes, create_stream_router


class FakeRequest:
    """Just enough of a Starlette Request for the event generator."""

    client = None

    def __init__(self) -> None:
        self.disconnected = False

    async def is_disconnected(self) -> bool:
        return self.disconnected


def _quote(symbol: str, price: float) -> Quote:
    return Quote(
        symbol=symbol,
        price=price,
        change=0.0,
        change_percent=0.0,
        volume=0,
        quote_timestamp=0.0,
        fetched_at=0.0,
        quality=QualityTag.LIVE,
        source=SourceTag.PROVIDER,
    )


def test_router_exposes_quotes_route(provider):
    """Test that the router serves GET /api/stream/quotes."""
    router = create_stream_router(create_market_data_manager(MarketDataConfig(), provider=provider))
    paths = {route.path for route in router.routes}
    assert "/api/stream/quotes" in paths


@pytest.mark.asyncio
class TestPendingQuotes:
    """Tests for the per-client pending buffer."""

    async def test_keeps_latest_per_symbol(self):
        """Test that a slow reader only sees the newest quote per symbol."""
        pending = _PendingQuotes()
        pending.push([_quote("AAPL", 1.0), _quote("MSFT", 2.0)])
        pending.push([_quote("AAPL", 3.0)])

        drained = await pending.wait(1.0)

        assert set(drained) == {"AAPL", "MSFT"}
        assert drained["AAPL"].price == 3.0

    async def test_wait_times_out_empty(self):
        """Test that waiting with nothing pending returns an empty dict."""
        pending = _PendingQuotes()
        assert await pending.wait(0.01) == {}

    async def test_drain_resets(self):
        """Test that quotes are delivered once."""
        pending = _PendingQuotes()
        pending.push([_quote("AAPL", 1.0)])
        await pending.wait(1.0)
        assert await pending.wait(0.01) == {}

    async def test_empty_push_does_not_wake(self):
        """Test that pushing nothing leaves the reader waiting."""
        pending = _PendingQuotes()
        pending.push([])
        assert await pending.wait(0.01) == {}


@pytest.mark.asyncio
class TestGenerateEvents:
    """Tests for the SSE event generator."""

    async def test_retry_then_snapshot_then_disconnect(self, provider, make_manager):
        """Test the event sequence for a client joining a ready manager."""
        provider.set_quote("AAPL", 190.5)
        provider.set_quote("MSFT", 410.0)
        manager = make_manager(provider)
        await manager.initialize(["AAPL", "MSFT"])

        request = FakeRequest()
        events = _generate_events(manager, request, keepalive=0.01)

        assert await events.__anext__() == "retry: 1000\n\n"

        event = await events.__anext__()
        assert event.startswith("data: ")
        assert event.endswith("\n\n")
        data = json.loads(event[len("data: "):])
        assert set(data) == {"AAPL", "MSFT"}
        assert data["AAPL"]["price"] == 190.5
        assert data["AAPL"]["quality"] == "live"
        assert manager.get_status()["subscriber_count"] == 1

        request.disconnected = True
        with pytest.raises(StopAsyncIteration):
            await events.__anext__()
        assert manager.get_status()["subscriber_count"] == 0

    async def test_keepalive_when_no_data(self, provider, make_manager):
        """Test that an idle stream emits comment keepalives."""
        manager = make_manager(provider)
        events = _generate_events(manager, FakeRequest(), keepalive=0.01)

        await events.__anext__()
        assert await events.__anext__() == ": keepalive\n\n"
        await events.aclose()

    async def test_tick_is_streamed(self, provider, make_manager):
        """Test that a poll tick reaches a connected client."""
        provider.set_quote("AAPL", 100.0)
        manager = make_manager(provider)
        await manager.initialize(["AAPL"])
        events = _generate_events(manager, FakeRequest(), keepalive=0.01)
        await events.__anext__()
        await events.__anext__()

        provider.set_quote("AAPL", 101.0)
        await manager.refresh()

        event = await events.__anext__()
        data = json.loads(event[len("data: "):])
        assert data["AAPL"]["price"] == 101.0
        await events.aclose()

    async def test_close_unsubscribes(self, provider, make_manager):
        """Test that closing the generator removes the subscription."""
        manager = make_manager(provider)
        events = _generate_events(manager, FakeRequest(), keepalive=0.01)
        await events.__anext__()
        await events.__anext__()
        assert manager.get_status()["subscriber_count"] == 1

        await events.aclose()

        assert manager.get_status()["subscriber_count"] == 0
