"""Pytest configuration and fixtures."""

import asyncio

import pytest


class FakeClock:
    """Manually advanced clock with an async sleep that moves time forward."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += max(seconds, 0.0)
        await asyncio.sleep(0)


@pytest.fixture
def clock():
    """A fake clock starting at a fixed Unix time."""
    return FakeClock()
