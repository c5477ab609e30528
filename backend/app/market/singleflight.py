"""Collapse concurrent identical async calls into one execution."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Hashable
from typing import Any


class SingleFlight:
    """Deduplicates concurrent calls by key.

    The first caller for a key starts the operation as a task; everyone who
    arrives while it is running awaits that same task and sees the same
    result or exception. Once it finishes the key is free again.

    Cancelling one waiter does not cancel the shared operation.
    """

    def __init__(self) -> None:
        self._inflight: dict[Hashable, asyncio.Task] = {}

    async def do(self, key: Hashable, fn: Callable[[], Awaitable[Any]]) -> Any:
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(fn())
            self._inflight[key] = task
            task.add_done_callback(lambda t: self._release(key, t))
        return await asyncio.shield(task)

    def in_flight(self, key: Hashable) -> bool:
        return key in self._inflight

    def forget(self, key: Hashable) -> None:
        """Let the next caller start a fresh operation even if one is running."""
        self._inflight.pop(key, None)

    def clear(self) -> None:
        """Forget every key. Running operations finish but nobody new joins them."""
        self._inflight.clear()

    def _release(self, key: Hashable, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # Mark the outcome as retrieved even if every waiter was cancelled
        if not task.cancelled():
            task.exception()
