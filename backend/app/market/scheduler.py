"""Cancellable periodic background task."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Runs an async callback every ``interval`` seconds on the running loop.

    The first run happens one interval after start(). Runs never overlap: a
    slow run pushes the next one back. Each run executes in its own task, so
    stop() ends the loop without aborting a run that is already in progress.
    Exceptions from the callback are logged and the loop keeps going.
    """

    def __init__(
        self,
        interval: float,
        callback: Callable[[], Awaitable[None]],
        name: str = "periodic-task",
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._interval = interval
        self._callback = callback
        self._name = name
        self._sleep = sleep
        self._task: asyncio.Task | None = None
        self._current: asyncio.Task | None = None
        self.runs = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the loop. No-op if it is already running."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run_loop(), name=self._name)
        logger.debug("%s started, %.1fs interval", self._name, self._interval)

    async def stop(self) -> None:
        """Stop the loop. Safe to call multiple times."""
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.debug("%s stopped", self._name)

    async def _run_loop(self) -> None:
        while True:
            await self._sleep(self._interval)
            self._current = asyncio.ensure_future(self._run_once())
            await asyncio.shield(self._current)

    async def _run_once(self) -> None:
        self.runs += 1
        try:
            await self._callback()
        except Exception:
            logger.exception("%s run failed", self._name)
