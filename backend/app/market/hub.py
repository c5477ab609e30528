"""Fan-out of snapshot updates to registered callbacks."""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable
from threading import Lock

from .models import Quote

logger = logging.getLogger(__name__)

Callback = Callable[[list[Quote]], None]


class Subscription:
    """Handle returned by SubscriptionHub.register. Calling it unsubscribes."""

    __slots__ = ("_hub", "_id")

    def __init__(self, hub: SubscriptionHub, subscription_id: int) -> None:
        self._hub = hub
        self._id = subscription_id

    @property
    def id(self) -> int:
        return self._id

    @property
    def active(self) -> bool:
        return self._id in self._hub

    def unsubscribe(self) -> None:
        self._hub.unregister(self)

    def __call__(self) -> None:
        self.unsubscribe()


class SubscriptionHub:
    """Registry of snapshot callbacks.

    notify_all() calls every callback synchronously in registration order.
    A callback that raises is logged and skipped; the others still run.
    The subscriber list is copied before iterating, so callbacks may
    unsubscribe themselves (or others) mid-notification.
    """

    def __init__(self) -> None:
        self._callbacks: dict[int, Callback] = {}
        self._ids = itertools.count(1)
        self._lock = Lock()

    def register(self, callback: Callback) -> Subscription:
        with self._lock:
            subscription_id = next(self._ids)
            self._callbacks[subscription_id] = callback
        return Subscription(self, subscription_id)

    def unregister(self, subscription: Subscription) -> None:
        """Remove a subscriber. No-op if it is already gone."""
        with self._lock:
            self._callbacks.pop(subscription.id, None)

    def notify_all(self, quotes: list[Quote]) -> None:
        with self._lock:
            callbacks = list(self._callbacks.values())
        for callback in callbacks:
            self.deliver(callback, quotes)

    @staticmethod
    def deliver(callback: Callback, quotes: list[Quote]) -> None:
        """Invoke one callback, logging instead of raising on failure."""
        try:
            callback(list(quotes))
        except Exception:
            logger.exception("Subscriber callback %r failed", callback)

    def clear(self) -> None:
        with self._lock:
            self._callbacks.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._callbacks)

    def __contains__(self, subscription_id: int) -> bool:
        with self._lock:
            return subscription_id in self._callbacks
