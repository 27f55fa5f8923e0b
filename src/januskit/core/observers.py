"""Per-handle observer registry for normalized events."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

logger = logging.getLogger("januskit.observers")

__all__ = ["EventCallback", "ObserverRegistry", "Subscription"]

EventCallback = Callable[[Any], Any]


def _log_callback_task_exception(task: asyncio.Task[Any]) -> None:
    """Done callback: log exceptions from async observers."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Observer task %s failed: %s", task.get_name(), exc)


@dataclass
class Subscription:
    """Cancellation handle returned by :meth:`ObserverRegistry.subscribe`."""

    event: str
    callback: EventCallback
    id: str = field(default_factory=lambda: uuid4().hex)
    _registry: ObserverRegistry | None = field(default=None, repr=False, compare=False)

    @property
    def active(self) -> bool:
        return self._registry is not None and self._registry.has(self.id)

    def cancel(self) -> bool:
        """Stop delivery to this subscription.

        Returns:
            True if the subscription was still active.
        """
        if self._registry is None:
            return False
        return self._registry.unsubscribe(self.id)


class ObserverRegistry:
    """Maps event tags to subscribed callbacks.

    Callbacks may be plain functions or coroutine functions.  Coroutine
    callbacks are scheduled as tasks on the running loop; failures in
    either kind are logged and never propagate to the emitter.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[str, Subscription] = {}
        self._by_event: dict[str, list[str]] = {}
        self._tasks: set[asyncio.Task[Any]] = set()

    def __len__(self) -> int:
        return len(self._subscriptions)

    def has(self, subscription_id: str) -> bool:
        return subscription_id in self._subscriptions

    def subscribe(self, event: str, callback: EventCallback) -> Subscription:
        sub = Subscription(event=str(event), callback=callback, _registry=self)
        self._subscriptions[sub.id] = sub
        self._by_event.setdefault(sub.event, []).append(sub.id)
        return sub

    def unsubscribe(self, subscription: Subscription | str) -> bool:
        """Remove a subscription by object or id.

        Returns:
            True if the subscription existed and was removed.
        """
        sub_id = subscription.id if isinstance(subscription, Subscription) else subscription
        sub = self._subscriptions.pop(sub_id, None)
        if sub is None:
            return False
        ids = self._by_event.get(sub.event)
        if ids:
            ids.remove(sub_id)
            if not ids:
                del self._by_event[sub.event]
        return True

    def clear(self) -> None:
        self._subscriptions.clear()
        self._by_event.clear()

    def emit(self, event: str, data: Any) -> int:
        """Deliver *data* to every subscriber of *event*.

        Returns:
            The number of callbacks invoked.
        """
        sub_ids = list(self._by_event.get(str(event), ()))
        delivered = 0
        for sub_id in sub_ids:
            sub = self._subscriptions.get(sub_id)
            if sub is None:
                continue
            delivered += 1
            try:
                result = sub.callback(data)
            except Exception:
                logger.exception("Error in observer for %s (subscription %s)", event, sub_id)
                continue
            if asyncio.iscoroutine(result):
                task = asyncio.get_running_loop().create_task(result, name=f"observer:{event}")
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)
                task.add_done_callback(_log_callback_task_exception)
        return delivered
