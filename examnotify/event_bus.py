"""
Publish/subscribe bus for delivered notifications.

UI layers (or any other consumer) register a callback and receive every
notification the client decides to deliver. Callbacks may be plain
functions or coroutine functions.
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, List, Set, Union

from examnotify.models import Notification

logger = logging.getLogger("examnotify.bus")

NOTIFICATION_EVENT = "notification"

Subscriber = Callable[[Notification], Union[None, Awaitable[None]]]


class NotificationBus:
    """
    In-process event bus carrying the ``notification`` event.

    A failing subscriber is logged and does not prevent delivery to the
    others.
    """

    def __init__(self):
        self._subscribers: List[Subscriber] = []
        self._pending: Set[asyncio.Task] = set()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a subscriber.

        Args:
            callback: Called with each delivered Notification

        Returns:
            A callable that removes the subscription
        """
        if callback not in self._subscribers:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            self.unsubscribe(callback)

        return unsubscribe

    def unsubscribe(self, callback: Subscriber) -> None:
        try:
            self._subscribers.remove(callback)
        except ValueError:
            pass

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, notification: Notification) -> int:
        """
        Deliver a notification to every subscriber.

        Coroutine subscribers are scheduled on the running loop.

        Returns:
            Number of subscribers invoked
        """
        delivered = 0
        for callback in list(self._subscribers):
            try:
                result = callback(notification)
                if inspect.isawaitable(result):
                    self._schedule(result)
                delivered += 1
            except Exception:
                logger.exception(
                    f"Subscriber {callback!r} failed for notification {notification.id}"
                )
        return delivered

    def _schedule(self, awaitable: Awaitable[Any]) -> None:
        task = asyncio.ensure_future(awaitable)
        self._pending.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Async subscriber failed: {exc}", exc_info=exc)

    async def drain(self) -> None:
        """Wait for scheduled coroutine subscribers to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
