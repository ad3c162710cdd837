"""In-process fan-out of notification changes to live subscribers.

Each :class:`Subscription` is an async iterator over the INSERT/UPDATE
events of one recipient. It never ends on its own; ``unsubscribe()`` (or
leaving its ``async with`` block) terminates it. Subscribing again yields a
fresh sequence that only sees events published afterwards.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from enum import StrEnum

from agora.schemas.notification import NotificationResponse

logger = logging.getLogger(__name__)

_CLOSED = object()


class NotificationEventKind(StrEnum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"


@dataclass(frozen=True)
class NotificationEvent:
    """A notification row that was created or marked read."""

    kind: NotificationEventKind
    notification: NotificationResponse


class Subscription:
    """Live event sequence for a single user."""

    def __init__(self, feed: NotificationFeed, user_id: uuid.UUID) -> None:
        self.user_id = user_id
        self._feed = feed
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _deliver(self, event: NotificationEvent) -> None:
        if not self._closed:
            self._queue.put_nowait(event)

    def unsubscribe(self) -> None:
        """Stop receiving events; pending ``__anext__`` calls finish."""
        if self._closed:
            return
        self._closed = True
        self._feed._remove(self)
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> NotificationEvent:
        item = await self._queue.get()
        if item is _CLOSED:
            # Leave the marker for the next caller so it ends too.
            self._queue.put_nowait(_CLOSED)
            raise StopAsyncIteration
        return item  # type: ignore[return-value]

    async def __aenter__(self) -> Subscription:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.unsubscribe()


class NotificationFeed:
    """Routes published events to the recipient's subscriptions."""

    def __init__(self) -> None:
        self._subscribers: dict[uuid.UUID, set[Subscription]] = {}

    def subscribe(self, user_id: uuid.UUID) -> Subscription:
        subscription = Subscription(self, user_id)
        self._subscribers.setdefault(user_id, set()).add(subscription)
        logger.debug("Notification subscription opened for %s", user_id)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        subscribers = self._subscribers.get(subscription.user_id)
        if subscribers is None:
            return
        subscribers.discard(subscription)
        if not subscribers:
            del self._subscribers[subscription.user_id]
        logger.debug("Notification subscription closed for %s", subscription.user_id)

    def publish(self, event: NotificationEvent) -> int:
        """Deliver ``event`` and return how many subscriptions received it."""
        targets = list(self._subscribers.get(event.notification.user_id, ()))
        for subscription in targets:
            subscription._deliver(event)
        return len(targets)

    def subscriber_count(self, user_id: uuid.UUID | None = None) -> int:
        if user_id is not None:
            return len(self._subscribers.get(user_id, ()))
        return sum(len(subs) for subs in self._subscribers.values())

    def close(self) -> None:
        """End every open subscription."""
        for subscribers in list(self._subscribers.values()):
            for subscription in list(subscribers):
                subscription.unsubscribe()


class _NotificationFeedSingleton:
    """Singleton wrapper for NotificationFeed."""

    _instance: NotificationFeed | None = None

    @classmethod
    def get_instance(cls) -> NotificationFeed:
        if cls._instance is None:
            cls._instance = NotificationFeed()
        return cls._instance


def get_notification_feed() -> NotificationFeed:
    """Return the process-wide notification feed."""
    return _NotificationFeedSingleton.get_instance()
