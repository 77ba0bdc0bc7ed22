"""
In-memory event bus implementation.

Events are delivered synchronously, in subscription order, on the thread
that published them.  Nothing is persisted and there is no back-pressure.

A handler that raises stops delivery and the exception propagates to the
caller of the operation that published the event (for example
``Database.insert``).  The write itself has already happened by then.

Tags:
    schemadb, events, in-memory, synchronous
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any

from schemadb.core.events import Event, EventHandler, Topic
from schemadb.core.logging import get_logger

__all__ = ["InMemoryEventBus", "Subscription"]

logger = get_logger(__name__)


@dataclass(frozen=True)
class Subscription:
    """Subscription record."""

    id: str
    pattern: Topic
    handler: EventHandler


class InMemoryEventBus:
    """In-process event bus scoped to one ``Database`` instance.

    Example::

        bus = InMemoryEventBus()
        seen = []
        bus.subscribe("users:insert", seen.append)
        bus.publish("users:insert", {"id": 1})
        assert seen[0].payload == {"id": 1}
    """

    def __init__(self) -> None:
        self._subscriptions: dict[str, Subscription] = {}

    def publish(self, topic: Topic | str, payload: dict[str, Any] | None = None) -> Event:
        """Publish an event to all matching subscribers, in subscription order."""
        event = Event(topic=Topic.parse(topic), payload=payload or {})
        handlers = self.subscriptions(event.topic)

        logger.debug("event.published", topic=str(event.topic), subscribers=len(handlers))
        for sub in handlers:
            sub.handler(event)
        return event

    def subscribe(self, topic: Topic | str, handler: EventHandler) -> str:
        """Subscribe to a topic or pattern (``*``, ``users:*``).

        Returns:
            Subscription ID
        """
        sub_id = f"sub_{uuid.uuid4().hex[:12]}"
        self._subscriptions[sub_id] = Subscription(
            id=sub_id,
            pattern=Topic.parse(topic),
            handler=handler,
        )
        return sub_id

    def unsubscribe(self, subscription_id: str) -> bool:
        """Remove a subscription."""
        return self._subscriptions.pop(subscription_id, None) is not None

    def subscriptions(self, topic: Topic | str | None = None) -> list[Subscription]:
        """Subscriptions that would receive ``topic`` (all when ``None``)."""
        if topic is None:
            return list(self._subscriptions.values())
        concrete = Topic.parse(topic)
        return [sub for sub in self._subscriptions.values() if concrete.matches(sub.pattern)]

    def clear(self) -> None:
        self._subscriptions.clear()

    @property
    def subscription_count(self) -> int:
        """Number of active subscriptions."""
        return len(self._subscriptions)
