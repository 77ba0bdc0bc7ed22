"""Lifecycle events published by a ``Database`` instance.

Why This Package Exists
-----------------------
Application code often needs to react to writes (audit trails, cache
invalidation, search indexing) without the data-access layer knowing about
those consumers.  Every ``Database`` owns one ``InMemoryEventBus`` and
publishes to it after each successful write and each transaction boundary.

Topics are structured ``Topic(scope, action)`` values whose string form is
``"<scope>:<action>"``:

==========================  ==========================================
``users:insert``            row inserted; payload = data + ``id``
``users:update``            rows updated; payload = ``where`` + ``data``
``users:delete``            rows deleted; payload = ``where`` + ``soft``
``transaction:commit``      after ``COMMIT``
``transaction:rollback``    after ``ROLLBACK``
==========================  ==========================================

Usage::

    db.on("users:insert", lambda event: audit(event.payload))
    db.on("users:*", invalidate_cache)
    db.on(Topic.transaction("commit"), flush)

Modules
-------
memory      InMemoryEventBus -- synchronous, single-process
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol, runtime_checkable

__all__ = [
    "Topic",
    "Event",
    "EventBus",
    "EventHandler",
    "TRANSACTION_COMMIT",
    "TRANSACTION_ROLLBACK",
]


# ── Topic ────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Topic:
    """Structured event topic: ``scope`` (table or ``transaction``) + ``action``."""

    scope: str
    action: str

    WILDCARD = "*"

    @classmethod
    def parse(cls, value: str | Topic) -> Topic:
        """Parse ``"users:insert"`` (or ``"users:*"``, ``"*"``) into a Topic."""
        if isinstance(value, Topic):
            return value
        if value == cls.WILDCARD:
            return cls(cls.WILDCARD, cls.WILDCARD)
        scope, sep, action = value.partition(":")
        if not sep or not scope or not action:
            raise ValueError(f"Invalid topic {value!r}; expected '<scope>:<action>'")
        return cls(scope, action)

    @classmethod
    def table(cls, table: str, action: str) -> Topic:
        return cls(table, action)

    @classmethod
    def transaction(cls, action: str) -> Topic:
        return cls("transaction", action)

    def matches(self, pattern: Topic) -> bool:
        """Check whether this concrete topic matches ``pattern``.

        Examples:
            - ``*`` matches everything
            - ``users:*`` matches ``users:insert``, ``users:delete``
            - ``users:insert`` matches exactly ``users:insert``
        """
        if pattern.scope == self.WILDCARD:
            return True
        if pattern.scope != self.scope:
            return False
        return pattern.action in (self.WILDCARD, self.action)

    def __str__(self) -> str:
        if self.scope == self.WILDCARD:
            return self.WILDCARD
        return f"{self.scope}:{self.action}"


TRANSACTION_COMMIT = Topic.transaction("commit")
TRANSACTION_ROLLBACK = Topic.transaction("rollback")


# ── Event Model ──────────────────────────────────────────────────────────


@dataclass
class Event:
    """
    A published event.

    Attributes:
        topic: Topic the event was published on
        payload: Event-specific data
        timestamp: When the event was published (UTC)
        event_id: Unique event identifier
    """

    topic: Topic
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))


EventHandler = Callable[[Event], None]


# ── EventBus Protocol ────────────────────────────────────────────────────


@runtime_checkable
class EventBus(Protocol):
    """Synchronous publish/subscribe contract."""

    def publish(self, topic: Topic | str, payload: dict[str, Any] | None = None) -> Event:
        """Deliver an event to every matching subscriber before returning."""
        ...

    def subscribe(self, topic: Topic | str, handler: EventHandler) -> str:
        """Register ``handler``; returns a subscription ID."""
        ...

    def unsubscribe(self, subscription_id: str) -> bool:
        """Remove a subscription; returns whether it existed."""
        ...
