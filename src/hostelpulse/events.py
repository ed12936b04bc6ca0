"""Synchronous in-process notifications for imports and the long-running jobs.

Observers (a progress display, a persistence hook) subscribe per event type
or to everything with ``subscribe_all``. Delivery happens on the publisher's
thread, in subscription order.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    WEEK_RECONCILED = "week_reconciled"
    BATCH_PROGRESS = "batch_progress"
    BATCH_COMPLETED = "batch_completed"
    ENRICHMENT_PROGRESS = "enrichment_progress"
    ENRICHMENT_COMPLETED = "enrichment_completed"
    BOOKING_ENRICHED = "booking_enriched"
    PROGRESS_CLEARED = "progress_cleared"


@dataclass
class Event:
    event_type: EventType
    data: dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


Subscriber = Callable[[Event], None]


def _name(callback: Subscriber) -> str:
    return getattr(callback, "__qualname__", None) or repr(callback)


class EventBus:
    """Per-type and catch-all subscribers. A failing subscriber is logged and skipped."""

    def __init__(self) -> None:
        self._subscribers: dict[EventType, list[Subscriber]] = defaultdict(list)
        self._catch_all: list[Subscriber] = []

    def subscribe(self, event_type: EventType, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback`` for one event type. Returns a function that undoes it."""
        self._subscribers[event_type].append(callback)
        logger.debug("Subscribed %s to %s", _name(callback), event_type.value)
        return lambda: self.unsubscribe(event_type, callback)

    def subscribe_all(self, callback: Subscriber) -> Callable[[], None]:
        self._catch_all.append(callback)
        return lambda: self._discard(self._catch_all, callback)

    def unsubscribe(self, event_type: EventType, callback: Subscriber) -> None:
        self._discard(self._subscribers[event_type], callback)

    @staticmethod
    def _discard(callbacks: list[Subscriber], callback: Subscriber) -> None:
        if callback in callbacks:
            callbacks.remove(callback)

    def publish(self, event: Event) -> int:
        """Deliver ``event`` and return how many subscribers handled it without error."""
        targets = [*self._subscribers.get(event.event_type, []), *self._catch_all]
        delivered = 0
        for callback in targets:
            try:
                callback(event)
            except Exception:
                logger.exception("Subscriber %s failed on %s", _name(callback), event.event_type.value)
            else:
                delivered += 1
        logger.debug("Published %s to %d/%d subscribers", event.event_type.value, delivered, len(targets))
        return delivered


# Process-wide default bus
event_bus = EventBus()
