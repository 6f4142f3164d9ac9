"""In-process publish/subscribe channel.

Delivery is synchronous, in registration order, to the subscribers present
at emit time. Nothing is queued or replayed for late subscribers.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)


class EventName(str, Enum):
    USER_UPDATED = "user_updated"
    USER_DELETED = "user_deleted"
    COLLECTION_UPDATED = "collection_updated"
    DATA_REFRESH_NEEDED = "data_refresh_needed"
    USER_ACCESS_DENIED = "user_access_denied"
    USER_DEACTIVATED = "user_deactivated"
    USER_REACTIVATED = "user_reactivated"


@dataclass(frozen=True)
class Event:
    name: EventName
    payload: dict[str, Any] = field(default_factory=dict)
    emitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


Handler = Callable[[Event], None]


class EventChannel:
    def __init__(self) -> None:
        self._handlers: dict[EventName, list[Handler]] = defaultdict(list)

    def subscribe(self, name: EventName, handler: Handler) -> Callable[[], None]:
        self._handlers[name].append(handler)

        def unsubscribe() -> None:
            self.unsubscribe(name, handler)

        return unsubscribe

    def unsubscribe(self, name: EventName, handler: Handler) -> None:
        handlers = self._handlers.get(name)
        if handlers and handler in handlers:
            handlers.remove(handler)

    def subscribers(self, name: EventName) -> int:
        return len(self._handlers.get(name, ()))

    def emit(self, name: EventName, payload: dict[str, Any] | None = None) -> Event:
        event = Event(name=name, payload=dict(payload or {}))
        for handler in list(self._handlers.get(name, ())):
            try:
                handler(event)
            except Exception:
                logger.exception("Subscriber %r failed handling %s", handler, name.value)
        return event
