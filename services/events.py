"""Typed event bus and a bounded in-memory event log."""

from __future__ import annotations

import logging
from collections import deque
from threading import Lock
from typing import Callable, Deque, Dict, List

from models.events import EVENT_TYPES, TelemetryEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[TelemetryEvent], None]


class EventBus:
    """Dispatches events to handlers registered for their concrete class."""

    def __init__(self) -> None:
        self._handlers: Dict[type, List[EventHandler]] = {
            event_type: [] for event_type in EVENT_TYPES
        }
        self._lock = Lock()

    def subscribe(self, event_type: type, handler: EventHandler) -> None:
        if event_type not in self._handlers:
            raise TypeError(f"Unknown event type {event_type!r}.")
        with self._lock:
            self._handlers[event_type].append(handler)

    def subscribe_all(self, handler: EventHandler) -> None:
        for event_type in EVENT_TYPES:
            self.subscribe(event_type, handler)

    def publish(self, event: TelemetryEvent) -> None:
        handlers = self._handlers.get(type(event))
        if handlers is None:
            raise TypeError(f"Cannot publish unknown event {event!r}.")
        with self._lock:
            snapshot = list(handlers)

        for handler in snapshot:
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Event handler failed",
                    extra={"event_kind": event.kind, "device_id": event.device_id},
                )


class EventLog:
    """Keeps the most recent events for inspection."""

    def __init__(self, maxlen: int = 500) -> None:
        self._events: Deque[TelemetryEvent] = deque(maxlen=maxlen)
        self._lock = Lock()

    def __call__(self, event: TelemetryEvent) -> None:
        with self._lock:
            self._events.append(event)

    def recent(self, limit: int | None = None) -> list[TelemetryEvent]:
        with self._lock:
            events = list(self._events)
        if limit is not None:
            events = events[-limit:] if limit > 0 else []
        return events

    def clear(self) -> None:
        with self._lock:
            self._events.clear()
