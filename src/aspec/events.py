"""
Append-only agent event log with synchronous fan-out.

Every appended event is handed to each registered observer before `append`
returns. A failing observer is logged and skipped; it never stops delivery
to the others and never reaches the emitting pipeline.

Delivery runs outside the log lock, on the appending thread. Events appended
from one thread reach each observer in append order. Events appended
concurrently from different threads are stored in one total order but may
reach an observer in a different interleaving; use `all()` or `recent()` when
the stored order matters.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections import deque
from dataclasses import dataclass, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

Listener = Callable[["Event"], None]


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class EventPayload:
    """Sparse payload: each stage fills the fields it knows about."""

    subject: Optional[str] = None
    product: Optional[str] = None
    platform: Optional[str] = None
    price: Optional[float] = None
    decision: Any = None
    transaction: Any = None
    resource: Any = None
    thought: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        d: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            d[f.name] = value.to_dict() if hasattr(value, "to_dict") else value
        return d


@dataclass(frozen=True)
class Event:
    """A single audit record of one pipeline step."""

    id: str
    timestamp: str
    type: str
    payload: EventPayload

    @classmethod
    def create(cls, event_type: Enum | str, **payload: Any) -> "Event":
        type_value = event_type.value if isinstance(event_type, Enum) else str(event_type)
        return cls(
            id=str(uuid.uuid4()),
            timestamp=utc_timestamp(),
            type=type_value,
            payload=EventPayload(**payload),
        )

    @property
    def thought(self) -> Optional[str]:
        return self.payload.thought

    @property
    def error(self) -> Optional[str]:
        return self.payload.error

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "type": self.type,
            "data": self.payload.to_dict(),
        }


class EventLog:
    """Ordered, append-only event sequence owned by one agent instance."""

    def __init__(self, max_events: Optional[int] = None):
        if max_events is not None and max_events <= 0:
            raise ValueError("max_events must be positive")
        self._events: deque[Event] = deque(maxlen=max_events)
        self._ids: set[str] = set()
        self._listeners: list[Listener] = []
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register an observer; returns a handle that unregisters it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def append(self, event: Event) -> bool:
        """Append and deliver an event. Returns False if its id is already logged."""
        with self._lock:
            if event.id in self._ids:
                return False
            if self._events.maxlen is not None and len(self._events) == self._events.maxlen:
                self._ids.discard(self._events[0].id)
            self._events.append(event)
            self._ids.add(event.id)
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("Event observer failed on %s event %s", event.type, event.id)
        return True

    def emit(self, event_type: Enum | str, **payload: Any) -> Event:
        event = Event.create(event_type, **payload)
        self.append(event)
        return event

    def recent(self, count: int = 10) -> list[Event]:
        if count <= 0:
            return []
        with self._lock:
            return list(self._events)[-count:]

    def all(self) -> list[Event]:
        with self._lock:
            return list(self._events)

    def clear(self) -> None:
        """Drop every event. Irreversible; meant for reset workflows and tests."""
        with self._lock:
            self._events.clear()
            self._ids.clear()
