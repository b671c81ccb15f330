# recipe_ledger/app/services/events.py
"""
Notification bus for recipe store mutations.
Handlers are informational: a failing handler never undoes a committed
mutation and is never retried.
"""
from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Callable

from recipe_ledger.app.domain.models import RecipeEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[RecipeEvent], None]

DEFAULT_EVENT_LOG_SIZE = 200


class RecipeEventBus:
    """Synchronous fan-out of store events to subscribed handlers."""

    def __init__(self) -> None:
        self._handlers: list[EventHandler] = []
        self._lock = threading.Lock()

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        """
        Register a handler.

        Returns:
            A callable that removes the handler again
        """
        with self._lock:
            self._handlers.append(handler)

        def unsubscribe() -> None:
            with self._lock:
                if handler in self._handlers:
                    self._handlers.remove(handler)

        return unsubscribe

    def publish(self, event: RecipeEvent) -> None:
        with self._lock:
            handlers = list(self._handlers)
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Recipe event handler failed: event=%s, recipe=%s",
                    event.event_type.value,
                    event.recipe_id,
                )


class RecentEventLog:
    """Bounded in-memory history of the latest events, newest last."""

    def __init__(self, maxlen: int = DEFAULT_EVENT_LOG_SIZE) -> None:
        self._events: deque[RecipeEvent] = deque(maxlen=maxlen)
        self._lock = threading.Lock()

    def __call__(self, event: RecipeEvent) -> None:
        with self._lock:
            self._events.append(event)

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def recent(self, limit: int | None = None) -> list[RecipeEvent]:
        with self._lock:
            events = list(self._events)
        if limit is not None:
            events = events[-limit:] if limit > 0 else []
        return events
