"""In-process event bus connecting the task store and the dependency engine."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Any

logger = logging.getLogger("taskline.events")

EventHandler = Callable[[dict[str, Any]], None]

TASK_DELETED = "task_deleted"
TASK_DATES_CHANGED = "task_dates_changed"
DEPENDENCY_ADDED = "dependency_added"
DEPENDENCY_UPDATED = "dependency_updated"
DEPENDENCY_REMOVED = "dependency_removed"


class EventBus:
    """Dispatches events synchronously, in subscription order."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_name: str, handler: EventHandler) -> None:
        """Register a callback for an event."""
        self._handlers[event_name].append(handler)

    def unsubscribe(self, event_name: str, handler: EventHandler) -> None:
        handlers = self._handlers.get(event_name, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event_name: str, payload: dict[str, Any]) -> None:
        """Emit an event; handler errors propagate to the emitter."""
        handlers = list(self._handlers.get(event_name, []))
        logger.debug("Emitting %s to %d handler(s)", event_name, len(handlers))
        for handler in handlers:
            handler(payload)
