"""In-process event bus for plan lifecycle notifications."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Any

EventHandler = Callable[[str, dict[str, Any]], None]

PLAN_VALIDATED = "plan.validated"
PLAN_FINISHED = "plan.finished"
STEP_READY = "step.ready"
STEP_COMPLETED = "step.completed"
STEP_FAILED = "step.failed"

# Subscribing to this name receives every event.
ALL_EVENTS = "*"

logger = logging.getLogger("ap.events")


class EventBus:
    """Dispatches plan events to subscribers by event name."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_name: str, handler: EventHandler) -> None:
        """Register a callback for an event, or for ``ALL_EVENTS``."""
        self._handlers[event_name].append(handler)

    def unsubscribe(self, event_name: str, handler: EventHandler) -> None:
        handlers = self._handlers.get(event_name, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event_name: str, payload: dict[str, Any]) -> None:
        """Call subscribers in registration order; handler errors propagate."""
        logger.debug("event %s %s", event_name, payload)
        for handler in [*self._handlers.get(event_name, []), *self._handlers.get(ALL_EVENTS, [])]:
            handler(event_name, payload)
