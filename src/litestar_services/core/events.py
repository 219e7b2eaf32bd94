"""In-process event bus for service lifecycle notifications.

Task runners, schedulers, workflow runners and the service registry publish
their state changes here. Listeners can be used for logging, monitoring or
triggering side effects without coupling to the emitting service.
"""

from __future__ import annotations

import inspect
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, TypeAlias

__all__ = ["EventBus", "EventHandler", "ServiceEvent"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceEvent:
    """A single notification published on the event bus.

    Attributes:
        event_type: Namespaced event name, e.g. ``scheduler:taskExecuted``.
        payload: Event-specific fields.
        timestamp: When the event was emitted.

    Example:
        >>> event = ServiceEvent(
        ...     event_type="scheduler:stopped",
        ...     payload={"task_name": "cleanup"},
        ... )
        >>> event.payload["task_name"]
        'cleanup'
    """

    event_type: str
    payload: dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


EventHandler: TypeAlias = Callable[[ServiceEvent], "Awaitable[None] | None"]
"""Sync or async callable receiving a published event."""


class EventBus:
    """Publish/subscribe hub keyed by event name.

    Handlers may be plain functions or coroutine functions. A handler that
    raises is logged and skipped; it never affects the emitter or the other
    handlers. The wildcard ``"*"`` subscribes to every event.

    Example:
        >>> bus = EventBus()
        >>> seen = []
        >>> bus.on("scheduler:started", seen.append)
        >>> await bus.emit("scheduler:started", task_name="cleanup")
        >>> seen[0].payload
        {'task_name': 'cleanup'}
    """

    WILDCARD = "*"

    def __init__(self) -> None:
        """Initialize an event bus with no subscribers."""
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)
        self._history: list[ServiceEvent] = []
        self.history_limit = 500

    def on(self, event_type: str, handler: EventHandler) -> None:
        """Subscribe a handler to an event.

        Args:
            event_type: Event name, or ``"*"`` for every event.
            handler: Sync or async callable receiving the event.
        """
        self._handlers[event_type].append(handler)

    def off(self, event_type: str, handler: EventHandler) -> None:
        """Unsubscribe a handler. Unknown handlers are ignored.

        Args:
            event_type: Event name the handler was subscribed to.
            handler: The handler to remove.
        """
        handlers = self._handlers.get(event_type)
        if handlers and handler in handlers:
            handlers.remove(handler)

    async def emit(self, event_type: str, **payload: Any) -> ServiceEvent:
        """Publish an event to its subscribers and to wildcard subscribers.

        Args:
            event_type: Event name.
            **payload: Event-specific fields.

        Returns:
            The emitted event.
        """
        event = ServiceEvent(event_type=event_type, payload=payload)
        self._history.append(event)
        if len(self._history) > self.history_limit:
            del self._history[: len(self._history) - self.history_limit]

        handlers = [*self._handlers.get(event_type, ()), *self._handlers.get(self.WILDCARD, ())]
        for handler in handlers:
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Event handler %r failed for '%s'", handler, event_type)
        return event

    def history(self, event_type: str | None = None) -> list[ServiceEvent]:
        """Return recently emitted events, oldest first.

        Args:
            event_type: Optional event name to filter by.

        Returns:
            List of events.
        """
        if event_type is None:
            return list(self._history)
        return [event for event in self._history if event.event_type == event_type]

    def clear_history(self) -> None:
        """Forget recorded events."""
        self._history.clear()
