"""In-process async event bus.

Review and vocabulary events are delivered to subscribers in memory; nothing
is persisted. Subscribers use events to invalidate cached vocabulary after
writes.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

logger = logging.getLogger(__name__)


class DomainEvent:
    """Base class for all domain events.

    Every event gets an ``event_id`` and an ``occurred_at`` timestamp. Not a
    dataclass itself so that dataclass subclasses may declare required
    fields.
    """

    def __init__(self, event_id: str = "", occurred_at: datetime | None = None):
        """Initialize domain event with auto-generated ID and timestamp.

        Args:
            event_id: Unique event identifier (auto-generated if empty)
            occurred_at: Event timestamp (auto-generated if None)
        """
        self.event_id = event_id or str(uuid4())
        self.occurred_at = occurred_at or datetime.now(UTC)

    def __str__(self) -> str:
        return f"{self.__class__.__name__}(event_id={self.event_id})"

    @property
    def event_name(self) -> str:
        """Return the name of this event type."""
        return self.__class__.__name__


class EventBus:
    """Async publish/subscribe for domain events.

    Handlers may be plain functions or coroutine functions. A failing
    handler is logged and does not affect the other handlers or the
    publisher.
    """

    def __init__(self) -> None:
        self._handlers: dict[type[DomainEvent], list[Callable[..., Any]]] = {}

    async def publish(self, event: DomainEvent) -> None:
        """Deliver an event to every handler subscribed to its exact type.

        Args:
            event: Domain event to publish
        """
        event_type = type(event)
        handlers = list(self._handlers.get(event_type, []))

        if not handlers:
            logger.debug(f"No handlers registered for {event_type.__name__}")
            return

        logger.debug(f"Publishing {event_type.__name__} to {len(handlers)} handlers")
        await asyncio.gather(
            *[self._handle_event(handler, event) for handler in handlers]
        )

    async def _handle_event(
        self, handler: Callable[..., Any], event: DomainEvent
    ) -> None:
        try:
            result = handler(event)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            handler_name = getattr(handler, "__name__", repr(handler))
            logger.error(
                f"Event handler {handler_name} failed for "
                f"{type(event).__name__}: {e}"
            )

    def subscribe(
        self, event_type: type[DomainEvent], handler: Callable[..., Any]
    ) -> None:
        """Subscribe handler to event type.

        Args:
            event_type: Type of domain event to subscribe to
            handler: Handler function (sync or async)
        """
        self._handlers.setdefault(event_type, []).append(handler)
        handler_name = getattr(handler, "__name__", repr(handler))
        logger.debug(f"Subscribed {handler_name} to {event_type.__name__}")

    def unsubscribe(
        self, event_type: type[DomainEvent], handler: Callable[..., Any]
    ) -> None:
        """Unsubscribe handler from event type; unknown handlers are ignored.

        Args:
            event_type: Type of domain event to unsubscribe from
            handler: Handler function to remove
        """
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)
        else:
            handler_name = getattr(handler, "__name__", repr(handler))
            logger.warning(f"Handler {handler_name} not found for {event_type.__name__}")

    def get_handler_count(self, event_type: type[DomainEvent]) -> int:
        """Get number of handlers for specific event type."""
        return len(self._handlers.get(event_type, []))

    def clear_subscriptions(self) -> None:
        """Clear all event subscriptions."""
        self._handlers.clear()
