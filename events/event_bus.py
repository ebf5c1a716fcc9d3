"""
In-memory asynchronous event bus.

Collaborators (order service, staff clock, inventory, ...) publish domain events
here and the notification pipeline subscribes to them. The bus lives for the
lifetime of the process and keeps nothing beyond its handler registry.

Design decisions:
- Type-based subscriptions
- Handlers are coroutines; emit() schedules each one as its own task and
  returns without awaiting them (fire-and-forget)
- emit() is safe from any thread; off the loop it hands the event to the loop
  the bus was last used on, and never raises back to the publisher
- Every handler invocation is wrapped so an exception is logged and never
  reaches the publisher or sibling handlers
- No ordering guarantee between handlers, no persistence, no replay
- Explicitly constructed and passed to whoever needs it; one bus per process
  is a deployment convention
"""

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Optional
from uuid import uuid4

from anyio import from_thread

from shared.models import utcnow

logger = logging.getLogger("event_bus")


class ActorKind(str, Enum):
    """Who or what caused an event."""
    USER = "user"
    ASSISTANT = "assistant"     # the in-app automated assistant
    VAPI = "vapi"               # the external voice-ordering system
    SYSTEM = "system"


@dataclass(frozen=True)
class Actor:
    kind: ActorKind
    id: Optional[str] = None
    display_name: Optional[str] = None


@dataclass
class DomainEvent:
    """
    A typed fact published when something happens in the business domain.

    Attributes:
        restaurant_id: Tenant the event belongs to; every notification and push
            derived from it is scoped by this value
        type: Event type name, e.g. "order.status_changed" (used for routing)
        payload: Event-specific data, opaque to the bus
        actor: Who caused the event, when known
        occurred_at: When it happened; defaults to ingestion time
        event_id: Unique identifier for this event instance
    """
    restaurant_id: str
    type: str
    payload: dict[str, Any] = field(default_factory=dict)
    actor: Optional[Actor] = None
    occurred_at: datetime = field(default_factory=utcnow)
    event_id: str = field(default_factory=lambda: str(uuid4()))

    def __post_init__(self):
        if not self.restaurant_id:
            raise ValueError("DomainEvent requires a restaurant_id")
        if not self.type:
            raise ValueError("DomainEvent requires a type")
        if isinstance(self.type, Enum):
            self.type = self.type.value

    def __str__(self) -> str:
        return f"DomainEvent({self.type}, id={self.event_id[:8]}, restaurant={self.restaurant_id})"


EventHandler = Callable[[DomainEvent], Awaitable[Any]]


class EventBus:
    """
    Publish/subscribe registry with fire-and-forget async delivery.

    Example usage:
        bus = EventBus()

        async def on_low_stock(event):
            ...

        bus.on("inventory.low_stock", on_low_stock)
        bus.emit(DomainEvent(restaurant_id="r1", type="inventory.low_stock",
                             payload={"itemName": "Tomatoes"}))
    """

    def __init__(self):
        # Map of event_type -> list of handlers
        self._subscribers: dict[str, list[EventHandler]] = defaultdict(list)
        # Strong references to running handler tasks until they finish
        self._tasks: set[asyncio.Task] = set()
        # Loop that owns the handler tasks; set on first use from inside it
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def _remember_loop(self) -> Optional[asyncio.AbstractEventLoop]:
        try:
            self._loop = asyncio.get_running_loop()
        except RuntimeError:
            return None
        return self._loop

    def on(self, event_type: str, handler: EventHandler) -> None:
        """
        Register an async handler for one event type.

        The same handler can be registered more than once and will then run
        once per registration.
        """
        if isinstance(event_type, Enum):
            event_type = event_type.value
        self._remember_loop()
        self._subscribers[event_type].append(handler)
        logger.debug(f"Subscribed handler to '{event_type}' events")

    def off(self, event_type: str, handler: EventHandler) -> bool:
        """
        Remove one registration of a handler.

        Returns:
            True if the handler was found and removed, False otherwise
        """
        if isinstance(event_type, Enum):
            event_type = event_type.value
        try:
            self._subscribers[event_type].remove(handler)
        except ValueError:
            return False
        logger.debug(f"Unsubscribed handler from '{event_type}' events")
        return True

    def emit(self, event: DomainEvent) -> int:
        """
        Publish an event to every matching handler.

        Handlers run as independent tasks on the running event loop; this call
        does not wait for them. From another thread, an AnyIO worker thread
        (a sync FastAPI route) hops back through anyio and any other thread
        hands the event to the bus's loop. With no loop to deliver on, the
        event is logged and dropped.

        Returns:
            Number of handlers scheduled
        """
        if self._remember_loop() is not None:
            return self._schedule(event)
        return self._emit_from_thread(event)

    def _emit_from_thread(self, event: DomainEvent) -> int:
        try:
            return from_thread.run_sync(self._schedule, event)
        except RuntimeError:
            # Not an AnyIO worker thread
            pass

        loop = self._loop
        if loop is None or loop.is_closed():
            logger.error(f"No event loop to deliver {event} on, dropping it")
            return 0
        try:
            loop.call_soon_threadsafe(self._schedule, event)
        except RuntimeError:
            logger.error(f"Event loop closed before {event} could be delivered, dropping it")
            return 0
        return len(self._subscribers.get(event.type, []))

    def _schedule(self, event: DomainEvent) -> int:
        handlers = list(self._subscribers.get(event.type, []))
        logger.info(f"Publishing: {event}")

        if not handlers:
            logger.debug(f"No handlers for event type '{event.type}'")
            return 0

        for handler in handlers:
            task = asyncio.create_task(self._invoke(handler, event))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        return len(handlers)

    async def _invoke(self, handler: EventHandler, event: DomainEvent) -> None:
        try:
            await handler(event)
        except Exception:
            logger.exception(f"Handler {getattr(handler, '__qualname__', handler)!s} failed for {event}")

    async def drain(self) -> None:
        """Wait until every handler scheduled so far has finished."""
        # Let deliveries queued from other threads create their tasks first
        await asyncio.sleep(0)
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def subscriber_count(self, event_type: str) -> int:
        """Get the number of handlers registered for an event type."""
        if isinstance(event_type, Enum):
            event_type = event_type.value
        return len(self._subscribers.get(event_type, []))

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    def clear(self) -> None:
        """Remove all subscribers."""
        self._subscribers.clear()
