"""
Domain events and the in-process event bus.

- Collaborators publish DomainEvents when something happens in their domain
- Subscribers (the notification service, the order message subscriber) react
- Publishers and subscribers only share the bus and the event shapes
"""

from events.event_bus import Actor, ActorKind, DomainEvent, EventBus
from events.events import HANDLED_EVENT_TYPES, EventTypes

__all__ = [
    "Actor",
    "ActorKind",
    "DomainEvent",
    "EventBus",
    "EventTypes",
    "HANDLED_EVENT_TYPES",
]
