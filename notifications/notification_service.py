"""
Notification service.

Subscribes to the restaurant domain events that warrant a dashboard
notification, persists one row per draft and pushes each row to the
restaurant's realtime channel.

Design decisions:
- All "when to notify" logic lives in the draft templates; publishers only emit
- Drafts of one event are stored and pushed in order, one at a time
- A store failure propagates (the bus logs it) and stops the remaining drafts
- A push failure is logged and swallowed; the stored row stays
"""

import logging

from events.event_bus import DomainEvent, EventBus
from events.events import HANDLED_EVENT_TYPES
from notifications.dispatcher import NotificationDispatcher
from notifications.models import Notification, NotificationDraft, NotificationRef, RealtimeMessage
from notifications.templates import build_notification_drafts

logger = logging.getLogger("notification_service")


class NotificationService:
    """
    Event-driven notification service.

    Example:
        service = NotificationService(bus, store, dispatcher)
        service.start()

        bus.emit(inventory_low_stock("r1", "i1", "Tomatoes", 2, 5))
        # -> one "Low Stock" row for r1, pushed to r1's dashboards
    """

    def __init__(self, bus: EventBus, store, dispatcher: NotificationDispatcher):
        self.bus = bus
        self.store = store
        self.dispatcher = dispatcher
        self._started = False

    def start(self) -> None:
        """Subscribe to every handled event type."""
        if self._started:
            logger.warning("NotificationService already started")
            return
        for event_type in HANDLED_EVENT_TYPES:
            self.bus.on(event_type, self.handle_event)
        self._started = True
        logger.info(f"NotificationService listening for {len(HANDLED_EVENT_TYPES)} event types")

    def stop(self) -> None:
        if not self._started:
            return
        for event_type in HANDLED_EVENT_TYPES:
            self.bus.off(event_type, self.handle_event)
        self._started = False

    async def handle_event(self, event: DomainEvent) -> list[Notification]:
        """
        Persist and push every draft the event produces.

        Returns:
            The notifications that were stored, in draft order
        """
        drafts = build_notification_drafts(event)
        if not drafts:
            logger.debug(f"No notifications for {event}")
            return []

        stored = []
        for draft in drafts:
            ref = await self.store.create_notification(event.restaurant_id, event.type, draft)
            notification = self._to_notification(ref, event, draft)
            stored.append(notification)
            await self._push(notification)
        return stored

    def _to_notification(
        self,
        ref: NotificationRef,
        event: DomainEvent,
        draft: NotificationDraft,
    ) -> Notification:
        return Notification.from_draft(ref, event.restaurant_id, event.type, draft)

    async def _push(self, notification: Notification) -> None:
        try:
            await self.dispatcher.emit_to_restaurant(
                notification.restaurant_id,
                RealtimeMessage.for_notification(notification),
            )
        except Exception as e:
            logger.warning(f"Realtime push failed for notification {notification.id}: {e}")
