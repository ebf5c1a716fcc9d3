"""
Customer messaging for order events.

Subscribes to order events and enqueues a send_notification job for the
customer's email and/or phone. Sending happens later in the worker, so an
order update never waits on (or fails because of) an SMS gateway.
"""

import logging
from typing import Any, Optional, Protocol

from events.event_bus import DomainEvent, EventBus
from events.events import EventTypes
from jobs.models import Job, JobType
from messaging.channels import ChannelType
from messaging.templates import MessageTemplateName

logger = logging.getLogger("order_messages")

ORDER_EVENTS = (
    EventTypes.ORDER_CREATED_WEB.value,
    EventTypes.ORDER_CREATED_VAPI.value,
    EventTypes.ORDER_STATUS_CHANGED.value,
)


class JobQueue(Protocol):
    async def add_job(
        self,
        job_type: str,
        details: Optional[dict[str, Any]] = ...,
        channels: Optional[list[str]] = ...,
        restaurant_id: Optional[str] = ...,
    ) -> Job: ...


def contact_channels(payload: dict[str, Any]) -> list[str]:
    """Channels the customer can be reached on and has not opted out of."""
    channels = []
    if payload.get("customerPhone") and payload.get("smsOptIn", True):
        channels.append(ChannelType.SMS.value)
    if payload.get("customerEmail") and payload.get("emailOptIn", True):
        channels.append(ChannelType.EMAIL.value)
    return channels


class OrderMessageSubscriber:
    """Turns order events into queued customer messages."""

    def __init__(self, bus: EventBus, jobs: JobQueue):
        self.bus = bus
        self.jobs = jobs
        self._started = False

    def start(self) -> None:
        if self._started:
            logger.warning("OrderMessageSubscriber already started")
            return
        for event_type in ORDER_EVENTS:
            self.bus.on(event_type, self.handle_order_event)
        self._started = True

    def stop(self) -> None:
        if not self._started:
            return
        for event_type in ORDER_EVENTS:
            self.bus.off(event_type, self.handle_order_event)
        self._started = False

    async def handle_order_event(self, event: DomainEvent) -> Optional[Job]:
        payload = event.payload or {}
        order_id = payload.get("orderId")
        if not order_id:
            return None

        channels = contact_channels(payload)
        if not channels:
            logger.debug(f"No reachable contact for order {order_id}, no message queued")
            return None

        if event.type == EventTypes.ORDER_STATUS_CHANGED.value:
            if not payload.get("newStatus"):
                return None
            template = MessageTemplateName.ORDER_STATUS_UPDATE
        else:
            template = MessageTemplateName.ORDER_CONFIRMED

        job = await self.jobs.add_job(
            JobType.SEND_NOTIFICATION.value,
            details={
                "template": template.value,
                "recipient": {
                    "email": payload.get("customerEmail"),
                    "phone": payload.get("customerPhone"),
                },
                "context": {
                    "order_id": order_id,
                    "customer_name": payload.get("customerName"),
                    "restaurant_name": payload.get("restaurantName"),
                    "status": payload.get("newStatus"),
                },
            },
            channels=channels,
            restaurant_id=event.restaurant_id,
        )
        logger.info(f"Queued {template.value} message for order {order_id} via {', '.join(channels)}")
        return job
