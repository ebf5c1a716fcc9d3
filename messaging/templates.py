"""
Outbound message templates.

Customer- and staff-facing messages sent by the send_notification job. Each
template has an email variant (subject + body) and a short SMS variant.

Design decisions:
- Templates are simple strings with {variable} placeholders
- SMS bodies stay under 160 characters for typical values
- Status names are humanized ("out_for_delivery" -> "out for delivery")
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class MessageTemplateName(str, Enum):
    ORDER_CONFIRMED = "order_confirmed"
    ORDER_STATUS_UPDATE = "order_status_update"
    STAFF_MESSAGE = "staff_message"


@dataclass
class MessageTemplate:
    """A message template with email and SMS variants."""
    name: MessageTemplateName
    email_subject: str
    email_body: str
    sms_body: str

    def render_email(self, **kwargs) -> tuple[str, str]:
        return (
            self.email_subject.format(**kwargs),
            self.email_body.format(**kwargs),
        )

    def render_sms(self, **kwargs) -> str:
        return self.sms_body.format(**kwargs)


TEMPLATES: dict[MessageTemplateName, MessageTemplate] = {

    MessageTemplateName.ORDER_CONFIRMED: MessageTemplate(
        name=MessageTemplateName.ORDER_CONFIRMED,
        email_subject="Order Confirmed - Order #{short_order_id}",
        email_body="""Hi {customer_name},

Thanks for your order at {restaurant_name}! We've received order #{short_order_id} and the kitchen is on it.

We'll let you know when its status changes.
""",
        sms_body="{restaurant_name}: order #{short_order_id} confirmed. We'll text you when it's ready.",
    ),

    MessageTemplateName.ORDER_STATUS_UPDATE: MessageTemplate(
        name=MessageTemplateName.ORDER_STATUS_UPDATE,
        email_subject="Order {status_title} - Order #{short_order_id}",
        email_body="""Hi {customer_name},

Your order #{short_order_id} at {restaurant_name} is now {status_text}.
""",
        sms_body="{restaurant_name}: order #{short_order_id} is now {status_text}.",
    ),

    MessageTemplateName.STAFF_MESSAGE: MessageTemplate(
        name=MessageTemplateName.STAFF_MESSAGE,
        email_subject="Message from {restaurant_name}",
        email_body="{message}\n",
        sms_body="{message}",
    ),
}


def get_template(name: str) -> Optional[MessageTemplate]:
    try:
        return TEMPLATES.get(MessageTemplateName(name))
    except ValueError:
        return None


def build_context(context: dict[str, Any]) -> dict[str, Any]:
    """Fill in the derived placeholders templates expect."""
    ctx = {
        "customer_name": "there",
        "restaurant_name": "Your restaurant",
        **{k: v for k, v in context.items() if v is not None},
    }
    order_id = str(ctx.get("order_id", ""))
    ctx.setdefault("short_order_id", order_id[:8])
    status = str(ctx.get("status", ""))
    ctx.setdefault("status_text", status.replace("_", " "))
    ctx.setdefault("status_title", status.replace("_", " ").title())
    return ctx


def render_message(name: str, channel: str, **context) -> tuple[Optional[str], str]:
    """
    Render a message for a specific channel.

    Returns:
        For email: (subject, body)
        For SMS: (None, body)

    Raises:
        ValueError: If the template is unknown, a placeholder is missing, or
            the channel is invalid
    """
    template = get_template(name)
    if template is None:
        raise ValueError(f"No template found for message: {name}")

    ctx = build_context(context)
    try:
        if channel == "email":
            return template.render_email(**ctx)
        elif channel == "sms":
            return (None, template.render_sms(**ctx))
    except KeyError as e:
        raise ValueError(f"Missing template variable {e} for message: {name}") from e
    raise ValueError(f"Unknown channel: {channel}")
