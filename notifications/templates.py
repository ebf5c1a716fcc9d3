"""
Notification draft templates.

Maps each handled event type to the dashboard notification(s) it produces.
build_notification_drafts() is a pure function of the event's type and payload.

Design decisions:
- Templates are simple {placeholder} strings filled from the event payload
- A missing placeholder falls back to the template's default message rather
  than failing the whole event
- metadata is a fixed list of payload keys, a builder function, or the entire payload
- Unknown event types produce no drafts
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from events.event_bus import DomainEvent
from events.events import EventTypes
from notifications.models import (
    NotificationDraft,
    Recipient,
    RecipientRole,
    RoleRecipient,
    Severity,
    UserRecipient,
    restaurant_wide,
    roles,
)

MANAGEMENT = (RecipientRole.OWNER, RecipientRole.MANAGER)

# Sentinel: copy the whole payload into metadata
WHOLE_PAYLOAD = None


@dataclass
class DraftTemplate:
    """
    One dashboard notification shape.

    Attributes:
        severity: info / warning / critical
        title: Fixed title shown in the notification list
        message: Format string rendered against the payload (plus derived keys)
        default_message: Used when the payload lacks a placeholder
        metadata_keys: Payload keys copied into metadata (None = whole payload)
        metadata: Builds metadata from the payload; overrides metadata_keys
        recipients: Builds the recipient list from the payload
    """
    severity: Severity
    title: str
    message: str
    default_message: str
    metadata_keys: Optional[tuple[str, ...]] = WHOLE_PAYLOAD
    metadata: Optional[Callable[[dict[str, Any]], dict[str, Any]]] = None
    recipients: Callable[[dict[str, Any]], list[Recipient]] = field(
        default=lambda payload: roles(*MANAGEMENT)
    )

    def render(self, payload: dict[str, Any]) -> NotificationDraft:
        present = {k: v for k, v in payload.items() if v is not None}
        context = {**present, **_derived(present)}
        try:
            message = self.message.format(**context)
        except (KeyError, IndexError, ValueError):
            message = self.default_message

        if self.metadata is not None:
            metadata = self.metadata(payload)
        elif self.metadata_keys is WHOLE_PAYLOAD:
            metadata = dict(payload)
        else:
            metadata = {key: payload.get(key) for key in self.metadata_keys}

        return NotificationDraft(
            severity=self.severity,
            title=self.title,
            message=message,
            metadata=metadata,
            recipients=self.recipients(payload),
        )


def _derived(payload: dict[str, Any]) -> dict[str, Any]:
    """Optional phrases that read badly as bare placeholders."""
    customer = payload.get("customerName")
    return {
        "by_customer": f" by {customer}" if customer else "",
    }


def _task_recipients(payload: dict[str, Any]) -> list[Recipient]:
    assignee = payload.get("assignedTo")
    if assignee:
        return [UserRecipient(user_id=str(assignee))]
    return [RoleRecipient(role=RecipientRole.MANAGER)]


# =============================================================================
# Template Definitions
# =============================================================================

TEMPLATES: dict[str, DraftTemplate] = {

    # -------------------------------------------------------------------------
    # Staff
    # -------------------------------------------------------------------------

    EventTypes.STAFF_CLOCK_IN.value: DraftTemplate(
        severity=Severity.INFO,
        title="Staff Clock In",
        message="{staffName} clocked in.",
        default_message="Staff member clocked in.",
        metadata_keys=("staffId", "timeEntryId", "position"),
    ),
    EventTypes.STAFF_CLOCK_OUT.value: DraftTemplate(
        severity=Severity.INFO,
        title="Staff Clock Out",
        message="{staffName} clocked out.",
        default_message="Staff member clocked out.",
        metadata_keys=("staffId", "timeEntryId", "totalHours"),
    ),
    EventTypes.STAFF_BREAK_START.value: DraftTemplate(
        severity=Severity.INFO,
        title="Break Started",
        message="{staffName} started a break.",
        default_message="Staff member started a break.",
        metadata_keys=("staffId", "timeEntryId"),
    ),
    EventTypes.STAFF_BREAK_END.value: DraftTemplate(
        severity=Severity.INFO,
        title="Break Ended",
        message="{staffName} ended a break.",
        default_message="Staff member ended a break.",
        metadata_keys=("staffId", "timeEntryId", "durationMinutes"),
    ),
    EventTypes.STAFF_OPEN_SHIFT_DETECTED.value: DraftTemplate(
        severity=Severity.WARNING,
        title="Open Shift Detected",
        message="{message}",
        default_message="An open shift needs coverage.",
    ),

    # -------------------------------------------------------------------------
    # Orders
    # -------------------------------------------------------------------------

    EventTypes.ORDER_CREATED_WEB.value: DraftTemplate(
        severity=Severity.INFO,
        title="New Web Order",
        message="New order placed{by_customer}.",
        default_message="New order placed.",
        metadata=lambda payload: {"orderId": payload.get("orderId"), "source": payload.get("channel") or "web"},
        recipients=lambda payload: restaurant_wide(),
    ),
    EventTypes.ORDER_CREATED_VAPI.value: DraftTemplate(
        severity=Severity.INFO,
        title="New Phone Order",
        message="New phone order placed{by_customer}.",
        default_message="New phone order placed.",
        metadata=lambda payload: {"orderId": payload.get("orderId"), "source": "vapi"},
        recipients=lambda payload: restaurant_wide(),
    ),
    EventTypes.ORDER_STATUS_CHANGED.value: DraftTemplate(
        severity=Severity.INFO,
        title="Order Status Updated",
        message="Order {orderId} updated to {newStatus}.",
        default_message="An order status was updated.",
        metadata_keys=("orderId", "previousStatus", "newStatus"),
        recipients=lambda payload: restaurant_wide(),
    ),

    # -------------------------------------------------------------------------
    # Receipts and inventory
    # -------------------------------------------------------------------------

    EventTypes.RECEIPT_UPLOADED.value: DraftTemplate(
        severity=Severity.INFO,
        title="Receipt Uploaded",
        message="Receipt uploaded for {supplierName}.",
        default_message="Receipt uploaded.",
        metadata_keys=("receiptId", "supplierName", "totalAmount"),
    ),
    EventTypes.RECEIPT_APPLIED.value: DraftTemplate(
        severity=Severity.INFO,
        title="Receipt Applied",
        message="Receipt {receiptId} applied to inventory.",
        default_message="Receipt applied to inventory.",
        metadata_keys=("receiptId", "appliedItemsCount"),
    ),
    EventTypes.INVENTORY_LOW_STOCK.value: DraftTemplate(
        severity=Severity.WARNING,
        title="Low Stock",
        message="{itemName} is low on stock.",
        default_message="Inventory item is low on stock.",
    ),

    # -------------------------------------------------------------------------
    # Tasks
    # -------------------------------------------------------------------------

    EventTypes.TASK_CREATED.value: DraftTemplate(
        severity=Severity.INFO,
        title="Task Created",
        message="Task created: {title}.",
        default_message="New task created.",
        metadata_keys=("taskId", "title", "assignedTo"),
        recipients=_task_recipients,
    ),
    EventTypes.TASK_COMPLETED.value: DraftTemplate(
        severity=Severity.INFO,
        title="Task Completed",
        message="Task completed: {title}.",
        default_message="Task completed.",
        metadata_keys=("taskId", "title"),
        recipients=lambda payload: roles(RecipientRole.MANAGER, RecipientRole.OWNER),
    ),

    # -------------------------------------------------------------------------
    # System
    # -------------------------------------------------------------------------

    EventTypes.SYSTEM_ERROR.value: DraftTemplate(
        severity=Severity.CRITICAL,
        title="System Error",
        message="{message}",
        default_message="An error occurred.",
        recipients=lambda payload: roles(RecipientRole.OWNER),
    ),
    EventTypes.SYSTEM_WARNING.value: DraftTemplate(
        severity=Severity.WARNING,
        title="System Warning",
        message="{message}",
        default_message="A warning was reported.",
        recipients=lambda payload: roles(RecipientRole.OWNER),
    ),
}


# =============================================================================
# Template Access Functions
# =============================================================================

def get_template(event_type: str) -> Optional[DraftTemplate]:
    """Get the template for an event type, if it has one."""
    return TEMPLATES.get(event_type)


def build_notification_drafts(event: DomainEvent) -> list[NotificationDraft]:
    """
    Build the dashboard notification drafts for an event.

    Returns:
        Zero or more drafts; empty for event types without a template
    """
    template = get_template(event.type)
    if template is None:
        return []

    payload = event.payload or {}
    draft = template.render(payload)
    if not draft.message.strip():
        draft.message = template.default_message
    return [draft]
