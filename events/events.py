"""
Domain event definitions.

Collaborating services publish these events; the notification pipeline and the
order message subscriber consume them. Helper functions build properly shaped
DomainEvent objects so publishers do not hand-assemble payload dicts.

Design decisions:
- Event type names are "<domain>.<past-tense fact>" strings
- Payload keys are camelCase, matching what dashboards receive
- Events carry everything subscribers need (no looking back up the order)
"""

from enum import Enum
from typing import Any, Optional

from events.event_bus import Actor, ActorKind, DomainEvent


class EventTypes(str, Enum):
    """
    Event types the notification pipeline reacts to.

    This is a closed set: the notification service subscribes to exactly
    these and ignores everything else.
    """
    # Staff
    STAFF_CLOCK_IN = "staff.clock_in"
    STAFF_CLOCK_OUT = "staff.clock_out"
    STAFF_BREAK_START = "staff.break_start"
    STAFF_BREAK_END = "staff.break_end"
    STAFF_OPEN_SHIFT_DETECTED = "staff.open_shift_detected"

    # Orders
    ORDER_CREATED_WEB = "order.created_web"
    ORDER_CREATED_VAPI = "order.created_vapi"
    ORDER_STATUS_CHANGED = "order.status_changed"

    # Receipts / inventory
    RECEIPT_UPLOADED = "receipt.uploaded"
    RECEIPT_APPLIED = "receipt.applied"
    INVENTORY_LOW_STOCK = "inventory.low_stock"

    # Tasks
    TASK_CREATED = "task.created"
    TASK_COMPLETED = "task.completed"

    # System
    SYSTEM_ERROR = "system.error"
    SYSTEM_WARNING = "system.warning"


HANDLED_EVENT_TYPES: tuple[str, ...] = tuple(t.value for t in EventTypes)

SYSTEM_ACTOR = Actor(kind=ActorKind.SYSTEM)


def is_handled(event_type: str) -> bool:
    return event_type in HANDLED_EVENT_TYPES


# =============================================================================
# Order Events
# =============================================================================

def order_created(
    restaurant_id: str,
    order_id: str,
    channel: str = "web",
    customer_name: Optional[str] = None,
    customer_email: Optional[str] = None,
    customer_phone: Optional[str] = None,
    total_amount: Optional[float] = None,
    actor: Optional[Actor] = None,
) -> DomainEvent:
    """
    Create an order.created_web / order.created_vapi event.

    Orders placed through the voice system (channel "vapi") get their own
    event type so dashboards can tell phone orders apart.
    """
    event_type = EventTypes.ORDER_CREATED_VAPI if channel == "vapi" else EventTypes.ORDER_CREATED_WEB
    if actor is None and channel == "vapi":
        actor = Actor(kind=ActorKind.VAPI)
    return DomainEvent(
        restaurant_id=restaurant_id,
        type=event_type.value,
        actor=actor,
        payload=_compact({
            "orderId": order_id,
            "channel": channel,
            "customerName": customer_name,
            "customerEmail": customer_email,
            "customerPhone": customer_phone,
            "totalAmount": total_amount,
        }),
    )


def order_status_changed(
    restaurant_id: str,
    order_id: str,
    previous_status: str,
    new_status: str,
    customer_name: Optional[str] = None,
    customer_email: Optional[str] = None,
    customer_phone: Optional[str] = None,
    actor: Optional[Actor] = None,
) -> DomainEvent:
    """Create an order.status_changed event (e.g. preparing -> ready)."""
    return DomainEvent(
        restaurant_id=restaurant_id,
        type=EventTypes.ORDER_STATUS_CHANGED.value,
        actor=actor,
        payload=_compact({
            "orderId": order_id,
            "previousStatus": previous_status,
            "newStatus": new_status,
            "customerName": customer_name,
            "customerEmail": customer_email,
            "customerPhone": customer_phone,
        }),
    )


# =============================================================================
# Staff Events
# =============================================================================

def staff_clock_in(
    restaurant_id: str,
    staff_id: str,
    staff_name: str,
    time_entry_id: str,
    position: Optional[str] = None,
) -> DomainEvent:
    return DomainEvent(
        restaurant_id=restaurant_id,
        type=EventTypes.STAFF_CLOCK_IN.value,
        actor=Actor(kind=ActorKind.USER, id=staff_id, display_name=staff_name),
        payload=_compact({
            "staffId": staff_id,
            "staffName": staff_name,
            "timeEntryId": time_entry_id,
            "position": position,
        }),
    )


def staff_clock_out(
    restaurant_id: str,
    staff_id: str,
    staff_name: str,
    time_entry_id: str,
    total_hours: float,
) -> DomainEvent:
    return DomainEvent(
        restaurant_id=restaurant_id,
        type=EventTypes.STAFF_CLOCK_OUT.value,
        actor=Actor(kind=ActorKind.USER, id=staff_id, display_name=staff_name),
        payload={
            "staffId": staff_id,
            "staffName": staff_name,
            "timeEntryId": time_entry_id,
            "totalHours": total_hours,
        },
    )


# =============================================================================
# Inventory / System Events
# =============================================================================

def inventory_low_stock(
    restaurant_id: str,
    item_id: str,
    item_name: str,
    current_quantity: float,
    threshold: float,
    unit: Optional[str] = None,
) -> DomainEvent:
    """
    Create an inventory.low_stock event.

    Published by the inventory collaborator once an item crosses its
    reorder threshold.
    """
    return DomainEvent(
        restaurant_id=restaurant_id,
        type=EventTypes.INVENTORY_LOW_STOCK.value,
        actor=SYSTEM_ACTOR,
        payload=_compact({
            "itemId": item_id,
            "itemName": item_name,
            "currentQuantity": current_quantity,
            "threshold": threshold,
            "unit": unit,
        }),
    )


def system_error(restaurant_id: str, message: str, **details: Any) -> DomainEvent:
    return DomainEvent(
        restaurant_id=restaurant_id,
        type=EventTypes.SYSTEM_ERROR.value,
        actor=SYSTEM_ACTOR,
        payload={"message": message, **details},
    )


def _compact(payload: dict[str, Any]) -> dict[str, Any]:
    """Drop keys whose value is None."""
    return {k: v for k, v in payload.items() if v is not None}
