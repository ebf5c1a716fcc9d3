"""
Tests for the domain event constructors.
"""

from events.event_bus import ActorKind
from events.events import (
    HANDLED_EVENT_TYPES,
    EventTypes,
    inventory_low_stock,
    is_handled,
    order_created,
    order_status_changed,
    staff_clock_in,
    staff_clock_out,
    system_error,
)


class TestEventTypes:
    """Tests for the closed set of handled event types."""

    def test_fifteen_handled_types(self):
        """Test that every notification-producing type is listed."""
        assert len(HANDLED_EVENT_TYPES) == 15
        assert "inventory.low_stock" in HANDLED_EVENT_TYPES

    def test_is_handled(self):
        assert is_handled("system.error")
        assert not is_handled("order.refunded")


class TestOrderEvents:
    """Tests for order event helpers."""

    def test_web_order(self):
        """Test that web orders map to order.created_web."""
        event = order_created("r1", "o1", customer_name="Alice", customer_email="a@example.com")

        assert event.type == EventTypes.ORDER_CREATED_WEB.value
        assert event.payload["orderId"] == "o1"
        assert event.payload["customerEmail"] == "a@example.com"
        assert "customerPhone" not in event.payload

    def test_vapi_order(self):
        """Test that voice orders get their own type and a vapi actor."""
        event = order_created("r1", "o2", channel="vapi")

        assert event.type == EventTypes.ORDER_CREATED_VAPI.value
        assert event.actor.kind == ActorKind.VAPI

    def test_status_changed(self):
        event = order_status_changed("r1", "o1", previous_status="preparing", new_status="ready")

        assert event.type == "order.status_changed"
        assert event.payload["previousStatus"] == "preparing"
        assert event.payload["newStatus"] == "ready"


class TestOtherEvents:
    """Tests for staff, inventory and system helpers."""

    def test_staff_clock_in_actor(self):
        """Test that the staff member is recorded as the actor."""
        event = staff_clock_in("r1", "s1", "Sam", "te-1", position="line cook")

        assert event.actor.id == "s1"
        assert event.actor.display_name == "Sam"
        assert event.payload["position"] == "line cook"

    def test_staff_clock_out_hours(self):
        event = staff_clock_out("r1", "s1", "Sam", "te-1", total_hours=7.5)
        assert event.payload["totalHours"] == 7.5

    def test_inventory_low_stock_payload(self):
        """Test the camelCase payload shape."""
        event = inventory_low_stock("r1", "i1", "Tomatoes", current_quantity=2, threshold=5)

        assert event.payload == {
            "itemId": "i1",
            "itemName": "Tomatoes",
            "currentQuantity": 2,
            "threshold": 5,
        }
        assert event.actor.kind == ActorKind.SYSTEM

    def test_system_error_details(self):
        event = system_error("r1", "Printer offline", printerId="p1")
        assert event.payload == {"message": "Printer offline", "printerId": "p1"}
