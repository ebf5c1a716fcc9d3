"""
Tests for notification models and the realtime wire format.
"""

from datetime import datetime, timezone

from notifications.models import (
    Notification,
    NotificationDraft,
    NotificationRef,
    RealtimeMessage,
    RestaurantRecipient,
    Severity,
)

CREATED_AT = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)


def make_notification() -> Notification:
    draft = NotificationDraft(
        severity=Severity.WARNING,
        title="Low Stock",
        message="Tomatoes is low on stock.",
        metadata={"itemId": "i1"},
    )
    return Notification.from_draft(
        NotificationRef(id="n1", created_at=CREATED_AT),
        restaurant_id="r1",
        event_type="inventory.low_stock",
        draft=draft,
    )


class TestNotification:
    """Tests for building persisted notifications."""

    def test_from_draft(self):
        """Test that the store-assigned fields are merged with the draft."""
        notification = make_notification()

        assert notification.id == "n1"
        assert notification.created_at == CREATED_AT
        assert notification.type == "inventory.low_stock"
        assert notification.severity == "warning"
        assert notification.is_read is False

    def test_default_recipients_are_restaurant_wide(self):
        draft = NotificationDraft(severity="info", title="t", message="m")
        assert draft.recipients == [RestaurantRecipient()]


class TestRealtimeMessage:
    """Tests for the pushed payload shape."""

    def test_wire_format_uses_camel_case(self):
        """Test the exact body dashboards receive."""
        wire = RealtimeMessage.for_notification(make_notification()).to_wire()

        assert wire == {
            "restaurantId": "r1",
            "notification": {
                "id": "n1",
                "type": "inventory.low_stock",
                "severity": "warning",
                "title": "Low Stock",
                "message": "Tomatoes is low on stock.",
                "metadata": {"itemId": "i1"},
                "createdAt": "2024-05-01T12:30:00Z",
                "isRead": False,
            },
        }
