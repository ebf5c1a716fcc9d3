"""
Tests for outbound message templates.
"""

import pytest

from messaging.templates import TEMPLATES, MessageTemplateName, build_context, get_template, render_message


class TestTemplateRegistry:
    def test_all_templates_registered(self):
        """Test that every template name has a definition."""
        for name in MessageTemplateName:
            assert name in TEMPLATES

    def test_get_unknown_template(self):
        assert get_template("carrier_pigeon") is None


class TestBuildContext:
    def test_defaults_and_derived_values(self):
        ctx = build_context({"order_id": "ord-7f3a9c21", "status": "out_for_delivery", "customer_name": None})

        assert ctx["customer_name"] == "there"
        assert ctx["short_order_id"] == "ord-7f3a"
        assert ctx["status_text"] == "out for delivery"
        assert ctx["status_title"] == "Out For Delivery"


class TestRenderMessage:
    """Tests for channel-specific rendering."""

    def test_render_email(self):
        subject, body = render_message(
            "order_confirmed",
            "email",
            order_id="ord-12345678",
            customer_name="Alice",
            restaurant_name="Bella Pasta",
        )

        assert subject == "Order Confirmed - Order #ord-1234"
        assert "Hi Alice" in body
        assert "Bella Pasta" in body

    def test_render_sms(self):
        subject, body = render_message("order_status_update", "sms", order_id="ord-12345678", status="ready")

        assert subject is None
        assert body == "Your restaurant: order #ord-1234 is now ready."
        assert len(body) <= 160

    def test_unknown_template(self):
        with pytest.raises(ValueError, match="No template found"):
            render_message("carrier_pigeon", "sms")

    def test_missing_variable(self):
        """Test that a staff message without text is rejected."""
        with pytest.raises(ValueError, match="Missing template variable"):
            render_message("staff_message", "sms")

    def test_unknown_channel(self):
        with pytest.raises(ValueError, match="Unknown channel"):
            render_message("staff_message", "fax", message="hello")
