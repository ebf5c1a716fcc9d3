"""
Tests for outbound messaging channels.

These tests verify that the email and SMS channels record what they send and
that the facade routes by channel name.
"""

import logging

import pytest

from messaging.channels import ChannelType, EmailChannel, MessagingChannels, SMSChannel


class TestEmailChannel:
    """Tests for the email channel."""

    def test_send_email_success(self, email_channel: EmailChannel):
        """Test successful email send."""
        result = email_channel.send(
            to="alice@example.com",
            subject="Order Confirmed",
            body="Thanks!",
        )

        assert result.success is True
        assert result.channel == ChannelType.EMAIL
        assert result.recipient == "alice@example.com"
        assert result.subject == "Order Confirmed"
        assert result.error is None

    def test_find_message_to(self, email_channel: EmailChannel):
        """Test finding a message sent to a specific recipient."""
        email_channel.send("target@example.com", "Hello", "World")
        email_channel.send("other@example.com", "Hi", "There")

        found = email_channel.find_message_to("target@example.com")

        assert found is not None
        assert found.subject == "Hello"
        assert email_channel.find_message_to("nobody@example.com") is None

    def test_simulated_failure(self):
        """Test simulated email failure."""
        result = EmailChannel(fail_rate=1.0).send("a@example.com", "Test", "Body")

        assert result.success is False
        assert "failure" in result.error.lower()


class TestSMSChannel:
    """Tests for the SMS channel."""

    def test_send_sms_success(self, sms_channel: SMSChannel):
        result = sms_channel.send(to="+15550101", message="Your order is ready")

        assert result.success is True
        assert result.channel == ChannelType.SMS
        assert result.subject is None
        assert sms_channel.get_sent_count() == 1

    def test_long_message_warning(self, sms_channel: SMSChannel, caplog):
        """Test that messages over one segment trigger a warning."""
        with caplog.at_level(logging.WARNING, logger="messaging"):
            sms_channel.send("+15550101", "A" * 200)

        assert any("exceeds" in record.message.lower() for record in caplog.records)


class TestMessagingChannels:
    """Tests for the MessagingChannels facade."""

    def test_send_by_channel_name(self, channels: MessagingChannels):
        """Test sending via channel name string."""
        email_result = channels.send("email", "alice@example.com", "Subject", "Body")
        sms_result = channels.send("sms", "+15550101", None, "SMS body")

        assert email_result.channel == ChannelType.EMAIL
        assert sms_result.channel == ChannelType.SMS
        assert channels.get_total_sent_count() == 2
        assert len(channels.get_all_sent_messages()) == 2

    def test_missing_email_subject_gets_placeholder(self, channels: MessagingChannels):
        result = channels.send("email", "alice@example.com", None, "Body")
        assert result.subject == "(no subject)"

    def test_send_unknown_channel_raises(self, channels: MessagingChannels):
        """Test that unknown channel raises ValueError."""
        with pytest.raises(ValueError, match="Unknown channel"):
            channels.send("pigeon", "somewhere", "Test", "Body")
