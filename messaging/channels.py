"""
Outbound customer/staff messaging channels.

These channels stand in for the real providers (SMTP for email, an SMS gateway
for text messages): sends are logged and recorded so the send_notification job
handler and its tests can inspect what went out.

Design decisions:
- Each send returns a MessageResult; a failed send is a result, not an exception
- Channels keep their own history for assertions
- Failures can be forced with fail_rate for error-path tests
"""

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from shared.models import utcnow

logger = logging.getLogger("messaging")


class ChannelType(str, Enum):
    """Supported outbound channels."""
    EMAIL = "email"
    SMS = "sms"


class MessagingError(RuntimeError):
    """Raised when no channel managed to deliver a message."""


@dataclass
class MessageResult:
    """
    Result of a message send attempt.

    Captures success/failure and metadata for debugging and testing.
    """
    success: bool
    channel: ChannelType
    recipient: str
    subject: Optional[str]  # Email only
    body: str
    timestamp: datetime = field(default_factory=utcnow)
    error: Optional[str] = None

    def __str__(self) -> str:
        status = "✓" if self.success else "✗"
        if self.channel == ChannelType.EMAIL:
            return f"{status} EMAIL to {self.recipient}: {self.subject}"
        return f"{status} SMS to {self.recipient}: {self.body[:50]}..."


class EmailChannel:
    """Logs email sends and keeps them for inspection."""

    def __init__(self, fail_rate: float = 0.0, sender: str = "noreply@servio.com"):
        """
        Args:
            fail_rate: Probability of send failure (0.0 to 1.0), for testing.
            sender: From address recorded in the log line
        """
        self.fail_rate = fail_rate
        self.sender = sender
        self.sent_messages: list[MessageResult] = []

    def send(self, to: str, subject: str, body: str) -> MessageResult:
        if random.random() < self.fail_rate:
            result = MessageResult(
                success=False,
                channel=ChannelType.EMAIL,
                recipient=to,
                subject=subject,
                body=body,
                error="Simulated email delivery failure",
            )
            logger.error(f"[EMAIL FAILED] To: {to} | Subject: {subject} | Error: {result.error}")
        else:
            result = MessageResult(
                success=True,
                channel=ChannelType.EMAIL,
                recipient=to,
                subject=subject,
                body=body,
            )
            logger.info(f"[EMAIL] From: {self.sender} | To: {to} | Subject: {subject}")
            logger.debug(f"[EMAIL BODY] {body}")

        self.sent_messages.append(result)
        return result

    def get_sent_count(self) -> int:
        return len(self.sent_messages)

    def find_message_to(self, recipient: str) -> Optional[MessageResult]:
        for msg in self.sent_messages:
            if msg.recipient == recipient:
                return msg
        return None


class SMSChannel:
    """Logs SMS sends and keeps them for inspection."""

    # Single-segment SMS limit
    MAX_LENGTH = 160

    def __init__(self, fail_rate: float = 0.0):
        self.fail_rate = fail_rate
        self.sent_messages: list[MessageResult] = []

    def send(self, to: str, message: str) -> MessageResult:
        if len(message) > self.MAX_LENGTH:
            logger.warning(
                f"[SMS] Message length ({len(message)}) exceeds {self.MAX_LENGTH} chars, "
                "may be split into multiple messages"
            )

        if random.random() < self.fail_rate:
            result = MessageResult(
                success=False,
                channel=ChannelType.SMS,
                recipient=to,
                subject=None,
                body=message,
                error="Simulated SMS delivery failure",
            )
            logger.error(f"[SMS FAILED] To: {to} | Error: {result.error}")
        else:
            result = MessageResult(
                success=True,
                channel=ChannelType.SMS,
                recipient=to,
                subject=None,
                body=message,
            )
            logger.info(f"[SMS] To: {to} | Message: {message}")

        self.sent_messages.append(result)
        return result

    def get_sent_count(self) -> int:
        return len(self.sent_messages)

    def find_message_to(self, recipient: str) -> Optional[MessageResult]:
        for msg in self.sent_messages:
            if msg.recipient == recipient:
                return msg
        return None


class MessagingChannels:
    """
    Facade over all outbound channels.

    The send_notification job handler goes through this to deliver on each
    channel a job names.
    """

    def __init__(self, email_fail_rate: float = 0.0, sms_fail_rate: float = 0.0):
        self.email = EmailChannel(fail_rate=email_fail_rate)
        self.sms = SMSChannel(fail_rate=sms_fail_rate)

    def send(
        self,
        channel: str,
        recipient: str,
        subject: Optional[str],
        body: str,
    ) -> MessageResult:
        """
        Send via a named channel.

        Raises:
            ValueError: If channel is not recognized
        """
        if channel == ChannelType.EMAIL:
            return self.email.send(recipient, subject or "(no subject)", body)
        elif channel == ChannelType.SMS:
            return self.sms.send(recipient, body)
        else:
            raise ValueError(f"Unknown channel: {channel}")

    def get_all_sent_messages(self) -> list[MessageResult]:
        return self.email.sent_messages + self.sms.sent_messages

    def get_total_sent_count(self) -> int:
        return self.email.get_sent_count() + self.sms.get_sent_count()
