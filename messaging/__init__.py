from messaging.channels import ChannelType, MessageResult, MessagingChannels, MessagingError
from messaging.templates import MessageTemplateName, render_message

__all__ = [
    "ChannelType",
    "MessageResult",
    "MessageTemplateName",
    "MessagingChannels",
    "MessagingError",
    "render_message",
]
