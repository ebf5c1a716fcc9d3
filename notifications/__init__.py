from notifications.dispatcher import NotificationDispatcher, RestaurantConnectionManager
from notifications.models import Notification, NotificationDraft, RealtimeMessage, Severity
from notifications.notification_service import NotificationService
from notifications.templates import build_notification_drafts

__all__ = [
    "Notification",
    "NotificationDispatcher",
    "NotificationDraft",
    "NotificationService",
    "RealtimeMessage",
    "RestaurantConnectionManager",
    "Severity",
    "build_notification_drafts",
]
