"""
Notification models.

A DomainEvent turns into zero or more NotificationDrafts (not persisted). Each
draft is persisted as a Notification and pushed to the restaurant's realtime
channel as a RealtimeMessage.

Design decisions:
- Using Pydantic for validation and serialization
- Recipient is a tagged union (restaurant / role / user); dispatch currently
  always targets the whole restaurant, the finer addressing is stored so the
  pull path can filter on it later
- Realtime payloads use camelCase keys, which is what dashboards consume
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class RecipientRole(str, Enum):
    OWNER = "owner"
    MANAGER = "manager"
    STAFF = "staff"
    ADMIN = "admin"
    PLATFORM_ADMIN = "platform-admin"


# =============================================================================
# Recipients
# =============================================================================

class RestaurantRecipient(BaseModel):
    """Everyone connected to the restaurant."""
    kind: Literal["restaurant"] = "restaurant"


class RoleRecipient(BaseModel):
    kind: Literal["role"] = "role"
    role: RecipientRole

    model_config = ConfigDict(use_enum_values=True)


class UserRecipient(BaseModel):
    kind: Literal["user"] = "user"
    user_id: str


Recipient = Annotated[
    Union[RestaurantRecipient, RoleRecipient, UserRecipient],
    Field(discriminator="kind"),
]


def restaurant_wide() -> list[Recipient]:
    return [RestaurantRecipient()]


def roles(*names: RecipientRole) -> list[Recipient]:
    return [RoleRecipient(role=name) for name in names]


# =============================================================================
# Drafts and persisted notifications
# =============================================================================

class NotificationDraft(BaseModel):
    """
    An in-memory notification candidate built from one event.

    Never persisted as-is: the store assigns id and created_at.
    """
    severity: Severity
    title: str
    message: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    recipients: list[Recipient] = Field(default_factory=restaurant_wide)

    model_config = ConfigDict(use_enum_values=True)


class NotificationRef(BaseModel):
    """What the store hands back after persisting a draft."""
    id: str
    created_at: datetime


class Notification(BaseModel):
    """A persisted notification row."""
    id: str
    restaurant_id: str
    type: str = Field(..., description="Type of the source event")
    severity: Severity
    title: str
    message: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    recipients: list[Recipient] = Field(default_factory=restaurant_wide)
    created_at: datetime
    is_read: bool = False

    model_config = ConfigDict(use_enum_values=True)

    @classmethod
    def from_draft(
        cls,
        ref: NotificationRef,
        restaurant_id: str,
        event_type: str,
        draft: NotificationDraft,
    ) -> "Notification":
        return cls(
            id=ref.id,
            created_at=ref.created_at,
            restaurant_id=restaurant_id,
            type=event_type,
            severity=draft.severity,
            title=draft.title,
            message=draft.message,
            metadata=dict(draft.metadata),
            recipients=list(draft.recipients),
            is_read=False,
        )


# =============================================================================
# Realtime wire format
# =============================================================================

class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )


class PushedNotification(_CamelModel):
    id: str
    type: str
    severity: Severity
    title: str
    message: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    is_read: bool = False


class RealtimeMessage(_CamelModel):
    """Body of a "notifications.new" push: {restaurantId, notification}."""
    restaurant_id: str
    notification: PushedNotification

    @classmethod
    def for_notification(cls, notification: Notification) -> "RealtimeMessage":
        return cls(
            restaurant_id=notification.restaurant_id,
            notification=PushedNotification(
                id=notification.id,
                type=notification.type,
                severity=notification.severity,
                title=notification.title,
                message=notification.message,
                metadata=notification.metadata,
                created_at=notification.created_at,
                is_read=notification.is_read,
            ),
        )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
