"""Notification value types exchanged with the delivery transport."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class NotificationChannel(str, Enum):
    """Delivery channel enumeration."""
    CHAT = "CHAT"


class RecipientRole(str, Enum):
    """Role of the notification recipient."""
    TRAVELER = "TRAVELER"
    AGENT = "AGENT"
    AGENCY = "AGENCY"
    MANAGER = "MANAGER"


class Button(BaseModel):
    """Actionable choice rendered beside a chat message."""

    model_config = ConfigDict(frozen=True)

    label: str = Field(..., description="Button caption")
    callback_data: str = Field(..., description="Opaque action token sent back on press")


class BookingNotification(BaseModel):
    """A pre-rendered message for one chat address."""

    model_config = ConfigDict(frozen=True)

    address: str = Field(..., description="Recipient chat address")
    text: str = Field(..., description="Rendered message text")
    buttons: tuple[Button, ...] = Field(default=(), description="Optional action buttons")


class NotificationRequest(BaseModel):
    """One templated message to one recipient over one channel."""

    model_config = ConfigDict(frozen=True)

    event_name: str = Field(..., description="Domain event that triggered the notification")
    recipient_id: str = Field(..., description="User, agency or channel identity")
    recipient_address: str = Field(..., description="Channel address of the recipient")
    channel: NotificationChannel = Field(NotificationChannel.CHAT, description="Delivery channel")
    template_key: str = Field(..., description="Template key, scoped to the recipient role")
    variables: dict[str, str | int] = Field(default_factory=dict, description="Template variables")
    recipient_role: RecipientRole = Field(RecipientRole.TRAVELER, description="Recipient role")


class DispatchResult(BaseModel):
    """Outcome of handing one notification request to the transport."""

    idempotency_key: str
    template_key: str
    recipient_address: str
    deduplicated: bool = False
    delivered: bool = False
    error: str | None = None
