"""Notification templates, value types and delivery."""

from .formatting import DESTINATION_FALLBACK, destination_label, format_price, short_id
from .service import NotificationService
from .templates import BOOKING_TEMPLATES, NotificationTemplate, TemplateEngine, TemplateNotFoundError
from .transport import LoggingNotificationTransport, NotificationTransport
from .types import (
    BookingNotification,
    Button,
    DispatchResult,
    NotificationChannel,
    NotificationRequest,
    RecipientRole,
)

__all__ = [
    "BOOKING_TEMPLATES",
    "BookingNotification",
    "Button",
    "DESTINATION_FALLBACK",
    "DispatchResult",
    "LoggingNotificationTransport",
    "NotificationChannel",
    "NotificationRequest",
    "NotificationService",
    "NotificationTemplate",
    "NotificationTransport",
    "RecipientRole",
    "TemplateEngine",
    "TemplateNotFoundError",
    "destination_label",
    "format_price",
    "short_id",
]
