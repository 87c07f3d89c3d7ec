"""Domain events, the in-process event bus and its handlers."""

from .booking_events import BOOKING_CREATED, BookingCreatedPayload, booking_created
from .bus import DomainEventHandler, EventBus
from .domain_event import DomainEvent
from .handlers import LogBookingCreatedHandler, SendBookingNotificationsHandler

__all__ = [
    "BOOKING_CREATED",
    "BookingCreatedPayload",
    "DomainEvent",
    "DomainEventHandler",
    "EventBus",
    "LogBookingCreatedHandler",
    "SendBookingNotificationsHandler",
    "booking_created",
]
