"""Booking lifecycle domain events."""

from dataclasses import dataclass

from .domain_event import DomainEvent

BOOKING_CREATED = "booking.created"


@dataclass(frozen=True)
class BookingCreatedPayload:
    """Facts captured when a traveler accepts an offer and a booking is created."""

    booking_id: str
    offer_id: str
    user_id: str
    agency_id: str
    travel_request_id: str
    price_amount: int
    currency: str
    destination: str | None
    agency_name: str


def booking_created(payload: BookingCreatedPayload) -> DomainEvent[BookingCreatedPayload]:
    """Build the event published after the acceptance transaction commits."""
    return DomainEvent(name=BOOKING_CREATED, payload=payload)
