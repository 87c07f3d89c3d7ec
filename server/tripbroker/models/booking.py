"""Booking and booking event model definitions."""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, CheckConstraint, DateTime, ForeignKey, Integer, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.clock import utcnow
from ..core.database import Base

if TYPE_CHECKING:
    from .agency import Agency
    from .offer import Offer
    from .travel_request import TravelRequest
    from .user import User


class BookingStatus(str, Enum):
    """Booking status enumeration."""
    CREATED = "CREATED"
    AWAITING_AGENCY_CONFIRMATION = "AWAITING_AGENCY_CONFIRMATION"
    AGENCY_CONFIRMED = "AGENCY_CONFIRMED"
    MANAGER_VERIFIED = "MANAGER_VERIFIED"
    MEETING_SCHEDULED = "MEETING_SCHEDULED"
    PAYMENT_PENDING = "PAYMENT_PENDING"
    PAID = "PAID"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"
    REJECTED_BY_AGENCY = "REJECTED_BY_AGENCY"


class Booking(Base):
    """Booking created when a traveler accepts an offer."""

    __tablename__ = "bookings"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # One booking per travel request and per offer; a second accept violates these
    travel_request_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("travel_requests.id", ondelete="RESTRICT"),
        nullable=False,
        unique=True,
        index=True
    )
    offer_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("offers.id", ondelete="RESTRICT"),
        nullable=False,
        unique=True,
        index=True
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    agency_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("agencies.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )

    # Price captured at acceptance time, in minor units
    price_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    price_currency: Mapped[str] = mapped_column(String(3), nullable=False)
    price_snapshot: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    status: Mapped[BookingStatus] = mapped_column(
        String(40),
        nullable=False,
        default=BookingStatus.CREATED,
        index=True
    )

    # Lifecycle timestamps
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    manager_verified_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    expired_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Deadline for agency confirmation while awaiting it
    expires_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)

    # Actors
    agency_confirmed_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    manager_verified_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    cancel_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        default=utcnow,
        server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        nullable=False,
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow
    )

    __table_args__ = (
        CheckConstraint("price_amount >= 0", name="ck_booking_price_amount_non_negative"),
        CheckConstraint("length(price_currency) = 3", name="ck_booking_price_currency_length"),
    )

    # Relationships
    travel_request: Mapped["TravelRequest"] = relationship("TravelRequest")
    offer: Mapped["Offer"] = relationship("Offer")
    user: Mapped["User"] = relationship("User")
    agency: Mapped["Agency"] = relationship("Agency")
    events: Mapped[list["BookingEvent"]] = relationship(
        "BookingEvent",
        back_populates="booking",
        order_by="BookingEvent.created_at"
    )

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, offer_id={self.offer_id}, "
            f"price={self.price_amount} {self.price_currency}, status={self.status})>"
        )


class BookingEvent(Base):
    """Append-only audit record of a booking status transition."""

    __tablename__ = "booking_events"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    booking_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    from_status: Mapped[str] = mapped_column(String(40), nullable=False)
    to_status: Mapped[str] = mapped_column(String(40), nullable=False)
    triggered_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    event_metadata: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        default=utcnow,
        server_default=func.now()
    )

    booking: Mapped["Booking"] = relationship("Booking", back_populates="events")

    def __repr__(self) -> str:
        return (
            f"<BookingEvent(booking_id={self.booking_id}, "
            f"{self.from_status}->{self.to_status}, triggered_by={self.triggered_by})>"
        )
