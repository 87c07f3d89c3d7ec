"""Offer model definition."""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base

if TYPE_CHECKING:
    from .agency import Agency, AgencyMembership
    from .travel_request import TravelRequest


class OfferStatus(str, Enum):
    """Offer status enumeration."""
    SUBMITTED = "SUBMITTED"
    VIEWED = "VIEWED"
    ACCEPTED = "ACCEPTED"
    WITHDRAWN = "WITHDRAWN"
    EXPIRED = "EXPIRED"


# Offers that are still competing for the travel request
OPEN_OFFER_STATUSES = (OfferStatus.SUBMITTED, OfferStatus.VIEWED)


class Offer(Base):
    """An agency's priced proposal against a travel request."""

    __tablename__ = "offers"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    travel_request_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("travel_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    agency_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("agencies.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Agent who submitted the offer
    membership_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("agency_memberships.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    # Price in minor units (e.g., cents)
    price_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    price_currency: Mapped[str] = mapped_column(String(3), nullable=False)

    status: Mapped[OfferStatus] = mapped_column(
        String(20),
        nullable=False,
        default=OfferStatus.SUBMITTED,
        index=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now(),
        onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint("price_amount >= 0", name="ck_offer_price_amount_non_negative"),
        CheckConstraint("length(price_currency) = 3", name="ck_offer_price_currency_length"),
    )

    # Relationships
    travel_request: Mapped["TravelRequest"] = relationship("TravelRequest", back_populates="offers")
    agency: Mapped["Agency"] = relationship("Agency")
    membership: Mapped["AgencyMembership | None"] = relationship("AgencyMembership")

    def __repr__(self) -> str:
        return (
            f"<Offer(id={self.id}, travel_request_id={self.travel_request_id}, "
            f"agency_id={self.agency_id}, price={self.price_amount} {self.price_currency}, "
            f"status={self.status})>"
        )
