"""Travel request model definition."""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import ForeignKey, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base

if TYPE_CHECKING:
    from .offer import Offer
    from .user import User


class TravelRequestStatus(str, Enum):
    """Travel request status enumeration."""
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    DISTRIBUTED = "DISTRIBUTED"
    OFFERS_RECEIVED = "OFFERS_RECEIVED"
    BOOKED = "BOOKED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


class TravelRequest(Base):
    """A traveler's trip inquiry that collects offers from agencies."""

    __tablename__ = "travel_requests"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Owning traveler
    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    destination: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[TravelRequestStatus] = mapped_column(
        String(32),
        nullable=False,
        default=TravelRequestStatus.SUBMITTED,
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

    # Relationships
    user: Mapped["User"] = relationship("User")
    offers: Mapped[list["Offer"]] = relationship(
        "Offer",
        back_populates="travel_request",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return (
            f"<TravelRequest(id={self.id}, user_id={self.user_id}, "
            f"destination='{self.destination}', status={self.status})>"
        )
