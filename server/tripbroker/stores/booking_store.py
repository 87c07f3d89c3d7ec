"""Data-store boundary for offer acceptance and booking lifecycle queries."""

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.exceptions import ConflictError
from ..models import (
    OPEN_OFFER_STATUSES,
    Agency,
    AgencyMembership,
    Booking,
    BookingStatus,
    Offer,
    OfferStatus,
    TravelRequestStatus,
    User,
)

logger = logging.getLogger(__name__)

# SQLSTATE for unique_violation
UNIQUE_VIOLATION = "23505"


class StoreConflictError(ConflictError):
    """Exception when a write collides with a uniqueness constraint."""

    def __init__(self, detail: str = "A booking already exists for this offer or travel request"):
        super().__init__(detail=detail, code="ALREADY_ACCEPTED")


def is_unique_violation(exc: IntegrityError) -> bool:
    """
    Tell unique violations apart from other integrity errors.

    asyncpg exposes the SQLSTATE on the wrapped driver error; SQLite only
    reports it in the message.
    """
    orig = exc.orig
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code is not None:
        return code == UNIQUE_VIOLATION
    message = str(orig)
    return "UNIQUE constraint failed" in message or "duplicate key" in message


class BookingStore:
    """Persistence operations used by the acceptance workflow, state machine and workers."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_offer_for_acceptance(self, offer_id: UUID) -> Offer | None:
        """Load an offer with its travel request, agency and submitting agent."""
        stmt = (
            select(Offer)
            .options(
                selectinload(Offer.travel_request),
                selectinload(Offer.agency),
                selectinload(Offer.membership).selectinload(AgencyMembership.user),
            )
            .where(Offer.id == offer_id)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def accept_offer(self, offer: Offer, price_snapshot: dict[str, Any]) -> Booking:
        """
        Create the booking for an accepted offer in one transaction.

        The booking row, the offer and travel request status changes and the
        withdrawal of competing offers are committed together or not at all.

        Args:
            offer: Offer loaded by get_offer_for_acceptance
            price_snapshot: Price and context captured at acceptance time

        Returns:
            The committed booking

        Raises:
            StoreConflictError: If a booking already exists for the offer or travel request
            IntegrityError: For any other constraint failure
        """
        travel_request = offer.travel_request
        booking = Booking(
            travel_request_id=travel_request.id,
            offer_id=offer.id,
            user_id=travel_request.user_id,
            agency_id=offer.agency_id,
            price_amount=offer.price_amount,
            price_currency=offer.price_currency,
            price_snapshot=price_snapshot,
            status=BookingStatus.CREATED,
        )

        try:
            self.db.add(booking)
            offer.status = OfferStatus.ACCEPTED
            travel_request.status = TravelRequestStatus.BOOKED
            await self.db.flush()

            # Competing offers on the same request can no longer win
            withdrawn = await self.db.execute(
                update(Offer)
                .where(
                    Offer.travel_request_id == travel_request.id,
                    Offer.id != offer.id,
                    Offer.status.in_(OPEN_OFFER_STATUSES),
                )
                .values(status=OfferStatus.WITHDRAWN)
                .execution_options(synchronize_session="fetch")
            )

            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if is_unique_violation(e):
                raise StoreConflictError() from e
            raise

        await self.db.refresh(booking)

        logger.info(
            "Offer accepted and booking created",
            extra={
                "booking_id": str(booking.id),
                "offer_id": str(offer.id),
                "travel_request_id": str(travel_request.id),
                "withdrawn_offers": withdrawn.rowcount,
            }
        )

        return booking

    async def get_booking_with_relations(self, booking_id: UUID) -> Booking | None:
        """Load a booking, fresh from the database, with everything needed to address its participants."""
        stmt = (
            select(Booking)
            .options(
                selectinload(Booking.user),
                selectinload(Booking.agency),
                selectinload(Booking.travel_request),
                selectinload(Booking.offer)
                .selectinload(Offer.membership)
                .selectinload(AgencyMembership.user),
            )
            .where(Booking.id == booking_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_offer_agent(self, offer_id: UUID) -> User | None:
        """Resolve the agent user who submitted an offer, if known."""
        stmt = (
            select(User)
            .join(AgencyMembership, AgencyMembership.user_id == User.id)
            .join(Offer, Offer.membership_id == AgencyMembership.id)
            .where(Offer.id == offer_id)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_user(self, user_id: UUID) -> User | None:
        return await self.db.get(User, user_id)

    async def get_agency(self, agency_id: UUID) -> Agency | None:
        return await self.db.get(Agency, agency_id)

    async def list_stale_created_bookings(self, created_before: datetime, limit: int = 100) -> list[UUID]:
        """Ids of bookings still in CREATED that were created before the cut-off."""
        stmt = (
            select(Booking.id)
            .where(
                Booking.status == BookingStatus.CREATED,
                Booking.created_at < created_before,
            )
            .order_by(Booking.created_at)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_overdue_awaiting_bookings(self, now: datetime, limit: int = 100) -> list[UUID]:
        """Ids of bookings awaiting agency confirmation past their deadline."""
        stmt = (
            select(Booking.id)
            .where(
                Booking.status == BookingStatus.AWAITING_AGENCY_CONFIRMATION,
                Booking.expires_at.is_not(None),
                Booking.expires_at <= now,
            )
            .order_by(Booking.expires_at)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
