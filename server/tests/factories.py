"""Builders for test data and test doubles shared across the suite."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from tripbroker.core.clock import utcnow
from tripbroker.models import (
    Agency,
    AgencyMembership,
    Booking,
    BookingStatus,
    MembershipRole,
    Offer,
    OfferStatus,
    TravelRequest,
    TravelRequestStatus,
    User,
)
from tripbroker.notifications import Button, NotificationTransport

MANAGER_CHANNEL = "-100999"


@dataclass
class Marketplace:
    """A travel request with an offer from TravelCo and a competing offer."""

    traveler: User
    agent: User
    agency: Agency
    membership: AgencyMembership
    travel_request: TravelRequest
    offer: Offer
    competing_offer: Offer


async def seed_marketplace(
    session: AsyncSession,
    traveler_address: str | None = "1001",
    agent_address: str | None = "2001",
    group_address: str | None = "-1001",
    destination: str | None = "Dubai",
    with_membership: bool = True,
) -> Marketplace:
    """Persist a traveler, two agencies and one offer from each."""
    traveler = User(display_name="Anna Traveler", channel_address=traveler_address)
    agent = User(display_name="Tom Agent", channel_address=agent_address)
    agency = Agency(name="TravelCo", group_channel_address=group_address)
    membership = AgencyMembership(agency=agency, user=agent, role=MembershipRole.AGENT)

    rival_agent = User(display_name="Rita Rival", channel_address="2002")
    rival_agency = Agency(name="Sunny Tours", group_channel_address="-1002")
    rival_membership = AgencyMembership(agency=rival_agency, user=rival_agent)

    travel_request = TravelRequest(
        user=traveler,
        destination=destination,
        status=TravelRequestStatus.OFFERS_RECEIVED,
    )
    offer = Offer(
        travel_request=travel_request,
        agency=agency,
        membership=membership if with_membership else None,
        price_amount=150000,
        price_currency="USD",
        status=OfferStatus.SUBMITTED,
    )
    competing_offer = Offer(
        travel_request=travel_request,
        agency=rival_agency,
        membership=rival_membership,
        price_amount=142500,
        price_currency="USD",
        status=OfferStatus.VIEWED,
    )

    session.add_all([
        traveler, agent, agency, membership,
        rival_agent, rival_agency, rival_membership,
        travel_request, offer, competing_offer,
    ])
    await session.commit()

    return Marketplace(
        traveler=traveler,
        agent=agent,
        agency=agency,
        membership=membership,
        travel_request=travel_request,
        offer=offer,
        competing_offer=competing_offer,
    )


async def create_booking(
    session: AsyncSession,
    marketplace: Marketplace,
    status: BookingStatus = BookingStatus.CREATED,
    created_at: datetime | None = None,
    expires_at: datetime | None = None,
) -> Booking:
    """Persist a booking for the marketplace's TravelCo offer in a given status."""
    offer = marketplace.offer
    booking = Booking(
        travel_request_id=marketplace.travel_request.id,
        offer_id=offer.id,
        user_id=marketplace.traveler.id,
        agency_id=marketplace.agency.id,
        price_amount=offer.price_amount,
        price_currency=offer.price_currency,
        price_snapshot={"total_price": offer.price_amount, "currency": offer.price_currency},
        status=status,
        created_at=created_at or utcnow(),
        expires_at=expires_at,
    )
    offer.status = OfferStatus.ACCEPTED
    marketplace.travel_request.status = TravelRequestStatus.BOOKED
    session.add(booking)
    await session.commit()
    return booking


@dataclass
class SentMessage:
    address: str
    text: str
    buttons: tuple[Button, ...] = ()


@dataclass
class RecordingTransport(NotificationTransport):
    """Transport that keeps every message instead of sending it."""

    sent: list[SentMessage] = field(default_factory=list)
    fail_addresses: set[str] = field(default_factory=set)

    async def send(self, address: str, text: str, buttons: Sequence[Button] = ()) -> None:
        if address in self.fail_addresses:
            raise ConnectionError(f"chat {address} unreachable")
        self.sent.append(SentMessage(address=address, text=text, buttons=tuple(buttons)))

    def addresses(self) -> list[str]:
        return [message.address for message in self.sent]
