"""Unit tests for the booking acceptance workflow."""

import asyncio
import logging
from types import SimpleNamespace
from uuid import UUID, uuid4

import pytest
from sqlalchemy import func, select

from factories import MANAGER_CHANNEL, seed_marketplace
from tripbroker.events import BOOKING_CREATED, DomainEvent, DomainEventHandler, EventBus
from tripbroker.models import Booking, BookingStatus, Offer, OfferStatus, TravelRequestStatus
from tripbroker.services import AcceptanceOutcome, BookingAcceptanceService, BookingStateMachine
from tripbroker.stores import BookingStore


class CollectingHandler(DomainEventHandler):
    event_name = BOOKING_CREATED

    def __init__(self):
        self.events: list[DomainEvent] = []

    async def handle(self, event: DomainEvent) -> None:
        self.events.append(event)


class StubStateMachine:
    """Records transition calls and returns no notifications."""

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.calls = []

    async def transition(self, booking_id, target_status, context=None):
        self.calls.append((booking_id, target_status, context))
        if self.error:
            raise self.error
        return SimpleNamespace(notifications=[])


def make_service(session, bus=None, state_machine=None, manager_channel_address=None):
    return BookingAcceptanceService(
        session,
        event_bus=bus or EventBus(),
        state_machine=state_machine or BookingStateMachine(session, manager_channel_address=manager_channel_address),
        manager_channel_address=manager_channel_address,
    )


async def count_bookings(session) -> int:
    return (await session.execute(select(func.count()).select_from(Booking))).scalar_one()


@pytest.mark.asyncio
async def test_accept_offer_creates_booking(test_session, marketplace):
    """Test the happy path from offer to awaiting booking."""
    bus = EventBus()
    collector = CollectingHandler()
    bus.register(collector)
    service = make_service(test_session, bus)

    result = await service.confirm_acceptance(marketplace.offer.id, marketplace.traveler.id)

    assert result.outcome == AcceptanceOutcome.BOOKING_CREATED
    assert result.succeeded
    assert result.travel_request_id == str(marketplace.travel_request.id)
    assert "Booking Created!" in result.text
    assert "TravelCo" in result.text
    assert "Dubai" in result.text
    assert "1,500 USD" in result.text
    assert result.booking_id[:8] in result.text

    booking = await BookingStore(test_session).get_booking_with_relations(UUID(result.booking_id))
    assert booking.status == BookingStatus.AWAITING_AGENCY_CONFIRMATION
    assert booking.price_amount == 150000
    assert booking.price_snapshot == {
        "total_price": 150000,
        "currency": "USD",
        "agency_name": "TravelCo",
        "destination": "Dubai",
    }
    assert booking.offer.status == OfferStatus.ACCEPTED
    assert booking.travel_request.status == TravelRequestStatus.BOOKED

    await bus.drain()
    assert len(collector.events) == 1
    payload = collector.events[0].payload
    assert payload.booking_id == result.booking_id
    assert payload.offer_id == str(marketplace.offer.id)
    assert payload.price_amount == 150000
    assert payload.agency_name == "TravelCo"


@pytest.mark.asyncio
async def test_accept_offer_notifications(test_session, marketplace):
    """Test the agent, group and state machine notifications are merged."""
    service = make_service(test_session)

    result = await service.confirm_acceptance(marketplace.offer.id, marketplace.traveler.id)

    assert [n.address for n in result.notifications] == ["2001", "-1001", "2001", "-1001"]
    assert "Offer Accepted" in result.notifications[0].text
    assert result.notifications[0].text == result.notifications[1].text
    assert "New Booking Request" in result.notifications[2].text
    assert result.notifications[2].buttons
    assert result.transition_notifications == result.notifications[2:]


@pytest.mark.asyncio
async def test_competing_offers_are_withdrawn(test_session, marketplace):
    """Test only open offers on the same request are withdrawn on acceptance."""
    lapsed_offer = Offer(
        travel_request=marketplace.travel_request,
        agency=marketplace.agency,
        membership=marketplace.membership,
        price_amount=160000,
        price_currency="USD",
        status=OfferStatus.EXPIRED,
    )
    test_session.add(lapsed_offer)
    await test_session.commit()
    other_request = await seed_marketplace(test_session)

    await make_service(test_session).confirm_acceptance(marketplace.offer.id, marketplace.traveler.id)

    store = BookingStore(test_session)

    async def status_of(offer):
        return (await store.get_offer_for_acceptance(offer.id)).status

    assert await status_of(marketplace.offer) == OfferStatus.ACCEPTED
    assert await status_of(marketplace.competing_offer) == OfferStatus.WITHDRAWN
    assert await status_of(lapsed_offer) == OfferStatus.EXPIRED
    assert await status_of(other_request.offer) == OfferStatus.SUBMITTED
    assert await status_of(other_request.competing_offer) == OfferStatus.VIEWED
    assert (await store.get_offer_for_acceptance(other_request.offer.id)).travel_request.status == \
        TravelRequestStatus.OFFERS_RECEIVED


@pytest.mark.asyncio
@pytest.mark.parametrize("lapsed_status", [OfferStatus.WITHDRAWN, OfferStatus.EXPIRED])
async def test_offer_no_longer_open_is_refused(test_session, marketplace, lapsed_status):
    """Test a withdrawn or expired offer cannot be accepted directly."""
    marketplace.offer.status = lapsed_status
    await test_session.commit()

    result = await make_service(test_session).confirm_acceptance(marketplace.offer.id, marketplace.traveler.id)

    assert result.outcome == AcceptanceOutcome.OFFER_UNAVAILABLE
    assert result.text == "This offer is no longer available."
    assert result.travel_request_id == str(marketplace.travel_request.id)
    assert result.notifications == []
    assert await count_bookings(test_session) == 0
    offer = await BookingStore(test_session).get_offer_for_acceptance(marketplace.offer.id)
    assert offer.status == lapsed_status
    assert offer.travel_request.status == TravelRequestStatus.OFFERS_RECEIVED


@pytest.mark.asyncio
async def test_manager_channel_toggle(test_session, marketplace):
    """Test the manager notification appears only when a channel is configured."""
    without = await make_service(test_session, state_machine=StubStateMachine()).confirm_acceptance(
        marketplace.offer.id, marketplace.traveler.id
    )
    assert [n.address for n in without.notifications] == ["2001", "-1001"]

    other = await seed_marketplace(test_session)
    with_manager = await make_service(
        test_session, state_machine=StubStateMachine(), manager_channel_address=MANAGER_CHANNEL
    ).confirm_acceptance(other.offer.id, other.traveler.id)

    assert [n.address for n in with_manager.notifications] == ["2001", "-1001", MANAGER_CHANNEL]
    assert "New Booking" in with_manager.notifications[-1].text
    assert "TravelCo" in with_manager.notifications[-1].text


@pytest.mark.asyncio
async def test_group_equal_to_agent_address_is_notified_once(test_session):
    """Test exact-value dedup of the agency group against the agent chat."""
    marketplace = await seed_marketplace(test_session, group_address="2001")

    result = await make_service(test_session, state_machine=StubStateMachine()).confirm_acceptance(
        marketplace.offer.id, marketplace.traveler.id
    )

    assert [n.address for n in result.notifications] == ["2001"]


@pytest.mark.asyncio
async def test_offer_not_found(test_session):
    """Test accepting an unknown offer."""
    result = await make_service(test_session).confirm_acceptance(uuid4(), uuid4())

    assert result.outcome == AcceptanceOutcome.OFFER_NOT_FOUND
    assert result.text == "Offer not found."
    assert not result.succeeded


@pytest.mark.asyncio
async def test_not_authorized_creates_nothing(test_session, marketplace):
    """Test a user who does not own the travel request cannot accept."""
    result = await make_service(test_session).confirm_acceptance(marketplace.offer.id, marketplace.agent.id)

    assert result.outcome == AcceptanceOutcome.NOT_AUTHORIZED
    assert result.text == "You are not authorized to accept this offer."
    assert result.notifications == []
    assert await count_bookings(test_session) == 0


@pytest.mark.asyncio
async def test_already_booked_request(test_session, marketplace):
    """Test a second offer cannot be accepted once the request is booked."""
    service = make_service(test_session)
    await service.confirm_acceptance(marketplace.offer.id, marketplace.traveler.id)

    result = await service.confirm_acceptance(marketplace.competing_offer.id, marketplace.traveler.id)

    assert result.outcome == AcceptanceOutcome.ALREADY_BOOKED
    assert result.text == "A booking already exists for this travel request."
    assert result.notifications == []
    assert await count_bookings(test_session) == 1


@pytest.mark.asyncio
async def test_transition_failure_keeps_booking(test_session, marketplace, caplog):
    """Test a failed post-commit transition is logged but not fatal."""
    machine = StubStateMachine(error=RuntimeError("state store unavailable"))
    service = make_service(test_session, state_machine=machine)

    with caplog.at_level(logging.ERROR):
        result = await service.confirm_acceptance(marketplace.offer.id, marketplace.traveler.id)

    assert result.outcome == AcceptanceOutcome.BOOKING_CREATED
    assert len(machine.calls) == 1
    assert machine.calls[0][1] == BookingStatus.AWAITING_AGENCY_CONFIRMATION
    assert machine.calls[0][2].triggered_by == str(marketplace.traveler.id)
    assert any("CRITICAL" in r.getMessage() for r in caplog.records)

    booking = await BookingStore(test_session).get_booking_with_relations(UUID(result.booking_id))
    assert booking.status == BookingStatus.CREATED


@pytest.mark.asyncio
async def test_store_failure_is_reraised(test_session, marketplace, caplog):
    """Test that failures other than conflicts propagate unchanged."""
    service = make_service(test_session)

    async def broken_accept(offer, price_snapshot):
        raise RuntimeError("connection reset")

    service.store.accept_offer = broken_accept

    with caplog.at_level(logging.ERROR), pytest.raises(RuntimeError, match="connection reset"):
        await service.confirm_acceptance(marketplace.offer.id, marketplace.traveler.id)

    assert any(r.exc_info for r in caplog.records if r.levelno == logging.ERROR)


@pytest.mark.asyncio
async def test_response_does_not_wait_for_handlers(test_session, marketplace):
    """Test acceptance returns while booking.created handlers are still running."""
    release = asyncio.Event()
    finished = []

    class SlowHandler(DomainEventHandler):
        event_name = BOOKING_CREATED

        async def handle(self, event):
            await release.wait()
            finished.append(event.payload.booking_id)

    bus = EventBus()
    bus.register(SlowHandler())

    result = await make_service(test_session, bus).confirm_acceptance(marketplace.offer.id, marketplace.traveler.id)

    assert result.succeeded
    assert finished == []

    release.set()
    await bus.drain()
    assert finished == [result.booking_id]


@pytest.mark.asyncio
async def test_publish_failure_is_logged(test_session, marketplace, caplog):
    """Test a failing publication never reaches the caller."""
    bus = EventBus()

    async def broken_publish(event):
        raise RuntimeError("bus offline")

    bus.publish = broken_publish

    with caplog.at_level(logging.ERROR):
        result = await make_service(test_session, bus).confirm_acceptance(
            marketplace.offer.id, marketplace.traveler.id
        )
        await bus.drain()

    assert result.outcome == AcceptanceOutcome.BOOKING_CREATED
    assert any("Event publication failed" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_show_confirmation_prompt(test_session, marketplace):
    """Test the read-only confirmation prompt."""
    result = await make_service(test_session).show_confirmation(marketplace.offer.id, marketplace.traveler.id)

    assert result.outcome == AcceptanceOutcome.CONFIRMATION_REQUIRED
    assert "TravelCo" in result.text
    assert "1,500 USD" in result.text
    assert [b.callback_data for b in result.buttons] == [f"offers:cfm:{marketplace.offer.id}", "offers:cxl"]
    assert await count_bookings(test_session) == 0


@pytest.mark.asyncio
async def test_show_confirmation_rejections(test_session, marketplace):
    """Test the prompt refuses unavailable offers."""
    service = make_service(test_session)

    assert (await service.show_confirmation(uuid4(), marketplace.traveler.id)).outcome == \
        AcceptanceOutcome.OFFER_NOT_FOUND
    assert (await service.show_confirmation(marketplace.offer.id, marketplace.agent.id)).outcome == \
        AcceptanceOutcome.NOT_AUTHORIZED

    await service.confirm_acceptance(marketplace.offer.id, marketplace.traveler.id)

    accepted = await service.show_confirmation(marketplace.offer.id, marketplace.traveler.id)
    assert accepted.outcome == AcceptanceOutcome.ALREADY_ACCEPTED
    assert accepted.text == "This offer has already been accepted."

    withdrawn = await service.show_confirmation(marketplace.competing_offer.id, marketplace.traveler.id)
    assert withdrawn.outcome == AcceptanceOutcome.OFFER_UNAVAILABLE
    assert withdrawn.text == "This offer is no longer available."
