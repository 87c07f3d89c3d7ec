"""Booking acceptance workflow turning an accepted offer into a booking."""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.observability import metrics_collector
from ..events.booking_events import BookingCreatedPayload, booking_created
from ..events.bus import EventBus
from ..models import BookingStatus, Offer, OfferStatus, TravelRequestStatus
from ..notifications import (
    BookingNotification,
    Button,
    TemplateEngine,
    destination_label,
    format_price,
    short_id,
)
from ..stores import BookingStore, StoreConflictError
from .booking_state_machine import BookingStateMachine, TransitionContext

logger = logging.getLogger(__name__)


class AcceptanceOutcome(str, Enum):
    """Result classes of an acceptance attempt."""
    CONFIRMATION_REQUIRED = "CONFIRMATION_REQUIRED"
    BOOKING_CREATED = "BOOKING_CREATED"
    OFFER_NOT_FOUND = "OFFER_NOT_FOUND"
    NOT_AUTHORIZED = "NOT_AUTHORIZED"
    ALREADY_BOOKED = "ALREADY_BOOKED"
    ALREADY_ACCEPTED = "ALREADY_ACCEPTED"
    OFFER_UNAVAILABLE = "OFFER_UNAVAILABLE"


OUTCOME_MESSAGES = {
    AcceptanceOutcome.OFFER_NOT_FOUND: "Offer not found.",
    AcceptanceOutcome.NOT_AUTHORIZED: "You are not authorized to accept this offer.",
    AcceptanceOutcome.ALREADY_BOOKED: "A booking already exists for this travel request.",
    AcceptanceOutcome.ALREADY_ACCEPTED: "This offer has already been accepted.",
    AcceptanceOutcome.OFFER_UNAVAILABLE: "This offer is no longer available.",
}


@dataclass
class AcceptanceResult:
    """What the calling surface shows the traveler and sends to everyone else."""

    outcome: AcceptanceOutcome
    text: str
    notifications: list[BookingNotification] = field(default_factory=list)
    # Subset of notifications produced by the AWAITING_AGENCY_CONFIRMATION transition
    transition_notifications: list[BookingNotification] = field(default_factory=list)
    travel_request_id: str | None = None
    booking_id: str | None = None
    buttons: tuple[Button, ...] = ()

    @property
    def succeeded(self) -> bool:
        return self.booking_id is not None


def _rejection(outcome: AcceptanceOutcome, travel_request_id: str | None = None) -> AcceptanceResult:
    return AcceptanceResult(outcome=outcome, text=OUTCOME_MESSAGES[outcome], travel_request_id=travel_request_id)


class BookingAcceptanceService:
    """
    Single entry point for accepting an offer.

    Validates the request, creates the booking atomically, publishes
    booking.created, moves the booking to AWAITING_AGENCY_CONFIRMATION and
    assembles the notifications for the caller to send.
    """

    def __init__(
        self,
        db: AsyncSession,
        event_bus: EventBus,
        state_machine: BookingStateMachine,
        manager_channel_address: str | None = None,
        template_engine: TemplateEngine | None = None,
    ):
        self.db = db
        self.store = BookingStore(db)
        self.event_bus = event_bus
        self.state_machine = state_machine
        self.manager_channel_address = manager_channel_address
        self.template_engine = template_engine or TemplateEngine()

    async def show_confirmation(self, offer_id: UUID, acting_user_id: UUID) -> AcceptanceResult:
        """Check that the offer can be accepted and build the confirm/cancel prompt. Read-only."""
        offer = await self.store.get_offer_for_acceptance(offer_id)
        if offer is None:
            return _rejection(AcceptanceOutcome.OFFER_NOT_FOUND)

        travel_request_id = str(offer.travel_request_id)
        if offer.travel_request.user_id != acting_user_id:
            return _rejection(AcceptanceOutcome.NOT_AUTHORIZED)
        if offer.status == OfferStatus.ACCEPTED:
            return _rejection(AcceptanceOutcome.ALREADY_ACCEPTED, travel_request_id)
        if offer.status in (OfferStatus.WITHDRAWN, OfferStatus.EXPIRED):
            return _rejection(AcceptanceOutcome.OFFER_UNAVAILABLE, travel_request_id)
        if offer.travel_request.status == TravelRequestStatus.BOOKED:
            return _rejection(AcceptanceOutcome.ALREADY_BOOKED, travel_request_id)

        return AcceptanceResult(
            outcome=AcceptanceOutcome.CONFIRMATION_REQUIRED,
            text=(
                "Are you sure you want to accept this offer?\n\n"
                f"*Agency:* {offer.agency.name}\n"
                f"*Price:* {format_price(offer.price_amount)} {offer.price_currency}\n\n"
                "This will create a booking and notify the agency."
            ),
            travel_request_id=travel_request_id,
            buttons=(
                Button(label="✅ Confirm", callback_data=f"offers:cfm:{offer.id}"),
                Button(label="❌ Cancel", callback_data="offers:cxl"),
            ),
        )

    async def confirm_acceptance(self, offer_id: UUID, acting_user_id: UUID) -> AcceptanceResult:
        """
        Accept an offer on behalf of the traveler who owns its travel request.

        Validation failures and the duplicate-accept race are returned as
        results, not raised.

        Args:
            offer_id: Offer to accept
            acting_user_id: Traveler performing the acceptance

        Returns:
            AcceptanceResult describing the outcome

        Raises:
            Exception: Any store failure other than a uniqueness conflict, unchanged
        """
        offer = await self.store.get_offer_for_acceptance(offer_id)
        if offer is None:
            return self._record(_rejection(AcceptanceOutcome.OFFER_NOT_FOUND))

        travel_request = offer.travel_request
        if travel_request.user_id != acting_user_id:
            logger.warning(
                "Offer acceptance by a user who does not own the travel request",
                extra={"offer_id": str(offer_id), "user_id": str(acting_user_id)}
            )
            return self._record(_rejection(AcceptanceOutcome.NOT_AUTHORIZED))

        travel_request_id = str(travel_request.id)
        if travel_request.status == TravelRequestStatus.BOOKED:
            return self._record(_rejection(AcceptanceOutcome.ALREADY_BOOKED, travel_request_id))
        if offer.status in (OfferStatus.WITHDRAWN, OfferStatus.EXPIRED):
            logger.info(
                "Acceptance of an offer that is no longer open",
                extra={"offer_id": str(offer_id), "offer_status": OfferStatus(offer.status).value}
            )
            return self._record(_rejection(AcceptanceOutcome.OFFER_UNAVAILABLE, travel_request_id))

        # Captured up front; a rolled back session expires the loaded objects
        agency_id = str(offer.agency_id)
        agency_name = offer.agency.name
        agency_group_address = offer.agency.group_channel_address
        agent_address = self._agent_address(offer)
        destination = travel_request.destination
        price_amount = offer.price_amount
        currency = offer.price_currency

        try:
            booking = await self.store.accept_offer(
                offer,
                price_snapshot={
                    "total_price": price_amount,
                    "currency": currency,
                    "agency_name": agency_name,
                    "destination": destination,
                },
            )
        except StoreConflictError:
            logger.warning(
                "Duplicate offer acceptance rejected",
                extra={"offer_id": str(offer_id), "user_id": str(acting_user_id)}
            )
            return self._record(_rejection(AcceptanceOutcome.ALREADY_ACCEPTED, travel_request_id))
        except Exception as e:
            logger.error(
                f"Booking creation failed: {e!s}",
                exc_info=True,
                extra={"offer_id": str(offer_id), "user_id": str(acting_user_id)}
            )
            raise

        booking_id = str(booking.id)
        metrics_collector.record_booking_created(currency)
        logger.info(
            "Booking created",
            extra={
                "booking_id": booking_id,
                "offer_id": str(offer_id),
                "user_id": str(acting_user_id),
                "agency_id": agency_id,
            }
        )

        self._publish_in_background(BookingCreatedPayload(
            booking_id=booking_id,
            offer_id=str(offer_id),
            user_id=str(acting_user_id),
            agency_id=agency_id,
            travel_request_id=travel_request_id,
            price_amount=price_amount,
            currency=currency,
            destination=destination,
            agency_name=agency_name,
        ))

        transition_notifications: list[BookingNotification] = []
        try:
            transition = await self.state_machine.transition(
                booking.id,
                BookingStatus.AWAITING_AGENCY_CONFIRMATION,
                TransitionContext(triggered_by=str(acting_user_id)),
            )
            transition_notifications = transition.notifications
        except Exception as e:
            metrics_collector.record_critical_transition_failure()
            logger.error(
                f"CRITICAL: state machine transition failed after booking creation: {e!s}",
                exc_info=True,
                extra={
                    "booking_id": booking_id,
                    "offer_id": str(offer_id),
                    "user_id": str(acting_user_id),
                }
            )

        variables = {
            "bookingId": booking_id,
            "shortBookingId": short_id(booking_id),
            "offerId": str(offer_id),
            "agencyName": agency_name,
            "destination": destination_label(destination),
            "price": format_price(price_amount),
            "currency": currency,
        }

        notifications: list[BookingNotification] = []
        if agent_address:
            agent_text = self.template_engine.render("booking.created.agent", variables).text
            notifications.append(BookingNotification(address=agent_address, text=agent_text))
            if agency_group_address and agency_group_address != agent_address:
                notifications.append(BookingNotification(address=agency_group_address, text=agent_text))

        if self.manager_channel_address:
            manager_text = self.template_engine.render("booking.created.manager", variables).text
            notifications.append(BookingNotification(address=self.manager_channel_address, text=manager_text))

        notifications.extend(transition_notifications)

        return self._record(AcceptanceResult(
            outcome=AcceptanceOutcome.BOOKING_CREATED,
            text=self.template_engine.render("booking.created.traveler", variables).text,
            notifications=notifications,
            transition_notifications=transition_notifications,
            travel_request_id=travel_request_id,
            booking_id=booking_id,
        ))

    def _publish_in_background(self, payload: BookingCreatedPayload) -> None:
        event = booking_created(payload)
        task = self.event_bus.publish_in_background(event)
        task.add_done_callback(lambda t: self._log_publish_failure(t, event.id))

    @staticmethod
    def _log_publish_failure(task: asyncio.Task, event_id: str) -> None:
        if task.cancelled():
            logger.warning("Event publication cancelled", extra={"event_id": event_id})
            return
        error = task.exception()
        if error is not None:
            logger.error(
                f"Event publication failed: {error!s}",
                exc_info=error,
                extra={"event_id": event_id}
            )

    @staticmethod
    def _agent_address(offer: Offer) -> str | None:
        membership = offer.membership
        if membership is None or membership.user is None:
            return None
        return membership.user.channel_address

    @staticmethod
    def _record(result: AcceptanceResult) -> AcceptanceResult:
        metrics_collector.record_acceptance_outcome(result.outcome.value)
        return result
