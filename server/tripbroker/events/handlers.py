"""Handlers reacting to booking lifecycle events."""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..notifications import (
    NotificationChannel,
    NotificationRequest,
    NotificationService,
    RecipientRole,
    destination_label,
    format_price,
    short_id,
)
from ..stores import BookingStore
from .booking_events import BOOKING_CREATED, BookingCreatedPayload
from .bus import DomainEventHandler
from .domain_event import DomainEvent

logger = logging.getLogger(__name__)

MANAGER_CHANNEL_RECIPIENT = "manager-channel"


class LogBookingCreatedHandler(DomainEventHandler):
    """Writes every created booking to the audit log."""

    event_name = BOOKING_CREATED

    async def handle(self, event: DomainEvent[BookingCreatedPayload]) -> None:
        p = event.payload
        logger.info(
            "Booking created event",
            extra={
                "event_id": event.id,
                "booking_id": p.booking_id,
                "agency_name": p.agency_name,
                "destination": p.destination,
                "price_amount": p.price_amount,
                "currency": p.currency,
            }
        )


class SendBookingNotificationsHandler(DomainEventHandler):
    """
    Fans a booking.created event out to everyone who should hear about it.

    Recipients:
    - the agent who submitted the offer, when resolvable
    - the agency group chat, when set and different from the agent's address
    - the manager broadcast channel, when configured
    - the traveler, when they have a chat address
    """

    event_name = BOOKING_CREATED

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        notification_service: NotificationService,
        manager_channel_address: str | None = None,
    ):
        self.session_factory = session_factory
        self.notification_service = notification_service
        self.manager_channel_address = manager_channel_address

    async def handle(self, event: DomainEvent[BookingCreatedPayload]) -> None:
        async with self.session_factory() as session:
            requests = await self.build_requests(event, BookingStore(session))

        if requests:
            await self.notification_service.send_all(requests)

        logger.info(
            "Booking notifications dispatched",
            extra={"booking_id": event.payload.booking_id, "notifications": len(requests)}
        )

    async def build_requests(
        self,
        event: DomainEvent[BookingCreatedPayload],
        store: BookingStore,
    ) -> list[NotificationRequest]:
        """Resolve recipients and build one request per distinct address."""
        p = event.payload
        variables = self.build_variables(p)
        requests: list[NotificationRequest] = []

        def add(recipient_id: str, address: str, template_key: str, role: RecipientRole) -> None:
            requests.append(NotificationRequest(
                event_name=event.name,
                recipient_id=recipient_id,
                recipient_address=address,
                channel=NotificationChannel.CHAT,
                template_key=template_key,
                variables=variables,
                recipient_role=role,
            ))

        agent = await store.get_offer_agent(UUID(p.offer_id))
        if agent is not None and agent.channel_address:
            add(str(agent.id), agent.channel_address, "booking.created.agent", RecipientRole.AGENT)

            agency = await store.get_agency(UUID(p.agency_id))
            group_address = agency.group_channel_address if agency else None
            if group_address and group_address != agent.channel_address:
                add(p.agency_id, group_address, "booking.created.agent", RecipientRole.AGENCY)
        else:
            logger.debug("Offer agent has no chat address; skipping agency notifications",
                         extra={"offer_id": p.offer_id})

        if self.manager_channel_address:
            add(MANAGER_CHANNEL_RECIPIENT, self.manager_channel_address,
                "booking.created.manager", RecipientRole.MANAGER)

        traveler = await store.get_user(UUID(p.user_id))
        if traveler is not None and traveler.channel_address:
            add(p.user_id, traveler.channel_address, "booking.created.traveler", RecipientRole.TRAVELER)

        return requests

    @staticmethod
    def build_variables(p: BookingCreatedPayload) -> dict[str, str | int]:
        return {
            "bookingId": p.booking_id,
            "shortBookingId": short_id(p.booking_id),
            "offerId": p.offer_id,
            "agencyName": p.agency_name,
            "destination": destination_label(p.destination),
            "price": format_price(p.price_amount),
            "currency": p.currency,
        }
