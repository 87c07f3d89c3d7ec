"""Booking status state machine."""

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.clock import utcnow
from ..core.exceptions import BookingNotFoundError, InvalidTransitionError
from ..core.observability import metrics_collector
from ..models import Booking, BookingEvent, BookingStatus
from ..notifications import BookingNotification, Button, destination_label, format_price, short_id
from ..stores import BookingStore

logger = logging.getLogger(__name__)


VALID_BOOKING_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.CREATED: frozenset({BookingStatus.AWAITING_AGENCY_CONFIRMATION}),
    BookingStatus.AWAITING_AGENCY_CONFIRMATION: frozenset({
        BookingStatus.AGENCY_CONFIRMED,
        BookingStatus.REJECTED_BY_AGENCY,
        BookingStatus.EXPIRED,
        BookingStatus.CANCELLED,
    }),
    BookingStatus.AGENCY_CONFIRMED: frozenset({BookingStatus.MANAGER_VERIFIED, BookingStatus.CANCELLED}),
    BookingStatus.MANAGER_VERIFIED: frozenset({BookingStatus.MEETING_SCHEDULED, BookingStatus.CANCELLED}),
    BookingStatus.MEETING_SCHEDULED: frozenset({BookingStatus.PAYMENT_PENDING, BookingStatus.CANCELLED}),
    BookingStatus.PAYMENT_PENDING: frozenset({BookingStatus.PAID, BookingStatus.CANCELLED}),
    BookingStatus.PAID: frozenset({BookingStatus.IN_PROGRESS, BookingStatus.CANCELLED}),
    BookingStatus.IN_PROGRESS: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
    # Terminal
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.EXPIRED: frozenset(),
    BookingStatus.REJECTED_BY_AGENCY: frozenset(),
}

# Lifecycle timestamp column written when entering a status
STATUS_TIMESTAMP_MAP: dict[BookingStatus, str] = {
    BookingStatus.AGENCY_CONFIRMED: "confirmed_at",
    BookingStatus.MANAGER_VERIFIED: "manager_verified_at",
    BookingStatus.PAID: "paid_at",
    BookingStatus.CANCELLED: "cancelled_at",
    BookingStatus.EXPIRED: "expired_at",
}

# Actor column written when entering a status
STATUS_ACTOR_MAP: dict[BookingStatus, str] = {
    BookingStatus.AGENCY_CONFIRMED: "agency_confirmed_by",
    BookingStatus.MANAGER_VERIFIED: "manager_verified_by",
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in VALID_BOOKING_TRANSITIONS.items() if not targets
)


def can_transition(from_status: BookingStatus | str, to_status: BookingStatus | str) -> bool:
    """Whether the transition table allows moving between two statuses."""
    try:
        return BookingStatus(to_status) in VALID_BOOKING_TRANSITIONS[BookingStatus(from_status)]
    except ValueError:
        return False


def allowed_targets(from_status: BookingStatus | str) -> list[BookingStatus]:
    """Statuses reachable in one step, in declaration order."""
    targets = VALID_BOOKING_TRANSITIONS[BookingStatus(from_status)]
    return [status for status in BookingStatus if status in targets]


@dataclass(frozen=True)
class TransitionContext:
    """Who requested a transition and why."""

    triggered_by: str | None = None
    reason: str | None = None
    metadata: dict[str, Any] | None = None


@dataclass
class TransitionResult:
    """A committed transition and the messages it calls for."""

    booking: Booking
    from_status: BookingStatus
    to_status: BookingStatus
    notifications: list[BookingNotification] = field(default_factory=list)


@dataclass(frozen=True)
class _Participants:
    traveler: str | None
    agent: str | None
    agency_group: str | None


class BookingStateMachine:
    """
    Moves bookings between lifecycle statuses.

    Each transition is validated against VALID_BOOKING_TRANSITIONS and
    committed together with its lifecycle timestamp, actor columns and an
    audit BookingEvent. Notifications for the new status are returned to the
    caller, never sent from here.
    """

    def __init__(
        self,
        db: AsyncSession,
        manager_channel_address: str | None = None,
        expiration_hours: int = 24,
    ):
        self.db = db
        self.store = BookingStore(db)
        self.manager_channel_address = manager_channel_address
        self.expiration_hours = expiration_hours

    async def transition(
        self,
        booking_id: UUID,
        target_status: BookingStatus,
        context: TransitionContext | None = None,
    ) -> TransitionResult:
        """
        Apply a status transition.

        Args:
            booking_id: Booking to move
            target_status: Desired status
            context: Actor, reason and metadata recorded in the audit trail

        Returns:
            TransitionResult with the updated booking and its notifications

        Raises:
            BookingNotFoundError: If the booking does not exist
            InvalidTransitionError: If the table does not allow the move, or another
                transition changed the status after it was read
        """
        context = context or TransitionContext()
        target_status = BookingStatus(target_status)

        booking = await self.store.get_booking_with_relations(booking_id)
        if booking is None:
            logger.warning("Transition requested for unknown booking", extra={"booking_id": str(booking_id)})
            raise BookingNotFoundError(str(booking_id))

        from_status = BookingStatus(booking.status)
        if not can_transition(from_status, target_status):
            logger.warning(
                "Invalid booking transition",
                extra={
                    "booking_id": str(booking_id),
                    "from_status": from_status.value,
                    "to_status": target_status.value,
                }
            )
            raise InvalidTransitionError(str(booking_id), from_status.value, target_status.value)

        booking_pk = booking.id
        now = utcnow()
        changes: dict[str, Any] = {"status": target_status}

        timestamp_column = STATUS_TIMESTAMP_MAP.get(target_status)
        if timestamp_column:
            changes[timestamp_column] = now

        actor_column = STATUS_ACTOR_MAP.get(target_status)
        if actor_column and context.triggered_by:
            changes[actor_column] = context.triggered_by

        if target_status == BookingStatus.CANCELLED and context.reason:
            changes["cancel_reason"] = context.reason

        if target_status == BookingStatus.AWAITING_AGENCY_CONFIRMATION:
            changes["expires_at"] = now + timedelta(hours=self.expiration_hours)
        elif from_status == BookingStatus.AWAITING_AGENCY_CONFIRMATION:
            changes["expires_at"] = None

        try:
            # Only applies while the row still holds the status validated above
            updated = await self.db.execute(
                update(Booking)
                .where(Booking.id == booking_pk, Booking.status == from_status)
                .values(**changes, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if updated.rowcount == 0:
                await self.db.rollback()
                current = await self.db.scalar(select(Booking.status).where(Booking.id == booking_pk))
                logger.warning(
                    "Booking status changed concurrently; transition not applied",
                    extra={
                        "booking_id": str(booking_id),
                        "from_status": from_status.value,
                        "current_status": BookingStatus(current).value,
                        "to_status": target_status.value,
                    }
                )
                raise InvalidTransitionError(str(booking_id), BookingStatus(current).value, target_status.value)

            self.db.add(BookingEvent(
                booking_id=booking_pk,
                from_status=from_status.value,
                to_status=target_status.value,
                triggered_by=context.triggered_by,
                reason=context.reason,
                event_metadata=context.metadata,
            ))
            await self.db.commit()
        except InvalidTransitionError:
            raise
        except Exception:
            await self.db.rollback()
            raise

        booking = await self.store.get_booking_with_relations(booking_pk)

        metrics_collector.record_transition(from_status.value, target_status.value)
        logger.info(
            "Booking transitioned",
            extra={
                "booking_id": str(booking.id),
                "from_status": from_status.value,
                "to_status": target_status.value,
                "triggered_by": context.triggered_by or "SYSTEM",
            }
        )

        return TransitionResult(
            booking=booking,
            from_status=from_status,
            to_status=target_status,
            notifications=self.build_notifications(booking, target_status),
        )

    def build_notifications(self, booking: Booking, to_status: BookingStatus) -> list[BookingNotification]:
        """Messages announcing that a booking has entered a status."""
        participants = self._participants(booking)
        sid = short_id(str(booking.id))
        dest = destination_label(booking.travel_request.destination if booking.travel_request else None)
        agency_name = booking.agency.name
        price = f"{format_price(booking.price_amount)} {booking.price_currency}"

        notifications: list[BookingNotification] = []

        def notify(address: str | None, text: str, buttons: tuple[Button, ...] = ()) -> None:
            if address:
                notifications.append(BookingNotification(address=address, text=text, buttons=buttons))

        if to_status == BookingStatus.AWAITING_AGENCY_CONFIRMATION:
            text = (
                "📨 *New Booking Request*\n\n"
                f"*Destination:* {dest}\n"
                f"*Price:* {price}\n"
                f"*Booking:* `{sid}...`\n\n"
                "Please confirm or reject this booking."
            )
            buttons = (
                Button(label="✅ Confirm", callback_data=f"bk:confirm:{booking.id}"),
                Button(label="❌ Reject", callback_data=f"bk:reject:{booking.id}"),
            )
            notify(participants.agent, text, buttons)
            if participants.agency_group != participants.agent:
                notify(participants.agency_group, text, buttons)

        elif to_status == BookingStatus.AGENCY_CONFIRMED:
            notify(
                participants.traveler,
                "✅ *Agency Confirmed!*\n\n"
                f"*{agency_name}* has confirmed your booking `{sid}...`\n"
                "Our manager will verify and send payment details shortly."
            )
            notify(
                self.manager_channel_address,
                "✅ *Agency Confirmed Booking*\n\n"
                f"*Destination:* {dest}\n"
                f"*Agency:* {agency_name}\n"
                f"*Price:* {price}\n"
                f"*Booking:* `{sid}...`",
                (
                    Button(label="✅ Verify", callback_data=f"bk:verify:{booking.id}"),
                    Button(label="❌ Cancel", callback_data=f"bk:cancel:{booking.id}"),
                ),
            )

        elif to_status == BookingStatus.MANAGER_VERIFIED:
            notify(
                participants.traveler,
                "✅ *Booking Verified*\n\n"
                f"Your booking `{sid}...` has been verified by our manager."
            )
            notify(participants.agent, f"✅ Booking `{sid}...` has been verified by the manager.")

        elif to_status == BookingStatus.PAYMENT_PENDING:
            notify(
                participants.traveler,
                "💳 *Payment Required*\n\n"
                f"Please proceed with payment for booking `{sid}...`\n"
                f"*Amount:* {price}\n\n"
                "Contact our manager for payment details."
            )

        elif to_status == BookingStatus.PAID:
            notify(participants.agent, f"💰 Payment received for booking `{sid}...`: {price}.")
            notify(
                self.manager_channel_address,
                "💰 *Payment Confirmed*\n\n"
                f"*Booking:* `{sid}...`\n"
                f"*Amount:* {price}",
                (Button(label="🚀 Start trip", callback_data=f"bk:start:{booking.id}"),),
            )

        elif to_status == BookingStatus.IN_PROGRESS:
            notify(
                participants.traveler,
                "✈️ *Your trip has started!*\n\n"
                f"Booking `{sid}...` is now in progress. Have a great trip!"
            )

        elif to_status == BookingStatus.COMPLETED:
            notify(
                participants.traveler,
                "🎉 *Trip Completed!*\n\n"
                f"Your booking `{sid}...` has been completed.\n"
                "Thank you for travelling with us!"
            )
            notify(participants.agent, f"✅ Booking `{sid}...` has been completed.")

        elif to_status == BookingStatus.CANCELLED:
            text = f"❌ *Booking Cancelled*\n\nBooking `{sid}...` has been cancelled."
            notify(participants.traveler, text)
            notify(participants.agent, text)
            notify(self.manager_channel_address, text)

        elif to_status == BookingStatus.EXPIRED:
            notify(
                participants.traveler,
                "⏰ *Booking Expired*\n\n"
                f"Booking `{sid}...` has expired because the agency did not confirm in time."
            )
            notify(participants.agent, f"⏰ Booking `{sid}...` has expired (not confirmed in time).")

        elif to_status == BookingStatus.REJECTED_BY_AGENCY:
            notify(
                participants.traveler,
                "❌ *Agency Rejected Booking*\n\n"
                f"Unfortunately, *{agency_name}* was unable to confirm booking `{sid}...`\n"
                "You can try accepting another offer."
            )
            notify(
                self.manager_channel_address,
                "❌ *Booking Rejected by Agency*\n\n"
                f"*Agency:* {agency_name}\n"
                f"*Booking:* `{sid}...`"
            )

        return notifications

    @staticmethod
    def _participants(booking: Booking) -> _Participants:
        membership = booking.offer.membership if booking.offer else None
        agent = membership.user.channel_address if membership and membership.user else None
        return _Participants(
            traveler=booking.user.channel_address if booking.user else None,
            agent=agent,
            agency_group=booking.agency.group_channel_address if booking.agency else None,
        )
