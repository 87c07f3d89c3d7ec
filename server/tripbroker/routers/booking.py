"""Booking router for lifecycle operations."""

import logging

from fastapi import APIRouter
from sqlalchemy.ext.asyncio import AsyncSession

from ..bootstrap import Container
from ..core.dependencies import CONTAINER_DEPENDENCY, DB_DEPENDENCY
from ..core.exceptions import BookingNotFoundError
from ..models.booking import Booking as BookingModel
from ..notifications import BookingNotification, format_price
from ..schemas.booking import Booking, GetBookingRequest, TransitionBookingRequest, TransitionBookingResponse
from ..schemas.common import ButtonSchema, Money, NotificationSchema, Problem
from ..services import TransitionContext, allowed_targets
from ..stores import BookingStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/booking", tags=["booking"])


def _convert_booking_to_schema(booking_model: BookingModel) -> Booking:
    """Convert booking model to schema."""
    return Booking(
        id=str(booking_model.id),
        travel_request_id=str(booking_model.travel_request_id),
        offer_id=str(booking_model.offer_id),
        user_id=str(booking_model.user_id),
        agency_id=str(booking_model.agency_id),
        price=Money(
            amount=booking_model.price_amount,
            currency=booking_model.price_currency,
            display=format_price(booking_model.price_amount),
        ),
        price_snapshot=booking_model.price_snapshot,
        status=booking_model.status,
        allowed_transitions=allowed_targets(booking_model.status),
        expires_at=booking_model.expires_at,
        confirmed_at=booking_model.confirmed_at,
        manager_verified_at=booking_model.manager_verified_at,
        paid_at=booking_model.paid_at,
        cancelled_at=booking_model.cancelled_at,
        expired_at=booking_model.expired_at,
        cancel_reason=booking_model.cancel_reason,
        created_at=booking_model.created_at,
    )


def _convert_notifications(notifications: list[BookingNotification]) -> list[NotificationSchema]:
    return [
        NotificationSchema(
            address=n.address,
            text=n.text,
            buttons=[ButtonSchema(label=b.label, callback_data=b.callback_data) for b in n.buttons],
        )
        for n in notifications
    ]


@router.post("/get", response_model=Booking, responses={404: {"model": Problem}})
async def get_booking(
    request: GetBookingRequest,
    db: AsyncSession = DB_DEPENDENCY,
) -> Booking:
    """
    Get booking details.

    Raises:
        BookingNotFoundError: 404 problem when the booking does not exist
    """
    booking = await BookingStore(db).get_booking_with_relations(request.booking_id)
    if booking is None:
        raise BookingNotFoundError(str(request.booking_id))

    return _convert_booking_to_schema(booking)


@router.post(
    "/transition",
    response_model=TransitionBookingResponse,
    responses={404: {"model": Problem}, 409: {"model": Problem}},
)
async def transition_booking(
    request: TransitionBookingRequest,
    db: AsyncSession = DB_DEPENDENCY,
    container: Container = CONTAINER_DEPENDENCY,
) -> TransitionBookingResponse:
    """
    Move a booking to another status and deliver the resulting notifications.

    Raises:
        BookingNotFoundError: 404 problem when the booking does not exist
        InvalidTransitionError: 409 problem when the move is not allowed
    """
    result = await container.state_machine(db).transition(
        request.booking_id,
        request.target_status,
        TransitionContext(
            triggered_by=request.triggered_by,
            reason=request.reason,
            metadata=request.metadata,
        ),
    )
    delivered = await container.notification_service.deliver(result.notifications)

    return TransitionBookingResponse(
        booking=_convert_booking_to_schema(result.booking),
        from_status=result.from_status,
        to_status=result.to_status,
        notifications=_convert_notifications(result.notifications),
        delivered=delivered,
    )
