"""Offer router for the acceptance workflow."""

import logging

from fastapi import APIRouter
from sqlalchemy.ext.asyncio import AsyncSession

from ..bootstrap import Container
from ..core.dependencies import CONTAINER_DEPENDENCY, DB_DEPENDENCY
from ..schemas.common import ButtonSchema, NotificationSchema
from ..schemas.offer import AcceptanceResponse, ConfirmationPromptResponse, OfferActionRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/offer", tags=["offer"])


@router.post("/confirmation", response_model=ConfirmationPromptResponse)
async def show_confirmation(
    request: OfferActionRequest,
    db: AsyncSession = DB_DEPENDENCY,
    container: Container = CONTAINER_DEPENDENCY,
) -> ConfirmationPromptResponse:
    """
    Check whether an offer can be accepted and return the confirm/cancel prompt.

    Read-only; rejections are reported in the outcome, not as errors.
    """
    result = await container.acceptance_service(db).show_confirmation(request.offer_id, request.user_id)
    return ConfirmationPromptResponse(
        outcome=result.outcome,
        text=result.text,
        travel_request_id=result.travel_request_id,
        buttons=[ButtonSchema(label=b.label, callback_data=b.callback_data) for b in result.buttons],
    )


@router.post("/accept", response_model=AcceptanceResponse)
async def accept_offer(
    request: OfferActionRequest,
    db: AsyncSession = DB_DEPENDENCY,
    container: Container = CONTAINER_DEPENDENCY,
) -> AcceptanceResponse:
    """
    Accept an offer, creating a booking.

    The response lists every message the acceptance produced. Only the
    confirm/reject prompts of the first transition are sent from here; the
    booking.created messages are sent by the event handler, which
    deduplicates them per recipient.
    """
    result = await container.acceptance_service(db).confirm_acceptance(request.offer_id, request.user_id)
    delivered = await container.notification_service.deliver(result.transition_notifications)

    logger.info(
        "Offer acceptance handled",
        extra={
            "offer_id": str(request.offer_id),
            "outcome": result.outcome.value,
            "booking_id": result.booking_id,
            "delivered": delivered,
        }
    )

    return AcceptanceResponse(
        outcome=result.outcome,
        text=result.text,
        travel_request_id=result.travel_request_id,
        booking_id=result.booking_id,
        notifications=[
            NotificationSchema(
                address=n.address,
                text=n.text,
                buttons=[ButtonSchema(label=b.label, callback_data=b.callback_data) for b in n.buttons],
            )
            for n in result.notifications
        ],
        delivered=delivered,
    )
