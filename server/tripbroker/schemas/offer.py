"""Offer acceptance Pydantic schemas."""

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from ..services.acceptance_service import AcceptanceOutcome
from .common import ButtonSchema, NotificationSchema


class OfferActionRequest(BaseModel):
    """Request schema for previewing or accepting an offer."""

    offer_id: UUID = Field(..., description="Offer to accept")
    user_id: UUID = Field(..., description="Traveler performing the acceptance")


class ConfirmationPromptResponse(BaseModel):
    """Response schema for the acceptance confirmation prompt."""

    outcome: AcceptanceOutcome = Field(..., description="Whether the offer can be accepted")
    text: str = Field(..., description="Message to show the traveler")
    travel_request_id: Optional[str] = Field(None, description="Travel request the offer belongs to")
    buttons: List[ButtonSchema] = Field(default_factory=list, description="Confirm and cancel choices")


class AcceptanceResponse(BaseModel):
    """Response schema for an acceptance attempt."""

    outcome: AcceptanceOutcome = Field(..., description="Acceptance outcome")
    text: str = Field(..., description="Message to show the traveler")
    travel_request_id: Optional[str] = Field(None, description="Travel request the offer belongs to")
    booking_id: Optional[str] = Field(None, description="Created booking, on success")
    notifications: List[NotificationSchema] = Field(default_factory=list, description="Messages for other participants")
    delivered: int = Field(0, ge=0, description="Number of notifications handed to the transport")
