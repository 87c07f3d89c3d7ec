"""Booking-related Pydantic schemas."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from ..models.booking import BookingStatus
from .common import Money, NotificationSchema


class GetBookingRequest(BaseModel):
    """Request schema for getting a booking."""

    booking_id: UUID = Field(..., description="Booking to retrieve")


class TransitionBookingRequest(BaseModel):
    """Request schema for moving a booking to another status."""

    booking_id: UUID = Field(..., description="Booking to transition")
    target_status: BookingStatus = Field(..., description="Desired status")
    triggered_by: Optional[str] = Field(None, max_length=64, description="Actor requesting the change")
    reason: Optional[str] = Field(None, max_length=1000, description="Reason, stored on cancellation")
    metadata: Optional[Dict[str, Any]] = Field(None, description="Extra audit data")


class Booking(BaseModel):
    """Booking response schema."""

    id: str = Field(..., description="Unique booking ID")
    travel_request_id: str = Field(..., description="Booked travel request")
    offer_id: str = Field(..., description="Accepted offer")
    user_id: str = Field(..., description="Traveler")
    agency_id: str = Field(..., description="Agency")
    price: Money = Field(..., description="Price captured at acceptance")
    price_snapshot: Dict[str, Any] = Field(..., description="Context captured at acceptance")
    status: BookingStatus = Field(..., description="Booking status")
    allowed_transitions: List[BookingStatus] = Field(default_factory=list, description="Statuses reachable next")
    expires_at: Optional[datetime] = Field(None, description="Agency confirmation deadline")
    confirmed_at: Optional[datetime] = Field(None, description="Agency confirmation time")
    manager_verified_at: Optional[datetime] = Field(None, description="Manager verification time")
    paid_at: Optional[datetime] = Field(None, description="Payment time")
    cancelled_at: Optional[datetime] = Field(None, description="Cancellation time")
    expired_at: Optional[datetime] = Field(None, description="Expiry time")
    cancel_reason: Optional[str] = Field(None, description="Reason given on cancellation")
    created_at: datetime = Field(..., description="Booking creation time (ISO 8601)")


class TransitionBookingResponse(BaseModel):
    """Response schema for a booking transition."""

    booking: Booking = Field(..., description="Booking after the transition")
    from_status: BookingStatus = Field(..., description="Status before the transition")
    to_status: BookingStatus = Field(..., description="Status after the transition")
    notifications: List[NotificationSchema] = Field(default_factory=list, description="Messages produced")
    delivered: int = Field(0, ge=0, description="Number of notifications handed to the transport")
