"""Schemas module for API requests and responses."""

from .booking import Booking, GetBookingRequest, TransitionBookingRequest, TransitionBookingResponse
from .chat import FormatMessageRequest, FormatMessageResponse
from .common import ButtonSchema, Money, NotificationSchema, Problem, Violation
from .offer import AcceptanceResponse, ConfirmationPromptResponse, OfferActionRequest

__all__ = [
    "AcceptanceResponse",
    "Booking",
    "ButtonSchema",
    "ConfirmationPromptResponse",
    "FormatMessageRequest",
    "FormatMessageResponse",
    "GetBookingRequest",
    "Money",
    "NotificationSchema",
    "OfferActionRequest",
    "Problem",
    "TransitionBookingRequest",
    "TransitionBookingResponse",
    "Violation",
]
