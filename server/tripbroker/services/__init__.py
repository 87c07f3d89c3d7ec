"""Services module for business logic."""

from .acceptance_service import AcceptanceOutcome, AcceptanceResult, BookingAcceptanceService
from .booking_state_machine import (
    STATUS_TIMESTAMP_MAP,
    TERMINAL_STATUSES,
    VALID_BOOKING_TRANSITIONS,
    BookingStateMachine,
    TransitionContext,
    TransitionResult,
    allowed_targets,
    can_transition,
)
from .proxy_chat_formatter import ChatState, ContentType, Language, SenderType, format_forwarded_message

__all__ = [
    "AcceptanceOutcome",
    "AcceptanceResult",
    "BookingAcceptanceService",
    "BookingStateMachine",
    "ChatState",
    "ContentType",
    "Language",
    "STATUS_TIMESTAMP_MAP",
    "SenderType",
    "TERMINAL_STATUSES",
    "TransitionContext",
    "TransitionResult",
    "VALID_BOOKING_TRANSITIONS",
    "allowed_targets",
    "can_transition",
    "format_forwarded_message",
]
