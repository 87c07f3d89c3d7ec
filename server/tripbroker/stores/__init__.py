"""Store layer wrapping database access."""

from .booking_store import BookingStore, StoreConflictError, is_unique_violation

__all__ = [
    "BookingStore",
    "StoreConflictError",
    "is_unique_violation",
]
