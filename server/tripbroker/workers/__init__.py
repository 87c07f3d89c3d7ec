"""Background workers for booking lifecycle maintenance."""

from .base import BaseWorker
from .booking_workers import BookingExpiryWorker, BookingReconciliationWorker
from .manager import WorkerManager

__all__ = ["BaseWorker", "BookingExpiryWorker", "BookingReconciliationWorker", "WorkerManager"]
