"""Background workers driving time-based booking transitions."""

import logging
from abc import abstractmethod
from datetime import timedelta
from uuid import UUID

from ..bootstrap import Container
from ..core.clock import utcnow
from ..core.exceptions import BookingNotFoundError, InvalidTransitionError
from ..models import BookingStatus
from ..services import TransitionContext
from ..stores import BookingStore
from .base import BaseWorker

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "SYSTEM"


class _BookingTransitionWorker(BaseWorker):
    """Moves a batch of bookings to one target status, each in its own transaction."""

    target_status: BookingStatus
    reason: str

    def __init__(self, name: str, container: Container, interval_seconds: int = 60, batch_size: int = 100):
        super().__init__(name=name, interval_seconds=interval_seconds)
        self.container = container
        self.batch_size = batch_size

    @abstractmethod
    async def find_due(self, store: BookingStore) -> list[UUID]:
        """Ids of the bookings to move in this iteration, at most batch_size."""

    async def process(self) -> int:
        async with self.container.session_factory() as db:
            booking_ids = await self.find_due(BookingStore(db))
            state_machine = self.container.state_machine(db)

            moved = 0
            for booking_id in booking_ids:
                try:
                    result = await state_machine.transition(
                        booking_id,
                        self.target_status,
                        TransitionContext(triggered_by=SYSTEM_ACTOR, reason=self.reason),
                    )
                except (BookingNotFoundError, InvalidTransitionError):
                    # Moved on since it was listed
                    logger.debug(
                        "Booking no longer due, skipping",
                        extra={"booking_id": str(booking_id), "worker": self.name}
                    )
                    continue

                moved += 1
                await self.container.notification_service.deliver(result.notifications)

        if moved:
            logger.info(
                f"{self.name} moved {moved} bookings to {self.target_status.value}",
                extra={"moved": moved, "worker": self.name}
            )
        return moved


class BookingExpiryWorker(_BookingTransitionWorker):
    """
    Expires bookings the agency did not confirm in time.

    Picks up bookings in AWAITING_AGENCY_CONFIRMATION whose expires_at has
    passed and moves them to EXPIRED, notifying traveler and agent.
    """

    target_status = BookingStatus.EXPIRED
    reason = "Agency did not confirm in time"

    def __init__(self, container: Container, interval_seconds: int = 60, batch_size: int = 100):
        super().__init__("BookingExpiry", container, interval_seconds, batch_size)

    async def find_due(self, store: BookingStore) -> list[UUID]:
        return await store.list_overdue_awaiting_bookings(utcnow(), limit=self.batch_size)


class BookingReconciliationWorker(_BookingTransitionWorker):
    """
    Retries the first lifecycle transition for bookings stuck in CREATED.

    A booking stays in CREATED when the transition right after acceptance
    fails. Once older than the grace period it is moved to
    AWAITING_AGENCY_CONFIRMATION and the agency prompt is delivered.
    """

    target_status = BookingStatus.AWAITING_AGENCY_CONFIRMATION
    reason = "Reconciled after failed post-acceptance transition"

    def __init__(
        self,
        container: Container,
        grace_minutes: int = 5,
        interval_seconds: int = 60,
        batch_size: int = 100,
    ):
        super().__init__("BookingReconciliation", container, interval_seconds, batch_size)
        self.grace = timedelta(minutes=grace_minutes)

    async def find_due(self, store: BookingStore) -> list[UUID]:
        return await store.list_stale_created_bookings(utcnow() - self.grace, limit=self.batch_size)
