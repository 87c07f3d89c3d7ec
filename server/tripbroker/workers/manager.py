"""Worker manager for coordinating background tasks."""

import asyncio
import logging

from ..bootstrap import Container
from .base import BaseWorker
from .booking_workers import BookingExpiryWorker, BookingReconciliationWorker

logger = logging.getLogger(__name__)


class WorkerManager:
    """Starts, stops and reports on the application's background workers."""

    def __init__(self, container: Container):
        self.workers: dict[str, BaseWorker] = {}
        self._setup_workers(container)

    def _setup_workers(self, container: Container) -> None:
        settings = container.settings
        self.workers["booking_expiry"] = BookingExpiryWorker(
            container,
            interval_seconds=settings.expiry_interval_seconds,
        )
        self.workers["booking_reconciliation"] = BookingReconciliationWorker(
            container,
            grace_minutes=settings.reconciliation_grace_minutes,
            interval_seconds=settings.reconciliation_interval_seconds,
        )
        logger.info(f"Initialized {len(self.workers)} workers")

    async def start_all(self) -> None:
        """Start all workers."""
        for name, worker in self.workers.items():
            try:
                await worker.start()
            except Exception as e:
                logger.error(f"Failed to start worker {name}: {e!s}", exc_info=True)

        logger.info(f"Started {len(self.workers)} workers")

    async def stop_all(self) -> None:
        """Stop all running workers gracefully."""
        running = {name: worker for name, worker in self.workers.items() if worker.running}
        results = await asyncio.gather(
            *(worker.stop() for worker in running.values()),
            return_exceptions=True,
        )

        for name, result in zip(running, results):
            if isinstance(result, Exception):
                logger.error(f"Error stopping worker {name}: {result!s}")

        logger.info("All workers stopped")

    def get_worker(self, name: str) -> BaseWorker:
        """
        Get a specific worker by name.

        Raises:
            KeyError: If worker not found
        """
        return self.workers[name]

    def get_worker_status(self) -> dict[str, bool]:
        """Running state of each worker by name."""
        return {name: worker.running for name, worker in self.workers.items()}
