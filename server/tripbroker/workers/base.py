"""Periodic background worker loop."""

import asyncio
import contextlib
import logging
import time
from abc import ABC, abstractmethod
from typing import Optional

logger = logging.getLogger(__name__)


class BaseWorker(ABC):
    """
    Runs process() every interval_seconds until stopped.

    An iteration that raises is logged and the loop carries on at the next
    tick. stop() lets an iteration in progress finish instead of cancelling
    it in the middle of a transaction.
    """

    def __init__(self, name: str, interval_seconds: int = 60, stop_timeout_seconds: float = 10.0):
        """
        Initialize the worker.

        Args:
            name: Worker name for logging
            interval_seconds: Pause between the start of two iterations
            stop_timeout_seconds: How long stop() waits for a running iteration
        """
        self.name = name
        self.interval_seconds = interval_seconds
        self.stop_timeout_seconds = stop_timeout_seconds
        self._stopping = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @abstractmethod
    async def process(self) -> int:
        """
        Run one iteration.

        Returns:
            Number of items handled
        """

    async def start(self) -> None:
        if self.running:
            logger.warning(f"{self.name} worker is already running")
            return

        self._stopping.clear()
        self._task = asyncio.create_task(self._run(), name=f"worker:{self.name}")
        logger.info(f"{self.name} worker started with {self.interval_seconds}s interval")

    async def stop(self) -> None:
        """Ask the loop to exit and wait for it, cancelling only after the timeout."""
        if not self.running:
            logger.warning(f"{self.name} worker is not running")
            return

        self._stopping.set()
        try:
            await asyncio.wait_for(asyncio.shield(self._task), timeout=self.stop_timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(f"{self.name} worker did not stop in time, cancelling")
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        finally:
            self._task = None

        logger.info(f"{self.name} worker stopped")

    async def run_once(self) -> int:
        """Run one iteration, logging instead of raising on failure."""
        started = time.perf_counter()
        try:
            handled = await self.process()
        except Exception as e:
            logger.error(
                f"{self.name} worker error: {e!s}",
                exc_info=True,
                extra={"worker": self.name}
            )
            return 0

        logger.debug(
            f"{self.name} worker iteration completed",
            extra={
                "worker": self.name,
                "handled": handled,
                "duration_seconds": round(time.perf_counter() - started, 3),
            }
        )
        return handled

    async def _run(self) -> None:
        while not self._stopping.is_set():
            started = time.perf_counter()
            await self.run_once()

            remaining = max(0.0, self.interval_seconds - (time.perf_counter() - started))
            # Sleep until the next tick unless asked to stop first
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(self._stopping.wait(), timeout=remaining)
