"""In-process domain event bus."""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable

from ..core.observability import metrics_collector
from .domain_event import DomainEvent

logger = logging.getLogger(__name__)


class DomainEventHandler(ABC):
    """
    A unit of logic reacting to one named domain event.

    Subclasses declare the event name they listen for and implement handle().
    Errors raised from handle() are caught and logged by the EventBus.
    """

    event_name: str

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    async def handle(self, event: DomainEvent) -> None:
        """Process the event."""


class EventBus:
    """
    Publish/subscribe registry decoupling fact producers from consumers.

    - Handlers are registered per event name; registration order is the
      order in which they are started.
    - All handlers for an event run concurrently and publish() waits for
      every one of them to settle.
    - A failing handler is logged and never affects its siblings or the
      publisher.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[DomainEventHandler]] = {}
        self._background_tasks: set[asyncio.Task] = set()

    def register(self, handler: DomainEventHandler) -> None:
        """Register a handler for the event name it declares."""
        self._handlers.setdefault(handler.event_name, []).append(handler)
        logger.info(
            "Registered domain event handler",
            extra={"handler": handler.name, "event_name": handler.event_name}
        )

    async def publish(self, event: DomainEvent) -> None:
        """Dispatch an event to every handler registered for its name."""
        handlers = self._handlers.get(event.name)
        if not handlers:
            logger.debug(
                "No handlers registered for event",
                extra={"event_name": event.name, "event_id": event.id}
            )
            return

        logger.info(
            "Publishing domain event",
            extra={"event_name": event.name, "event_id": event.id, "handlers": len(handlers)}
        )
        await asyncio.gather(*(self._dispatch(handler, event) for handler in handlers))

    async def publish_all(self, events: Iterable[DomainEvent]) -> None:
        """Publish events one at a time, in order."""
        for event in events:
            await self.publish(event)

    def publish_in_background(self, event: DomainEvent) -> asyncio.Task:
        """
        Start publishing an event without waiting for its handlers.

        The bus keeps a reference to the task until it finishes so it is not
        garbage collected mid-flight.
        """
        task = asyncio.create_task(self.publish(event), name=f"publish:{event.name}:{event.id[:8]}")
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for every background publication to settle."""
        while self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)

    def get_registered_events(self) -> list[str]:
        """Names of events with at least one registered handler."""
        return [name for name, handlers in self._handlers.items() if handlers]

    async def _dispatch(self, handler: DomainEventHandler, event: DomainEvent) -> None:
        try:
            await handler.handle(event)
        except Exception as e:
            metrics_collector.record_handler_failure(event.name, handler.name)
            logger.error(
                f"{handler.name} failed on {event.name}: {e!s}",
                exc_info=True,
                extra={"handler": handler.name, "event_name": event.name, "event_id": event.id}
            )
        else:
            logger.debug(
                "Domain event handled",
                extra={"handler": handler.name, "event_name": event.name, "event_id": event.id}
            )
