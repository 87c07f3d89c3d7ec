"""Unit tests for the domain event bus."""

import asyncio
import logging
from dataclasses import FrozenInstanceError

import pytest

from tripbroker.events import DomainEvent, DomainEventHandler, EventBus


class RecordingHandler(DomainEventHandler):
    def __init__(self, event_name: str, log: list, label: str, delay: float = 0.0):
        self.event_name = event_name
        self.log = log
        self.label = label
        self.delay = delay

    async def handle(self, event: DomainEvent) -> None:
        self.log.append(("start", self.label, event.payload))
        if self.delay:
            await asyncio.sleep(self.delay)
        self.log.append(("end", self.label, event.payload))


class FailingHandler(DomainEventHandler):
    event_name = "booking.created"

    def __init__(self):
        self.calls = 0

    async def handle(self, event: DomainEvent) -> None:
        self.calls += 1
        raise RuntimeError("handler exploded")


class BlockingHandler(DomainEventHandler):
    event_name = "booking.created"

    def __init__(self):
        self.release = asyncio.Event()
        self.finished = False

    async def handle(self, event: DomainEvent) -> None:
        await self.release.wait()
        self.finished = True


def test_domain_event_defaults():
    """Test that events get an id and an occurrence time."""
    event = DomainEvent(name="booking.created", payload={"booking_id": "b1"})

    assert len(event.id) == 36
    assert event.occurred_at is not None
    assert DomainEvent(name="booking.created", payload={}).id != event.id
    assert str(event).startswith("DomainEvent(booking.created")


def test_domain_event_is_immutable():
    """Test that an event cannot be changed after creation."""
    event = DomainEvent(name="booking.created", payload={})

    with pytest.raises(FrozenInstanceError):
        event.name = "booking.cancelled"


@pytest.mark.asyncio
async def test_failing_handler_does_not_affect_siblings(caplog):
    """Test that one failing handler neither stops the others nor reaches the publisher."""
    bus = EventBus()
    log: list = []
    failing = FailingHandler()
    bus.register(RecordingHandler("booking.created", log, "first"))
    bus.register(failing)
    bus.register(RecordingHandler("booking.created", log, "third"))

    event = DomainEvent(name="booking.created", payload=1)
    with caplog.at_level(logging.ERROR):
        await bus.publish(event)

    assert failing.calls == 1
    assert ("end", "first", 1) in log
    assert ("end", "third", 1) in log

    errors = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert len(errors) == 1
    assert "FailingHandler" in errors[0].getMessage()
    assert errors[0].event_id == event.id


@pytest.mark.asyncio
async def test_handlers_start_in_registration_order_and_run_concurrently():
    """Test that handlers start in order and publish waits for all of them."""
    bus = EventBus()
    log: list = []
    bus.register(RecordingHandler("booking.created", log, "slow", delay=0.02))
    bus.register(RecordingHandler("booking.created", log, "fast"))

    await bus.publish(DomainEvent(name="booking.created", payload=1))

    assert log[0] == ("start", "slow", 1)
    assert log[1] == ("start", "fast", 1)
    # The fast handler finishes while the slow one is still sleeping
    assert log.index(("end", "fast", 1)) < log.index(("end", "slow", 1))
    assert len(log) == 4


@pytest.mark.asyncio
async def test_publish_without_handlers_is_noop(caplog):
    """Test publishing an event nobody listens for."""
    bus = EventBus()

    with caplog.at_level(logging.DEBUG, logger="tripbroker.events.bus"):
        await bus.publish(DomainEvent(name="booking.unknown", payload=None))

    assert any(r.getMessage() == "No handlers registered for event" for r in caplog.records)
    assert not any(r.levelno >= logging.WARNING for r in caplog.records)


@pytest.mark.asyncio
async def test_publish_all_is_sequential():
    """Test that every handler of one event settles before the next event starts."""
    bus = EventBus()
    log: list = []
    bus.register(RecordingHandler("booking.created", log, "a", delay=0.01))
    bus.register(RecordingHandler("booking.created", log, "b"))

    await bus.publish_all([
        DomainEvent(name="booking.created", payload=1),
        DomainEvent(name="booking.created", payload=2),
    ])

    first_of_second = next(i for i, entry in enumerate(log) if entry[2] == 2)
    assert all(entry[2] == 1 for entry in log[:first_of_second])
    assert ("end", "a", 1) in log[:first_of_second]
    assert len(log) == 8


def test_get_registered_events_lists_unique_names():
    """Test registered event names are unique."""
    bus = EventBus()
    log: list = []
    bus.register(RecordingHandler("booking.created", log, "a"))
    bus.register(RecordingHandler("booking.created", log, "b"))
    bus.register(RecordingHandler("booking.cancelled", log, "c"))

    assert sorted(bus.get_registered_events()) == ["booking.cancelled", "booking.created"]
    assert EventBus().get_registered_events() == []


@pytest.mark.asyncio
async def test_background_publication_returns_before_handlers_finish():
    """Test that the publisher does not wait for a background publication."""
    bus = EventBus()
    handler = BlockingHandler()
    bus.register(handler)

    task = bus.publish_in_background(DomainEvent(name="booking.created", payload=None))
    await asyncio.sleep(0)

    assert not task.done()
    assert not handler.finished

    handler.release.set()
    await bus.drain()

    assert handler.finished
    assert task.done()


@pytest.mark.asyncio
async def test_drain_with_failing_handler_does_not_raise():
    """Test that draining settles background publications whose handlers fail."""
    bus = EventBus()
    failing = FailingHandler()
    bus.register(failing)

    bus.publish_in_background(DomainEvent(name="booking.created", payload=None))
    await bus.drain()

    assert failing.calls == 1
