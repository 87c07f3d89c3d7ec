"""Immutable domain event primitive."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Generic, TypeVar
from uuid import uuid4

from ..core.clock import utcnow

TPayload = TypeVar("TPayload")


@dataclass(frozen=True)
class DomainEvent(Generic[TPayload]):
    """
    Record of a business fact that has become true.

    Events are created once, at the moment the fact occurs, and never mutated.
    They are dispatched in-process by the EventBus and are not persisted.

    Attributes:
        name: Dot-delimited event name used for routing, e.g. "booking.created"
        payload: Event-specific data
        id: Unique identifier of this event instance
        occurred_at: When the fact occurred (UTC)
    """

    name: str
    payload: TPayload
    id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=utcnow)

    def __str__(self) -> str:
        return f"DomainEvent({self.name}, id={self.id[:8]})"
