"""Explicit wiring of the event bus, handlers and services."""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .core.config import Settings
from .events import EventBus, LogBookingCreatedHandler, SendBookingNotificationsHandler
from .notifications import LoggingNotificationTransport, NotificationService, NotificationTransport, TemplateEngine
from .services import BookingAcceptanceService, BookingStateMachine

logger = logging.getLogger(__name__)


@dataclass
class Container:
    """Long-lived application components shared by requests and workers."""

    settings: Settings
    session_factory: async_sessionmaker[AsyncSession]
    event_bus: EventBus
    template_engine: TemplateEngine
    notification_service: NotificationService

    def state_machine(self, db: AsyncSession) -> BookingStateMachine:
        return BookingStateMachine(
            db,
            manager_channel_address=self.settings.manager_channel_address,
            expiration_hours=self.settings.booking_expiration_hours,
        )

    def acceptance_service(self, db: AsyncSession) -> BookingAcceptanceService:
        return BookingAcceptanceService(
            db,
            event_bus=self.event_bus,
            state_machine=self.state_machine(db),
            manager_channel_address=self.settings.manager_channel_address,
            template_engine=self.template_engine,
        )


def build_container(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    transport: NotificationTransport | None = None,
) -> Container:
    """
    Create every long-lived component and register event handlers.

    Must run before the application accepts traffic so no event is
    published to a bus without its handlers.
    """
    template_engine = TemplateEngine()
    notification_service = NotificationService(
        transport or LoggingNotificationTransport(),
        template_engine=template_engine,
        dedup_cache_size=settings.notification_dedup_cache_size,
    )

    event_bus = EventBus()
    event_bus.register(LogBookingCreatedHandler())
    event_bus.register(SendBookingNotificationsHandler(
        session_factory,
        notification_service,
        manager_channel_address=settings.manager_channel_address,
    ))

    logger.info(
        "Application components wired",
        extra={
            "events": event_bus.get_registered_events(),
            "manager_channel": settings.manager_channel_address is not None,
        }
    )

    return Container(
        settings=settings,
        session_factory=session_factory,
        event_bus=event_bus,
        template_engine=template_engine,
        notification_service=notification_service,
    )
