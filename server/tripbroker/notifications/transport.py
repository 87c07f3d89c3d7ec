"""Delivery transport boundary for outbound chat messages."""

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence

from .types import Button

logger = logging.getLogger(__name__)


class NotificationTransport(ABC):
    """Sends a rendered message to a chat address."""

    @abstractmethod
    async def send(self, address: str, text: str, buttons: Sequence[Button] = ()) -> None:
        """Deliver one message. Raises on delivery failure."""


class LoggingNotificationTransport(NotificationTransport):
    """Transport that records messages in the application log instead of sending them."""

    async def send(self, address: str, text: str, buttons: Sequence[Button] = ()) -> None:
        logger.info(
            "Chat message dispatched",
            extra={
                "address": address,
                "text": text,
                "buttons": [button.callback_data for button in buttons],
            }
        )
