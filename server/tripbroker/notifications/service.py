"""Notification service rendering, deduplicating and dispatching messages."""

import hashlib
import json
import logging
from collections import OrderedDict
from collections.abc import Iterable, Sequence

from ..core.observability import metrics_collector
from .templates import TemplateEngine
from .transport import NotificationTransport
from .types import BookingNotification, DispatchResult, NotificationRequest

logger = logging.getLogger(__name__)


class NotificationService:
    """
    Entry point to the delivery transport.

    Templated requests are deduplicated by an idempotency key computed from
    the event, recipient, channel, template and variables, so a redelivered
    event does not message the same recipient twice. Delivery is
    at-least-once: a failed send is reported, not retried.
    """

    def __init__(
        self,
        transport: NotificationTransport,
        template_engine: TemplateEngine | None = None,
        dedup_cache_size: int = 10000,
    ):
        self.transport = transport
        self.template_engine = template_engine or TemplateEngine()
        self.dedup_cache_size = dedup_cache_size
        self._sent_keys: OrderedDict[str, None] = OrderedDict()

    @staticmethod
    def compute_idempotency_key(request: NotificationRequest) -> str:
        """Compute SHA-256 hash of the normalized request."""
        normalized = json.dumps(
            {
                "event_name": request.event_name,
                "recipient_id": request.recipient_id,
                "channel": request.channel.value,
                "template_key": request.template_key,
                "variables": request.variables,
            },
            sort_keys=True,
            separators=(",", ":"),
        )
        return hashlib.sha256(normalized.encode("utf-8")).hexdigest()

    async def send(self, request: NotificationRequest) -> DispatchResult:
        """
        Render and deliver one templated notification.

        Returns a deduplicated result without sending when the same request
        was already delivered.
        """
        key = self.compute_idempotency_key(request)
        result = DispatchResult(
            idempotency_key=key,
            template_key=request.template_key,
            recipient_address=request.recipient_address,
        )

        if key in self._sent_keys:
            self._sent_keys.move_to_end(key)
            metrics_collector.record_notification(request.template_key, "deduplicated")
            logger.debug(
                "Notification deduplicated",
                extra={"idempotency_key": key[:12], "template_key": request.template_key}
            )
            result.deduplicated = True
            return result

        rendered = self.template_engine.render(request.template_key, request.variables)
        await self.transport.send(request.recipient_address, rendered.text, rendered.buttons)
        self._remember(key)

        metrics_collector.record_notification(request.template_key, "delivered")
        logger.info(
            "Notification delivered",
            extra={
                "event_name": request.event_name,
                "template_key": request.template_key,
                "recipient_id": request.recipient_id,
                "recipient_role": request.recipient_role.value,
            }
        )
        result.delivered = True
        return result

    async def send_all(self, requests: Iterable[NotificationRequest]) -> list[DispatchResult]:
        """Deliver several notifications; one failure does not stop the rest."""
        results = []
        for request in requests:
            try:
                results.append(await self.send(request))
            except Exception as e:
                metrics_collector.record_notification(request.template_key, "failed")
                logger.error(
                    f"Failed to deliver notification: {e!s}",
                    exc_info=True,
                    extra={"template_key": request.template_key, "recipient_id": request.recipient_id}
                )
                results.append(
                    DispatchResult(
                        idempotency_key=self.compute_idempotency_key(request),
                        template_key=request.template_key,
                        recipient_address=request.recipient_address,
                        error=str(e),
                    )
                )
        return results

    async def deliver(self, notifications: Sequence[BookingNotification]) -> int:
        """
        Send pre-rendered booking notifications.

        Returns:
            Number of notifications delivered successfully
        """
        delivered = 0
        for notification in notifications:
            try:
                await self.transport.send(notification.address, notification.text, notification.buttons)
                delivered += 1
            except Exception as e:
                logger.error(
                    f"Failed to deliver booking notification: {e!s}",
                    exc_info=True,
                    extra={"address": notification.address}
                )
        return delivered

    def _remember(self, key: str) -> None:
        self._sent_keys[key] = None
        while len(self._sent_keys) > self.dedup_cache_size:
            self._sent_keys.popitem(last=False)
