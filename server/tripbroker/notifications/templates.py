"""Notification templates and the renderer that fills them."""

import logging
import re
from collections.abc import Iterable, Mapping

from pydantic import BaseModel, Field

from .types import Button

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")


class NotificationTemplate(BaseModel):
    """Message body with {{variable}} placeholders."""

    key: str = Field(..., description="Unique template key, e.g. booking.created.agent")
    body: str = Field(..., description="Template body")
    buttons: tuple[Button, ...] = Field(default=(), description="Buttons; labels and data may hold placeholders")


class RenderedNotification(BaseModel):
    """Template output ready to hand to the transport."""

    template_key: str
    text: str
    buttons: tuple[Button, ...] = ()


BOOKING_TEMPLATES: tuple[NotificationTemplate, ...] = (
    NotificationTemplate(
        key="booking.created.traveler",
        body=(
            "✅ *Booking Created!*\n\n"
            "*Agency:* {{agencyName}}\n"
            "*Destination:* {{destination}}\n"
            "*Price:* {{price}} {{currency}}\n"
            "*Booking ID:* {{shortBookingId}}...\n\n"
            "The agency has been notified and will confirm your booking shortly."
        ),
    ),
    NotificationTemplate(
        key="booking.created.agent",
        body=(
            "✅ *Offer Accepted!*\n\n"
            "*Destination:* {{destination}}\n"
            "*Price:* {{price}} {{currency}}\n"
            "*Booking ID:* {{shortBookingId}}...\n\n"
            "The traveler has accepted your offer. Please prepare the booking confirmation."
        ),
    ),
    NotificationTemplate(
        key="booking.created.manager",
        body=(
            "📝 *New Booking!*\n\n"
            "*Destination:* {{destination}}\n"
            "*Agency:* {{agencyName}}\n"
            "*Price:* {{price}} {{currency}}\n"
            "*Booking ID:* {{shortBookingId}}..."
        ),
    ),
)


class TemplateNotFoundError(KeyError):
    """Raised when rendering an unregistered template key."""


class TemplateEngine:
    """Registry of notification templates with {{variable}} interpolation."""

    def __init__(self, templates: Iterable[NotificationTemplate] = BOOKING_TEMPLATES):
        self._templates: dict[str, NotificationTemplate] = {}
        self.register_all(templates)

    def register(self, template: NotificationTemplate) -> None:
        self._templates[template.key] = template

    def register_all(self, templates: Iterable[NotificationTemplate]) -> None:
        for template in templates:
            self.register(template)

    def has(self, template_key: str) -> bool:
        return template_key in self._templates

    def registered_keys(self) -> list[str]:
        return list(self._templates)

    def render(self, template_key: str, variables: Mapping[str, str | int]) -> RenderedNotification:
        """
        Render a template.

        Unknown placeholders are left in place and logged.

        Raises:
            TemplateNotFoundError: If no template is registered under the key
        """
        template = self._templates.get(template_key)
        if template is None:
            raise TemplateNotFoundError(template_key)

        buttons = tuple(
            Button(
                label=self._interpolate(template_key, button.label, variables),
                callback_data=self._interpolate(template_key, button.callback_data, variables),
            )
            for button in template.buttons
        )
        return RenderedNotification(
            template_key=template_key,
            text=self._interpolate(template_key, template.body, variables),
            buttons=buttons,
        )

    def _interpolate(self, template_key: str, text: str, variables: Mapping[str, str | int]) -> str:
        def substitute(match: re.Match) -> str:
            name = match.group(1)
            if name in variables:
                return str(variables[name])
            logger.warning(
                "Missing template variable",
                extra={"template_key": template_key, "variable": name}
            )
            return match.group(0)

        return _PLACEHOLDER.sub(substitute, text)
