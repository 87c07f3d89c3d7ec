"""Unit tests for the notification service, templates and formatting helpers."""

import logging

import pytest

from factories import RecordingTransport
from tripbroker.notifications import (
    BookingNotification,
    Button,
    NotificationRequest,
    NotificationService,
    NotificationTemplate,
    RecipientRole,
    TemplateEngine,
    TemplateNotFoundError,
    destination_label,
    format_price,
    short_id,
)

VARIABLES = {
    "bookingId": "0f8c2a4e-1111-2222-3333-444455556666",
    "shortBookingId": "0f8c2a4e",
    "offerId": "offer-1",
    "agencyName": "TravelCo",
    "destination": "Dubai",
    "price": "1,500",
    "currency": "USD",
}


def make_request(recipient_id="u1", address="1001", template_key="booking.created.traveler", **variables):
    return NotificationRequest(
        event_name="booking.created",
        recipient_id=recipient_id,
        recipient_address=address,
        template_key=template_key,
        variables={**VARIABLES, **variables},
        recipient_role=RecipientRole.TRAVELER,
    )


@pytest.mark.parametrize("amount, expected", [
    (0, "0"),
    (150000, "1,500"),
    (123456789, "1,234,567.89"),
    (150050, "1,500.5"),
    (99, "0.99"),
])
def test_format_price(amount, expected):
    """Test minor-unit amounts are shown with thousands separators."""
    assert format_price(amount) == expected


def test_short_id_and_destination_label():
    assert short_id("0f8c2a4e-1111") == "0f8c2a4e"
    assert destination_label(None) == "Travel request"
    assert destination_label("") == "Travel request"
    assert destination_label("Yerevan") == "Yerevan"


def test_render_traveler_template():
    """Test the traveler confirmation text."""
    rendered = TemplateEngine().render("booking.created.traveler", VARIABLES)

    assert "Booking Created!" in rendered.text
    assert "*Agency:* TravelCo" in rendered.text
    assert "*Price:* 1,500 USD" in rendered.text
    assert "0f8c2a4e..." in rendered.text


def test_render_missing_variable_keeps_placeholder(caplog):
    """Test a missing variable is left visible and logged."""
    with caplog.at_level(logging.WARNING):
        rendered = TemplateEngine().render("booking.created.manager", {"price": "10"})

    assert "{{agencyName}}" in rendered.text
    assert any(r.getMessage() == "Missing template variable" for r in caplog.records)


def test_render_unknown_template():
    with pytest.raises(TemplateNotFoundError):
        TemplateEngine().render("booking.unknown", {})


def test_render_template_buttons():
    """Test placeholders in buttons are interpolated."""
    engine = TemplateEngine(templates=[
        NotificationTemplate(
            key="booking.review",
            body="Review {{shortBookingId}}",
            buttons=(Button(label="Open", callback_data="bk:open:{{bookingId}}"),),
        )
    ])

    rendered = engine.render("booking.review", VARIABLES)

    assert rendered.text == "Review 0f8c2a4e"
    assert rendered.buttons[0].callback_data == f"bk:open:{VARIABLES['bookingId']}"


def test_idempotency_key_is_stable():
    """Test equal requests share a key and different recipients do not."""
    key = NotificationService.compute_idempotency_key(make_request())

    assert key == NotificationService.compute_idempotency_key(make_request())
    assert key != NotificationService.compute_idempotency_key(make_request(recipient_id="u2"))
    assert len(key) == 64


@pytest.mark.asyncio
async def test_send_deduplicates_repeated_request():
    """Test a redelivered request reaches the transport once."""
    transport = RecordingTransport()
    service = NotificationService(transport)

    first = await service.send(make_request())
    second = await service.send(make_request())

    assert first.delivered and not first.deduplicated
    assert second.deduplicated and not second.delivered
    assert len(transport.sent) == 1


@pytest.mark.asyncio
async def test_dedup_cache_is_bounded():
    """Test the oldest keys are forgotten once the cache is full."""
    transport = RecordingTransport()
    service = NotificationService(transport, dedup_cache_size=1)

    await service.send(make_request(recipient_id="u1"))
    await service.send(make_request(recipient_id="u2"))
    again = await service.send(make_request(recipient_id="u1"))

    assert again.delivered
    assert len(transport.sent) == 3


@pytest.mark.asyncio
async def test_send_all_isolates_failures():
    """Test one failing recipient does not stop the others."""
    transport = RecordingTransport(fail_addresses={"2001"})
    service = NotificationService(transport)

    results = await service.send_all([
        make_request(recipient_id="agent", address="2001", template_key="booking.created.agent"),
        make_request(recipient_id="traveler", address="1001"),
    ])

    assert results[0].error == "chat 2001 unreachable"
    assert not results[0].delivered
    assert results[1].delivered
    assert transport.addresses() == ["1001"]


@pytest.mark.asyncio
async def test_deliver_counts_successful_sends():
    """Test pre-rendered notifications are sent and counted."""
    transport = RecordingTransport(fail_addresses={"-1001"})
    service = NotificationService(transport)

    delivered = await service.deliver([
        BookingNotification(address="2001", text="one", buttons=(Button(label="Ok", callback_data="ok"),)),
        BookingNotification(address="-1001", text="two"),
        BookingNotification(address="1001", text="three"),
    ])

    assert delivered == 2
    assert transport.addresses() == ["2001", "1001"]
    assert transport.sent[0].buttons[0].callback_data == "ok"
