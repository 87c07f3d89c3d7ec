"""Presentation helpers shared by notification builders."""

from decimal import Decimal

DESTINATION_FALLBACK = "Travel request"


def format_price(amount_minor: int) -> str:
    """
    Format a minor-unit amount with thousands separators.

    Whole amounts drop the fraction, partial ones keep only significant digits:
    150000 -> "1,500", 150050 -> "1,500.5".
    """
    amount = Decimal(amount_minor) / 100
    if amount == amount.to_integral_value():
        return f"{int(amount):,}"
    return f"{amount:,.2f}".rstrip("0")


def short_id(identifier: str) -> str:
    """First eight characters of an identifier, used in chat messages."""
    return str(identifier)[:8]


def destination_label(destination: str | None) -> str:
    return destination or DESTINATION_FALLBACK
