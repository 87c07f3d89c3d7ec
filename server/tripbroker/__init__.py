"""Trip broker booking core: offer acceptance, booking lifecycle and notification fan-out."""

__version__ = "1.0.0"
