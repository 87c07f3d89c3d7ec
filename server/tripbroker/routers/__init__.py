"""API routers."""

from . import booking, chat, metrics, offer, probes

__all__ = ["booking", "chat", "metrics", "offer", "probes"]
