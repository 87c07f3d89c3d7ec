"""Time helpers shared by models, services and workers."""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching the stored column format."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
