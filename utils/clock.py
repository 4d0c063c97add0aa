"""Time helpers shared by models and the session layer."""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime, matching stored columns."""

    return datetime.now(timezone.utc).replace(tzinfo=None)
