"""
Utility functions for the Messages API.
"""

import uuid
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def new_message_id() -> uuid.UUID:
    """Generate a fresh, globally unique message identifier."""
    return uuid.uuid4()


def as_utc(value: datetime) -> datetime:
    """
    Attach UTC to naive datetimes.

    SQLite drops tzinfo on round-trip, so values read back from the
    database are naive even though they were written as UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
