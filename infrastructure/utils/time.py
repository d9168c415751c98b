"""
Infrastructure time utilities
=============================

Timestamp helpers for the database layer, kept free of ``irrigation``
imports so the persistence package stands on its own.
"""
from datetime import datetime, timezone
from typing import Optional


def iso_now(*, timespec: Optional[str] = None) -> str:
    """Return current UTC time as a timezone-aware ISO8601 string."""
    return to_iso(datetime.now(timezone.utc), timespec=timespec)


def to_iso(value: datetime, *, timespec: Optional[str] = None) -> str:
    """Render ``value`` as UTC ISO8601; naive datetimes are taken to be UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    else:
        value = value.astimezone(timezone.utc)
    if timespec:
        return value.isoformat(timespec=timespec)
    return value.isoformat()
