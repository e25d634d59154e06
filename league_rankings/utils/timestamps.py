"""Timestamp helpers.

Game start times are compared as integer epoch milliseconds, which is
also the identity of a round. Naive datetimes are treated as UTC.
"""

from datetime import datetime, timezone
from typing import Union


def to_epoch_ms(value: Union[datetime, int, float]) -> int:
    """Convert a datetime (or an epoch-ms number) to integer epoch milliseconds."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(round(value.timestamp() * 1000))
    if isinstance(value, bool):
        raise TypeError("Expected a datetime or epoch milliseconds, got bool")
    return int(value)


def from_epoch_ms(ms: int) -> datetime:
    return datetime.fromtimestamp(ms / 1000.0, tz=timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
