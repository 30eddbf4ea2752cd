"""Time helpers shared by the scheduler and the item store."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current instant as an aware UTC datetime."""
    return datetime.now(UTC)


def to_timestamp(moment: datetime) -> float:
    """Convert a datetime to the Unix timestamp stored in the database.

    Naive datetimes are treated as UTC.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.timestamp()


def from_timestamp(value: float | None) -> datetime | None:
    """Convert a stored Unix timestamp back to an aware UTC datetime."""
    if value is None:
        return None
    return datetime.fromtimestamp(value, UTC)
