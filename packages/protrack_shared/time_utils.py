"""UTC time helpers shared by services and repositories."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current timezone-aware UTC time."""
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def from_unix_seconds(value: int | float) -> datetime:
    """Convert Unix seconds into an aware UTC datetime."""
    return datetime.fromtimestamp(value, tz=UTC)


def to_unix_seconds(value: datetime) -> int:
    """Convert an aware datetime into whole Unix seconds."""
    return int(ensure_utc(value).timestamp())
