"""Time utilities for consistent timestamp handling."""

from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

# e.g. "Wed, 15 Nov 2023 03:43:20 IST"
DISPLAY_FORMAT = "%a, %d %b %Y %H:%M:%S %Z"


def utc_now() -> datetime:
    """Return current UTC timestamp (timezone-aware)."""
    return datetime.now(timezone.utc)


def from_epoch(seconds: int) -> datetime:
    """Convert epoch seconds to an aware UTC datetime."""
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def to_epoch(value: datetime) -> int:
    """Convert a datetime to integer epoch seconds (naive values are UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp())


def format_display(seconds: int, tz_name: str) -> str:
    """Render epoch seconds in the display timezone.

    Example: 1700000000 in Asia/Kolkata -> "Wed, 15 Nov 2023 03:43:20 IST".
    """
    return from_epoch(seconds).astimezone(ZoneInfo(tz_name)).strftime(DISPLAY_FORMAT)
