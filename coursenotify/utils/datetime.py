# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities for CourseNotify.

Design Decisions:
-----------------
1. All timestamps are stored in UTC (PostgreSQL TIMESTAMPTZ)
2. All Python datetimes are timezone-aware (with timezone.utc)
3. Conversion to a local timezone happens only when rendering text for
   people, via to_display_string()

Usage:
------
    from coursenotify.utils.datetime import to_display_string, utc_now

    deadline_text = to_display_string(deadline, "Asia/Kolkata")
"""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

DISPLAY_FORMAT = "%Y-%m-%d %I:%M:%S %p"


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime representing current UTC time.
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Ensure a datetime is timezone-aware UTC.

    Args:
        dt: A datetime object (naive or aware) or None.

    Returns:
        Timezone-aware UTC datetime or None.

    Note:
        - If dt is None, returns None
        - If dt is naive, assumes UTC and adds tzinfo
        - If dt is aware, converts to UTC
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def format_iso(dt: datetime | None) -> str | None:
    """Format a datetime as ISO 8601 string.

    Args:
        dt: Datetime to format.

    Returns:
        ISO 8601 formatted string or None.
    """
    if dt is None:
        return None

    dt_utc = ensure_utc(dt)
    return dt_utc.isoformat()


def parse_iso(iso_string: str | None) -> datetime | None:
    """Parse an ISO 8601 datetime string.

    Args:
        iso_string: ISO 8601 formatted string.

    Returns:
        Timezone-aware UTC datetime or None.
    """
    if iso_string is None:
        return None

    dt = datetime.fromisoformat(iso_string.replace("Z", "+00:00"))
    return ensure_utc(dt)


def to_display_string(instant: datetime, tz_name: str = "Asia/Kolkata") -> str:
    """Render an instant in a local timezone for notification text.

    Args:
        instant: The instant to render. Naive values are treated as UTC.
        tz_name: IANA timezone name.

    Returns:
        String like "2025-03-01 05:30:00 PM".

    Example:
        >>> to_display_string(datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc))
        '2025-03-01 05:30:00 PM'
    """
    local = ensure_utc(instant).astimezone(ZoneInfo(tz_name))
    return local.strftime(DISPLAY_FORMAT)
