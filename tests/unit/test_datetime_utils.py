# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for datetime utilities."""

from datetime import datetime, timedelta, timezone

from coursenotify.utils.datetime import (
    ensure_utc,
    format_iso,
    parse_iso,
    to_display_string,
    utc_now,
)


class TestDatetimeUtils:
    """Tests for datetime helpers."""

    def test_utc_now_is_aware(self) -> None:
        """Test that utc_now carries the UTC timezone."""
        assert utc_now().tzinfo == timezone.utc

    def test_ensure_utc(self) -> None:
        """Test naive and offset datetimes are normalized."""
        naive = datetime(2025, 6, 1, 10, 0)
        offset = datetime(2025, 6, 1, 15, 30, tzinfo=timezone(timedelta(hours=5, minutes=30)))

        assert ensure_utc(naive) == datetime(2025, 6, 1, 10, 0, tzinfo=timezone.utc)
        assert ensure_utc(offset) == datetime(2025, 6, 1, 10, 0, tzinfo=timezone.utc)
        assert ensure_utc(None) is None

    def test_iso_round_trip(self) -> None:
        """Test that Z-suffixed strings parse to UTC."""
        parsed = parse_iso("2025-06-01T10:00:00Z")

        assert parsed == datetime(2025, 6, 1, 10, 0, tzinfo=timezone.utc)
        assert format_iso(parsed) == "2025-06-01T10:00:00+00:00"
        assert format_iso(None) is None

    def test_display_string_in_india(self) -> None:
        """Test rendering in India Standard Time with a 12-hour clock."""
        instant = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)

        assert to_display_string(instant) == "2025-03-01 05:30:00 PM"

    def test_display_string_other_zone(self) -> None:
        """Test rendering in another zone."""
        instant = datetime(2025, 1, 15, 9, 5, 7, tzinfo=timezone.utc)

        assert to_display_string(instant, "America/New_York") == "2025-01-15 04:05:07 AM"
