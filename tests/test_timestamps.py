"""Unit tests for timestamp utilities."""

from datetime import datetime, timedelta, timezone

import pytest

from notification_delivery.utils.timestamps import (
    add_milliseconds,
    ensure_utc,
    format_for_storage,
    parse_from_storage,
    utc_now,
)


class TestUtcNow:
    """Tests for utc_now function."""

    def test_utc_now_returns_utc_datetime(self):
        now = utc_now()

        assert now.tzinfo == timezone.utc
        assert isinstance(now, datetime)

    def test_utc_now_is_recent(self):
        before = datetime.now(timezone.utc)
        now = utc_now()
        after = datetime.now(timezone.utc)

        assert before <= now <= after


class TestEnsureUtc:
    """Tests for ensure_utc function."""

    def test_ensure_utc_with_none(self):
        assert ensure_utc(None) is None

    def test_ensure_utc_with_naive_datetime(self):
        """Naive datetimes are treated as UTC."""
        result = ensure_utc(datetime(2025, 11, 4, 12, 0, 0))

        assert result.tzinfo == timezone.utc
        assert result.hour == 12

    def test_ensure_utc_with_other_timezone(self):
        """Aware datetimes are converted."""
        eastern = timezone(timedelta(hours=-5))
        result = ensure_utc(datetime(2025, 11, 4, 7, 0, tzinfo=eastern))

        assert result == datetime(2025, 11, 4, 12, 0, tzinfo=timezone.utc)
        assert result.tzinfo == timezone.utc


class TestAddMilliseconds:
    def test_whole_milliseconds(self):
        start = datetime(2025, 11, 4, 12, 0, tzinfo=timezone.utc)
        assert add_milliseconds(start, 1500) == start + timedelta(seconds=1.5)

    def test_fractional_milliseconds(self):
        start = datetime(2025, 11, 4, 12, 0, tzinfo=timezone.utc)
        assert add_milliseconds(start, 0.5) == start + timedelta(microseconds=500)

    def test_naive_input_becomes_utc(self):
        assert add_milliseconds(datetime(2025, 11, 4), 0).tzinfo == timezone.utc


class TestStorageFormat:
    def test_format_is_fixed_width(self):
        dt = datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        assert format_for_storage(dt) == "2025-01-02T03:04:05.000000Z"

    def test_format_converts_to_utc(self):
        plus_two = timezone(timedelta(hours=2))
        dt = datetime(2025, 11, 4, 14, 0, tzinfo=plus_two)
        assert format_for_storage(dt) == "2025-11-04T12:00:00.000000Z"

    def test_format_none(self):
        assert format_for_storage(None) is None

    def test_lexical_order_matches_time_order(self):
        earlier = datetime(2025, 11, 4, 9, 59, 59, 999999, tzinfo=timezone.utc)
        later = datetime(2025, 11, 4, 10, 0, 0, 1, tzinfo=timezone.utc)
        assert format_for_storage(earlier) < format_for_storage(later)

    def test_parse_stored_value(self):
        parsed = parse_from_storage("2025-11-04T12:00:00.123456Z")
        assert parsed == datetime(2025, 11, 4, 12, 0, 0, 123456, tzinfo=timezone.utc)

    def test_parse_without_microseconds(self):
        assert parse_from_storage("2025-11-04T12:00:00Z") == datetime(
            2025, 11, 4, 12, 0, tzinfo=timezone.utc
        )

    @pytest.mark.parametrize("value", [None, ""])
    def test_parse_empty(self, value):
        assert parse_from_storage(value) is None

    def test_parse_invalid(self):
        with pytest.raises(ValueError):
            parse_from_storage("yesterday")

    def test_round_trip_preserves_microseconds(self):
        dt = datetime(2025, 11, 4, 12, 0, 0, 42, tzinfo=timezone.utc)
        assert parse_from_storage(format_for_storage(dt)) == dt
