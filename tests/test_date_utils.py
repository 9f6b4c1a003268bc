"""Tests for dialect timestamp parsing."""

from datetime import datetime, timezone

import pytest

from threadkeep.utils.date_utils import (
    DateParseError,
    from_epoch,
    parse_iso8601,
    parse_json_date,
    parse_legacy_date,
    parse_new_date,
    to_epoch,
)


class TestLegacyDates:
    """Test legacy CSV timestamp patterns."""

    @pytest.mark.parametrize(
        "value",
        [
            "02:51 PM, May 01, 2024",
            "May 01, 2024 02:51 PM",
            '"02:51 PM, May 01, 2024"',
            "  May 01, 2024 02:51 PM  ",
        ],
    )
    def test_known_patterns(self, value):
        assert parse_legacy_date(value) == datetime(2024, 5, 1, 14, 51, tzinfo=timezone.utc)

    def test_morning_time(self):
        assert parse_legacy_date("09:05 AM, Jan 15, 2023").hour == 9

    def test_iso_fallback(self):
        """Test legacy exports with ISO timestamps still parse."""
        assert parse_legacy_date("2024-05-01T14:51:00Z") == datetime(
            2024, 5, 1, 14, 51, tzinfo=timezone.utc
        )

    def test_garbage_rejected(self):
        with pytest.raises(DateParseError, match="Could not parse date"):
            parse_legacy_date("yesterday-ish")


class TestNewDates:
    """Test new-style CSV timestamps."""

    def test_iso_with_millis(self):
        assert parse_new_date("2025-08-25T10:52:35.000Z") == datetime(
            2025, 8, 25, 10, 52, 35, tzinfo=timezone.utc
        )

    def test_iso_with_offset(self):
        """Test offsets are converted to UTC."""
        assert parse_new_date("2025-08-25T12:52:35+02:00") == datetime(
            2025, 8, 25, 10, 52, 35, tzinfo=timezone.utc
        )

    def test_naive_iso_is_utc(self):
        assert parse_new_date("2025-08-25T10:52:35").tzinfo == timezone.utc

    def test_social_format(self):
        assert parse_new_date("Wed Oct 10 20:19:24 +0000 2018") == datetime(
            2018, 10, 10, 20, 19, 24, tzinfo=timezone.utc
        )

    def test_legacy_format_not_accepted(self):
        with pytest.raises(DateParseError):
            parse_new_date("02:51 PM, May 01, 2024")


class TestJsonDates:
    """Test JSON export timestamps."""

    def test_iso(self):
        assert parse_json_date("2025-08-25T10:52:35.000Z").year == 2025

    def test_social_format(self):
        assert parse_json_date("Wed Oct 10 20:19:24 +0000 2018").year == 2018

    @pytest.mark.parametrize("value", [None, "", "   ", '""'])
    def test_missing(self, value):
        with pytest.raises(DateParseError, match="Missing date"):
            parse_json_date(value)


class TestHelpers:
    """Test ISO parsing and epoch conversion."""

    def test_parse_iso8601_invalid_returns_none(self):
        assert parse_iso8601("not a date") is None

    def test_epoch_round_trip(self):
        dt = datetime(2024, 5, 1, 14, 51, tzinfo=timezone.utc)
        assert to_epoch(dt) == 1714575060
        assert from_epoch(1714575060) == dt

    def test_epoch_truncates_fraction(self):
        dt = datetime(2024, 5, 1, 14, 51, 0, 900000, tzinfo=timezone.utc)
        assert to_epoch(dt) == 1714575060
