"""Tests for datetime parsing service."""

from datetime import date, datetime, timezone

import pytest

from sitebuilder.services.datetime_service import format_display_date, now_utc, parse_datetime


class TestDatetimeParsing:
    def test_parse_full_format(self) -> None:
        result = parse_datetime("2026-02-02 22:21:29.975359+00")
        assert result.year == 2026
        assert result.month == 2
        assert result.day == 2
        assert result.hour == 22
        assert result.minute == 21

    def test_parse_date_only(self) -> None:
        result = parse_datetime("2026-02-02")
        assert result.year == 2026
        assert result.month == 2
        assert result.day == 2
        assert result.hour == 0
        assert result.minute == 0
        assert result.tzinfo is not None

    def test_parse_with_default_timezone(self) -> None:
        result = parse_datetime("2026-02-02 10:30", default_tz="America/New_York")
        assert result.year == 2026
        assert result.hour == 10

    def test_parse_datetime_object(self) -> None:
        dt = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
        result = parse_datetime(dt)
        assert result == dt

    def test_parse_datetime_naive_adds_tz(self) -> None:
        dt = datetime(2026, 1, 1, 12, 0)
        result = parse_datetime(dt, default_tz="UTC")
        assert result.tzinfo is not None

    def test_unparseable(self) -> None:
        with pytest.raises(ValueError):
            parse_datetime("not a date")

    def test_now_utc(self) -> None:
        result = now_utc()
        assert result.tzinfo is not None


class TestDisplayDate:
    def test_string(self) -> None:
        assert format_display_date("2026-01-05") == "5 January 2026"

    def test_date_object(self) -> None:
        assert format_display_date(date(2026, 3, 1)) == "1 March 2026"

    def test_empty_and_invalid(self) -> None:
        assert format_display_date(None) == ""
        assert format_display_date("") == ""
        assert format_display_date("soon") == ""
