"""Datetime parsing: lax input -> strict output."""

from __future__ import annotations

from datetime import date, datetime, timezone

import pendulum

DISPLAY_FORMAT = "D MMMM YYYY"


def parse_datetime(value: str | datetime, default_tz: str = "UTC") -> datetime:
    """Parse a lax datetime string into a timezone-aware datetime.

    Accepts various formats:
    - 2026-02-02 22:21:29+00
    - 2026-02-02 22:21
    - 2026-02-02
    - ISO 8601 variants with T separator

    Missing timezone defaults to default_tz.
    Missing time components default to zeros.
    Raises ValueError for unparseable input.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            tz = pendulum.timezone(default_tz)
            value = value.replace(tzinfo=tz)  # type: ignore[arg-type]
        return value

    value_str = value.strip()

    parsed = pendulum.parse(value_str, tz=default_tz, strict=False)
    if not isinstance(parsed, pendulum.DateTime):
        if not isinstance(parsed, pendulum.Date):
            raise ValueError(f"Not a calendar date: {value_str!r}")
        # pendulum.parse returns Date for date-only strings
        parsed = pendulum.datetime(parsed.year, parsed.month, parsed.day, tz=default_tz)
    return parsed


def format_display_date(value: str | date | None) -> str:
    """Format a date for display (``5 January 2026``); empty for bad input."""
    if not value:
        return ""
    if isinstance(value, date) and not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    try:
        parsed = parse_datetime(value)
    except ValueError:
        return ""
    return pendulum.instance(parsed).format(DISPLAY_FORMAT)


def now_utc() -> datetime:
    """Return the current UTC datetime."""
    return datetime.now(timezone.utc)
