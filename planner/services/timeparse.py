"""Parsing of loosely formatted timestamps from query strings and path segments."""

from __future__ import annotations

from datetime import datetime, timezone

import dateparser

from planner.domain.errors import ValidationError
from planner.domain.models import TimeWindow


def parse_timestamp(raw: str | None, now: datetime | None = None) -> datetime | None:
    """Parse *raw* with ``dateparser``, returning an aware UTC datetime.

    Accepts ISO-8601 as well as looser forms such as ``"2024-01-01 10:00"`` or
    ``"Jan 1 2024 10am"``. Relative phrases resolve against *now*. Returns
    None when nothing can be parsed.
    """
    if not raw or not raw.strip():
        return None
    settings = {
        "RETURN_AS_TIMEZONE_AWARE": True,
        "TIMEZONE": "UTC",
        "TO_TIMEZONE": "UTC",
        "PREFER_DAY_OF_MONTH": "first",
    }
    if now is not None:
        settings["RELATIVE_BASE"] = now.astimezone(timezone.utc).replace(tzinfo=None)
    result = dateparser.parse(raw.strip(), settings=settings)
    if result is None:
        return None
    return result.astimezone(timezone.utc)


def parse_window(raw_start: str, raw_end: str, now: datetime | None = None) -> TimeWindow:
    """Build a TimeWindow from two raw strings, or raise ``ValidationError``."""
    start = parse_timestamp(raw_start, now)
    if start is None:
        raise ValidationError(f"Could not parse start time {raw_start!r}")
    end = parse_timestamp(raw_end, now)
    if end is None:
        raise ValidationError(f"Could not parse end time {raw_end!r}")
    if end < start:
        raise ValidationError("end must not be before start")
    return TimeWindow(start=start, end=end)
