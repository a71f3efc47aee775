"""Venue hire quotes based on the calendar days a booking touches."""

from __future__ import annotations

from datetime import datetime, time, timezone

from dateutil.rrule import DAILY, rrule

from planner.domain.models import TimeWindow, Venue, VenueQuote


def billable_days(window: TimeWindow) -> int:
    """Number of calendar days (UTC) the window touches, at least one.

    A booking from 22:00 to 02:00 the next day spans two days.
    """
    first = datetime.combine(window.start.astimezone(timezone.utc).date(), time.min)
    last = datetime.combine(window.end.astimezone(timezone.utc).date(), time.min)
    return rrule(DAILY, dtstart=first, until=last).count()


def quote_venue(venue: Venue, window: TimeWindow) -> VenueQuote:
    days = billable_days(window)
    return VenueQuote(
        venue_id=venue.id,
        days=days,
        price_per_day=venue.price_per_day,
        total=round(days * venue.price_per_day, 2),
    )
