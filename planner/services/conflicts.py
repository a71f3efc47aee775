"""Interval overlap checks shared by the venue and vendor guards."""

from __future__ import annotations

from typing import Iterable

from planner.domain.models import Event, TimeWindow


def overlaps(a: TimeWindow, b: TimeWindow) -> bool:
    """Return True when the closed windows *a* and *b* share any instant.

    Touching endpoints count as an overlap, so a booking ending at 14:00
    conflicts with one starting at 14:00.
    """
    return a.start <= b.end and a.end >= b.start


def find_conflicts(window: TimeWindow, existing_events: Iterable[Event]) -> list[Event]:
    """Return the events whose window overlaps *window*, in the given order."""
    return [event for event in existing_events if overlaps(window, event.window)]


def first_conflict(window: TimeWindow, existing_events: Iterable[Event]) -> Event | None:
    for event in existing_events:
        if overlaps(window, event.window):
            return event
    return None
