"""Pre-write guards that refuse double-booking of shared venues and vendors."""

from __future__ import annotations

from planner.domain.models import AvailabilityStatus, Event, TimeWindow, Venue
from planner.repos.memory import AssignmentRepository, EventRepository, VenueRepository
from planner.services.conflicts import first_conflict, overlaps


def check_venue_conflict(
    events: EventRepository,
    venue_id: str | None,
    window: TimeWindow,
    exclude_event_id: str | None = None,
) -> Event | None:
    """Return the first event already holding *venue_id* during *window*.

    Events of every owner are scanned; a venue hosts one event at a time no
    matter who booked it. *exclude_event_id* is the event being edited, so its
    previous window never blocks its new one. Returns None when *venue_id* is
    unset.
    """
    if not venue_id:
        return None
    bookings = (e for e in events.list_for_venue(venue_id) if e.id != exclude_event_id)
    return first_conflict(window, bookings)


def check_vendor_conflict(
    events: EventRepository,
    assignments: AssignmentRepository,
    vendor_id: str,
    window: TimeWindow,
    exclude_assignment_id: str | None = None,
) -> Event | None:
    """Return the first event the vendor is assigned to that overlaps *window*.

    Only the assignment row under revision is skipped, not every assignment of
    its event.
    """
    for assignment in assignments.list_for_vendor(vendor_id):
        if assignment.id == exclude_assignment_id:
            continue
        event = events.get(assignment.event_id)
        if event is not None and overlaps(window, event.window):
            return event
    return None


def available_venues(
    venues: VenueRepository, events: EventRepository, window: TimeWindow
) -> list[Venue]:
    """Venues flagged available with no booking overlapping *window*."""
    return [
        venue
        for venue in venues.list_all()
        if venue.availability_status == AvailabilityStatus.AVAILABLE
        and check_venue_conflict(events, venue.id, window) is None
    ]
