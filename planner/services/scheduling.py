"""Event and vendor-assignment mutations guarded against double-booking."""

from __future__ import annotations

import logging

import pydantic

from planner.domain.errors import ConflictError, NotFoundError, ValidationError
from planner.domain.models import (
    Assignment,
    AssignmentCreate,
    AssignmentStatus,
    Event,
    EventCreate,
    EventUpdate,
    EventVendor,
)
from planner.repos.memory import Store
from planner.services.guards import check_vendor_conflict, check_venue_conflict

logger = logging.getLogger(__name__)

VENUE_BOOKED = "This venue is already booked for the selected time range"
VENDOR_BOOKED = "This vendor is already booked for another event in the selected time range"


class EventScheduler:
    """Validate, guard, then write.

    Every create or update that touches a venue or vendor runs its guard and
    its write while holding that resource's lock, so a rejected booking leaves
    the store untouched and two overlapping requests cannot both commit.
    """

    def __init__(self, store: Store) -> None:
        self.store = store

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_event(self, owner_id: str, event_id: str) -> Event:
        event = self.store.events.get(event_id)
        if event is None or event.owner_id != owner_id:
            raise NotFoundError("Event not found")
        return event

    def list_events(self, owner_id: str) -> list[Event]:
        return sorted(
            self.store.events.list_for_owner(owner_id),
            key=lambda e: e.start_time,
            reverse=True,
        )

    def _require_venue(self, venue_id: str | None) -> None:
        if venue_id and self.store.venues.get(venue_id) is None:
            raise NotFoundError("Venue not found")

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def create_event(self, owner_id: str, data: EventCreate) -> Event:
        if not data.title.strip():
            raise ValidationError("Title is required")
        if not data.event_type.strip():
            raise ValidationError("Event type is required")
        self._require_venue(data.venue_id)
        try:
            event = Event(owner_id=owner_id, **data.model_dump())
        except pydantic.ValidationError as exc:
            raise ValidationError(_first_message(exc)) from exc

        with self.store.locks.hold(("venue", event.venue_id)):
            conflict = check_venue_conflict(self.store.events, event.venue_id, event.window)
            if conflict is not None:
                _log_rejection("venue", event.venue_id, conflict)
                raise ConflictError(VENUE_BOOKED, conflict)
            self.store.events.add(event)

        logger.info("Created event %s for owner %s (venue=%s)", event.id, owner_id, event.venue_id)
        return event

    def update_event(self, owner_id: str, event_id: str, data: EventUpdate) -> Event:
        changes = data.model_dump(exclude_unset=True)
        for field in ("title", "event_type", "start_time", "end_time"):
            value = changes.get(field, ...)
            if value is None or (isinstance(value, str) and not value.strip()):
                raise ValidationError(f"{field} is required")

        while True:
            current = self.get_event(owner_id, event_id)
            venue_id = changes.get("venue_id", current.venue_id)
            self._require_venue(venue_id)

            with self.store.locks.hold(("venue", venue_id)):
                # Re-read under the lock; another update may have moved the event.
                current = self.get_event(owner_id, event_id)
                if changes.get("venue_id", current.venue_id) != venue_id:
                    continue
                try:
                    updated = Event.model_validate({**current.model_dump(), **changes})
                except pydantic.ValidationError as exc:
                    raise ValidationError(_first_message(exc)) from exc

                conflict = check_venue_conflict(
                    self.store.events, updated.venue_id, updated.window, exclude_event_id=event_id
                )
                if conflict is not None:
                    _log_rejection("venue", updated.venue_id, conflict)
                    raise ConflictError(VENUE_BOOKED, conflict)
                self.store.events.update(updated)
                break

        logger.info("Updated event %s (%s)", event_id, ", ".join(sorted(changes)) or "no fields")
        return updated

    def delete_event(self, owner_id: str, event_id: str) -> None:
        """Delete an event together with its guests, tasks and vendor assignments."""
        event = self.get_event(owner_id, event_id)
        vendor_ids = [a.vendor_id for a in self.store.assignments.list_for_event(event_id)]
        keys = [("venue", event.venue_id)] + [("vendor", vid) for vid in vendor_ids]

        with self.store.locks.hold(*keys):
            removed_assignments = self.store.assignments.delete_for_event(event_id)
            removed_guests = self.store.guests.delete_for_event(event_id)
            removed_tasks = self.store.tasks.delete_for_event(event_id)
            self.store.events.delete(event_id)

        logger.info(
            "Deleted event %s with %d assignment(s), %d guest(s), %d task(s)",
            event_id,
            removed_assignments,
            removed_guests,
            removed_tasks,
        )

    # ------------------------------------------------------------------
    # Vendor assignments
    # ------------------------------------------------------------------

    def assign_vendor(self, owner_id: str, data: AssignmentCreate) -> Assignment:
        """Assign a vendor to an event.

        Assigning a vendor that is already on the event revises the existing
        assignment's status instead of adding a second row.
        """
        self.get_event(owner_id, data.event_id)
        if self.store.vendors.get(data.vendor_id) is None:
            raise NotFoundError("Vendor not found")

        with self.store.locks.hold(("vendor", data.vendor_id)):
            event = self.get_event(owner_id, data.event_id)
            existing = self.store.assignments.find(data.event_id, data.vendor_id)
            exclude_id = existing.id if existing is not None else None

            conflict = check_vendor_conflict(
                self.store.events,
                self.store.assignments,
                data.vendor_id,
                event.window,
                exclude_assignment_id=exclude_id,
            )
            if conflict is not None:
                _log_rejection("vendor", data.vendor_id, conflict)
                raise ConflictError(VENDOR_BOOKED, conflict)

            if existing is not None:
                assignment = existing.model_copy(update={"status": data.status})
                self.store.assignments.update(assignment)
            else:
                assignment = Assignment(
                    event_id=data.event_id, vendor_id=data.vendor_id, status=data.status
                )
                self.store.assignments.add(assignment)

        logger.info(
            "Assigned vendor %s to event %s (assignment %s)",
            data.vendor_id,
            data.event_id,
            assignment.id,
        )
        return assignment

    def _get_owned_assignment(self, owner_id: str, assignment_id: str) -> Assignment:
        assignment = self.store.assignments.get(assignment_id)
        if assignment is None:
            raise NotFoundError("Assignment not found")
        event = self.store.events.get(assignment.event_id)
        if event is None or event.owner_id != owner_id:
            raise NotFoundError("Assignment not found")
        return assignment

    def update_assignment(
        self, owner_id: str, assignment_id: str, status: AssignmentStatus
    ) -> Assignment:
        assignment = self._get_owned_assignment(owner_id, assignment_id)

        with self.store.locks.hold(("vendor", assignment.vendor_id)):
            assignment = self._get_owned_assignment(owner_id, assignment_id)
            event = self.get_event(owner_id, assignment.event_id)
            conflict = check_vendor_conflict(
                self.store.events,
                self.store.assignments,
                assignment.vendor_id,
                event.window,
                exclude_assignment_id=assignment.id,
            )
            if conflict is not None:
                _log_rejection("vendor", assignment.vendor_id, conflict)
                raise ConflictError(VENDOR_BOOKED, conflict)
            updated = assignment.model_copy(update={"status": status})
            self.store.assignments.update(updated)

        return updated

    def remove_assignment(self, owner_id: str, assignment_id: str) -> None:
        assignment = self._get_owned_assignment(owner_id, assignment_id)
        with self.store.locks.hold(("vendor", assignment.vendor_id)):
            self.store.assignments.delete(assignment_id)
        logger.info("Removed assignment %s", assignment_id)

    def list_event_vendors(self, owner_id: str, event_id: str) -> list[EventVendor]:
        self.get_event(owner_id, event_id)
        result: list[EventVendor] = []
        for assignment in self.store.assignments.list_for_event(event_id):
            vendor = self.store.vendors.get(assignment.vendor_id)
            if vendor is None:
                continue
            result.append(
                EventVendor(
                    vendor=vendor,
                    assignment_id=assignment.id,
                    assignment_status=assignment.status,
                )
            )
        return result


def _log_rejection(resource: str, resource_id: str | None, conflict: Event) -> None:
    logger.warning(
        "Rejected %s booking for %s: overlaps event %s (%s)",
        resource,
        resource_id,
        conflict.id,
        conflict.title,
    )


def _first_message(exc: pydantic.ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    return errors[0]["msg"].removeprefix("Value error, ")
