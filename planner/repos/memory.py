"""In-memory repositories for events, venues, vendors, guests and tasks."""

from __future__ import annotations

import threading
from collections import defaultdict
from contextlib import contextmanager
from typing import Iterator

from planner.domain.errors import DuplicateError
from planner.domain.models import (
    Assignment,
    Event,
    Guest,
    Task,
    Vendor,
    Venue,
)


class EventRepository:
    """Dict-backed store for Event instances, keyed by id.

    Iteration follows insertion order, which is the storage order the guards
    report conflicts in.
    """

    def __init__(self) -> None:
        self._store: dict[str, Event] = {}

    def add(self, event: Event) -> None:
        self._store[event.id] = event

    def update(self, event: Event) -> None:
        self._store[event.id] = event

    def get(self, event_id: str) -> Event | None:
        return self._store.get(event_id)

    def list_all(self) -> list[Event]:
        return list(self._store.values())

    def list_for_owner(self, owner_id: str) -> list[Event]:
        return [e for e in self._store.values() if e.owner_id == owner_id]

    def list_for_venue(self, venue_id: str) -> list[Event]:
        return [e for e in self._store.values() if e.venue_id == venue_id]

    def delete(self, event_id: str) -> None:
        self._store.pop(event_id, None)


class VenueRepository:
    """Dict-backed store for Venue instances; (name, address) is unique."""

    def __init__(self) -> None:
        self._store: dict[str, Venue] = {}

    def add(self, venue: Venue) -> None:
        for existing in self._store.values():
            if (existing.name, existing.address) == (venue.name, venue.address):
                raise DuplicateError(f"Venue {venue.name!r} at {venue.address!r} already exists")
        self._store[venue.id] = venue

    def get(self, venue_id: str) -> Venue | None:
        return self._store.get(venue_id)

    def list_all(self) -> list[Venue]:
        return sorted(self._store.values(), key=lambda v: v.name)


class VendorRepository:
    """Dict-backed store for Vendor instances; (name, vendor_type) is unique."""

    def __init__(self) -> None:
        self._store: dict[str, Vendor] = {}

    def add(self, vendor: Vendor) -> None:
        for existing in self._store.values():
            if (existing.name, existing.vendor_type) == (vendor.name, vendor.vendor_type):
                raise DuplicateError(
                    f"Vendor {vendor.name!r} of type {vendor.vendor_type!r} already exists"
                )
        self._store[vendor.id] = vendor

    def get(self, vendor_id: str) -> Vendor | None:
        return self._store.get(vendor_id)

    def list_all(self, vendor_type: str | None = None) -> list[Vendor]:
        vendors = [
            v for v in self._store.values() if vendor_type is None or v.vendor_type == vendor_type
        ]
        return sorted(vendors, key=lambda v: (-v.rating, v.name))


class AssignmentRepository:
    """Dict-backed store for event/vendor Assignment rows."""

    def __init__(self) -> None:
        self._store: dict[str, Assignment] = {}

    def add(self, assignment: Assignment) -> None:
        self._store[assignment.id] = assignment

    def update(self, assignment: Assignment) -> None:
        self._store[assignment.id] = assignment

    def get(self, assignment_id: str) -> Assignment | None:
        return self._store.get(assignment_id)

    def find(self, event_id: str, vendor_id: str) -> Assignment | None:
        for a in self._store.values():
            if a.event_id == event_id and a.vendor_id == vendor_id:
                return a
        return None

    def list_for_vendor(self, vendor_id: str) -> list[Assignment]:
        return [a for a in self._store.values() if a.vendor_id == vendor_id]

    def list_for_event(self, event_id: str) -> list[Assignment]:
        return [a for a in self._store.values() if a.event_id == event_id]

    def delete(self, assignment_id: str) -> None:
        self._store.pop(assignment_id, None)

    def delete_for_event(self, event_id: str) -> int:
        doomed = [aid for aid, a in self._store.items() if a.event_id == event_id]
        for aid in doomed:
            del self._store[aid]
        return len(doomed)


class GuestRepository:
    """Dict-backed store for Guest instances."""

    def __init__(self) -> None:
        self._store: dict[str, Guest] = {}

    def add(self, guest: Guest) -> None:
        self._store[guest.id] = guest

    def update(self, guest: Guest) -> None:
        self._store[guest.id] = guest

    def get(self, guest_id: str) -> Guest | None:
        return self._store.get(guest_id)

    def list_for_event(self, event_id: str) -> list[Guest]:
        return sorted(
            [g for g in self._store.values() if g.event_id == event_id],
            key=lambda g: g.name,
        )

    def delete(self, guest_id: str) -> None:
        self._store.pop(guest_id, None)

    def delete_for_event(self, event_id: str) -> int:
        doomed = [gid for gid, g in self._store.items() if g.event_id == event_id]
        for gid in doomed:
            del self._store[gid]
        return len(doomed)


class TaskRepository:
    """Dict-backed store for Task instances."""

    def __init__(self) -> None:
        self._store: dict[str, Task] = {}

    def add(self, task: Task) -> None:
        self._store[task.id] = task

    def update(self, task: Task) -> None:
        self._store[task.id] = task

    def get(self, task_id: str) -> Task | None:
        return self._store.get(task_id)

    def list_for_event(self, event_id: str) -> list[Task]:
        return [t for t in self._store.values() if t.event_id == event_id]

    def list_for_events(self, event_ids: set[str]) -> list[Task]:
        return [t for t in self._store.values() if t.event_id in event_ids]

    def delete(self, task_id: str) -> None:
        self._store.pop(task_id, None)

    def delete_for_event(self, event_id: str) -> int:
        doomed = [tid for tid, t in self._store.items() if t.event_id == event_id]
        for tid in doomed:
            del self._store[tid]
        return len(doomed)


class ResourceLocks:
    """One lock per shared resource, e.g. ``("venue", venue_id)``.

    A booking holds its resource's lock across guard and write, so two
    overlapping requests for the same venue or vendor cannot both pass.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[tuple[str, str], threading.Lock] = defaultdict(threading.Lock)

    def _lock(self, kind: str, resource_id: str) -> threading.Lock:
        with self._guard:
            return self._locks[(kind, resource_id)]

    @contextmanager
    def hold(self, *keys: tuple[str, str | None]) -> Iterator[None]:
        """Acquire the locks for *keys* in a fixed order; ``None`` ids are skipped."""
        wanted = sorted({(kind, rid) for kind, rid in keys if rid is not None})
        locks = [self._lock(kind, rid) for kind, rid in wanted]
        for lock in locks:
            lock.acquire()
        try:
            yield
        finally:
            for lock in reversed(locks):
                lock.release()


class Store:
    """All repositories plus the resource locks, passed to services explicitly."""

    def __init__(self) -> None:
        self.events = EventRepository()
        self.venues = VenueRepository()
        self.vendors = VendorRepository()
        self.assignments = AssignmentRepository()
        self.guests = GuestRepository()
        self.tasks = TaskRepository()
        self.locks = ResourceLocks()

    def clear(self) -> None:
        for repo in (
            self.events,
            self.venues,
            self.vendors,
            self.assignments,
            self.guests,
            self.tasks,
        ):
            repo._store.clear()


# ---------------------------------------------------------------------------
# Seed data – shared venues and vendors every owner can book
# ---------------------------------------------------------------------------


def _seed_catalog(store: Store) -> None:
    for name, address, capacity, price, amenities in (
        ("Grand Ballroom", "123 Main Street, City", 500, 5000, "WiFi, Parking, Catering Kitchen"),
        ("Garden Pavilion", "456 Park Avenue, City", 200, 3000, "Outdoor Space, Garden, Parking"),
        ("Conference Center", "789 Business District, City", 300, 4000, "AV Equipment, WiFi"),
        ("Beach Resort", "321 Coastal Highway, City", 150, 6000, "Beach Access, Pool"),
    ):
        store.venues.add(
            Venue(
                name=name,
                address=address,
                capacity=capacity,
                price_per_day=price,
                amenities=amenities,
            )
        )

    for name, vendor_type, email, rating in (
        ("Delicious Catering", "catering", "catering@example.com", 4.5),
        ("Elegant Decorations", "decorator", "decor@example.com", 4.8),
        ("Perfect Moments Photography", "photographer", "photo@example.com", 4.7),
        ("Sound & Light Pro", "entertainment", "sound@example.com", 4.6),
        ("Floral Designs", "florist", "floral@example.com", 4.9),
    ):
        store.vendors.add(
            Vendor(name=name, vendor_type=vendor_type, contact_email=email, rating=rating)
        )


def create_store(seed: bool = False) -> Store:
    """Return an empty Store, optionally pre-loaded with sample venues and vendors."""
    store = Store()
    if seed:
        _seed_catalog(store)
    return store
