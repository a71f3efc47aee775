"""Tests for event and vendor-assignment mutations."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone

import pytest

from planner.domain.errors import ConflictError, NotFoundError, ValidationError
from planner.domain.models import (
    AssignmentCreate,
    AssignmentStatus,
    EventCreate,
    EventUpdate,
    Guest,
    Task,
    Vendor,
    Venue,
)
from planner.repos.memory import create_store
from planner.services.guards import check_venue_conflict
from planner.services.scheduling import EventScheduler

OWNER = "owner-1"
D1 = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
D2 = datetime(2024, 1, 1, 14, 0, tzinfo=timezone.utc)


@pytest.fixture()
def env():
    """Fresh store + scheduler with one venue and one vendor."""
    store = create_store()
    venue = Venue(name="Grand Ballroom", address="123 Main", capacity=100, price_per_day=500)
    vendor = Vendor(name="Delicious Catering", vendor_type="catering", rating=4.5)
    store.venues.add(venue)
    store.vendors.add(vendor)

    class Env:
        pass

    e = Env()
    e.store = store
    e.scheduler = EventScheduler(store=store)
    e.venue = venue
    e.vendor = vendor
    return e


def _create(env, title="E1", start=D1, end=D2, venue=True, owner=OWNER):
    return env.scheduler.create_event(
        owner,
        EventCreate(
            title=title,
            event_type="wedding",
            start_time=start,
            end_time=end,
            venue_id=env.venue.id if venue else None,
        ),
    )


# ---------------------------------------------------------------------------
# Venue bookings
# ---------------------------------------------------------------------------


def test_overlapping_venue_booking_rejected_citing_existing_event(env):
    e1 = _create(env)

    with pytest.raises(ConflictError) as info:
        _create(
            env,
            title="E2",
            start=datetime(2024, 1, 1, 13, 0, tzinfo=timezone.utc),
            end=datetime(2024, 1, 1, 16, 0, tzinfo=timezone.utc),
        )

    assert info.value.conflict.id == e1.id
    payload = info.value.payload()
    assert payload["title"] == "E1"
    assert payload["start_time"] == D1.isoformat()
    assert payload["end_time"] == D2.isoformat()
    assert len(env.store.events.list_all()) == 1


def test_venue_conflict_spans_owners(env):
    _create(env, owner="alice")
    with pytest.raises(ConflictError):
        _create(env, title="Bob's party", owner="bob")


def test_event_without_venue_never_conflicts(env):
    _create(env, venue=False)
    _create(env, title="Same time, no venue", venue=False)
    assert len(env.store.events.list_all()) == 2


def test_shift_own_window_succeeds(env):
    e1 = _create(env)
    updated = env.scheduler.update_event(
        OWNER, e1.id, EventUpdate(start_time=D1 + timedelta(hours=1), end_time=D2 + timedelta(hours=1))
    )
    assert updated.start_time == D1 + timedelta(hours=1)
    assert env.store.events.get(e1.id).end_time == D2 + timedelta(hours=1)


def test_update_into_booked_window_rejected_and_unchanged(env):
    _create(env)
    e2 = _create(env, title="E2", start=D2 + timedelta(hours=2), end=D2 + timedelta(hours=4))

    with pytest.raises(ConflictError):
        env.scheduler.update_event(OWNER, e2.id, EventUpdate(start_time=D2))

    assert env.store.events.get(e2.id).start_time == D2 + timedelta(hours=2)


def test_update_moving_venue_onto_booked_one_rejected(env):
    _create(env)
    e2 = _create(env, title="E2", venue=False)
    with pytest.raises(ConflictError):
        env.scheduler.update_event(OWNER, e2.id, EventUpdate(venue_id=env.venue.id))
    assert env.store.events.get(e2.id).venue_id is None


def test_update_guards_the_venue_the_event_holds_after_relock(env, monkeypatch):
    """If the event moves to another venue before the lock is taken, that venue is locked."""
    other = Venue(name="Garden Pavilion", address="456 Park", capacity=80, price_per_day=300)
    env.store.venues.add(other)
    e1 = _create(env)

    moved = []
    original_require = env.scheduler._require_venue

    def require_then_move(venue_id):
        original_require(venue_id)
        if not moved:
            # A competing update lands between the lookup and the lock.
            env.store.events.update(e1.model_copy(update={"venue_id": other.id}))
            moved.append(True)

    guarded = {}

    def recording_guard(events, venue_id, window, exclude_event_id=None):
        guarded[venue_id] = env.store.locks._lock("venue", venue_id).locked()
        return check_venue_conflict(events, venue_id, window, exclude_event_id)

    monkeypatch.setattr(env.scheduler, "_require_venue", require_then_move)
    monkeypatch.setattr("planner.services.scheduling.check_venue_conflict", recording_guard)

    updated = env.scheduler.update_event(
        OWNER, e1.id, EventUpdate(end_time=D2 + timedelta(hours=1))
    )

    assert guarded == {other.id: True}
    assert updated.venue_id == other.id
    assert env.store.events.get(e1.id).end_time == D2 + timedelta(hours=1)


@pytest.mark.parametrize("field", ["title", "event_type"])
@pytest.mark.parametrize("blank", ["", "   "])
def test_update_blank_required_text_is_validation_error(env, field, blank):
    e1 = _create(env)
    with pytest.raises(ValidationError, match=field):
        env.scheduler.update_event(OWNER, e1.id, EventUpdate(**{field: blank}))
    assert getattr(env.store.events.get(e1.id), field) == getattr(e1, field)


def test_update_can_clear_venue(env):
    e1 = _create(env)
    updated = env.scheduler.update_event(OWNER, e1.id, EventUpdate(venue_id=None))
    assert updated.venue_id is None


def test_delete_frees_venue_immediately(env):
    e1 = _create(env)
    env.scheduler.delete_event(OWNER, e1.id)
    e2 = _create(env, title="E2")
    assert env.store.events.get(e2.id) is not None


def test_delete_cascades_to_children(env):
    e1 = _create(env)
    env.store.guests.add(Guest(event_id=e1.id, name="Ann"))
    env.store.tasks.add(Task(event_id=e1.id, title="Book band"))
    env.scheduler.assign_vendor(OWNER, AssignmentCreate(event_id=e1.id, vendor_id=env.vendor.id))

    env.scheduler.delete_event(OWNER, e1.id)

    assert env.store.guests.list_for_event(e1.id) == []
    assert env.store.tasks.list_for_event(e1.id) == []
    assert env.store.assignments.list_for_event(e1.id) == []


# ---------------------------------------------------------------------------
# Validation and ownership
# ---------------------------------------------------------------------------


def test_blank_title_is_validation_error(env):
    with pytest.raises(ValidationError, match="Title is required"):
        _create(env, title="   ")


def test_end_before_start_is_validation_error(env):
    with pytest.raises(ValidationError):
        _create(env, start=D2, end=D1)


def test_update_end_before_start_is_validation_error(env):
    e1 = _create(env)
    with pytest.raises(ValidationError):
        env.scheduler.update_event(OWNER, e1.id, EventUpdate(end_time=D1 - timedelta(hours=1)))


def test_zero_length_event_allowed(env):
    event = _create(env, start=D1, end=D1)
    assert event.window.start == event.window.end


def test_unknown_venue_is_not_found(env):
    with pytest.raises(NotFoundError):
        env.scheduler.create_event(
            OWNER,
            EventCreate(
                title="E", event_type="party", start_time=D1, end_time=D2, venue_id="nope"
            ),
        )


def test_other_owner_cannot_see_or_change_event(env):
    e1 = _create(env)
    with pytest.raises(NotFoundError):
        env.scheduler.get_event("intruder", e1.id)
    with pytest.raises(NotFoundError):
        env.scheduler.update_event("intruder", e1.id, EventUpdate(title="Mine"))
    with pytest.raises(NotFoundError):
        env.scheduler.delete_event("intruder", e1.id)


def test_list_events_latest_first(env):
    early = _create(env, title="Early", venue=False)
    late = _create(env, title="Late", start=D1 + timedelta(days=3), end=D2 + timedelta(days=3))
    _create(env, title="Other owner", venue=False, owner="bob")
    assert [e.id for e in env.scheduler.list_events(OWNER)] == [late.id, early.id]


# ---------------------------------------------------------------------------
# Vendor assignments
# ---------------------------------------------------------------------------


def test_vendor_double_booking_rejected(env):
    e1 = _create(env, venue=False)
    e2 = _create(env, title="E2", start=D1 + timedelta(hours=1), end=D2, venue=False)
    env.scheduler.assign_vendor(OWNER, AssignmentCreate(event_id=e1.id, vendor_id=env.vendor.id))

    with pytest.raises(ConflictError) as info:
        env.scheduler.assign_vendor(
            OWNER, AssignmentCreate(event_id=e2.id, vendor_id=env.vendor.id)
        )
    assert info.value.conflict.id == e1.id
    assert env.store.assignments.list_for_event(e2.id) == []


def test_reassigning_vendor_to_same_event_succeeds(env):
    e1 = _create(env, venue=False)
    first = env.scheduler.assign_vendor(
        OWNER, AssignmentCreate(event_id=e1.id, vendor_id=env.vendor.id)
    )
    again = env.scheduler.assign_vendor(
        OWNER,
        AssignmentCreate(
            event_id=e1.id, vendor_id=env.vendor.id, status=AssignmentStatus.CONFIRMED
        ),
    )
    assert again.id == first.id
    assert again.status == AssignmentStatus.CONFIRMED
    assert len(env.store.assignments.list_for_event(e1.id)) == 1


def test_update_assignment_status(env):
    e1 = _create(env, venue=False)
    assignment = env.scheduler.assign_vendor(
        OWNER, AssignmentCreate(event_id=e1.id, vendor_id=env.vendor.id)
    )
    updated = env.scheduler.update_assignment(OWNER, assignment.id, AssignmentStatus.CONFIRMED)
    assert updated.status == AssignmentStatus.CONFIRMED


def test_update_assignment_rejected_when_event_moved_into_vendor_clash(env):
    e1 = _create(env, venue=False)
    e2 = _create(env, title="E2", start=D1 + timedelta(days=1), end=D2 + timedelta(days=1), venue=False)
    env.scheduler.assign_vendor(OWNER, AssignmentCreate(event_id=e1.id, vendor_id=env.vendor.id))
    on_e2 = env.scheduler.assign_vendor(
        OWNER, AssignmentCreate(event_id=e2.id, vendor_id=env.vendor.id)
    )
    # Event updates do not re-check vendors; the next assignment revision does.
    env.scheduler.update_event(OWNER, e2.id, EventUpdate(start_time=D1, end_time=D2))

    with pytest.raises(ConflictError):
        env.scheduler.update_assignment(OWNER, on_e2.id, AssignmentStatus.CONFIRMED)


def test_remove_assignment_frees_vendor(env):
    e1 = _create(env, venue=False)
    e2 = _create(env, title="E2", venue=False)
    assignment = env.scheduler.assign_vendor(
        OWNER, AssignmentCreate(event_id=e1.id, vendor_id=env.vendor.id)
    )
    env.scheduler.remove_assignment(OWNER, assignment.id)
    env.scheduler.assign_vendor(OWNER, AssignmentCreate(event_id=e2.id, vendor_id=env.vendor.id))


def test_assign_to_foreign_event_is_not_found(env):
    e1 = _create(env, venue=False, owner="bob")
    with pytest.raises(NotFoundError):
        env.scheduler.assign_vendor(
            OWNER, AssignmentCreate(event_id=e1.id, vendor_id=env.vendor.id)
        )


def test_assign_unknown_vendor_is_not_found(env):
    e1 = _create(env, venue=False)
    with pytest.raises(NotFoundError, match="Vendor"):
        env.scheduler.assign_vendor(OWNER, AssignmentCreate(event_id=e1.id, vendor_id="nope"))


def test_list_event_vendors(env):
    e1 = _create(env, venue=False)
    assignment = env.scheduler.assign_vendor(
        OWNER, AssignmentCreate(event_id=e1.id, vendor_id=env.vendor.id)
    )
    listed = env.scheduler.list_event_vendors(OWNER, e1.id)
    assert len(listed) == 1
    assert listed[0].vendor.id == env.vendor.id
    assert listed[0].assignment_id == assignment.id


# ---------------------------------------------------------------------------
# Concurrent check-then-act (resource locks)
# ---------------------------------------------------------------------------


def test_concurrent_overlapping_venue_bookings_admit_exactly_one(env):
    """Many threads race to book the same venue; the lock lets only one win."""
    barrier = threading.Barrier(8)
    outcomes: list[str] = []
    outcomes_lock = threading.Lock()

    def book(i: int) -> None:
        barrier.wait()
        try:
            _create(env, title=f"Racer {i}")
        except ConflictError:
            result = "conflict"
        else:
            result = "booked"
        with outcomes_lock:
            outcomes.append(result)

    threads = [threading.Thread(target=book, args=(i,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert outcomes.count("booked") == 1
    assert outcomes.count("conflict") == 7
    assert len(env.store.events.list_for_venue(env.venue.id)) == 1


def test_concurrent_vendor_assignments_admit_exactly_one(env):
    events = [
        _create(env, title=f"E{i}", venue=False, start=D1 + timedelta(minutes=i), end=D2)
        for i in range(6)
    ]
    barrier = threading.Barrier(len(events))
    booked: list[str] = []

    def assign(event_id: str) -> None:
        barrier.wait()
        try:
            env.scheduler.assign_vendor(
                OWNER, AssignmentCreate(event_id=event_id, vendor_id=env.vendor.id)
            )
        except ConflictError:
            return
        booked.append(event_id)

    threads = [threading.Thread(target=assign, args=(e.id,)) for e in events]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(booked) == 1
    assert len(env.store.assignments.list_for_vendor(env.vendor.id)) == 1
