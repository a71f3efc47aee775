"""FastAPI application and HTTP routes for the event planner service."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated

from fastapi import FastAPI, Header, Request
from fastapi.responses import JSONResponse

from planner.config import configure_logging, get_settings
from planner.domain.bus import EventBus
from planner.domain.handlers import HandlerRegistry
from planner.domain.errors import (
    ConflictError,
    DuplicateError,
    NotFoundError,
    ValidationError,
)
from planner.domain.models import (
    Assignment,
    AssignmentCreate,
    AssignmentUpdate,
    Event,
    EventCreate,
    EventUpdate,
    EventVendor,
    Guest,
    GuestCreate,
    GuestUpdate,
    InvitationRequest,
    InvitationResult,
    Task,
    TaskCreate,
    TaskUpdate,
    Vendor,
    VendorCreate,
    Venue,
    VenueCreate,
    VenueQuote,
)
from planner.repos.memory import create_store
from planner.services.guards import available_venues
from planner.services.guests import GuestService
from planner.services.notifications import LogMailer
from planner.services.pricing import quote_venue
from planner.services.scheduling import EventScheduler
from planner.services.tasks import TaskService
from planner.services.timeparse import parse_window

settings = get_settings()
configure_logging(settings.log_level)

app = FastAPI(title=settings.app_name)

# ── Singletons ────────────────────────────────────────────────────────
event_bus = EventBus()
store = create_store(seed=settings.seed_sample_data)
mailer = LogMailer()

scheduler = EventScheduler(store=store)
guest_service = GuestService(
    store=store, bus=event_bus, mailer=mailer, sender=settings.mail_from
)
task_service = TaskService(store=store)
handler_registry = HandlerRegistry(
    bus=event_bus,
    mailer=mailer,
    guest_repo=store.guests,
    event_repo=store.events,
    sender=settings.mail_from,
)

Owner = Annotated[str, Header(alias="X-User-Id")]


# ── Error mapping ─────────────────────────────────────────────────────


@app.exception_handler(ValidationError)
def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(NotFoundError)
def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ConflictError)
def _conflict(request: Request, exc: ConflictError) -> JSONResponse:
    return JSONResponse(
        status_code=409, content={"detail": str(exc), "conflict": exc.payload()}
    )


@app.exception_handler(DuplicateError)
def _duplicate(request: Request, exc: DuplicateError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": str(exc)})


# ── Routes ────────────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict:
    return {"status": "ok", "service": settings.app_name}


# -- Events ------------------------------------------------------------


@app.get("/events", response_model=list[Event])
def list_events(owner_id: Owner) -> list[Event]:
    """Return the caller's events, latest start first."""
    return scheduler.list_events(owner_id)


@app.get("/events/{event_id}", response_model=Event)
def get_event(event_id: str, owner_id: Owner) -> Event:
    return scheduler.get_event(owner_id, event_id)


@app.post("/events", response_model=Event, status_code=201)
def create_event(payload: EventCreate, owner_id: Owner) -> Event:
    """Create an event; 409 if its venue is already booked in that window."""
    return scheduler.create_event(owner_id, payload)


@app.put("/events/{event_id}", response_model=Event)
def update_event(event_id: str, payload: EventUpdate, owner_id: Owner) -> Event:
    return scheduler.update_event(owner_id, event_id, payload)


@app.delete("/events/{event_id}")
def delete_event(event_id: str, owner_id: Owner) -> dict:
    scheduler.delete_event(owner_id, event_id)
    return {"status": "deleted"}


@app.get("/events/{event_id}/vendors", response_model=list[EventVendor])
def list_event_vendors(event_id: str, owner_id: Owner) -> list[EventVendor]:
    return scheduler.list_event_vendors(owner_id, event_id)


@app.get("/events/{event_id}/guests", response_model=list[Guest])
def list_event_guests(event_id: str, owner_id: Owner) -> list[Guest]:
    return guest_service.list_guests(owner_id, event_id)


@app.get("/events/{event_id}/guests/stats")
def event_rsvp_stats(event_id: str, owner_id: Owner) -> dict[str, int]:
    return guest_service.rsvp_stats(owner_id, event_id)


@app.post("/events/{event_id}/invitations", response_model=InvitationResult)
def send_invitations(
    event_id: str, body: InvitationRequest, owner_id: Owner
) -> InvitationResult:
    """Email an invitation to every guest of the event that has an address."""
    return guest_service.send_invitations(owner_id, event_id, body.subject, body.message)


@app.get("/events/{event_id}/tasks", response_model=list[Task])
def list_event_tasks(event_id: str, owner_id: Owner) -> list[Task]:
    return task_service.list_tasks(owner_id, event_id)


@app.get("/events/{event_id}/venue-quote", response_model=VenueQuote)
def event_venue_quote(event_id: str, owner_id: Owner) -> VenueQuote:
    """Price the event's venue for the days its window covers."""
    event = scheduler.get_event(owner_id, event_id)
    if event.venue_id is None:
        raise ValidationError("Event has no venue")
    venue = store.venues.get(event.venue_id)
    if venue is None:
        raise NotFoundError("Venue not found")
    return quote_venue(venue, event.window)


# -- Venues ------------------------------------------------------------


@app.get("/venues", response_model=list[Venue])
def list_venues(owner_id: Owner) -> list[Venue]:
    return store.venues.list_all()


@app.get("/venues/available/{start}/{end}", response_model=list[Venue])
def list_available_venues(start: str, end: str, owner_id: Owner) -> list[Venue]:
    """Venues free for the whole window; *start* and *end* may be loosely formatted."""
    window = parse_window(start, end, now=datetime.now(timezone.utc))
    return available_venues(store.venues, store.events, window)


@app.get("/venues/{venue_id}", response_model=Venue)
def get_venue(venue_id: str, owner_id: Owner) -> Venue:
    venue = store.venues.get(venue_id)
    if venue is None:
        raise NotFoundError("Venue not found")
    return venue


@app.post("/venues", response_model=Venue, status_code=201)
def create_venue(payload: VenueCreate, owner_id: Owner) -> Venue:
    venue = Venue(**payload.model_dump())
    store.venues.add(venue)
    return venue


# -- Vendors -----------------------------------------------------------


@app.get("/vendors", response_model=list[Vendor])
def list_vendors(owner_id: Owner, vendor_type: str | None = None) -> list[Vendor]:
    """Return vendors, best rated first, optionally filtered by type."""
    return store.vendors.list_all(vendor_type)


@app.get("/vendors/{vendor_id}", response_model=Vendor)
def get_vendor(vendor_id: str, owner_id: Owner) -> Vendor:
    vendor = store.vendors.get(vendor_id)
    if vendor is None:
        raise NotFoundError("Vendor not found")
    return vendor


@app.post("/vendors", response_model=Vendor, status_code=201)
def create_vendor(payload: VendorCreate, owner_id: Owner) -> Vendor:
    vendor = Vendor(**payload.model_dump())
    store.vendors.add(vendor)
    return vendor


@app.post("/vendors/assign", response_model=Assignment, status_code=201)
def assign_vendor(payload: AssignmentCreate, owner_id: Owner) -> Assignment:
    """Assign a vendor to one of the caller's events; 409 on a double-booking."""
    return scheduler.assign_vendor(owner_id, payload)


@app.patch("/vendors/assign/{assignment_id}", response_model=Assignment)
def update_assignment(
    assignment_id: str, payload: AssignmentUpdate, owner_id: Owner
) -> Assignment:
    return scheduler.update_assignment(owner_id, assignment_id, payload.status)


@app.delete("/vendors/assign/{assignment_id}")
def remove_assignment(assignment_id: str, owner_id: Owner) -> dict:
    scheduler.remove_assignment(owner_id, assignment_id)
    return {"status": "removed"}


# -- Guests ------------------------------------------------------------


@app.post("/guests", response_model=Guest, status_code=201)
def create_guest(payload: GuestCreate, owner_id: Owner) -> Guest:
    return guest_service.create_guest(owner_id, payload)


@app.get("/guests/{guest_id}", response_model=Guest)
def get_guest(guest_id: str, owner_id: Owner) -> Guest:
    return guest_service.get_guest(owner_id, guest_id)


@app.put("/guests/{guest_id}", response_model=Guest)
def update_guest(guest_id: str, payload: GuestUpdate, owner_id: Owner) -> Guest:
    """Update a guest; an RSVP change emails the guest after the write."""
    return guest_service.update_guest(owner_id, guest_id, payload)


@app.delete("/guests/{guest_id}")
def delete_guest(guest_id: str, owner_id: Owner) -> dict:
    guest_service.delete_guest(owner_id, guest_id)
    return {"status": "deleted"}


# -- Tasks -------------------------------------------------------------


@app.get("/tasks/reminders/upcoming", response_model=list[Task])
def upcoming_task_reminders(
    owner_id: Owner, days: int | None = None, now: datetime | None = None
) -> list[Task]:
    """Open, un-reminded tasks due within *days* (default from settings).

    Pass *now* to evaluate against a fixed clock.
    """
    current_time = now or datetime.now(timezone.utc)
    if current_time.tzinfo is None:
        current_time = current_time.replace(tzinfo=timezone.utc)
    return task_service.upcoming_reminders(
        owner_id, current_time, days if days is not None else settings.upcoming_task_days
    )


@app.post("/tasks", response_model=Task, status_code=201)
def create_task(payload: TaskCreate, owner_id: Owner) -> Task:
    return task_service.create_task(owner_id, payload)


@app.get("/tasks/{task_id}", response_model=Task)
def get_task(task_id: str, owner_id: Owner) -> Task:
    return task_service.get_task(owner_id, task_id)


@app.put("/tasks/{task_id}", response_model=Task)
def update_task(task_id: str, payload: TaskUpdate, owner_id: Owner) -> Task:
    return task_service.update_task(owner_id, task_id, payload)


@app.delete("/tasks/{task_id}")
def delete_task(task_id: str, owner_id: Owner) -> dict:
    task_service.delete_task(owner_id, task_id)
    return {"status": "deleted"}
