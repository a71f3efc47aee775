"""Domain models for the event planning system."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import StrEnum
from typing import Annotated

from pydantic import AfterValidator, BaseModel, EmailStr, Field, model_validator


class EventStatus(StrEnum):
    PLANNING = "planning"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AvailabilityStatus(StrEnum):
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


class AssignmentStatus(StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"


class RsvpStatus(StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    DECLINED = "declined"


class TaskStatus(StrEnum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TaskPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


PRIORITY_RANK = {TaskPriority.HIGH: 0, TaskPriority.MEDIUM: 1, TaskPriority.LOW: 2}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def _assume_utc(value: datetime) -> datetime:
    # Naive timestamps from clients are taken as UTC so every stored time compares.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


UtcDatetime = Annotated[datetime, AfterValidator(_assume_utc)]


# ---------------------------------------------------------------------------
# Core domain models
# ---------------------------------------------------------------------------


class TimeWindow(BaseModel):
    """Closed interval ``[start, end]``. A zero-length window is an instant."""

    start: UtcDatetime
    end: UtcDatetime

    @model_validator(mode="after")
    def _end_not_before_start(self) -> TimeWindow:
        if self.end < self.start:
            raise ValueError("end must not be before start")
        return self


class Event(BaseModel):
    id: str = Field(default_factory=_new_id)
    owner_id: str
    title: str
    event_type: str
    description: str | None = None
    start_time: UtcDatetime
    end_time: UtcDatetime
    venue_id: str | None = None
    status: EventStatus = EventStatus.PLANNING
    created_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def _end_not_before_start(self) -> Event:
        if self.end_time < self.start_time:
            raise ValueError("end_time must not be before start_time")
        return self

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(start=self.start_time, end=self.end_time)


class Venue(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    address: str
    capacity: int = Field(gt=0)
    price_per_day: float = Field(ge=0)
    amenities: str | None = None
    availability_status: AvailabilityStatus = AvailabilityStatus.AVAILABLE
    created_at: datetime = Field(default_factory=_utcnow)


class Vendor(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    vendor_type: str
    contact_email: str | None = None
    contact_phone: str | None = None
    service_description: str | None = None
    price_range: str | None = None
    rating: float = Field(default=0, ge=0, le=5)
    created_at: datetime = Field(default_factory=_utcnow)


class Assignment(BaseModel):
    """Links a vendor to an event."""

    id: str = Field(default_factory=_new_id)
    event_id: str
    vendor_id: str
    status: AssignmentStatus = AssignmentStatus.PENDING
    created_at: datetime = Field(default_factory=_utcnow)


class Guest(BaseModel):
    id: str = Field(default_factory=_new_id)
    event_id: str
    name: str
    email: str | None = None
    phone: str | None = None
    rsvp_status: RsvpStatus = RsvpStatus.PENDING
    dietary_restrictions: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)


class Task(BaseModel):
    id: str = Field(default_factory=_new_id)
    event_id: str
    title: str
    description: str | None = None
    assigned_to: str | None = None
    due_date: UtcDatetime | None = None
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM
    reminder_sent: bool = False
    created_at: datetime = Field(default_factory=_utcnow)


# ---------------------------------------------------------------------------
# Request / Response DTOs
# ---------------------------------------------------------------------------


class EventCreate(BaseModel):
    title: str
    event_type: str
    start_time: UtcDatetime
    end_time: UtcDatetime
    description: str | None = None
    venue_id: str | None = None
    status: EventStatus = EventStatus.PLANNING


class EventUpdate(BaseModel):
    """Partial update; only fields present in the request are applied."""

    title: str | None = None
    event_type: str | None = None
    start_time: UtcDatetime | None = None
    end_time: UtcDatetime | None = None
    description: str | None = None
    venue_id: str | None = None
    status: EventStatus | None = None


class VenueCreate(BaseModel):
    name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    capacity: int = Field(gt=0)
    price_per_day: float = Field(ge=0)
    amenities: str | None = None
    availability_status: AvailabilityStatus = AvailabilityStatus.AVAILABLE


class VenueQuote(BaseModel):
    venue_id: str
    days: int
    price_per_day: float
    total: float


class VendorCreate(BaseModel):
    name: str = Field(min_length=1)
    vendor_type: str = Field(min_length=1)
    contact_email: str | None = None
    contact_phone: str | None = None
    service_description: str | None = None
    price_range: str | None = None
    rating: float = Field(default=0, ge=0, le=5)


class AssignmentCreate(BaseModel):
    event_id: str
    vendor_id: str
    status: AssignmentStatus = AssignmentStatus.PENDING


class AssignmentUpdate(BaseModel):
    status: AssignmentStatus


class EventVendor(BaseModel):
    """A vendor as seen from one event, with its assignment row."""

    vendor: Vendor
    assignment_id: str
    assignment_status: AssignmentStatus


class GuestCreate(BaseModel):
    event_id: str
    name: str = Field(min_length=1)
    email: EmailStr | None = None
    phone: str | None = None
    rsvp_status: RsvpStatus = RsvpStatus.PENDING
    dietary_restrictions: str | None = None


class GuestUpdate(BaseModel):
    name: str | None = None
    email: EmailStr | None = None
    phone: str | None = None
    rsvp_status: RsvpStatus | None = None
    dietary_restrictions: str | None = None


class InvitationRequest(BaseModel):
    subject: str | None = None
    message: str | None = None


class InvitationResult(BaseModel):
    sent: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
    total: int = 0


class TaskCreate(BaseModel):
    event_id: str
    title: str = Field(min_length=1)
    description: str | None = None
    assigned_to: str | None = None
    due_date: UtcDatetime | None = None
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM


class TaskUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    assigned_to: str | None = None
    due_date: UtcDatetime | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    reminder_sent: bool | None = None
