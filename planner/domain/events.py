"""Domain events published after a mutation commits."""

from __future__ import annotations

from pydantic import BaseModel

from planner.domain.models import RsvpStatus


class GuestRsvpChanged(BaseModel):
    """Fired after a guest update is written, whether or not the RSVP moved."""

    guest_id: str
    event_id: str
    old_status: RsvpStatus
    new_status: RsvpStatus
    email: str | None = None
