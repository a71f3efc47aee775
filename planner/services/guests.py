"""Guest list management and invitation sending."""

from __future__ import annotations

import logging
from collections import Counter

from planner.domain.bus import EventBus
from planner.domain.errors import NotFoundError, ValidationError
from planner.domain.events import GuestRsvpChanged
from planner.domain.models import (
    Event,
    Guest,
    GuestCreate,
    GuestUpdate,
    InvitationResult,
    RsvpStatus,
)
from planner.repos.memory import Store
from planner.services.notifications import Mailer, build_invitation

logger = logging.getLogger(__name__)


class GuestService:
    def __init__(self, store: Store, bus: EventBus, mailer: Mailer, sender: str) -> None:
        self.store = store
        self.bus = bus
        self.mailer = mailer
        self.sender = sender

    def _owned_event(self, owner_id: str, event_id: str) -> Event:
        event = self.store.events.get(event_id)
        if event is None or event.owner_id != owner_id:
            raise NotFoundError("Event not found")
        return event

    def get_guest(self, owner_id: str, guest_id: str) -> Guest:
        guest = self.store.guests.get(guest_id)
        if guest is None:
            raise NotFoundError("Guest not found")
        event = self.store.events.get(guest.event_id)
        if event is None or event.owner_id != owner_id:
            raise NotFoundError("Guest not found")
        return guest

    def list_guests(self, owner_id: str, event_id: str) -> list[Guest]:
        self._owned_event(owner_id, event_id)
        return self.store.guests.list_for_event(event_id)

    def create_guest(self, owner_id: str, data: GuestCreate) -> Guest:
        self._owned_event(owner_id, data.event_id)
        guest = Guest(**data.model_dump())
        self.store.guests.add(guest)
        return guest

    def update_guest(self, owner_id: str, guest_id: str, data: GuestUpdate) -> Guest:
        """Write the guest, then announce the RSVP transition on the bus."""
        changes = data.model_dump(exclude_unset=True)
        if "name" in changes and not (changes["name"] or "").strip():
            raise ValidationError("Name is required")
        if "rsvp_status" in changes and changes["rsvp_status"] is None:
            raise ValidationError("rsvp_status is required")

        old = self.get_guest(owner_id, guest_id)
        updated = old.model_copy(update=changes)
        self.store.guests.update(updated)

        self.bus.publish(
            GuestRsvpChanged(
                guest_id=updated.id,
                event_id=updated.event_id,
                old_status=old.rsvp_status,
                new_status=updated.rsvp_status,
                email=updated.email,
            )
        )
        return updated

    def delete_guest(self, owner_id: str, guest_id: str) -> None:
        self.get_guest(owner_id, guest_id)
        self.store.guests.delete(guest_id)

    def rsvp_stats(self, owner_id: str, event_id: str) -> dict[str, int]:
        guests = self.list_guests(owner_id, event_id)
        counts = Counter(g.rsvp_status for g in guests)
        return {status.value: counts.get(status, 0) for status in RsvpStatus}

    def send_invitations(
        self,
        owner_id: str,
        event_id: str,
        subject: str | None = None,
        message: str | None = None,
    ) -> InvitationResult:
        """Email every guest that has an address; failures are collected per guest."""
        event = self._owned_event(owner_id, event_id)
        recipients = [g for g in self.store.guests.list_for_event(event_id) if g.email]
        if not recipients:
            raise ValidationError("No guests with email addresses found")

        result = InvitationResult(total=len(recipients))
        for guest in recipients:
            try:
                self.mailer.send(build_invitation(guest, event, self.sender, subject, message))
            except Exception:
                logger.exception("Invitation to %s failed", guest.email)
                result.failed.append(guest.email)
            else:
                result.sent.append(guest.email)
        return result
