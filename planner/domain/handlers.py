"""Post-commit domain event handlers, wired up at application startup."""

from __future__ import annotations

import logging

from planner.domain.bus import EventBus
from planner.domain.errors import NotificationFailure
from planner.domain.events import GuestRsvpChanged
from planner.repos.memory import EventRepository, GuestRepository
from planner.services.notifications import (
    Mailer,
    build_rsvp_confirmation,
    should_notify_rsvp_change,
)

logger = logging.getLogger(__name__)


class HandlerRegistry:
    """Wires domain-event handlers to the bus with access to the repositories."""

    def __init__(
        self,
        bus: EventBus,
        mailer: Mailer,
        guest_repo: GuestRepository,
        event_repo: EventRepository,
        sender: str,
    ) -> None:
        self.bus = bus
        self.mailer = mailer
        self.guest_repo = guest_repo
        self.event_repo = event_repo
        self.sender = sender
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(GuestRsvpChanged, self.on_guest_rsvp_changed)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_guest_rsvp_changed(self, change: GuestRsvpChanged) -> None:
        """Email the guest about a changed RSVP.

        The guest update is already written; a failed send is logged and
        swallowed so the update still succeeds for its caller.
        """
        if not should_notify_rsvp_change(change.old_status, change.new_status, change.email):
            return
        try:
            self._send_rsvp_confirmation(change)
        except Exception:
            logger.exception("RSVP confirmation for guest %s failed", change.guest_id)

    def _send_rsvp_confirmation(self, change: GuestRsvpChanged) -> None:
        guest = self.guest_repo.get(change.guest_id)
        event = self.event_repo.get(change.event_id)
        if guest is None or event is None:
            raise NotificationFailure(f"Guest {change.guest_id} or its event no longer exists")
        message = build_rsvp_confirmation(guest, event, self.sender)
        message_id = self.mailer.send(message)
        logger.info("RSVP confirmation %s sent to %s", message_id, message.to)
