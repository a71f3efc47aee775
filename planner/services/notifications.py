"""Deciding when guests are emailed, and the mailer collaborator that sends."""

from __future__ import annotations

import logging
import uuid
from typing import Protocol

from pydantic import BaseModel

from planner.domain.models import Event, Guest, RsvpStatus

logger = logging.getLogger(__name__)


class EmailMessage(BaseModel):
    sender: str
    to: str
    subject: str
    text: str


class Mailer(Protocol):
    def send(self, message: EmailMessage) -> str:
        """Deliver *message* and return a message id. Raise on failure."""
        ...


class LogMailer:
    """Mailer that writes messages to the log instead of delivering them."""

    def send(self, message: EmailMessage) -> str:
        message_id = f"log-{uuid.uuid4()}"
        logger.info(
            "Email %s to %s: %s\n%s", message_id, message.to, message.subject, message.text
        )
        return message_id


def should_notify_rsvp_change(
    old_status: RsvpStatus, new_status: RsvpStatus, email: str | None
) -> bool:
    """True iff the RSVP actually moved and the guest has a usable address."""
    return old_status != new_status and bool(email and email.strip())


_RSVP_LINES = {
    RsvpStatus.CONFIRMED: "Thank you for confirming! We look forward to seeing you.",
    RsvpStatus.DECLINED: "We're sorry you can't make it. Thank you for letting us know.",
    RsvpStatus.PENDING: "Your RSVP has been reset to pending. Please reply when you can.",
}


def build_rsvp_confirmation(guest: Guest, event: Event, sender: str) -> EmailMessage:
    when = event.start_time.strftime("%A, %B %d, %Y %H:%M")
    text = (
        f"Dear {guest.name},\n\n"
        f"Your RSVP for {event.title} on {when} is now {guest.rsvp_status}.\n\n"
        f"{_RSVP_LINES[guest.rsvp_status]}\n\n"
        "Best regards,\nEvent Management Team"
    )
    return EmailMessage(
        sender=sender,
        to=guest.email or "",
        subject=f"RSVP {guest.rsvp_status}: {event.title}",
        text=text,
    )


def build_invitation(
    guest: Guest,
    event: Event,
    sender: str,
    subject: str | None = None,
    message: str | None = None,
) -> EmailMessage:
    when = event.start_time.strftime("%A, %B %d, %Y %H:%M")
    text = message or (
        f"Dear {guest.name},\n\n"
        "You are cordially invited to attend:\n\n"
        f"Event: {event.title}\n"
        f"Type: {event.event_type}\n"
        f"Date: {when}\n"
        + (f"Description: {event.description}\n" if event.description else "")
        + "\nPlease RSVP at your earliest convenience.\n\n"
        "Best regards,\nEvent Management Team"
    )
    return EmailMessage(
        sender=sender,
        to=guest.email or "",
        subject=subject or f"Invitation: {event.title}",
        text=text,
    )
