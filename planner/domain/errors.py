"""Domain errors raised by the services and mapped to HTTP by the app."""

from __future__ import annotations

from planner.domain.models import Event


class PlannerError(Exception):
    """Base class for all domain errors."""


class ValidationError(PlannerError):
    """A required field is missing or a value is out of range."""


class NotFoundError(PlannerError):
    """The record does not exist or is outside the caller's ownership scope."""


class DuplicateError(PlannerError):
    """A record with the same natural key already exists."""


class ConflictError(PlannerError):
    """A venue or vendor is already booked for an overlapping window."""

    def __init__(self, message: str, conflict: Event) -> None:
        super().__init__(message)
        self.conflict = conflict

    def payload(self) -> dict:
        return {
            "id": self.conflict.id,
            "title": self.conflict.title,
            "start_time": self.conflict.start_time.isoformat(),
            "end_time": self.conflict.end_time.isoformat(),
        }


class NotificationFailure(PlannerError):
    """Sending a best-effort notification failed. Never reaches API callers."""
