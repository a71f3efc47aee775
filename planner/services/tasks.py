"""Service for event checklist tasks and their due-date reminders."""

from __future__ import annotations

from datetime import datetime, timedelta

from planner.domain.errors import NotFoundError, ValidationError
from planner.domain.models import (
    PRIORITY_RANK,
    Task,
    TaskCreate,
    TaskStatus,
    TaskUpdate,
)
from planner.repos.memory import Store


class TaskService:
    def __init__(self, store: Store) -> None:
        self.store = store

    def _require_owned_event(self, owner_id: str, event_id: str) -> None:
        event = self.store.events.get(event_id)
        if event is None or event.owner_id != owner_id:
            raise NotFoundError("Event not found")

    def get_task(self, owner_id: str, task_id: str) -> Task:
        task = self.store.tasks.get(task_id)
        if task is None:
            raise NotFoundError("Task not found")
        event = self.store.events.get(task.event_id)
        if event is None or event.owner_id != owner_id:
            raise NotFoundError("Task not found")
        return task

    def list_tasks(self, owner_id: str, event_id: str) -> list[Task]:
        """Tasks ordered by due date (undated last), then highest priority first."""
        self._require_owned_event(owner_id, event_id)
        return sorted(self.store.tasks.list_for_event(event_id), key=_due_then_priority)

    def create_task(self, owner_id: str, data: TaskCreate) -> Task:
        self._require_owned_event(owner_id, data.event_id)
        task = Task(**data.model_dump())
        self.store.tasks.add(task)
        return task

    def update_task(self, owner_id: str, task_id: str, data: TaskUpdate) -> Task:
        changes = data.model_dump(exclude_unset=True)
        if "title" in changes and not (changes["title"] or "").strip():
            raise ValidationError("Title is required")
        for field in ("status", "priority", "reminder_sent"):
            if field in changes and changes[field] is None:
                raise ValidationError(f"{field} is required")
        task = self.get_task(owner_id, task_id)
        updated = task.model_copy(update=changes)
        self.store.tasks.update(updated)
        return updated

    def delete_task(self, owner_id: str, task_id: str) -> None:
        self.get_task(owner_id, task_id)
        self.store.tasks.delete(task_id)

    def upcoming_reminders(self, owner_id: str, now: datetime, days: int) -> list[Task]:
        """Open tasks due within *days* of *now* that have not been reminded yet.

        Overdue tasks are included.
        """
        horizon = now + timedelta(days=days)
        event_ids = {e.id for e in self.store.events.list_for_owner(owner_id)}
        due = [
            t
            for t in self.store.tasks.list_for_events(event_ids)
            if t.status != TaskStatus.COMPLETED
            and t.due_date is not None
            and t.due_date <= horizon
            and not t.reminder_sent
        ]
        return sorted(due, key=lambda t: t.due_date)


def _due_then_priority(task: Task) -> tuple:
    due = task.due_date
    return (due is None, due.timestamp() if due else 0.0, PRIORITY_RANK[task.priority])
