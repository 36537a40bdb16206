"""Notification trigger policy and transient task flags.

Pure functions: nothing here touches the store. The repository feeds events
in and persists whatever comes out.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from .constants import DUE_SOON_WINDOW_HOURS, ID_PREFIX_NOTIFICATION
from .models import Notification, Project, Task, TaskStatus
from .time_utils import due_instant, new_id

_DUE_SOON_WINDOW = timedelta(hours=DUE_SOON_WINDOW_HOURS)


@dataclass(frozen=True)
class TaskAssigned:
    task: Task
    project: Project


@dataclass(frozen=True)
class TaskStatusChanged:
    task: Task
    new_status: TaskStatus


TriggerEvent = TaskAssigned | TaskStatusChanged


def notification_text(event: TriggerEvent) -> str:
    if isinstance(event, TaskAssigned):
        return f'You were assigned "{event.task.title}" in {event.project.name}.'
    return f'Task "{event.task.title}" marked {event.new_status.label}.'


def derive_notifications(
    event: TriggerEvent,
    now: datetime,
    id_factory: Callable[[str], str] = new_id,
) -> list[Notification]:
    """Return the notifications an event produces.

    The only recipient is the task assignee; an unassigned task yields none.
    """
    recipient = event.task.assignee_id
    if not recipient:
        return []
    return [
        Notification(
            id=id_factory(ID_PREFIX_NOTIFICATION),
            user_id=recipient,
            text=notification_text(event),
            created_at=now,
        )
    ]


def is_due_soon(task: Task, now: datetime) -> bool:
    """True for an unfinished task due within the next 48 hours."""
    if task.due_date is None or task.status == TaskStatus.DONE:
        return False
    remaining = due_instant(task.due_date) - now
    return timedelta(0) < remaining < _DUE_SOON_WINDOW


def is_overdue(task: Task, now: datetime) -> bool:
    if task.due_date is None or task.status == TaskStatus.DONE:
        return False
    return due_instant(task.due_date) < now
