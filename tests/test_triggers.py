"""Tests for the notification trigger policy and due flags."""

from datetime import date, datetime, timezone

import pytest

from synergy.models import Project, Task, TaskStatus
from synergy.triggers import (
    TaskAssigned,
    TaskStatusChanged,
    derive_notifications,
    is_due_soon,
    is_overdue,
)

NOW = datetime(2026, 2, 9, 10, 0, 0, tzinfo=timezone.utc)


def make_task(**overrides) -> Task:
    fields = {
        "id": "task_1",
        "project_id": "proj_1",
        "title": "Ship",
        "assignee_id": "u1",
        "created_at": NOW,
    }
    fields.update(overrides)
    return Task(**fields)


def make_project() -> Project:
    return Project(id="proj_1", name="Launch", members=["u1"], created_at=NOW)


def test_assignment_notification() -> None:
    event = TaskAssigned(task=make_task(), project=make_project())
    [n] = derive_notifications(event, NOW, id_factory=lambda prefix: f"{prefix}_x")
    assert n.id == "ntf_x"
    assert n.user_id == "u1"
    assert n.text == 'You were assigned "Ship" in Launch.'
    assert n.created_at == NOW
    assert n.read is False


def test_status_change_notification() -> None:
    event = TaskStatusChanged(task=make_task(), new_status=TaskStatus.DONE)
    [n] = derive_notifications(event, NOW)
    assert n.text == 'Task "Ship" marked Done.'
    assert n.id.startswith("ntf_")


def test_no_assignee_no_notification() -> None:
    task = make_task(assignee_id=None)
    assert derive_notifications(TaskAssigned(task=task, project=make_project()), NOW) == []
    assert derive_notifications(TaskStatusChanged(task=task, new_status=TaskStatus.TODO), NOW) == []


@pytest.mark.parametrize(
    ("due", "status", "expected"),
    [
        (date(2026, 2, 10), TaskStatus.TODO, True),  # 14h away
        (date(2026, 2, 11), TaskStatus.INPROGRESS, True),  # 38h away
        (date(2026, 2, 12), TaskStatus.TODO, False),  # 62h away
        (date(2026, 2, 9), TaskStatus.TODO, False),  # already passed
        (date(2026, 2, 10), TaskStatus.DONE, False),
        (None, TaskStatus.TODO, False),
    ],
)
def test_is_due_soon(due, status, expected) -> None:
    assert is_due_soon(make_task(due_date=due, status=status), NOW) is expected


def test_is_overdue() -> None:
    assert is_overdue(make_task(due_date=date(2026, 2, 8)), NOW) is True
    assert is_overdue(make_task(due_date=date(2026, 2, 8), status=TaskStatus.DONE), NOW) is False
    assert is_overdue(make_task(due_date=date(2026, 2, 10)), NOW) is False
    assert is_overdue(make_task(due_date=None), NOW) is False
