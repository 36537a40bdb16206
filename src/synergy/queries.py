"""Read models consumed by the presentation layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from .models import Message, Notification, Project, Snapshot, Task, TaskStatus, User
from .triggers import is_due_soon, is_overdue


@dataclass(frozen=True)
class TaskView:
    task: Task
    assignee: User | None
    due_soon: bool
    overdue: bool


@dataclass
class Thread:
    root: Message
    replies: list[Message] = field(default_factory=list)


def projects_for_user(snapshot: Snapshot, user_id: str) -> list[Project]:
    """Projects the user is a member of, in collection order (newest first)."""
    return [p for p in snapshot.projects if user_id in p.members]


def project_members(snapshot: Snapshot, project: Project) -> list[User]:
    """Resolve member ids in member order, skipping ids with no user."""
    user_map = {u.id: u for u in snapshot.users}
    return [user_map[uid] for uid in project.members if uid in user_map]


def task_view(snapshot: Snapshot, task: Task, now: datetime) -> TaskView:
    assignee = None
    if task.assignee_id is not None:
        assignee = next((u for u in snapshot.users if u.id == task.assignee_id), None)
    return TaskView(
        task=task,
        assignee=assignee,
        due_soon=is_due_soon(task, now),
        overdue=is_overdue(task, now),
    )


def task_board(
    snapshot: Snapshot, project_id: str, now: datetime
) -> dict[TaskStatus, list[TaskView]]:
    """Tasks of one project grouped into status columns.

    Every column is present, even when empty. Due flags are computed against
    ``now`` on every call and never stored.
    """
    board: dict[TaskStatus, list[TaskView]] = {status: [] for status in TaskStatus}
    for task in snapshot.tasks:
        if task.project_id == project_id:
            board[task.status].append(task_view(snapshot, task, now))
    return board


def list_threads(snapshot: Snapshot, project_id: str) -> list[Thread]:
    """Root messages of a project with their direct replies, oldest first."""
    threads: dict[str, Thread] = {}
    replies: list[Message] = []
    for m in snapshot.messages:
        if m.project_id != project_id:
            continue
        if m.is_root:
            threads[m.id] = Thread(root=m)
        else:
            replies.append(m)
    for r in replies:
        thread = threads.get(r.parent_id)
        if thread is not None:
            thread.replies.append(r)
    return list(threads.values())


def notifications_for(snapshot: Snapshot, user_id: str) -> list[Notification]:
    return [n for n in snapshot.notifications if n.user_id == user_id]


def unread_count(snapshot: Snapshot, user_id: str) -> int:
    return sum(1 for n in snapshot.notifications if n.user_id == user_id and not n.read)
