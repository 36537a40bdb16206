"""Entity repository: validated mutations over an immutable snapshot.

Each mutation builds a complete new Snapshot, saves it, and only then makes it
current. A rejected operation or a failed save leaves the current snapshot
untouched.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import date, datetime
from typing import Any

from .constants import (
    ID_PREFIX_MESSAGE,
    ID_PREFIX_PROJECT,
    ID_PREFIX_TASK,
    ID_PREFIX_USER,
)
from .errors import (
    BadCredentialError,
    DuplicateEmailError,
    NotFoundError,
    ValidationError,
)
from .logging_utils import log_event
from .models import (
    Message,
    Notification,
    Project,
    Settings,
    Snapshot,
    Task,
    TaskStatus,
    User,
)
from .progress import ProgressSummary, aggregate
from .storage import SnapshotStorage
from .time_utils import new_id, utc_now
from .triggers import TaskAssigned, TaskStatusChanged, TriggerEvent, derive_notifications


def normalize_email(email: str) -> str:
    return email.strip().lower()


class Repository:
    """Owns the current snapshot and the storage it is committed to."""

    def __init__(
        self,
        storage: SnapshotStorage,
        snapshot: Snapshot | None = None,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[str], str] = new_id,
    ) -> None:
        self._storage = storage
        self._snapshot = snapshot if snapshot is not None else Snapshot()
        self._clock = clock
        self._new_id = id_factory

    @classmethod
    def open(cls, storage: SnapshotStorage, **kwargs: Any) -> Repository:
        """Construct from the storage's current snapshot."""
        return cls(storage, storage.load(), **kwargs)

    def close(self) -> None:
        """Final save of the current snapshot."""
        self._storage.save(self._snapshot)

    def __enter__(self) -> Repository:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    def now(self) -> datetime:
        return self._clock()

    # -----------------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------------

    def get_user(self, user_id: str) -> User:
        return _find(self._snapshot.users, user_id, "User")

    def get_project(self, project_id: str) -> Project:
        return _find(self._snapshot.projects, project_id, "Project")

    def get_task(self, task_id: str) -> Task:
        return _find(self._snapshot.tasks, task_id, "Task")

    def get_message(self, message_id: str) -> Message:
        return _find(self._snapshot.messages, message_id, "Message")

    def get_notification(self, notification_id: str) -> Notification:
        return _find(self._snapshot.notifications, notification_id, "Notification")

    def find_user_by_email(self, email: str) -> User | None:
        email_norm = normalize_email(email)
        for u in self._snapshot.users:
            if u.email == email_norm:
                return u
        return None

    def current_user(self) -> User | None:
        user_id = self._snapshot.current_user_id
        if user_id is None:
            return None
        for u in self._snapshot.users:
            if u.id == user_id:
                return u
        return None

    def progress(self, project_id: str) -> ProgressSummary:
        self.get_project(project_id)
        return aggregate(self._snapshot, project_id)

    # -----------------------------------------------------------------------
    # Users and session
    # -----------------------------------------------------------------------

    def create_user(self, email: str, name: str, credential: str) -> User:
        """Register a user; email uniqueness is case-insensitive."""
        email_norm = normalize_email(email)
        if not email_norm:
            raise ValidationError("Email is required")
        if self.find_user_by_email(email_norm) is not None:
            raise DuplicateEmailError(email_norm)
        user = User(
            id=self._new_id(ID_PREFIX_USER),
            email=email_norm,
            name=name.strip() or email_norm,
            credential=credential,
        )
        self._commit(users=[*self._snapshot.users, user])
        log_event("user_created", user_id=user.id)
        return user

    def authenticate(self, email: str, credential: str) -> User:
        """Check a credential against the store. Does not sign in."""
        user = self.find_user_by_email(email)
        if user is None:
            raise NotFoundError("User", normalize_email(email))
        # Placeholder members have no credential and cannot log in.
        if not user.credential or user.credential != credential:
            raise BadCredentialError()
        return user

    def update_user_profile(self, user_id: str, name: str) -> User:
        user = self.get_user(user_id)
        name = name.strip()
        if not name:
            raise ValidationError("Name is required")
        updated = user.model_copy(update={"name": name})
        self._commit(users=_replace(self._snapshot.users, updated))
        return updated

    def sign_in(self, user_id: str) -> User:
        user = self.get_user(user_id)
        self._commit(current_user_id=user.id)
        log_event("session_signed_in", user_id=user.id)
        return user

    def sign_out(self) -> None:
        if self._snapshot.current_user_id is None:
            return
        self._commit(current_user_id=None)
        log_event("session_signed_out")

    # -----------------------------------------------------------------------
    # Projects
    # -----------------------------------------------------------------------

    def create_project(self, owner_id: str, name: str) -> Project:
        """Create a project whose sole initial member is its owner."""
        self.get_user(owner_id)
        name = name.strip()
        if not name:
            raise ValidationError("Project name is required")
        project = Project(
            id=self._new_id(ID_PREFIX_PROJECT),
            name=name,
            members=[owner_id],
            created_at=self.now(),
        )
        self._commit(projects=[project, *self._snapshot.projects])
        log_event("project_created", project_id=project.id, owner_id=owner_id)
        return project

    def add_member(self, project_id: str, email_or_name: str) -> Project:
        """Add a member by email, synthesizing a placeholder user if none matches.

        Idempotent: a user already in the project is not added twice.
        """
        project = self.get_project(project_id)
        email_norm = normalize_email(email_or_name)
        if not email_norm:
            raise ValidationError("Member email or name is required")

        users = self._snapshot.users
        user = self.find_user_by_email(email_norm)
        if user is None:
            user = User(
                id=self._new_id(ID_PREFIX_USER),
                email=email_norm,
                name=email_or_name.strip(),
                credential="",
            )
            users = [*users, user]

        if user.id in project.members:
            return project

        updated = project.model_copy(update={"members": [*project.members, user.id]})
        self._commit(users=users, projects=_replace(self._snapshot.projects, updated))
        log_event("member_added", project_id=project.id, user_id=user.id)
        return updated

    # -----------------------------------------------------------------------
    # Tasks
    # -----------------------------------------------------------------------

    def create_task(
        self,
        project_id: str,
        title: str,
        description: str = "",
        assignee_id: str | None = None,
        due_date: date | str | None = None,
    ) -> Task:
        project = self.get_project(project_id)
        title = title.strip()
        if not title:
            raise ValidationError("Task title is required")
        assignee_id = assignee_id or None
        if assignee_id is not None:
            self.get_user(assignee_id)
            if assignee_id not in project.members:
                log_event(
                    "assignee_not_member",
                    level=logging.WARNING,
                    project_id=project.id,
                    assignee_id=assignee_id,
                )

        task = Task(
            id=self._new_id(ID_PREFIX_TASK),
            project_id=project.id,
            title=title,
            description=description.strip(),
            assignee_id=assignee_id,
            due_date=_coerce_due_date(due_date),
            status=TaskStatus.TODO,
            created_at=self.now(),
        )
        notifications = self._derive(TaskAssigned(task=task, project=project))
        self._commit(
            tasks=[task, *self._snapshot.tasks],
            notifications=[*notifications, *self._snapshot.notifications],
        )
        log_event(
            "task_created",
            task_id=task.id,
            project_id=project.id,
            assignee_id=assignee_id,
        )
        return task

    def set_task_status(self, task_id: str, new_status: TaskStatus | str) -> Task:
        task = self.get_task(task_id)
        status = _coerce_status(new_status)
        updated = task.model_copy(update={"status": status})
        notifications = self._derive(TaskStatusChanged(task=updated, new_status=status))
        self._commit(
            tasks=_replace(self._snapshot.tasks, updated),
            notifications=[*notifications, *self._snapshot.notifications],
        )
        log_event(
            "task_status_changed",
            task_id=task.id,
            old_status=task.status,
            new_status=status,
        )
        return updated

    def delete_task(self, task_id: str) -> None:
        task = self.get_task(task_id)
        self._commit(tasks=[t for t in self._snapshot.tasks if t.id != task.id])
        log_event("task_deleted", task_id=task.id, project_id=task.project_id)

    # -----------------------------------------------------------------------
    # Messages
    # -----------------------------------------------------------------------

    def post_message(
        self,
        project_id: str,
        author_id: str,
        content: str,
        parent_id: str | None = None,
    ) -> Message:
        """Start a thread (no parent) or reply to a thread root."""
        project = self.get_project(project_id)
        self.get_user(author_id)
        content = content.strip()
        if not content:
            raise ValidationError("Message content is required")
        parent_id = parent_id or None
        if parent_id is not None:
            parent = self.get_message(parent_id)
            if parent.project_id != project.id:
                raise ValidationError("Reply must belong to the same project as its thread")
            if not parent.is_root:
                raise ValidationError("Replies cannot be nested")

        message = Message(
            id=self._new_id(ID_PREFIX_MESSAGE),
            project_id=project.id,
            author_id=author_id,
            content=content,
            parent_id=parent_id,
            created_at=self.now(),
        )
        self._commit(messages=[*self._snapshot.messages, message])
        log_event(
            "message_posted",
            message_id=message.id,
            project_id=project.id,
            parent_id=parent_id,
        )
        return message

    # -----------------------------------------------------------------------
    # Notifications and settings
    # -----------------------------------------------------------------------

    def mark_notification_read(self, notification_id: str) -> Notification:
        notification = self.get_notification(notification_id)
        if notification.read:
            return notification
        updated = notification.model_copy(update={"read": True})
        self._commit(notifications=_replace(self._snapshot.notifications, updated))
        log_event("notification_read", notification_id=notification.id)
        return updated

    def update_settings(self, patch: Mapping[str, Any]) -> Settings:
        current = self._snapshot.settings.model_dump()
        for key, value in patch.items():
            field = _SETTINGS_KEYS.get(key)
            if field is None:
                raise ValidationError(f"Unknown setting: {key}")
            if not isinstance(value, bool):
                raise ValidationError(f"Setting {key} must be a boolean")
            current[field] = value
        settings = Settings(**current)
        self._commit(settings=settings)
        log_event("settings_updated", **settings.model_dump())
        return settings

    # -----------------------------------------------------------------------
    # Private helpers
    # -----------------------------------------------------------------------

    def _derive(self, event: TriggerEvent) -> list[Notification]:
        if not self._snapshot.settings.notifications_enabled:
            return []
        notifications = derive_notifications(event, self.now(), self._new_id)
        for n in notifications:
            log_event("notification_created", notification_id=n.id, user_id=n.user_id)
        return notifications

    def _commit(self, **changes: Any) -> None:
        snapshot = self._snapshot.model_copy(update=changes)
        self._storage.save(snapshot)
        self._snapshot = snapshot


_SETTINGS_KEYS = {
    "notifications_enabled": "notifications_enabled",
    "notificationsEnabled": "notifications_enabled",
}


def _find(records: list[Any], record_id: str, kind: str) -> Any:
    for r in records:
        if r.id == record_id:
            return r
    raise NotFoundError(kind, record_id)


def _replace(records: list[Any], updated: Any) -> list[Any]:
    return [updated if r.id == updated.id else r for r in records]


def _coerce_status(value: TaskStatus | str) -> TaskStatus:
    try:
        return TaskStatus(value)
    except ValueError:
        raise ValidationError(
            f"Invalid task status: {value}. Expected one of: "
            + ", ".join(s.value for s in TaskStatus)
        ) from None


def _coerce_due_date(value: date | str | None) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        if not value.strip():
            return None
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            raise ValidationError(
                f"Invalid date: {value}. Expected valid YYYY-MM-DD format"
            ) from None
    raise ValidationError(f"Invalid due date: {value!r}")
