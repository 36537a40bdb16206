"""Domain models for synergy.

Every record is frozen: a mutation produces a new record (``model_copy``) and
replaces the old one in its collection. Field names are snake_case in Python
and camelCase in the persisted snapshot.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class TaskStatus(StrEnum):
    TODO = "todo"
    INPROGRESS = "inprogress"
    DONE = "done"

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]


_STATUS_LABELS = {
    TaskStatus.TODO: "To-Do",
    TaskStatus.INPROGRESS: "In Progress",
    TaskStatus.DONE: "Done",
}


class Record(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class User(Record):
    id: str
    email: str
    name: str
    # Empty for placeholder members added by reference only.
    credential: str = Field(default="", alias="password")


class Project(Record):
    id: str
    name: str
    members: list[str] = []
    created_at: datetime


class Task(Record):
    id: str
    project_id: str
    title: str
    description: str = ""
    assignee_id: str | None = None
    due_date: date | None = None
    status: TaskStatus = TaskStatus.TODO
    created_at: datetime

    @field_validator("due_date", mode="before")
    @classmethod
    def _blank_due_date(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class Message(Record):
    id: str
    project_id: str
    author_id: str
    content: str
    parent_id: str | None = None  # None = thread root
    created_at: datetime

    @property
    def is_root(self) -> bool:
        return self.parent_id is None


class Notification(Record):
    id: str
    user_id: str
    text: str
    created_at: datetime
    read: bool = False


class Settings(Record):
    notifications_enabled: bool = True


class Snapshot(Record):
    """Complete state of the store at a point in time."""

    users: list[User] = []
    current_user_id: str | None = None
    projects: list[Project] = []
    tasks: list[Task] = []
    messages: list[Message] = []
    notifications: list[Notification] = []
    settings: Settings = Settings()
