from __future__ import annotations

import typing as t
from datetime import datetime
from enum import Enum

from task_api.exceptions import ValidationError


class User:
    def __init__(self, id: str, name: str, username: str, password_hash: str = None):
        self.id = id
        self.name = name
        self.username = username
        self.password_hash = password_hash

    def to_dict(self) -> dict:
        return {"id": str(self.id), "name": self.name, "username": self.username}


class TaskStatus(Enum):
    TO_DO = "todo"
    IN_PROGRESS = "in-progress"
    DONE = "done"

    @staticmethod
    def parse(value: t.Union[str, TaskStatus]) -> TaskStatus:
        """Convert a wire value into a status, rejecting anything outside the enumeration."""
        if isinstance(value, TaskStatus):
            return value
        try:
            return TaskStatus(value)
        except ValueError:
            allowed = ", ".join(status.value for status in TaskStatus)
            raise ValidationError(f"Invalid status '{value}', expected one of: {allowed}")


def clean_title(title: t.Optional[str]) -> str:
    if not isinstance(title, str) or not title.strip():
        raise ValidationError("Please add a title")
    return title.strip()


class Task:
    def __init__(self, title: str, owner: str, status: TaskStatus = TaskStatus.TO_DO, id: str = None,
                 created_at: datetime = None, updated_at: datetime = None):
        self.id = id
        self.owner = owner
        self.title = title
        self.status = status
        self.created_at = created_at
        self.updated_at = updated_at

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "owner": str(self.owner),
            "title": self.title,
            "status": self.status.value,
            "createdAt": _isoformat(self.created_at),
            "updatedAt": _isoformat(self.updated_at),
        }

    @staticmethod
    def from_dict(data: dict) -> Task:
        return Task(id=data["id"],
                    owner=data["owner"],
                    title=data["title"],
                    status=TaskStatus.parse(data["status"]),
                    created_at=_parse_datetime(data.get("createdAt")),
                    updated_at=_parse_datetime(data.get("updatedAt")))

    def __repr__(self) -> str:
        return f"Task(id={self.id!r}, owner={self.owner!r}, title={self.title!r}, status={self.status.value!r})"


def _isoformat(value: t.Optional[datetime]) -> t.Optional[str]:
    return value.isoformat(timespec="microseconds") if value else None


def _parse_datetime(value: t.Optional[str]) -> t.Optional[datetime]:
    return datetime.fromisoformat(value) if value else None
