"""
Task Store contract and its in-process variant.

A Task Store is a keyed collection of tasks. Every operation is individually
atomic; callers must not assume that two calls run in one transaction, so a
record read by ``get_by_id`` may be gone by the time ``update_fields`` or
``remove`` runs. That case raises ``NotFoundError`` like any unknown id.
"""
import abc
import threading
import typing as t
import uuid
from datetime import datetime, timedelta, timezone

from task_api.exceptions import NotFoundError
from task_api.models import Task, TaskStatus, clean_title

UPDATABLE_FIELDS = ("title", "status")


class TaskStore(abc.ABC):
    @abc.abstractmethod
    def list_by_owner(self, owner_id: str) -> t.List[Task]:
        """All tasks whose owner equals ``owner_id``, in insertion order."""

    @abc.abstractmethod
    def get_by_id(self, task_id: str) -> Task:
        """Raises NotFoundError for an unknown id."""

    @abc.abstractmethod
    def insert(self, task: Task) -> Task:
        """Assigns id and timestamps. Raises ValidationError on a blank title or invalid status."""

    @abc.abstractmethod
    def update_fields(self, task_id: str, fields: dict) -> Task:
        """Applies ``title`` and ``status`` only and refreshes ``updated_at``."""

    @abc.abstractmethod
    def remove(self, task_id: str) -> None:
        """Hard delete. Raises NotFoundError for an unknown id."""


def recognized_fields(fields: dict) -> dict:
    """Validate and normalize the updatable subset of ``fields``; other keys are dropped."""
    changes = {}
    if "title" in fields:
        changes["title"] = clean_title(fields["title"])
    if "status" in fields:
        changes["status"] = TaskStatus.parse(fields["status"])
    return changes


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MemoryTaskStore(TaskStore):
    """Dict backed store used in demo mode and by tests."""

    def __init__(self):
        self.__tasks = {}
        self.__lock = threading.Lock()

    def list_by_owner(self, owner_id: str) -> t.List[Task]:
        with self.__lock:
            return [_copy(task) for task in self.__tasks.values() if str(task.owner) == str(owner_id)]

    def get_by_id(self, task_id: str) -> Task:
        with self.__lock:
            return _copy(self.__get(task_id))

    def insert(self, task: Task) -> Task:
        title = clean_title(task.title)
        status = TaskStatus.parse(task.status)

        with self.__lock:
            now = utc_now()
            stored = Task(id=str(uuid.uuid4()), owner=str(task.owner), title=title, status=status,
                          created_at=now, updated_at=now)
            self.__tasks[stored.id] = stored
            return _copy(stored)

    def update_fields(self, task_id: str, fields: dict) -> Task:
        changes = recognized_fields(fields)

        with self.__lock:
            stored = self.__get(task_id)
            for name, value in changes.items():
                setattr(stored, name, value)
            # strictly increasing even when the clock has not ticked since the last write
            stored.updated_at = max(utc_now(), stored.updated_at + timedelta(microseconds=1))
            return _copy(stored)

    def remove(self, task_id: str) -> None:
        with self.__lock:
            self.__get(task_id)
            del self.__tasks[str(task_id)]

    def __get(self, task_id: str) -> Task:
        task = self.__tasks.get(str(task_id))
        if task is None:
            raise NotFoundError()
        return task


def _copy(task: Task) -> Task:
    return Task(id=task.id, owner=task.owner, title=task.title, status=task.status,
                created_at=task.created_at, updated_at=task.updated_at)
