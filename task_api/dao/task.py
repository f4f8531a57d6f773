import logging
import typing as t
import uuid

from task_api.dao.dao import DAO
from task_api.dao.store import TaskStore, recognized_fields
from task_api.exceptions import NotFoundError
from task_api.models import Task, TaskStatus, clean_title

logger = logging.getLogger(__name__)

_COLUMNS = "id, owner, title, status, created_at, updated_at"


class TaskDAO(DAO, TaskStore):
    CREATE_SCHEMA = """
        CREATE TABLE IF NOT EXISTS public.task (
            seq BIGSERIAL UNIQUE,
            id UUID PRIMARY KEY,
            owner TEXT NOT NULL,
            title TEXT NOT NULL CHECK (btrim(title) <> ''),
            status TEXT NOT NULL DEFAULT 'todo' CHECK (status IN ('todo', 'in-progress', 'done')),
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
        CREATE INDEX IF NOT EXISTS idx_task_owner ON public.task(owner);
    """

    def __init__(self, db_params: dict):
        super().__init__(db_params)

    def create_schema(self) -> None:
        self.execute(TaskDAO.CREATE_SCHEMA, ())

    def list_by_owner(self, owner_id: str) -> t.List[Task]:
        rows = self.fetch_all(f"SELECT {_COLUMNS} FROM public.task WHERE owner = %s ORDER BY seq",
                              (str(owner_id),))
        return [_to_task(row) for row in rows]

    def get_by_id(self, task_id: str) -> Task:
        row = self.fetch_one(f"SELECT {_COLUMNS} FROM public.task WHERE id = %s", (_as_uuid(task_id),))
        if row is None:
            raise NotFoundError()
        return _to_task(row)

    def insert(self, task: Task) -> Task:
        title = clean_title(task.title)
        status = TaskStatus.parse(task.status)

        row = self.fetch_one(f"INSERT INTO public.task(id, owner, title, status, created_at, updated_at) "
                             f"VALUES(%s,%s,%s,%s,now(),now()) "
                             f"RETURNING {_COLUMNS}",
                             (uuid.uuid4(), str(task.owner), title, status.value))
        return _to_task(row)

    def update_fields(self, task_id: str, fields: dict) -> Task:
        changes = recognized_fields(fields)
        task_uuid = _as_uuid(task_id)

        assignments = [f"{name} = %s" for name in changes]
        assignments.append("updated_at = GREATEST(clock_timestamp(), updated_at + interval '1 microsecond')")
        parameters = tuple(value.value if isinstance(value, TaskStatus) else value for value in changes.values())

        row = self.fetch_one(f"UPDATE public.task SET {', '.join(assignments)} WHERE id = %s RETURNING {_COLUMNS}",
                             parameters + (task_uuid,))
        if row is None:
            raise NotFoundError()
        return _to_task(row)

    def remove(self, task_id: str) -> None:
        row_count = self.execute("DELETE FROM public.task WHERE id = %s", (_as_uuid(task_id),))
        if row_count == 0:
            raise NotFoundError()


def _as_uuid(task_id: str) -> uuid.UUID:
    # ids that can never exist in the table are reported the same way as missing ones
    try:
        return task_id if isinstance(task_id, uuid.UUID) else uuid.UUID(str(task_id))
    except ValueError:
        raise NotFoundError()


def _to_task(row: tuple) -> Task:
    return Task(id=str(row[0]), owner=row[1], title=row[2], status=TaskStatus(row[3]),
                created_at=row[4], updated_at=row[5])
