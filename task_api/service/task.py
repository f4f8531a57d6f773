import logging
import typing as t

from task_api.dao.store import TaskStore
from task_api.models import Task, TaskStatus, clean_title
from task_api.service.guard import authorize, require_identity

logger = logging.getLogger(__name__)


class TaskService:
    """
    Ownership scoped task operations.

    ``update`` and ``delete`` check existence before ownership, so an unknown id is
    always NotFoundError and a foreign task is always UnauthorizedError.
    """

    def __init__(self, store: TaskStore):
        self.__store = store

    def list(self, acting_user_id: str) -> t.List[Task]:
        acting_user_id = require_identity(acting_user_id)
        return self.__store.list_by_owner(acting_user_id)

    def create(self, acting_user_id: str, title: t.Optional[str]) -> Task:
        acting_user_id = require_identity(acting_user_id)
        title = clean_title(title)

        task = self.__store.insert(Task(title=title, owner=acting_user_id, status=TaskStatus.TO_DO))
        logger.info(f"Task {task.id} created by {acting_user_id}")
        return task

    def update(self, acting_user_id: str, task_id: str, fields: dict) -> Task:
        task = self.__store.get_by_id(task_id)
        authorize(acting_user_id, task)

        updated = self.__store.update_fields(task_id, fields)
        logger.info(f"Task {task_id} updated by {acting_user_id}: {sorted(set(fields) & {'title', 'status'})}")
        return updated

    def delete(self, acting_user_id: str, task_id: str) -> str:
        task = self.__store.get_by_id(task_id)
        authorize(acting_user_id, task)

        self.__store.remove(task_id)
        logger.info(f"Task {task_id} deleted by {acting_user_id}")
        return str(task_id)
