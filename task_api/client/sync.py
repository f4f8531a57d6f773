import logging
import typing as t

from task_api.client.gateway import TaskGateway
from task_api.exceptions import TaskApiError, ValidationError
from task_api.models import Task, TaskStatus

logger = logging.getLogger(__name__)


class TaskBoard:
    """
    Local view of the signed in user's tasks.

    Every change is sent through the gateway first and applied locally only from the
    server's answer. A failed call sets ``error`` and leaves ``tasks`` as it was.
    """

    def __init__(self, gateway: TaskGateway):
        self.gateway = gateway
        self.tasks: t.List[Task] = []
        self.user: t.Optional[dict] = None
        self.error: t.Optional[str] = None

    def login(self, username: str, password: str) -> t.Optional[dict]:
        return self.__sign_in(lambda: self.gateway.login(username, password))

    def register(self, name: str, username: str, password: str) -> t.Optional[dict]:
        return self.__sign_in(lambda: self.gateway.register(name, username, password))

    def logout(self) -> None:
        self.gateway.logout()
        self.user = None
        self.tasks = []
        self.error = None

    def refresh(self) -> t.Optional[t.List[Task]]:
        tasks = self.__call(self.gateway.list_tasks)
        if tasks is None:
            return None
        self.tasks = list(tasks)
        return self.tasks

    def add(self, title: str) -> t.Optional[Task]:
        if not title or not title.strip():
            return None

        task = self.__call(lambda: self.gateway.create_task(title.strip()))
        if task is not None:
            self.tasks = self.tasks + [task]
        return task

    def set_status(self, task_id: str, status: t.Union[str, TaskStatus]) -> t.Optional[Task]:
        return self.__update(task_id, {"status": status})

    def rename(self, task_id: str, title: str) -> t.Optional[Task]:
        return self.__update(task_id, {"title": title})

    def remove(self, task_id: str) -> t.Optional[str]:
        deleted_id = self.__call(lambda: self.gateway.delete_task(task_id))
        if deleted_id is not None:
            self.tasks = [task for task in self.tasks if str(task.id) != str(deleted_id)]
        return deleted_id

    def filtered(self, status: t.Union[str, TaskStatus, None] = None) -> t.Optional[t.List[Task]]:
        if status is None or status == "all":
            return list(self.tasks)
        try:
            status = TaskStatus.parse(status)
        except ValidationError as ex:
            self.error = ex.message
            return None
        return [task for task in self.tasks if task.status is status]

    def stats(self) -> t.Dict[str, int]:
        counts = {"total": len(self.tasks)}
        for status in TaskStatus:
            counts[status.value] = len([task for task in self.tasks if task.status is status])
        return counts

    def __update(self, task_id: str, fields: dict) -> t.Optional[Task]:
        updated = self.__call(lambda: self.gateway.update_task(task_id, fields))
        if updated is not None:
            self.tasks = [updated if str(task.id) == str(updated.id) else task for task in self.tasks]
        return updated

    def __sign_in(self, call: t.Callable[[], dict]) -> t.Optional[dict]:
        user = self.__call(call)
        if user is not None:
            self.user = user
            self.tasks = []
        return user

    def __call(self, call: t.Callable[[], t.Any]) -> t.Any:
        try:
            result = call()
        except TaskApiError as ex:
            logger.warning(f"Task call failed: {ex.message}")
            self.error = ex.message
            return None

        self.error = None
        return result
