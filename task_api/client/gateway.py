"""
Gateways used by the client to reach a task backend.

``HttpTaskGateway`` talks to the Flask API. ``LocalTaskGateway`` is the demo mode
backend: it runs the same services over in-memory stores inside the process, so a
caller sees identical semantics and errors from both.
"""
import abc
import logging
import typing as t

import httpx

from task_api.dao.store import MemoryTaskStore
from task_api.dao.user import MemoryUserStore
from task_api.exceptions import TaskApiError, error_for_status
from task_api.models import Task, TaskStatus, User
from task_api.service.task import TaskService
from task_api.service.user import UserService

logger = logging.getLogger(__name__)

DEMO_TASKS = (
    ("Start learning Full Stack Development", TaskStatus.IN_PROGRESS),
    ("Build the Frontend", TaskStatus.DONE),
    ("Setup the Database", TaskStatus.TO_DO),
)


class TaskGateway(abc.ABC):
    @abc.abstractmethod
    def login(self, username: str, password: str) -> dict:
        """Authenticate and return the user as a dict. Later calls act as that user."""

    @abc.abstractmethod
    def logout(self) -> None:
        pass

    @abc.abstractmethod
    def register(self, name: str, username: str, password: str) -> dict:
        pass

    @abc.abstractmethod
    def list_tasks(self) -> t.List[Task]:
        pass

    @abc.abstractmethod
    def create_task(self, title: str) -> Task:
        pass

    @abc.abstractmethod
    def update_task(self, task_id: str, fields: dict) -> Task:
        pass

    @abc.abstractmethod
    def delete_task(self, task_id: str) -> str:
        pass


class HttpTaskGateway(TaskGateway):
    def __init__(self, base_url: str, transport: t.Optional[httpx.BaseTransport] = None, timeout: float = 10.0):
        self.__client = httpx.Client(base_url=base_url, transport=transport, timeout=timeout)
        self.__token = None

    @property
    def token(self) -> t.Optional[str]:
        return self.__token

    def logout(self) -> None:
        self.__token = None

    def close(self) -> None:
        self.__client.close()

    def login(self, username: str, password: str) -> dict:
        result = self._request("POST", "/auth/login", json={"username": username, "password": password})
        self.__token = result["token"]
        return result["user"]

    def register(self, name: str, username: str, password: str) -> dict:
        result = self._request("POST", "/users", json={"name": name, "username": username, "password": password})
        self.__token = result["token"]
        return result["user"]

    def list_tasks(self) -> t.List[Task]:
        return [Task.from_dict(task) for task in self._request("GET", "/tasks")]

    def create_task(self, title: str) -> Task:
        return Task.from_dict(self._request("POST", "/tasks", json={"title": title}))

    def update_task(self, task_id: str, fields: dict) -> Task:
        body = {key: value.value if isinstance(value, TaskStatus) else value for key, value in fields.items()}
        return Task.from_dict(self._request("PUT", f"/tasks/{task_id}", json=body))

    def delete_task(self, task_id: str) -> str:
        return self._request("DELETE", f"/tasks/{task_id}")["id"]

    def _request(self, method: str, path: str, json: dict = None) -> t.Any:
        headers = {}
        if self.__token:
            headers["Authorization"] = f"Bearer {self.__token}"

        try:
            response = self.__client.request(method, path, json=json, headers=headers)
        except httpx.HTTPError as ex:
            logger.error(f"{method} {path} failed: {ex}")
            raise TaskApiError(f"Unable to reach task server: {ex}")

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if response.is_error:
            message = payload.get("Message") if isinstance(payload, dict) else None
            raise error_for_status(response.status_code, message or response.reason_phrase or "Something went wrong")

        if not isinstance(payload, dict) or "Result" not in payload:
            logger.error(f"{method} {path} returned an unexpected body, status {response.status_code}")
            raise TaskApiError("Unexpected response from task server")

        return payload["Result"]


class LocalTaskGateway(TaskGateway):
    def __init__(self, seed: bool = False):
        self.__tasks = TaskService(MemoryTaskStore())
        self.__users = UserService(MemoryUserStore())
        self.__seed = seed
        self.__user_id = None

    def login(self, username: str, password: str) -> dict:
        user = self.__users.authenticate(username, password)
        return self.__act_as(user)

    def register(self, name: str, username: str, password: str) -> dict:
        user = self.__users.insert_user({"name": name, "username": username, "password": password})
        return self.__act_as(user)

    def logout(self) -> None:
        self.__user_id = None

    def list_tasks(self) -> t.List[Task]:
        return self.__tasks.list(self.__user_id)

    def create_task(self, title: str) -> Task:
        return self.__tasks.create(self.__user_id, title)

    def update_task(self, task_id: str, fields: dict) -> Task:
        return self.__tasks.update(self.__user_id, task_id, fields)

    def delete_task(self, task_id: str) -> str:
        return self.__tasks.delete(self.__user_id, task_id)

    def __act_as(self, user: User) -> dict:
        self.__user_id = str(user.id)
        if self.__seed and not self.__tasks.list(self.__user_id):
            for title, status in DEMO_TASKS:
                task = self.__tasks.create(self.__user_id, title)
                if status is not TaskStatus.TO_DO:
                    self.__tasks.update(self.__user_id, task.id, {"status": status})
        return user.to_dict()

