import pytest

from task_api.application import create_app
from task_api.config import Options
from task_api.dao.store import MemoryTaskStore
from task_api.dao.user import MemoryUserStore
from task_api.service.task import TaskService


@pytest.fixture()
def task_store():
    return MemoryTaskStore()


@pytest.fixture()
def task_service(task_store):
    return TaskService(task_store)


@pytest.fixture()
def options():
    return Options(task_store=Options.STORE_MEMORY, secret_key="test-secret", token_max_age=3600)


@pytest.fixture()
def application(options, task_store):
    return create_app(options, task_store=task_store, user_store=MemoryUserStore())


@pytest.fixture()
def client(application):
    return application.test_client()


@pytest.fixture()
def register(client):
    """Registers a user through the API and returns its id and Authorization header."""

    def _register(username: str):
        response = client.post("/users", json={"name": username.title(), "username": username,
                                               "password": "secret123"})
        assert response.status_code == 201
        result = response.get_json()["Result"]
        return result["user"]["id"], {"Authorization": f"Bearer {result['token']}"}

    return _register
