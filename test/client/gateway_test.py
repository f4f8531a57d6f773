import httpx
import pytest

from task_api.client.gateway import DEMO_TASKS, HttpTaskGateway, LocalTaskGateway
from task_api.client.sync import TaskBoard
from task_api.exceptions import NotFoundError, TaskApiError, UnauthorizedError, ValidationError
from task_api.models import TaskStatus


@pytest.fixture(params=["http", "local"])
def gateway(request, application):
    if request.param == "http":
        gateway = HttpTaskGateway("http://testserver", transport=httpx.WSGITransport(app=application))
        yield gateway
        gateway.close()
    else:
        yield LocalTaskGateway()


def test_crud_round_trip(gateway):
    user = gateway.register("Ann", "ann", "secret123")
    assert user["username"] == "ann"

    task = gateway.create_task("Buy milk")
    assert task.status is TaskStatus.TO_DO
    assert task.owner == user["id"]

    updated = gateway.update_task(task.id, {"status": TaskStatus.IN_PROGRESS})
    assert updated.status is TaskStatus.IN_PROGRESS

    assert [t.title for t in gateway.list_tasks()] == ["Buy milk"]
    assert gateway.delete_task(task.id) == task.id
    assert gateway.list_tasks() == []


def test_errors_are_mapped_to_the_same_exceptions(gateway):
    gateway.register("Ann", "ann", "secret123")
    task = gateway.create_task("Write report")

    with pytest.raises(ValidationError):
        gateway.create_task("  ")
    with pytest.raises(ValidationError):
        gateway.update_task(task.id, {"status": "archived"})

    gateway.delete_task(task.id)
    with pytest.raises(NotFoundError):
        gateway.delete_task(task.id)


def test_other_user_is_unauthorized(gateway):
    gateway.register("Ann", "ann", "secret123")
    task = gateway.create_task("Write report")

    gateway.logout()
    gateway.register("Bob", "bob", "secret123")

    assert gateway.list_tasks() == []
    with pytest.raises(UnauthorizedError):
        gateway.update_task(task.id, {"status": "done"})
    with pytest.raises(UnauthorizedError):
        gateway.delete_task(task.id)

    gateway.logout()
    gateway.login("ann", "secret123")
    assert [t.id for t in gateway.list_tasks()] == [task.id]


def test_login_with_wrong_password(gateway):
    gateway.register("Ann", "ann", "secret123")

    with pytest.raises(UnauthorizedError) as exc_info:
        gateway.login("ann", "wrong-password")
    assert exc_info.value.message == "Invalid credentials"


def test_local_gateway_seeds_demo_tasks():
    gateway = LocalTaskGateway(seed=True)
    gateway.register("Demo User", "demo", "secret123")

    tasks = gateway.list_tasks()
    assert [(t.title, t.status) for t in tasks] == list(DEMO_TASKS)


def test_http_gateway_unreachable_server():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    gateway = HttpTaskGateway("http://testserver", transport=httpx.MockTransport(refuse))

    with pytest.raises(TaskApiError) as exc_info:
        gateway.list_tasks()
    assert "Unable to reach task server" in exc_info.value.message


def test_http_gateway_sends_bearer_token():
    seen = []

    def handler(request):
        seen.append(request.headers.get("Authorization"))
        if request.url.path == "/auth/login":
            return httpx.Response(200, json={"Result": {"user": {"id": "u1"}, "token": "tok"}})
        return httpx.Response(200, json={"Result": []})

    gateway = HttpTaskGateway("http://testserver", transport=httpx.MockTransport(handler))
    gateway.login("ann", "secret123")
    gateway.list_tasks()

    assert seen == [None, "Bearer tok"]
    assert gateway.token == "tok"


@pytest.mark.parametrize("response", [
    httpx.Response(200, text="<html>ok</html>"),
    httpx.Response(200, json={"unexpected": True}),
    httpx.Response(200, json=["not", "an", "envelope"]),
])
def test_http_gateway_malformed_success_body(response):
    gateway = HttpTaskGateway("http://testserver", transport=httpx.MockTransport(lambda request: response))

    with pytest.raises(TaskApiError) as exc_info:
        gateway.list_tasks()
    assert exc_info.value.message == "Unexpected response from task server"


def test_board_reports_malformed_server_response():
    gateway = HttpTaskGateway("http://testserver",
                              transport=httpx.MockTransport(lambda request: httpx.Response(200, text="ok")))
    board = TaskBoard(gateway)

    assert board.refresh() is None
    assert board.error == "Unexpected response from task server"
    assert board.tasks == []
