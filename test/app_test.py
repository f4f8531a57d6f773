def test_index(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.get_data(as_text=True) == "API is running..."


def test_register_and_login(client):
    response = client.post("/users", json={"name": "Ann", "username": "ann", "password": "secret123"})
    assert response.status_code == 201
    assert response.get_json()["Result"]["user"]["username"] == "ann"

    response = client.post("/auth/login", json={"username": "ann", "password": "secret123"})
    assert response.status_code == 200
    assert response.get_json()["Result"]["token"]

    response = client.post("/auth/login", json={"username": "ann", "password": "wrong-password"})
    assert response.status_code == 401
    assert response.get_json() == {"Message": "Invalid credentials"}


def test_register_validation(client):
    response = client.post("/users", json={"name": "Ann", "username": "ann"})

    assert response.status_code == 400
    assert response.get_json() == {"Message": "Please add a password"}


def test_tasks_require_token(client):
    assert client.get("/tasks").status_code == 401
    assert client.post("/tasks", json={"title": "Buy milk"}).status_code == 401
    assert client.delete("/tasks/anything").status_code == 401
    response = client.get("/tasks", headers={"Authorization": "Bearer forged"})
    assert response.status_code == 401
    assert response.get_json() == {"Message": "Not authorized, no token"}


def test_create_and_list(client, register):
    user_id, headers = register("ann")

    response = client.post("/tasks", json={"title": "Buy milk"}, headers=headers)
    assert response.status_code == 201
    created = response.get_json()["Result"]
    assert created["status"] == "todo"
    assert created["owner"] == user_id

    response = client.get("/tasks", headers=headers)
    assert response.status_code == 200
    assert [(task["title"], task["status"]) for task in response.get_json()["Result"]] == [("Buy milk", "todo")]


def test_create_without_title(client, register):
    _, headers = register("ann")

    for body in ({}, {"title": ""}, {"title": "   "}):
        response = client.post("/tasks", json=body, headers=headers)
        assert response.status_code == 400
        assert response.get_json() == {"Message": "Please add a title"}

    assert client.get("/tasks", headers=headers).get_json()["Result"] == []


def test_update_status(client, register):
    _, headers = register("ann")
    task = client.post("/tasks", json={"title": "Write report"}, headers=headers).get_json()["Result"]

    response = client.put(f"/tasks/{task['id']}", json={"status": "done"}, headers=headers)
    assert response.status_code == 200
    updated = response.get_json()["Result"]
    assert updated["status"] == "done"
    assert updated["updatedAt"] > updated["createdAt"]

    response = client.patch(f"/tasks/{task['id']}", json={"status": "archived"}, headers=headers)
    assert response.status_code == 400

    listed = client.get("/tasks", headers=headers).get_json()["Result"]
    assert listed[0]["status"] == "done"


def test_other_user_is_unauthorized(client, register):
    _, ann = register("ann")
    _, bob = register("bob")
    task = client.post("/tasks", json={"title": "Write report"}, headers=ann).get_json()["Result"]

    assert client.get("/tasks", headers=bob).get_json()["Result"] == []

    response = client.put(f"/tasks/{task['id']}", json={"status": "done"}, headers=bob)
    assert response.status_code == 401
    assert response.get_json() == {"Message": "User not authorized"}

    assert client.delete(f"/tasks/{task['id']}", headers=bob).status_code == 401

    listed = client.get("/tasks", headers=ann).get_json()["Result"]
    assert [(t["id"], t["status"]) for t in listed] == [(task["id"], "todo")]


def test_delete(client, register):
    _, headers = register("ann")
    task = client.post("/tasks", json={"title": "Write report"}, headers=headers).get_json()["Result"]

    response = client.delete(f"/tasks/{task['id']}", headers=headers)
    assert response.status_code == 200
    assert response.get_json() == {"Result": {"id": task["id"]}}

    for _ in range(2):
        response = client.delete(f"/tasks/{task['id']}", headers=headers)
        assert response.status_code == 404
        assert response.get_json() == {"Message": "Task not found"}


def test_correlation_id_is_echoed(client):
    response = client.get("/tasks", headers={"Correlation-Id": "abc-123"})
    assert response.headers["Correlation-Id"] == "abc-123"

    assert client.get("/").headers["Correlation-Id"]


def test_unexpected_error_is_500(mocker, client, register):
    _, headers = register("ann")
    mocker.patch("task_api.service.task.TaskService.list", side_effect=RuntimeError("boom"))

    response = client.get("/tasks", headers=headers)

    assert response.status_code == 500
    assert response.get_json() == {"Message": "boom"}


def test_non_object_bodies_are_validation_errors(client, register):
    _, headers = register("ann")

    for body in (["Buy milk"], "Buy milk", 5):
        response = client.post("/tasks", json=body, headers=headers)
        assert response.status_code == 400
        assert response.get_json() == {"Message": "Please add a title"}

    response = client.post("/users", json=["x"])
    assert response.status_code == 400
    assert response.get_json() == {"Message": "Please add a name"}

    response = client.post("/auth/login", json=["x"])
    assert response.status_code == 401
    assert response.get_json() == {"Message": "Invalid credentials"}

    assert client.get("/tasks", headers=headers).get_json()["Result"] == []
