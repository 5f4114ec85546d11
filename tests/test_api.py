"""HTTP and WebSocket surface."""

import json

import pytest
from httpx import AsyncClient
from starlette.testclient import TestClient

from fetchforge.app import create_app
from fetchforge.services import TaskManager
from fetchforge.state.models import now


async def test_submit_and_list(async_client: AsyncClient):
    response = await async_client.post("/tasks", json={"text": "see https://example.com/a and https://example.com/b"})
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    assert [task["url"] for task in body["data"]] == ["https://example.com/a", "https://example.com/b"]
    assert body["data"][0]["status"] == "Queued"
    assert body["data"][0]["stage"] == "Parse URL"

    response = await async_client.get("/tasks")
    assert [task["id"] for task in response.json()["data"]] == [task["id"] for task in body["data"]]

    task_id = body["data"][0]["id"]
    response = await async_client.get(f"/tasks/{task_id}")
    assert response.json()["data"]["sourceHost"] == "example.com"


async def test_unknown_task_uses_error_envelope(async_client: AsyncClient):
    response = await async_client.get("/tasks/nope")
    assert response.status_code == 404
    assert response.json() == {"status": "error", "error": "NotFound", "detail": "Task with ID nope not found"}

    response = await async_client.delete("/tasks/nope")
    assert response.status_code == 404


async def test_request_id_header(async_client: AsyncClient):
    response = await async_client.get("/tasks", headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"
    response = await async_client.get("/tasks")
    assert response.headers["X-Request-ID"]


async def test_profiles(async_client: AsyncClient):
    response = await async_client.get("/profiles")
    assert [profile["id"] for profile in response.json()["data"]] == ["default", "audio-only", "best-quality"]

    response = await async_client.put("/profiles/active", json={"id": "audio-only"})
    assert response.status_code == 200
    assert response.json()["data"]["args"] == ["-x", "--audio-format", "mp3"]

    response = await async_client.get("/profiles/active")
    assert response.json()["data"]["id"] == "audio-only"

    response = await async_client.put("/profiles/active", json={"id": "nope"})
    assert response.status_code == 404
    assert response.json()["error"] == "ProfileNotFound"


async def test_import_and_export(async_client: AsyncClient, manager: TaskManager):
    records = [
        {"id": "x", "url": "https://example.com/x", "status": "Success", "outputPath": "/gone"},
        {"id": "y", "url": "https://example.com/y", "status": "Failed"},
    ]
    response = await async_client.post(
        "/import",
        json={"payload": json.dumps(records), "mode": "replace", "overwriteDownloaded": True},
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert [(task["id"], task["status"], task["outputPath"]) for task in data] == [
        ("x", "Queued", ""),
        ("y", "Failed", ""),
    ]
    assert manager.pool.pending() == 1

    response = await async_client.get("/export")
    assert response.headers["content-type"].startswith("application/json")
    assert [task["id"] for task in response.json()] == ["x", "y"]

    response = await async_client.post("/export")
    assert response.json()["data"]["path"].endswith(".json")


@pytest.mark.parametrize(
    "body",
    [
        {"payload": "{broken", "mode": "merge"},
        {"payload": [{"title": "no id"}], "mode": "merge"},
        {"payload": [], "mode": "append"},
    ],
)
async def test_import_rejects_invalid(async_client: AsyncClient, body):
    response = await async_client.post("/import", json=body)
    assert response.status_code == 400
    assert response.json()["error"] == "InvalidPayload"


async def test_file_and_resume_status(async_client: AsyncClient, manager: TaskManager):
    manager.import_tasks([{"id": "t", "url": "https://example.com/t", "status": "Failed"}])

    response = await async_client.get("/tasks/t/file-status")
    assert response.json()["data"] == "pending"
    response = await async_client.get("/tasks/t/resume-status")
    assert response.json()["data"] == "none"

    response = await async_client.post("/tasks/t/open-file")
    assert response.status_code == 409
    assert response.json()["error"] == "OutputPending"

    response = await async_client.post("/tasks/t/resume")
    assert response.json()["data"]["stage"] == "Resume"
    assert response.json()["data"]["status"] == "Queued"


async def test_resume_conflict(async_client: AsyncClient, manager: TaskManager):
    manager.import_tasks([{"id": "r", "url": "https://example.com/r", "status": "Running", "updatedAt": now().isoformat()}])

    response = await async_client.post("/tasks/r/resume")
    assert response.status_code == 409
    assert response.json()["error"] == "AlreadyRunning"

    response = await async_client.post("/tasks/r/force-resume")
    assert response.status_code == 200
    assert response.json()["data"]["stage"] == "Force Resume"


async def test_open_path(async_client: AsyncClient, desktop, temp_dir):
    response = await async_client.post("/open-path", json={"path": str(temp_dir)})
    assert response.status_code == 200
    assert desktop.opened == [temp_dir]

    response = await async_client.post("/open-path", json={"path": str(temp_dir / "missing")})
    assert response.status_code == 404
    assert response.json()["error"] == "NotFound"


def test_websocket_events(manager: TaskManager):
    app = create_app(manager, start_workers=False)
    with TestClient(app) as client:
        with client.websocket_connect("/ws") as websocket:
            websocket.send_json({"type": "ping"})
            assert websocket.receive_json() == {"type": "pong"}

            manager.import_tasks([{"id": "w", "url": "https://example.com/w", "status": "Failed"}])
            message = websocket.receive_json()
            assert message["type"] == "task-update"
            assert message["task"]["id"] == "w"

            manager.delete_task("w")
            assert websocket.receive_json() == {"type": "task-delete", "id": "w"}


def test_websocket_tolerates_malformed_messages(manager: TaskManager, wait_until):
    app = create_app(manager, start_workers=False)
    connections = app.state.connections
    with TestClient(app) as client:
        with client.websocket_connect("/ws") as websocket:
            websocket.send_text("{not json")
            websocket.send_json({"type": "ping"})
            assert websocket.receive_json() == {"type": "pong"}
            assert len(connections.active_connections) == 1
        wait_until(lambda: connections.active_connections == [], timeout=5)
