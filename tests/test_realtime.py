"""
End-to-end push channel tests over a real WebSocket
"""
import pytest
from fastapi.testclient import TestClient

from sprintboard.core.config import settings
from sprintboard.main import app
from sprintboard.viewer import ViewerSession
from sprintboard.viewer.session import TASK_LISTS, task_key

from conftest import sprint_payload


@pytest.fixture
def live_client(monkeypatch):
    # These tests drive the API synchronously and have no token to present
    monkeypatch.setattr(settings, "AUTH_REQUIRED", False)
    with TestClient(app) as client:
        yield client


class TestHandshake:

    def test_connected_then_pong(self, live_client):
        with live_client.websocket_connect("/ws") as ws:
            hello = ws.receive_json()
            assert hello["type"] == "connected"
            assert isinstance(hello["timestamp"], int)

            ws.send_json({"type": "ping", "timestamp": 1})
            assert ws.receive_json()["type"] == "pong"

    def test_garbage_does_not_close_the_channel(self, live_client):
        with live_client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_text("definitely not json")
            ws.send_json({"type": "ping"})

            assert ws.receive_json()["type"] == "pong"

    def test_viewer_count_in_health(self, live_client):
        with live_client.websocket_connect("/ws") as ws:
            ws.receive_json()
            health = live_client.get("/health").json()
            assert health["checks"]["viewers"] == 1


class TestFanout:

    def test_every_viewer_sees_mutations_in_commit_order(self, live_client):
        with live_client.websocket_connect("/ws") as first, live_client.websocket_connect("/ws") as second:
            viewers = (first, second)
            for ws in viewers:
                assert ws.receive_json()["type"] == "connected"

            sprint = live_client.post("/api/sprints", json=sprint_payload(active=True)).json()
            task = live_client.post("/api/tasks", json={"title": "Ship it", "sprintId": sprint["id"]}).json()
            live_client.patch(f"/api/tasks/{task['id']}/status", json={"status": "done"})

            for ws in viewers:
                messages = [ws.receive_json() for _ in range(3)]
                assert [m["type"] for m in messages] == ["sprint_created", "task_created", "task_status_changed"]
                assert messages[0]["data"]["id"] == sprint["id"]
                change = messages[2]["data"]
                assert change["taskId"] == task["id"]
                assert change["oldStatus"] == "backlog"
                assert change["newStatus"] == "done"
                assert change["task"]["status"] == "done"

    def test_failed_mutation_publishes_nothing(self, live_client):
        with live_client.websocket_connect("/ws") as ws:
            ws.receive_json()

            assert live_client.patch("/api/tasks/404/status", json={"status": "done"}).status_code == 404
            assert live_client.post("/api/tasks", json={"title": ""}).status_code == 400

            ws.send_json({"type": "ping"})
            # Had either request published, that event would arrive before the pong
            assert ws.receive_json()["type"] == "pong"

    def test_viewer_session_converges(self, live_client):
        session = ViewerSession()
        task = live_client.post("/api/tasks", json={"title": "Before connect"}).json()
        session.cache.set(TASK_LISTS, [])
        session.cache.set(task_key(task["id"]), None)

        with live_client.websocket_connect("/ws") as ws:
            session.handle_frame(ws.receive_text())
            assert session.connected

            live_client.patch(f"/api/tasks/{task['id']}", json={"progress": 80})
            message = session.handle_frame(ws.receive_text())

        assert message.type == "task_updated"
        assert session.cache.get(task_key(task["id"])).progress == 80
        assert session.cache.is_stale(TASK_LISTS)

    def test_delete_event_carries_snapshot(self, live_client):
        task = live_client.post("/api/tasks", json={"title": "Short lived", "type": "research"}).json()

        with live_client.websocket_connect("/ws") as ws:
            ws.receive_json()
            live_client.delete(f"/api/tasks/{task['id']}")
            message = ws.receive_json()

        assert message["type"] == "task_deleted"
        assert message["data"]["taskId"] == task["id"]
        assert message["data"]["taskDetails"]["type"] == "research"
