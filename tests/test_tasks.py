"""
Task API tests
"""
from httpx import AsyncClient


class TestTaskCreation:

    async def test_defaults(self, client: AsyncClient, auth_headers, published):
        response = await client.post("/api/tasks", json={"title": "Write docs"}, headers=auth_headers)

        assert response.status_code == 201
        task = response.json()
        assert task["status"] == "backlog"
        assert task["type"] == "other"
        assert task["progress"] == 0
        assert task["deployments"] == []
        assert task["assignee"] is None
        assert [e.type for e in published] == ["task_created"]

    async def test_with_assignee(self, task, test_user):
        assert task["assigneeId"] == test_user.id
        assert task["assignee"]["username"] == "ada"
        assert "githubAccessToken" not in task["assignee"]

    async def test_unknown_sprint_is_conflict(self, client: AsyncClient, auth_headers, published):
        response = await client.post("/api/tasks", json={"title": "Orphan", "sprintId": 999}, headers=auth_headers)

        assert response.status_code == 409
        assert published == []

    async def test_validation_lists_every_field(self, client: AsyncClient, auth_headers):
        response = await client.post("/api/tasks", json={
            "title": "",
            "status": "blocked",
            "progress": 150,
        }, headers=auth_headers)

        assert response.status_code == 400
        fields = [e["field"] for e in response.json()["errors"]]
        assert any("title" in f for f in fields)
        assert any("status" in f for f in fields)
        assert any("progress" in f for f in fields)


class TestTaskReads:

    async def test_list_in_workflow_order(self, client: AsyncClient, auth_headers):
        for title, status in (("d", "done"), ("t", "todo"), ("b", "backlog"), ("i", "inprogress")):
            await client.post("/api/tasks", json={"title": title, "status": status}, headers=auth_headers)

        tasks = (await client.get("/api/tasks")).json()
        assert [t["status"] for t in tasks] == ["backlog", "todo", "inprogress", "done"]

    async def test_filter_by_sprint(self, client: AsyncClient, auth_headers, task):
        await client.post("/api/tasks", json={"title": "Unplanned"}, headers=auth_headers)

        scoped = (await client.get("/api/tasks", params={"sprintId": task["sprintId"]})).json()
        everything = (await client.get("/api/tasks")).json()

        assert [t["id"] for t in scoped] == [task["id"]]
        assert len(everything) == 2

    async def test_unknown_task_is_404(self, client: AsyncClient):
        response = await client.get("/api/tasks/12345")

        assert response.status_code == 404
        assert response.json()["detail"] == "Task not found"


class TestTaskUpdates:

    async def test_partial_update(self, client: AsyncClient, auth_headers, task, published):
        response = await client.patch(
            f"/api/tasks/{task['id']}", json={"progress": 40}, headers=auth_headers
        )

        assert response.status_code == 200
        updated = response.json()
        assert updated["progress"] == 40
        assert updated["title"] == task["title"]
        assert published[-1].type == "task_updated"
        assert published[-1].data.progress == 40

    async def test_null_for_required_fields_is_400(self, client: AsyncClient, auth_headers, task, published):
        response = await client.patch(
            f"/api/tasks/{task['id']}",
            json={"title": None, "status": None, "progress": None},
            headers=auth_headers
        )

        assert response.status_code == 400
        fields = " ".join(e["field"] for e in response.json()["errors"])
        for name in ("title", "status", "progress"):
            assert name in fields
        assert "task_updated" not in [e.type for e in published]

    async def test_nullable_fields_can_be_cleared(self, client: AsyncClient, auth_headers, task):
        response = await client.patch(
            f"/api/tasks/{task['id']}", json={"assigneeId": None}, headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["assigneeId"] is None

    async def test_status_change_carries_old_and_new(self, client: AsyncClient, auth_headers, task, published):
        response = await client.patch(
            f"/api/tasks/{task['id']}/status", json={"status": "review"}, headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["status"] == "review"

        event = published[-1]
        assert event.type == "task_status_changed"
        assert event.data.task_id == task["id"]
        assert event.data.old_status.value == "backlog"
        assert event.data.new_status.value == "review"
        assert event.data.task.status.value == "review"

    async def test_status_outside_enum(self, client: AsyncClient, auth_headers, task, published):
        response = await client.patch(
            f"/api/tasks/{task['id']}/status", json={"status": "archived"}, headers=auth_headers
        )

        assert response.status_code == 400
        assert "task_status_changed" not in [e.type for e in published]

    async def test_status_of_missing_task(self, client: AsyncClient, auth_headers, published):
        response = await client.patch("/api/tasks/777/status", json={"status": "done"}, headers=auth_headers)

        assert response.status_code == 404
        assert published == []


class TestTaskDeletion:

    async def test_delete_publishes_snapshot(self, client: AsyncClient, auth_headers, task, published):
        await client.post("/api/deployments", json={"taskId": task["id"], "status": "success"})

        response = await client.delete(f"/api/tasks/{task['id']}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"success": True}

        event = published[-1]
        assert event.type == "task_deleted"
        assert event.data.task_id == task["id"]
        assert event.data.task_details.title == task["title"]
        assert len(event.data.task_details.deployments) == 1

        assert (await client.get(f"/api/tasks/{task['id']}")).status_code == 404
        assert (await client.get(f"/api/tasks/{task['id']}/deployments")).status_code == 404

    async def test_delete_missing_task(self, client: AsyncClient, auth_headers, published):
        response = await client.delete("/api/tasks/5", headers=auth_headers)

        assert response.status_code == 404
        assert published == []

    async def test_delete_requires_session(self, client: AsyncClient, task):
        response = await client.delete(f"/api/tasks/{task['id']}")

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"
