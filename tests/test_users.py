"""
User and session tests
"""
from datetime import timedelta

from httpx import AsyncClient

from sprintboard.auth.security import create_access_token


class TestUserProfile:
    """Team member management"""

    async def test_create_and_list(self, client: AsyncClient, auth_headers):
        response = await client.post("/api/users", json={
            "username": "grace",
            "name": "Grace Hopper",
            "email": "grace@example.com",
            "githubAccessToken": "gho_secret",
        }, headers=auth_headers)

        assert response.status_code == 201
        assert "githubAccessToken" not in response.json()

        usernames = [u["username"] for u in (await client.get("/api/users")).json()]
        assert usernames == ["ada", "grace"]

    async def test_duplicate_username_is_conflict(self, client: AsyncClient, auth_headers):
        response = await client.post("/api/users", json={
            "username": "ada", "name": "Another Ada", "email": "ada2@example.com"
        }, headers=auth_headers)

        assert response.status_code == 409

    async def test_invalid_email(self, client: AsyncClient, auth_headers):
        response = await client.post("/api/users", json={
            "username": "bob", "name": "Bob", "email": "not-an-email"
        }, headers=auth_headers)

        assert response.status_code == 400

    async def test_only_refreshable_fields_change(self, client: AsyncClient, auth_headers, test_user):
        response = await client.patch(f"/api/users/{test_user.id}", json={
            "avatar": "https://example.com/ada.png",
            "username": "someone-else",
        }, headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["avatar"] == "https://example.com/ada.png"
        assert data["username"] == "ada"

    async def test_deleting_assignee_keeps_task(self, client: AsyncClient, auth_headers, task, test_user):
        response = await client.delete(f"/api/users/{test_user.id}", headers=auth_headers)
        assert response.status_code == 200

        # The token now names a deleted user, so read without it
        orphan = (await client.get(f"/api/tasks/{task['id']}")).json()
        assert orphan["assigneeId"] is None
        assert orphan["assignee"] is None

    async def test_unknown_user(self, client: AsyncClient):
        response = await client.get("/api/users/31337")

        assert response.status_code == 404
        assert response.json()["detail"] == "User not found"


class TestSessionStatus:

    async def test_anonymous(self, client: AsyncClient):
        response = await client.get("/api/auth/status")

        assert response.status_code == 200
        assert response.json() == {"authenticated": False}

    async def test_authenticated(self, client: AsyncClient, auth_headers):
        data = (await client.get("/api/auth/status", headers=auth_headers)).json()

        assert data["authenticated"] is True
        assert data["user"]["username"] == "ada"

    async def test_expired_token(self, client: AsyncClient, test_user):
        token = create_access_token({"sub": str(test_user.id)}, expires_delta=timedelta(minutes=-5))

        response = await client.post(
            "/api/tasks", json={"title": "Late"}, headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 401
        assert response.json()["detail"] == "Could not validate session"

    async def test_token_for_unknown_user(self, client: AsyncClient):
        token = create_access_token({"sub": "999"})

        response = await client.get("/api/auth/status", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
