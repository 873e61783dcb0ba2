"""
Pytest configuration and fixtures for Sprintboard API tests
"""
import asyncio
import os
import tempfile
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

# Settings are read at import time, so the environment is prepared first
_TEST_DB_DIR = tempfile.mkdtemp(prefix="sprintboard-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TEST_DB_DIR, 'test.db')}"
os.environ["ENVIRONMENT"] = "test"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["AUTH_REQUIRED"] = "true"
os.environ["ENABLE_OTEL_EXPORTER"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ.pop("GITHUB_WEBHOOK_SECRET", None)

import pytest
from httpx import ASGITransport, AsyncClient

from sprintboard.main import app
from sprintboard.auth.security import create_access_token
from sprintboard.db import crud
from sprintboard.db.database import AsyncSessionLocal, Base, engine


async def _reset_schema():
    import sprintboard.db.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture(autouse=True)
def clean_database():
    """Fresh tables for every test.

    Runs on a private loop so it works for both async tests and the
    synchronous WebSocket tests driven by Starlette's TestClient.
    """
    loop = asyncio.new_event_loop()
    try:
        loop.run_until_complete(_reset_schema())
    finally:
        loop.close()
    yield


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def db_session():
    async with AsyncSessionLocal() as session:
        yield session


@pytest.fixture
def published(monkeypatch):
    """Records every event the application publishes, in order"""
    notifier = app.state.notifier
    original = notifier.publish
    events = []

    def recording_publish(event):
        events.append(event)
        return original(event)

    monkeypatch.setattr(notifier, "publish", recording_publish)
    return events


@pytest.fixture
async def test_user():
    async with AsyncSessionLocal() as db:
        return await crud.user.create_user(db, {
            "username": "ada",
            "name": "Ada Lovelace",
            "email": "ada@example.com",
            "github_username": "ada",
        })


@pytest.fixture
def auth_headers(test_user):
    token = create_access_token({"sub": str(test_user.id)})
    return {"Authorization": f"Bearer {token}"}


def sprint_payload(name: str = "Sprint 1", active: bool = False, start_offset_days: int = 0) -> dict:
    start = datetime(2025, 1, 6, tzinfo=timezone.utc) + timedelta(days=start_offset_days)
    return {
        "name": name,
        "description": "Ship the board",
        "startDate": start.isoformat(),
        "endDate": (start + timedelta(days=14)).isoformat(),
        "isActive": active,
    }


@pytest.fixture
async def active_sprint(client: AsyncClient, auth_headers):
    response = await client.post("/api/sprints", json=sprint_payload(active=True), headers=auth_headers)
    assert response.status_code == 201
    return response.json()


@pytest.fixture
async def task(client: AsyncClient, auth_headers, active_sprint, test_user):
    response = await client.post("/api/tasks", json={
        "title": "Wire up the push channel",
        "sprintId": active_sprint["id"],
        "assigneeId": test_user.id,
        "type": "backend",
    }, headers=auth_headers)
    assert response.status_code == 201
    return response.json()
