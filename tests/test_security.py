"""
Security, observability and system endpoint tests
"""
from httpx import AsyncClient


class TestSecurityHeaders:
    """Test security headers"""

    async def test_security_headers_present(self, client: AsyncClient):
        response = await client.get("/")

        headers = response.headers
        assert headers["x-content-type-options"] == "nosniff"
        assert headers["x-frame-options"] == "DENY"
        assert "referrer-policy" in headers

    async def test_trace_id_in_response(self, client: AsyncClient):
        response = await client.get("/")

        assert "x-trace-id" in response.headers
        assert response.json()["trace_id"] == response.headers["x-trace-id"]

    async def test_error_bodies_carry_trace_id(self, client: AsyncClient):
        response = await client.get("/api/tasks/1")

        body = response.json()
        assert body["trace_id"] == response.headers["x-trace-id"]
        assert body["path"] == "/api/tasks/1"
        assert "timestamp" in body


class TestCors:

    async def test_preflight_from_dashboard(self, client: AsyncClient):
        response = await client.options("/api/tasks", headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "PATCH",
        })

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "http://localhost:5173"


class TestSystemEndpoints:

    async def test_health_check(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["checks"]["database"] == "connected"
        assert "trace_id" in data

    async def test_root_endpoint(self, client: AsyncClient):
        data = (await client.get("/")).json()

        assert data["message"] == "Sprintboard API"
        assert data["endpoints"]["realtime"] == "/ws"

    async def test_metrics_exposed(self, client: AsyncClient, auth_headers):
        await client.post("/api/tasks", json={"title": "Counted"}, headers=auth_headers)

        response = await client.get("/metrics")

        assert response.status_code == 200
        assert "sprintboard_events_published_total" in response.text
        assert "sprintboard_mutations_total" in response.text
