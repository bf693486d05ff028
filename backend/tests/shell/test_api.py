"""Integration tests for API endpoints using Starlette TestClient."""

import pytest
from starlette.testclient import TestClient

from scripture_scroll.main import create_app
from scripture_scroll.shell import mcp_server


TODAY = "2024-12-28"


@pytest.fixture
def client(session):
    """Create test client bound to an in-memory session."""
    mcp_server.set_session(session)
    yield TestClient(create_app())
    mcp_server.set_session(None)


class TestHealthEndpoint:
    """Tests for /health endpoint."""

    def test_health_returns_200(self, client):
        """Health endpoint returns 200 OK."""
        response = client.get("/health")
        assert response.status_code == 200

    def test_health_returns_json(self, client):
        """Health endpoint returns JSON with status."""
        data = client.get("/health").json()
        assert data["status"] == "healthy"
        assert data["service"] == "scripture-scroll"


class TestCounterEndpoints:
    """Tests for counting endpoints."""

    def test_today_initial_state(self, client):
        data = client.get("/api/today").json()
        assert data["date"] == TODAY
        assert data["count"] == 0
        assert data["goal"] == 0
        assert data["theme_color"] == "#E29F36"
        assert data["auto_increment"]["active"] is False

    def test_increment_and_decrement(self, client):
        client.post("/api/increment")
        client.post("/api/increment")
        data = client.post("/api/decrement").json()
        assert data["count"] == 1
        assert data["all_time_count"] == 2

    def test_reset_today_requires_confirmation(self, client, session):
        client.post("/api/increment")
        response = client.post("/api/reset-today")
        assert response.status_code == 409
        assert response.json()["confirmation_required"] is True
        assert response.json()["title"] == "Reset Counter"
        assert session.count == 1

    def test_reset_today_confirmed(self, client):
        client.put("/api/goal", json={"goal": 50})
        for _ in range(40):
            client.post("/api/increment")

        response = client.post("/api/reset-today", json={"confirm": True})

        assert response.status_code == 200
        data = response.json()
        assert data["saved"] == {"date": TODAY, "count": 40, "goal": 50, "completed": False}
        assert data["today"]["count"] == 0

    def test_reset_all_time_confirmed(self, client):
        client.post("/api/increment")
        data = client.post("/api/reset-all-time", json={"confirm": True}).json()
        assert data["all_time_count"] == 0
        assert data["count"] == 1


class TestGoalEndpoint:
    """Tests for PUT /api/goal."""

    def test_set_goal(self, client):
        client.put("/api/goal", json={"goal": "108"})
        for _ in range(54):
            client.post("/api/increment")
        data = client.get("/api/today").json()
        assert data["goal"] == 108
        assert data["progress_percent"] == 50

    def test_invalid_goal_returns_400(self, client):
        response = client.put("/api/goal", json={"goal": "abc"})
        assert response.status_code == 400
        assert "error" in response.json()

    def test_missing_goal_returns_400(self, client):
        assert client.put("/api/goal", json={}).status_code == 400


class TestHistoryEndpoints:
    """Tests for history endpoints."""

    def test_history_commits_today(self, client):
        client.put("/api/goal", json={"goal": 1})
        client.post("/api/increment")
        data = client.get("/api/history").json()
        assert data["entries"] == [{"date": TODAY, "count": 1, "goal": 1, "completed": True}]
        assert data["current_streak"] == 1
        assert data["best_day_count"] == 1

    def test_delete_entry_requires_confirmation(self, client):
        client.get("/api/history")
        response = client.delete(f"/api/history/{TODAY}")
        assert response.status_code == 409
        assert TODAY in response.json()["message"]

    def test_delete_entry_confirmed(self, client):
        client.get("/api/history")
        response = client.request("DELETE", f"/api/history/{TODAY}", json={"confirm": True})
        data = response.json()
        assert data["deleted"] is True
        assert data["history"]["entries"] == []

    def test_delete_missing_entry_is_not_error(self, client):
        response = client.request("DELETE", "/api/history/2001-01-01", json={"confirm": True})
        assert response.status_code == 200
        assert response.json()["deleted"] is False

    def test_delete_bad_date_returns_400(self, client):
        response = client.request("DELETE", "/api/history/not-a-date", json={"confirm": True})
        assert response.status_code == 400

    def test_clear_history(self, client, session):
        client.get("/api/history")
        assert client.delete("/api/history").status_code == 409
        response = client.request("DELETE", "/api/history", json={"confirm": True})
        assert response.json() == {"success": True}
        assert session.history == []


class TestAutoAndThemeEndpoints:
    """Tests for auto-increment and theme endpoints."""

    def test_start_auto_clamps_interval(self, client, timers):
        data = client.post("/api/auto/start", json={"interval_ms": 50}).json()
        assert data == {"active": True, "interval_ms": 300}
        assert len(timers.live) == 1

    def test_start_auto_invalid(self, client):
        response = client.post("/api/auto/start", json={"interval_ms": -5})
        assert response.status_code == 400

    def test_stop_auto(self, client, timers):
        client.post("/api/auto/start", json={"interval_ms": 500})
        data = client.post("/api/auto/stop").json()
        assert data == {"active": False, "stopped": True}
        assert timers.live == []

    def test_set_theme(self, client):
        assert client.put("/api/theme", json={"color": "#335577"}).json() == {"theme_color": "#335577"}
        assert client.get("/api/today").json()["theme_color"] == "#335577"

    def test_empty_theme_rejected(self, client):
        assert client.put("/api/theme", json={"color": ""}).status_code == 400


class TestCORS:
    """Tests for CORS configuration."""

    def test_cors_preflight_localhost(self, client):
        """CORS preflight from the default dev origin is allowed."""
        response = client.options(
            "/api/increment",
            headers={
                "Origin": "http://localhost:5173",
                "Access-Control-Request-Method": "POST",
            },
        )
        assert response.status_code == 200
        assert response.headers.get("access-control-allow-origin") == "http://localhost:5173"
