from __future__ import annotations

from fastapi.testclient import TestClient

from progress_service.main import app


def test_routes_registered() -> None:
    paths = {route.path for route in app.routes}
    assert {
        "/health",
        "/ready",
        "/metrics",
        "/v1/progress/{lesson_id}",
        "/v1/progress/{lesson_id}/sessions",
        "/v1/progress/{lesson_id}/sessions/end",
        "/v1/learners/me/activity",
        "/v1/learners/{user_id}/stats",
    } <= paths


def test_app_starts_with_in_memory_stores() -> None:
    with TestClient(app) as client:
        assert client.get("/health").json()["status"] == "ok"
