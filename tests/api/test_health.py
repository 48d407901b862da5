from __future__ import annotations

from fastapi.testclient import TestClient


def test_health_returns_ok(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    # no DATABASE_URL or REDIS_URL in tests
    assert data["checks"] == {"redis": "not_configured", "database": "not_configured"}


def test_health_needs_no_token(client: TestClient) -> None:
    assert "www-authenticate" not in client.get("/health").headers


def test_ready_returns_200(client: TestClient) -> None:
    resp = client.get("/ready")
    assert resp.status_code == 200
