from __future__ import annotations

from fastapi.testclient import TestClient

from learnhub.main import app

client = TestClient(app)


def test_routers_are_mounted() -> None:
    paths = {route.path for route in app.routes}
    for expected in (
        "/health",
        "/ready",
        "/metrics",
        "/v1/courses",
        "/v1/courses/{course_id}/complete",
        "/v1/payments/orders",
        "/v1/payments/verify",
        "/v1/payments/webhook",
        "/v1/assessments/{course_id}/attempts",
        "/v1/certificates/{certificate_id}/verify",
        "/v1/reviews",
    ):
        assert expected in paths


def test_domain_errors_render_reason_and_message(token: str) -> None:
    resp = client.get("/v1/courses/missing", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 404
    assert set(resp.json()) == {"reason", "message"}


def test_unknown_route_is_plain_404() -> None:
    assert client.get("/v1/nothing-here").status_code == 404
