"""Catalog, enrollment, progress and lesson access endpoints."""

from __future__ import annotations

from fastapi.testclient import TestClient

from learnhub.repos.bundle import Repos
from tests.conftest import auth, seed_course

# ---- 401: unauthenticated ----


def test_catalog_rejects_missing_token(client: TestClient) -> None:
    assert client.get("/v1/courses").status_code == 401


def test_catalog_rejects_garbage_token(client: TestClient) -> None:
    resp = client.get("/v1/courses", headers=auth("not-a-jwt"))
    assert resp.status_code == 401
    assert resp.headers["www-authenticate"] == "Bearer"


# ---- catalog ----


def test_catalog_lists_courses_with_rating(
    client: TestClient, repos: Repos, token: str
) -> None:
    seed_course(repos, "free")
    seed_course(repos, "paid", price=499)

    resp = client.get("/v1/courses", headers=auth(token))

    assert resp.status_code == 200
    by_id = {c["id"]: c for c in resp.json()}
    assert set(by_id) == {"free", "paid"}
    assert by_id["free"]["is_free"] is True
    assert by_id["paid"]["price"] == 499
    assert by_id["paid"]["rating"] == {
        "average": 0.0,
        "count": 0,
        "distribution": {"1": 0, "2": 0, "3": 0, "4": 0, "5": 0},
    }
    assert "video_url" not in by_id["free"]["lessons"][0]


def test_unknown_course_is_404(client: TestClient, token: str) -> None:
    resp = client.get("/v1/courses/nope", headers=auth(token))
    assert resp.status_code == 404
    assert resp.json()["reason"] == "NotFound"


# ---- enrollment ----


def test_enroll_free_course(client: TestClient, repos: Repos, token: str) -> None:
    seed_course(repos, "free")

    first = client.post("/v1/courses/free/enroll", headers=auth(token))
    second = client.post("/v1/courses/free/enroll", headers=auth(token))

    assert first.status_code == 201
    assert first.json()["user_id"] == "test-user"
    assert first.json()["progress_percent"] == 0
    assert second.json()["enrolled_at"] == first.json()["enrolled_at"]


def test_enroll_paid_course_requires_payment(
    client: TestClient, repos: Repos, token: str
) -> None:
    seed_course(repos, "paid", price=499)

    resp = client.post("/v1/courses/paid/enroll", headers=auth(token))

    assert resp.status_code == 402
    assert resp.json() == {
        "reason": "PaymentRequired",
        "message": "payment required to access this course",
        "course_price": 499,
        "currency": "INR",
        "course_id": "paid",
    }


# ---- progress ----


def test_progress_tracks_watched_lessons(
    client: TestClient, repos: Repos, token: str
) -> None:
    seed_course(repos, "free")
    client.post("/v1/courses/free/enroll", headers=auth(token))

    for lesson_id in ("l1", "l1", "l2", "bogus"):
        resp = client.post(
            "/v1/courses/free/progress/lesson",
            json={"lesson_id": lesson_id},
            headers=auth(token),
        )
        assert resp.status_code == 200

    progress = client.get("/v1/courses/free/progress", headers=auth(token)).json()
    assert progress == {"progress_percent": 67, "watched_lesson_ids": ["l1", "l2"]}


def test_progress_requires_enrollment(
    client: TestClient, repos: Repos, token: str
) -> None:
    seed_course(repos, "free")

    marked = client.post(
        "/v1/courses/free/progress/lesson",
        json={"lesson_id": "l1"},
        headers=auth(token),
    )
    read = client.get("/v1/courses/free/progress", headers=auth(token))

    assert marked.status_code == 403
    assert marked.json()["reason"] == "NotEnrolled"
    assert read.status_code == 403


# ---- lesson access ----


def test_free_lesson_needs_enrollment(client: TestClient, repos: Repos, token: str) -> None:
    seed_course(repos, "free")

    before = client.get("/v1/courses/free/lessons/l2", headers=auth(token))
    client.post("/v1/courses/free/enroll", headers=auth(token))
    after = client.get("/v1/courses/free/lessons/l2", headers=auth(token))
    missing = client.get("/v1/courses/free/lessons/l9", headers=auth(token))

    assert before.status_code == 403
    assert before.json()["reason"] == "EnrollmentRequired"
    assert after.status_code == 200
    assert after.json()["id"] == "l2"
    assert missing.status_code == 404


def test_paid_lesson_needs_payment(client: TestClient, repos: Repos, token: str) -> None:
    seed_course(repos, "paid", price=250)

    resp = client.get("/v1/courses/paid/lessons/l1", headers=auth(token))

    assert resp.status_code == 402
    assert resp.json()["course_price"] == 250
