"""Demo: buy a paid course and earn its certificate using FastAPI TestClient.

Runs against the in-memory repositories and the fake payment gateway, so no
database, Redis or gateway credentials are needed.

Run with:
    python scripts/demo_purchase_flow.py
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from learnhub.api.dependencies import memory_repos
from learnhub.core.config import SETTINGS
from learnhub.main import app
from learnhub.models.course import Course, Lesson
from learnhub.repos.course_repo import InMemoryCourseRepo
from learnhub.services import token_service
from learnhub.services.gateway import payment_signature

COURSE_ID = "fastapi-in-depth"
LEARNER = "demo-learner"


def main() -> None:
    client = TestClient(app)

    # ── Seed data ───────────────────────────────────────────────────
    assert isinstance(memory_repos.courses, InMemoryCourseRepo)
    memory_repos.courses.seed(
        Course(
            id=COURSE_ID,
            title="FastAPI in Depth",
            price=499,
            lessons=tuple(
                Lesson(id=f"l{i}", title=f"Part {i}", video_url=f"https://cdn/{i}.mp4")
                for i in range(1, 4)
            ),
        )
    )
    token = token_service.create_access_token(sub=LEARNER)
    headers = {"Authorization": f"Bearer {token}"}

    # ── Step 1: lesson before paying ────────────────────────────────
    r = client.get(f"/v1/courses/{COURSE_ID}/lessons/l1", headers=headers)
    print(f"1. GET  lesson (unpaid)    → {r.status_code}  {r.json()['reason']}")

    # ── Step 2: create an order ─────────────────────────────────────
    r = client.post("/v1/payments/orders", json={"course_id": COURSE_ID}, headers=headers)
    order = r.json()
    print(
        f"2. POST /v1/payments/orders → {r.status_code}  "
        f"order={order['order_id']}  amount={order['amount']} {order['currency']}"
    )

    # ── Step 3: verify with a forged signature ──────────────────────
    # A bad signature closes the order; step 4 opens a new one.
    r = client.post(
        "/v1/payments/verify",
        json={
            "order_id": order["order_id"],
            "payment_id": "pay_demo",
            "signature": "forged",
            "course_id": COURSE_ID,
        },
        headers=headers,
    )
    print(f"3. POST verify (forged)    → {r.status_code}  {r.json()['reason']}")

    # ── Step 4: retry checkout and verify properly ──────────────────
    r = client.post("/v1/payments/orders", json={"course_id": COURSE_ID}, headers=headers)
    order = r.json()
    r = client.post(
        "/v1/payments/verify",
        json={
            "order_id": order["order_id"],
            "payment_id": "pay_demo",
            "signature": payment_signature(
                SETTINGS.gateway_key_secret, order["order_id"], "pay_demo"
            ),
            "course_id": COURSE_ID,
        },
        headers=headers,
    )
    print(f"4. POST verify (signed)    → {r.status_code}  {r.json()}")

    # ── Step 5: watch every lesson ──────────────────────────────────
    for lesson_id in ("l1", "l2", "l3"):
        r = client.post(
            f"/v1/courses/{COURSE_ID}/progress/lesson",
            json={"lesson_id": lesson_id},
            headers=headers,
        )
    print(f"5. POST progress x3        → {r.status_code}  {r.json()['progress_percent']}%")

    # ── Step 6: complete and fetch the certificate ──────────────────
    r = client.post(f"/v1/courses/{COURSE_ID}/complete", headers=headers)
    certificate_id = r.json()["certificate_id"]
    print(f"6. POST complete           → {r.status_code}  certificate={certificate_id}")

    # ── Step 7: public verification ─────────────────────────────────
    r = client.get(f"/v1/certificates/{certificate_id}/verify")
    print(f"7. GET  verify certificate → {r.status_code}  valid={r.json()['valid']}")

    print("\nAll steps completed.")


if __name__ == "__main__":
    main()
