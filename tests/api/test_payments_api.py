"""Checkout over HTTP: order -> gateway -> verify -> access."""

from __future__ import annotations

import json
from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from learnhub.api import dependencies
from learnhub.core.config import SETTINGS
from learnhub.repos.bundle import Repos
from learnhub.services.gateway import FakePaymentGateway, payment_gateway, webhook_signature
from tests.conftest import auth, mint_token, seed_course, sign


def _order(client: TestClient, token: str, course_id: str = "paid") -> dict:
    resp = client.post(
        "/v1/payments/orders", json={"course_id": course_id}, headers=auth(token)
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


def _verify(client: TestClient, token: str, order_id: str, payment_id: str = "pay_1", **overrides):
    body = {
        "order_id": order_id,
        "payment_id": payment_id,
        "signature": sign(order_id, payment_id),
        "course_id": "paid",
        **overrides,
    }
    return client.post("/v1/payments/verify", json=body, headers=auth(token))


# ---- 401 ----


def test_orders_require_token(client: TestClient) -> None:
    resp = client.post("/v1/payments/orders", json={"course_id": "paid"})
    assert resp.status_code == 401


# ---- full purchase ----


def test_purchase_at_499_unlocks_course(client: TestClient, repos: Repos, token: str) -> None:
    seed_course(repos, "paid", price=499)

    locked = client.get("/v1/courses/paid/lessons/l1", headers=auth(token))
    assert locked.status_code == 402
    assert locked.json()["reason"] == "PaymentRequired"
    assert locked.json()["course_price"] == 499

    order = _order(client, token)
    assert order["amount"] == 49900
    assert order["currency"] == "INR"
    assert order["gateway_key"] == SETTINGS.gateway_key_id

    verified = _verify(client, token, order["order_id"])
    assert verified.status_code == 200
    assert verified.json() == {"success": True, "payment_id": order["payment_id"]}

    lesson = client.get("/v1/courses/paid/lessons/l1", headers=auth(token))
    assert lesson.status_code == 200
    assert lesson.json()["video_url"] == "https://cdn/1.mp4"

    status = client.get("/v1/payments/status/paid", headers=auth(token)).json()
    assert status == {
        "is_free": False,
        "has_paid": True,
        "is_enrolled": True,
        "can_access": True,
        "course_price": 499,
    }

    again = client.post(
        "/v1/payments/orders", json={"course_id": "paid"}, headers=auth(token)
    )
    assert again.status_code == 400
    assert again.json()["reason"] == "AlreadyPaid"


def test_verify_replay_returns_same_payment(client: TestClient, repos: Repos, token: str) -> None:
    seed_course(repos, "paid", price=499)
    order = _order(client, token)

    first = _verify(client, token, order["order_id"])
    second = _verify(client, token, order["order_id"])

    assert first.status_code == second.status_code == 200
    assert first.json() == second.json()


def test_bad_signature_fails_the_order(client: TestClient, repos: Repos, token: str) -> None:
    seed_course(repos, "paid", price=499)
    order = _order(client, token)

    resp = _verify(client, token, order["order_id"], signature="forged")
    assert resp.status_code == 400
    assert resp.json()["reason"] == "InvalidSignature"

    history = client.get("/v1/payments/history", headers=auth(token)).json()
    assert history["items"][0]["status"] == "failed"
    assert history["items"][0]["failure_reason"] == "InvalidSignature"

    closed = _verify(client, token, order["order_id"])
    assert closed.status_code == 409
    assert closed.json()["reason"] == "OrderClosed"
    assert closed.json()["status"] == "failed"


def test_verify_unknown_order(client: TestClient, repos: Repos, token: str) -> None:
    seed_course(repos, "paid", price=499)
    order = _order(client, token)

    resp = _verify(client, token, order["order_id"], course_id="other")
    assert resp.status_code == 404
    assert resp.json()["reason"] == "PaymentNotFound"


def test_free_course_has_no_checkout(client: TestClient, repos: Repos, token: str) -> None:
    seed_course(repos, "free")
    resp = client.post(
        "/v1/payments/orders", json={"course_id": "free"}, headers=auth(token)
    )
    assert resp.status_code == 400
    assert resp.json()["reason"] == "CourseFree"


def test_gateway_outage_is_503(client: TestClient, repos: Repos, token: str) -> None:
    seed_course(repos, "paid", price=499)
    assert isinstance(payment_gateway, FakePaymentGateway)
    payment_gateway.fail_with = TimeoutError("gateway down")

    resp = client.post(
        "/v1/payments/orders", json={"course_id": "paid"}, headers=auth(token)
    )

    assert resp.status_code == 503
    assert resp.json()["reason"] == "GatewayUnavailable"
    assert resp.headers["retry-after"] == "5"
    history = client.get("/v1/payments/history", headers=auth(token)).json()
    assert history["total"] == 0


def test_failure_report(client: TestClient, repos: Repos, token: str) -> None:
    seed_course(repos, "paid", price=499)
    order = _order(client, token)
    body = {"order_id": order["order_id"], "reason": "user closed checkout"}

    other = client.post(
        "/v1/payments/failed", json=body, headers=auth(mint_token("someone-else"))
    )
    first = client.post("/v1/payments/failed", json=body, headers=auth(token))
    second = client.post("/v1/payments/failed", json=body, headers=auth(token))

    assert other.json() == {"recorded": False}
    assert first.json() == {"recorded": True}
    assert second.json() == {"recorded": False}


def test_history_paging(client: TestClient, repos: Repos, token: str) -> None:
    for i in range(3):
        seed_course(repos, f"paid-{i}", price=100)
        _order(client, token, f"paid-{i}")

    resp = client.get("/v1/payments/history?page=2&limit=2", headers=auth(token))

    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] == 3
    assert body["page"] == 2
    assert len(body["items"]) == 1


def test_history_rejects_bad_paging(client: TestClient, token: str) -> None:
    resp = client.get("/v1/payments/history?limit=500", headers=auth(token))
    assert resp.status_code == 422


# ---- refunds ----


def test_refund_is_admin_only_and_revokes_access(
    client: TestClient, repos: Repos, token: str, admin_token: str
) -> None:
    seed_course(repos, "paid", price=499)
    order = _order(client, token)
    _verify(client, token, order["order_id"])
    url = f"/v1/payments/{order['payment_id']}/refund"

    forbidden = client.post(url, json={}, headers=auth(token))
    assert forbidden.status_code == 403

    refunded = client.post(url, json={}, headers=auth(admin_token))
    assert refunded.status_code == 200
    assert refunded.json()["status"] == "refunded"
    assert refunded.json()["refund_amount"] == 499

    lesson = client.get("/v1/courses/paid/lessons/l1", headers=auth(token))
    assert lesson.status_code == 402


def test_refund_amount_validated(
    client: TestClient, repos: Repos, token: str, admin_token: str
) -> None:
    seed_course(repos, "paid", price=499)
    order = _order(client, token)
    _verify(client, token, order["order_id"])

    resp = client.post(
        f"/v1/payments/{order['payment_id']}/refund",
        json={"amount": 1000},
        headers=auth(admin_token),
    )
    assert resp.status_code == 400
    assert resp.json()["reason"] == "InvalidRefund"


# ---- webhook ----


@pytest.fixture
def webhook_secret(monkeypatch: pytest.MonkeyPatch) -> str:
    secret = "whsec_api_test"
    monkeypatch.setattr(
        dependencies, "SETTINGS", replace(SETTINGS, gateway_webhook_secret=secret)
    )
    return secret


def test_webhook_capture_enrolls_buyer(
    client: TestClient, repos: Repos, token: str, webhook_secret: str
) -> None:
    seed_course(repos, "paid", price=499)
    order = _order(client, token)
    body = json.dumps(
        {
            "event": "payment.captured",
            "payload": {
                "payment": {"entity": {"id": "pay_9", "order_id": order["order_id"]}}
            },
        }
    ).encode("utf-8")

    resp = client.post(
        "/v1/payments/webhook",
        content=body,
        headers={"X-Razorpay-Signature": webhook_signature(webhook_secret, body)},
    )

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "event": "payment.captured"}
    status = client.get("/v1/payments/status/paid", headers=auth(token)).json()
    assert status["has_paid"] is True
    assert status["is_enrolled"] is True


def test_webhook_bad_signature(client: TestClient, webhook_secret: str) -> None:
    body = b'{"event": "payment.captured", "payload": {}}'
    resp = client.post(
        "/v1/payments/webhook", content=body, headers={"X-Razorpay-Signature": "nope"}
    )
    assert resp.status_code == 400
    assert resp.json()["reason"] == "InvalidSignature"
