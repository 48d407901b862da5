from __future__ import annotations

import asyncio
import base64
import hashlib
import hmac
import json
from dataclasses import replace

import httpx
import pytest

from learnhub.core.config import SETTINGS
from learnhub.core.errors import GatewayUnavailable
from learnhub.services.gateway import (
    FakePaymentGateway,
    HttpPaymentGateway,
    build_gateway,
    payment_signature,
    signatures_match,
    webhook_signature,
)


def _gateway(handler) -> HttpPaymentGateway:
    return HttpPaymentGateway(
        key_id="rzp_test_key",
        key_secret="shh",
        base_url="https://gateway.test",
        timeout_seconds=1.0,
        transport=httpx.MockTransport(handler),
    )


def _create(gateway) -> str:
    return asyncio.run(
        gateway.create_order(
            amount_minor=49900,
            currency="INR",
            receipt="course_paid_1",
            notes={"user_id": "u1", "course_id": "paid"},
        )
    )


# ---- signatures ----


def test_payment_signature_is_hmac_of_order_and_payment() -> None:
    expected = hmac.new(b"shh", b"order_1|pay_1", hashlib.sha256).hexdigest()
    assert payment_signature("shh", "order_1", "pay_1") == expected


def test_webhook_signature_covers_raw_body() -> None:
    body = b'{"event":"payment.captured"}'
    assert webhook_signature("whsec", body) == (
        hmac.new(b"whsec", body, hashlib.sha256).hexdigest()
    )
    assert webhook_signature("whsec", body + b" ") != webhook_signature("whsec", body)


def test_signatures_match() -> None:
    sig = payment_signature("shh", "order_1", "pay_1")
    assert signatures_match(sig, sig)
    assert not signatures_match(sig, payment_signature("shh", "order_1", "pay_2"))
    assert not signatures_match(sig, None)
    assert not signatures_match(sig, "")


# ---- HTTP client ----


def test_create_order_posts_with_basic_auth() -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "order_live_1", "status": "created"})

    order_id = _create(_gateway(handler))

    assert order_id == "order_live_1"
    assert seen["url"] == "https://gateway.test/v1/orders"
    assert seen["auth"] == "Basic " + base64.b64encode(b"rzp_test_key:shh").decode()
    assert seen["body"] == {
        "amount": 49900,
        "currency": "INR",
        "receipt": "course_paid_1",
        "notes": {"user_id": "u1", "course_id": "paid"},
    }


def test_timeout_is_gateway_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(GatewayUnavailable, match="timed out"):
        _create(_gateway(handler))


def test_connection_error_is_gateway_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(GatewayUnavailable):
        _create(_gateway(handler))


@pytest.mark.parametrize("status", [400, 401, 500, 502])
def test_error_status_is_gateway_unavailable(status: int) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json={"error": {"code": "BAD_REQUEST_ERROR"}})

    with pytest.raises(GatewayUnavailable, match=str(status)):
        _create(_gateway(handler))


def test_missing_order_id_is_gateway_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "created"})

    with pytest.raises(GatewayUnavailable, match="no order id"):
        _create(_gateway(handler))


# ---- fake gateway and selection ----


def test_fake_gateway_records_orders() -> None:
    fake = FakePaymentGateway()
    order_id = _create(fake)
    assert order_id.startswith("order_")
    assert fake.orders[0]["id"] == order_id

    fake.reset()
    assert fake.orders == []


def test_build_gateway_uses_fake_without_base_url() -> None:
    settings = replace(SETTINGS, app_env="dev", gateway_base_url=None)
    assert isinstance(build_gateway(settings), FakePaymentGateway)


def test_build_gateway_uses_http_with_base_url() -> None:
    settings = replace(SETTINGS, gateway_base_url="https://gateway.test")
    assert isinstance(build_gateway(settings), HttpPaymentGateway)
