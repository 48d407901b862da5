"""Payment gateway client (Razorpay-compatible order API).

Only two parts of the gateway contract matter here:

  1. Order creation: POST {base}/v1/orders with HTTP basic auth
     (key_id:key_secret) returns {"id": "order_..."}.
  2. Signed confirmation: after checkout the client receives
     razorpay_signature = hex(HMAC_SHA256(key_secret, "{order_id}|{payment_id}")),
     and webhooks carry X-Razorpay-Signature = hex(HMAC_SHA256(webhook_secret, body)).

HttpPaymentGateway talks to the real API; FakePaymentGateway mints order
ids locally and is what dev and tests run against.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import time
import uuid
from typing import Any, Protocol

import httpx

from learnhub.core.config import SETTINGS, Settings
from learnhub.core.errors import GatewayUnavailable
from learnhub.core.metrics import GATEWAY_LATENCY

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.razorpay.com"


def payment_signature(key_secret: str, order_id: str, payment_id: str) -> str:
    message = f"{order_id}|{payment_id}"
    return hmac.new(
        key_secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256
    ).hexdigest()


def webhook_signature(webhook_secret: str, body: bytes) -> str:
    return hmac.new(webhook_secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def signatures_match(expected: str, provided: str | None) -> bool:
    """Constant-time comparison; a missing signature never matches."""
    if not provided:
        return False
    return hmac.compare_digest(expected, provided)


class PaymentGateway(Protocol):
    async def create_order(
        self,
        *,
        amount_minor: int,
        currency: str,
        receipt: str,
        notes: dict[str, str],
    ) -> str:
        """Create an order and return the gateway's order id.

        Raises GatewayUnavailable on timeout, transport error or non-2xx.
        """
        ...


class HttpPaymentGateway:
    def __init__(
        self,
        *,
        key_id: str,
        key_secret: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._auth = (key_id, key_secret)
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._transport = transport

    async def create_order(
        self,
        *,
        amount_minor: int,
        currency: str,
        receipt: str,
        notes: dict[str, str],
    ) -> str:
        payload: dict[str, Any] = {
            "amount": amount_minor,
            "currency": currency,
            "receipt": receipt,
            "notes": notes,
        }
        start = time.perf_counter()
        async with httpx.AsyncClient(
            base_url=self._base_url,
            auth=self._auth,
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            try:
                response = await client.post("/v1/orders", json=payload)
            except httpx.TimeoutException as exc:
                logger.warning("Gateway order request timed out receipt=%s", receipt)
                raise GatewayUnavailable("payment gateway timed out") from exc
            except httpx.HTTPError as exc:
                logger.warning("Gateway order request failed: %s", exc)
                raise GatewayUnavailable() from exc
            finally:
                GATEWAY_LATENCY.observe(time.perf_counter() - start)

        if response.status_code >= 400:
            logger.warning(
                "Gateway rejected order: status=%s body=%s",
                response.status_code,
                response.text,
            )
            raise GatewayUnavailable(
                f"payment gateway returned status {response.status_code}"
            )

        try:
            order_id = response.json()["id"]
        except (ValueError, KeyError) as exc:
            raise GatewayUnavailable("payment gateway returned no order id") from exc
        return str(order_id)


class FakePaymentGateway:
    """Local stand-in: every order succeeds unless ``fail_with`` is set."""

    def __init__(self) -> None:
        self.orders: list[dict[str, Any]] = []
        self.fail_with: Exception | None = None

    async def create_order(
        self,
        *,
        amount_minor: int,
        currency: str,
        receipt: str,
        notes: dict[str, str],
    ) -> str:
        if self.fail_with is not None:
            raise GatewayUnavailable() from self.fail_with
        order_id = f"order_{uuid.uuid4().hex[:14]}"
        self.orders.append(
            {
                "id": order_id,
                "amount": amount_minor,
                "currency": currency,
                "receipt": receipt,
                "notes": notes,
            }
        )
        return order_id

    def reset(self) -> None:
        self.orders.clear()
        self.fail_with = None


def build_gateway(settings: Settings) -> PaymentGateway:
    if settings.gateway_base_url or settings.is_prod:
        return HttpPaymentGateway(
            key_id=settings.gateway_key_id,
            key_secret=settings.gateway_key_secret,
            base_url=settings.gateway_base_url or DEFAULT_BASE_URL,
            timeout_seconds=settings.gateway_timeout_seconds,
        )
    logger.info("No GATEWAY_BASE_URL configured, using the local fake gateway")
    return FakePaymentGateway()


payment_gateway: PaymentGateway = build_gateway(SETTINGS)
