"""Checkout, confirmation and refund of paid courses.

Every status change is a compare-and-swap on the payment row
(``PaymentRepo.compare_and_set``) taken inside the
``purchase:{user_id}:{course_id}`` lock, so duplicate gateway callbacks,
client retries and webhooks racing each other settle a payment at most
once and enroll the buyer at most once.

Order creation goes to the gateway first and persists the Payment only
after the gateway answered. A timeout therefore leaves nothing behind and
the client simply retries.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from learnhub.core.clock import utc_now
from learnhub.core.errors import (
    AlreadyEnrolled,
    AlreadyPaid,
    CourseFree,
    GatewayUnavailable,
    InvalidRefund,
    InvalidSignature,
    InvalidWebhook,
    OrderClosed,
    PaymentNotFound,
)
from learnhub.core.metrics import PAYMENT_ORDERS, PAYMENT_VERIFICATIONS
from learnhub.models.enrollment import Enrollment
from learnhub.models.payment import (
    PENDING_STATUSES,
    Order,
    Payment,
    PaymentStatus,
)
from learnhub.repos.bundle import Repos
from learnhub.services.access_guard import AccessGuard, AccessStatus
from learnhub.services.gateway import (
    PaymentGateway,
    payment_signature,
    signatures_match,
    webhook_signature,
)
from learnhub.services.locks import KeyedLock

logger = logging.getLogger(__name__)

# Webhook events we act on; anything else is acknowledged and ignored.
EVENT_AUTHORIZED = "payment.authorized"
EVENT_CAPTURED = "payment.captured"
EVENT_ORDER_PAID = "order.paid"
EVENT_FAILED = "payment.failed"


@dataclass(frozen=True, slots=True)
class GatewayCredentials:
    key_id: str
    key_secret: str
    webhook_secret: str | None = None


def _purchase_key(user_id: str, course_id: str) -> str:
    return f"purchase:{user_id}:{course_id}"


def _json_object(value: Any) -> dict[str, Any]:
    """A webhook section that must be an object; missing sections read as empty."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise InvalidWebhook("webhook payload sections must be JSON objects")
    return value


class PaymentLedger:
    def __init__(
        self,
        repos: Repos,
        *,
        gateway: PaymentGateway,
        locks: KeyedLock,
        credentials: GatewayCredentials,
        clock: Callable[[], int] = utc_now,
    ) -> None:
        self._repos = repos
        self._gateway = gateway
        self._locks = locks
        self._credentials = credentials
        self._clock = clock
        self._guard = AccessGuard(repos)

    # -- checkout ----------------------------------------------------------

    async def create_order(self, user_id: str, course_id: str) -> Order:
        course = await self._guard.load_course(course_id)
        if course.is_free:
            PAYMENT_ORDERS.labels(outcome="rejected").inc()
            raise CourseFree()

        async with self._locks.hold(_purchase_key(user_id, course_id)):
            if await self._repos.payments.find_paid(user_id, course_id) is not None:
                PAYMENT_ORDERS.labels(outcome="rejected").inc()
                raise AlreadyPaid()
            if await self._repos.enrollments.get(user_id, course_id) is not None:
                PAYMENT_ORDERS.labels(outcome="rejected").inc()
                raise AlreadyEnrolled()

            amount_minor = course.price * 100
            now = self._clock()
            try:
                gateway_order_id = await self._gateway.create_order(
                    amount_minor=amount_minor,
                    currency=course.currency,
                    receipt=f"course_{course_id}_{now}",
                    notes={"user_id": user_id, "course_id": course_id},
                )
            except GatewayUnavailable:
                PAYMENT_ORDERS.labels(outcome="gateway_unavailable").inc()
                logger.warning(
                    "Order creation failed, gateway unavailable user=%s course=%s",
                    user_id,
                    course_id,
                )
                raise

            payment = Payment.new(
                user_id=user_id,
                course_id=course_id,
                amount=course.price,
                currency=course.currency,
                gateway_order_id=gateway_order_id,
                now=now,
            )
            await self._repos.payments.add(payment)
            await self._repos.commit()

        PAYMENT_ORDERS.labels(outcome="created").inc()
        logger.info(
            "Order created order_id=%s user=%s course=%s amount=%d",
            gateway_order_id,
            user_id,
            course_id,
            course.price,
        )
        return Order(
            payment_id=payment.id,
            gateway_order_id=gateway_order_id,
            amount_minor=amount_minor,
            currency=course.currency,
            gateway_key=self._credentials.key_id,
        )

    # -- confirmation ------------------------------------------------------

    async def verify_and_commit(
        self,
        user_id: str,
        course_id: str,
        gateway_order_id: str,
        gateway_payment_id: str,
        signature: str,
    ) -> UUID:
        """Check the checkout signature and settle the payment.

        Returns the payment id. Replaying the same confirmation for an
        already-paid payment returns the same id with no further effect.
        """
        async with self._locks.hold(_purchase_key(user_id, course_id)):
            payment = await self._repos.payments.find(
                user_id, course_id, gateway_order_id
            )
            if payment is None:
                raise PaymentNotFound()

            expected = payment_signature(
                self._credentials.key_secret, gateway_order_id, gateway_payment_id
            )
            valid = signatures_match(expected, signature)

            if payment.status is PaymentStatus.PAID:
                if valid and payment.gateway_payment_id in (None, gateway_payment_id):
                    PAYMENT_VERIFICATIONS.labels(outcome="duplicate").inc()
                    logger.info("Duplicate confirmation order_id=%s", gateway_order_id)
                    return payment.id
                PAYMENT_VERIFICATIONS.labels(outcome="invalid_signature").inc()
                logger.warning(
                    "Rejected signature for settled order_id=%s", gateway_order_id
                )
                raise InvalidSignature()

            if payment.status not in PENDING_STATUSES:
                PAYMENT_VERIFICATIONS.labels(outcome="closed").inc()
                raise OrderClosed(status=payment.status.value)

            if not valid:
                await self._fail(payment, "InvalidSignature")
                PAYMENT_VERIFICATIONS.labels(outcome="invalid_signature").inc()
                logger.warning(
                    "Signature mismatch order_id=%s user=%s",
                    gateway_order_id,
                    user_id,
                )
                raise InvalidSignature()

            if await self._repos.payments.find_paid(user_id, course_id) is not None:
                # A second order for the same course was paid; money must go back.
                await self._fail(payment, "AlreadyPaid")
                logger.warning(
                    "Second payment for a purchased course order_id=%s needs refund",
                    gateway_order_id,
                )
                raise AlreadyPaid()

            await self._settle(payment, gateway_payment_id, signature)
            return payment.id

    async def mark_failed(
        self, gateway_order_id: str, reason: str, *, user_id: str | None = None
    ) -> bool:
        """Record a checkout failure. False when the payment is not pending.

        ``user_id`` restricts the report to the buyer's own orders; the
        webhook path passes None.
        """
        payment = await self._repos.payments.get_by_gateway_order(gateway_order_id)
        if payment is None:
            return False
        if user_id is not None and payment.user_id != user_id:
            logger.warning(
                "Failure report for foreign order_id=%s by user=%s",
                gateway_order_id,
                user_id,
            )
            return False
        async with self._locks.hold(_purchase_key(payment.user_id, payment.course_id)):
            current = await self._repos.payments.get(payment.id)
            if current is None or current.status not in PENDING_STATUSES:
                logger.info(
                    "Ignored failure report order_id=%s status=%s",
                    gateway_order_id,
                    current.status if current else None,
                )
                return False
            changed = await self._repos.payments.compare_and_set(
                current.transition(PaymentStatus.FAILED, failure_reason=reason),
                PENDING_STATUSES,
            )
            await self._repos.commit()
        if changed:
            logger.info("Payment failed order_id=%s reason=%s", gateway_order_id, reason)
        return changed

    async def mark_attempted(
        self, gateway_order_id: str, gateway_payment_id: str
    ) -> bool:
        payment = await self._repos.payments.get_by_gateway_order(gateway_order_id)
        if payment is None or payment.status is not PaymentStatus.CREATED:
            return False
        attempted = payment.transition(
            PaymentStatus.ATTEMPTED, gateway_payment_id=gateway_payment_id
        )
        return await self._repos.payments.compare_and_set(
            attempted, frozenset({PaymentStatus.CREATED})
        )

    # -- after the sale ----------------------------------------------------

    async def refund(self, payment_id: UUID, amount: int | None = None) -> Payment:
        payment = await self._repos.payments.get(payment_id)
        if payment is None:
            raise PaymentNotFound()
        if payment.status is not PaymentStatus.PAID:
            raise OrderClosed(
                "only paid payments can be refunded", status=payment.status.value
            )
        refund_amount = payment.amount if amount is None else amount
        if not 0 < refund_amount <= payment.amount:
            raise InvalidRefund()

        refunded = payment.transition(
            PaymentStatus.REFUNDED,
            refund_amount=refund_amount,
            refunded_at=self._clock(),
        )
        if not await self._repos.payments.compare_and_set(
            refunded, frozenset({PaymentStatus.PAID})
        ):
            raise OrderClosed("payment changed concurrently, retry")
        logger.info(
            "Payment refunded payment_id=%s amount=%d", payment_id, refund_amount
        )
        return refunded

    async def get_status(self, user_id: str, course_id: str) -> AccessStatus:
        return await self._guard.status(user_id, course_id)

    async def history(
        self, user_id: str, *, page: int = 1, limit: int = 10
    ) -> tuple[list[Payment], int]:
        offset = (page - 1) * limit
        items = await self._repos.payments.list_for_user(
            user_id, offset=offset, limit=limit
        )
        total = await self._repos.payments.count_for_user(user_id)
        return items, total

    # -- webhooks ----------------------------------------------------------

    async def handle_webhook(self, raw_body: bytes, signature: str | None) -> str:
        """Verify and dispatch a gateway webhook; returns the event name."""
        secret = self._credentials.webhook_secret
        if secret is None:
            logger.warning("Webhook received but GATEWAY_WEBHOOK_SECRET is not set")
            raise InvalidSignature("webhooks are not configured")
        if not signatures_match(webhook_signature(secret, raw_body), signature):
            logger.warning("Webhook signature mismatch")
            raise InvalidSignature("invalid webhook signature")

        try:
            event: dict[str, Any] = json.loads(raw_body)
        except ValueError as exc:
            raise InvalidWebhook() from exc
        if not isinstance(event, dict):
            raise InvalidWebhook()

        name = str(event.get("event", ""))
        if name not in (EVENT_AUTHORIZED, EVENT_CAPTURED, EVENT_ORDER_PAID, EVENT_FAILED):
            logger.info("Ignoring webhook event=%s", name)
            return name
        body = _json_object(event.get("payload"))
        payment_entity = _json_object(_json_object(body.get("payment")).get("entity"))
        order_entity = _json_object(_json_object(body.get("order")).get("entity"))
        order_id = payment_entity.get("order_id") or order_entity.get("id")
        gateway_payment_id = payment_entity.get("id")
        if not order_id:
            raise InvalidWebhook("webhook payload carries no order id")

        if name == EVENT_AUTHORIZED:
            await self.mark_attempted(order_id, gateway_payment_id or "")
        elif name == EVENT_FAILED:
            reason = payment_entity.get("error_description") or "gateway reported failure"
            await self.mark_failed(order_id, reason)
        else:
            await self._settle_from_webhook(order_id, gateway_payment_id)
        logger.info("Webhook processed event=%s order_id=%s", name, order_id)
        return name

    async def _settle_from_webhook(
        self, gateway_order_id: str, gateway_payment_id: str | None
    ) -> None:
        payment = await self._repos.payments.get_by_gateway_order(gateway_order_id)
        if payment is None:
            logger.warning("Webhook for unknown order_id=%s", gateway_order_id)
            return
        async with self._locks.hold(_purchase_key(payment.user_id, payment.course_id)):
            current = await self._repos.payments.get(payment.id)
            if current is None or current.status not in PENDING_STATUSES:
                return
            if await self._repos.payments.find_paid(current.user_id, current.course_id):
                await self._fail(current, "AlreadyPaid")
                logger.warning(
                    "Captured second payment order_id=%s needs refund",
                    gateway_order_id,
                )
                return
            await self._settle(
                current, gateway_payment_id or current.gateway_payment_id, None
            )

    # -- internals ---------------------------------------------------------

    async def _settle(
        self,
        payment: Payment,
        gateway_payment_id: str | None,
        signature: str | None,
    ) -> None:
        paid = payment.transition(
            PaymentStatus.PAID,
            gateway_payment_id=gateway_payment_id,
            gateway_signature=signature,
            paid_at=self._clock(),
        )
        if not await self._repos.payments.compare_and_set(paid, PENDING_STATUSES):
            current = await self._repos.payments.get(payment.id)
            if current is not None and current.status is PaymentStatus.PAID:
                PAYMENT_VERIFICATIONS.labels(outcome="duplicate").inc()
                return
            PAYMENT_VERIFICATIONS.labels(outcome="closed").inc()
            raise OrderClosed()

        await self._repos.enrollments.add_if_absent(
            Enrollment.new(
                user_id=payment.user_id,
                course_id=payment.course_id,
                now=paid.paid_at or self._clock(),
            )
        )
        # Callers hold the purchase lock; the next holder must see this sale.
        await self._repos.commit()
        PAYMENT_VERIFICATIONS.labels(outcome="paid").inc()
        logger.info(
            "Payment settled order_id=%s user=%s course=%s",
            payment.gateway_order_id,
            payment.user_id,
            payment.course_id,
        )

    async def _fail(self, payment: Payment, reason: str) -> None:
        failed = payment.transition(PaymentStatus.FAILED, failure_reason=reason)
        await self._repos.payments.compare_and_set(failed, PENDING_STATUSES)
        # The caller raises next; keep the failed status despite the rollback.
        await self._repos.commit()
