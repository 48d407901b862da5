"""Checkout endpoints.

Purchase sequence:
  Client -> POST /v1/payments/orders {course_id}
         <- {order_id, amount (minor units), currency, gateway_key}
  Client -> gateway checkout widget -> {payment_id, signature}
  Client -> POST /v1/payments/verify {order_id, payment_id, signature, course_id}
         <- {success, payment_id}           (enrollment created here)

The gateway also calls POST /v1/payments/webhook; settlement through
either path is idempotent.
"""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Header, Query, Request, status
from pydantic import BaseModel, Field

from learnhub.api.dependencies import get_payment_ledger, require_role, require_user
from learnhub.models.payment import Payment
from learnhub.models.principal import Principal
from learnhub.services.payment_ledger import PaymentLedger

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/payments", tags=["payments"])

Ledger = Annotated[PaymentLedger, Depends(get_payment_ledger)]


class CreateOrderIn(BaseModel):
    course_id: str


class OrderOut(BaseModel):
    order_id: str
    payment_id: str
    amount: int
    currency: str
    gateway_key: str


class VerifyIn(BaseModel):
    order_id: str
    payment_id: str
    signature: str
    course_id: str


class VerifyOut(BaseModel):
    success: bool
    payment_id: str


class FailedIn(BaseModel):
    order_id: str
    reason: str = Field(default="payment failed", max_length=500)


class FailedOut(BaseModel):
    recorded: bool


class AccessStatusOut(BaseModel):
    is_free: bool
    has_paid: bool
    is_enrolled: bool
    can_access: bool
    course_price: int


class PaymentOut(BaseModel):
    id: str
    course_id: str
    amount: int
    currency: str
    status: str
    gateway_order_id: str
    gateway_payment_id: str | None
    failure_reason: str | None
    created_at: int
    paid_at: int | None
    refund_amount: int | None
    refunded_at: int | None


class PaymentPageOut(BaseModel):
    items: list[PaymentOut]
    page: int
    limit: int
    total: int


class RefundIn(BaseModel):
    amount: int | None = None


def _payment_out(p: Payment) -> PaymentOut:
    return PaymentOut(
        id=str(p.id),
        course_id=p.course_id,
        amount=p.amount,
        currency=p.currency,
        status=p.status.value,
        gateway_order_id=p.gateway_order_id,
        gateway_payment_id=p.gateway_payment_id,
        failure_reason=p.failure_reason,
        created_at=p.created_at,
        paid_at=p.paid_at,
        refund_amount=p.refund_amount,
        refunded_at=p.refunded_at,
    )


@router.post("/orders", response_model=OrderOut, status_code=status.HTTP_201_CREATED)
async def create_order(
    body: CreateOrderIn,
    ledger: Ledger,
    principal: Annotated[Principal, Depends(require_user)],
) -> OrderOut:
    order = await ledger.create_order(principal.user_id, body.course_id)
    return OrderOut(
        order_id=order.gateway_order_id,
        payment_id=str(order.payment_id),
        amount=order.amount_minor,
        currency=order.currency,
        gateway_key=order.gateway_key,
    )


@router.post("/verify", response_model=VerifyOut)
async def verify_payment(
    body: VerifyIn,
    ledger: Ledger,
    principal: Annotated[Principal, Depends(require_user)],
) -> VerifyOut:
    payment_id = await ledger.verify_and_commit(
        principal.user_id,
        body.course_id,
        body.order_id,
        body.payment_id,
        body.signature,
    )
    return VerifyOut(success=True, payment_id=str(payment_id))


@router.post("/failed", response_model=FailedOut)
async def report_failure(
    body: FailedIn,
    ledger: Ledger,
    principal: Annotated[Principal, Depends(require_user)],
) -> FailedOut:
    recorded = await ledger.mark_failed(
        body.order_id, body.reason, user_id=principal.user_id
    )
    return FailedOut(recorded=recorded)


@router.get("/status/{course_id}", response_model=AccessStatusOut)
async def payment_status(
    course_id: str,
    ledger: Ledger,
    principal: Annotated[Principal, Depends(require_user)],
) -> AccessStatusOut:
    s = await ledger.get_status(principal.user_id, course_id)
    return AccessStatusOut(
        is_free=s.is_free,
        has_paid=s.has_paid,
        is_enrolled=s.is_enrolled,
        can_access=s.can_access,
        course_price=s.course_price,
    )


@router.get("/history", response_model=PaymentPageOut)
async def payment_history(
    ledger: Ledger,
    principal: Annotated[Principal, Depends(require_user)],
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
) -> PaymentPageOut:
    items, total = await ledger.history(principal.user_id, page=page, limit=limit)
    return PaymentPageOut(
        items=[_payment_out(p) for p in items], page=page, limit=limit, total=total
    )


@router.post("/{payment_id}/refund", response_model=PaymentOut)
async def refund_payment(
    payment_id: UUID,
    body: RefundIn,
    ledger: Ledger,
    admin: Annotated[Principal, Depends(require_role("admin"))],
) -> PaymentOut:
    refunded = await ledger.refund(payment_id, body.amount)
    logger.info("Refund issued payment_id=%s by admin=%s", payment_id, admin.user_id)
    return _payment_out(refunded)


@router.post("/webhook")
async def gateway_webhook(
    request: Request,
    ledger: Ledger,
    x_razorpay_signature: Annotated[str | None, Header()] = None,
) -> dict:
    """Gateway-to-server notifications, authenticated by HMAC over the raw body."""
    raw_body = await request.body()
    event = await ledger.handle_webhook(raw_body, x_razorpay_signature)
    return {"status": "ok", "event": event}
