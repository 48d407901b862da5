"""Payment records and their state machine.

    created ──► attempted ──► paid ──► refunded
       │            │
       ├──► paid    └──► failed
       └──► failed

``failed`` and ``refunded`` are terminal; a failed checkout is retried
with a brand-new order. Once a payment is ``paid`` its amount and gateway
fields never change again; only the refund fields may be filled in.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Any
from uuid import UUID, uuid4


class PaymentStatus(StrEnum):
    CREATED = "created"
    ATTEMPTED = "attempted"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.CREATED: frozenset(
        {PaymentStatus.ATTEMPTED, PaymentStatus.PAID, PaymentStatus.FAILED}
    ),
    PaymentStatus.ATTEMPTED: frozenset({PaymentStatus.PAID, PaymentStatus.FAILED}),
    PaymentStatus.PAID: frozenset({PaymentStatus.REFUNDED}),
    PaymentStatus.FAILED: frozenset(),
    PaymentStatus.REFUNDED: frozenset(),
}

# Statuses from which a gateway confirmation may still settle the payment.
PENDING_STATUSES = frozenset({PaymentStatus.CREATED, PaymentStatus.ATTEMPTED})

_REFUND_FIELDS = frozenset({"refund_amount", "refunded_at"})


class IllegalTransition(ValueError):
    def __init__(self, src: PaymentStatus, dst: PaymentStatus) -> None:
        super().__init__(f"illegal payment transition {src} -> {dst}")
        self.src = src
        self.dst = dst


def can_transition(src: PaymentStatus, dst: PaymentStatus) -> bool:
    return dst in _TRANSITIONS[src]


@dataclass(frozen=True, slots=True)
class Payment:
    id: UUID
    user_id: str
    course_id: str
    amount: int  # major currency units, mirrors Course.price at checkout
    currency: str
    gateway_order_id: str
    created_at: int
    status: PaymentStatus = PaymentStatus.CREATED
    gateway_payment_id: str | None = None
    gateway_signature: str | None = None
    failure_reason: str | None = None
    paid_at: int | None = None
    refund_amount: int | None = None
    refunded_at: int | None = None

    @staticmethod
    def new(
        *,
        user_id: str,
        course_id: str,
        amount: int,
        currency: str,
        gateway_order_id: str,
        now: int,
    ) -> Payment:
        return Payment(
            id=uuid4(),
            user_id=user_id,
            course_id=course_id,
            amount=amount,
            currency=currency,
            gateway_order_id=gateway_order_id,
            created_at=now,
        )

    def transition(self, dst: PaymentStatus, **changes: Any) -> Payment:
        """Return a copy moved to ``dst``; raise IllegalTransition otherwise."""
        if not can_transition(self.status, dst):
            raise IllegalTransition(self.status, dst)
        if self.status is PaymentStatus.PAID and not set(changes) <= _REFUND_FIELDS:
            raise IllegalTransition(self.status, dst)
        return replace(self, status=dst, **changes)


@dataclass(frozen=True, slots=True)
class Order:
    """What the client needs to open the gateway's checkout widget."""

    payment_id: UUID
    gateway_order_id: str
    amount_minor: int  # e.g. paise for INR
    currency: str
    gateway_key: str
