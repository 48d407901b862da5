from __future__ import annotations

import pytest

from learnhub.models.payment import (
    IllegalTransition,
    Payment,
    PaymentStatus,
    can_transition,
)


def _payment(**changes) -> Payment:
    p = Payment.new(
        user_id="u1",
        course_id="py-101",
        amount=499,
        currency="INR",
        gateway_order_id="order_1",
        now=100,
    )
    return p.transition(**changes) if changes else p


@pytest.mark.parametrize(
    ("src", "dst"),
    [
        (PaymentStatus.CREATED, PaymentStatus.ATTEMPTED),
        (PaymentStatus.CREATED, PaymentStatus.PAID),
        (PaymentStatus.CREATED, PaymentStatus.FAILED),
        (PaymentStatus.ATTEMPTED, PaymentStatus.PAID),
        (PaymentStatus.ATTEMPTED, PaymentStatus.FAILED),
        (PaymentStatus.PAID, PaymentStatus.REFUNDED),
    ],
)
def test_legal_transitions(src: PaymentStatus, dst: PaymentStatus) -> None:
    assert can_transition(src, dst)


@pytest.mark.parametrize(
    ("src", "dst"),
    [
        (PaymentStatus.PAID, PaymentStatus.FAILED),
        (PaymentStatus.PAID, PaymentStatus.CREATED),
        (PaymentStatus.FAILED, PaymentStatus.PAID),
        (PaymentStatus.REFUNDED, PaymentStatus.PAID),
        (PaymentStatus.ATTEMPTED, PaymentStatus.CREATED),
    ],
)
def test_illegal_transitions(src: PaymentStatus, dst: PaymentStatus) -> None:
    assert not can_transition(src, dst)


def test_new_payment_starts_created() -> None:
    p = _payment()
    assert p.status is PaymentStatus.CREATED
    assert p.paid_at is None
    assert p.gateway_payment_id is None


def test_transition_returns_copy() -> None:
    p = _payment()
    paid = p.transition(PaymentStatus.PAID, gateway_payment_id="pay_1", paid_at=200)
    assert p.status is PaymentStatus.CREATED
    assert paid.status is PaymentStatus.PAID
    assert paid.id == p.id
    assert paid.paid_at == 200


def test_failed_payment_cannot_be_paid() -> None:
    failed = _payment().transition(PaymentStatus.FAILED, failure_reason="declined")
    with pytest.raises(IllegalTransition):
        failed.transition(PaymentStatus.PAID)


def test_paid_payment_only_accepts_refund_fields() -> None:
    paid = _payment().transition(PaymentStatus.PAID, paid_at=200)
    with pytest.raises(IllegalTransition):
        paid.transition(PaymentStatus.REFUNDED, amount=1)

    refunded = paid.transition(
        PaymentStatus.REFUNDED, refund_amount=499, refunded_at=300
    )
    assert refunded.amount == 499
    assert refunded.refund_amount == 499
