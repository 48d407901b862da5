"""PostgreSQL implementation of PaymentRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.db.tables import PaymentRow
from learnhub.models.payment import Payment, PaymentStatus


class PgPaymentRepo:
    """Satisfies the PaymentRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, payment: Payment) -> None:
        row = PaymentRow(
            id=payment.id,
            user_id=payment.user_id,
            course_id=payment.course_id,
            amount=payment.amount,
            currency=payment.currency,
            gateway_order_id=payment.gateway_order_id,
            gateway_payment_id=payment.gateway_payment_id,
            gateway_signature=payment.gateway_signature,
            status=payment.status.value,
            failure_reason=payment.failure_reason,
            created_at=payment.created_at,
            paid_at=payment.paid_at,
            refund_amount=payment.refund_amount,
            refunded_at=payment.refunded_at,
        )
        self._session.add(row)
        await self._session.flush()

    async def get(self, payment_id: UUID) -> Payment | None:
        stmt = select(PaymentRow).where(PaymentRow.id == payment_id)
        return await self._one(stmt)

    async def get_by_gateway_order(self, gateway_order_id: str) -> Payment | None:
        stmt = select(PaymentRow).where(
            PaymentRow.gateway_order_id == gateway_order_id
        )
        return await self._one(stmt)

    async def find(
        self, user_id: str, course_id: str, gateway_order_id: str
    ) -> Payment | None:
        stmt = select(PaymentRow).where(
            PaymentRow.user_id == user_id,
            PaymentRow.course_id == course_id,
            PaymentRow.gateway_order_id == gateway_order_id,
        )
        return await self._one(stmt)

    async def find_paid(self, user_id: str, course_id: str) -> Payment | None:
        stmt = select(PaymentRow).where(
            PaymentRow.user_id == user_id,
            PaymentRow.course_id == course_id,
            PaymentRow.status == PaymentStatus.PAID.value,
        )
        return await self._one(stmt)

    async def compare_and_set(
        self, updated: Payment, expected: frozenset[PaymentStatus]
    ) -> bool:
        """Conditional UPDATE; only one concurrent writer sees rowcount 1."""
        stmt = (
            update(PaymentRow)
            .where(
                PaymentRow.id == updated.id,
                PaymentRow.status.in_([s.value for s in expected]),
            )
            .values(
                status=updated.status.value,
                gateway_payment_id=updated.gateway_payment_id,
                gateway_signature=updated.gateway_signature,
                failure_reason=updated.failure_reason,
                paid_at=updated.paid_at,
                refund_amount=updated.refund_amount,
                refunded_at=updated.refunded_at,
            )
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def list_for_user(
        self, user_id: str, *, offset: int = 0, limit: int = 10
    ) -> list[Payment]:
        stmt = (
            select(PaymentRow)
            .where(PaymentRow.user_id == user_id)
            .order_by(PaymentRow.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_payment(r) for r in rows]

    async def count_for_user(self, user_id: str) -> int:
        stmt = select(func.count()).where(PaymentRow.user_id == user_id)
        return (await self._session.execute(stmt)).scalar_one()

    async def _one(self, stmt) -> Payment | None:
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_payment(row)


def _row_to_payment(row: PaymentRow) -> Payment:
    return Payment(
        id=row.id,
        user_id=row.user_id,
        course_id=row.course_id,
        amount=row.amount,
        currency=row.currency,
        gateway_order_id=row.gateway_order_id,
        created_at=row.created_at,
        status=PaymentStatus(row.status),
        gateway_payment_id=row.gateway_payment_id,
        gateway_signature=row.gateway_signature,
        failure_reason=row.failure_reason,
        paid_at=row.paid_at,
        refund_amount=row.refund_amount,
        refunded_at=row.refunded_at,
    )
