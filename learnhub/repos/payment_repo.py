from __future__ import annotations

from typing import Protocol
from uuid import UUID

from learnhub.models.payment import Payment, PaymentStatus


class PaymentRepo(Protocol):
    async def add(self, payment: Payment) -> None: ...
    async def get(self, payment_id: UUID) -> Payment | None: ...
    async def get_by_gateway_order(self, gateway_order_id: str) -> Payment | None: ...
    async def find(
        self, user_id: str, course_id: str, gateway_order_id: str
    ) -> Payment | None: ...
    async def find_paid(self, user_id: str, course_id: str) -> Payment | None: ...
    async def compare_and_set(
        self, updated: Payment, expected: frozenset[PaymentStatus]
    ) -> bool: ...
    async def list_for_user(
        self, user_id: str, *, offset: int = 0, limit: int = 10
    ) -> list[Payment]: ...
    async def count_for_user(self, user_id: str) -> int: ...


class InMemoryPaymentRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Payment] = {}
        self._by_order: dict[str, UUID] = {}

    async def add(self, payment: Payment) -> None:
        if payment.gateway_order_id in self._by_order:
            raise ValueError("gateway order already recorded")
        self._by_id[payment.id] = payment
        self._by_order[payment.gateway_order_id] = payment.id

    async def get(self, payment_id: UUID) -> Payment | None:
        return self._by_id.get(payment_id)

    async def get_by_gateway_order(self, gateway_order_id: str) -> Payment | None:
        payment_id = self._by_order.get(gateway_order_id)
        return self._by_id.get(payment_id) if payment_id is not None else None

    async def find(
        self, user_id: str, course_id: str, gateway_order_id: str
    ) -> Payment | None:
        p = await self.get_by_gateway_order(gateway_order_id)
        if p is None or p.user_id != user_id or p.course_id != course_id:
            return None
        return p

    async def find_paid(self, user_id: str, course_id: str) -> Payment | None:
        paid = [
            p
            for p in self._by_id.values()
            if p.user_id == user_id
            and p.course_id == course_id
            and p.status is PaymentStatus.PAID
        ]
        return max(paid, key=lambda p: p.paid_at or 0, default=None)

    async def compare_and_set(
        self, updated: Payment, expected: frozenset[PaymentStatus]
    ) -> bool:
        """Store ``updated`` only if the current status is in ``expected``."""
        current = self._by_id.get(updated.id)
        if current is None or current.status not in expected:
            return False
        self._by_id[updated.id] = updated
        return True

    async def list_for_user(
        self, user_id: str, *, offset: int = 0, limit: int = 10
    ) -> list[Payment]:
        mine = sorted(
            (p for p in self._by_id.values() if p.user_id == user_id),
            key=lambda p: p.created_at,
            reverse=True,
        )
        return mine[offset : offset + limit]

    async def count_for_user(self, user_id: str) -> int:
        return sum(1 for p in self._by_id.values() if p.user_id == user_id)
