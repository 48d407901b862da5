"""Writes under a keyed lock must be committed before the lock is released.

In PostgreSQL mode the request session commits again at teardown, after the
service has returned. Anything still uncommitted when the lock is dropped is
invisible to the next holder under READ COMMITTED. The staged repositories
below reproduce that: writes stay private to their session until ``commit``.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import replace

from learnhub.models.review import RatingSummary, Review
from learnhub.repos.bundle import Repos
from learnhub.services.enrollment_store import EnrollmentStore
from learnhub.services.gateway import FakePaymentGateway, payment_signature
from learnhub.services.locks import InMemoryKeyedLock
from learnhub.services.payment_ledger import GatewayCredentials, PaymentLedger
from learnhub.services.reviews_service import ReviewService
from tests.conftest import seed_course


class _StagedReviews:
    def __init__(self, shared) -> None:
        self._shared = shared
        self._pending: list[Review] = []

    async def add(self, review: Review) -> None:
        self._pending.append(review)

    async def get_for(self, user_id: str, course_id: str) -> Review | None:
        for review in self._pending:
            if review.user_id == user_id and review.course_id == course_id:
                return review
        return await self._shared.get_for(user_id, course_id)

    async def ratings_for_course(self, course_id: str) -> list[int]:
        committed = await self._shared.ratings_for_course(course_id)
        return committed + [r.rating for r in self._pending if r.course_id == course_id]

    async def flush(self) -> None:
        for review in self._pending:
            await self._shared.add(review)
        self._pending.clear()


class _StagedCourses:
    def __init__(self, shared) -> None:
        self._shared = shared
        self._rating: tuple[str, RatingSummary] | None = None

    async def get(self, course_id: str):
        return await self._shared.get(course_id)

    async def set_rating(self, course_id: str, rating: RatingSummary) -> None:
        self._rating = (course_id, rating)

    async def flush(self) -> None:
        if self._rating is not None:
            await self._shared.set_rating(*self._rating)
            self._rating = None


def _session(shared: Repos) -> Repos:
    reviews = _StagedReviews(shared.reviews)
    courses = _StagedCourses(shared.courses)

    async def commit() -> None:
        await asyncio.sleep(0)  # the database round trip
        await reviews.flush()
        await courses.flush()

    return replace(shared, reviews=reviews, courses=courses, commit=commit)  # type: ignore[arg-type]


def test_concurrent_reviews_both_counted(repos: Repos, clock) -> None:
    seed_course(repos, lesson_count=2)
    store = EnrollmentStore(repos, locks=InMemoryKeyedLock(), clock=clock)
    for user_id in ("u1", "u2"):
        asyncio.run(store.enroll(user_id, "py-101"))
        asyncio.run(store.mark_lesson_watched(user_id, "py-101", "l1"))
    locks = InMemoryKeyedLock()

    async def write(user_id: str, rating: int) -> None:
        session = _session(repos)
        service = ReviewService(session, locks=locks, clock=clock)
        await service.create(user_id, "py-101", rating=rating)
        await session.commit()  # request teardown

    async def race() -> None:
        await asyncio.gather(write("u1", 5), write("u2", 1))

    asyncio.run(race())

    assert sorted(asyncio.run(repos.reviews.ratings_for_course("py-101"))) == [1, 5]
    course = asyncio.run(repos.courses.get("py-101"))
    assert course.rating.count == 2
    assert course.rating.average == 3.0


class _RecordingLock:
    def __init__(self, events: list[str]) -> None:
        self._inner = InMemoryKeyedLock()
        self._events = events

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        async with self._inner.hold(key):
            self._events.append("lock")
            yield
            self._events.append("unlock")


def test_purchase_commits_before_unlock(repos: Repos, clock) -> None:
    seed_course(repos, "paid", price=499)
    events: list[str] = []

    async def commit() -> None:
        events.append("commit")

    ledger = PaymentLedger(
        replace(repos, commit=commit),
        gateway=FakePaymentGateway(),
        locks=_RecordingLock(events),
        credentials=GatewayCredentials(key_id="rzp_test_key", key_secret="k"),
        clock=clock,
    )

    order = asyncio.run(ledger.create_order("u1", "paid"))
    asyncio.run(
        ledger.verify_and_commit(
            "u1",
            "paid",
            order.gateway_order_id,
            "pay_1",
            payment_signature("k", order.gateway_order_id, "pay_1"),
        )
    )

    assert events == ["lock", "commit", "unlock", "lock", "commit", "unlock"]


def test_lesson_mark_commits_before_unlock(repos: Repos, clock) -> None:
    seed_course(repos)
    events: list[str] = []

    async def commit() -> None:
        events.append("commit")

    store = EnrollmentStore(
        replace(repos, commit=commit), locks=_RecordingLock(events), clock=clock
    )
    asyncio.run(store.enroll("u1", "py-101"))
    asyncio.run(store.mark_lesson_watched("u1", "py-101", "l1"))

    assert events == ["lock", "commit", "unlock"]
