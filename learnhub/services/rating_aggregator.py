"""Course rating summary, recomputed from the live review set.

The stored ``{average, count}`` on a course is a cache of
``summarize(ratings_for_course)``; it is overwritten on every review
write, never incremented. Writers hold ``lock_course`` across the review
write and the recompute so two concurrent reviews cannot leave a summary
that misses one of them.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from learnhub.core.errors import (
    AlreadyReviewed,
    CourseNotCompleted,
    DomainError,
    NotEnrolled,
)
from learnhub.core.metrics import RATING_RECOMPUTES
from learnhub.models.enrollment import compute_progress
from learnhub.models.review import RatingSummary, Review
from learnhub.repos.bundle import Repos
from learnhub.services.access_guard import AccessGuard
from learnhub.services.locks import KeyedLock

logger = logging.getLogger(__name__)

# Reviews open at half the course; certificates need all of it
# (see completion_gate.COMPLETION_PROGRESS).
REVIEW_PROGRESS_THRESHOLD = 50


def summarize(ratings: Iterable[int]) -> RatingSummary:
    """Average rounded half up to one decimal, plus a 1-5 histogram."""
    distribution = [0, 0, 0, 0, 0]
    total = 0
    count = 0
    for r in ratings:
        distribution[r - 1] += 1
        total += r
        count += 1
    if count == 0:
        return RatingSummary()
    average = (Decimal(total) / Decimal(count)).quantize(
        Decimal("0.1"), rounding=ROUND_HALF_UP
    )
    return RatingSummary(
        average=float(average), count=count, distribution=tuple(distribution)
    )


@dataclass(frozen=True, slots=True)
class Eligibility:
    allowed: bool
    reason: str | None = None
    message: str | None = None

    def raise_if_denied(self) -> None:
        if self.allowed:
            return
        error: type[DomainError] = {
            AlreadyReviewed.code: AlreadyReviewed,
            NotEnrolled.code: NotEnrolled,
            CourseNotCompleted.code: CourseNotCompleted,
        }[self.reason or ""]
        raise error(self.message)


class RatingAggregator:
    def __init__(self, repos: Repos, *, locks: KeyedLock) -> None:
        self._repos = repos
        self._locks = locks
        self._guard = AccessGuard(repos)

    def lock_course(self, course_id: str) -> AbstractAsyncContextManager[None]:
        return self._locks.hold(f"course-rating:{course_id}")

    async def recompute_course_rating(
        self, course_id: str, *, trigger: str = "manual"
    ) -> RatingSummary:
        ratings = await self._repos.reviews.ratings_for_course(course_id)
        summary = summarize(ratings)
        await self._repos.courses.set_rating(course_id, summary)
        RATING_RECOMPUTES.labels(trigger=trigger).inc()
        logger.info(
            "Rating recomputed course=%s average=%.1f count=%d trigger=%s",
            course_id,
            summary.average,
            summary.count,
            trigger,
        )
        return summary

    async def on_review_written(
        self, review: Review, *, created: bool = True
    ) -> RatingSummary:
        return await self.recompute_course_rating(
            review.course_id, trigger="created" if created else "updated"
        )

    async def on_review_deleted(self, review: Review) -> RatingSummary:
        return await self.recompute_course_rating(review.course_id, trigger="deleted")

    async def can_review(self, user_id: str, course_id: str) -> Eligibility:
        course = await self._guard.load_course(course_id)
        if await self._repos.reviews.get_for(user_id, course_id) is not None:
            return Eligibility(
                False, AlreadyReviewed.code, "you have already reviewed this course"
            )
        enrollment = await self._repos.enrollments.get(user_id, course_id)
        if enrollment is None:
            return Eligibility(
                False, NotEnrolled.code, "you must be enrolled to review this course"
            )
        progress = compute_progress(enrollment.watched_lesson_ids, course.lesson_ids)
        if progress < REVIEW_PROGRESS_THRESHOLD:
            return Eligibility(
                False,
                CourseNotCompleted.code,
                f"complete at least {REVIEW_PROGRESS_THRESHOLD}% of the course to review it",
            )
        return Eligibility(True)
