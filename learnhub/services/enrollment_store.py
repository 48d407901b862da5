from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace

from learnhub.core.clock import utc_now
from learnhub.core.errors import NotEnrolled, PaymentRequired
from learnhub.core.metrics import LESSONS_MARKED
from learnhub.models.enrollment import Enrollment, compute_progress
from learnhub.repos.bundle import Repos
from learnhub.services.access_guard import AccessGuard
from learnhub.services.locks import KeyedLock

logger = logging.getLogger(__name__)


def enrollment_key(user_id: str, course_id: str) -> str:
    return f"enrollment:{user_id}:{course_id}"


class EnrollmentStore:
    """Per-user-per-course progress.

    Lesson marks are a read-modify-write of the watched set, so they run
    under the enrollment lock (plus a row lock in PostgreSQL); two tabs
    marking different lessons at the same time both land.
    """

    def __init__(
        self,
        repos: Repos,
        *,
        locks: KeyedLock,
        clock: Callable[[], int] = utc_now,
    ) -> None:
        self._repos = repos
        self._locks = locks
        self._clock = clock
        self._guard = AccessGuard(repos)

    async def enroll(self, user_id: str, course_id: str) -> Enrollment:
        """Idempotent: enrolling twice returns the original record."""
        course = await self._guard.load_course(course_id)
        if not course.is_free:
            if await self._repos.payments.find_paid(user_id, course_id) is None:
                raise PaymentRequired(
                    course_price=course.price,
                    currency=course.currency,
                    course_id=course_id,
                )
        enrollment = await self._repos.enrollments.add_if_absent(
            Enrollment.new(user_id=user_id, course_id=course_id, now=self._clock())
        )
        logger.info("Enrolled user=%s course=%s", user_id, course_id)
        return enrollment

    async def mark_lesson_watched(
        self, user_id: str, course_id: str, lesson_id: str
    ) -> Enrollment:
        course = await self._guard.load_course(course_id)
        async with self._locks.hold(enrollment_key(user_id, course_id)):
            enrollment = await self._repos.enrollments.get(
                user_id, course_id, for_update=True
            )
            if enrollment is None:
                raise NotEnrolled()

            if course.get_lesson(lesson_id) is None:
                LESSONS_MARKED.labels(effect="unknown_lesson").inc()
                logger.info(
                    "Ignored unknown lesson=%s course=%s", lesson_id, course_id
                )
                return enrollment
            if lesson_id in enrollment.watched_lesson_ids:
                LESSONS_MARKED.labels(effect="duplicate").inc()
                return enrollment

            updated = enrollment.with_lesson_watched(lesson_id, course.lesson_ids)
            await self._repos.enrollments.save_progress(updated)
            await self._repos.commit()

        LESSONS_MARKED.labels(effect="recorded").inc()
        logger.info(
            "Lesson watched user=%s course=%s lesson=%s progress=%d",
            user_id,
            course_id,
            lesson_id,
            updated.progress_percent,
        )
        return updated

    async def get_progress(self, user_id: str, course_id: str) -> Enrollment:
        """Enrollment with progress measured against the current lesson list."""
        course = await self._guard.load_course(course_id)
        enrollment = await self._repos.enrollments.get(user_id, course_id)
        if enrollment is None:
            raise NotEnrolled()
        return replace(
            enrollment,
            progress_percent=compute_progress(
                enrollment.watched_lesson_ids, course.lesson_ids
            ),
        )
