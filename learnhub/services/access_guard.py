"""Course access decisions.

Access is never stored; it is derived on every call:

    can_access = course is free OR the user holds a ``paid`` payment

Content (lessons, assessments, certificates) additionally needs an
enrollment record, so a buyer whose enrollment write was lost is told to
enroll rather than to pay again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from learnhub.core.errors import EnrollmentRequired, NotFound, PaymentRequired
from learnhub.models.course import Course
from learnhub.models.enrollment import Enrollment
from learnhub.repos.bundle import Repos

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AccessStatus:
    course_price: int
    is_free: bool
    has_paid: bool
    is_enrolled: bool

    @property
    def can_access(self) -> bool:
        return self.is_free or self.has_paid


class AccessGuard:
    def __init__(self, repos: Repos) -> None:
        self._repos = repos

    async def load_course(self, course_id: str) -> Course:
        course = await self._repos.courses.get(course_id)
        if course is None:
            raise NotFound("course not found")
        return course

    async def list_courses(self) -> list[Course]:
        return await self._repos.courses.list_published()

    async def status(self, user_id: str, course_id: str) -> AccessStatus:
        course = await self.load_course(course_id)
        has_paid = False
        if not course.is_free:
            has_paid = await self._repos.payments.find_paid(user_id, course_id) is not None
        enrollment = await self._repos.enrollments.get(user_id, course_id)
        return AccessStatus(
            course_price=course.price,
            is_free=course.is_free,
            has_paid=has_paid,
            is_enrolled=enrollment is not None,
        )

    async def check_course_access(self, user_id: str, course_id: str) -> Course:
        """Return the course, or raise PaymentRequired carrying its price."""
        course = await self.load_course(course_id)
        if course.is_free:
            return course
        if await self._repos.payments.find_paid(user_id, course_id) is None:
            logger.info(
                "Access denied, payment required user=%s course=%s",
                user_id,
                course_id,
            )
            raise PaymentRequired(
                course_price=course.price,
                currency=course.currency,
                course_id=course_id,
            )
        return course

    async def check_content_access(
        self, user_id: str, course_id: str
    ) -> tuple[Course, Enrollment]:
        course = await self.check_course_access(user_id, course_id)
        enrollment = await self._repos.enrollments.get(user_id, course_id)
        if enrollment is None:
            raise EnrollmentRequired(course_id=course_id)
        return course, enrollment
