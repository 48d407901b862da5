"""Course completion state machine and certificate gate.

    NOT_STARTED ──► IN_PROGRESS ──► ASSESSMENT_REQUIRED ──► COMPLETED
                         │                                    ▲
                         └──────── (no assessment) ───────────┘

NOT_STARTED means there is no enrollment yet; enrolling moves the learner
to IN_PROGRESS. The state is never stored. ``evaluate`` derives it from
the enrollment's watched lessons, the attempt log and the sticky
``certificate_earned`` flag, so a replayed event can at worst re-derive
the same state. The only write is ``complete``: a compare-and-swap on
``certificate_earned`` that exactly one caller wins, and only that caller
issues the certificate.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from uuid import UUID

from learnhub.core.clock import utc_now
from learnhub.core.errors import AssessmentRequired, CourseNotFinished
from learnhub.models.course import Course
from learnhub.models.enrollment import CompletionState, Enrollment, compute_progress
from learnhub.repos.bundle import Repos
from learnhub.services.access_guard import AccessGuard
from learnhub.services.assessment_log import AssessmentLog
from learnhub.services.certificates import CertificateRegistry

logger = logging.getLogger(__name__)

COMPLETION_PROGRESS = 100


@dataclass(frozen=True, slots=True)
class Completion:
    state: CompletionState
    progress_percent: int
    certificate_earned: bool = False
    certificate_earned_at: int | None = None
    certificate_id: UUID | None = None


class CompletionGate:
    def __init__(
        self,
        repos: Repos,
        *,
        clock: Callable[[], int] = utc_now,
    ) -> None:
        self._repos = repos
        self._clock = clock
        self._guard = AccessGuard(repos)
        self._assessments = AssessmentLog(repos, clock=clock)
        self._certificates = CertificateRegistry(repos)

    async def evaluate(self, user_id: str, course_id: str) -> Completion:
        course = await self._guard.load_course(course_id)
        enrollment = await self._repos.enrollments.get(user_id, course_id)
        return await self._derive(user_id, course, enrollment)

    async def complete(self, user_id: str, course_id: str) -> Completion:
        # A refunded buyer keeps the enrollment row but loses access.
        course = await self._guard.check_course_access(user_id, course_id)
        enrollment = await self._repos.enrollments.get(user_id, course_id)
        if enrollment is None:
            enrollment = await self._enroll_lazily(user_id, course)

        if enrollment.certificate_earned:
            return await self._earned(user_id, course_id, enrollment)

        completion = await self._derive(user_id, course, enrollment)
        if completion.state is not CompletionState.COMPLETED:
            if completion.progress_percent < COMPLETION_PROGRESS:
                raise CourseNotFinished(progress_percent=completion.progress_percent)
            raise AssessmentRequired()

        now = self._clock()
        won = await self._repos.enrollments.mark_certificate_earned(
            user_id, course_id, now
        )
        if not won:
            # A concurrent call got there first; report what it stored.
            stored = await self._repos.enrollments.get(user_id, course_id)
            return await self._earned(user_id, course_id, stored or enrollment)

        score = await self._assessments.best_passing_score(user_id, course_id)
        certificate = await self._certificates.issue(
            user_id,
            course_id,
            issued_at=now,
            score=score if score is not None else COMPLETION_PROGRESS,
        )
        logger.info("Course completed user=%s course=%s", user_id, course_id)
        return Completion(
            state=CompletionState.COMPLETED,
            progress_percent=completion.progress_percent,
            certificate_earned=True,
            certificate_earned_at=now,
            certificate_id=certificate.id,
        )

    async def _enroll_lazily(self, user_id: str, course: Course) -> Enrollment:
        logger.info("Lazy enrollment on completion user=%s course=%s", user_id, course.id)
        return await self._repos.enrollments.add_if_absent(
            Enrollment.new(user_id=user_id, course_id=course.id, now=self._clock())
        )

    async def _derive(
        self, user_id: str, course: Course, enrollment: Enrollment | None
    ) -> Completion:
        if enrollment is None:
            return Completion(state=CompletionState.NOT_STARTED, progress_percent=0)

        progress = compute_progress(enrollment.watched_lesson_ids, course.lesson_ids)
        if enrollment.certificate_earned:
            return Completion(
                state=CompletionState.COMPLETED,
                progress_percent=progress,
                certificate_earned=True,
                certificate_earned_at=enrollment.certificate_earned_at,
            )

        if progress < COMPLETION_PROGRESS:
            # enrolled is enough to be in progress, even at 0 %
            state = CompletionState.IN_PROGRESS
        elif course.has_assessments and not await self._assessments.has_passed(
            user_id, course.id
        ):
            state = CompletionState.ASSESSMENT_REQUIRED
        else:
            state = CompletionState.COMPLETED
        return Completion(state=state, progress_percent=progress)

    async def _earned(
        self, user_id: str, course_id: str, enrollment: Enrollment
    ) -> Completion:
        certificate = await self._certificates.get_for(user_id, course_id)
        course = await self._guard.load_course(course_id)
        return Completion(
            state=CompletionState.COMPLETED,
            progress_percent=compute_progress(
                enrollment.watched_lesson_ids, course.lesson_ids
            ),
            certificate_earned=True,
            certificate_earned_at=enrollment.certificate_earned_at,
            certificate_id=certificate.id if certificate else None,
        )
