"""One set of repositories per request.

Services receive a ``Repos`` instead of individual repositories so that
every repository in a request shares the same unit of work: one
SQLAlchemy session in PostgreSQL mode, process-wide dicts otherwise.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.repos.assessment_repo import AssessmentRepo, InMemoryAssessmentRepo
from learnhub.repos.certificate_repo import CertificateRepo, InMemoryCertificateRepo
from learnhub.repos.course_repo import CourseRepo, InMemoryCourseRepo
from learnhub.repos.enrollment_repo import EnrollmentRepo, InMemoryEnrollmentRepo
from learnhub.repos.payment_repo import InMemoryPaymentRepo, PaymentRepo
from learnhub.repos.pg_assessment_repo import PgAssessmentRepo
from learnhub.repos.pg_certificate_repo import PgCertificateRepo
from learnhub.repos.pg_course_repo import PgCourseRepo
from learnhub.repos.pg_enrollment_repo import PgEnrollmentRepo
from learnhub.repos.pg_payment_repo import PgPaymentRepo
from learnhub.repos.pg_review_repo import PgReviewRepo
from learnhub.repos.review_repo import InMemoryReviewRepo, ReviewRepo


async def _no_commit() -> None:
    return None


@dataclass(frozen=True)
class Repos:
    courses: CourseRepo
    enrollments: EnrollmentRepo
    payments: PaymentRepo
    assessments: AssessmentRepo
    reviews: ReviewRepo
    certificates: CertificateRepo
    # Persist work done so far even if the request then fails with a
    # DomainError (e.g. a payment marked failed before InvalidSignature).
    commit: Callable[[], Awaitable[None]] = field(default=_no_commit)


def in_memory_repos() -> Repos:
    return Repos(
        courses=InMemoryCourseRepo(),
        enrollments=InMemoryEnrollmentRepo(),
        payments=InMemoryPaymentRepo(),
        assessments=InMemoryAssessmentRepo(),
        reviews=InMemoryReviewRepo(),
        certificates=InMemoryCertificateRepo(),
    )


def pg_repos(session: AsyncSession) -> Repos:
    return Repos(
        courses=PgCourseRepo(session),
        enrollments=PgEnrollmentRepo(session),
        payments=PgPaymentRepo(session),
        assessments=PgAssessmentRepo(session),
        reviews=PgReviewRepo(session),
        certificates=PgCertificateRepo(session),
        commit=session.commit,
    )
