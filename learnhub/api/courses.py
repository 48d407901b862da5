"""Catalog, enrollment, progress and completion endpoints.

    GET  /v1/courses                              catalog with rating summary
    GET  /v1/courses/{id}                         one course
    POST /v1/courses/{id}/enroll                  free, or paid and verified
    GET  /v1/courses/{id}/progress
    POST /v1/courses/{id}/progress/lesson         mark a lesson watched
    GET  /v1/courses/{id}/lessons/{lesson_id}     content, access-checked
    GET  /v1/courses/{id}/completion              derived completion state
    POST /v1/courses/{id}/complete                one-time certificate issuance
    GET  /v1/courses/{id}/certificate
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from learnhub.api.dependencies import (
    get_access_guard,
    get_certificate_registry,
    get_completion_gate,
    get_enrollment_store,
    memory_repos,
    require_user,
)
from learnhub.api.schemas import CertificateOut, RatingOut
from learnhub.core.errors import NotFound
from learnhub.models.course import Course, Lesson
from learnhub.models.enrollment import Enrollment
from learnhub.models.principal import Principal
from learnhub.repos.course_repo import InMemoryCourseRepo
from learnhub.services.access_guard import AccessGuard
from learnhub.services.certificates import CertificateRegistry
from learnhub.services.completion_gate import CompletionGate
from learnhub.services.enrollment_store import EnrollmentStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/courses", tags=["courses"])


class LessonSummaryOut(BaseModel):
    id: str
    title: str
    duration_seconds: int


class CourseOut(BaseModel):
    id: str
    title: str
    price: int
    currency: str
    is_free: bool
    has_assessments: bool
    lessons: list[LessonSummaryOut]
    rating: RatingOut


class EnrollmentOut(BaseModel):
    user_id: str
    course_id: str
    enrolled_at: int
    progress_percent: int


class ProgressOut(BaseModel):
    progress_percent: int
    watched_lesson_ids: list[str]


class LessonWatchedIn(BaseModel):
    lesson_id: str


class LessonOut(BaseModel):
    id: str
    title: str
    video_url: str
    duration_seconds: int


class CompletionOut(BaseModel):
    state: str
    progress_percent: int
    certificate_earned: bool
    certificate_earned_at: int | None


class CompleteOut(BaseModel):
    completed: bool
    certificate_earned_at: int | None
    certificate_id: str | None


def _course_out(course: Course) -> CourseOut:
    return CourseOut(
        id=course.id,
        title=course.title,
        price=course.price,
        currency=course.currency,
        is_free=course.is_free,
        has_assessments=course.has_assessments,
        lessons=[
            LessonSummaryOut(
                id=lesson.id,
                title=lesson.title,
                duration_seconds=lesson.duration_seconds,
            )
            for lesson in course.lessons
        ],
        rating=RatingOut.from_summary(course.rating),
    )


def _progress_out(enrollment: Enrollment) -> ProgressOut:
    return ProgressOut(
        progress_percent=enrollment.progress_percent,
        watched_lesson_ids=sorted(enrollment.watched_lesson_ids),
    )


def seed_sample_course() -> None:
    """Seed a sample course for development when no database is configured."""
    courses = memory_repos.courses
    if isinstance(courses, InMemoryCourseRepo):
        courses.seed(
            Course(
                id="intro-to-python",
                title="Introduction to Python",
                lessons=(
                    Lesson(id="l1", title="Installing Python", duration_seconds=300),
                    Lesson(id="l2", title="Variables and Types", duration_seconds=540),
                    Lesson(id="l3", title="Control Flow", duration_seconds=610),
                ),
            )
        )


seed_sample_course()


@router.get("", response_model=list[CourseOut])
async def list_courses(
    guard: Annotated[AccessGuard, Depends(get_access_guard)],
    _principal: Annotated[Principal, Depends(require_user)],
) -> list[CourseOut]:
    return [_course_out(c) for c in await guard.list_courses()]


@router.get("/{course_id}", response_model=CourseOut)
async def get_course(
    course_id: str,
    guard: Annotated[AccessGuard, Depends(get_access_guard)],
    _principal: Annotated[Principal, Depends(require_user)],
) -> CourseOut:
    return _course_out(await guard.load_course(course_id))


@router.post(
    "/{course_id}/enroll",
    response_model=EnrollmentOut,
    status_code=status.HTTP_201_CREATED,
)
async def enroll_in_course(
    course_id: str,
    store: Annotated[EnrollmentStore, Depends(get_enrollment_store)],
    principal: Annotated[Principal, Depends(require_user)],
) -> EnrollmentOut:
    enrollment = await store.enroll(principal.user_id, course_id)
    return EnrollmentOut(
        user_id=enrollment.user_id,
        course_id=enrollment.course_id,
        enrolled_at=enrollment.enrolled_at,
        progress_percent=enrollment.progress_percent,
    )


@router.get("/{course_id}/progress", response_model=ProgressOut)
async def get_progress(
    course_id: str,
    store: Annotated[EnrollmentStore, Depends(get_enrollment_store)],
    principal: Annotated[Principal, Depends(require_user)],
) -> ProgressOut:
    return _progress_out(await store.get_progress(principal.user_id, course_id))


@router.post("/{course_id}/progress/lesson", response_model=ProgressOut)
async def mark_lesson_watched(
    course_id: str,
    body: LessonWatchedIn,
    store: Annotated[EnrollmentStore, Depends(get_enrollment_store)],
    principal: Annotated[Principal, Depends(require_user)],
) -> ProgressOut:
    enrollment = await store.mark_lesson_watched(
        principal.user_id, course_id, body.lesson_id
    )
    return _progress_out(enrollment)


@router.get("/{course_id}/lessons/{lesson_id}", response_model=LessonOut)
async def get_lesson(
    course_id: str,
    lesson_id: str,
    guard: Annotated[AccessGuard, Depends(get_access_guard)],
    principal: Annotated[Principal, Depends(require_user)],
) -> LessonOut:
    course, _enrollment = await guard.check_content_access(
        principal.user_id, course_id
    )
    lesson = course.get_lesson(lesson_id)
    if lesson is None:
        raise NotFound("lesson not found")
    return LessonOut(
        id=lesson.id,
        title=lesson.title,
        video_url=lesson.video_url,
        duration_seconds=lesson.duration_seconds,
    )


@router.get("/{course_id}/completion", response_model=CompletionOut)
async def get_completion(
    course_id: str,
    gate: Annotated[CompletionGate, Depends(get_completion_gate)],
    principal: Annotated[Principal, Depends(require_user)],
) -> CompletionOut:
    completion = await gate.evaluate(principal.user_id, course_id)
    return CompletionOut(
        state=completion.state.value,
        progress_percent=completion.progress_percent,
        certificate_earned=completion.certificate_earned,
        certificate_earned_at=completion.certificate_earned_at,
    )


@router.post("/{course_id}/complete", response_model=CompleteOut)
async def complete_course(
    course_id: str,
    gate: Annotated[CompletionGate, Depends(get_completion_gate)],
    principal: Annotated[Principal, Depends(require_user)],
) -> CompleteOut:
    completion = await gate.complete(principal.user_id, course_id)
    return CompleteOut(
        completed=completion.certificate_earned,
        certificate_earned_at=completion.certificate_earned_at,
        certificate_id=str(completion.certificate_id)
        if completion.certificate_id
        else None,
    )


@router.get("/{course_id}/certificate", response_model=CertificateOut)
async def get_certificate(
    course_id: str,
    guard: Annotated[AccessGuard, Depends(get_access_guard)],
    registry: Annotated[CertificateRegistry, Depends(get_certificate_registry)],
    principal: Annotated[Principal, Depends(require_user)],
) -> CertificateOut:
    await guard.check_content_access(principal.user_id, course_id)
    certificate = await registry.get_earned(principal.user_id, course_id)
    return CertificateOut.from_certificate(certificate)
