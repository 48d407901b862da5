from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from learnhub.api.dependencies import get_access_guard, get_assessment_log, require_user
from learnhub.core.errors import NotFound
from learnhub.models.assessment import AssessmentAttempt
from learnhub.models.principal import Principal
from learnhub.services.access_guard import AccessGuard
from learnhub.services.assessment_log import PASS_THRESHOLD, AssessmentLog, questions_for

router = APIRouter(prefix="/v1/assessments", tags=["assessments"])


class QuestionOut(BaseModel):
    id: str
    prompt: str
    options: list[str]


class AssessmentOut(BaseModel):
    course_id: str
    pass_threshold: int
    questions: list[QuestionOut]


class AttemptIn(BaseModel):
    answers: list[int]


class AttemptOut(BaseModel):
    id: str
    score: int
    passed: bool
    correct_count: int
    total_questions: int
    completed_at: int


def _attempt_out(a: AssessmentAttempt) -> AttemptOut:
    return AttemptOut(
        id=str(a.id),
        score=a.score,
        passed=a.passed,
        correct_count=a.correct_count,
        total_questions=a.total_questions,
        completed_at=a.completed_at,
    )


@router.get("/{course_id}", response_model=AssessmentOut)
async def get_assessment(
    course_id: str,
    guard: Annotated[AccessGuard, Depends(get_access_guard)],
    principal: Annotated[Principal, Depends(require_user)],
) -> AssessmentOut:
    course, _ = await guard.check_content_access(principal.user_id, course_id)
    if not course.has_assessments:
        raise NotFound("course has no assessment")
    return AssessmentOut(
        course_id=course_id,
        pass_threshold=PASS_THRESHOLD,
        questions=[QuestionOut(**q) for q in questions_for(course)],
    )


@router.post(
    "/{course_id}/attempts",
    response_model=AttemptOut,
    status_code=status.HTTP_201_CREATED,
)
async def submit_attempt(
    course_id: str,
    body: AttemptIn,
    guard: Annotated[AccessGuard, Depends(get_access_guard)],
    log: Annotated[AssessmentLog, Depends(get_assessment_log)],
    principal: Annotated[Principal, Depends(require_user)],
) -> AttemptOut:
    await guard.check_content_access(principal.user_id, course_id)
    attempt = await log.record_attempt(principal.user_id, course_id, body.answers)
    return _attempt_out(attempt)


@router.get("/{course_id}/attempts", response_model=list[AttemptOut])
async def list_attempts(
    course_id: str,
    log: Annotated[AssessmentLog, Depends(get_assessment_log)],
    principal: Annotated[Principal, Depends(require_user)],
) -> list[AttemptOut]:
    return [_attempt_out(a) for a in await log.attempts(principal.user_id, course_id)]
