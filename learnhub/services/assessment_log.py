"""Quiz scoring and the append-only attempt log."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from learnhub.core.clock import utc_now
from learnhub.core.errors import InvalidAnswers, NotFound
from learnhub.models.assessment import AssessmentAttempt
from learnhub.models.course import Course, Question
from learnhub.repos.bundle import Repos

logger = logging.getLogger(__name__)

PASS_THRESHOLD = 70


@dataclass(frozen=True, slots=True)
class Score:
    score: int
    correct: int
    total: int
    passed: bool


def score_answers(questions: Sequence[Question], answers: Sequence[int]) -> Score:
    """Pure scoring: ``round(100 * correct / total)``, half up, pass at 70."""
    total = len(questions)
    if total == 0:
        raise InvalidAnswers("course has no assessment questions")
    if len(answers) != total:
        raise InvalidAnswers(expected=total, received=len(answers))
    correct = sum(
        1 for q, a in zip(questions, answers, strict=True) if a == q.correct_option
    )
    score = (200 * correct + total) // (2 * total)
    return Score(score=score, correct=correct, total=total, passed=score >= PASS_THRESHOLD)


def questions_for(course: Course) -> list[dict[str, Any]]:
    """The question bank as shown to learners, without the answer key."""
    return [
        {"id": q.id, "prompt": q.prompt, "options": list(q.options)}
        for q in course.questions
    ]


class AssessmentLog:
    def __init__(self, repos: Repos, *, clock: Callable[[], int] = utc_now) -> None:
        self._repos = repos
        self._clock = clock

    async def record_attempt(
        self, user_id: str, course_id: str, answers: Sequence[int]
    ) -> AssessmentAttempt:
        course = await self._repos.courses.get(course_id)
        if course is None:
            raise NotFound("course not found")
        if not course.has_assessments:
            raise NotFound("course has no assessment")

        result = score_answers(course.questions, answers)
        attempt = AssessmentAttempt.new(
            user_id=user_id,
            course_id=course_id,
            score=result.score,
            passed=result.passed,
            completed_at=self._clock(),
            answers=tuple(answers),
            correct_count=result.correct,
            total_questions=result.total,
        )
        await self._repos.assessments.add(attempt)
        logger.info(
            "Assessment attempt user=%s course=%s score=%d passed=%s",
            user_id,
            course_id,
            result.score,
            result.passed,
        )
        return attempt

    async def has_passed(self, user_id: str, course_id: str) -> bool:
        return await self.best_passing_score(user_id, course_id) is not None

    async def best_passing_score(self, user_id: str, course_id: str) -> int | None:
        return await self._repos.assessments.best_passing_score(user_id, course_id)

    async def attempts(self, user_id: str, course_id: str) -> list[AssessmentAttempt]:
        return await self._repos.assessments.list_for(user_id, course_id)
