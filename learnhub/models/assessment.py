from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class AssessmentAttempt:
    """One submitted attempt. Append-only: never updated after creation."""

    id: UUID
    user_id: str
    course_id: str
    score: int  # 0..100
    passed: bool
    completed_at: int
    answers: tuple[int, ...]
    correct_count: int
    total_questions: int

    @staticmethod
    def new(
        *,
        user_id: str,
        course_id: str,
        score: int,
        passed: bool,
        completed_at: int,
        answers: tuple[int, ...],
        correct_count: int,
        total_questions: int,
    ) -> AssessmentAttempt:
        return AssessmentAttempt(
            id=uuid4(),
            user_id=user_id,
            course_id=course_id,
            score=score,
            passed=passed,
            completed_at=completed_at,
            answers=answers,
            correct_count=correct_count,
            total_questions=total_questions,
        )
