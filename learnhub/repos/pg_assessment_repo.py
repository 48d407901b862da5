"""PostgreSQL implementation of AssessmentRepo."""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.db.tables import AssessmentAttemptRow
from learnhub.models.assessment import AssessmentAttempt


class PgAssessmentRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, attempt: AssessmentAttempt) -> None:
        row = AssessmentAttemptRow(
            id=attempt.id,
            user_id=attempt.user_id,
            course_id=attempt.course_id,
            score=attempt.score,
            passed=attempt.passed,
            completed_at=attempt.completed_at,
            answers=list(attempt.answers),
            correct_count=attempt.correct_count,
            total_questions=attempt.total_questions,
        )
        self._session.add(row)
        await self._session.flush()

    async def list_for(self, user_id: str, course_id: str) -> list[AssessmentAttempt]:
        stmt = (
            select(AssessmentAttemptRow)
            .where(
                AssessmentAttemptRow.user_id == user_id,
                AssessmentAttemptRow.course_id == course_id,
            )
            .order_by(AssessmentAttemptRow.completed_at.desc())
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_attempt(r) for r in rows]

    async def best_passing_score(self, user_id: str, course_id: str) -> int | None:
        stmt = select(func.max(AssessmentAttemptRow.score)).where(
            AssessmentAttemptRow.user_id == user_id,
            AssessmentAttemptRow.course_id == course_id,
            AssessmentAttemptRow.passed.is_(True),
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()


def _row_to_attempt(row: AssessmentAttemptRow) -> AssessmentAttempt:
    return AssessmentAttempt(
        id=row.id,
        user_id=row.user_id,
        course_id=row.course_id,
        score=row.score,
        passed=row.passed,
        completed_at=row.completed_at,
        answers=tuple(row.answers or ()),
        correct_count=row.correct_count,
        total_questions=row.total_questions,
    )
