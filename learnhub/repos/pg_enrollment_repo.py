"""PostgreSQL implementation of EnrollmentRepo."""

from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.db.tables import EnrollmentRow
from learnhub.models.enrollment import Enrollment


class PgEnrollmentRepo:
    """Satisfies the EnrollmentRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(
        self, user_id: str, course_id: str, *, for_update: bool = False
    ) -> Enrollment | None:
        stmt = select(EnrollmentRow).where(
            EnrollmentRow.user_id == user_id,
            EnrollmentRow.course_id == course_id,
        )
        if for_update:
            stmt = stmt.with_for_update()
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_enrollment(row)

    async def add_if_absent(self, enrollment: Enrollment) -> Enrollment:
        stmt = (
            insert(EnrollmentRow)
            .values(
                user_id=enrollment.user_id,
                course_id=enrollment.course_id,
                enrolled_at=enrollment.enrolled_at,
                watched_lesson_ids=sorted(enrollment.watched_lesson_ids),
                progress_percent=enrollment.progress_percent,
                certificate_earned=enrollment.certificate_earned,
                certificate_earned_at=enrollment.certificate_earned_at,
            )
            .on_conflict_do_nothing(index_elements=["user_id", "course_id"])
        )
        await self._session.execute(stmt)
        stored = await self.get(enrollment.user_id, enrollment.course_id)
        if stored is None:
            raise RuntimeError("enrollment vanished after insert")
        return stored

    async def save_progress(self, enrollment: Enrollment) -> None:
        stmt = (
            update(EnrollmentRow)
            .where(
                EnrollmentRow.user_id == enrollment.user_id,
                EnrollmentRow.course_id == enrollment.course_id,
            )
            .values(
                watched_lesson_ids=sorted(enrollment.watched_lesson_ids),
                progress_percent=enrollment.progress_percent,
            )
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            raise KeyError("enrollment not found")

    async def mark_certificate_earned(
        self, user_id: str, course_id: str, earned_at: int
    ) -> bool:
        """Atomically flip certificate_earned. False if another call won."""
        stmt = (
            update(EnrollmentRow)
            .where(
                EnrollmentRow.user_id == user_id,
                EnrollmentRow.course_id == course_id,
                EnrollmentRow.certificate_earned.is_(False),
            )
            .values(certificate_earned=True, certificate_earned_at=earned_at)
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1


def _row_to_enrollment(row: EnrollmentRow) -> Enrollment:
    return Enrollment(
        user_id=row.user_id,
        course_id=row.course_id,
        enrolled_at=row.enrolled_at,
        watched_lesson_ids=frozenset(row.watched_lesson_ids or ()),
        progress_percent=row.progress_percent,
        certificate_earned=row.certificate_earned,
        certificate_earned_at=row.certificate_earned_at,
    )
