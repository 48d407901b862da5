"""PostgreSQL implementation of CourseRepo."""

from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.db.tables import CourseRow
from learnhub.models.course import Course, Lesson, Question
from learnhub.models.review import RatingSummary


class PgCourseRepo:
    """Satisfies the CourseRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, course_id: str) -> Course | None:
        stmt = select(CourseRow).where(CourseRow.id == course_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_course(row)

    async def list_published(self) -> list[Course]:
        stmt = (
            select(CourseRow)
            .where(CourseRow.status == "published")
            .order_by(CourseRow.title)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_course(r) for r in rows]

    async def set_rating(self, course_id: str, rating: RatingSummary) -> None:
        stmt = (
            update(CourseRow)
            .where(CourseRow.id == course_id)
            .values(
                rating_average=rating.average,
                rating_count=rating.count,
                rating_distribution=list(rating.distribution),
            )
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            raise KeyError("course not found")


def _row_to_course(row: CourseRow) -> Course:
    return Course(
        id=row.id,
        title=row.title,
        price=row.price,
        currency=row.currency,
        status=row.status,
        lessons=tuple(
            Lesson(
                id=str(item["id"]),
                title=item.get("title", ""),
                video_url=item.get("video_url", ""),
                duration_seconds=int(item.get("duration_seconds", 0)),
            )
            for item in row.lessons or ()
        ),
        questions=tuple(
            Question(
                id=str(item["id"]),
                prompt=item.get("prompt", ""),
                options=tuple(item.get("options", ())),
                correct_option=int(item["correct_option"]),
            )
            for item in row.questions or ()
        ),
        rating=RatingSummary(
            average=row.rating_average,
            count=row.rating_count,
            distribution=tuple(row.rating_distribution or (0, 0, 0, 0, 0)),
        ),
    )
