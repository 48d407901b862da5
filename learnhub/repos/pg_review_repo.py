"""PostgreSQL implementation of ReviewRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.db.tables import ReviewRow
from learnhub.models.review import Review
from learnhub.repos.review_repo import DuplicateReview


class PgReviewRepo:
    """Satisfies the ReviewRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, review: Review) -> None:
        # ON CONFLICT keeps the transaction usable when the unique key collides
        stmt = (
            insert(ReviewRow)
            .values(
                id=review.id,
                user_id=review.user_id,
                course_id=review.course_id,
                rating=review.rating,
                title=review.title,
                comment=review.comment,
                created_at=review.created_at,
                updated_at=review.updated_at,
            )
            .on_conflict_do_nothing(index_elements=["user_id", "course_id"])
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            raise DuplicateReview("review already exists for this course")

    async def get(self, review_id: UUID) -> Review | None:
        stmt = select(ReviewRow).where(ReviewRow.id == review_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_review(row) if row is not None else None

    async def get_for(self, user_id: str, course_id: str) -> Review | None:
        stmt = select(ReviewRow).where(
            ReviewRow.user_id == user_id, ReviewRow.course_id == course_id
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_review(row) if row is not None else None

    async def update(self, review: Review) -> None:
        stmt = (
            update(ReviewRow)
            .where(ReviewRow.id == review.id)
            .values(
                rating=review.rating,
                title=review.title,
                comment=review.comment,
                updated_at=review.updated_at,
            )
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            raise KeyError("review not found")

    async def delete(self, review_id: UUID) -> bool:
        result = await self._session.execute(
            delete(ReviewRow).where(ReviewRow.id == review_id)
        )
        return result.rowcount == 1

    async def ratings_for_course(self, course_id: str) -> list[int]:
        stmt = select(ReviewRow.rating).where(ReviewRow.course_id == course_id)
        return list((await self._session.execute(stmt)).scalars().all())

    async def list_for_course(
        self, course_id: str, *, offset: int = 0, limit: int = 10
    ) -> list[Review]:
        stmt = (
            select(ReviewRow)
            .where(ReviewRow.course_id == course_id)
            .order_by(ReviewRow.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_review(r) for r in rows]

    async def count_for_course(self, course_id: str) -> int:
        stmt = select(func.count()).where(ReviewRow.course_id == course_id)
        return (await self._session.execute(stmt)).scalar_one()

    async def list_for_user(self, user_id: str) -> list[Review]:
        stmt = (
            select(ReviewRow)
            .where(ReviewRow.user_id == user_id)
            .order_by(ReviewRow.created_at.desc())
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_review(r) for r in rows]


def _row_to_review(row: ReviewRow) -> Review:
    return Review(
        id=row.id,
        user_id=row.user_id,
        course_id=row.course_id,
        rating=row.rating,
        title=row.title or "",
        comment=row.comment or "",
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
