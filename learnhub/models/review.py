from __future__ import annotations

from dataclasses import dataclass, field, replace
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Review:
    id: UUID
    user_id: str
    course_id: str
    rating: int  # 1..5
    title: str
    comment: str
    created_at: int
    updated_at: int

    @staticmethod
    def new(
        *,
        user_id: str,
        course_id: str,
        rating: int,
        title: str,
        comment: str,
        now: int,
    ) -> Review:
        return Review(
            id=uuid4(),
            user_id=user_id,
            course_id=course_id,
            rating=rating,
            title=title,
            comment=comment,
            created_at=now,
            updated_at=now,
        )

    def edited(
        self,
        *,
        now: int,
        rating: int | None = None,
        title: str | None = None,
        comment: str | None = None,
    ) -> Review:
        return replace(
            self,
            rating=self.rating if rating is None else rating,
            title=self.title if title is None else title,
            comment=self.comment if comment is None else comment,
            updated_at=now,
        )


@dataclass(frozen=True, slots=True)
class RatingSummary:
    """Derived rating stored on a course.

    Always equal to the aggregate of that course's reviews; only the
    RatingAggregator writes it.
    """

    average: float = 0.0
    count: int = 0
    # review counts for ratings 1..5, index 0 is one star
    distribution: tuple[int, ...] = field(default=(0, 0, 0, 0, 0))
