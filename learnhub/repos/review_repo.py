from __future__ import annotations

from typing import Protocol
from uuid import UUID

from learnhub.models.review import Review


class DuplicateReview(ValueError):
    """A review for this (user, course) pair already exists."""


class ReviewRepo(Protocol):
    async def add(self, review: Review) -> None: ...
    async def get(self, review_id: UUID) -> Review | None: ...
    async def get_for(self, user_id: str, course_id: str) -> Review | None: ...
    async def update(self, review: Review) -> None: ...
    async def delete(self, review_id: UUID) -> bool: ...
    async def ratings_for_course(self, course_id: str) -> list[int]: ...
    async def list_for_course(
        self, course_id: str, *, offset: int = 0, limit: int = 10
    ) -> list[Review]: ...
    async def count_for_course(self, course_id: str) -> int: ...
    async def list_for_user(self, user_id: str) -> list[Review]: ...


class InMemoryReviewRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Review] = {}

    async def add(self, review: Review) -> None:
        if await self.get_for(review.user_id, review.course_id) is not None:
            raise DuplicateReview("review already exists for this course")
        self._by_id[review.id] = review

    async def get(self, review_id: UUID) -> Review | None:
        return self._by_id.get(review_id)

    async def get_for(self, user_id: str, course_id: str) -> Review | None:
        for r in self._by_id.values():
            if r.user_id == user_id and r.course_id == course_id:
                return r
        return None

    async def update(self, review: Review) -> None:
        if review.id not in self._by_id:
            raise KeyError("review not found")
        self._by_id[review.id] = review

    async def delete(self, review_id: UUID) -> bool:
        return self._by_id.pop(review_id, None) is not None

    async def ratings_for_course(self, course_id: str) -> list[int]:
        return [r.rating for r in self._by_id.values() if r.course_id == course_id]

    async def list_for_course(
        self, course_id: str, *, offset: int = 0, limit: int = 10
    ) -> list[Review]:
        reviews = sorted(
            (r for r in self._by_id.values() if r.course_id == course_id),
            key=lambda r: r.created_at,
            reverse=True,
        )
        return reviews[offset : offset + limit]

    async def count_for_course(self, course_id: str) -> int:
        return sum(1 for r in self._by_id.values() if r.course_id == course_id)

    async def list_for_user(self, user_id: str) -> list[Review]:
        return sorted(
            (r for r in self._by_id.values() if r.user_id == user_id),
            key=lambda r: r.created_at,
            reverse=True,
        )
