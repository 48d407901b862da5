from __future__ import annotations

from dataclasses import replace
from typing import Protocol

from learnhub.models.course import Course
from learnhub.models.review import RatingSummary


class CourseRepo(Protocol):
    async def get(self, course_id: str) -> Course | None: ...
    async def list_published(self) -> list[Course]: ...
    async def set_rating(self, course_id: str, rating: RatingSummary) -> None: ...


class InMemoryCourseRepo:
    def __init__(self) -> None:
        self._by_id: dict[str, Course] = {}

    def seed(self, course: Course) -> None:
        """Insert or replace a catalog entry (the catalog itself is external)."""
        self._by_id[course.id] = course

    async def get(self, course_id: str) -> Course | None:
        return self._by_id.get(course_id)

    async def list_published(self) -> list[Course]:
        return [c for c in self._by_id.values() if c.status == "published"]

    async def set_rating(self, course_id: str, rating: RatingSummary) -> None:
        course = self._by_id.get(course_id)
        if course is None:
            raise KeyError("course not found")
        self._by_id[course_id] = replace(course, rating=rating)
