from __future__ import annotations

from dataclasses import replace
from typing import Protocol

from learnhub.models.enrollment import Enrollment


class EnrollmentRepo(Protocol):
    async def get(
        self, user_id: str, course_id: str, *, for_update: bool = False
    ) -> Enrollment | None: ...
    async def add_if_absent(self, enrollment: Enrollment) -> Enrollment: ...
    async def save_progress(self, enrollment: Enrollment) -> None: ...
    async def mark_certificate_earned(
        self, user_id: str, course_id: str, earned_at: int
    ) -> bool: ...


class InMemoryEnrollmentRepo:
    def __init__(self) -> None:
        self._store: dict[tuple[str, str], Enrollment] = {}

    async def get(
        self, user_id: str, course_id: str, *, for_update: bool = False
    ) -> Enrollment | None:
        # for_update only matters for row-locking stores
        return self._store.get((user_id, course_id))

    async def add_if_absent(self, enrollment: Enrollment) -> Enrollment:
        """Insert unless the (user, course) key exists; return the stored record."""
        key = (enrollment.user_id, enrollment.course_id)
        return self._store.setdefault(key, enrollment)

    async def save_progress(self, enrollment: Enrollment) -> None:
        key = (enrollment.user_id, enrollment.course_id)
        existing = self._store.get(key)
        if existing is None:
            raise KeyError("enrollment not found")
        # Certificate fields are owned by mark_certificate_earned.
        self._store[key] = replace(
            existing,
            watched_lesson_ids=enrollment.watched_lesson_ids,
            progress_percent=enrollment.progress_percent,
        )

    async def mark_certificate_earned(
        self, user_id: str, course_id: str, earned_at: int
    ) -> bool:
        """Flip certificate_earned false -> true. False if already earned."""
        existing = self._store.get((user_id, course_id))
        if existing is None:
            raise KeyError("enrollment not found")
        if existing.certificate_earned:
            return False
        self._store[(user_id, course_id)] = existing.with_certificate(now=earned_at)
        return True
