from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from enum import StrEnum


class CompletionState(StrEnum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    ASSESSMENT_REQUIRED = "assessment_required"
    COMPLETED = "completed"


def compute_progress(watched: Iterable[str], valid_lesson_ids: Iterable[str]) -> int:
    """Percent of the course's current lessons that have been watched.

    Rounds half up, like the catalog UI. Watched ids that are no longer part
    of the course do not count. A course without lessons is vacuously
    finished.
    """
    valid = set(valid_lesson_ids)
    total = len(valid)
    if total == 0:
        return 100
    seen = len(valid.intersection(watched))
    return (200 * seen + total) // (2 * total)


@dataclass(frozen=True, slots=True)
class Enrollment:
    """Per-user-per-course progress record, keyed by (user_id, course_id)."""

    user_id: str
    course_id: str
    enrolled_at: int
    watched_lesson_ids: frozenset[str] = frozenset()
    progress_percent: int = 0
    certificate_earned: bool = False
    certificate_earned_at: int | None = None

    @staticmethod
    def new(*, user_id: str, course_id: str, now: int) -> Enrollment:
        return Enrollment(user_id=user_id, course_id=course_id, enrolled_at=now)

    def with_lesson_watched(
        self, lesson_id: str, valid_lesson_ids: Iterable[str]
    ) -> Enrollment:
        valid = tuple(valid_lesson_ids)
        watched = self.watched_lesson_ids | {lesson_id}
        return replace(
            self,
            watched_lesson_ids=watched,
            progress_percent=compute_progress(watched, valid),
        )

    def with_certificate(self, *, now: int) -> Enrollment:
        # first transition only; callers check certificate_earned under a lock
        if self.certificate_earned:
            return self
        return replace(self, certificate_earned=True, certificate_earned_at=now)
