from __future__ import annotations

from typing import Protocol

from learnhub.models.assessment import AssessmentAttempt


class AssessmentRepo(Protocol):
    async def add(self, attempt: AssessmentAttempt) -> None: ...
    async def list_for(self, user_id: str, course_id: str) -> list[AssessmentAttempt]: ...
    async def best_passing_score(self, user_id: str, course_id: str) -> int | None: ...


class InMemoryAssessmentRepo:
    def __init__(self) -> None:
        self._attempts: list[AssessmentAttempt] = []

    async def add(self, attempt: AssessmentAttempt) -> None:
        self._attempts.append(attempt)

    async def list_for(self, user_id: str, course_id: str) -> list[AssessmentAttempt]:
        mine = [
            a
            for a in self._attempts
            if a.user_id == user_id and a.course_id == course_id
        ]
        return sorted(mine, key=lambda a: a.completed_at, reverse=True)

    async def best_passing_score(self, user_id: str, course_id: str) -> int | None:
        """Highest passing score, or None when no attempt has passed."""
        scores = [
            a.score
            for a in self._attempts
            if a.user_id == user_id and a.course_id == course_id and a.passed
        ]
        return max(scores, default=None)
