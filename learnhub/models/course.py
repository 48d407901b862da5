from __future__ import annotations

from dataclasses import dataclass, field

from learnhub.models.review import RatingSummary


@dataclass(frozen=True, slots=True)
class Lesson:
    id: str
    title: str
    video_url: str = ""
    duration_seconds: int = 0


@dataclass(frozen=True, slots=True)
class Question:
    """One multiple-choice item of a course's question bank."""

    id: str
    prompt: str
    options: tuple[str, ...]
    correct_option: int  # index into options


@dataclass(frozen=True, slots=True)
class Course:
    """Catalog entry as seen by the learning core.

    Price and question bank are owned by the external catalog; the only
    field this service writes is ``rating``.
    """

    id: str
    title: str
    price: int = 0  # major currency units, 0 = free
    currency: str = "INR"
    lessons: tuple[Lesson, ...] = ()
    questions: tuple[Question, ...] = ()
    rating: RatingSummary = field(default_factory=RatingSummary)
    status: str = "published"  # draft|published|retired

    @property
    def is_free(self) -> bool:
        return self.price == 0

    @property
    def lesson_ids(self) -> tuple[str, ...]:
        return tuple(lesson.id for lesson in self.lessons)

    @property
    def has_assessments(self) -> bool:
        return bool(self.questions)

    def get_lesson(self, lesson_id: str) -> Lesson | None:
        for lesson in self.lessons:
            if lesson.id == lesson_id:
                return lesson
        return None
