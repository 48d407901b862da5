from __future__ import annotations

import pytest

from learnhub.models.enrollment import Enrollment, compute_progress


@pytest.mark.parametrize(
    ("watched", "lessons", "expected"),
    [
        ((), ("l1", "l2", "l3"), 0),
        (("l1",), ("l1", "l2", "l3"), 33),
        (("l1", "l2"), ("l1", "l2", "l3"), 67),
        (("l1", "l2", "l3"), ("l1", "l2", "l3"), 100),
        (("l1",), ("l1", "l2"), 50),
        (("l1",), ("l1", "l2", "l3", "l4", "l5", "l6", "l7", "l8"), 13),  # 12.5 up
        (("gone", "l1"), ("l1", "l2"), 50),
        ((), (), 100),
    ],
)
def test_compute_progress(watched, lessons, expected: int) -> None:
    assert compute_progress(watched, lessons) == expected


def test_with_lesson_watched_grows_set_and_progress() -> None:
    e = Enrollment.new(user_id="u1", course_id="c1", now=10)
    e = e.with_lesson_watched("l1", ("l1", "l2"))
    e = e.with_lesson_watched("l2", ("l1", "l2"))
    assert e.watched_lesson_ids == frozenset({"l1", "l2"})
    assert e.progress_percent == 100


def test_with_certificate_is_first_transition_only() -> None:
    e = Enrollment.new(user_id="u1", course_id="c1", now=10)
    earned = e.with_certificate(now=50)
    again = earned.with_certificate(now=99)
    assert earned.certificate_earned is True
    assert again.certificate_earned_at == 50
