from __future__ import annotations

import asyncio

import pytest

from learnhub.core.errors import InvalidAnswers, NotFound
from learnhub.models.course import Course
from learnhub.repos.bundle import Repos
from learnhub.services.assessment_log import (
    PASS_THRESHOLD,
    AssessmentLog,
    questions_for,
    score_answers,
)
from tests.conftest import sample_questions, seed_course


@pytest.mark.parametrize(
    ("answers", "score", "passed"),
    [
        ([1, 1, 1], 100, True),
        ([1, 1, 0], 67, False),
        ([1, 0, 0], 33, False),
        ([0, 0, 2], 0, False),
    ],
)
def test_score_three_questions(answers: list[int], score: int, passed: bool) -> None:
    result = score_answers(sample_questions(3), answers)
    assert result.score == score
    assert result.passed is passed
    assert result.total == 3


def test_pass_threshold_is_inclusive() -> None:
    # 7 of 10 is exactly 70
    result = score_answers(sample_questions(10), [1] * 7 + [0] * 3)
    assert result.score == PASS_THRESHOLD
    assert result.passed is True


def test_score_rounds_half_up() -> None:
    # 5 of 8 is 62.5
    assert score_answers(sample_questions(8), [1] * 5 + [0] * 3).score == 63


def test_answer_count_must_match() -> None:
    with pytest.raises(InvalidAnswers) as exc_info:
        score_answers(sample_questions(3), [1, 1])
    assert exc_info.value.extra == {"expected": 3, "received": 2}


def test_questions_for_hides_answer_key() -> None:
    course = Course(id="c", title="C", questions=sample_questions(2))
    shown = questions_for(course)
    assert shown[0] == {
        "id": "q1",
        "prompt": "Question 1?",
        "options": ["wrong", "right", "also wrong"],
    }
    assert all("correct_option" not in q for q in shown)


def test_attempts_are_appended(repos: Repos, clock) -> None:
    seed_course(repos, "quiz", questions=sample_questions(4))
    log = AssessmentLog(repos, clock=clock)

    async def scenario():
        await log.record_attempt("u1", "quiz", [1, 0, 0, 0])
        await log.record_attempt("u1", "quiz", [1, 1, 1, 0])
        await log.record_attempt("u2", "quiz", [1, 1, 1, 1])
        return await log.attempts("u1", "quiz"), await log.best_passing_score("u1", "quiz")

    attempts, best = asyncio.run(scenario())
    assert [a.score for a in attempts] == [75, 25]
    assert attempts[0].answers == (1, 1, 1, 0)
    assert attempts[0].correct_count == 3
    assert best == 75
    assert asyncio.run(log.has_passed("u1", "quiz")) is True


def test_no_passing_attempt(repos: Repos, clock) -> None:
    seed_course(repos, "quiz", questions=sample_questions(2))
    log = AssessmentLog(repos, clock=clock)
    asyncio.run(log.record_attempt("u1", "quiz", [0, 0]))
    assert asyncio.run(log.has_passed("u1", "quiz")) is False
    assert asyncio.run(log.best_passing_score("u1", "quiz")) is None


def test_course_without_assessment(repos: Repos, clock) -> None:
    seed_course(repos, "plain")
    log = AssessmentLog(repos, clock=clock)
    with pytest.raises(NotFound):
        asyncio.run(log.record_attempt("u1", "plain", []))
    with pytest.raises(NotFound):
        asyncio.run(log.record_attempt("u1", "missing", [1]))
