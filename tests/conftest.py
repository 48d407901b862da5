from __future__ import annotations

import itertools
from collections.abc import Callable

import pytest
from fastapi.testclient import TestClient

from learnhub.api import dependencies
from learnhub.core.config import SETTINGS
from learnhub.main import app
from learnhub.models.course import Course, Lesson, Question
from learnhub.repos.bundle import Repos, in_memory_repos
from learnhub.repos.course_repo import InMemoryCourseRepo
from learnhub.services import token_service
from learnhub.services.gateway import payment_gateway, payment_signature
from learnhub.services.locks import keyed_lock


@pytest.fixture(autouse=True)
def repos(monkeypatch: pytest.MonkeyPatch) -> Repos:
    """Fresh in-memory repositories for every test, shared with the app."""
    fresh = in_memory_repos()
    monkeypatch.setattr(dependencies, "memory_repos", fresh)
    return fresh


@pytest.fixture(autouse=True)
def reset_locks() -> None:
    if hasattr(keyed_lock, "reset"):
        keyed_lock.reset()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_gateway() -> None:
    """Forget orders minted by the fake gateway and clear injected failures."""
    if hasattr(payment_gateway, "reset"):
        payment_gateway.reset()  # type: ignore[union-attr]


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(
    username: str = "test-user",
    roles: list[str] | None = None,
) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=username, roles=roles)


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def token() -> str:
    """Token with default role (user)."""
    return mint_token()


@pytest.fixture
def admin_token() -> str:
    """Token with admin role."""
    return mint_token(username="test-admin", roles=["admin"])


@pytest.fixture
def clock() -> Callable[[], int]:
    """Strictly increasing fake epoch seconds, so orderings are deterministic."""
    ticks = itertools.count(1_700_000_000)
    return lambda: next(ticks)


# ---------------------------------------------------------------------------
# Catalog and gateway helpers
# ---------------------------------------------------------------------------


def seed_course(
    repos: Repos,
    course_id: str = "py-101",
    *,
    price: int = 0,
    lesson_count: int = 3,
    questions: tuple[Question, ...] = (),
) -> Course:
    """Put a published course with lessons l1..lN into the catalog repo."""
    course = Course(
        id=course_id,
        title=course_id.replace("-", " ").title(),
        price=price,
        lessons=tuple(
            Lesson(id=f"l{i}", title=f"Lesson {i}", video_url=f"https://cdn/{i}.mp4")
            for i in range(1, lesson_count + 1)
        ),
        questions=questions,
    )
    assert isinstance(repos.courses, InMemoryCourseRepo)
    repos.courses.seed(course)
    return course


def sample_questions(count: int = 4) -> tuple[Question, ...]:
    """Questions whose correct option is always index 1."""
    return tuple(
        Question(
            id=f"q{i}",
            prompt=f"Question {i}?",
            options=("wrong", "right", "also wrong"),
            correct_option=1,
        )
        for i in range(1, count + 1)
    )


def sign(order_id: str, payment_id: str) -> str:
    """Checkout signature as the gateway would compute it."""
    return payment_signature(SETTINGS.gateway_key_secret, order_id, payment_id)
