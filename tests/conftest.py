"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import random
import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from config import Settings  # noqa: E402
from src.bank import InMemoryQuestionBank  # noqa: E402
from src.db.database import create_db_engine  # noqa: E402
from src.practice import Lesson, PracticeEngine, Question  # noqa: E402
from src.storage import ProfileStore  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (in-memory database)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


def make_question(question_id: str, correct_index: int = 0, explanation: str | None = None) -> Question:
    """Build a four-option question whose correct option is 'right'."""
    options = ["wrong-a", "wrong-b", "wrong-c"]
    options.insert(correct_index, "right")
    return Question(
        id=question_id,
        text=f"Text of {question_id}",
        options=tuple(options),
        correct_index=correct_index,
        explanation=explanation,
    )


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def sample_lessons() -> list[Lesson]:
    """Three lessons of one course plus one lesson of another course."""
    return [
        Lesson(
            id="lesson-1",
            course_id="course-a",
            title="First",
            questions=(
                make_question("question-1", 0),
                make_question("question-2", 1, explanation="Because."),
                make_question("question-3", 2),
            ),
        ),
        Lesson(
            id="lesson-2",
            course_id="course-a",
            title="Second",
            questions=(
                make_question("question-4", 3),
                make_question("question-5", 0),
            ),
        ),
        Lesson(
            id="lesson-3",
            course_id="course-a",
            title="Third",
            questions=(
                make_question("question-6", 1),
                make_question("question-7", 2),
                make_question("question-8", 3),
                make_question("question-9", 0),
                make_question("question-10", 1),
            ),
        ),
        Lesson(
            id="other-1",
            course_id="course-b",
            title="Elsewhere",
            questions=(make_question("other-q1", 0),),
        ),
    ]


@pytest.fixture
def bank(sample_lessons) -> InMemoryQuestionBank:
    return InMemoryQuestionBank(sample_lessons)


@pytest.fixture
def store() -> ProfileStore:
    """Profile store on a fresh in-memory SQLite database."""
    engine = create_db_engine("sqlite://")
    yield ProfileStore(engine)
    engine.dispose()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(
        _env_file=None,
        database_url="sqlite://",
        log_file=None,
        question_time_seconds=10,
        time_warning_ratio=0.2,
        time_up_grace_seconds=1.5,
    )


@pytest.fixture
def make_engine(bank, store, settings, rng):
    """Factory for engines sharing the test bank, store and settings."""

    def _make(lesson_id: str = "lesson-1", profile_id: str = "learner", **overrides) -> PracticeEngine:
        kwargs = {"bank": bank, "store": store, "settings": settings, "rng": rng}
        kwargs.update(overrides)
        return PracticeEngine(lesson_id, profile_id=profile_id, **kwargs)

    return _make
