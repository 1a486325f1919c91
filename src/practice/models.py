"""
Domain models for practice tests.

- Question / Lesson: immutable question bank content (Pydantic, validated on load)
- PerformanceRecord: per-question aggregate counters of one profile
- Answer: the learner's response to one sampled question
- TestResult: the persisted record of one completed session
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

OPTION_COUNT = 4


def percent(part: int, whole: int) -> int:
    """Integer percentage rounded half up."""
    if whole <= 0:
        return 0
    return (part * 200 + whole) // (2 * whole)


class IncludeScope(str, Enum):
    """Which lessons a test draws its questions from."""

    THIS_LESSON = "this-lesson"
    INCLUDE_PREVIOUS = "include-previous"


class QuestionMixture(str, Enum):
    """Eligibility policy based on past performance."""

    ALL = "all"
    WRONG = "wrong"
    NON_ANSWERED = "non-answered"
    DOUBTFUL = "doubtful"
    COMBINED = "combined"


class FeedbackMode(str, Enum):
    """When the correct answer is revealed."""

    IMMEDIATE = "immediate"
    END = "end"


class Phase(str, Enum):
    """Lifecycle phase of a practice test."""

    CONFIG = "config"
    EXECUTION = "execution"
    RESULTS = "results"


class Classification(str, Enum):
    """Ledger bucket an answer is counted in."""

    CORRECT = "correct"
    WRONG = "wrong"
    DOUBT = "doubt"


class Question(BaseModel):
    """A four-option multiple choice question."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    text: str
    image: str | None = None
    options: tuple[str, ...]
    correct_index: int = Field(
        ge=0,
        le=OPTION_COUNT - 1,
        validation_alias=AliasChoices("correct_index", "correctIndex"),
    )
    explanation: str | None = None

    @field_validator("options")
    @classmethod
    def _four_options(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if len(value) != OPTION_COUNT:
            raise ValueError(f"expected {OPTION_COUNT} options, got {len(value)}")
        return value

    @property
    def correct_option(self) -> str:
        return self.options[self.correct_index]


class Lesson(BaseModel):
    """An ordered group of questions belonging to a course."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    course_id: str = Field(validation_alias=AliasChoices("course_id", "courseId"))
    title: str = ""
    questions: tuple[Question, ...] = ()


@dataclass
class PerformanceRecord:
    """Aggregate counters for one question; total_attempts == correct + wrong + doubt."""

    total_attempts: int = 0
    correct: int = 0
    wrong: int = 0
    doubt: int = 0

    def apply(self, classification: Classification) -> None:
        """Count one more attempt in the given bucket."""
        self.total_attempts += 1
        if classification is Classification.CORRECT:
            self.correct += 1
        elif classification is Classification.WRONG:
            self.wrong += 1
        else:
            self.doubt += 1

    @property
    def success_percent(self) -> int:
        return percent(self.correct, self.total_attempts)

    def to_dict(self) -> dict[str, int]:
        return {
            "total_attempts": self.total_attempts,
            "correct": self.correct,
            "wrong": self.wrong,
            "doubt": self.doubt,
        }


@dataclass
class Answer:
    """The learner's response to one question of a session."""

    selected_index: int | None = None
    is_correct: bool | None = None  # None: skipped or doubted
    is_doubt: bool = False
    skipped: bool = False  # set when the question timed out unanswered

    @property
    def is_locked(self) -> bool:
        """True once the question can no longer be answered."""
        return self.selected_index is not None or self.skipped

    def to_dict(self) -> dict[str, Any]:
        return {
            "selected_index": self.selected_index,
            "is_correct": self.is_correct,
            "is_doubt": self.is_doubt,
            "skipped": self.skipped,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Answer":
        return cls(
            selected_index=data.get("selected_index"),
            is_correct=data.get("is_correct"),
            is_doubt=bool(data.get("is_doubt", False)),
            skipped=bool(data.get("skipped", False)),
        )


@dataclass(frozen=True)
class LedgerUpdate:
    """One classified attempt to add to the performance ledger."""

    question_id: str
    classification: Classification


@dataclass
class TestResult:
    """Persisted outcome of one completed practice test."""

    __test__: ClassVar[bool] = False

    lesson_id: str
    config: dict[str, Any]
    question_ids: list[str]
    answers: list[Answer]
    score: int
    total_questions: int
    id: str | None = None
    profile_id: str | None = None
    created_at: datetime | None = None
