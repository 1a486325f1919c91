"""
Question bank: read-only lookup of lessons and their questions.

Implementations:
- InMemoryQuestionBank: lessons held in a dict (tests, embedding)
- JsonQuestionBank: lessons loaded once from a JSON file
- CatalogQuestionBank (catalog_client.py): lessons fetched from the catalog API

JSON layout:
    {
        "lessons": [
            {
                "id": "greetings-1",
                "courseId": "italian-a1",
                "title": "Saluti",
                "questions": [
                    {"id": "q1", "text": "...", "options": ["a", "b", "c", "d"],
                     "correctIndex": 0, "explanation": "..."}
                ]
            }
        ]
    }
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol, runtime_checkable

from loguru import logger
from pydantic import ValidationError

from src.practice.models import Lesson, Question


class QuestionBankError(Exception):
    """Raised when question bank content cannot be loaded."""
    pass


@runtime_checkable
class QuestionBank(Protocol):
    """Protocol for question bank collaborators."""

    def list_lessons_for_course(self, course_id: str) -> list[Lesson]:
        """Lessons of a course, in course order."""
        ...

    def get_lesson(self, lesson_id: str) -> Lesson | None:
        ...

    def get_questions(self, lesson_id: str) -> list[Question]:
        """Questions of a lesson, in lesson order (empty if unknown)."""
        ...


class InMemoryQuestionBank:
    """Question bank over an in-memory list of lessons."""

    def __init__(self, lessons: Iterable[Lesson] = ()):
        self._lessons: dict[str, Lesson] = {}
        for lesson in lessons:
            self.add_lesson(lesson)

    def add_lesson(self, lesson: Lesson) -> None:
        self._lessons[lesson.id] = lesson

    def list_lessons_for_course(self, course_id: str) -> list[Lesson]:
        return [lesson for lesson in self._lessons.values() if lesson.course_id == course_id]

    def get_lesson(self, lesson_id: str) -> Lesson | None:
        return self._lessons.get(lesson_id)

    def get_questions(self, lesson_id: str) -> list[Question]:
        lesson = self._lessons.get(lesson_id)
        if lesson is None:
            logger.warning(f"Unknown lesson: {lesson_id}")
            return []
        return list(lesson.questions)


class JsonQuestionBank(InMemoryQuestionBank):
    """Question bank loaded from a JSON file."""

    def __init__(self, path: Path | str):
        self.path = Path(path)
        super().__init__(self._load(self.path))
        logger.debug(f"Loaded {len(self._lessons)} lessons from {self.path}")

    @staticmethod
    def _load(path: Path) -> list[Lesson]:
        if not path.exists():
            raise QuestionBankError(f"Question bank not found: {path}")

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise QuestionBankError(f"Invalid JSON in {path}: {e}") from e

        raw_lessons = data.get("lessons", []) if isinstance(data, dict) else data
        try:
            return [Lesson.model_validate(item) for item in raw_lessons]
        except ValidationError as e:
            raise QuestionBankError(f"Invalid lesson data in {path}: {e}") from e
