"""
Catalog API client: question bank backed by the course catalog service.

Endpoints:
    GET /courses/{course_id}/lessons   -> list of lessons (questions optional)
    GET /lessons/{lesson_id}           -> one lesson
    GET /lessons/{lesson_id}/questions -> questions of a lesson

Responses may be bare lists or wrapped as {"lessons": [...]} / {"questions": [...]}.
Lessons are cached for the lifetime of the client, so a session sees a
consistent bank.

Usage:
    with CatalogQuestionBank(base_url, api_key="...") as bank:
        questions = bank.get_questions("greetings-1")
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger
from pydantic import ValidationError

from src.practice.models import Lesson, Question

from .question_bank import QuestionBankError


class CatalogQuestionBank:
    """HTTP question bank for the catalog service."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        headers = {"Accept": "application/json"}
        if api_key:
            headers["X-API-Key"] = api_key

        self._client = httpx.Client(
            base_url=base_url,
            headers=headers,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )
        self._lessons: dict[str, Lesson] = {}
        self._questions: dict[str, list[Question]] = {}

    def __enter__(self) -> "CatalogQuestionBank":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    # =========================================================================
    # QuestionBank protocol
    # =========================================================================

    def list_lessons_for_course(self, course_id: str) -> list[Lesson]:
        data = self._get(f"/courses/{course_id}/lessons")
        lessons = [
            self._parse_lesson(item, course_id=course_id)
            for item in _unwrap(data, "lessons")
        ]
        for lesson in lessons:
            self._lessons[lesson.id] = lesson
        return lessons

    def get_lesson(self, lesson_id: str) -> Lesson | None:
        if lesson_id in self._lessons:
            return self._lessons[lesson_id]

        data = self._get(f"/lessons/{lesson_id}", allow_missing=True)
        if data is None:
            return None
        lesson = self._parse_lesson(data)
        self._lessons[lesson_id] = lesson
        return lesson

    def get_questions(self, lesson_id: str) -> list[Question]:
        if lesson_id in self._questions:
            return list(self._questions[lesson_id])

        data = self._get(f"/lessons/{lesson_id}/questions", allow_missing=True)
        if data is None:
            logger.warning(f"Unknown lesson: {lesson_id}")
            return []

        try:
            questions = [Question.model_validate(item) for item in _unwrap(data, "questions")]
        except ValidationError as e:
            raise QuestionBankError(f"Invalid questions for lesson {lesson_id}: {e}") from e

        self._questions[lesson_id] = questions
        return list(questions)

    # =========================================================================
    # HTTP
    # =========================================================================

    def _get(self, path: str, allow_missing: bool = False) -> Any:
        try:
            response = self._client.get(path)
        except httpx.RequestError as e:
            logger.error(f"Catalog request failed: {path}: {e}")
            raise QuestionBankError(f"Catalog unreachable: {e}") from e

        if allow_missing and response.status_code == 404:
            return None

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Catalog error {response.status_code} for {path}")
            raise QuestionBankError(
                f"Catalog returned {response.status_code} for {path}"
            ) from e
        return response.json()

    @staticmethod
    def _parse_lesson(item: dict[str, Any], course_id: str | None = None) -> Lesson:
        if course_id and "courseId" not in item and "course_id" not in item:
            item = {**item, "course_id": course_id}
        try:
            return Lesson.model_validate(item)
        except ValidationError as e:
            raise QuestionBankError(f"Invalid lesson from catalog: {e}") from e


def _unwrap(data: Any, key: str) -> list[dict[str, Any]]:
    if isinstance(data, dict):
        return list(data.get(key, []))
    return list(data)
