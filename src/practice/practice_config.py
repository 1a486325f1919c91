"""
Test configuration: the policy a learner submits before a practice test.

Validation converts Pydantic errors into InvalidConfigError so callers only
deal with the engine's own error vocabulary.
"""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator

from .errors import InvalidConfigError
from .models import FeedbackMode, IncludeScope, QuestionMixture

MIN_QUESTION_COUNT = 1
MAX_QUESTION_COUNT = 50


class TestConfig(BaseModel):
    """User-selected policy for one practice test."""

    __test__: ClassVar[bool] = False

    model_config = ConfigDict(frozen=True, use_enum_values=False)

    question_count: int = Field(default=10, ge=MIN_QUESTION_COUNT, le=MAX_QUESTION_COUNT)
    include_scope: IncludeScope = IncludeScope.THIS_LESSON
    previous_lesson_ids: tuple[str, ...] = Field(default=(), validate_default=True)
    question_mixture: QuestionMixture = QuestionMixture.ALL
    time_limit_enabled: bool = False
    feedback_mode: FeedbackMode = FeedbackMode.IMMEDIATE

    @field_validator("previous_lesson_ids")
    @classmethod
    def _previous_lessons_match_scope(
        cls, value: tuple[str, ...], info: ValidationInfo
    ) -> tuple[str, ...]:
        scope = info.data.get("include_scope")
        if scope is IncludeScope.INCLUDE_PREVIOUS:
            if not value:
                raise ValueError("select at least one previous lesson")
            return tuple(dict.fromkeys(value))
        # Previous lessons only count for the include-previous scope
        return ()

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


def default_test_config() -> TestConfig:
    """Config offered to a profile that has never submitted one."""
    return TestConfig()


def validate_test_config(
    raw: TestConfig | dict[str, Any],
    max_question_count: int = MAX_QUESTION_COUNT,
) -> TestConfig:
    """
    Validate a submitted configuration.

    Args:
        raw: A TestConfig or a plain mapping (e.g. from a form or a saved profile)
        max_question_count: Upper bound, never above MAX_QUESTION_COUNT

    Returns:
        The validated TestConfig

    Raises:
        InvalidConfigError: with one message per offending field
    """
    data = raw.model_dump() if isinstance(raw, TestConfig) else dict(raw)

    try:
        config = TestConfig.model_validate(data)
    except ValidationError as e:
        errors: dict[str, str] = {}
        for err in e.errors():
            field = str(err["loc"][0]) if err["loc"] else "config"
            errors.setdefault(field, err["msg"])
        raise InvalidConfigError(errors) from e

    upper = min(max_question_count, MAX_QUESTION_COUNT)
    if config.question_count > upper:
        raise InvalidConfigError(
            {"question_count": f"Input should be less than or equal to {upper}"}
        )
    return config
