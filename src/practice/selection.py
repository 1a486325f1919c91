"""
Question selection for practice tests.

Builds the candidate pool from the question bank, keeps the questions the
mixture policy allows given the learner's ledger, then draws a flat uniform
sample. Randomness is injected so sampling is reproducible under test.
"""

from __future__ import annotations

import random
from collections.abc import Iterable, Mapping

from loguru import logger

from .errors import NoQuestionsAvailableError
from .models import IncludeScope, PerformanceRecord, Question, QuestionMixture
from .practice_config import TestConfig

_EMPTY_RECORD = PerformanceRecord()


def build_candidate_pool(bank, lesson_id: str, config: TestConfig) -> list[Question]:
    """
    Collect the questions a test may draw from.

    The current lesson comes first; with the include-previous scope the
    selected previous lessons follow. Questions are deduplicated by id.
    """
    lesson_ids = [lesson_id]
    if config.include_scope is IncludeScope.INCLUDE_PREVIOUS:
        lesson_ids.extend(lid for lid in config.previous_lesson_ids if lid != lesson_id)

    pool: dict[str, Question] = {}
    for lid in lesson_ids:
        for question in bank.get_questions(lid):
            pool.setdefault(question.id, question)
    return list(pool.values())


def matches_mixture(record: PerformanceRecord | None, mixture: QuestionMixture) -> bool:
    """Check whether a question with this history is eligible under the mixture."""
    record = record or _EMPTY_RECORD

    if mixture is QuestionMixture.ALL:
        return True
    if mixture is QuestionMixture.WRONG:
        return record.wrong > 0
    if mixture is QuestionMixture.NON_ANSWERED:
        return record.total_attempts == 0
    if mixture is QuestionMixture.DOUBTFUL:
        return record.doubt > 0
    if mixture is QuestionMixture.COMBINED:
        return record.wrong > 0 or record.doubt > 0 or record.total_attempts == 0
    raise ValueError(f"Unknown question mixture: {mixture}")


def filter_by_mixture(
    questions: Iterable[Question],
    ledger: Mapping[str, PerformanceRecord],
    mixture: QuestionMixture,
) -> list[Question]:
    """Keep the questions whose ledger record satisfies the mixture."""
    return [q for q in questions if matches_mixture(ledger.get(q.id), mixture)]


def sample_questions(
    pool: Iterable[Question],
    ledger: Mapping[str, PerformanceRecord],
    mixture: QuestionMixture,
    question_count: int,
    rng: random.Random | None = None,
) -> list[Question]:
    """
    Draw an ordered sample of at most question_count questions.

    Args:
        pool: Candidate questions
        ledger: question id -> PerformanceRecord (missing id means never attempted)
        mixture: Eligibility policy
        question_count: Requested number of questions
        rng: Source of randomness (a fresh unseeded Random when omitted)

    Returns:
        Shuffled questions, no repeats, no padding

    Raises:
        NoQuestionsAvailableError: if nothing survives the mixture filter
    """
    candidates = list(pool)
    eligible = filter_by_mixture(candidates, ledger, mixture)

    if not eligible:
        logger.warning(
            f"No questions for mixture '{mixture.value}' out of {len(candidates)} candidates"
        )
        raise NoQuestionsAvailableError(mixture.value, len(candidates))

    rng = rng or random.Random()
    rng.shuffle(eligible)
    sample = eligible[: max(0, question_count)]

    logger.debug(
        f"Sampled {len(sample)}/{len(eligible)} eligible questions "
        f"(mixture={mixture.value}, requested={question_count})"
    )
    return sample
