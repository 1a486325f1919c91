"""
Result compilation for practice tests.

Turns a finished session into:
- ledger updates (one classified attempt per question)
- the persisted TestResult
- display summaries for the results view and the in-test progress strip
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING

from .models import Answer, Classification, LedgerUpdate, Question, TestResult, percent
from .practice_config import TestConfig

if TYPE_CHECKING:
    from .session import PracticeSession

EXCELLENT_THRESHOLD = 80
GOOD_THRESHOLD = 60


class AnswerStatus(str, Enum):
    """Display status of one question."""

    CORRECT = "correct"
    WRONG = "wrong"
    DOUBT = "doubt"
    SKIPPED = "skipped"
    PENDING = "pending"


class PerformanceLevel(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    NEEDS_PRACTICE = "needs-practice"


# =============================================================================
# Classification and scoring
# =============================================================================


def classify_answer(answer: Answer) -> Classification:
    """
    Ledger bucket for one answer.

    A question left without a selection counts as wrong, so it stays
    eligible for the wrong mixture later.
    """
    if answer.selected_index is None:
        return Classification.WRONG
    if answer.is_doubt:
        return Classification.DOUBT
    if answer.is_correct is True:
        return Classification.CORRECT
    return Classification.WRONG


def answer_status(answer: Answer) -> AnswerStatus:
    if answer.selected_index is None:
        return AnswerStatus.SKIPPED
    if answer.is_doubt:
        return AnswerStatus.DOUBT
    if answer.is_correct is True:
        return AnswerStatus.CORRECT
    return AnswerStatus.WRONG


def build_ledger_updates(
    questions: Sequence[Question], answers: Sequence[Answer]
) -> list[LedgerUpdate]:
    if len(questions) != len(answers):
        raise ValueError(
            f"Got {len(answers)} answers for {len(questions)} questions"
        )
    return [
        LedgerUpdate(question_id=q.id, classification=classify_answer(a))
        for q, a in zip(questions, answers)
    ]


def compute_score(answers: Sequence[Answer]) -> int:
    return sum(1 for a in answers if a.is_correct is True)


def performance_level(score_percent: int) -> PerformanceLevel:
    if score_percent >= EXCELLENT_THRESHOLD:
        return PerformanceLevel.EXCELLENT
    if score_percent >= GOOD_THRESHOLD:
        return PerformanceLevel.GOOD
    return PerformanceLevel.NEEDS_PRACTICE


def compile_test_result(
    lesson_id: str,
    config: TestConfig,
    questions: Sequence[Question],
    answers: Sequence[Answer],
    profile_id: str | None = None,
) -> TestResult:
    """Snapshot a finished session as a TestResult (not yet persisted)."""
    return TestResult(
        lesson_id=lesson_id,
        config=config.to_dict(),
        question_ids=[q.id for q in questions],
        answers=[replace(a) for a in answers],
        score=compute_score(answers),
        total_questions=len(questions),
        profile_id=profile_id,
    )


# =============================================================================
# Results view
# =============================================================================


@dataclass
class ReviewRow:
    """One line of the post-test review."""

    number: int
    question_id: str
    text: str
    status: AnswerStatus
    correct_option: str
    chosen_option: str | None = None
    explanation: str | None = None


@dataclass
class ResultSummary:
    score: int
    total_questions: int
    correct: int
    wrong: int
    doubt: int
    skipped: int
    score_percent: int
    level: PerformanceLevel
    review: list[ReviewRow] = field(default_factory=list)


def summarize_result(result: TestResult, questions: Sequence[Question]) -> ResultSummary:
    """
    Shape a TestResult for display.

    Args:
        result: The compiled result
        questions: The session's questions, in result order

    Returns:
        ResultSummary with counts, percentage, level and review rows
    """
    by_id = {q.id: q for q in questions}
    review: list[ReviewRow] = []
    counts = {status: 0 for status in AnswerStatus}

    for number, (question_id, answer) in enumerate(
        zip(result.question_ids, result.answers), start=1
    ):
        status = answer_status(answer)
        counts[status] += 1

        question = by_id.get(question_id)
        if question is None:
            continue
        chosen = (
            question.options[answer.selected_index]
            if answer.selected_index is not None
            else None
        )
        review.append(
            ReviewRow(
                number=number,
                question_id=question_id,
                text=question.text,
                status=status,
                correct_option=question.correct_option,
                chosen_option=chosen,
                explanation=question.explanation,
            )
        )

    score_percent = percent(result.score, result.total_questions)
    return ResultSummary(
        score=result.score,
        total_questions=result.total_questions,
        correct=counts[AnswerStatus.CORRECT],
        wrong=counts[AnswerStatus.WRONG],
        doubt=counts[AnswerStatus.DOUBT],
        skipped=counts[AnswerStatus.SKIPPED],
        score_percent=score_percent,
        level=performance_level(score_percent),
        review=review,
    )


# =============================================================================
# Progress
# =============================================================================


@dataclass
class ProgressSummary:
    """Where the learner is within a running session."""

    current_number: int
    total: int
    percent_complete: int
    answered: int
    correct: int
    wrong: int
    doubt: int
    statuses: list[AnswerStatus] = field(default_factory=list)


def summarize_progress(session: PracticeSession) -> ProgressSummary:
    statuses: list[AnswerStatus] = []
    for i, answer in enumerate(session.answers):
        if answer.is_locked or i < session.current_index:
            statuses.append(answer_status(answer))
        else:
            statuses.append(AnswerStatus.PENDING)

    answered = sum(1 for a in session.answers if a.selected_index is not None)
    return ProgressSummary(
        current_number=session.current_index + 1,
        total=session.total,
        percent_complete=percent(session.current_index + 1, session.total),
        answered=answered,
        correct=statuses.count(AnswerStatus.CORRECT),
        wrong=statuses.count(AnswerStatus.WRONG),
        doubt=statuses.count(AnswerStatus.DOUBT),
        statuses=statuses,
    )
