"""
Practice session: the execution phase of one practice test.

Holds the drawn questions, the parallel answers list and the per-question
sub-state (pending doubt flag, feedback visibility, timer, time-up grace).
Every mutation is a synchronous method call; time only moves through tick().
"""

from __future__ import annotations

from enum import Enum

from loguru import logger

from .errors import SessionStateError
from .models import OPTION_COUNT, Answer, FeedbackMode, Question
from .practice_config import TestConfig
from .timer import QuestionTimer


class AdvanceOutcome(str, Enum):
    """What a user action or tick did to the session."""

    NONE = "none"
    TIME_UP = "time_up"
    NEXT = "next"
    COMPLETE = "complete"


class PracticeSession:
    """
    Question-by-question execution of a configured practice test.

    The questions are fixed at construction. Once the last question is
    advanced past, the session is finished and its answers are frozen.
    """

    def __init__(
        self,
        questions: list[Question],
        config: TestConfig,
        question_seconds: int = 50,
        warning_ratio: float = 0.2,
        grace_seconds: float = 1.5,
    ):
        if not questions:
            raise ValueError("A practice session needs at least one question")

        self.questions: tuple[Question, ...] = tuple(questions)
        self.config = config
        self.answers: list[Answer] = [Answer() for _ in self.questions]
        self.current_index = 0
        self.pending_doubt = False
        self.feedback_visible = False
        self.finished = False

        self.grace_seconds = grace_seconds
        self._grace_remaining: float | None = None
        self._time_up = False

        self.timer: QuestionTimer | None = None
        if config.time_limit_enabled:
            self.timer = QuestionTimer(duration=question_seconds, warning_ratio=warning_ratio)

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def total(self) -> int:
        return len(self.questions)

    @property
    def current_question(self) -> Question:
        return self.questions[self.current_index]

    @property
    def current_answer(self) -> Answer:
        return self.answers[self.current_index]

    @property
    def is_last(self) -> bool:
        return self.current_index == self.total - 1

    @property
    def has_answered(self) -> bool:
        return self.current_answer.selected_index is not None

    @property
    def time_up(self) -> bool:
        """True once the current question's timer has expired."""
        return self._time_up

    @property
    def advance_pending(self) -> bool:
        """True while the time-up grace delay is counting down."""
        return self._grace_remaining is not None

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    def select_answer(self, index: int) -> bool:
        """
        Record the learner's choice for the current question.

        Returns:
            True if the answer was recorded, False if the question was
            already answered or skipped (the call is then a no-op)
        """
        self._ensure_open()
        if not 0 <= index < OPTION_COUNT:
            raise ValueError(f"Answer index must be between 0 and {OPTION_COUNT - 1}, got {index}")

        answer = self.current_answer
        if answer.is_locked:
            logger.debug(f"Ignoring answer for locked question {self.current_question.id}")
            return False

        answer.selected_index = index
        if self.pending_doubt:
            answer.is_doubt = True
            answer.is_correct = None
        else:
            answer.is_correct = index == self.current_question.correct_index
        self.pending_doubt = False

        self.feedback_visible = self.config.feedback_mode is FeedbackMode.IMMEDIATE
        self._sync_timer()
        return True

    def toggle_doubt(self) -> bool:
        """
        Flip the doubt flag for the next answer.

        Returns:
            The new flag value (unchanged once the question is locked)
        """
        self._ensure_open()
        if self.current_answer.is_locked:
            return self.pending_doubt
        self.pending_doubt = not self.pending_doubt
        return self.pending_doubt

    def advance(self) -> AdvanceOutcome:
        """Move to the next question, or finish after the last one."""
        self._ensure_open()
        self._grace_remaining = None

        if self.is_last:
            self.finished = True
            self.pending_doubt = False
            if self.timer is not None:
                self.timer.stop()
            return AdvanceOutcome.COMPLETE

        self.current_index += 1
        self.pending_doubt = False
        self.feedback_visible = False
        self._time_up = False
        if self.timer is not None:
            self.timer.reset()
        return AdvanceOutcome.NEXT

    def time_expire(self) -> bool:
        """
        Handle the current question running out of time.

        An unanswered question is recorded as skipped and an advance is
        scheduled after the grace delay. Only the first expiry per question
        has an effect, and only in timed sessions.

        Returns:
            True if the expiry was handled
        """
        self._ensure_open()
        if self.timer is None or self._time_up:
            return False

        self._time_up = True
        self.timer.expired = True

        answer = self.current_answer
        if not answer.is_locked:
            answer.selected_index = None
            answer.is_correct = None
            answer.is_doubt = False
            answer.skipped = True
            self.pending_doubt = False
            logger.debug(f"Question {self.current_question.id} skipped on time-up")

        self._grace_remaining = self.grace_seconds
        return True

    # ------------------------------------------------------------------
    # Time
    # ------------------------------------------------------------------

    def tick(self) -> AdvanceOutcome:
        """Process one second of elapsed time."""
        if self.finished:
            return AdvanceOutcome.NONE

        if self._grace_remaining is not None:
            self._grace_remaining -= 1
            if self._grace_remaining <= 0:
                return self.advance()
            return AdvanceOutcome.NONE

        if self.timer is not None and self.timer.tick():
            self.time_expire()
            return AdvanceOutcome.TIME_UP
        return AdvanceOutcome.NONE

    def stop(self) -> None:
        """Quiesce the timer and any pending advance."""
        self._grace_remaining = None
        if self.timer is not None:
            self.timer.stop()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _sync_timer(self) -> None:
        # Reviewing immediate feedback must not be rushed by the clock
        if self.timer is None:
            return
        if self.has_answered and self.config.feedback_mode is FeedbackMode.IMMEDIATE:
            self.timer.suspend()
        else:
            self.timer.resume()

    def _ensure_open(self) -> None:
        if self.finished:
            raise SessionStateError("Session is finished; answers are frozen")
