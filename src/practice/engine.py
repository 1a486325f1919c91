"""
Practice Engine: the Configuration -> Execution -> Results lifecycle.

The engine is the surface the presentation layer talks to. It validates the
submitted config, samples questions through the selection module, drives a
PracticeSession, and on completion writes the ledger updates and the result
record through the profile store in one step.

Usage:
    engine = PracticeEngine("lesson-2", bank=bank, store=store, profile_id="ana")
    engine.submit_config({"question_count": 5, "question_mixture": "combined"})
    engine.select_answer(2)
    engine.advance()
"""

from __future__ import annotations

import random
from typing import Any

from loguru import logger

from config import Settings, get_settings

from .errors import InvalidConfigError, PersistenceError, SessionStateError
from .models import Answer, Lesson, Phase, Question, TestResult
from .practice_config import TestConfig, default_test_config, validate_test_config
from .results import (
    ProgressSummary,
    ResultSummary,
    build_ledger_updates,
    compile_test_result,
    summarize_progress,
    summarize_result,
)
from .selection import build_candidate_pool, sample_questions
from .session import AdvanceOutcome, PracticeSession


class PracticeEngine:
    """
    Adaptive practice test for one lesson and one learner profile.

    All transitions run synchronously; tick() is the only time source.
    """

    def __init__(
        self,
        lesson_id: str,
        bank,
        store,
        profile_id: str | None = None,
        settings: Settings | None = None,
        rng: random.Random | None = None,
    ):
        self.settings = settings or get_settings()
        self.lesson_id = lesson_id
        self.bank = bank
        self.store = store
        self.profile_id = profile_id or self.settings.default_profile
        self.rng = rng or random.Random(self.settings.random_seed)

        self._phase = Phase.CONFIG
        self._config: TestConfig | None = None
        self._session: PracticeSession | None = None
        self._result: TestResult | None = None

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def config(self) -> TestConfig | None:
        return self._config

    @property
    def session(self) -> PracticeSession | None:
        return self._session

    @property
    def result(self) -> TestResult | None:
        return self._result

    @property
    def awaiting_persistence(self) -> bool:
        """True when the session finished but its result is not stored yet."""
        return (
            self._phase is Phase.EXECUTION
            and self._session is not None
            and self._session.finished
        )

    @property
    def current_question(self) -> Question | None:
        if self._phase is not Phase.EXECUTION or self._session is None:
            return None
        return self._session.current_question

    @property
    def answers(self) -> list[Answer]:
        if self._session is None:
            return []
        return list(self._session.answers)

    def progress(self) -> ProgressSummary | None:
        if self._session is None:
            return None
        return summarize_progress(self._session)

    def summary(self) -> ResultSummary | None:
        if self._result is None or self._session is None:
            return None
        return summarize_result(self._result, self._session.questions)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def initial_config(self) -> TestConfig:
        """The profile's last used config, or the defaults."""
        saved = self.store.get_last_test_config(self.profile_id)
        return saved or default_test_config()

    def previous_lessons(self) -> list[Lesson]:
        """Lessons of the same course that come before this one."""
        lesson = self.bank.get_lesson(self.lesson_id)
        if lesson is None:
            return []

        previous = []
        for other in self.bank.list_lessons_for_course(lesson.course_id):
            if other.id == self.lesson_id:
                break
            previous.append(other)
        return previous

    def submit_config(self, raw: TestConfig | dict[str, Any]) -> PracticeSession:
        """
        Validate the config, draw the questions and start the session.

        Raises:
            InvalidConfigError: config rejected; phase stays config
            NoQuestionsAvailableError: mixture left nothing; phase stays config
            SessionStateError: called outside the config phase
        """
        if self._phase is not Phase.CONFIG:
            raise SessionStateError(f"Cannot submit a config during {self._phase.value}")

        config = validate_test_config(raw, self.settings.max_question_count)
        if self.lesson_id in config.previous_lesson_ids:
            raise InvalidConfigError(
                {"previous_lesson_ids": f"cannot include the current lesson {self.lesson_id}"}
            )

        try:
            self.store.save_test_config(self.profile_id, config)
        except PersistenceError as e:
            logger.warning(f"Could not save last used config for {self.profile_id}: {e}")

        pool = build_candidate_pool(self.bank, self.lesson_id, config)
        ledger = self.store.get_performance_ledger(self.profile_id)
        questions = sample_questions(
            pool,
            ledger,
            config.question_mixture,
            config.question_count,
            rng=self.rng,
        )

        self._config = config
        self._result = None
        self._session = PracticeSession(
            questions,
            config,
            question_seconds=self.settings.question_time_seconds,
            warning_ratio=self.settings.time_warning_ratio,
            grace_seconds=self.settings.time_up_grace_seconds,
        )
        self._phase = Phase.EXECUTION

        logger.info(
            f"Practice started: lesson={self.lesson_id} profile={self.profile_id} "
            f"questions={len(questions)} mixture={config.question_mixture.value} "
            f"timed={config.time_limit_enabled}"
        )
        return self._session

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def select_answer(self, index: int) -> bool:
        return self._active_session().select_answer(index)

    def toggle_doubt(self) -> bool:
        return self._active_session().toggle_doubt()

    def advance(self) -> AdvanceOutcome:
        outcome = self._active_session().advance()
        if outcome is AdvanceOutcome.COMPLETE:
            self._complete()
        return outcome

    def on_timer_expire(self) -> bool:
        return self._active_session().time_expire()

    def tick(self) -> AdvanceOutcome:
        """Feed one second to the running session; ignored otherwise."""
        if self._phase is not Phase.EXECUTION or self._session is None or self._session.finished:
            return AdvanceOutcome.NONE

        outcome = self._session.tick()
        if outcome is AdvanceOutcome.COMPLETE:
            self._complete()
        return outcome

    def retry_persistence(self) -> TestResult:
        """Store a finished session again after a PersistenceError."""
        if not self.awaiting_persistence:
            raise SessionStateError("No finished session is waiting to be stored")
        return self._complete()

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def retry(self) -> None:
        """Discard the finished test and return to configuration."""
        if self._phase is not Phase.RESULTS:
            raise SessionStateError(f"Cannot retry during {self._phase.value}")
        self._reset()
        logger.debug(f"Practice retry: lesson={self.lesson_id}")

    def exit(self) -> None:
        """Abandon whatever is in progress."""
        if self._session is not None and not self._session.finished:
            logger.info(
                f"Practice abandoned at question {self._session.current_index + 1}"
                f"/{self._session.total}"
            )
        self._reset()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _active_session(self) -> PracticeSession:
        if self._phase is not Phase.EXECUTION or self._session is None:
            raise SessionStateError(f"No practice session is running ({self._phase.value})")
        return self._session

    def _complete(self) -> TestResult:
        session = self._session
        updates = build_ledger_updates(session.questions, session.answers)
        result = compile_test_result(
            self.lesson_id,
            session.config,
            session.questions,
            session.answers,
            profile_id=self.profile_id,
        )

        try:
            stored = self.store.record_session(self.profile_id, updates, result)
        except PersistenceError as e:
            logger.error(f"Failed to store practice result for {self.profile_id}: {e}")
            raise

        self._result = stored
        self._phase = Phase.RESULTS
        logger.info(
            f"Practice completed: lesson={self.lesson_id} profile={self.profile_id} "
            f"score={stored.score}/{stored.total_questions}"
        )
        return stored

    def _reset(self) -> None:
        if self._session is not None:
            self._session.stop()
        self._session = None
        self._result = None
        self._config = None
        self._phase = Phase.CONFIG
