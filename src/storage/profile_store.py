"""
Profile store: per-learner persisted state for practice tests.

Holds three things per profile:
- the last used TestConfig
- the performance ledger (question id -> PerformanceRecord)
- the append-only history of TestResults

Backed by SQLAlchemy. Every database failure is surfaced as a
PersistenceError; batched writes are applied in a single transaction.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone

from loguru import logger
from pydantic import ValidationError
from sqlalchemy import Engine, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from src.db.database import create_db_engine, create_session_factory, init_db, session_scope
from src.db.models import QuestionPerformance, TestPreference, TestResultRecord
from src.practice.errors import PersistenceError
from src.practice.models import Answer, LedgerUpdate, PerformanceRecord, TestResult
from src.practice.practice_config import TestConfig


class ProfileStore:
    """
    SQL-backed store for configs, the performance ledger and test history.

    All reads and writes take an explicit profile id.
    """

    def __init__(self, engine: Engine, create_tables: bool = True):
        self.engine = engine
        self._factory: sessionmaker[Session] = create_session_factory(engine)
        if create_tables:
            try:
                init_db(engine)
            except SQLAlchemyError as e:
                raise PersistenceError(f"Could not initialize profile store: {e}") from e

    @classmethod
    def from_url(cls, url: str) -> "ProfileStore":
        return cls(create_db_engine(url))

    # =========================================================================
    # Test configuration
    # =========================================================================

    def get_last_test_config(self, profile_id: str) -> TestConfig | None:
        try:
            with session_scope(self._factory) as session:
                pref = session.get(TestPreference, profile_id)
                data = dict(pref.config) if pref else None
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not load test config: {e}") from e

        if data is None:
            return None
        try:
            return TestConfig.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Ignoring invalid saved config for {profile_id}: {e}")
            return None

    def save_test_config(self, profile_id: str, config: TestConfig) -> None:
        try:
            with session_scope(self._factory) as session:
                pref = session.get(TestPreference, profile_id)
                if pref is None:
                    session.add(TestPreference(profile_id=profile_id, config=config.to_dict()))
                else:
                    pref.config = config.to_dict()
                    pref.updated_at = datetime.now(timezone.utc)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not save test config: {e}") from e

    # =========================================================================
    # Performance ledger
    # =========================================================================

    def get_performance_ledger(self, profile_id: str) -> dict[str, PerformanceRecord]:
        try:
            with session_scope(self._factory) as session:
                rows = session.scalars(
                    select(QuestionPerformance).where(QuestionPerformance.profile_id == profile_id)
                ).all()
                return {row.question_id: _to_record(row) for row in rows}
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not load performance ledger: {e}") from e

    def get_question_stats(self, profile_id: str, question_id: str) -> PerformanceRecord:
        """Ledger record for one question (zeros if never attempted)."""
        try:
            with session_scope(self._factory) as session:
                row = session.get(QuestionPerformance, (profile_id, question_id))
                return _to_record(row) if row else PerformanceRecord()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not load question stats: {e}") from e

    def apply_ledger_updates(self, profile_id: str, updates: Iterable[LedgerUpdate]) -> None:
        """Apply a batch of classified attempts: all of them or none."""
        try:
            with session_scope(self._factory) as session:
                self._apply_updates(session, profile_id, updates)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not update performance ledger: {e}") from e

    # =========================================================================
    # Test history
    # =========================================================================

    def append_test_result(self, profile_id: str, result: TestResult) -> TestResult:
        try:
            with session_scope(self._factory) as session:
                return self._append_result(session, profile_id, result)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not store test result: {e}") from e

    def record_session(
        self,
        profile_id: str,
        updates: Iterable[LedgerUpdate],
        result: TestResult,
    ) -> TestResult:
        """
        Store a completed session: ledger updates and result in one transaction.

        Returns:
            The stored TestResult with id and created_at set

        Raises:
            PersistenceError: nothing was written
        """
        updates = list(updates)
        try:
            with session_scope(self._factory) as session:
                self._apply_updates(session, profile_id, updates)
                stored = self._append_result(session, profile_id, result)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not store practice session: {e}") from e

        logger.debug(
            f"Recorded session {stored.id} for {profile_id}: {len(updates)} ledger updates"
        )
        return stored

    def get_test_history(self, profile_id: str, limit: int = 10) -> list[TestResult]:
        """Most recent results first."""
        stmt = (
            select(TestResultRecord)
            .where(TestResultRecord.profile_id == profile_id)
            .order_by(TestResultRecord.id.desc())
            .limit(limit)
        )
        return self._query_results(stmt)

    def get_test_history_for_lesson(
        self, profile_id: str, lesson_id: str, limit: int | None = None
    ) -> list[TestResult]:
        stmt = (
            select(TestResultRecord)
            .where(
                TestResultRecord.profile_id == profile_id,
                TestResultRecord.lesson_id == lesson_id,
            )
            .order_by(TestResultRecord.id.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return self._query_results(stmt)

    # =========================================================================
    # Internals
    # =========================================================================

    def _query_results(self, stmt) -> list[TestResult]:
        try:
            with session_scope(self._factory) as session:
                return [_to_result(row) for row in session.scalars(stmt).all()]
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not load test history: {e}") from e

    @staticmethod
    def _apply_updates(session: Session, profile_id: str, updates: Iterable[LedgerUpdate]) -> None:
        records: dict[str, PerformanceRecord] = {}
        for update in updates:
            records.setdefault(update.question_id, PerformanceRecord()).apply(update.classification)

        for question_id, delta in records.items():
            row = session.get(QuestionPerformance, (profile_id, question_id))
            if row is None:
                row = QuestionPerformance(
                    profile_id=profile_id,
                    question_id=question_id,
                    total_attempts=0,
                    correct=0,
                    wrong=0,
                    doubt=0,
                )
                session.add(row)
            row.total_attempts += delta.total_attempts
            row.correct += delta.correct
            row.wrong += delta.wrong
            row.doubt += delta.doubt
        session.flush()

    @staticmethod
    def _append_result(session: Session, profile_id: str, result: TestResult) -> TestResult:
        row = TestResultRecord(
            profile_id=profile_id,
            lesson_id=result.lesson_id,
            config=dict(result.config),
            question_ids=list(result.question_ids),
            answers=[a.to_dict() for a in result.answers],
            score=result.score,
            total_questions=result.total_questions,
            created_at=result.created_at or datetime.now(timezone.utc),
        )
        session.add(row)
        session.flush()
        return _to_result(row)


def _to_record(row: QuestionPerformance) -> PerformanceRecord:
    return PerformanceRecord(
        total_attempts=row.total_attempts,
        correct=row.correct,
        wrong=row.wrong,
        doubt=row.doubt,
    )


def _to_result(row: TestResultRecord) -> TestResult:
    return TestResult(
        id=str(row.id),
        profile_id=row.profile_id,
        lesson_id=row.lesson_id,
        config=dict(row.config),
        question_ids=list(row.question_ids),
        answers=[Answer.from_dict(a) for a in row.answers],
        score=row.score,
        total_questions=row.total_questions,
        created_at=row.created_at,
    )
