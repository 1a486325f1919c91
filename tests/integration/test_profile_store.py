"""
Integration tests for the SQLAlchemy profile store (in-memory SQLite).
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError

from src.db.database import create_db_engine, create_session_factory, init_db, session_scope
from src.db.models import QuestionPerformance
from src.practice.errors import PersistenceError
from src.practice.models import Answer, Classification, LedgerUpdate, TestResult
from src.practice.practice_config import TestConfig
from src.storage import ProfileStore


def make_result(lesson_id="lesson-1", score=1, created_at=None) -> TestResult:
    return TestResult(
        lesson_id=lesson_id,
        config=TestConfig().to_dict(),
        question_ids=["question-1", "question-2"],
        answers=[Answer(selected_index=0, is_correct=True), Answer(skipped=True)],
        score=score,
        total_questions=2,
        created_at=created_at,
    )


class TestTestConfigPersistence:
    def test_no_saved_config(self, store):
        assert store.get_last_test_config("ana") is None

    def test_save_and_load(self, store):
        config = TestConfig(
            question_count=7,
            include_scope="include-previous",
            previous_lesson_ids=["lesson-1"],
            question_mixture="combined",
            time_limit_enabled=True,
            feedback_mode="end",
        )

        store.save_test_config("ana", config)

        assert store.get_last_test_config("ana") == config

    def test_save_overwrites(self, store):
        store.save_test_config("ana", TestConfig(question_count=3))
        store.save_test_config("ana", TestConfig(question_count=9))

        assert store.get_last_test_config("ana").question_count == 9

    def test_profiles_are_isolated(self, store):
        store.save_test_config("ana", TestConfig(question_count=3))

        assert store.get_last_test_config("bob") is None


class TestLedger:
    def test_empty_ledger(self, store):
        assert store.get_performance_ledger("ana") == {}

    def test_records_created_lazily(self, store):
        store.apply_ledger_updates(
            "ana",
            [
                LedgerUpdate("question-1", Classification.CORRECT),
                LedgerUpdate("question-2", Classification.WRONG),
                LedgerUpdate("question-3", Classification.DOUBT),
            ],
        )

        ledger = store.get_performance_ledger("ana")
        assert set(ledger) == {"question-1", "question-2", "question-3"}
        assert ledger["question-2"].wrong == 1
        assert ledger["question-3"].doubt == 1

    def test_updates_accumulate(self, store):
        for classification in (Classification.CORRECT, Classification.WRONG, Classification.CORRECT):
            store.apply_ledger_updates("ana", [LedgerUpdate("question-1", classification)])

        record = store.get_question_stats("ana", "question-1")
        assert (record.total_attempts, record.correct, record.wrong, record.doubt) == (3, 2, 1, 0)
        assert record.success_percent == 67

    def test_same_question_twice_in_one_batch(self, store):
        store.apply_ledger_updates(
            "ana",
            [
                LedgerUpdate("question-1", Classification.WRONG),
                LedgerUpdate("question-1", Classification.DOUBT),
            ],
        )

        record = store.get_question_stats("ana", "question-1")
        assert record.total_attempts == 2

    def test_invariant_holds_after_every_update(self, store):
        classifications = [Classification.CORRECT, Classification.WRONG, Classification.DOUBT] * 4
        for i, classification in enumerate(classifications):
            store.apply_ledger_updates("ana", [LedgerUpdate(f"question-{i % 3}", classification)])
            for record in store.get_performance_ledger("ana").values():
                assert record.total_attempts == record.correct + record.wrong + record.doubt

    def test_missing_stats_are_zero(self, store):
        record = store.get_question_stats("ana", "never")

        assert record.total_attempts == 0
        assert record.success_percent == 0

    def test_check_constraint_rejects_broken_totals(self, store):
        with pytest.raises(IntegrityError):
            with session_scope(store._factory) as session:
                session.add(
                    QuestionPerformance(
                        profile_id="ana", question_id="q", total_attempts=5, correct=1, wrong=0, doubt=0
                    )
                )


class TestHistory:
    def test_append_assigns_id_and_timestamp(self, store):
        stored = store.append_test_result("ana", make_result())

        assert stored.id is not None
        assert stored.created_at is not None
        assert stored.profile_id == "ana"
        assert stored.answers[1].skipped is True

    def test_newest_first_with_limit(self, store):
        start = datetime(2026, 1, 1, tzinfo=timezone.utc)
        for i in range(5):
            store.append_test_result("ana", make_result(score=i, created_at=start + timedelta(days=i)))

        history = store.get_test_history("ana", limit=3)

        assert [r.score for r in history] == [4, 3, 2]

    def test_history_for_lesson(self, store):
        store.append_test_result("ana", make_result(lesson_id="lesson-1"))
        store.append_test_result("ana", make_result(lesson_id="lesson-2"))
        store.append_test_result("bob", make_result(lesson_id="lesson-1"))

        history = store.get_test_history_for_lesson("ana", "lesson-1")

        assert len(history) == 1
        assert history[0].lesson_id == "lesson-1"


class TestRecordSession:
    def test_writes_ledger_and_result_together(self, store):
        updates = [
            LedgerUpdate("question-1", Classification.CORRECT),
            LedgerUpdate("question-2", Classification.WRONG),
        ]

        stored = store.record_session("ana", updates, make_result())

        assert store.get_test_history("ana")[0].id == stored.id
        assert store.get_question_stats("ana", "question-2").wrong == 1

    def test_failure_writes_nothing(self, store):
        store.apply_ledger_updates("ana", [LedgerUpdate("question-1", Classification.CORRECT)])
        with store.engine.begin() as conn:
            conn.execute(text("DROP TABLE test_results"))

        with pytest.raises(PersistenceError):
            store.record_session(
                "ana", [LedgerUpdate("question-1", Classification.WRONG)], make_result()
            )

        record = store.get_question_stats("ana", "question-1")
        assert (record.total_attempts, record.wrong) == (1, 0)


def test_database_errors_become_persistence_errors():
    engine = create_db_engine("sqlite://")
    store = ProfileStore(engine)
    with engine.begin() as conn:
        conn.execute(text("DROP TABLE question_performance"))

    with pytest.raises(PersistenceError) as exc:
        store.get_performance_ledger("ana")

    assert isinstance(exc.value.__cause__, OperationalError)


class TestDatabaseHelpers:
    def test_session_scope_rolls_back_on_error(self):
        engine = create_db_engine("sqlite://")
        init_db(engine)
        factory = create_session_factory(engine)

        with pytest.raises(RuntimeError):
            with session_scope(factory) as session:
                session.add(QuestionPerformance(profile_id="ana", question_id="q"))
                session.flush()
                raise RuntimeError("boom")

        with session_scope(factory) as session:
            assert session.get(QuestionPerformance, ("ana", "q")) is None

    def test_from_url_creates_database_file(self, tmp_path):
        path = tmp_path / "nested" / "practice.db"

        store = ProfileStore.from_url(f"sqlite:///{path}")
        store.save_test_config("ana", TestConfig(question_count=4))

        assert path.exists()
        assert store.get_last_test_config("ana").question_count == 4
        store.engine.dispose()
