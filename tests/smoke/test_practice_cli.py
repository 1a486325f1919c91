"""
Smoke Tests for the practice CLI.

These tests drive the typer app in-process with scripted input. They check
that commands run end to end against the bundled sample bank and a
throwaway SQLite database.

Usage:
    pytest tests/smoke/test_practice_cli.py -v -m smoke
"""

import pytest
from typer.testing import CliRunner

from config import get_settings
from src.bank import InMemoryQuestionBank, QuestionBankError
from src.cli.practice_cli import PromptClock, _time_bar, app
from src.practice import PersistenceError
from src.practice.timer import QuestionTimer
from src.storage import ProfileStore

# Mark all tests in this module as smoke tests
pytestmark = pytest.mark.smoke

LESSON = "italian-a1-01"

runner = CliRunner()


@pytest.fixture(autouse=True)
def cli_env(monkeypatch, tmp_path, project_root):
    """Point the CLI at the sample bank and a temporary database."""
    monkeypatch.setenv("PRACTICE_DATABASE_URL", f"sqlite:///{tmp_path / 'practice.db'}")
    monkeypatch.setenv("PRACTICE_QUESTION_BANK_PATH", str(project_root / "data" / "lessons.json"))
    monkeypatch.setenv("PRACTICE_LOG_FILE", "")
    monkeypatch.delenv("PRACTICE_CATALOG_API_URL", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def run_test(*args: str, answers: str):
    return runner.invoke(app, ["run", LESSON, "--seed", "3", *args], input=answers)


class TestCLIHelp:
    """Test that help commands work."""

    def test_main_help(self):
        result = runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        assert "run" in result.output
        assert "history" in result.output

    def test_run_help(self):
        result = runner.invoke(app, ["run", "--help"])

        assert result.exit_code == 0
        assert "--mixture" in result.output


class TestCLIRun:
    """Test interactive practice runs."""

    def test_end_feedback_run(self):
        result = run_test("--count", "3", "--untimed", "--feedback", "end", answers="1\n2\n3\nn\n")

        assert result.exit_code == 0, result.output
        assert "Results" in result.output
        assert "Score" in result.output

    def test_immediate_feedback_run_with_doubt(self):
        answers = "d\n1\n\n2\n\nn\n"
        result = run_test("--count", "2", "--untimed", "--feedback", "immediate", answers=answers)

        assert result.exit_code == 0, result.output
        assert "Marked as unsure" in result.output
        assert "Results" in result.output

    def test_invalid_choice_reprompts(self):
        result = run_test("--count", "1", "--feedback", "end", "--untimed", answers="9\n1\nn\n")

        assert result.exit_code == 0, result.output
        assert "between 1 and 4" in result.output

    def test_quit_abandons_test(self):
        result = run_test("--count", "2", "--untimed", answers="q\n")

        assert result.exit_code == 0
        assert "abandoned" in result.output

    def test_practice_again(self):
        answers = "1\ny\n1\nn\n"
        result = run_test("--count", "1", "--untimed", "--feedback", "end", answers=answers)

        assert result.exit_code == 0, result.output
        assert result.output.count("Results") == 2

    def test_unknown_lesson(self):
        result = runner.invoke(app, ["run", "no-such-lesson"])

        assert result.exit_code == 1
        assert "Unknown lesson" in result.output

    def test_empty_mixture(self):
        result = run_test("--mixture", "doubtful", answers="")

        assert result.exit_code == 1
        assert "--mixture all" in result.output

    def test_invalid_count(self):
        result = run_test("--count", "99", answers="")

        assert result.exit_code == 1
        assert "question_count" in result.output

    def test_timed_run_shows_time_bar(self):
        result = run_test("--count", "1", "--timed", "--feedback", "end", answers="1\nn\n")

        assert result.exit_code == 0, result.output
        assert "█" in result.output


class TestCLIReports:
    """Test lessons, history and stats."""

    def test_lessons(self):
        result = runner.invoke(app, ["lessons", "italian-a1"])

        assert result.exit_code == 0
        assert "italian-a1-02" in result.output

    def test_lessons_unknown_course(self):
        result = runner.invoke(app, ["lessons", "klingon"])

        assert result.exit_code == 0
        assert "No lessons" in result.output

    def test_history_empty(self):
        result = runner.invoke(app, ["history"])

        assert result.exit_code == 0
        assert "No practice tests yet" in result.output

    def test_history_and_stats_after_run(self):
        run_test("--count", "2", "--untimed", "--feedback", "end", answers="1\n1\nn\n")

        history = runner.invoke(app, ["history", "--lesson", LESSON])
        stats = runner.invoke(app, ["stats", LESSON])

        assert history.exit_code == 0
        assert "/2" in history.output
        assert stats.exit_code == 0
        assert "Attempts" in stats.output


class TestCLIServiceErrors:
    """Test that store and bank failures end the command cleanly."""

    def test_ledger_failure_during_run(self, monkeypatch):
        def unavailable(self, profile_id):
            raise PersistenceError("database is locked")

        monkeypatch.setattr(ProfileStore, "get_performance_ledger", unavailable)

        result = run_test("--count", "2", "--untimed", answers="")

        assert result.exit_code == 1
        assert "Profile store unavailable" in result.output
        assert "database is locked" in result.output

    def test_bank_failure_during_run(self, monkeypatch):
        def unavailable(self, lesson_id):
            raise QuestionBankError("catalog returned 500")

        monkeypatch.setattr(InMemoryQuestionBank, "get_questions", unavailable)

        result = run_test("--count", "2", "--untimed", answers="")

        assert result.exit_code == 1
        assert "Question bank unavailable" in result.output

    def test_store_failure_in_history(self, monkeypatch):
        def unavailable(self, profile_id, limit=10):
            raise PersistenceError("no such table")

        monkeypatch.setattr(ProfileStore, "get_test_history", unavailable)

        result = runner.invoke(app, ["history"])

        assert result.exit_code == 1
        assert "Profile store unavailable" in result.output


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestPromptClock:
    """Test how prompt time is turned into timer ticks."""

    @pytest.fixture
    def timed_engine(self, make_engine):
        engine = make_engine()
        engine.submit_config(
            {"question_count": 2, "time_limit_enabled": True, "feedback_mode": "end"}
        )
        return engine

    def test_fractions_accumulate_across_prompts(self, timed_engine):
        fake = FakeClock()
        clock = PromptClock(clock=fake)

        for _ in range(100):
            clock.start(timed_engine.session.current_index)
            fake.now += 0.9
            if not clock.replay(timed_engine):
                break

        assert timed_engine.session.current_index == 0
        assert timed_engine.session.time_up
        assert fake.now == pytest.approx(0.9 * 12)

    def test_whole_seconds_replayed(self, timed_engine):
        fake = FakeClock()
        clock = PromptClock(clock=fake)

        clock.start(0)
        fake.now += 3.4

        assert clock.replay(timed_engine) is True
        assert timed_engine.session.timer.remaining == 7

    def test_carry_dropped_on_next_question(self, timed_engine):
        fake = FakeClock()
        clock = PromptClock(clock=fake)
        clock.start(0)
        fake.now += 0.9
        clock.replay(timed_engine)
        timed_engine.select_answer(0)
        timed_engine.advance()

        clock.start(1)
        fake.now += 0.5

        assert clock.replay(timed_engine) is True
        assert timed_engine.session.timer.remaining == 10


@pytest.mark.parametrize("remaining, bar", [(10, "██████████"), (5, "█████░░░░░"), (0, "░░░░░░░░░░")])
def test_time_bar(remaining, bar):
    timer = QuestionTimer(duration=10)
    timer.remaining = remaining

    assert _time_bar(timer) == bar
