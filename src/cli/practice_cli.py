"""
Practice CLI: adaptive practice tests in the terminal.

Commands:
- practice run LESSON_ID     - Take a practice test for a lesson
- practice lessons COURSE_ID - List the lessons of a course
- practice history           - Show past test results
- practice stats LESSON_ID   - Show per-question performance for a lesson

Timed tests have no background clock: the seconds spent at a prompt are
replayed as ticks once the input arrives, and an answer given after the
question ran out of time is discarded.
"""
from __future__ import annotations

import random
import sys
import time
from collections.abc import Generator
from contextlib import contextmanager
from typing import Annotated, Callable, Optional

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from config import Settings, get_settings
from src.bank import QuestionBankError, create_question_bank
from src.practice import (
    FeedbackMode,
    InvalidConfigError,
    NoQuestionsAvailableError,
    PersistenceError,
    Phase,
    PracticeEngine,
    QuestionMixture,
    TestConfig,
)
from src.practice.results import AnswerStatus, ResultSummary
from src.practice.timer import QuestionTimer
from src.storage import ProfileStore


# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="practice",
    help="Adaptive practice tests for language lessons",
    no_args_is_help=True,
)
console = Console()

STATUS_STYLES = {
    AnswerStatus.CORRECT: ("✓", "bold green"),
    AnswerStatus.WRONG: ("✗", "bold red"),
    AnswerStatus.DOUBT: ("?", "bold yellow"),
    AnswerStatus.SKIPPED: ("-", "dim"),
    AnswerStatus.PENDING: ("·", "dim"),
}

LEVEL_MESSAGES = {
    "excellent": "[bold green]Excellent work![/bold green]",
    "good": "[bold cyan]Good job, keep practicing.[/bold cyan]",
    "needs-practice": "[bold yellow]This lesson needs more practice.[/bold yellow]",
}


def configure_logging(settings: Settings) -> None:
    """Send logs to stderr and, when configured, to a rotating file."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level,
        format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}",
    )
    if settings.log_file:
        logger.add(settings.log_file, level="DEBUG", rotation="1 MB", retention=5)


@contextmanager
def _service_errors() -> Generator[None, None, None]:
    """Turn store and bank failures into a message and exit code 1."""
    try:
        yield
    except PersistenceError as e:
        console.print(f"[red]Profile store unavailable:[/red] {e}")
        raise typer.Exit(1)
    except QuestionBankError as e:
        console.print(f"[red]Question bank unavailable:[/red] {e}")
        raise typer.Exit(1)


def _open_store(settings: Settings) -> ProfileStore:
    with _service_errors():
        return ProfileStore.from_url(settings.database_url)


def _open_bank(settings: Settings):
    with _service_errors():
        return create_question_bank(settings)


# =============================================================================
# Rendering
# =============================================================================


def _time_bar(timer: QuestionTimer, width: int = 10) -> str:
    filled = round(timer.progress_percent / 100 * width)
    return "█" * filled + "░" * (width - filled)


def display_question(engine: PracticeEngine) -> None:
    session = engine.session
    question = session.current_question
    progress = engine.progress()

    strip = " ".join(
        f"[{STATUS_STYLES[s][1]}]{STATUS_STYLES[s][0]}[/]" for s in progress.statuses
    )
    lines = [f"[bold]{question.text}[/bold]", ""]
    if question.image:
        lines.append(f"[dim]Image: {question.image}[/dim]")
    for i, option in enumerate(question.options, 1):
        lines.append(f"  [cyan]{i}[/cyan]. {option}")

    subtitle = strip
    if session.timer is not None:
        style = "bold red" if session.timer.is_warning else "dim"
        subtitle = (
            f"{strip}   [{style}]⏱ {_time_bar(session.timer)} "
            f"{session.timer.format_remaining()}[/]"
        )
    if session.pending_doubt:
        subtitle += "   [yellow]unsure[/yellow]"

    console.print()
    console.print(Panel(
        "\n".join(lines),
        title=f"Question {progress.current_number}/{progress.total}",
        subtitle=subtitle,
        border_style="blue",
    ))


def display_feedback(engine: PracticeEngine) -> None:
    session = engine.session
    question = session.current_question
    answer = session.current_answer

    if answer.is_doubt:
        console.print(f"[yellow]Marked as unsure.[/yellow] Answer: {question.correct_option}")
    elif answer.is_correct:
        console.print("[green]Correct![/green]")
    else:
        console.print(f"[red]Incorrect.[/red] Answer: {question.correct_option}")
    if question.explanation:
        console.print(f"[dim]{question.explanation}[/dim]")


def display_summary(summary: ResultSummary) -> None:
    console.print()
    console.print(Panel(
        f"Score: [bold]{summary.score}/{summary.total_questions}[/bold] "
        f"({summary.score_percent}%)\n"
        f"[green]Correct {summary.correct}[/green]  "
        f"[red]Wrong {summary.wrong}[/red]  "
        f"[yellow]Unsure {summary.doubt}[/yellow]  "
        f"[dim]Skipped {summary.skipped}[/dim]\n\n"
        f"{LEVEL_MESSAGES[summary.level.value]}",
        title="Results",
        border_style="green",
    ))

    table = Table(title="Review")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Question")
    table.add_column("Your answer")
    table.add_column("Correct answer", style="green")
    table.add_column("", justify="center")

    for row in summary.review:
        icon, style = STATUS_STYLES[row.status]
        table.add_row(
            str(row.number),
            row.text,
            row.chosen_option or "[dim]-[/dim]",
            row.correct_option,
            f"[{style}]{icon}[/]",
        )
    console.print(table)


# =============================================================================
# Session loop
# =============================================================================


def _store_with_retry(engine: PracticeEngine, action) -> bool:
    """Run a step that may complete the test, offering retries on storage failure."""
    try:
        action()
        return True
    except PersistenceError as e:
        console.print(f"[red]Could not save your results:[/red] {e}")

    while Confirm.ask("Try saving again?", default=True):
        try:
            engine.retry_persistence()
            return True
        except PersistenceError as e:
            console.print(f"[red]Still failing:[/red] {e}")
    return False


class PromptClock:
    """
    Replays the wall-clock time spent at prompts as whole timer ticks.

    Fractions of a second carry over between prompts of the same question
    and are dropped when the session moves to another question.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._index: int | None = None
        self._carry = 0.0
        self._started = 0.0

    def start(self, index: int) -> None:
        if index != self._index:
            self._index = index
            self._carry = 0.0
        self._started = self._clock()

    def replay(self, engine: PracticeEngine) -> bool:
        """Feed the elapsed seconds; True if the question is still open."""
        self._carry += self._clock() - self._started
        ticks = int(self._carry)
        self._carry -= ticks

        for _ in range(ticks):
            if not _store_with_retry(engine, engine.tick) or not self._is_open(engine):
                break
        return self._is_open(engine)

    def _is_open(self, engine: PracticeEngine) -> bool:
        session = engine.session
        return (
            engine.phase is Phase.EXECUTION
            and session is not None
            and not session.finished
            and session.current_index == self._index
            and not session.time_up
        )


def _wait_for_time_up_advance(engine: PracticeEngine) -> bool:
    console.print("[bold red]Time's up![/bold red]")
    while engine.session is not None and engine.session.advance_pending:
        time.sleep(1)
        if not _store_with_retry(engine, engine.tick):
            return False
    return True


def run_session(engine: PracticeEngine) -> bool:
    """
    Drive one practice test until results or abandonment.

    Returns:
        True if the test reached the results phase
    """
    clock = PromptClock()
    while engine.phase is Phase.EXECUTION:
        session = engine.session
        if session.time_up:
            if not _wait_for_time_up_advance(engine):
                return False
            continue

        index = session.current_index
        display_question(engine)

        clock.start(index)
        choice = Prompt.ask(
            "[dim]Answer 1-4, 'd' to mark unsure, 'q' to quit[/dim]"
        ).strip().lower()

        if session.timer is not None and not clock.replay(engine):
            if engine.awaiting_persistence:
                return False
            continue

        if choice == "q":
            engine.exit()
            console.print("[yellow]Test abandoned.[/yellow]")
            return False
        if choice == "d":
            engine.toggle_doubt()
            continue
        if choice not in {"1", "2", "3", "4"}:
            console.print("[red]Choose an option between 1 and 4.[/red]")
            continue

        engine.select_answer(int(choice) - 1)

        if session.feedback_visible:
            display_feedback(engine)
            Prompt.ask("[dim]Press Enter to continue[/dim]", default="", show_default=False)

        if not _store_with_retry(engine, engine.advance):
            return False

    return engine.phase is Phase.RESULTS


def _build_config(
    base: TestConfig,
    count: int | None,
    mixture: QuestionMixture | None,
    previous: list[str] | None,
    timed: bool | None,
    feedback: FeedbackMode | None,
) -> dict:
    data = base.model_dump()
    if count is not None:
        data["question_count"] = count
    if mixture is not None:
        data["question_mixture"] = mixture
    if previous:
        data["include_scope"] = "include-previous"
        data["previous_lesson_ids"] = tuple(previous)
    if timed is not None:
        data["time_limit_enabled"] = timed
    if feedback is not None:
        data["feedback_mode"] = feedback
    return data


# =============================================================================
# Commands
# =============================================================================


@app.command("run")
def run(
    lesson_id: Annotated[str, typer.Argument(help="Lesson to practice")],
    profile: Annotated[Optional[str], typer.Option("--profile", "-p", help="Learner profile")] = None,
    count: Annotated[Optional[int], typer.Option("--count", "-n", help="Number of questions (1-50)")] = None,
    mixture: Annotated[
        Optional[QuestionMixture], typer.Option("--mixture", "-m", help="Which questions to draw")
    ] = None,
    previous: Annotated[
        Optional[list[str]],
        typer.Option("--previous", help="Also draw from this previous lesson (repeatable)"),
    ] = None,
    timed: Annotated[
        Optional[bool], typer.Option("--timed/--untimed", help="Per-question time limit")
    ] = None,
    feedback: Annotated[
        Optional[FeedbackMode], typer.Option("--feedback", "-f", help="When to reveal answers")
    ] = None,
    seed: Annotated[Optional[int], typer.Option("--seed", help="Seed for question order")] = None,
) -> None:
    """
    Take a practice test.

    Options not given fall back to the profile's last used configuration.
    """
    settings = get_settings()
    bank = _open_bank(settings)
    store = _open_store(settings)

    with _service_errors():
        if bank.get_lesson(lesson_id) is None:
            console.print(f"[red]Unknown lesson:[/red] {lesson_id}")
            raise typer.Exit(1)

        rng = random.Random(seed) if seed is not None else None
        engine = PracticeEngine(
            lesson_id, bank=bank, store=store, profile_id=profile, settings=settings, rng=rng
        )
        raw_config = _build_config(engine.initial_config(), count, mixture, previous, timed, feedback)

    while True:
        try:
            with _service_errors():
                session = engine.submit_config(raw_config)
        except InvalidConfigError as e:
            for field, message in e.errors.items():
                console.print(f"[red]{field}:[/red] {message}")
            raise typer.Exit(1)
        except NoQuestionsAvailableError as e:
            console.print(f"[yellow]{e}[/yellow]")
            console.print("Try a broader mixture, e.g. [cyan]--mixture all[/cyan].")
            raise typer.Exit(1)

        console.print(
            f"\n[bold cyan]Practice[/bold cyan] {lesson_id}: {session.total} questions"
        )
        if not run_session(engine):
            raise typer.Exit(1 if engine.awaiting_persistence else 0)

        display_summary(engine.summary())

        if not Confirm.ask("Practice again?", default=False):
            engine.exit()
            break
        engine.retry()


@app.command("lessons")
def lessons(
    course_id: Annotated[str, typer.Argument(help="Course to list")],
) -> None:
    """List the lessons of a course."""
    bank = _open_bank(get_settings())
    with _service_errors():
        found = bank.list_lessons_for_course(course_id)
        if not found:
            console.print(f"[yellow]No lessons for course {course_id}[/yellow]")
            raise typer.Exit(0)

        table = Table(title=f"Lessons of {course_id}")
        table.add_column("ID", style="cyan")
        table.add_column("Title")
        table.add_column("Questions", justify="right")
        for lesson in found:
            table.add_row(lesson.id, lesson.title, str(len(bank.get_questions(lesson.id))))
    console.print(table)


@app.command("history")
def history(
    profile: Annotated[Optional[str], typer.Option("--profile", "-p", help="Learner profile")] = None,
    lesson: Annotated[Optional[str], typer.Option("--lesson", "-l", help="Only this lesson")] = None,
    limit: Annotated[Optional[int], typer.Option("--limit", help="Number of results")] = None,
) -> None:
    """Show recent practice test results."""
    settings = get_settings()
    store = _open_store(settings)
    profile_id = profile or settings.default_profile
    limit = limit or settings.history_limit

    with _service_errors():
        if lesson:
            results = store.get_test_history_for_lesson(profile_id, lesson, limit=limit)
        else:
            results = store.get_test_history(profile_id, limit=limit)

    if not results:
        console.print(f"[dim]No practice tests yet for {profile_id}[/dim]")
        return

    table = Table(title=f"Practice history: {profile_id}")
    table.add_column("Date", style="dim")
    table.add_column("Lesson", style="cyan")
    table.add_column("Mixture")
    table.add_column("Score", justify="right")
    for result in results:
        date = result.created_at.strftime("%Y-%m-%d %H:%M") if result.created_at else "-"
        table.add_row(
            date,
            result.lesson_id,
            str(result.config.get("question_mixture", "-")),
            f"{result.score}/{result.total_questions}",
        )
    console.print(table)


@app.command("stats")
def stats(
    lesson_id: Annotated[str, typer.Argument(help="Lesson to inspect")],
    profile: Annotated[Optional[str], typer.Option("--profile", "-p", help="Learner profile")] = None,
) -> None:
    """Show per-question performance for a lesson."""
    settings = get_settings()
    bank = _open_bank(settings)
    store = _open_store(settings)
    profile_id = profile or settings.default_profile

    with _service_errors():
        questions = bank.get_questions(lesson_id)
        records = [store.get_question_stats(profile_id, q.id) for q in questions]
    if not questions:
        console.print(f"[red]Unknown lesson:[/red] {lesson_id}")
        raise typer.Exit(1)

    table = Table(title=f"{lesson_id}: {profile_id}")
    table.add_column("Question")
    table.add_column("Attempts", justify="right")
    table.add_column("Correct", justify="right", style="green")
    table.add_column("Wrong", justify="right", style="red")
    table.add_column("Unsure", justify="right", style="yellow")
    table.add_column("Success", justify="right")
    for question, record in zip(questions, records):
        table.add_row(
            question.text,
            str(record.total_attempts),
            str(record.correct),
            str(record.wrong),
            str(record.doubt),
            f"{record.success_percent}%" if record.total_attempts else "-",
        )
    console.print(table)


# =============================================================================
# Entry Point
# =============================================================================


def main() -> None:
    """CLI entry point."""
    configure_logging(get_settings())
    app()


if __name__ == "__main__":
    main()
