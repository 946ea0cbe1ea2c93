"""Rich console loop that drives a :class:`QuizSession`.

The runner only translates console input into session calls and renders the
session's state; grading and sequencing stay in :mod:`quazar.quiz.session`.
Input comes from an injectable provider so tests can script a whole run.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from typing import Callable, Literal

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TextColumn
from rich.table import Table
from rich.text import Text

from .history import HistoryRecorder, SessionResult
from .models import QuizType, SessionQuestion, TableQuestion
from .session import QuizSession, ReviewRow

InputProvider = Callable[[], str]
ExitAction = Literal["completed", "quit", "empty"]

QUIT_COMMANDS = frozenset({":quit", ":q"})
SUBMIT_COMMANDS = frozenset({":submit", ":s"})
_LETTERS = "ABCD"
_CELL_RE = re.compile(r"^(\d+)\.(\d+)(?:\s+(.*))?$")


@dataclass(frozen=True)
class RunnerResult:
    """Return value from ``run_quiz_session``."""

    exit_action: ExitAction
    result: SessionResult | None = None
    review: list[ReviewRow] = field(default_factory=list)


def run_quiz_session(
    session: QuizSession,
    console: Console,
    input_provider: InputProvider,
    *,
    recorder: HistoryRecorder | None = None,
    step_delay: float = 0.2,
    final_delay: float = 0.5,
    sleep: Callable[[float], None] = time.sleep,
) -> RunnerResult:
    """Run ``session`` to completion or until the user quits."""

    if session.is_empty:
        console.print(
            Panel(
                "This session has no questions.",
                title="Quiz Session",
                border_style="yellow",
            )
        )
        return RunnerResult("empty")

    while session.state.in_question:
        if not session.state.section_started:
            _render_intro(console, session)
            raw = _read(console, input_provider)
            if raw is None or raw.strip().lower() in QUIT_COMMANDS:
                return _quit(console)
            session.start_section()
            continue

        question = session.current_question
        assert question is not None
        _render_question(console, session, question)
        raw = _read(console, input_provider)
        if raw is None or raw.strip().lower() in QUIT_COMMANDS:
            return _quit(console)

        if isinstance(question, TableQuestion):
            _apply_table_input(console, session, question, raw.strip())
        else:
            answer = _resolve_answer(session, question, raw.strip())
            outcome = session.submit(answer)
            if not outcome.accepted:
                console.print(f"[red]{outcome.reason}[/red]")

    try:
        _run_grading(console, session, step_delay=step_delay, sleep=sleep)
        sleep(final_delay)
    except KeyboardInterrupt:
        console.print(
            "\n[bold yellow]Grading interrupted. No history was recorded.[/]"
        )
        return RunnerResult("quit")

    result = session.complete_grading(recorder)
    review = session.review()
    _render_results(
        console, result, review, warn_unsaved=recorder is not None
    )
    return RunnerResult("completed", result, review)


def _read(console: Console, input_provider: InputProvider) -> str | None:
    try:
        return input_provider()
    except (EOFError, KeyboardInterrupt, StopIteration):
        console.print("\n[bold yellow]Session interrupted.[/]")
        return None


def _quit(console: Console) -> RunnerResult:
    console.print("\n[bold yellow]Ending session without grading.[/]")
    return RunnerResult("quit")


def _resolve_answer(
    session: QuizSession, question: SessionQuestion, text: str
) -> str:
    if question.quiz_type is not QuizType.MULTIPLE_CHOICE or len(text) != 1:
        return text
    options = session.options_for(question)
    index = _LETTERS.find(text.upper())
    if 0 <= index < len(options):
        return options[index]
    return text


def _apply_table_input(
    console: Console,
    session: QuizSession,
    question: TableQuestion,
    text: str,
) -> None:
    if text.lower() in SUBMIT_COMMANDS:
        outcome = session.submit()
        if not outcome.accepted:
            console.print(f"[red]{outcome.reason}[/red]")
        return

    with_options = question.record.with_options
    if with_options and text.isdecimal():
        options = session.table_options_for(question)
        number = int(text)
        if session.selected_cell is None:
            console.print("[red]Select a cell first with R.C.[/red]")
        elif not 1 <= number <= len(options):
            console.print(f"[red]Choose an option between 1 and {len(options)}.[/red]")
        else:
            session.choose_option(options[number - 1])
        return

    match = _CELL_RE.match(text)
    if not match:
        hint = "R.C then an option number" if with_options else "R.C answer"
        console.print(f"[red]Unrecognized input. Use {hint}, or :submit.[/red]")
        return
    key = (int(match.group(1)) - 1, int(match.group(2)) - 1)
    value = match.group(3)
    if with_options:
        if not session.select_cell(key):
            console.print(f"[red]Cell {match.group(1)}.{match.group(2)} is not a blank.[/red]")
            return
        if value and value.strip().isdecimal():
            _apply_table_input(console, session, question, value.strip())
        return
    if not session.set_cell(key, value or ""):
        console.print(f"[red]Cell {match.group(1)}.{match.group(2)} is not a blank.[/red]")


def _render_intro(console: Console, session: QuizSession) -> None:
    quiz_type = session.state.section.quiz_type
    assert quiz_type is not None
    count = len(session.section_questions(quiz_type))
    noun = "question" if count == 1 else "questions"
    console.print()
    console.print(
        Panel(
            Text.assemble(
                (quiz_type.label, "bold"),
                f"\n{count} {noun}\n",
                (_INSTRUCTIONS[quiz_type], "dim"),
            ),
            title="Next Section",
            border_style="cyan",
        )
    )
    console.print(Text("Press Enter to begin or :quit to exit.", style="dim"))


_INSTRUCTIONS = {
    QuizType.MULTIPLE_CHOICE: "Answer with a letter or the option text.",
    QuizType.IDENTIFICATION: "Type the answer.",
    QuizType.TRUE_OR_FALSE: "Is the statement the right answer? Type true or false.",
    QuizType.FILL_IN_THE_BLANK_TABLE: "Fill every numbered cell, then :submit.",
}


def _render_question(
    console: Console, session: QuizSession, question: SessionQuestion
) -> None:
    quiz_type = question.quiz_type
    position = session.state.section_index + 1
    count = len(session.section_questions(quiz_type))
    header = Text.assemble(
        (f"{quiz_type.label} {position}", "bold cyan"),
        (f" / {count}", "dim"),
    )
    console.print()
    console.rule(header)
    if question.prompt:
        console.print(Text(question.prompt, style="bold"))

    if quiz_type is QuizType.MULTIPLE_CHOICE:
        table = Table(show_header=False, box=box.SIMPLE, expand=True)
        table.add_column("Key", justify="center", style="cyan")
        table.add_column("Choice")
        for letter, option in zip(_LETTERS, session.options_for(question)):
            table.add_row(letter, option)
        console.print(table)
        hint = f"Choices [{', '.join(_LETTERS[: len(session.options_for(question))])}], :quit"
    elif quiz_type is QuizType.TRUE_OR_FALSE:
        console.print(
            Panel(
                session.statement_for(question) or "",
                title="Statement",
                border_style="magenta",
            )
        )
        hint = "true, false, :quit"
    elif isinstance(question, TableQuestion):
        _render_table(console, session, question)
        hint = (
            "R.C to select a cell, then an option number; :submit, :quit"
            if question.record.with_options
            else "R.C answer to fill a cell; :submit, :quit"
        )
    else:
        hint = "Type your answer, :quit"
    console.print(Text(f"Commands: {hint}", style="dim"))


def _render_table(
    console: Console, session: QuizSession, question: TableQuestion
) -> None:
    record = question.record
    entries = session.current_cells()
    selected = session.selected_cell
    grid = Table(box=box.SQUARE, show_lines=True)
    grid.add_column("")
    for header in record.table.columns:
        grid.add_column(header, justify="center")
    for row_idx, row in enumerate(record.table.rows):
        values: list[Text] = [Text(row.header, style="bold")]
        for col_idx, _cell in enumerate(row.cells):
            key = (row_idx, col_idx)
            if key not in record.answers:
                values.append(Text(""))
                continue
            label = f"#{row_idx + 1}.{col_idx + 1}"
            text = entries.get(key)
            cell = Text(text) if text else Text(label, style="dim")
            if key == selected:
                cell.stylize("reverse")
            values.append(cell)
        grid.add_row(*values)
    console.print(grid)

    if record.with_options:
        pool = Table(show_header=False, box=box.SIMPLE)
        pool.add_column("#", justify="right", style="cyan")
        pool.add_column("Option")
        pool.add_column("Used", justify="center")
        for number, option in enumerate(session.table_options_for(question), start=1):
            used = "✓" if session.option_in_use(option) else ""
            pool.add_row(str(number), option, used)
        console.print(pool)


def _run_grading(
    console: Console,
    session: QuizSession,
    *,
    step_delay: float,
    sleep: Callable[[float], None],
) -> None:
    console.print()
    console.rule(Text("Grading", style="bold magenta"))
    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        console=console,
        transient=False,
    ) as progress:
        task = progress.add_task("Checking answers", total=session.total)
        for _step in session.grading_steps():
            sleep(step_delay)
            progress.advance(task)


def _render_results(
    console: Console,
    result: SessionResult,
    review: list[ReviewRow],
    *,
    warn_unsaved: bool = True,
) -> None:
    console.print()
    console.rule(Text("Quiz Results", style="bold magenta"))

    overview = Table(show_header=False, box=box.MINIMAL_DOUBLE_HEAD, expand=False)
    overview.add_column("Metric", style="bold")
    overview.add_column("Value", justify="right")
    overview.add_row("Score", str(result.score))
    overview.add_row("Total", str(result.total))
    overview.add_row("Percentage", f"{result.percentage}%")
    console.print(overview)
    if warn_unsaved and not result.persisted:
        console.print(Text("History could not be saved for this session.", style="yellow"))

    responses = Table(title="Review", box=box.SIMPLE, expand=True)
    responses.add_column("#", justify="right")
    responses.add_column("Question", overflow="fold")
    responses.add_column("Your answer", overflow="fold")
    responses.add_column("Correct answer", overflow="fold")
    responses.add_column("Result", justify="center")
    for number, row in enumerate(review, start=1):
        prompt = row.prompt or f"{row.quiz_type.label} {number}"
        if row.statement is not None:
            prompt = f"{prompt}\nStatement: {row.statement}"
        responses.add_row(
            str(number),
            prompt,
            row.user_answer or "—",
            row.correct_answer or "—",
            "✅" if row.is_correct else "❌",
        )
    console.print(responses)
