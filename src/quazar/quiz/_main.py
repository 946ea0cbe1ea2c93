"""CLI entry point for quiz sessions, banks, history and config."""

from __future__ import annotations

import argparse
import random
import sys
from pathlib import Path
from typing import Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from quazar.core import config_templates
from quazar.core import workspace as workspace_mod
from quazar.core.config_templates import ConfigTemplateError
from quazar.core.logging import configure_logger

from .bank import BankCatalog, load_table_sources
from .builder import bank_answers, build_session, filter_unique_answers
from .config import (
    CONFIG_FILENAME,
    ConfigOverrides,
    LoadResult,
    load_config,
)
from .errors import QuizError
from .history import HistoryStore
from .models import QuizType
from .runner import run_quiz_session
from .session import QuizSession

LOGGER_NAME = "quazar.quiz"


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        help=(
            "Path to a TOML config file (defaults to the workspace config "
            "directory)."
        ),
    )
    parser.add_argument(
        "--workspace",
        type=Path,
        help="Override the workspace root used to resolve default paths.",
    )


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="quazar quiz",
        description="Run quiz sessions from JSON question banks.",
        epilog=(
            "Run `quazar quiz config init` to scaffold the default "
            "quazar.toml template."
        ),
    )
    sub = p.add_subparsers(dest="command", required=True)

    sp_banks = sub.add_parser("banks", help="Bank-related commands")
    banks_sub = sp_banks.add_subparsers(dest="action", required=True)
    sp_b_list = banks_sub.add_parser("list", help="List available banks")
    _add_common_options(sp_b_list)
    sp_b_import = banks_sub.add_parser(
        "import", help="Validate a bank JSON file and add it to the workspace"
    )
    sp_b_import.add_argument("file", type=Path)
    _add_common_options(sp_b_import)

    sp_start = sub.add_parser("start", help="Start a quiz session")
    sp_start.add_argument("bank", help="Bank name, file stem or JSON path")
    sp_start.add_argument(
        "--total",
        type=int,
        help="Total bank questions (0 = every available question)",
    )
    sp_start.add_argument("--mc", type=int, help="Multiple-choice questions")
    sp_start.add_argument("--id", type=int, help="Identification questions")
    sp_start.add_argument("--tf", type=int, help="True-or-false questions")
    sp_start.add_argument(
        "--unique",
        dest="unique",
        action="store_true",
        help="Keep one question per distinct correct answer",
    )
    sp_start.add_argument("--no-unique", dest="unique", action="store_false")
    sp_start.set_defaults(unique=None)
    sp_start.add_argument(
        "--table",
        dest="tables",
        type=Path,
        nargs="+",
        action="extend",
        help="Table question files to append",
    )
    sp_start.add_argument(
        "--with-options",
        dest="with_options",
        action="store_true",
        default=None,
        help="Fill tables from an option pool instead of typing",
    )
    sp_start.add_argument("--seed", type=int, help="Seed for a repeatable session")
    sp_start.add_argument(
        "--no-delay",
        action="store_true",
        help="Skip the pauses between grading steps",
    )
    sp_start.add_argument("--log-level", help="Logging level for the run")
    sp_start.add_argument(
        "--verbose",
        action="store_true",
        default=None,
        help="Echo log records to stderr",
    )
    _add_common_options(sp_start)

    sp_hist = sub.add_parser("history", help="Show past session results")
    sp_hist.add_argument(
        "--clear", action="store_true", help="Delete every recorded result"
    )
    _add_common_options(sp_hist)

    sp_cfg = sub.add_parser("config", help="Configuration commands")
    cfg_sub = sp_cfg.add_subparsers(dest="action", required=True)
    sp_c_init = cfg_sub.add_parser(
        "init", help="Write the default quazar.toml template"
    )
    sp_c_init.add_argument(
        "--path",
        type=Path,
        help=(
            "Destination for the config TOML (defaults to the workspace "
            "config directory)."
        ),
    )
    sp_c_init.add_argument(
        "--force",
        action="store_true",
        help="Overwrite the destination if a config already exists.",
    )
    _add_common_options(sp_c_init)
    return p


def _error(message: object) -> int:
    sys.stderr.write(f"Error: {message}\n")
    return 1


def _load(
    args: argparse.Namespace, overrides: Optional[ConfigOverrides] = None
) -> LoadResult:
    return load_config(
        config_path=args.config,
        overrides=overrides,
        workspace_path=args.workspace,
    )


def _catalog(load_result: LoadResult) -> BankCatalog:
    config = load_result.config
    return BankCatalog(config.banks_dir, config.imported_dir)


def _setup_logging(load_result: LoadResult) -> Path:
    _, log_path = configure_logger(
        LOGGER_NAME,
        log_dir=load_result.layout.path_for("logs"),
        level=load_result.config.log_level,
        verbose=load_result.config.verbose,
    )
    return log_path


def _cmd_banks_list(args: argparse.Namespace, console: Console) -> int:
    load_result = _load(args)
    _setup_logging(load_result)
    entries = _catalog(load_result).list()
    if not entries:
        console.print(
            f"No banks found in {load_result.config.banks_dir} or "
            f"{load_result.config.imported_dir}."
        )
        return 1
    table = Table(title="Quiz banks", box=box.SIMPLE)
    table.add_column("Name")
    table.add_column("Origin")
    table.add_column("Questions", justify="right")
    table.add_column("Path", overflow="fold")
    for entry in entries:
        table.add_row(entry.name, entry.origin, str(entry.question_count), str(entry.path))
    console.print(table)
    return 0


def _cmd_banks_import(args: argparse.Namespace, console: Console) -> int:
    load_result = _load(args)
    _setup_logging(load_result)
    name = _catalog(load_result).import_file(args.file)
    console.print(f"Imported quiz '{name}'.")
    return 0


def _type_counts(args: argparse.Namespace) -> Optional[dict[QuizType, int]]:
    given = {
        QuizType.MULTIPLE_CHOICE: args.mc,
        QuizType.IDENTIFICATION: args.id,
        QuizType.TRUE_OR_FALSE: args.tf,
    }
    if all(value is None for value in given.values()):
        return None
    return {quiz_type: value for quiz_type, value in given.items() if value is not None}


def _cmd_start(args: argparse.Namespace, console: Console) -> int:
    overrides = ConfigOverrides(
        total_questions=args.total,
        type_counts=_type_counts(args),
        unique_answer_only=args.unique,
        table_files=args.tables,
        with_options=args.with_options,
        no_delay=args.no_delay,
        log_level=args.log_level,
        verbose=args.verbose,
    )
    load_result = _load(args, overrides)
    config = load_result.config
    _setup_logging(load_result)

    bank = _catalog(load_result).load(args.bank)
    tables = load_table_sources(
        config.table.files, with_options=config.table.with_options
    )

    pool = [record for record in bank if record.correct_answer.strip()]
    if config.unique_answer_only:
        pool = filter_unique_answers(pool)
    session_config = config.session_config(len(pool))
    session_config.validate(len(pool))

    rng = random.Random(args.seed)
    questions = build_session(
        bank,
        unique_answer_only=session_config.unique_answer_only,
        type_counts=session_config.type_counts,
        table_sources=tables,
        with_options=session_config.table.with_options,
        rng=rng,
    )
    session = QuizSession(questions, bank_answers(bank), rng=rng)
    outcome = run_quiz_session(
        session,
        console,
        lambda: console.input("[bold green]>[/] "),
        recorder=HistoryStore(config.history_file),
        step_delay=config.step_delay,
        final_delay=config.final_delay,
    )
    if outcome.exit_action == "completed":
        score = session.finish()
        console.print(f"Final score: {score}/{session.total}")
    return 0


def _cmd_history(args: argparse.Namespace, console: Console) -> int:
    load_result = _load(args)
    _setup_logging(load_result)
    store = HistoryStore(load_result.config.history_file)
    if args.clear:
        if not store.clear():
            return _error(f"Unable to clear history at {store.path}")
        console.print("Quiz history cleared.")
        return 0

    entries = store.entries()
    if not entries:
        console.print("No quiz history yet.")
        return 0
    table = Table(title="Quiz history", box=box.SIMPLE)
    table.add_column("Date")
    table.add_column("Score", justify="right")
    table.add_column("Percentage", justify="right")
    for entry in entries:
        table.add_row(entry.date, f"{entry.score}/{entry.total}", f"{entry.percentage}%")
    console.print(table)
    summary = store.summary()
    console.print(
        f"Attempts: {summary.attempts} | Total score: {summary.total_score}"
    )
    return 0


def _cmd_config_init(args: argparse.Namespace, console: Console) -> int:
    try:
        target = _resolve_config_target(args)
    except workspace_mod.WorkspaceError as exc:
        return _error(exc)

    template = config_templates.get_template("quiz")
    try:
        written = template.write(target, overwrite=args.force)
    except ConfigTemplateError as exc:
        return _error(exc)
    console.print(f"Wrote quiz config to {written}")
    return 0


def _resolve_config_target(args: argparse.Namespace) -> Path:
    if args.path is not None:
        candidate = args.path.expanduser()
        if not candidate.is_absolute():
            candidate = (Path.cwd() / candidate).resolve()
        return candidate
    if args.config is not None:
        return args.config.expanduser()
    layout = workspace_mod.ensure_workspace(path=args.workspace)
    return layout.path_for("config") / CONFIG_FILENAME


_HANDLERS = {
    ("banks", "list"): _cmd_banks_list,
    ("banks", "import"): _cmd_banks_import,
    ("start", None): _cmd_start,
    ("history", None): _cmd_history,
    ("config", "init"): _cmd_config_init,
}


def main(
    argv: Optional[Sequence[str]] = None, *, console: Optional[Console] = None
) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    handler = _HANDLERS[(args.command, getattr(args, "action", None))]
    try:
        return handler(args, console or Console())
    except QuizError as exc:
        return _error(exc)


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
