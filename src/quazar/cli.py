"""Top-level ``quazar`` command that dispatches to subcommand modules."""

from __future__ import annotations

import inspect
import sys
from dataclasses import dataclass
from importlib import import_module, metadata
from typing import Callable, Mapping, Optional, Sequence

ENTRYPOINT = "main"


@dataclass(frozen=True)
class CommandSpec:
    """A subcommand backed by a module exposing ``main``."""

    name: str
    summary: str
    module: str
    interactive: bool = False

    @property
    def prog(self) -> str:
        return f"quazar {self.name}"

    def run(self, argv: Sequence[str]) -> int:
        target = getattr(import_module(self.module), ENTRYPOINT)
        return _invoke_main(target, self.prog, argv)


_COMMAND_SPECS: Sequence[CommandSpec] = (
    CommandSpec(
        name="init",
        summary="Bootstrap the quazar workspace.",
        module="quazar.workspace.cli",
    ),
    CommandSpec(
        name="quiz",
        summary="Run quiz sessions and manage banks, history and config.",
        module="quazar.quiz._main",
        interactive=True,
    ),
)

COMMANDS: Mapping[str, CommandSpec] = {spec.name: spec for spec in _COMMAND_SPECS}


def format_command_table() -> str:
    """Return the command listing shown by ``list`` and usage output."""

    width = max((len(name) for name in COMMANDS), default=0)
    lines = ["Available commands:"]
    for spec in COMMANDS.values():
        suffix = " (interactive)" if spec.interactive else ""
        lines.append(f"  {spec.name.ljust(width)}  {spec.summary}{suffix}")
    return "\n".join(lines)


def format_usage() -> str:
    return "\n".join(
        [
            "Usage: quazar <command> [args...]",
            "Run `quazar list` for commands or `quazar help <name>` for details.",
            "",
            format_command_table(),
        ]
    )


def _out(text: str) -> None:
    sys.stdout.write(text + "\n")


def _err(text: str) -> None:
    sys.stderr.write(text + "\n")


def _unknown(command: str) -> int:
    _err(f"Unknown command '{command}'.")
    _err(format_command_table())
    return 2


def _handle_version(_argv: Sequence[str]) -> int:
    try:
        version = metadata.version("quazar")
    except metadata.PackageNotFoundError:
        version = "unknown"
    _out(version)
    return 0


def _handle_list(_argv: Sequence[str]) -> int:
    _out(format_command_table())
    return 0


def _handle_help(argv: Sequence[str]) -> int:
    if not argv:
        _out(format_usage())
        return 0
    spec = COMMANDS.get(argv[0])
    if spec is None:
        return _unknown(argv[0])
    _out(f"{spec.name}: {spec.summary}")
    _out(f"Run `{spec.prog} --help` for CLI-specific options.")
    return 0


_BUILTINS: Mapping[str, Callable[[Sequence[str]], int]] = {
    "-h": _handle_help,
    "--help": _handle_help,
    "help": _handle_help,
    "-V": _handle_version,
    "--version": _handle_version,
    "version": _handle_version,
    "list": _handle_list,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = list(argv if argv is not None else sys.argv[1:])
    if not args:
        _out(format_usage())
        return 2

    head, *tail = args
    builtin = _BUILTINS.get(head)
    if builtin is not None:
        # Only ``help`` takes an argument.
        return builtin(tail if head == "help" else [])

    spec = COMMANDS.get(head)
    if spec is None:
        return _unknown(head)
    return spec.run(tail)


def _invoke_main(
    func: Callable[..., object], prog_name: str, argv: Sequence[str]
) -> int:
    """Call ``func`` with ``argv`` (when it takes arguments) under ``prog_name``."""

    args = list(argv)
    saved_argv = sys.argv
    sys.argv = [prog_name, *args]
    try:
        result = func(args) if _positional_parameter_count(func) else func()
    except SystemExit as exc:
        return _exit_code(exc.code)
    finally:
        sys.argv = saved_argv
    return result if isinstance(result, int) else 0


def _positional_parameter_count(func: Callable[..., object]) -> int:
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return 0

    count = 0
    for param in signature.parameters.values():
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            return 1
        if param.kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        ):
            count += 1
    return 1 if count == 1 else 0


def _exit_code(code: object) -> int:
    if code is None:
        return 0
    if isinstance(code, int):
        return code
    if isinstance(code, str):
        _err(code)
    return 1


if __name__ == "__main__":  # pragma: no cover - manual invocation guard
    raise SystemExit(main())
