"""Configuration loader for quiz sessions."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, MutableMapping, Optional, Sequence

from quazar.core import config as core_config
from quazar.core import workspace as workspace_mod

from .builder import POOL_TYPES, distribute_counts, validate_type_counts
from .errors import QuizConfigError, SessionConfigError
from .history import HISTORY_FILENAME
from .models import QuizType

CONFIG_FILENAME = "quazar.toml"
CONFIG_ENV = "QUAZAR_CONFIG"
ENV_PREFIX = "QUAZAR_"

_DEFAULT_TYPES: tuple[str, ...] = tuple(quiz_type.value for quiz_type in POOL_TYPES)
_DEFAULT_STEP_DELAY = 0.2
_DEFAULT_FINAL_DELAY = 0.5
_DEFAULT_LOG_LEVEL = "INFO"


@dataclass(frozen=True)
class TableConfig:
    with_options: bool = False
    files: tuple[Path, ...] = ()


@dataclass(frozen=True)
class SessionConfig:
    """How many questions of each type a session should hold."""

    total_questions: int
    type_counts: Mapping[QuizType, int]
    unique_answer_only: bool = False
    table: TableConfig = field(default_factory=TableConfig)

    @property
    def enabled_types(self) -> frozenset[QuizType]:
        enabled = {
            quiz_type for quiz_type, count in self.type_counts.items() if count > 0
        }
        if self.table.files:
            enabled.add(QuizType.FILL_IN_THE_BLANK_TABLE)
        return frozenset(enabled)

    def validate(self, available: int) -> None:
        """Reject the configuration when it cannot produce a session."""

        if not self.enabled_types:
            raise SessionConfigError("Enable at least one question type.")
        if self.total_questions == 0 and not any(self.type_counts.values()):
            # Table-only session.
            return
        validate_type_counts(
            self.total_questions,
            {quiz_type: count for quiz_type, count in self.type_counts.items() if count},
            available,
        )


@dataclass(frozen=True)
class QuizConfig:
    """Fully resolved settings for the quiz commands."""

    banks_dir: Path
    imported_dir: Path
    history_file: Path
    total_questions: int
    types: tuple[QuizType, ...]
    unique_answer_only: bool
    table: TableConfig
    step_delay: float
    final_delay: float
    log_level: str
    verbose: bool
    type_counts: Optional[Mapping[QuizType, int]] = None

    def session_config(self, available: int) -> SessionConfig:
        """Resolve counts against a bank holding ``available`` questions.

        Explicit per-type counts win; otherwise ``total_questions`` (or the
        whole pool when it is 0) is spread over ``types``.
        """

        if self.type_counts:
            counts = {
                quiz_type: count
                for quiz_type, count in self.type_counts.items()
                if count
            }
            total = self.total_questions or sum(counts.values())
        elif self.types:
            total = self.total_questions or available
            counts = distribute_counts(total, self.types)
        else:
            total, counts = 0, {}
        return SessionConfig(
            total_questions=total,
            type_counts=counts,
            unique_answer_only=self.unique_answer_only,
            table=self.table,
        )


@dataclass(frozen=True)
class ConfigOverrides:
    """CLI-sourced overrides applied on top of file/env options."""

    banks_dir: Optional[Path] = None
    total_questions: Optional[int] = None
    type_counts: Optional[Mapping[QuizType, int]] = None
    unique_answer_only: Optional[bool] = None
    table_files: Optional[Sequence[Path]] = None
    with_options: Optional[bool] = None
    no_delay: bool = False
    log_level: Optional[str] = None
    verbose: Optional[bool] = None


@dataclass(frozen=True)
class LoadResult:
    """Result of loading configuration, including workspace context."""

    config: QuizConfig
    layout: workspace_mod.WorkspaceLayout
    config_path: Optional[Path]


def default_config_path(layout: workspace_mod.WorkspaceLayout) -> Path:
    return layout.path_for("config") / CONFIG_FILENAME


def load_config(
    *,
    config_path: Optional[Path] = None,
    overrides: Optional[ConfigOverrides] = None,
    env: Optional[Mapping[str, str]] = None,
    workspace_path: Optional[Path] = None,
) -> LoadResult:
    """Load configuration applying precedence CLI > env > TOML > defaults."""

    overrides = overrides or ConfigOverrides()
    env_map = os.environ if env is None else env

    try:
        layout = workspace_mod.ensure_workspace(env=env_map, path=workspace_path)
    except workspace_mod.WorkspaceError as exc:
        raise QuizConfigError(str(exc)) from exc

    requested_path = _resolve_config_path(
        config_path=config_path,
        env_map=env_map,
        default_path=default_config_path(layout),
    )

    table = _default_table()
    loaded_path: Optional[Path]
    if requested_path.exists():
        loaded_path = requested_path
        try:
            parsed = core_config.load_toml(requested_path)
            core_config.merge_defaults(table, parsed)
        except core_config.TomlConfigError as exc:
            raise QuizConfigError(str(exc)) from exc
    else:
        loaded_path = None
        if config_path is not None or _has_env_config(env_map):
            raise QuizConfigError(f"Config file not found: {requested_path}")

    paths = table["paths"]
    session = table["session"]
    table_section = table["table"]
    grading = table["grading"]
    logging_section = table["logging"]

    banks_dir = _resolve_path(
        _pick_first(
            overrides.banks_dir,
            _parse_env_path(env_map, "BANKS_DIR"),
            _coerce_optional_path(paths["banks_dir"], field="paths.banks_dir"),
        ),
        base=layout.home,
        default=layout.path_for("banks"),
    )
    history_file = _resolve_path(
        _coerce_optional_path(paths["history_file"], field="paths.history_file"),
        base=layout.home,
        default=layout.path_for("history") / HISTORY_FILENAME,
    )

    type_counts = _parse_type_counts(overrides.type_counts)
    # Per-type counts only pair with a total given on the command line.
    file_total = None if type_counts else session["total_questions"]
    total_questions = _require_count(
        _pick_first(overrides.total_questions, file_total, 0),
        field="session.total_questions",
    )
    types = _parse_types(session["types"])

    unique_answer_only = _pick_first(
        overrides.unique_answer_only,
        _parse_env_bool(env_map, "UNIQUE_ANSWER_ONLY"),
        session["unique_answer_only"],
    )

    table_files = overrides.table_files
    if table_files is None:
        table_files = [
            _resolve_path(path, base=layout.path_for("tables"), default=path)
            for path in _parse_paths(table_section["files"], field="table.files")
        ]
    with_options = _pick_first(overrides.with_options, table_section["with_options"])

    if overrides.no_delay:
        step_delay, final_delay = 0.0, 0.0
    else:
        step_delay = _require_delay(grading["step_delay"], field="grading.step_delay")
        final_delay = _require_delay(grading["final_delay"], field="grading.final_delay")

    log_level = _resolve_log_level(
        overrides.log_level,
        _parse_env_string(env_map, "LOG_LEVEL"),
        logging_section["level"],
    )
    verbose = _pick_first(overrides.verbose, logging_section["verbose"])

    try:
        config = QuizConfig(
            banks_dir=banks_dir,
            imported_dir=layout.path_for("imported"),
            history_file=history_file,
            total_questions=total_questions,
            types=types,
            unique_answer_only=core_config.coerce_bool(
                unique_answer_only, field="session.unique_answer_only"
            ),
            table=TableConfig(
                with_options=core_config.coerce_bool(
                    with_options, field="table.with_options"
                ),
                files=tuple(Path(path) for path in table_files),
            ),
            step_delay=step_delay,
            final_delay=final_delay,
            log_level=log_level,
            verbose=core_config.coerce_bool(verbose, field="logging.verbose"),
            type_counts=type_counts,
        )
    except core_config.TomlConfigError as exc:
        raise QuizConfigError(str(exc)) from exc
    return LoadResult(config=config, layout=layout, config_path=loaded_path)


def _default_table() -> MutableMapping[str, MutableMapping[str, object]]:
    return {
        "paths": {"banks_dir": None, "history_file": None},
        "session": {
            "total_questions": 0,
            "types": list(_DEFAULT_TYPES),
            "unique_answer_only": False,
        },
        "table": {"with_options": False, "files": []},
        "grading": {
            "step_delay": _DEFAULT_STEP_DELAY,
            "final_delay": _DEFAULT_FINAL_DELAY,
        },
        "logging": {"level": _DEFAULT_LOG_LEVEL, "verbose": False},
    }


def _resolve_config_path(
    *,
    config_path: Optional[Path],
    env_map: Mapping[str, str],
    default_path: Path,
) -> Path:
    if config_path is not None:
        return Path(config_path).expanduser()
    env_candidate = env_map.get(CONFIG_ENV)
    if env_candidate and env_candidate.strip():
        return Path(env_candidate.strip()).expanduser()
    return default_path


def _has_env_config(env_map: Mapping[str, str]) -> bool:
    env_candidate = env_map.get(CONFIG_ENV)
    return bool(env_candidate and env_candidate.strip())


def _coerce_optional_path(value: object, *, field: str) -> Optional[Path]:
    if value is None:
        return None
    if isinstance(value, Path):
        return value
    if isinstance(value, str):
        raw = value.strip()
        return Path(raw) if raw else None
    raise QuizConfigError(f"{field} must be a string when provided.")


def _resolve_path(
    candidate: object,
    *,
    base: Path,
    default: Path,
) -> Path:
    if candidate is None:
        return default
    path = Path(candidate).expanduser()
    if not path.is_absolute():
        return (base / path).resolve()
    return path.resolve()


def _require_count(value: object, *, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise QuizConfigError(f"{field} must be a non-negative integer.")
    return value


def _require_delay(value: object, *, field: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise QuizConfigError(f"{field} must be a non-negative number.")
    return float(value)


def _parse_types(value: object) -> tuple[QuizType, ...]:
    if not isinstance(value, list):
        raise QuizConfigError("session.types must be an array of quiz types.")
    types: list[QuizType] = []
    for item in value:
        if not isinstance(item, str):
            raise QuizConfigError("session.types entries must be strings.")
        try:
            quiz_type = QuizType.from_value(item)
        except ValueError as exc:
            raise QuizConfigError(str(exc)) from exc
        if quiz_type not in POOL_TYPES:
            raise QuizConfigError(
                "Table questions are enabled through [table].files, not "
                "session.types."
            )
        if quiz_type not in types:
            types.append(quiz_type)
    return tuple(types)


def _parse_type_counts(
    value: Optional[Mapping[QuizType, int]],
) -> Optional[dict[QuizType, int]]:
    if not value:
        return None
    counts: dict[QuizType, int] = {}
    for quiz_type, count in value.items():
        if count is None:
            continue
        counts[quiz_type] = _require_count(count, field=f"{quiz_type.value} count")
    return counts or None


def _parse_paths(value: object, *, field: str) -> list[Path]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise QuizConfigError(f"{field} must be an array of paths.")
    return [Path(item) for item in value if item.strip()]


def _resolve_log_level(
    override: Optional[str],
    env_value: Optional[str],
    file_value: object,
) -> str:
    candidate = _pick_first(override, env_value, file_value)
    if not isinstance(candidate, str) or not candidate.strip():
        raise QuizConfigError("logging.level must be a non-empty string.")
    return candidate.strip().upper()


def _parse_env_bool(env_map: Mapping[str, str], key: str) -> Optional[bool]:
    raw = _parse_env_string(env_map, key)
    if raw is None:
        return None
    try:
        return core_config.coerce_bool(raw, field=f"{ENV_PREFIX}{key}")
    except core_config.TomlConfigError as exc:
        raise QuizConfigError(str(exc)) from exc


def _parse_env_path(env_map: Mapping[str, str], key: str) -> Optional[Path]:
    raw = _parse_env_string(env_map, key)
    if raw is None:
        return None
    return Path(raw).expanduser()


def _parse_env_string(env_map: Mapping[str, str], key: str) -> Optional[str]:
    raw = env_map.get(f"{ENV_PREFIX}{key}")
    if raw is None:
        return None
    value = raw.strip()
    return value or None


def _pick_first(*candidates: object) -> object:
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return None
