"""Question bank and table file loading, validation and the bank catalog."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

from quazar.core.files import iter_json_files, read_json_file, read_text_file

from .errors import BankNotFoundError, BankValidationError, TableFileError
from .models import (
    QuestionRecord,
    QuizType,
    TableCell,
    TableData,
    TableRecord,
    TableRow,
    lookup_key,
    parse_cell_key,
)

__all__ = [
    "REQUIRED_FIELDS",
    "validate_bank_item",
    "parse_bank",
    "parse_table_file",
    "load_bank",
    "load_table_file",
    "load_table_sources",
    "format_quiz_name",
    "display_name",
    "BankEntry",
    "BankCatalog",
]

_LOGGER = logging.getLogger(__name__)

# Each required field and the (case-insensitive) keys that satisfy it.
REQUIRED_FIELDS: Dict[str, tuple[str, ...]] = {
    "id": ("id",),
    "question(s)": ("question", "questions"),
    "options": ("options",),
    "correctAnswer": ("correctanswer", "correct_answer"),
}
_REQUIRED_HINT = "Required fields: id, question(s), options, correctAnswer"

_SPECIAL_CHARS_RE = re.compile(r"[^a-zA-Z0-9\s]")
_WHITESPACE_RE = re.compile(r"\s+")


def _missing_fields(item: Mapping[str, object]) -> List[str]:
    keys = {str(key).lower() for key in item}
    return [
        name
        for name, aliases in REQUIRED_FIELDS.items()
        if not any(alias in keys for alias in aliases)
    ]


def validate_bank_item(item: object) -> bool:
    return isinstance(item, Mapping) and not _missing_fields(item)


def parse_bank(items: object) -> List[QuestionRecord]:
    """Validate decoded bank JSON and convert it into records.

    The bank is rejected as a whole: the first invalid item raises
    :class:`BankValidationError` naming its 1-based position.
    """
    if not isinstance(items, list) or not items:
        raise BankValidationError(
            "Invalid JSON format. Expected an array of quiz items."
        )
    for position, item in enumerate(items, start=1):
        if not isinstance(item, Mapping):
            raise BankValidationError(
                f"Invalid JSON structure. Item {position} must be an object."
            )
        missing = _missing_fields(item)
        if missing:
            raise BankValidationError(
                f"Invalid quiz format. Item {position} is missing "
                f"{', '.join(missing)}. {_REQUIRED_HINT}."
            )
    return [QuestionRecord.from_mapping(item) for item in items]


def _parse_table_data(raw: object, *, position: int) -> TableData:
    if not isinstance(raw, Mapping):
        raise TableFileError(f"Table {position}: 'tableData' must be an object.")
    headers_key = lookup_key(raw, "columnHeaders")
    rows_key = lookup_key(raw, "rows")
    headers = raw.get(headers_key) if headers_key else []
    rows_raw = raw.get(rows_key) if rows_key else []
    if not isinstance(headers, list) or not isinstance(rows_raw, list):
        raise TableFileError(
            f"Table {position}: 'columnHeaders' and 'rows' must be arrays."
        )
    rows: List[TableRow] = []
    for row in rows_raw:
        if not isinstance(row, Mapping):
            raise TableFileError(f"Table {position}: each row must be an object.")
        cells_raw = row.get("cells") or []
        if not isinstance(cells_raw, list):
            raise TableFileError(f"Table {position}: row cells must be an array.")
        cells = tuple(
            TableCell(kind=str(cell.get("type", "")) if isinstance(cell, Mapping) else "")
            for cell in cells_raw
        )
        header = row.get("rowHeader")
        rows.append(TableRow(header="" if header is None else str(header), cells=cells))
    return TableData(columns=tuple(str(h) for h in headers), rows=tuple(rows))


def _parse_table_record(
    item: Mapping[str, object], *, position: int, with_options: bool
) -> TableRecord:
    table_key = lookup_key(item, "tableData")
    table = _parse_table_data(item.get(table_key) if table_key else None, position=position)

    answers_raw = item.get("answers") or {}
    if not isinstance(answers_raw, Mapping):
        raise TableFileError(f"Table {position}: 'answers' must be an object.")
    answers = {}
    for raw_key, value in answers_raw.items():
        try:
            key = parse_cell_key(raw_key)
        except ValueError as exc:
            raise TableFileError(f"Table {position}: {exc}") from exc
        row, col = key
        if row >= len(table.rows) or col >= len(table.rows[row].cells):
            raise TableFileError(
                f"Table {position}: answer cell '{raw_key}' is outside the table."
            )
        answer = "" if value is None else str(value).strip()
        if not answer:
            raise TableFileError(
                f"Table {position}: answer for cell '{raw_key}' is empty."
            )
        answers[key] = answer

    wrong_raw = item.get("wrongOptions") or []
    if not isinstance(wrong_raw, list):
        raise TableFileError(f"Table {position}: 'wrongOptions' must be an array.")
    wrong = tuple(str(w).strip() for w in wrong_raw if w is not None and str(w).strip())

    question = item.get("question")
    raw_id = item.get("id")
    return TableRecord(
        id=None if raw_id is None else str(raw_id),
        question="" if question is None else str(question).strip(),
        table=table,
        answers=answers,
        wrong_options=wrong,
        with_options=with_options,
        source=dict(item),
    )


def parse_table_file(
    items: object, *, with_options: bool = False
) -> List[TableRecord]:
    """Return the table questions found in a decoded table file.

    Objects whose ``quizType`` is not ``fillInTheBlankTable`` are ignored; a
    file without any table question is rejected.
    """
    if not isinstance(items, list) or not items:
        raise TableFileError("Invalid JSON format. Expected an array.")
    records: List[TableRecord] = []
    for position, item in enumerate(items, start=1):
        if not isinstance(item, Mapping):
            continue
        if item.get("quizType") != QuizType.FILL_IN_THE_BLANK_TABLE.value:
            continue
        records.append(
            _parse_table_record(item, position=position, with_options=with_options)
        )
    if not records:
        raise TableFileError(
            "Invalid table JSON file. File must contain table questions."
        )
    return records


def load_bank(path: Path) -> List[QuestionRecord]:
    """Read and validate a bank JSON file."""
    try:
        data = read_json_file(path)
    except json.JSONDecodeError as exc:
        raise BankValidationError(f"{Path(path).name}: Error parsing JSON: {exc}") from exc
    try:
        return parse_bank(data)
    except BankValidationError as exc:
        raise BankValidationError(f"{Path(path).name}: {exc}") from exc


def load_table_file(path: Path, *, with_options: bool = False) -> List[TableRecord]:
    """Read table questions from ``path``, tagging them with ``with_options``."""
    name = Path(path).name
    try:
        data = read_json_file(path)
    except json.JSONDecodeError as exc:
        raise TableFileError(f"{name}: Error parsing JSON: {exc}") from exc
    except OSError as exc:
        raise TableFileError(f"Failed to load table JSON file: {name}") from exc
    try:
        return parse_table_file(data, with_options=with_options)
    except TableFileError as exc:
        raise TableFileError(f"{name}: {exc}") from exc


def load_table_sources(
    paths: Sequence[Path], *, with_options: bool = False
) -> List[TableRecord]:
    """Load every table file in order; any invalid file rejects the set."""
    records: List[TableRecord] = []
    for path in paths:
        loaded = load_table_file(path, with_options=with_options)
        _LOGGER.info(
            "Loaded table file",
            extra={"path": str(path), "tables": len(loaded)},
        )
        records.extend(loaded)
    return records


def format_quiz_name(file_name: str) -> str:
    """Name under which an imported bank is stored: ``my-quiz.json`` -> ``MY QUIZ``."""
    name = file_name.replace(".json", "")
    name = _SPECIAL_CHARS_RE.sub(" ", name).upper()
    return _WHITESPACE_RE.sub(" ", name).strip()


def display_name(file_name: str) -> str:
    """Title for a bundled bank: ``quiz_data.json`` -> ``Quiz Data``."""
    stem = file_name.replace(".json", "").replace("_", " ")
    return " ".join(word[:1].upper() + word[1:] for word in stem.split(" "))


@dataclass(frozen=True)
class BankEntry:
    """A bank available to start a session from."""

    name: str
    path: Path
    origin: str
    question_count: int

    @property
    def description(self) -> str:
        return f"{self.question_count} questions available"


class BankCatalog:
    """Bundled banks from ``banks_dir`` plus banks imported by the user."""

    def __init__(
        self,
        banks_dir: Path,
        imported_dir: Path,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.banks_dir = Path(banks_dir)
        self.imported_dir = Path(imported_dir)
        self._logger = logger or _LOGGER

    def list(self) -> List[BankEntry]:
        entries: List[BankEntry] = []
        seen: set[Path] = set()
        for origin, directory, namer in (
            ("bundled", self.banks_dir, display_name),
            ("imported", self.imported_dir, lambda name: name.replace(".json", "")),
        ):
            for path in iter_json_files([directory]):
                resolved = path.resolve()
                if resolved in seen:
                    continue
                count = self._count_questions(path)
                if count is None:
                    continue
                seen.add(resolved)
                entries.append(
                    BankEntry(
                        name=namer(path.name),
                        path=path,
                        origin=origin,
                        question_count=count,
                    )
                )
        return entries

    def _count_questions(self, path: Path) -> Optional[int]:
        try:
            data = read_json_file(path)
        except (OSError, json.JSONDecodeError) as exc:
            self._logger.warning(
                "Skipping unreadable bank",
                extra={"path": str(path), "error": str(exc)},
            )
            return None
        if not isinstance(data, list) or not data:
            self._logger.warning(
                "Skipping bank without questions", extra={"path": str(path)}
            )
            return None
        return len(data)

    def find(self, name: str) -> BankEntry:
        wanted = name.strip().lower()
        for entry in self.list():
            if wanted in {entry.name.lower(), entry.path.stem.lower(), entry.path.name.lower()}:
                return entry
        candidate = Path(name).expanduser()
        if candidate.is_file():
            count = self._count_questions(candidate)
            if count is not None:
                return BankEntry(
                    name=display_name(candidate.name),
                    path=candidate,
                    origin="file",
                    question_count=count,
                )
        raise BankNotFoundError(f"Quiz bank not found: {name}")

    def load(self, name: str) -> List[QuestionRecord]:
        entry = self.find(name)
        records = load_bank(entry.path)
        self._logger.info(
            "Loaded quiz bank",
            extra={"bank": entry.name, "questions": len(records)},
        )
        return records

    def import_file(self, path: Path) -> str:
        """Validate ``path`` and store it under its formatted name."""
        source = Path(path)
        try:
            content = read_text_file(source)
        except OSError as exc:
            raise BankValidationError(f"Failed to read file content: {source}") from exc
        if not content.strip():
            raise BankValidationError("Failed to read file content")
        try:
            parse_bank(json.loads(content))
        except json.JSONDecodeError as exc:
            raise BankValidationError(f"Error importing quiz: {exc}") from exc

        name = format_quiz_name(source.name)
        if not name:
            raise BankValidationError(f"Cannot derive a quiz name from {source.name}")
        target = self.imported_dir / f"{name}.json"
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        self._logger.info(
            "Imported quiz bank", extra={"bank": name, "path": str(target)}
        )
        return name
