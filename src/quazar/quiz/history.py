"""Session scoring and the persisted quiz history log."""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Protocol

from quazar.core.files import read_json_file, write_json_atomic

from .models import AnswerState

__all__ = [
    "HISTORY_FILENAME",
    "SessionResult",
    "HistoryEntry",
    "HistorySummary",
    "HistoryRecorder",
    "HistoryStore",
    "compute_result",
    "round_percentage",
]

HISTORY_FILENAME = "quiz_history.json"

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionResult:
    """Final score for a graded session."""

    score: int
    total: int
    percentage: int
    timestamp: datetime
    persisted: bool = False


@dataclass(frozen=True)
class HistoryEntry:
    id: int
    score: int
    total: int
    percentage: int
    date: str

    @classmethod
    def from_result(cls, result: SessionResult) -> "HistoryEntry":
        return cls(
            id=int(result.timestamp.timestamp() * 1000),
            score=result.score,
            total=result.total,
            percentage=result.percentage,
            date=result.timestamp.isoformat(),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "score": self.score,
            "total": self.total,
            "percentage": self.percentage,
            "date": self.date,
        }


@dataclass(frozen=True)
class HistorySummary:
    """Totals across every recorded attempt."""

    attempts: int
    total_score: int


class HistoryRecorder(Protocol):
    def append(self, result: SessionResult) -> bool: ...


def round_percentage(score: int, total: int) -> int:
    """Whole percentage of ``score`` over ``total``, halves rounded up."""

    if total <= 0:
        return 0
    return int(math.floor(score * 100 / total + 0.5))


def compute_result(
    answer_states: Iterable[AnswerState],
    total: int,
    now: datetime,
) -> SessionResult:
    """Score is the number of correct answers; a table counts as one."""

    score = sum(1 for state in answer_states if state.is_correct is True)
    return SessionResult(
        score=score,
        total=total,
        percentage=round_percentage(score, total),
        timestamp=now,
    )


class HistoryStore:
    """Most-recent-first history kept as a single JSON array file.

    Read and write failures are logged and reported through return values;
    they never raise to the caller.
    """

    def __init__(self, path: Path, *, logger: logging.Logger | None = None):
        self.path = Path(path)
        self._logger = logger or _LOGGER

    def load(self) -> list[dict[str, object]]:
        if not self.path.exists():
            return []
        try:
            data = read_json_file(self.path)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError):
            self._logger.warning(
                "Unable to read quiz history",
                extra={"path": str(self.path)},
                exc_info=True,
            )
            return []
        if not isinstance(data, list):
            self._logger.warning(
                "Ignoring quiz history that is not a list",
                extra={"path": str(self.path)},
            )
            return []
        return [item for item in data if isinstance(item, dict)]

    def entries(self) -> list[HistoryEntry]:
        parsed: list[HistoryEntry] = []
        for item in self.load():
            try:
                parsed.append(
                    HistoryEntry(
                        id=int(item["id"]),
                        score=int(item["score"]),
                        total=int(item["total"]),
                        percentage=int(item["percentage"]),
                        date=str(item["date"]),
                    )
                )
            except (KeyError, TypeError, ValueError, OverflowError):
                self._logger.warning(
                    "Skipping malformed history entry",
                    extra={"path": str(self.path)},
                )
        return parsed

    def append(self, result: SessionResult) -> bool:
        entry = HistoryEntry.from_result(result)
        history = self.load()
        history.insert(0, entry.to_dict())
        if not self._write(history):
            return False
        self._logger.info(
            "Recorded quiz result",
            extra={
                "score": result.score,
                "total": result.total,
                "percentage": result.percentage,
            },
        )
        return True

    def clear(self) -> bool:
        return self._write([])

    def summary(self) -> HistorySummary:
        entries = self.entries()
        return HistorySummary(
            attempts=len(entries),
            total_score=sum(entry.score for entry in entries),
        )

    def _write(self, payload: list[dict[str, object]]) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            write_json_atomic(self.path, payload)
        except OSError:
            self._logger.warning(
                "Unable to write quiz history",
                extra={"path": str(self.path)},
                exc_info=True,
            )
            return False
        return True
