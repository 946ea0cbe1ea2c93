"""Typed records for question banks, table questions and session questions.

Bank items arrive as loosely keyed JSON objects. They are converted once into
frozen dataclasses here so grading code never probes optional keys. A quiz
type is imposed at build time by wrapping a record in one of the
``SessionQuestion`` variants.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Dict, Mapping, Optional, Tuple, Union

__all__ = [
    "QuizType",
    "SECTION_ORDER",
    "CellKey",
    "parse_cell_key",
    "format_cell_key",
    "lookup_key",
    "QuestionRecord",
    "TableCell",
    "TableRow",
    "TableData",
    "TableRecord",
    "SessionQuestion",
    "MultipleChoiceQuestion",
    "IdentificationQuestion",
    "TrueFalseQuestion",
    "TableQuestion",
    "make_question",
    "AnswerState",
    "UserAnswer",
]


class QuizType(str, Enum):
    """Question presentation/grading modes, valued as in bank JSON."""

    MULTIPLE_CHOICE = "multipleChoice"
    IDENTIFICATION = "identification"
    TRUE_OR_FALSE = "trueOrFalse"
    FILL_IN_THE_BLANK_TABLE = "fillInTheBlankTable"

    @property
    def label(self) -> str:
        return _LABELS[self]

    @classmethod
    def from_value(cls, value: str) -> "QuizType":
        normalized = value.strip().lower()
        for member in cls:
            if member.value.lower() == normalized:
                return member
        expected = ", ".join(member.value for member in cls)
        raise ValueError(
            f"Unknown quiz type '{value}'. Expected one of: {expected}."
        )


_LABELS = {
    QuizType.MULTIPLE_CHOICE: "Multiple Choice",
    QuizType.IDENTIFICATION: "Identification",
    QuizType.TRUE_OR_FALSE: "True or False",
    QuizType.FILL_IN_THE_BLANK_TABLE: "Fill in the Blank (Table)",
}

# Sections are presented in this order; adding a type is a one-line change.
SECTION_ORDER: Tuple[QuizType, ...] = (
    QuizType.MULTIPLE_CHOICE,
    QuizType.IDENTIFICATION,
    QuizType.TRUE_OR_FALSE,
    QuizType.FILL_IN_THE_BLANK_TABLE,
)

CellKey = Tuple[int, int]
UserAnswer = Union[str, Dict[CellKey, str]]

_CELL_KEY_RE = re.compile(r"^\s*(\d+)_(\d+)\s*$")


def parse_cell_key(raw: str) -> CellKey:
    """Parse a ``"{row}_{col}"`` JSON key into a ``(row, col)`` tuple."""

    match = _CELL_KEY_RE.match(str(raw))
    if not match:
        raise ValueError(f"Invalid cell key '{raw}'; expected '<row>_<col>'.")
    return int(match.group(1)), int(match.group(2))


def format_cell_key(key: CellKey) -> str:
    return f"{key[0]}_{key[1]}"


def lookup_key(data: Mapping[str, object], *names: str) -> Optional[str]:
    """Return the first key of ``data`` matching ``names`` case-insensitively."""

    lowered = {str(key).lower(): str(key) for key in data}
    for name in names:
        actual = lowered.get(name.lower())
        if actual is not None:
            return actual
    return None


def _text(value: object) -> str:
    return "" if value is None else str(value).strip()


def _string_tuple(value: object) -> Tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(text for text in (_text(item) for item in value) if text)


@dataclass(frozen=True)
class QuestionRecord:
    """One bank item. ``options`` are preferred choices, possibly empty."""

    id: Optional[str]
    question: str
    correct_answer: str
    options: Tuple[str, ...] = ()
    source: Mapping[str, object] = field(
        default_factory=dict, compare=False, repr=False
    )

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> "QuestionRecord":
        id_key = lookup_key(data, "id")
        question_key = lookup_key(data, "question", "questions")
        answer_key = lookup_key(data, "correctAnswer", "correct_answer")
        options_key = lookup_key(data, "options")
        raw_id = data.get(id_key) if id_key else None
        return cls(
            id=None if raw_id is None else str(raw_id),
            question=_text(data.get(question_key)) if question_key else "",
            correct_answer=_text(data.get(answer_key)) if answer_key else "",
            options=_string_tuple(data.get(options_key)) if options_key else (),
            source=dict(data),
        )


@dataclass(frozen=True)
class TableCell:
    kind: str

    @property
    def is_blank(self) -> bool:
        return self.kind == "blank"


@dataclass(frozen=True)
class TableRow:
    header: str
    cells: Tuple[TableCell, ...]


@dataclass(frozen=True)
class TableData:
    """Column headers plus rows of typed cells."""

    columns: Tuple[str, ...]
    rows: Tuple[TableRow, ...]

    def blank_keys(self) -> Tuple[CellKey, ...]:
        return tuple(
            (row_idx, col_idx)
            for row_idx, row in enumerate(self.rows)
            for col_idx, cell in enumerate(row.cells)
            if cell.is_blank
        )


@dataclass(frozen=True)
class TableRecord:
    """A fill-in-the-blank table question loaded from a table file."""

    id: Optional[str]
    question: str
    table: TableData
    answers: Mapping[CellKey, str]
    wrong_options: Tuple[str, ...] = ()
    with_options: bool = False
    source: Mapping[str, object] = field(
        default_factory=dict, compare=False, repr=False
    )

    @property
    def correct_answer(self) -> str:
        return "; ".join(
            f"{row + 1}.{col + 1}={text}"
            for (row, col), text in sorted(self.answers.items())
        )

    def fillable_keys(self) -> Tuple[CellKey, ...]:
        return tuple(sorted(self.answers))


@dataclass(frozen=True)
class SessionQuestion:
    """A record placed in a session at a fixed ``global_index``."""

    global_index: int
    record: QuestionRecord

    quiz_type: ClassVar[QuizType]

    @property
    def prompt(self) -> str:
        return self.record.question

    @property
    def correct_answer(self) -> str:
        return self.record.correct_answer.strip()


@dataclass(frozen=True)
class MultipleChoiceQuestion(SessionQuestion):
    quiz_type = QuizType.MULTIPLE_CHOICE


@dataclass(frozen=True)
class IdentificationQuestion(SessionQuestion):
    quiz_type = QuizType.IDENTIFICATION


@dataclass(frozen=True)
class TrueFalseQuestion(SessionQuestion):
    quiz_type = QuizType.TRUE_OR_FALSE


@dataclass(frozen=True)
class TableQuestion(SessionQuestion):
    record: TableRecord

    quiz_type = QuizType.FILL_IN_THE_BLANK_TABLE

    @property
    def correct_answer(self) -> str:
        return self.record.correct_answer


_QUESTION_TYPES: Dict[QuizType, type] = {
    QuizType.MULTIPLE_CHOICE: MultipleChoiceQuestion,
    QuizType.IDENTIFICATION: IdentificationQuestion,
    QuizType.TRUE_OR_FALSE: TrueFalseQuestion,
    QuizType.FILL_IN_THE_BLANK_TABLE: TableQuestion,
}


def make_question(
    quiz_type: QuizType,
    global_index: int,
    record: Union[QuestionRecord, TableRecord],
) -> SessionQuestion:
    """Wrap ``record`` in the session variant registered for ``quiz_type``."""

    expects_table = quiz_type is QuizType.FILL_IN_THE_BLANK_TABLE
    if expects_table != isinstance(record, TableRecord):
        raise TypeError(
            f"{type(record).__name__} cannot be used as a {quiz_type.value} "
            "question."
        )
    return _QUESTION_TYPES[quiz_type](global_index=global_index, record=record)


@dataclass
class AnswerState:
    """Per-question answer bookkeeping keyed by ``global_index``.

    ``correct_answer`` is captured when the session is organized so grading
    never depends on later changes to the bank.
    """

    correct_answer: str
    user_answer: Optional[UserAnswer] = None
    is_correct: Optional[bool] = None

    @property
    def answered(self) -> bool:
        return self.is_correct is not None
