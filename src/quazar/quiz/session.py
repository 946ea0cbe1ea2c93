"""Quiz session state machine.

A :class:`QuizSession` regroups built questions into sections by type and
walks them in ``SECTION_ORDER``. Position is an immutable
:class:`SessionState` value; ``first_state``, ``advance_state`` and
``start_section_state`` compute transitions without touching the session so
they can be tested on their own.

Everything random (multiple-choice options, true/false statements, table
option pools) is fixed when the session is created, so revisiting a
question always shows the same choices.
"""

from __future__ import annotations

import dataclasses
import logging
import random
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .errors import SessionStateError
from .history import HistoryRecorder, SessionResult, compute_result
from .models import (
    SECTION_ORDER,
    AnswerState,
    CellKey,
    QuizType,
    SessionQuestion,
    TableQuestion,
)
from .options import build_table_options, generate_options, pick_displayed_statement
from .text import normalize_answer

__all__ = [
    "Section",
    "SessionState",
    "SubmitOutcome",
    "GradingStep",
    "ReviewRow",
    "first_state",
    "advance_state",
    "start_section_state",
    "statement_is_true",
    "grade_true_false",
    "grade_table",
    "QuizSession",
]

_LOGGER = logging.getLogger(__name__)

Sections = Mapping[QuizType, Sequence[SessionQuestion]]


class Section(str, Enum):
    """Where a session is: one of the question sections or a phase."""

    MULTIPLE_CHOICE = QuizType.MULTIPLE_CHOICE.value
    IDENTIFICATION = QuizType.IDENTIFICATION.value
    TRUE_OR_FALSE = QuizType.TRUE_OR_FALSE.value
    FILL_IN_THE_BLANK_TABLE = QuizType.FILL_IN_THE_BLANK_TABLE.value
    LOADING = "loading"
    RESULTS = "results"
    NONE = "none"

    @classmethod
    def for_type(cls, quiz_type: QuizType) -> "Section":
        return cls(quiz_type.value)

    @property
    def quiz_type(self) -> QuizType | None:
        try:
            return QuizType(self.value)
        except ValueError:
            return None


@dataclass(frozen=True)
class SessionState:
    section: Section
    section_index: int = 0
    global_index: int = -1
    section_started: bool = False

    @property
    def in_question(self) -> bool:
        return self.section.quiz_type is not None


@dataclass(frozen=True)
class SubmitOutcome:
    """Result of a submission; rejected input leaves the session unchanged."""

    accepted: bool
    is_correct: bool | None = None
    reason: str | None = None


@dataclass(frozen=True)
class GradingStep:
    step: int
    total: int
    question: SessionQuestion


@dataclass(frozen=True)
class ReviewRow:
    """One line of the post-session review."""

    global_index: int
    quiz_type: QuizType
    prompt: str
    user_answer: str
    correct_answer: str
    is_correct: bool
    statement: str | None = None


def _state_at(sections: Sections, quiz_type: QuizType) -> SessionState:
    return SessionState(
        section=Section.for_type(quiz_type),
        section_index=0,
        global_index=sections[quiz_type][0].global_index,
        section_started=False,
    )


def first_state(sections: Sections) -> SessionState:
    """Initial state: the first non-empty section, intro not dismissed."""

    for quiz_type in SECTION_ORDER:
        if sections.get(quiz_type):
            return _state_at(sections, quiz_type)
    return SessionState(section=Section.NONE)


def advance_state(state: SessionState, sections: Sections) -> SessionState:
    """Move past the current question.

    Within a section the index simply increments. At the end of a section
    the next non-empty section starts with its intro pending; after the last
    section the session enters ``loading``.
    """

    quiz_type = state.section.quiz_type
    if quiz_type is None:
        raise SessionStateError(
            f"Cannot advance from the '{state.section.value}' state."
        )
    questions = sections.get(quiz_type, ())
    next_index = state.section_index + 1
    if next_index < len(questions):
        return dataclasses.replace(
            state,
            section_index=next_index,
            global_index=questions[next_index].global_index,
        )
    position = SECTION_ORDER.index(quiz_type)
    for following in SECTION_ORDER[position + 1 :]:
        if sections.get(following):
            return _state_at(sections, following)
    return SessionState(section=Section.LOADING)


def start_section_state(state: SessionState) -> SessionState:
    if not state.in_question:
        raise SessionStateError(
            f"There is no section to start in the '{state.section.value}' state."
        )
    if state.section_started:
        return state
    return dataclasses.replace(state, section_index=0, section_started=True)


def statement_is_true(statement: str, correct_answer: str) -> bool:
    return statement.strip().lower() == correct_answer.strip().lower()


def grade_true_false(is_true: bool, user_said_true: bool) -> bool:
    return is_true == user_said_true


def grade_table(
    expected: Mapping[CellKey, str], entries: Mapping[CellKey, str]
) -> bool:
    """Every answer cell must match, ignoring case and outer whitespace."""

    if not expected:
        return False
    return all(
        entries.get(key, "").strip().lower() == text.strip().lower()
        for key, text in expected.items()
    )


class QuizSession:
    """One run through a built question list, from first section to results."""

    def __init__(
        self,
        questions: Sequence[SessionQuestion],
        all_answers: Sequence[str],
        *,
        rng: random.Random | None = None,
    ) -> None:
        rng = rng or random.Random()
        indices = [question.global_index for question in questions]
        if len(set(indices)) != len(indices):
            raise SessionStateError("Session questions share a global index.")

        self.questions: tuple[SessionQuestion, ...] = tuple(questions)
        self.sections: dict[QuizType, tuple[SessionQuestion, ...]] = {
            quiz_type: tuple(
                question
                for question in self.questions
                if question.quiz_type is quiz_type
            )
            for quiz_type in SECTION_ORDER
        }
        self.answers: dict[int, AnswerState] = {
            question.global_index: AnswerState(
                correct_answer=question.correct_answer
            )
            for question in self.questions
        }

        self._options: dict[int, tuple[str, ...]] = {}
        self._statements: dict[int, str] = {}
        self._table_options: dict[int, tuple[str, ...]] = {}
        for question in self.questions:
            index = question.global_index
            if question.quiz_type is QuizType.MULTIPLE_CHOICE:
                self._options[index] = tuple(
                    generate_options(question.record, all_answers, rng)
                )
            elif question.quiz_type is QuizType.TRUE_OR_FALSE:
                self._statements[index] = pick_displayed_statement(
                    question.record, all_answers, rng
                )
            elif isinstance(question, TableQuestion) and question.record.with_options:
                self._table_options[index] = tuple(
                    build_table_options(question.record, rng)
                )

        self._drafts: dict[int, dict[CellKey, str]] = {}
        self._selected_cells: dict[int, CellKey] = {}
        self._by_index = {question.global_index: question for question in self.questions}
        self.state = first_state(self.sections)
        self.result: SessionResult | None = None
        self._closed = False

    # Read-only views -----------------------------------------------------

    @property
    def total(self) -> int:
        return len(self.questions)

    @property
    def is_empty(self) -> bool:
        return not self.questions

    @property
    def closed(self) -> bool:
        return self._closed

    def section_questions(self, quiz_type: QuizType) -> tuple[SessionQuestion, ...]:
        return self.sections.get(quiz_type, ())

    def active_sections(self) -> list[QuizType]:
        return [quiz_type for quiz_type in SECTION_ORDER if self.sections[quiz_type]]

    @property
    def current_question(self) -> SessionQuestion | None:
        quiz_type = self.state.section.quiz_type
        if quiz_type is None:
            return None
        return self.sections[quiz_type][self.state.section_index]

    def options_for(self, question: SessionQuestion) -> tuple[str, ...]:
        return self._options.get(question.global_index, ())

    def statement_for(self, question: SessionQuestion) -> str | None:
        return self._statements.get(question.global_index)

    def table_options_for(self, question: SessionQuestion) -> tuple[str, ...]:
        return self._table_options.get(question.global_index, ())

    def current_answer(self) -> AnswerState | None:
        question = self.current_question
        if question is None:
            return None
        return self.answers[question.global_index]

    def current_cells(self) -> dict[CellKey, str]:
        """Entries typed so far for the current table question."""

        question = self._require_table()
        return dict(self._drafts.get(question.global_index, {}))

    @property
    def selected_cell(self) -> CellKey | None:
        question = self.current_question
        if question is None:
            return None
        return self._selected_cells.get(question.global_index)

    # Transitions ----------------------------------------------------------

    def start_section(self) -> SessionState:
        self._require_open()
        self.state = start_section_state(self.state)
        return self.state

    def submit(self, answer: str | Mapping[CellKey, str] | None = None) -> SubmitOutcome:
        """Grade ``answer`` for the current question and advance on success.

        Table questions grade the drafted cells when ``answer`` is ``None``.
        """

        question = self._require_live()
        state = self.answers[question.global_index]
        if state.answered:
            raise SessionStateError(
                f"Question {question.global_index} was already submitted."
            )

        if isinstance(question, TableQuestion):
            outcome, stored = self._grade_table(question, answer)
        else:
            if answer is not None and not isinstance(answer, str):
                raise SessionStateError(
                    f"{question.quiz_type.label} answers must be text."
                )
            outcome, stored = self._grade_text(question, answer or "")
        if not outcome.accepted:
            return outcome

        state.user_answer = stored
        state.is_correct = outcome.is_correct
        _LOGGER.debug(
            "Answer submitted",
            extra={
                "global_index": question.global_index,
                "quiz_type": question.quiz_type.value,
                "is_correct": outcome.is_correct,
            },
        )
        self.state = advance_state(self.state, self.sections)
        return outcome

    def _grade_text(
        self, question: SessionQuestion, raw: str
    ) -> tuple[SubmitOutcome, str | None]:
        text = raw.strip()
        correct = question.correct_answer
        quiz_type = question.quiz_type

        if quiz_type is QuizType.MULTIPLE_CHOICE:
            options = self.options_for(question)
            match = next(
                (option for option in options if option.lower() == text.lower()),
                None,
            )
            if not text or match is None:
                return SubmitOutcome(False, reason="Select one of the options."), None
            return SubmitOutcome(True, match.lower() == correct.lower()), match

        if quiz_type is QuizType.IDENTIFICATION:
            if not text:
                return SubmitOutcome(False, reason="Type an answer first."), None
            return (
                SubmitOutcome(True, normalize_answer(text) == normalize_answer(correct)),
                text,
            )

        lowered = text.lower()
        if lowered not in {"true", "false"}:
            return SubmitOutcome(False, reason="Answer with 'true' or 'false'."), None
        shown = self._statements.get(question.global_index, correct)
        is_correct = grade_true_false(
            statement_is_true(shown, correct), lowered == "true"
        )
        return SubmitOutcome(True, is_correct), lowered

    def _grade_table(
        self,
        question: TableQuestion,
        answer: str | Mapping[CellKey, str] | None,
    ) -> tuple[SubmitOutcome, dict[CellKey, str] | None]:
        if isinstance(answer, str):
            raise SessionStateError("Table answers must map cells to text.")
        entries = dict(
            self._drafts.get(question.global_index, {}) if answer is None else answer
        )
        expected = question.record.answers
        missing = [key for key in expected if not entries.get(key, "").strip()]
        if missing:
            return (
                SubmitOutcome(
                    False,
                    reason=f"Fill in every blank ({len(missing)} remaining).",
                ),
                None,
            )
        stored = {key: entries[key].strip() for key in sorted(expected)}
        self._drafts[question.global_index] = dict(stored)
        return SubmitOutcome(True, grade_table(expected, stored)), stored

    # Table editing ----------------------------------------------------------

    def set_cell(self, key: CellKey, text: str) -> bool:
        """Type ``text`` into a cell; returns False for a non-answer cell."""

        question = self._require_table(live=True)
        if key not in question.record.answers:
            return False
        draft = self._drafts.setdefault(question.global_index, {})
        if text.strip():
            draft[key] = text.strip()
        else:
            draft.pop(key, None)
        return True

    def select_cell(self, key: CellKey) -> bool:
        question = self._require_table(live=True)
        if not question.record.with_options:
            raise SessionStateError("Cell selection needs a table with options.")
        if key not in question.record.answers:
            return False
        self._selected_cells[question.global_index] = key
        return True

    def choose_option(self, option: str) -> bool:
        """Place ``option`` in the selected cell; options may repeat."""

        question = self._require_table(live=True)
        key = self._selected_cells.get(question.global_index)
        if key is None or option not in self.table_options_for(question):
            return False
        self._drafts.setdefault(question.global_index, {})[key] = option
        del self._selected_cells[question.global_index]
        return True

    def option_in_use(self, option: str) -> bool:
        question = self._require_table()
        return option in self._drafts.get(question.global_index, {}).values()

    # Grading and results ----------------------------------------------------

    def grading_steps(self) -> Iterator[GradingStep]:
        """Yield one pacing step per question while in ``loading``.

        Correctness was settled at submission; nothing is written until
        :meth:`complete_grading`, so dropping this iterator is harmless.
        """

        self._require_open()
        if self.state.section is not Section.LOADING:
            raise SessionStateError("Grading is only available while loading.")
        ordered = [
            question
            for quiz_type in SECTION_ORDER
            for question in self.sections[quiz_type]
        ]
        for step, question in enumerate(ordered, start=1):
            yield GradingStep(step=step, total=len(ordered), question=question)

    def complete_grading(
        self,
        recorder: HistoryRecorder | None,
        *,
        now: datetime | None = None,
    ) -> SessionResult:
        self._require_open()
        if self.state.section is not Section.LOADING:
            raise SessionStateError(
                f"Cannot complete grading from '{self.state.section.value}'."
            )
        result = compute_result(
            self.answers.values(), self.total, now or datetime.now()
        )
        persisted = False
        if recorder is not None:
            try:
                persisted = bool(recorder.append(result))
            except OSError:
                _LOGGER.warning("Quiz history append failed", exc_info=True)
        result = dataclasses.replace(result, persisted=persisted)
        self.result = result
        self.state = SessionState(section=Section.RESULTS)
        _LOGGER.info(
            "Grading complete",
            extra={
                "score": result.score,
                "total": result.total,
                "percentage": result.percentage,
                "persisted": persisted,
            },
        )
        return result

    def review(self) -> list[ReviewRow]:
        rows: list[ReviewRow] = []
        for quiz_type in SECTION_ORDER:
            for question in self.sections[quiz_type]:
                state = self.answers[question.global_index]
                rows.append(
                    ReviewRow(
                        global_index=question.global_index,
                        quiz_type=quiz_type,
                        prompt=question.prompt,
                        user_answer=_format_user_answer(state.user_answer),
                        correct_answer=state.correct_answer,
                        is_correct=bool(state.is_correct),
                        statement=self.statement_for(question),
                    )
                )
        return rows

    def finish(self) -> int:
        """Close the session and return the score for the caller."""

        self._require_open()
        if self.state.section is not Section.RESULTS or self.result is None:
            raise SessionStateError("The session has not been graded yet.")
        self._closed = True
        return self.result.score

    # Guards -------------------------------------------------------------

    def _require_open(self) -> None:
        if self._closed:
            raise SessionStateError("This session has finished.")

    def _require_live(self) -> SessionQuestion:
        self._require_open()
        question = self.current_question
        if question is None:
            raise SessionStateError(
                f"No active question in the '{self.state.section.value}' state."
            )
        if not self.state.section_started:
            raise SessionStateError("Start the section before answering.")
        return question

    def _require_table(self, *, live: bool = False) -> TableQuestion:
        question = self._require_live() if live else self.current_question
        if not isinstance(question, TableQuestion):
            raise SessionStateError("The current question is not a table.")
        return question


def _format_user_answer(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, Mapping):
        return "; ".join(
            f"{row + 1}.{col + 1}={text}" for (row, col), text in sorted(value.items())
        )
    return str(value)
