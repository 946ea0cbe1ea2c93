"""Compose a typed, shuffled session question list from a bank."""

from __future__ import annotations

import dataclasses
import logging
import random
from collections.abc import Iterable, Mapping, Sequence

from .errors import InsufficientQuestionsError, SessionConfigError
from .models import (
    SECTION_ORDER,
    QuestionRecord,
    QuizType,
    SessionQuestion,
    TableRecord,
    make_question,
)

__all__ = [
    "POOL_TYPES",
    "bank_answers",
    "filter_unique_answers",
    "distribute_counts",
    "validate_type_counts",
    "build_session",
]

_LOGGER = logging.getLogger(__name__)

# Types drawn from the shared bank pool, in consumption order.
POOL_TYPES: tuple[QuizType, ...] = tuple(
    quiz_type
    for quiz_type in SECTION_ORDER
    if quiz_type is not QuizType.FILL_IN_THE_BLANK_TABLE
)

_BOOLEAN_ANSWERS = {"true", "false"}


def bank_answers(bank: Iterable[QuestionRecord]) -> list[str]:
    """Trimmed, non-empty correct answers; the distractor pool."""

    return [
        record.correct_answer.strip()
        for record in bank
        if record.correct_answer.strip()
    ]


def filter_unique_answers(
    bank: Sequence[QuestionRecord],
) -> list[QuestionRecord]:
    """Keep the first record for each distinct correct answer.

    Answers that read ``true``/``false`` are never merged: each such record
    is keyed by its answer plus its id (or a running counter without one).
    """

    seen: set[str] = set()
    kept: list[QuestionRecord] = []
    counter = 0
    for record in bank:
        answer = record.correct_answer.strip().lower()
        if answer in _BOOLEAN_ANSWERS:
            if record.id is None:
                key = f"{answer}_{counter}"
                counter += 1
            else:
                key = f"{answer}_{record.id}"
        else:
            key = answer
        if key in seen:
            continue
        seen.add(key)
        kept.append(record)
    return kept


def distribute_counts(
    total: int, enabled: Iterable[QuizType]
) -> dict[QuizType, int]:
    """Split ``total`` evenly across the enabled pool types.

    The remainder goes one apiece to the earliest enabled types in section
    order, so ``distribute_counts(10, all three)`` yields 4/3/3.
    """

    wanted = set(enabled)
    types = [quiz_type for quiz_type in POOL_TYPES if quiz_type in wanted]
    if not types or total <= 0:
        return {quiz_type: 0 for quiz_type in types}
    base, remainder = divmod(total, len(types))
    return {
        quiz_type: base + (1 if position < remainder else 0)
        for position, quiz_type in enumerate(types)
    }


def validate_type_counts(
    total: int, counts: Mapping[QuizType, int], available: int
) -> None:
    if total <= 0:
        raise SessionConfigError("Total questions must be greater than 0.")
    if total > available:
        raise SessionConfigError(
            f"Total questions ({total}) exceeds the {available} available."
        )
    for quiz_type, count in counts.items():
        if quiz_type is QuizType.FILL_IN_THE_BLANK_TABLE:
            raise SessionConfigError(
                "Table questions come from table files, not from counts."
            )
        if isinstance(count, bool) or not isinstance(count, int) or count <= 0:
            raise SessionConfigError(
                f"{quiz_type.label} count must be a positive integer."
            )
    assigned = sum(counts.values())
    if assigned != total:
        raise SessionConfigError(
            f"Question counts add up to {assigned}; expected {total}."
        )


def build_session(
    bank: Sequence[QuestionRecord],
    *,
    unique_answer_only: bool = False,
    type_counts: Mapping[QuizType, int] | None = None,
    table_sources: Sequence[TableRecord] = (),
    with_options: bool = False,
    rng: random.Random | None = None,
) -> list[SessionQuestion]:
    """Return the session questions, each with its final ``global_index``.

    Records are drawn from one shuffled pool by a single cursor, so no record
    appears under two types. Table records are appended as given. The
    composed list is shuffled once more and indices follow that order.
    """

    rng = rng or random.Random()
    counts = {
        quiz_type: int(count)
        for quiz_type, count in (type_counts or {}).items()
        if count
    }
    for quiz_type, count in counts.items():
        if quiz_type not in POOL_TYPES:
            raise SessionConfigError(
                f"{quiz_type.label} questions cannot be drawn from a bank."
            )
        if count < 0:
            raise SessionConfigError(
                f"{quiz_type.label} count must not be negative."
            )
    if not counts and not table_sources:
        raise SessionConfigError("Enable at least one question type.")

    pool = [record for record in bank if record.correct_answer.strip()]
    if unique_answer_only:
        pool = filter_unique_answers(pool)

    requested = sum(counts.values())
    if requested > len(pool):
        raise InsufficientQuestionsError(
            f"Requested {requested} questions but only {len(pool)} are "
            "available after filtering."
        )

    pool = list(pool)
    rng.shuffle(pool)

    composed: list[tuple[QuizType, QuestionRecord | TableRecord]] = []
    cursor = 0
    for quiz_type in POOL_TYPES:
        count = counts.get(quiz_type, 0)
        composed.extend(
            (quiz_type, record) for record in pool[cursor : cursor + count]
        )
        cursor += count
    composed.extend(
        (
            QuizType.FILL_IN_THE_BLANK_TABLE,
            dataclasses.replace(record, with_options=with_options),
        )
        for record in table_sources
    )
    rng.shuffle(composed)

    questions = [
        make_question(quiz_type, index, record)
        for index, (quiz_type, record) in enumerate(composed)
    ]
    _LOGGER.info(
        "Built quiz session",
        extra={
            "questions": len(questions),
            "pool": len(pool),
            "counts": {
                quiz_type.value: count for quiz_type, count in counts.items()
            },
            "tables": len(table_sources),
        },
    )
    return questions
