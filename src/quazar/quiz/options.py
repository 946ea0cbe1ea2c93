"""Choice generation: multiple-choice distractors, true/false statements and
table option pools.

Every function takes an explicit ``random.Random`` so sessions can be replayed
deterministically in tests.
"""

from __future__ import annotations

import random
from typing import List, Optional, Sequence

from .models import QuestionRecord, TableRecord
from .text import (
    answer_list_contains,
    dedupe_key,
    is_boolean_answer,
    normalize_for_comparison,
    similarity_score,
)

__all__ = [
    "MAX_OPTIONS",
    "generate_options",
    "rank_distractors",
    "pick_displayed_statement",
    "build_table_options",
]

MAX_OPTIONS = 4
_FILLER_SUFFIXES = (" value", " data", " field", " hash")
_EXTRA_SUFFIXES = (" option", " choice", " entry")


def generate_options(
    record: QuestionRecord,
    all_answers: Sequence[str],
    rng: Optional[random.Random] = None,
) -> List[str]:
    """Build up to four shuffled options that include the correct answer once.

    Boolean answers always yield ``True``/``False``. Preferred ``options`` on
    the record come next, topped up from the bank. Otherwise distractors are
    ranked by :func:`similarity_score` against the bank's answer pool.
    """
    rng = rng or random.Random()
    correct = record.correct_answer.strip()
    if not correct:
        return []

    if is_boolean_answer(correct):
        options = ["True", "False"]
        rng.shuffle(options)
        return options

    if record.options:
        options = _preferred_options(correct, record.options, all_answers, rng)
    else:
        options = [correct]
        for wrong in rank_distractors(
            correct, all_answers, rng, exclude=options, limit=MAX_OPTIONS - 1
        ):
            _add_option(options, wrong)
        _pad_with_extras(options, correct)

    rng.shuffle(options)
    return options


def rank_distractors(
    correct: str,
    all_answers: Sequence[str],
    rng: random.Random,
    *,
    exclude: Sequence[str] = (),
    limit: int = MAX_OPTIONS - 1,
    synthesize: bool = True,
) -> List[str]:
    """Pick up to ``limit`` wrong answers for ``correct``.

    Similar answers (score > 0) come first in descending score order, then a
    shuffled sample of unrelated answers. With ``synthesize`` the list is
    completed by appending filler suffixes to the correct answer.
    """
    if limit <= 0:
        return []
    target = normalize_for_comparison(correct)
    seen = {dedupe_key(correct)}
    seen.update(dedupe_key(text) for text in exclude)

    unique: List[str] = []
    for answer in all_answers:
        trimmed = answer.strip()
        key = dedupe_key(trimmed)
        if not key or key in seen:
            continue
        seen.add(key)
        unique.append(trimmed)

    scored = [
        (answer, similarity_score(target, normalize_for_comparison(answer)))
        for answer in unique
    ]
    similar = sorted(
        (entry for entry in scored if entry[1] > 0),
        key=lambda entry: entry[1],
        reverse=True,
    )
    unrelated = [answer for answer, score in scored if score == 0]
    rng.shuffle(unrelated)

    selected = [answer for answer, _ in similar[:limit]]
    selected.extend(unrelated[: limit - len(selected)])

    if synthesize:
        for suffix in _FILLER_SUFFIXES:
            if len(selected) >= limit:
                break
            candidate = f"{correct}{suffix}"
            key = dedupe_key(candidate)
            if key in seen:
                continue
            seen.add(key)
            selected.append(candidate)
    return selected


def _preferred_options(
    correct: str,
    preferred: Sequence[str],
    all_answers: Sequence[str],
    rng: random.Random,
) -> List[str]:
    wrong: List[str] = []
    for option in preferred:
        if answer_list_contains([correct, *wrong], option):
            continue
        wrong.append(option.strip())
    if len(wrong) > MAX_OPTIONS - 1:
        wrong = rng.sample(wrong, MAX_OPTIONS - 1)

    options = [correct, *wrong]
    if len(options) < MAX_OPTIONS:
        for extra in rank_distractors(
            correct,
            all_answers,
            rng,
            exclude=options,
            limit=MAX_OPTIONS - len(options),
            synthesize=False,
        ):
            _add_option(options, extra)
    return options


def _add_option(options: List[str], value: str) -> None:
    value = value.strip()
    if value and not answer_list_contains(options, value):
        options.append(value)


def _pad_with_extras(options: List[str], correct: str) -> None:
    for suffix in _EXTRA_SUFFIXES:
        if len(options) >= MAX_OPTIONS:
            return
        _add_option(options, f"{correct}{suffix} {len(options)}")


def pick_displayed_statement(
    record: QuestionRecord,
    all_answers: Sequence[str],
    rng: Optional[random.Random] = None,
) -> str:
    """Choose the statement shown for a true/false question.

    Preferred options are sampled uniformly, so the statement may or may not
    be true. Without them a fair coin decides between the correct answer
    and a random wrong answer from the bank.
    """
    rng = rng or random.Random()
    correct = record.correct_answer.strip()
    if record.options:
        return rng.choice(record.options)
    if rng.random() < 0.5:
        return correct
    lowered = correct.lower()
    wrong = [
        answer.strip()
        for answer in all_answers
        if answer.strip() and answer.strip().lower() != lowered
    ]
    if not wrong:
        return correct
    return rng.choice(wrong)


def build_table_options(
    record: TableRecord, rng: Optional[random.Random] = None
) -> List[str]:
    """Selectable pool for "with options" tables: answers plus decoys."""
    rng = rng or random.Random()
    options: List[str] = []
    for value in (*record.answers.values(), *record.wrong_options):
        text = str(value).strip()
        if text and text not in options:
            options.append(text)
    rng.shuffle(options)
    return options
