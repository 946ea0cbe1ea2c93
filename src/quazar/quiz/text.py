"""Answer text normalization and similarity scoring."""

from __future__ import annotations

import re
from typing import Iterable

__all__ = [
    "normalize_answer",
    "normalize_for_comparison",
    "dedupe_key",
    "similarity_score",
    "answer_list_contains",
    "is_boolean_answer",
]

# Anything that is not a letter, digit or whitespace (underscore included).
_NON_ALNUM_RE = re.compile(r"[^\w\s]|_")
# Comparison form additionally drops digits.
_NON_ALPHA_RE = re.compile(r"[^\w\s]|[\d_]")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_answer(text: str) -> str:
    """Normalize typed identification answers for grading.

    Punctuation becomes whitespace, whitespace runs collapse to one space,
    and every token is title-cased: ``"hello,  WORLD!"`` -> ``"Hello World"``.
    The function is idempotent.
    """
    if not text:
        return ""
    cleaned = _WHITESPACE_RE.sub(" ", _NON_ALNUM_RE.sub(" ", text)).strip()
    return " ".join(word[:1].upper() + word[1:].lower() for word in cleaned.split(" ") if word)


def normalize_for_comparison(text: str) -> str:
    """Lowercase ``text`` with punctuation and digits replaced by spaces."""
    if not text:
        return ""
    cleaned = _NON_ALPHA_RE.sub(" ", text)
    return _WHITESPACE_RE.sub(" ", cleaned).strip().lower()


def dedupe_key(text: str) -> str:
    """Key used to decide whether two answers are the same option.

    Purely numeric answers normalize to an empty string, so they fall back to
    their trimmed lowercase text.
    """
    return normalize_for_comparison(text) or text.strip().lower()


def is_boolean_answer(text: str) -> bool:
    return normalize_for_comparison(text) in {"true", "false"}


def similarity_score(target: str, candidate: str) -> float:
    """Score how plausible ``candidate`` is as a distractor for ``target``.

    Both arguments are expected in :func:`normalize_for_comparison` form.
    Identical or empty strings score ``0``.
    """
    if not target or not candidate or target == candidate:
        return 0.0

    score = 0.0
    shorter = min(len(target), len(candidate))
    longer = max(len(target), len(candidate))

    if target in candidate or candidate in target:
        score += 1 + shorter / longer

    target_words = {word for word in target.split(" ") if word}
    candidate_words = {word for word in candidate.split(" ") if word}
    shared = target_words & candidate_words
    if shared:
        score += len(shared) / max(len(target_words), 1)

    prefix = 0
    for left, right in zip(target, candidate):
        if left != right:
            break
        prefix += 1
    if prefix >= 3:
        score += prefix / shorter

    return score


def answer_list_contains(answers: Iterable[str], candidate: str) -> bool:
    """True when ``candidate`` matches an entry of ``answers`` by dedupe key."""
    key = dedupe_key(candidate)
    if not key:
        return False
    return any(dedupe_key(answer) == key for answer in answers)
