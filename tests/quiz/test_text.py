from __future__ import annotations

import pytest

from quazar.quiz.text import (
    answer_list_contains,
    dedupe_key,
    is_boolean_answer,
    normalize_answer,
    normalize_for_comparison,
    similarity_score,
)


def test_normalize_answer_collapses_punctuation_and_spacing():
    assert normalize_answer("Hello,  World!") == "Hello World"
    assert normalize_answer("  mitochondria  ") == "Mitochondria"
    assert normalize_answer("snake_case-name") == "Snake Case Name"
    assert normalize_answer("") == ""


@pytest.mark.parametrize(
    "text",
    ["Hello,  World!", "ALL CAPS answer", "x_y.z", "  ", "3.14 radians"],
)
def test_normalize_answer_is_idempotent(text):
    once = normalize_answer(text)
    assert normalize_answer(once) == once


def test_normalize_for_comparison_drops_digits_and_case():
    assert normalize_for_comparison("Type-2 Diabetes!") == "type diabetes"
    assert normalize_for_comparison("1990") == ""


def test_dedupe_key_falls_back_for_numeric_answers():
    assert dedupe_key("Paris!") == "paris"
    assert dedupe_key(" 1990 ") == "1990"
    assert dedupe_key("1990") != dedupe_key("1991")


def test_is_boolean_answer():
    assert is_boolean_answer("True")
    assert is_boolean_answer(" false. ")
    assert not is_boolean_answer("truth")


def test_similarity_score_rewards_containment_tokens_and_prefix():
    contained = similarity_score("red blood cell", "red blood")
    unrelated = similarity_score("red blood cell", "nucleus")
    prefix_only = similarity_score("photosynthesis", "photon")

    assert contained > prefix_only > unrelated == 0
    # containment (1 + 9/14) + tokens (2/3) + prefix (9/9)
    assert contained == pytest.approx(1 + 9 / 14 + 2 / 3 + 1)


def test_similarity_score_is_zero_for_equal_or_empty():
    assert similarity_score("paris", "paris") == 0
    assert similarity_score("", "paris") == 0
    assert similarity_score("paris", "") == 0


def test_answer_list_contains_uses_normalized_form():
    assert answer_list_contains(["Paris", "Berlin"], "paris!")
    assert not answer_list_contains(["Paris"], "Rome")
    assert not answer_list_contains(["Paris"], "   ")
