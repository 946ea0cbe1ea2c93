from __future__ import annotations

import random

import pytest

from fixtures import make_record, make_table_record
from quazar.quiz.options import (
    MAX_OPTIONS,
    build_table_options,
    generate_options,
    pick_displayed_statement,
    rank_distractors,
)
from quazar.quiz.text import dedupe_key

POOL = [
    "Mitochondria",
    "Mitochondrial matrix",
    "Nucleus",
    "Ribosome",
    "Golgi apparatus",
    "Cell membrane",
    "Chloroplast",
]


def _assert_valid_options(options, correct):
    keys = [dedupe_key(option) for option in options]
    assert 1 <= len(options) <= MAX_OPTIONS
    assert len(set(keys)) == len(keys)
    assert keys.count(dedupe_key(correct)) == 1


@pytest.mark.parametrize("seed", range(20))
def test_generate_options_holds_correct_answer_once(seed):
    rng = random.Random(seed)
    for answer in POOL:
        options = generate_options(make_record(answer), POOL, rng)
        _assert_valid_options(options, answer)


def test_generate_options_boolean_answers_yield_true_false():
    options = generate_options(make_record("true"), POOL, random.Random(1))
    assert sorted(options) == ["False", "True"]


def test_generate_options_prefers_record_options():
    record = make_record("Lisbon", options=["Porto", "Lisbon", "Braga"])
    options = generate_options(record, ["Zagreb", "Oslo"], random.Random(3))

    assert {"Lisbon", "Porto", "Braga"} <= set(options)
    assert len(options) == 4
    _assert_valid_options(options, "Lisbon")


def test_generate_options_caps_large_preferred_lists():
    record = make_record(
        "Lisbon", options=["Porto", "Braga", "Faro", "Coimbra", "Evora"]
    )
    for seed in range(10):
        options = generate_options(record, [], random.Random(seed))
        assert len(options) == MAX_OPTIONS
        _assert_valid_options(options, "Lisbon")


def test_generate_options_pads_small_banks_with_fillers():
    options = generate_options(make_record("Paris"), ["Paris"], random.Random(0))

    _assert_valid_options(options, "Paris")
    assert len(options) == MAX_OPTIONS
    assert "Paris value" in options


def test_generate_options_empty_answer_yields_nothing():
    assert generate_options(make_record("  "), POOL, random.Random(0)) == []


def test_rank_distractors_orders_similar_answers_first():
    picked = rank_distractors(
        "Mitochondria", POOL, random.Random(0), synthesize=False
    )

    assert picked[0] == "Mitochondrial matrix"
    assert len(picked) == 3
    assert "Mitochondria" not in picked


def test_rank_distractors_skips_normalized_duplicates():
    picked = rank_distractors(
        "Paris",
        ["paris!", "PARIS", "Rome"],
        random.Random(0),
        synthesize=False,
    )
    assert picked == ["Rome"]


def test_pick_displayed_statement_samples_preferred_options():
    record = make_record("Lisbon", options=["Porto", "Lisbon"])
    seen = {
        pick_displayed_statement(record, POOL, random.Random(seed))
        for seed in range(30)
    }
    assert seen == {"Porto", "Lisbon"}


def test_pick_displayed_statement_coin_flip_uses_bank_answers():
    record = make_record("Nucleus")
    shown = [
        pick_displayed_statement(record, POOL, random.Random(seed))
        for seed in range(40)
    ]
    assert "Nucleus" in shown
    wrong = [text for text in shown if text != "Nucleus"]
    assert wrong
    assert all(text in POOL for text in wrong)


def test_pick_displayed_statement_without_wrong_answers_shows_correct():
    record = make_record("Nucleus")
    for seed in range(10):
        assert (
            pick_displayed_statement(record, ["nucleus"], random.Random(seed))
            == "Nucleus"
        )


def test_build_table_options_dedupes_answers_and_decoys():
    record = make_table_record(
        {(0, 1): "Paris", (1, 1): "Paris", (2, 1): "Berlin"},
        wrong=["Rome", " Berlin ", ""],
    )

    options = build_table_options(record, random.Random(2))

    assert sorted(options) == ["Berlin", "Paris", "Rome"]

