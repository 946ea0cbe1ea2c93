from __future__ import annotations

import random

import pytest

from fixtures import make_record, make_table_record
from quazar.quiz.errors import SessionStateError
from quazar.quiz.models import QuizType, make_question
from quazar.quiz.session import QuizSession, Section, grade_table

TABLE = QuizType.FILL_IN_THE_BLANK_TABLE
CAPITALS = {(0, 1): "Paris", (1, 1): "Berlin"}


def _table_session(*records) -> QuizSession:
    questions = [
        make_question(TABLE, index, record) for index, record in enumerate(records)
    ]
    session = QuizSession(questions, [], rng=random.Random(0))
    session.start_section()
    return session


def test_grade_table_is_case_insensitive():
    assert grade_table(CAPITALS, {(0, 1): "paris", (1, 1): "berlin"}) is True
    assert grade_table(CAPITALS, {(0, 1): "paris", (1, 1): "Rome"}) is False


def test_grade_table_without_answer_cells_is_never_correct():
    assert grade_table({}, {}) is False


def test_submit_mapping_grades_whole_table():
    session = _table_session(
        make_table_record(CAPITALS), make_table_record(CAPITALS, id="t2")
    )

    outcome = session.submit({(0, 1): " paris ", (1, 1): "BERLIN"})
    assert outcome.accepted and outcome.is_correct is True

    outcome = session.submit({(0, 1): "paris", (1, 1): "Rome"})
    assert outcome.accepted and outcome.is_correct is False
    assert session.answers[1].user_answer == {(0, 1): "paris", (1, 1): "Rome"}
    assert session.state.section is Section.LOADING


def test_submit_rejects_missing_cells_without_state_change():
    session = _table_session(make_table_record(CAPITALS))

    outcome = session.submit({(0, 1): "Paris", (1, 1): "  "})

    assert outcome.accepted is False
    assert "1 remaining" in outcome.reason
    assert session.answers[0].is_correct is None
    assert session.current_cells() == {}
    assert session.state.section is Section.FILL_IN_THE_BLANK_TABLE


def test_set_cell_drafts_survive_and_submit_uses_them():
    session = _table_session(make_table_record(CAPITALS))

    assert session.set_cell((0, 1), "Paris") is True
    assert session.set_cell((0, 0), "Country") is False
    assert session.current_cells() == {(0, 1): "Paris"}

    assert session.submit().accepted is False
    assert session.current_cells() == {(0, 1): "Paris"}

    session.set_cell((1, 1), "Berlin")
    outcome = session.submit()
    assert outcome.is_correct is True
    assert session.answers[0].user_answer == {(0, 1): "Paris", (1, 1): "Berlin"}


def test_set_cell_with_blank_text_clears_entry():
    session = _table_session(make_table_record(CAPITALS))
    session.set_cell((0, 1), "Paris")
    session.set_cell((0, 1), "   ")
    assert session.current_cells() == {}


def test_options_mode_select_then_choose():
    record = make_table_record(CAPITALS, wrong=["Rome"], with_options=True)
    session = _table_session(record)
    pool = session.table_options_for(session.current_question)
    assert sorted(pool) == ["Berlin", "Paris", "Rome"]

    assert session.choose_option("Paris") is False
    assert session.select_cell((0, 1)) is True
    assert session.selected_cell == (0, 1)
    assert session.choose_option("Paris") is True
    assert session.selected_cell is None
    assert session.option_in_use("Paris")
    assert not session.option_in_use("Berlin")

    session.select_cell((1, 1))
    assert session.choose_option("Not pooled") is False
    session.choose_option("Paris")
    assert session.current_cells() == {(0, 1): "Paris", (1, 1): "Paris"}

    assert session.submit().is_correct is False


def test_select_cell_rejects_non_answer_cells_and_plain_tables():
    session = _table_session(make_table_record(CAPITALS, with_options=True))
    assert session.select_cell((0, 0)) is False

    plain = _table_session(make_table_record(CAPITALS))
    with pytest.raises(SessionStateError):
        plain.select_cell((0, 1))


def test_table_operations_need_a_table_question():
    question = make_question(QuizType.IDENTIFICATION, 0, make_record("Paris"))
    session = QuizSession([question], ["Paris"])
    session.start_section()
    with pytest.raises(SessionStateError, match="not a table"):
        session.set_cell((0, 0), "x")


def test_table_review_renders_cell_answers():
    session = _table_session(make_table_record(CAPITALS))
    session.submit({(0, 1): "Paris", (1, 1): "Rome"})
    session.complete_grading(None)

    (row,) = session.review()

    assert row.correct_answer == "1.2=Paris; 2.2=Berlin"
    assert row.user_answer == "1.2=Paris; 2.2=Rome"
    assert row.is_correct is False
