"""Tests for the in-progress answer store."""

import pytest

from exam_app.core.errors import SessionStateError
from exam_app.core.services.answer_store import AnswerStore


@pytest.fixture
def store(sample_questions):
    return AnswerStore(sample_questions)


def test_defaults_are_empty_per_question_type(store):
    assert store.get_answer("mc") == ""
    assert store.get_answer("match") == []
    assert store.completed_count() == 0
    assert store.question_count() == 5


def test_set_answer_only_touches_its_question(store):
    store.set_answer("short", "Oxygen")

    assert store.get_answer("short") == "Oxygen"
    assert store.get_answer("mc") == ""
    assert store.unanswered_ids() == ["mc", "tf", "match", "essay"]


def test_whitespace_and_empty_sequences_count_as_unanswered(store):
    store.set_answer("short", "   ")
    store.set_answer("match", [])
    assert store.completed_count() == 0

    store.set_answer("match", ["Summer"])
    assert store.is_answered("match")
    assert store.progress_fraction() == pytest.approx(0.2)


def test_clearing_an_answer_makes_it_unanswered_again(store):
    store.set_answer("short", "Oxygen")
    store.set_answer("match", ["Summer"])
    assert store.completed_count() == 2

    store.set_answer("short", "")
    store.set_answer("match", [])

    assert not store.is_answered("short")
    assert not store.is_answered("match")
    assert store.completed_count() == 0


def test_returned_sequences_are_copies(store):
    store.set_answer("match", ["Summer", "Autumn"])
    store.get_answer("match").append("Winter")

    assert store.get_answer("match") == ["Summer", "Autumn"]


def test_unknown_question_is_rejected(store):
    with pytest.raises(KeyError):
        store.set_answer("nope", "x")


def test_frozen_store_rejects_edits(store):
    store.set_answer("mc", "Paris")
    store.freeze()
    assert store.is_frozen()

    with pytest.raises(SessionStateError):
        store.set_answer("mc", "London")
    assert store.get_answer("mc") == "Paris"


def test_records_follow_question_order(store):
    store.set_answer("tf", "false")

    records = store.to_records()

    assert [r.question_id for r in records] == ["mc", "tf", "short", "match", "essay"]
    assert records[1].answer == "false"
    assert records[0].is_blank
