"""Tests for the local grading service."""

from dataclasses import replace
from datetime import datetime, timezone

import pytest

from exam_app.core.errors import SubmissionError
from exam_app.core.models import AnswerRecord, Question, TestAttempt
from exam_app.core.services.grading import PENDING_MANUAL_FEEDBACK, LocalGradingService

NOW = datetime(2026, 3, 2, 10, 30, tzinfo=timezone.utc)


def _attempt(answers, *, attempt_id="attempt-1", completed=True):
    return TestAttempt(
        id=attempt_id,
        test_id="open",
        user_id="learner-1",
        start_time=NOW,
        end_time=NOW if completed else None,
        answers=tuple(AnswerRecord(qid, value) for qid, value in answers),
        completed=completed,
    )


@pytest.fixture
def grading(repository):
    return LocalGradingService(repository)


async def test_objective_questions_are_graded(grading):
    attempt = _attempt(
        [
            ("mc", "Paris"),
            ("tf", "true"),
            ("short", "  oxygen "),
            ("match", ["Summer", "Autumn", "Winter", "Spring"]),
        ]
    )

    graded = await grading.submit_attempt(attempt)

    results = {record.question_id: (record.is_correct, record.points) for record in graded.answers}
    assert results == {
        "mc": (True, 1),
        "tf": (False, 0),
        "short": (True, 2),
        "match": (True, 2),
    }


async def test_matching_needs_every_slot(grading):
    graded = await grading.submit_attempt(_attempt([("match", ["Summer", "Autumn", "Spring", "Winter"])]))

    assert graded.answers[0].is_correct is False


async def test_essay_waits_for_manual_grading(grading):
    graded = await grading.submit_attempt(_attempt([("essay", "Objects bundle data and behaviour.")]))

    essay = graded.answers[0]
    assert essay.is_correct is None
    assert essay.points == 0
    assert essay.feedback == PENDING_MANUAL_FEEDBACK


async def test_blank_answers_score_nothing(grading):
    graded = await grading.submit_attempt(_attempt([("mc", ""), ("match", [])]))

    assert all(record.is_correct is False and record.points == 0 for record in graded.answers)


async def test_unfinished_attempt_is_rejected(grading):
    with pytest.raises(SubmissionError):
        await grading.submit_attempt(_attempt([("mc", "Paris")], completed=False))


async def test_resubmission_returns_stored_result(grading):
    attempt = _attempt([("mc", "Paris")])
    first = await grading.submit_attempt(attempt)

    second = await grading.submit_attempt(replace(attempt, answers=(AnswerRecord("mc", "London"),)))

    assert second == first
    assert grading.get_attempt(attempt.id) == first


def test_unknown_type_is_marked_incorrect(grading):
    question = Question(id="hot", type="hotspot", content="Click the capital.", correct_answer="Paris")

    record = grading.grade_answer(question, AnswerRecord("hot", "Paris"))

    assert record.is_correct is False
    assert record.points == 0
