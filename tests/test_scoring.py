"""Tests for score aggregation and attempt reviews."""

from datetime import datetime, timedelta, timezone
from fractions import Fraction

import pytest

from exam_app.core.models import AnswerRecord, Difficulty, ProctorFlag, ProctorFlagType, Question, Test, TestAttempt
from exam_app.core.scoring import (
    describe_flag,
    percentage_of,
    performance_band,
    review_attempt,
    round_half_up,
)

START = datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc)


def _question(question_id, points, difficulty=Difficulty.MEDIUM):
    return Question(
        id=question_id,
        type="short-answer",
        content=f"Question {question_id}",
        correct_answer="x",
        difficulty=difficulty,
        points=points,
    )


def _test(question_ids, passing_score=50):
    return Test(id="t", title="T", question_ids=tuple(question_ids), time_limit=30, passing_score=passing_score)


def _attempt(records, minutes=None, flags=()):
    return TestAttempt(
        id="a",
        test_id="t",
        user_id="u",
        start_time=START,
        end_time=START + timedelta(minutes=minutes) if minutes is not None else None,
        answers=tuple(records),
        completed=True,
        proctor_flags=tuple(flags),
    )


class TestRounding:
    def test_halves_round_up(self):
        assert round_half_up(Fraction(25, 2)) == 13
        assert round_half_up(2.5) == 3
        assert round_half_up(Fraction(249, 20)) == 12

    def test_percentage_of_empty_total_is_zero(self):
        assert percentage_of(0, 0) == 0
        assert percentage_of(1, 8) == 13


class TestReviewAttempt:
    def test_points_weighted_score(self):
        questions = [_question("q1", 1), _question("q2", 2)]
        attempt = _attempt(
            [
                AnswerRecord("q1", "x", is_correct=True, points=1),
                AnswerRecord("q2", "y", is_correct=False, points=0),
            ]
        )

        review = review_attempt(attempt, _test(["q1", "q2"]), questions)

        assert review.percent_score == 33
        assert not review.passed
        assert review.earned_points == 1
        assert review.total_points == 3
        assert review.correct_count == 1

    def test_passing_score_is_inclusive(self):
        questions = [_question("q1", 1), _question("q2", 1)]
        attempt = _attempt(
            [
                AnswerRecord("q1", "x", is_correct=True, points=1),
                AnswerRecord("q2", "", is_correct=False, points=0),
            ]
        )

        assert review_attempt(attempt, _test(["q1", "q2"], passing_score=50), questions).passed

    def test_breakdown_skips_empty_difficulties(self):
        questions = [
            _question("easy", 1, Difficulty.EASY),
            _question("hard1", 1, Difficulty.HARD),
            _question("hard2", 1, Difficulty.HARD),
        ]
        attempt = _attempt(
            [
                AnswerRecord("easy", "x", is_correct=True, points=1),
                AnswerRecord("hard1", "x", is_correct=True, points=1),
                AnswerRecord("hard2", "y", is_correct=False, points=0),
            ]
        )

        breakdown = review_attempt(attempt, _test(["easy", "hard1", "hard2"]), questions).breakdown

        assert [b.difficulty for b in breakdown] == [Difficulty.EASY, Difficulty.HARD]
        assert (breakdown[1].correct, breakdown[1].total, breakdown[1].percentage) == (1, 2, 50)

    def test_breakdown_ignores_blank_answers(self):
        questions = [_question("easy", 1, Difficulty.EASY), _question("expert", 3, Difficulty.EXPERT)]
        attempt = _attempt(
            [
                AnswerRecord("easy", "x", is_correct=True, points=1),
                AnswerRecord("expert", "", is_correct=False, points=0),
            ]
        )

        review = review_attempt(attempt, _test(["easy", "expert"]), questions)

        assert [b.difficulty for b in review.breakdown] == [Difficulty.EASY]
        assert (review.breakdown[0].correct, review.breakdown[0].total) == (1, 1)
        assert review.total_points == 4

    def test_duration_rounds_to_whole_minutes(self):
        attempt = _attempt([], minutes=12.5)

        review = review_attempt(attempt, _test([]), [])

        assert review.duration_minutes == 13
        assert review.percent_score == 0

    def test_duration_unknown_without_end_time(self):
        assert review_attempt(_attempt([]), _test([]), []).duration_minutes is None

    def test_flags_are_described_with_time(self):
        flag = ProctorFlag(timestamp=START + timedelta(minutes=5, seconds=7), type=ProctorFlagType.TAB_SWITCH)

        review = review_attempt(_attempt([], flags=[flag]), _test([]), [])

        assert review.flag_descriptions == ("Browser tab switch detected at 10:05:07",)
        assert describe_flag(flag) == review.flag_descriptions[0]

    def test_review_is_pure(self):
        questions = [_question("q1", 1)]
        attempt = _attempt([AnswerRecord("q1", "x", is_correct=True, points=1)])

        assert review_attempt(attempt, _test(["q1"]), questions) == review_attempt(attempt, _test(["q1"]), questions)


@pytest.mark.parametrize(
    ("percentage", "band"),
    [(100, "strong"), (80, "strong"), (79, "good"), (60, "good"), (40, "fair"), (39, "weak"), (0, "weak")],
)
def test_performance_band(percentage, band):
    assert performance_band(percentage) == band
