"""Score aggregation and review data for submitted attempts.

Everything here is a pure function of (attempt, test, questions): nothing is
mutated and calling it twice on the same inputs gives the same result.
"""

from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction
import math
from typing import Iterable

from exam_app.core.models import Difficulty, ProctorFlag, ProctorFlagType, Question, Test, TestAttempt

FLAG_DESCRIPTIONS: dict[ProctorFlagType, str] = {
    ProctorFlagType.TAB_SWITCH: "Browser tab switch detected",
    ProctorFlagType.FACE_NOT_VISIBLE: "Face not visible in camera",
    ProctorFlagType.MULTIPLE_FACES: "Multiple faces detected",
    ProctorFlagType.VOICE_DETECTED: "Voice detected during test",
    ProctorFlagType.SUSPICIOUS_MOVEMENT: "Suspicious movement detected",
}

_DIFFICULTY_ORDER = (Difficulty.EASY, Difficulty.MEDIUM, Difficulty.HARD, Difficulty.EXPERT)


@dataclass(frozen=True, slots=True)
class DifficultyBreakdown:
    difficulty: Difficulty
    correct: int
    total: int

    @property
    def percentage(self) -> int:
        return percentage_of(self.correct, self.total)


@dataclass(frozen=True, slots=True)
class AttemptReview:
    """Aggregated results of one attempt."""

    percent_score: int
    passed: bool
    passing_score: int
    earned_points: int
    total_points: int
    correct_count: int
    question_count: int
    breakdown: tuple[DifficultyBreakdown, ...]
    duration_minutes: int | None
    flag_descriptions: tuple[str, ...]


def round_half_up(value: Fraction | float) -> int:
    """Round like a results page would: 12.5 becomes 13, not 12."""
    return math.floor(Fraction(value) + Fraction(1, 2))


def percentage_of(part: int, whole: int) -> int:
    if whole <= 0:
        return 0
    return round_half_up(Fraction(100 * part, whole))


def performance_band(percentage: int) -> str:
    if percentage >= 80:
        return "strong"
    if percentage >= 60:
        return "good"
    if percentage >= 40:
        return "fair"
    return "weak"


def describe_flag(flag: ProctorFlag) -> str:
    return f"{FLAG_DESCRIPTIONS[flag.type]} at {flag.timestamp:%H:%M:%S}"


def difficulty_breakdown(attempt: TestAttempt, questions: Iterable[Question]) -> tuple[DifficultyBreakdown, ...]:
    """Correct/total per difficulty level, skipping levels with no answers."""
    by_id = {question.id: question for question in questions}
    correct: dict[Difficulty, int] = {level: 0 for level in _DIFFICULTY_ORDER}
    total: dict[Difficulty, int] = {level: 0 for level in _DIFFICULTY_ORDER}
    for record in attempt.answers:
        question = by_id.get(record.question_id)
        if question is None or record.is_blank:
            continue
        total[question.difficulty] += 1
        if record.is_correct:
            correct[question.difficulty] += 1
    return tuple(
        DifficultyBreakdown(difficulty=level, correct=correct[level], total=total[level])
        for level in _DIFFICULTY_ORDER
        if total[level] > 0
    )


def review_attempt(attempt: TestAttempt, test: Test, questions: Iterable[Question]) -> AttemptReview:
    question_list = list(questions)
    total_points = sum(question.points for question in question_list)
    earned_points = sum(record.points for record in attempt.answers)
    score = percentage_of(earned_points, total_points)

    duration_minutes = None
    if attempt.end_time is not None:
        duration_minutes = round_half_up(Fraction((attempt.end_time - attempt.start_time).total_seconds()) / 60)

    return AttemptReview(
        percent_score=score,
        passed=score >= test.passing_score,
        passing_score=test.passing_score,
        earned_points=earned_points,
        total_points=total_points,
        correct_count=sum(1 for record in attempt.answers if record.is_correct),
        question_count=len(question_list),
        breakdown=difficulty_breakdown(attempt, question_list),
        duration_minutes=duration_minutes,
        flag_descriptions=tuple(describe_flag(flag) for flag in attempt.proctor_flags),
    )
