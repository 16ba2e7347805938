"""Service holding a learner's in-progress answers."""

from __future__ import annotations

from typing import Iterable

from exam_app.core.errors import SessionStateError
from exam_app.core.models import AnswerRecord, AnswerValue, Question


def is_answer_filled(value: AnswerValue) -> bool:
    if isinstance(value, str):
        return bool(value.strip())
    return len(value) > 0


class AnswerStore:
    """Answers keyed by question id, kept in question order.

    Correctness is never checked here; grading happens after submission.
    """

    def __init__(self, questions: Iterable[Question]) -> None:
        self._answers: dict[str, AnswerValue] = {}
        for question in questions:
            self._answers[question.id] = question.empty_answer()
        self._frozen: bool = False

    def set_answer(self, question_id: str, value: AnswerValue) -> None:
        if self._frozen:
            raise SessionStateError("Answers are frozen once the attempt is submitted.")
        if question_id not in self._answers:
            raise KeyError(f"Unknown question id {question_id!r}")
        self._answers[question_id] = value if isinstance(value, str) else list(value)

    def get_answer(self, question_id: str) -> AnswerValue:
        value = self._answers[question_id]
        return value if isinstance(value, str) else list(value)

    def is_answered(self, question_id: str) -> bool:
        return is_answer_filled(self._answers[question_id])

    def completed_count(self) -> int:
        return sum(1 for value in self._answers.values() if is_answer_filled(value))

    def question_count(self) -> int:
        return len(self._answers)

    def unanswered_ids(self) -> list[str]:
        return [qid for qid, value in self._answers.items() if not is_answer_filled(value)]

    def progress_fraction(self) -> float:
        if not self._answers:
            return 0.0
        return self.completed_count() / len(self._answers)

    def freeze(self) -> None:
        self._frozen = True

    def is_frozen(self) -> bool:
        return self._frozen

    def to_records(self) -> tuple[AnswerRecord, ...]:
        """Snapshot the answers as records, one per question in order."""
        return tuple(
            AnswerRecord(question_id=qid, answer=value if isinstance(value, str) else list(value))
            for qid, value in self._answers.items()
        )
