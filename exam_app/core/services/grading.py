"""In-process grading and storage of submitted attempts."""

from __future__ import annotations

from dataclasses import replace
import logging
from threading import Lock

from exam_app.core.errors import SubmissionError
from exam_app.core.models import AnswerRecord, Question, QuestionType, TestAttempt
from exam_app.core.ports import ExamSource, SubmissionService

logger = logging.getLogger(__name__)

PENDING_MANUAL_FEEDBACK = "Awaiting manual grading."


class LocalGradingService(SubmissionService):
    """Auto-grades objective questions and keeps the graded attempts.

    Essays are left ungraded (no points, ``is_correct`` unset) until an
    instructor reviews them.
    """

    def __init__(self, source: ExamSource) -> None:
        self._source = source
        self._attempts: dict[str, TestAttempt] = {}
        self._lock = Lock()

    async def submit_attempt(self, attempt: TestAttempt) -> TestAttempt:
        if not attempt.completed or attempt.end_time is None:
            raise SubmissionError("Only finalized attempts can be submitted.")
        with self._lock:
            if attempt.id in self._attempts:
                # Retried submission whose first response got lost.
                return self._attempts[attempt.id]

        question_ids = [record.question_id for record in attempt.answers]
        questions = {q.id: q for q in await self._source.fetch_questions(question_ids)}
        graded_answers = tuple(self.grade_answer(questions[record.question_id], record) for record in attempt.answers)
        graded = replace(attempt, answers=graded_answers)

        with self._lock:
            self._attempts[attempt.id] = graded
        logger.info(
            "Graded attempt %s: %d/%d points",
            attempt.id,
            sum(record.points for record in graded_answers),
            sum(q.points for q in questions.values()),
        )
        return graded

    def get_attempt(self, attempt_id: str) -> TestAttempt | None:
        with self._lock:
            return self._attempts.get(attempt_id)

    def grade_answer(self, question: Question, record: AnswerRecord) -> AnswerRecord:
        """Route to the grading rule for the question's type."""
        kind = question.kind
        if kind is QuestionType.ESSAY:
            return replace(record, is_correct=None, points=0, feedback=PENDING_MANUAL_FEEDBACK)
        if kind is None:
            return replace(record, is_correct=False, points=0, feedback="Unsupported question type")
        if record.is_blank:
            return replace(record, is_correct=False, points=0)

        if kind is QuestionType.MATCHING:
            is_correct = self._grade_matching(record.answer, question.correct_answer)
        elif kind is QuestionType.SHORT_ANSWER:
            is_correct = self._normalize(record.answer) == self._normalize(question.correct_answer)
        else:
            is_correct = record.answer == question.correct_answer
        return replace(record, is_correct=is_correct, points=question.points if is_correct else 0)

    @staticmethod
    def _grade_matching(answer: str | list[str], expected: str | tuple[str, ...]) -> bool:
        if isinstance(answer, str) or isinstance(expected, str):
            return False
        if len(answer) != len(expected):
            return False
        return all(given == wanted for given, wanted in zip(answer, expected))

    @staticmethod
    def _normalize(value: str | list[str] | tuple[str, ...]) -> str:
        if not isinstance(value, str):
            return ""
        return " ".join(value.split()).casefold()
