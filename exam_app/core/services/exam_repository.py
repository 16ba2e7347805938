"""Service holding the loaded exams and serving them as an exam source."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Sequence

from exam_app.constants.exam_constants import TRUE_FALSE_VALUES
from exam_app.core.errors import LoadError
from exam_app.core.exam_importer import load_exam_from_file
from exam_app.core.models import Question, QuestionType, Test
from exam_app.core.ports import ExamSource

logger = logging.getLogger(__name__)


class ExamRepository(ExamSource):
    """Validated, in-memory collection of tests and their questions."""

    def __init__(self) -> None:
        self._tests: dict[str, Test] = {}
        self._questions: dict[str, Question] = {}

    @classmethod
    def from_file(cls, file_path: Path) -> ExamRepository:
        imported = load_exam_from_file(file_path)
        repository = cls()
        repository.load(imported.tests, imported.questions)
        logger.info(
            "Loaded %d test(s) and %d question(s) from %s",
            len(imported.tests),
            len(imported.questions),
            file_path,
        )
        return repository

    def load(self, tests: Iterable[Test], questions: Iterable[Question]) -> None:
        """Replace the stored exams. Every test must resolve all its questions."""
        prepared_questions = {q.id: self._prepare_question(q) for q in questions}
        prepared_tests: dict[str, Test] = {}
        for test in tests:
            missing = [qid for qid in test.question_ids if qid not in prepared_questions]
            if missing:
                raise ValueError(f"Test '{test.id}' references unknown questions: {', '.join(missing)}")
            if test.time_limit <= 0:
                raise ValueError(f"Test '{test.id}' must have a positive time limit.")
            if not 0 <= test.passing_score <= 100:
                raise ValueError(f"Test '{test.id}' passing score must be between 0 and 100.")
            prepared_tests[test.id] = test
        self._questions = prepared_questions
        self._tests = prepared_tests

    def get_tests(self) -> list[Test]:
        return list(self._tests.values())

    def has_test(self, test_id: str) -> bool:
        return test_id in self._tests

    async def fetch_test(self, test_id: str) -> Test:
        test = self._tests.get(test_id)
        if test is None:
            raise LoadError(f"Test '{test_id}' not found.")
        return test

    async def fetch_questions(self, question_ids: Sequence[str]) -> list[Question]:
        missing = [qid for qid in question_ids if qid not in self._questions]
        if missing:
            raise LoadError(f"Questions not found: {', '.join(missing)}")
        return [self._questions[qid] for qid in question_ids]

    @staticmethod
    def _prepare_question(question: Question) -> Question:
        """Validate a question before storage."""
        if not question.content.strip():
            raise ValueError(f"Question '{question.id}' text must not be empty.")
        if question.points <= 0:
            raise ValueError(f"Question '{question.id}' must be worth a positive number of points.")

        kind = question.kind
        if kind is QuestionType.MULTIPLE_CHOICE:
            if len(question.options) < 2:
                raise ValueError(f"Question '{question.id}' needs at least two options.")
            if question.correct_answer not in question.options:
                raise ValueError(f"Question '{question.id}' correct answer must be one of its options.")
        elif kind is QuestionType.MATCHING:
            if not question.options:
                raise ValueError(f"Question '{question.id}' needs options to match.")
            if isinstance(question.correct_answer, str) or len(question.correct_answer) != len(question.options):
                raise ValueError(f"Question '{question.id}' needs one expected match per option.")
        elif kind is QuestionType.TRUE_FALSE:
            if question.correct_answer not in TRUE_FALSE_VALUES:
                raise ValueError(f"Question '{question.id}' correct answer must be 'true' or 'false'.")
        return question
