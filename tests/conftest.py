"""Shared fixtures for the exam test suite."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from pathlib import Path
from typing import Sequence

import pytest

from exam_app.core.errors import SubmissionError
from exam_app.core.exam_importer import load_exam_from_file
from exam_app.core.models import Difficulty, Question, Test, TestAttempt, User
from exam_app.core.ports import ExamSource, SubmissionService
from exam_app.core.services.capabilities import SimulatedCapabilityProvider
from exam_app.core.services.exam_repository import ExamRepository
from exam_app.core.services.exam_session import ExamSession
from exam_app.core.services.grading import LocalGradingService

SAMPLE_EXAM_FILE = Path(__file__).resolve().parent.parent / "exam_app" / "data" / "sample_exam.txt"

FIXED_NOW = datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc)


class FakeSubmissionService(SubmissionService):
    """Grades through LocalGradingService, with injectable failures and delay."""

    def __init__(self, source: ExamSource, *, failures: int = 0, delay: float = 0.0) -> None:
        self._grading = LocalGradingService(source)
        self.failures = failures
        self.delay = delay
        self.calls: list[TestAttempt] = []

    async def submit_attempt(self, attempt: TestAttempt) -> TestAttempt:
        self.calls.append(attempt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.failures > 0:
            self.failures -= 1
            raise SubmissionError("Grading service unavailable")
        return await self._grading.submit_attempt(attempt)


class SlowSource(ExamSource):
    """Exam source that answers after a pause."""

    def __init__(self, inner: ExamSource, delay: float) -> None:
        self._inner = inner
        self._delay = delay

    async def fetch_test(self, test_id: str) -> Test:
        await asyncio.sleep(self._delay)
        return await self._inner.fetch_test(test_id)

    async def fetch_questions(self, question_ids: Sequence[str]) -> list[Question]:
        return await self._inner.fetch_questions(question_ids)


@pytest.fixture
def sample_questions() -> list[Question]:
    return [
        Question(
            id="mc",
            type="multiple-choice",
            content="What is the capital of France?",
            options=("London", "Paris", "Berlin"),
            correct_answer="Paris",
            difficulty=Difficulty.EASY,
            points=1,
            explanation="Paris is the capital of France.",
        ),
        Question(
            id="tf",
            type="true-false",
            content="The Earth is flat.",
            correct_answer="false",
            difficulty=Difficulty.EASY,
            points=1,
        ),
        Question(
            id="short",
            type="short-answer",
            content='Which element has the symbol "O"?',
            correct_answer="Oxygen",
            difficulty=Difficulty.MEDIUM,
            points=2,
        ),
        Question(
            id="match",
            type="matching",
            content="Pair each season with the one that follows it.",
            options=("Spring", "Summer", "Autumn", "Winter"),
            correct_answer=("Summer", "Autumn", "Winter", "Spring"),
            difficulty=Difficulty.MEDIUM,
            points=2,
        ),
        Question(
            id="essay",
            type="essay",
            content="Explain object-oriented programming.",
            correct_answer="Encapsulation, inheritance, polymorphism and abstraction.",
            difficulty=Difficulty.HARD,
            points=4,
        ),
    ]


@pytest.fixture
def open_test(sample_questions) -> Test:
    return Test(
        id="open",
        title="Open Quiz",
        question_ids=tuple(q.id for q in sample_questions),
        time_limit=10,
        passing_score=50,
    )


@pytest.fixture
def proctored_test(sample_questions) -> Test:
    return Test(
        id="proctored",
        title="Proctored Exam",
        question_ids=tuple(q.id for q in sample_questions),
        time_limit=30,
        passing_score=70,
        require_proctoring=True,
    )


@pytest.fixture
def repository(sample_questions, open_test, proctored_test) -> ExamRepository:
    repo = ExamRepository()
    repo.load([open_test, proctored_test], sample_questions)
    return repo


@pytest.fixture
def sample_repository() -> ExamRepository:
    imported = load_exam_from_file(SAMPLE_EXAM_FILE)
    repo = ExamRepository()
    repo.load(imported.tests, imported.questions)
    return repo


@pytest.fixture
def submission(repository) -> FakeSubmissionService:
    return FakeSubmissionService(repository)


@pytest.fixture
def provider() -> SimulatedCapabilityProvider:
    return SimulatedCapabilityProvider()


@pytest.fixture
def learner() -> User:
    return User(id="learner-1", name="Ada Learner")


@pytest.fixture
async def make_session(repository, provider, submission, learner):
    """Factory for sessions that are closed again after the test."""
    created: list[ExamSession] = []

    def factory(test_id: str = "open", **kwargs) -> ExamSession:
        kwargs.setdefault("source", repository)
        kwargs.setdefault("capabilities", provider)
        kwargs.setdefault("submission", submission)
        kwargs.setdefault("tick_interval", 60.0)
        kwargs.setdefault("clock", lambda: FIXED_NOW)
        session = ExamSession(test_id, learner, **kwargs)
        created.append(session)
        return session

    yield factory
    for session in created:
        session.close()
        await session.wait_until_settled()
