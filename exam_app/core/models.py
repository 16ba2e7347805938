"""Domain models for the exam application."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

AnswerValue = str | list[str]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class QuestionType(str, Enum):
    """Question kinds the renderer and grader know how to handle."""

    MULTIPLE_CHOICE = "multiple-choice"
    TRUE_FALSE = "true-false"
    SHORT_ANSWER = "short-answer"
    ESSAY = "essay"
    MATCHING = "matching"

    @classmethod
    def parse(cls, raw: str) -> QuestionType | None:
        """Return the matching member, or None for tags this build does not know."""
        try:
            return cls(raw)
        except ValueError:
            return None


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    EXPERT = "expert"


class ProctorFlagType(str, Enum):
    TAB_SWITCH = "tab-switch"
    FACE_NOT_VISIBLE = "face-not-visible"
    MULTIPLE_FACES = "multiple-faces"
    VOICE_DETECTED = "voice-detected"
    SUSPICIOUS_MOVEMENT = "suspicious-movement"


class UserRole(str, Enum):
    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


@dataclass(frozen=True, slots=True)
class User:
    """Authenticated user as handed over by the auth layer."""

    id: str
    name: str
    role: UserRole = UserRole.STUDENT


@dataclass(frozen=True, slots=True)
class Question:
    """A single exam question. Immutable once loaded into a session."""

    id: str
    type: str  # raw tag, see QuestionType
    content: str
    correct_answer: str | tuple[str, ...]
    difficulty: Difficulty = Difficulty.MEDIUM
    points: int = 1
    options: tuple[str, ...] = ()
    explanation: str | None = None
    category: str | None = None
    tags: tuple[str, ...] = ()

    @property
    def kind(self) -> QuestionType | None:
        return QuestionType.parse(self.type)

    def empty_answer(self) -> AnswerValue:
        """Default value for a fresh answer slot."""
        if self.kind is QuestionType.MATCHING:
            return []
        return ""


@dataclass(frozen=True, slots=True)
class Test:
    """Exam definition: metadata plus the ordered question ids."""

    __test__ = False  # not a pytest class

    id: str
    title: str
    question_ids: tuple[str, ...]
    time_limit: int  # minutes
    passing_score: int = 0
    description: str = ""
    created_by: str | None = None
    randomize_questions: bool = False
    show_results: bool = True
    require_proctoring: bool = False
    start_date: datetime | None = None
    end_date: datetime | None = None

    def is_available(self, moment: datetime) -> bool:
        if self.start_date is not None and moment < self.start_date:
            return False
        if self.end_date is not None and moment > self.end_date:
            return False
        return True


@dataclass(frozen=True, slots=True)
class ProctorFlag:
    """Suspicious activity reported by an external monitor."""

    timestamp: datetime
    type: ProctorFlagType
    evidence: str | None = None  # screenshot URL or free-text description


@dataclass(frozen=True, slots=True)
class AnswerRecord:
    """Frozen answer for one question, optionally enriched by grading."""

    question_id: str
    answer: AnswerValue
    is_correct: bool | None = None
    points: int = 0
    manually_graded: bool = False
    feedback: str | None = None

    @property
    def is_blank(self) -> bool:
        if isinstance(self.answer, str):
            return not self.answer.strip()
        return len(self.answer) == 0


@dataclass(frozen=True, slots=True)
class TestAttempt:
    """One learner's timed traversal of a test."""

    __test__ = False

    id: str
    test_id: str
    user_id: str
    start_time: datetime
    end_time: datetime | None = None
    answers: tuple[AnswerRecord, ...] = ()
    score: int | None = None
    completed: bool = False
    proctor_flags: tuple[ProctorFlag, ...] = field(default_factory=tuple)

    def answer_for(self, question_id: str) -> AnswerRecord | None:
        return next((a for a in self.answers if a.question_id == question_id), None)
