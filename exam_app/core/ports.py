"""Abstract interfaces for the services an exam session depends on.

The session controller only talks to these ports. In-process implementations
live in ``exam_app.core.services`` (file-backed exam source, local grading,
simulated and client-reported capabilities); a deployment with a real backend
swaps them without touching the controller.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Sequence

from exam_app.core.models import Question, Test, TestAttempt


class Capability(str, Enum):
    """Monitoring capabilities a proctored exam can require."""

    CAMERA = "camera"
    SCREEN = "screen"


class ExamSource(ABC):
    """Read access to exam definitions and questions."""

    @abstractmethod
    async def fetch_test(self, test_id: str) -> Test:
        """Return the test definition or raise LoadError."""

    @abstractmethod
    async def fetch_questions(self, question_ids: Sequence[str]) -> list[Question]:
        """Return questions in the order requested or raise LoadError."""


class CapabilityHandle(ABC):
    """A live camera or screen stream acquired for proctoring."""

    capability: Capability

    @abstractmethod
    def release(self) -> None:
        """Stop every track of the underlying stream."""


class CapabilityProvider(ABC):
    """Acquires device capabilities. Raises CapabilityDeniedError on refusal."""

    @abstractmethod
    async def acquire_camera(self) -> CapabilityHandle:
        pass

    @abstractmethod
    async def acquire_screen_share(self) -> CapabilityHandle:
        pass


class SubmissionService(ABC):
    """Grading/storage backend receiving finalized attempts."""

    @abstractmethod
    async def submit_attempt(self, attempt: TestAttempt) -> TestAttempt:
        """Persist and grade the attempt, returning it with grading fields set.

        Raises SubmissionError when the service is unreachable or rejects it.
        """
