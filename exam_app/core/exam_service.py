"""Business logic for managing exam sessions shared between UI and API."""

from __future__ import annotations

import asyncio
import logging
import random
from threading import Lock
from typing import Callable

from exam_app.constants.exam_constants import SUBMIT_TIMEOUT_SECONDS, TICK_INTERVAL_SECONDS
from exam_app.core.errors import AccessDeniedError, LoadError, SessionNotFoundError, SessionStateError
from exam_app.core.models import AnswerValue, ProctorFlag, ProctorFlagType, Test, TestAttempt, User, UserRole, utc_now
from exam_app.core.ports import Capability, CapabilityProvider, SubmissionService
from exam_app.core.scoring import AttemptReview
from exam_app.core.services.capabilities import ClientReportedCapabilityProvider
from exam_app.core.services.exam_repository import ExamRepository
from exam_app.core.services.exam_session import ExamSession, SessionSnapshot, SessionState
from exam_app.core.services.grading import LocalGradingService
from exam_app.core.services.proctoring_gate import PermissionStatus

logger = logging.getLogger(__name__)


class ExamService:
    """Facade for exam services: Repository, Grading and the open ExamSessions.

    Sessions live on the server's event loop. The Qt console runs on another
    thread, so it reads snapshots under the lock and hands mutations to the
    loop with ``call_in_loop``.
    """

    def __init__(
        self,
        repository: ExamRepository,
        grading: SubmissionService | None = None,
        *,
        capability_factory: Callable[[], CapabilityProvider] = ClientReportedCapabilityProvider,
        rng: random.Random | None = None,
        tick_interval: float = TICK_INTERVAL_SECONDS,
        submit_timeout: float = SUBMIT_TIMEOUT_SECONDS,
    ) -> None:
        self._lock = Lock()

        # Services
        self._repository = repository
        self._grading = grading or LocalGradingService(repository)
        self._capability_factory = capability_factory

        self._rng = rng
        self._tick_interval = tick_interval
        self._submit_timeout = submit_timeout
        self._sessions: dict[str, ExamSession] = {}
        self._providers: dict[str, CapabilityProvider] = {}
        self._loop: asyncio.AbstractEventLoop | None = None

    # --- Exam Repository Delegation ---

    def get_tests(self) -> list[Test]:
        return self._repository.get_tests()

    def has_test(self, test_id: str) -> bool:
        return self._repository.has_test(test_id)

    # --- Event loop ---

    def attach_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    def call_in_loop(self, callback: Callable[..., object], *args: object) -> None:
        """Run ``callback`` on the sessions' event loop, from any thread."""
        loop = self._loop
        if loop is None or not loop.is_running():
            callback(*args)
            return
        loop.call_soon_threadsafe(callback, *args)

    # --- Session lifecycle ---

    async def open_session(self, test_id: str, user: User) -> ExamSession:
        """Create a taking session for ``user`` and load its test."""
        if user.role is not UserRole.STUDENT:
            raise AccessDeniedError(f"Only students can take exams; {user.name} is a {user.role.value}.")

        provider = self._capability_factory()
        session = ExamSession(
            test_id,
            user,
            self._repository,
            provider,
            self._grading,
            rng=random.Random(self._rng.random()) if self._rng else None,
            tick_interval=self._tick_interval,
            submit_timeout=self._submit_timeout,
        )
        with self._lock:
            self._sessions[session.session_id] = session
            self._providers[session.session_id] = provider
        try:
            await session.load()
        except LoadError:
            self._forget(session.session_id)
            raise
        logger.info("Opened session %s for %s on test %s", session.session_id, user.name, test_id)
        return session

    def get_session(self, session_id: str) -> ExamSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Session '{session_id}' not found.")
        return session

    def close_session(self, session_id: str) -> None:
        session = self.get_session(session_id)
        with self._lock:
            session.close()

    def shutdown(self) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
        for session in sessions:
            session.close()

    def _forget(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)
            self._providers.pop(session_id, None)

    # --- Proctoring ---

    async def report_capability(
        self,
        session_id: str,
        capability: Capability,
        granted: bool,
        detail: str | None = None,
    ) -> PermissionStatus:
        """Record the browser's answer to a permission prompt and apply it."""
        session = self.get_session(session_id)
        with self._lock:
            provider = self._providers.get(session_id)
        gate = session.gate
        already_granted = gate is not None and gate.status_of(capability) is PermissionStatus.GRANTED
        if isinstance(provider, ClientReportedCapabilityProvider) and not already_granted:
            provider.report(capability, granted, detail)
        return await session.request_capability(capability)

    def begin(self, session_id: str) -> None:
        session = self.get_session(session_id)
        with self._lock:
            session.begin()

    def record_flag(self, session_id: str, flag_type: ProctorFlagType, evidence: str | None = None) -> ProctorFlag:
        session = self.get_session(session_id)
        flag = ProctorFlag(timestamp=utc_now(), type=flag_type, evidence=evidence)
        with self._lock:
            session.record_flag(flag)
        return flag

    # --- Taking the exam ---

    def navigate(self, session_id: str, *, index: int | None = None, direction: str | None = None) -> bool:
        session = self.get_session(session_id)
        with self._lock:
            if index is not None:
                return session.go_to(index)
            if direction == "next":
                return session.next_question()
            if direction == "previous":
                return session.previous_question()
        raise ValueError("Navigation needs an index or a direction of 'next' or 'previous'.")

    def set_answer(self, session_id: str, value: AnswerValue, *, question_id: str | None = None) -> None:
        session = self.get_session(session_id)
        with self._lock:
            session.set_answer(value, question_id=question_id)

    async def submit(self, session_id: str) -> TestAttempt:
        return await self.get_session(session_id).submit()

    # --- Review ---

    def get_review(self, session_id: str, *, for_learner: bool = True) -> AttemptReview:
        """Scored review of a submitted attempt.

        Learners only see it when the test releases results.
        """
        session = self.get_session(session_id)
        review = session.review
        if review is None:
            raise SessionStateError("The attempt has not been submitted yet.")
        if for_learner and session.test is not None and not session.test.show_results:
            raise AccessDeniedError("Results for this test have not been released.")
        return review

    # --- Snapshots for the console ---

    def get_snapshot(self, session_id: str) -> SessionSnapshot:
        session = self.get_session(session_id)
        with self._lock:
            return session.snapshot()

    def list_snapshots(self) -> list[SessionSnapshot]:
        with self._lock:
            return [session.snapshot() for session in self._sessions.values()]

    def get_submitted_sessions(self) -> list[ExamSession]:
        with self._lock:
            return [session for session in self._sessions.values() if session.review is not None]

    def count_active_sessions(self) -> int:
        with self._lock:
            return sum(1 for session in self._sessions.values() if session.state is SessionState.ACTIVE)
