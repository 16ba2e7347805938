"""Service driving one learner's exam attempt from loading to review."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
import logging
import random
from typing import Callable
from uuid import uuid4

from exam_app.constants.exam_constants import SUBMIT_TIMEOUT_SECONDS, TICK_INTERVAL_SECONDS
from exam_app.core.errors import ExamUnavailableError, LoadError, SessionStateError, SubmissionError
from exam_app.core.models import AnswerValue, ProctorFlag, Question, Test, TestAttempt, User, utc_now
from exam_app.core.ports import Capability, CapabilityProvider, ExamSource, SubmissionService
from exam_app.core.scoring import AttemptReview, review_attempt
from exam_app.core.services.answer_store import AnswerStore
from exam_app.core.services.proctoring_gate import ALL_CAPABILITIES, PermissionStatus, ProctoringGate
from exam_app.core.services.timer_engine import ExamTimer

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    LOADING = "loading"
    LOAD_FAILED = "load-failed"
    PROCTOR_GATE = "proctor-gate"
    ACTIVE = "active"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    CLOSED = "closed"


class SubmitReason(str, Enum):
    LEARNER = "learner"
    TIME_EXPIRED = "time-expired"


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    """Read-only view of a session for the API and the console."""

    session_id: str
    test_id: str
    user_id: str
    user_name: str
    state: SessionState
    title: str | None
    question_count: int
    current_index: int
    answered: tuple[bool, ...]
    answered_count: int
    remaining_seconds: int | None
    formatted_remaining: str | None
    warning_level: str | None
    proctoring_required: bool
    camera_status: PermissionStatus | None
    screen_status: PermissionStatus | None
    all_ready: bool
    flag_count: int
    submit_reason: SubmitReason | None
    score: int | None
    last_error: str | None


class ExamSession:
    """State machine for one attempt.

    ``loading -> proctor-gate -> active -> submitting -> submitted``; the gate
    is skipped when the test does not require proctoring. Learner submission
    and timer expiry share one finalize task, so an attempt is finalized at
    most once. A failed submission leaves the session in ``submitting`` where
    ``submit()`` can be retried; the timer stays disposed.
    """

    def __init__(
        self,
        test_id: str,
        user: User,
        source: ExamSource,
        capabilities: CapabilityProvider,
        submission: SubmissionService,
        *,
        session_id: str | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = utc_now,
        tick_interval: float = TICK_INTERVAL_SECONDS,
        submit_timeout: float = SUBMIT_TIMEOUT_SECONDS,
    ) -> None:
        self.session_id = session_id or uuid4().hex
        self.test_id = test_id
        self.user = user
        self._source = source
        self._capabilities = capabilities
        self._submission = submission
        self._rng = rng or random.Random()
        self._clock = clock
        self._tick_interval = tick_interval
        self._submit_timeout = submit_timeout

        self._state = SessionState.LOADING
        self._test: Test | None = None
        self._questions: list[Question] = []
        self._current_index: int = 0
        self._store: AnswerStore | None = None
        self._gate: ProctoringGate | None = None
        self._timer: ExamTimer | None = None
        self._attempt: TestAttempt | None = None
        self._flags: list[ProctorFlag] = []
        self._review: AttemptReview | None = None
        self._finalize_task: asyncio.Task[TestAttempt] | None = None
        self._submit_reason: SubmitReason | None = None
        self._load_error: LoadError | None = None
        self._last_error: SubmissionError | None = None

    # --- State ---

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def test(self) -> Test | None:
        return self._test

    @property
    def questions(self) -> list[Question]:
        return list(self._questions)

    @property
    def gate(self) -> ProctoringGate | None:
        return self._gate

    @property
    def timer(self) -> ExamTimer | None:
        return self._timer

    @property
    def answers(self) -> AnswerStore | None:
        return self._store

    @property
    def attempt(self) -> TestAttempt | None:
        return self._attempt

    @property
    def review(self) -> AttemptReview | None:
        return self._review

    @property
    def load_error(self) -> LoadError | None:
        return self._load_error

    @property
    def last_error(self) -> SubmissionError | None:
        return self._last_error

    @property
    def submit_reason(self) -> SubmitReason | None:
        return self._submit_reason

    @property
    def flags(self) -> list[ProctorFlag]:
        return list(self._flags)

    def _set_state(self, state: SessionState) -> None:
        logger.info("Session %s: %s -> %s", self.session_id, self._state.value, state.value)
        self._state = state

    def _require_state(self, *states: SessionState) -> None:
        if self._state not in states:
            allowed = ", ".join(state.value for state in states)
            raise SessionStateError(f"Session is {self._state.value}; expected {allowed}.")

    # --- Loading ---

    async def load(self) -> SessionState:
        """Fetch the test and questions, then enter the gate or start the exam.

        Raises LoadError after moving to ``load-failed``.
        """
        self._require_state(SessionState.LOADING)
        try:
            test = await self._source.fetch_test(self.test_id)
            if not test.is_available(self._clock()):
                raise ExamUnavailableError(f"Test '{test.title}' is not available at this time.")
            questions = await self._source.fetch_questions(test.question_ids)
            if [question.id for question in questions] != list(test.question_ids):
                raise LoadError(f"Question set for test '{test.id}' is incomplete.")
        except LoadError as exc:
            if self._state is SessionState.LOADING:
                self._load_error = exc
                self._set_state(SessionState.LOAD_FAILED)
            logger.warning("Session %s failed to load test %s: %s", self.session_id, self.test_id, exc)
            raise

        if self._state is not SessionState.LOADING:
            # Closed while the fetch was in flight.
            return self._state

        if test.randomize_questions:
            questions = list(questions)
            self._rng.shuffle(questions)
        self._test = test
        self._questions = list(questions)
        self._store = AnswerStore(self._questions)

        if test.require_proctoring:
            self._gate = ProctoringGate(self._capabilities, required=ALL_CAPABILITIES)
            self._set_state(SessionState.PROCTOR_GATE)
        else:
            self._activate()
        return self._state

    # --- Proctoring ---

    async def request_camera(self) -> PermissionStatus:
        return await self.request_capability(Capability.CAMERA)

    async def request_screen_share(self) -> PermissionStatus:
        return await self.request_capability(Capability.SCREEN)

    async def request_capability(self, capability: Capability) -> PermissionStatus:
        self._require_state(SessionState.PROCTOR_GATE)
        assert self._gate is not None
        return await self._gate.request(capability)

    def begin(self) -> None:
        """Leave the proctoring gate and start the clock."""
        self._require_state(SessionState.PROCTOR_GATE)
        assert self._gate is not None
        if not self._gate.all_ready:
            raise SessionStateError("Camera and screen sharing must both be enabled before starting.")
        self._activate()

    def _activate(self) -> None:
        assert self._test is not None
        self._attempt = TestAttempt(
            id=uuid4().hex,
            test_id=self._test.id,
            user_id=self.user.id,
            start_time=self._clock(),
        )
        self._timer = ExamTimer(self._test.time_limit, self._handle_time_up, tick_interval=self._tick_interval)
        self._set_state(SessionState.ACTIVE)
        self._timer.start()

    # --- Navigation and answers ---

    @property
    def question_count(self) -> int:
        return len(self._questions)

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def current_question(self) -> Question | None:
        if not self._questions:
            return None
        return self._questions[self._current_index]

    @property
    def current_answer(self) -> AnswerValue:
        question = self.current_question
        if question is None or self._store is None:
            return ""
        return self._store.get_answer(question.id)

    def go_to(self, index: int) -> bool:
        """Move the cursor; out-of-range indexes are ignored."""
        self._require_state(SessionState.ACTIVE)
        if not 0 <= index < len(self._questions):
            return False
        self._current_index = index
        return True

    def next_question(self) -> bool:
        return self.go_to(self._current_index + 1)

    def previous_question(self) -> bool:
        return self.go_to(self._current_index - 1)

    def set_answer(self, value: AnswerValue, *, question_id: str | None = None) -> None:
        """Store an edit for the question under the cursor.

        ``question_id`` lets a client state which question it edited; an edit
        aimed at a question that is no longer current is rejected.
        """
        self._require_state(SessionState.ACTIVE)
        question = self.current_question
        assert question is not None and self._store is not None
        if question_id is not None and question_id != question.id:
            raise SessionStateError(f"Question '{question_id}' is not the current question.")
        self._store.set_answer(question.id, value)

    def answered_flags(self) -> tuple[bool, ...]:
        if self._store is None:
            return ()
        return tuple(self._store.is_answered(question.id) for question in self._questions)

    def record_flag(self, flag: ProctorFlag) -> None:
        self._require_state(SessionState.ACTIVE, SessionState.SUBMITTING)
        self._flags.append(flag)
        logger.warning("Session %s flagged: %s", self.session_id, flag.type.value)

    # --- Finalize ---

    async def submit(self) -> TestAttempt:
        """Finalize the attempt, or retry a failed submission."""
        if self._state is SessionState.SUBMITTED:
            assert self._attempt is not None
            return self._attempt
        self._require_state(SessionState.ACTIVE, SessionState.SUBMITTING)
        task = self._trigger_finalize(SubmitReason.LEARNER)
        return await asyncio.shield(task)

    async def wait_until_settled(self) -> None:
        """Wait for an in-flight submission, whatever its outcome."""
        task = self._finalize_task
        if task is not None and not task.done():
            await asyncio.wait({task})

    def _handle_time_up(self) -> None:
        if self._state is not SessionState.ACTIVE:
            return
        logger.info("Session %s ran out of time", self.session_id)
        self._trigger_finalize(SubmitReason.TIME_EXPIRED)

    def _trigger_finalize(self, reason: SubmitReason) -> asyncio.Task[TestAttempt]:
        if self._finalize_task is not None and not self._finalize_task.done():
            return self._finalize_task
        if self._state is SessionState.ACTIVE:
            self._freeze_attempt(reason)
        task = asyncio.get_running_loop().create_task(self._send_attempt(), name=f"finalize-{self.session_id}")
        task.add_done_callback(self._log_finalize_outcome)
        self._finalize_task = task
        return task

    def _freeze_attempt(self, reason: SubmitReason) -> None:
        assert self._attempt is not None and self._store is not None
        self._submit_reason = reason
        if self._timer is not None:
            self._timer.dispose()
        if self._gate is not None:
            self._gate.release()
        self._store.freeze()
        self._attempt = replace(
            self._attempt,
            end_time=self._clock(),
            completed=True,
            answers=self._store.to_records(),
            proctor_flags=tuple(self._flags),
        )
        self._set_state(SessionState.SUBMITTING)

    async def _send_attempt(self) -> TestAttempt:
        assert self._attempt is not None and self._test is not None
        self._last_error = None
        self._attempt = replace(self._attempt, proctor_flags=tuple(self._flags))
        try:
            graded = await asyncio.wait_for(self._submission.submit_attempt(self._attempt), self._submit_timeout)
        except asyncio.TimeoutError as exc:
            self._last_error = SubmissionError("Submission timed out.")
            raise self._last_error from exc
        except SubmissionError as exc:
            self._last_error = exc
            raise

        review = review_attempt(graded, self._test, self._questions)
        self._attempt = replace(
            graded,
            end_time=graded.end_time or self._attempt.end_time,
            completed=True,
            score=review.percent_score,
        )
        self._review = review
        if self._state is SessionState.SUBMITTING:
            self._set_state(SessionState.SUBMITTED)
        return self._attempt

    def _log_finalize_outcome(self, task: asyncio.Task[TestAttempt]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Session %s submission failed: %s", self.session_id, exc)
        elif self._attempt is not None:
            logger.info("Session %s submitted with score %s%%", self.session_id, self._attempt.score)

    # --- Teardown ---

    def close(self) -> None:
        """Release the timer and media streams. A closed session cannot resume."""
        if self._state is SessionState.CLOSED:
            return
        if self._timer is not None:
            self._timer.dispose()
        if self._gate is not None:
            self._gate.release()
        self._set_state(SessionState.CLOSED)

    def __enter__(self) -> ExamSession:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def snapshot(self) -> SessionSnapshot:
        answered = self.answered_flags()
        timer = self._timer
        gate = self._gate
        error = self._last_error or self._load_error
        return SessionSnapshot(
            session_id=self.session_id,
            test_id=self.test_id,
            user_id=self.user.id,
            user_name=self.user.name,
            state=self._state,
            title=self._test.title if self._test else None,
            question_count=len(self._questions),
            current_index=self._current_index,
            answered=answered,
            answered_count=sum(answered),
            remaining_seconds=timer.remaining_seconds if timer else None,
            formatted_remaining=timer.formatted_remaining if timer else None,
            warning_level=timer.warning_level.value if timer else None,
            proctoring_required=bool(self._test and self._test.require_proctoring),
            camera_status=gate.camera_status if gate else None,
            screen_status=gate.screen_status if gate else None,
            all_ready=gate.all_ready if gate else self._test is not None,
            flag_count=len(self._flags),
            submit_reason=self._submit_reason,
            score=self._attempt.score if self._attempt else None,
            last_error=str(error) if error else None,
        )
