"""Tests for the session registry shared by the API and the console."""

import random

import pytest

from exam_app.core.errors import AccessDeniedError, LoadError, SessionNotFoundError, SessionStateError
from exam_app.core.exam_service import ExamService
from exam_app.core.models import ProctorFlagType, Test, User, UserRole
from exam_app.core.ports import Capability
from exam_app.core.services.capabilities import ClientReportedCapabilityProvider
from exam_app.core.services.exam_repository import ExamRepository
from exam_app.core.services.exam_session import SessionState
from exam_app.core.services.proctoring_gate import PermissionStatus


@pytest.fixture
async def service(repository):
    exam_service = ExamService(repository, tick_interval=60.0, rng=random.Random(1))
    yield exam_service
    exam_service.shutdown()


class TestOpenSession:
    async def test_student_gets_an_active_session(self, service, learner):
        session = await service.open_session("open", learner)

        assert session.state is SessionState.ACTIVE
        assert service.get_session(session.session_id) is session
        assert service.count_active_sessions() == 1

    async def test_staff_cannot_take_exams(self, service):
        with pytest.raises(AccessDeniedError):
            await service.open_session("open", User(id="t1", name="Tess", role=UserRole.TEACHER))

    async def test_failed_load_is_not_registered(self, service, learner):
        with pytest.raises(LoadError):
            await service.open_session("missing", learner)

        assert service.list_snapshots() == []

    async def test_unknown_session(self, service):
        with pytest.raises(SessionNotFoundError):
            service.get_session("nope")


class TestProctoring:
    async def test_browser_reports_drive_the_gate(self, service, learner):
        session = await service.open_session("proctored", learner)
        sid = session.session_id

        denied = await service.report_capability(sid, Capability.CAMERA, False, "NotAllowedError")
        assert denied is PermissionStatus.DENIED
        assert session.gate.error_for(Capability.CAMERA).reason == "NotAllowedError"

        await service.report_capability(sid, Capability.CAMERA, True)
        await service.report_capability(sid, Capability.SCREEN, True)
        service.begin(sid)

        assert service.get_snapshot(sid).state is SessionState.ACTIVE

    async def test_report_for_granted_capability_is_dropped(self, repository, learner):
        providers = []

        def capability_factory():
            providers.append(ClientReportedCapabilityProvider())
            return providers[-1]

        service = ExamService(repository, capability_factory=capability_factory, tick_interval=60.0)
        try:
            session = await service.open_session("proctored", learner)
            sid = session.session_id
            await service.report_capability(sid, Capability.CAMERA, True)

            status = await service.report_capability(sid, Capability.CAMERA, False, "NotAllowedError")

            assert status is PermissionStatus.GRANTED
            assert session.gate.error_for(Capability.CAMERA) is None
            assert not providers[0].has_report(Capability.CAMERA)
        finally:
            service.shutdown()


class TestTakingTheExam:
    async def test_navigate_and_answer(self, service, learner):
        session = await service.open_session("open", learner)
        sid = session.session_id

        assert service.navigate(sid, direction="next")
        service.set_answer(sid, "false", question_id="tf")
        assert service.navigate(sid, index=0)

        snapshot = service.get_snapshot(sid)
        assert snapshot.current_index == 0
        assert snapshot.answered == (False, True, False, False, False)

    async def test_navigate_needs_a_target(self, service, learner):
        session = await service.open_session("open", learner)

        with pytest.raises(ValueError):
            service.navigate(session.session_id)

    async def test_flag_and_submit(self, service, learner):
        session = await service.open_session("open", learner)
        sid = session.session_id

        flag = service.record_flag(sid, ProctorFlagType.VOICE_DETECTED, "mic spike")
        attempt = await service.submit(sid)

        assert attempt.proctor_flags == (flag,)
        assert [s.session_id for s in service.get_submitted_sessions()] == [sid]
        assert service.count_active_sessions() == 0


class TestReview:
    async def test_review_needs_a_submitted_attempt(self, service, learner):
        session = await service.open_session("open", learner)

        with pytest.raises(SessionStateError):
            service.get_review(session.session_id)

    async def test_hidden_results_only_for_the_console(self, sample_questions, learner):
        hidden = Test(
            id="hidden",
            title="Hidden",
            question_ids=("mc",),
            time_limit=5,
            show_results=False,
        )
        repo = ExamRepository()
        repo.load([hidden], sample_questions)
        service = ExamService(repo, tick_interval=60.0)
        session = await service.open_session("hidden", learner)
        await service.submit(session.session_id)

        with pytest.raises(AccessDeniedError):
            service.get_review(session.session_id)
        assert service.get_review(session.session_id, for_learner=False).question_count == 1


class TestLifecycle:
    async def test_closed_sessions_stay_listed(self, service, learner):
        session = await service.open_session("open", learner)

        service.close_session(session.session_id)

        snapshots = service.list_snapshots()
        assert [s.state for s in snapshots] == [SessionState.CLOSED]
        assert session.timer.is_disposed

    async def test_call_in_loop_without_loop_runs_inline(self, service):
        calls = []

        service.call_in_loop(calls.append, "now")

        assert calls == ["now"]
