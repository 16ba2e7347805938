"""FastAPI server that exposes the learner endpoints and page."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
import logging
from threading import Thread
from typing import AsyncIterator, Literal

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, Field
import uvicorn

from exam_app.constants.about import APP_NAME, APP_VERSION
from exam_app.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from exam_app.core.errors import (
    AccessDeniedError,
    ExamError,
    LoadError,
    SessionNotFoundError,
    SessionStateError,
    SubmissionError,
)
from exam_app.core.exam_service import ExamService
from exam_app.core.markdown_math_renderer import renderer
from exam_app.core.models import ProctorFlagType, User, UserRole
from exam_app.core.ports import Capability
from exam_app.core.scoring import AttemptReview, performance_band
from exam_app.core.services.exam_session import ExamSession, SessionState
from exam_app.ui.question_renderer import render_question

logger = logging.getLogger(__name__)

_ERROR_STATUS: tuple[tuple[type[ExamError], int], ...] = (
    (SessionNotFoundError, 404),
    (LoadError, 404),
    (AccessDeniedError, 403),
    (SessionStateError, 409),
    (SubmissionError, 502),
)


def _http_error(exc: ExamError) -> HTTPException:
    for error_type, status_code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


_LEARNER_PAGE_HTML = """<!doctype html>
<html lang=\"en\">
  <head>
    <meta charset=\"utf-8\" />
    <title>ExamQt</title>
    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />
    <style>
      :root { font-family: 'Inter', system-ui, sans-serif; background: #f1f5f9; color: #0f172a; }
      body { margin: 0; padding: 1.5rem; display: flex; flex-direction: column; gap: 1rem; max-width: 56rem; margin-inline: auto; }
      .card { background: #fff; border-radius: 0.75rem; padding: 1.5rem; box-shadow: 0 0.25rem 1rem rgba(15, 23, 42, 0.08); }
      .hidden { display: none; }
      .primary-button { border: none; border-radius: 0.75rem; padding: 0.75rem 1.4rem; font-size: 1rem; background: #1e40af; color: #fff; cursor: pointer; }
      .primary-button:disabled { opacity: 0.5; cursor: not-allowed; }
      .secondary-button { border: 1px solid #cbd5e1; border-radius: 0.75rem; padding: 0.6rem 1.2rem; background: #fff; cursor: pointer; }
      .row { display: flex; gap: 0.75rem; align-items: center; flex-wrap: wrap; }
      .spread { justify-content: space-between; }
      label.field { display: flex; flex-direction: column; gap: 0.25rem; font-size: 0.9rem; }
      input[type=text], select, textarea { font-size: 1rem; padding: 0.5rem; border: 1px solid #cbd5e1; border-radius: 0.5rem; }
      textarea { width: 100%; min-height: 10rem; }
      #timer { font-variant-numeric: tabular-nums; font-size: 1.4rem; font-weight: 700; }
      #timer.normal { color: #1e40af; }
      #timer.warning { color: #92400e; }
      #timer.danger { color: #b91c1c; }
      .progress-track { height: 0.5rem; background: #e2e8f0; border-radius: 999px; overflow: hidden; flex: 1; }
      #progress-fill { height: 100%; background: #1e40af; width: 0; }
      .nav-grid { display: flex; flex-wrap: wrap; gap: 0.4rem; }
      .nav-button { width: 2.2rem; height: 2.2rem; border-radius: 0.5rem; border: 1px solid #cbd5e1; background: #fff; cursor: pointer; }
      .nav-button.answered { background: #dbeafe; border-color: #1e40af; }
      .nav-button.current { outline: 2px solid #1e40af; }
      .badge { display: inline-block; border-radius: 999px; padding: 0.1rem 0.6rem; margin-right: 0.4rem; background: #e2e8f0; font-size: 0.8rem; }
      .choice { display: flex; gap: 0.6rem; align-items: flex-start; padding: 0.6rem; border: 1px solid #e2e8f0; border-radius: 0.5rem; margin-bottom: 0.5rem; cursor: pointer; }
      .match-row { display: flex; justify-content: space-between; gap: 1rem; padding: 0.5rem 0; border-bottom: 1px solid #e2e8f0; }
      .status-granted { color: #15803d; }
      .status-denied { color: #b91c1c; }
      .status-pending { color: #64748b; }
      .error { color: #b91c1c; }
      video { width: 16rem; border-radius: 0.5rem; background: #0f172a; }
      .correct { color: #15803d; font-weight: 600; }
      .incorrect { color: #b91c1c; }
      .reference { margin-top: 0.75rem; padding: 0.5rem 0.75rem; border-left: 3px solid #1e40af; background: #eff6ff; }
      .review-question { border-top: 1px solid #e2e8f0; padding-top: 1rem; margin-top: 1rem; }
      .band-strong { color: #15803d; } .band-good { color: #1e40af; } .band-fair { color: #92400e; } .band-weak { color: #b91c1c; }
    </style>
    <script>
      window.MathJax = { tex: { inlineMath: [['$','$']], displayMath: [['$$','$$']] }, svg: { fontCache: 'global' } };
    </script>
    <script defer src=\"https://cdn.jsdelivr.net/npm/mathjax@3/es5/tex-mml-chtml.js\"></script>
  </head>
  <body>
    <section class=\"card\" id=\"start-card\">
      <h1>ExamQt</h1>
      <div class=\"row\">
        <label class=\"field\">Your name <input type=\"text\" id=\"user-name\" /></label>
        <label class=\"field\">Student id <input type=\"text\" id=\"user-id\" /></label>
        <label class=\"field\">Exam <select id=\"test-select\"></select></label>
      </div>
      <p><button id=\"start-button\" class=\"primary-button\">Open Exam</button></p>
      <p id=\"start-status\" class=\"error\"></p>
    </section>

    <section class=\"card hidden\" id=\"gate-card\">
      <h2>Proctoring setup</h2>
      <p>This exam is proctored. Enable your camera and share your screen to continue.</p>
      <div class=\"row\">
        <button id=\"camera-button\" class=\"secondary-button\">Enable Camera</button>
        <span id=\"camera-status\" class=\"status-pending\">pending</span>
      </div>
      <video id=\"camera-preview\" class=\"hidden\" autoplay muted playsinline></video>
      <div class=\"row\">
        <button id=\"screen-button\" class=\"secondary-button\">Share Screen</button>
        <span id=\"screen-status\" class=\"status-pending\">pending</span>
      </div>
      <p id=\"gate-error\" class=\"error\"></p>
      <p><button id=\"begin-button\" class=\"primary-button\" disabled>Start Exam</button></p>
    </section>

    <section class=\"card hidden\" id=\"exam-card\">
      <div class=\"row spread\">
        <h2 id=\"exam-title\"></h2>
        <span id=\"timer\" class=\"normal\">--:--</span>
      </div>
      <div class=\"row\">
        <span id=\"progress-label\"></span>
        <div class=\"progress-track\"><div id=\"progress-fill\"></div></div>
      </div>
      <div id=\"nav-grid\" class=\"nav-grid\"></div>
      <div id=\"question-container\"></div>
      <div class=\"row spread\">
        <button id=\"previous-button\" class=\"secondary-button\">Previous</button>
        <button id=\"submit-button\" class=\"primary-button\">Submit Exam</button>
        <button id=\"next-button\" class=\"secondary-button\">Next</button>
      </div>
      <p id=\"exam-error\" class=\"error\"></p>
    </section>

    <section class=\"card hidden\" id=\"submitting-card\">
      <h2>Submitting your answers…</h2>
      <p id=\"submit-error\" class=\"error\"></p>
      <button id=\"retry-button\" class=\"primary-button hidden\">Try Again</button>
    </section>

    <section class=\"card hidden\" id=\"review-card\">
      <h2>Results</h2>
      <div id=\"review-container\"></div>
    </section>

    <script>
      const cards = ['start-card', 'gate-card', 'exam-card', 'submitting-card', 'review-card'];
      let sessionId = null;
      let session = null;
      let pollHandle = null;
      let renderedQuestionId = null;
      const streams = [];

      function show(cardId) {
        cards.forEach(id => document.getElementById(id).classList.toggle('hidden', id !== cardId));
      }

      async function api(method, path, body) {
        const options = { method, headers: { 'Content-Type': 'application/json' } };
        if (body !== undefined) options.body = JSON.stringify(body);
        const response = await fetch(path, options);
        const payload = await response.json().catch(() => ({}));
        if (!response.ok) {
          const detail = typeof payload.detail === 'string' ? payload.detail : 'Request failed.';
          const error = new Error(detail);
          error.status = response.status;
          throw error;
        }
        return payload;
      }

      async function typesetMath(targets) {
        for (let i = 0; i < 15; i++) {
          if (window.MathJax && window.MathJax.typesetPromise) {
            try { await window.MathJax.typesetPromise(targets); return; } catch (err) { console.warn('MathJax error', err); }
          }
          await new Promise(resolve => setTimeout(resolve, 150));
        }
      }

      function stopStreams() {
        streams.splice(0).forEach(stream => stream.getTracks().forEach(track => track.stop()));
      }

      async function loadTests() {
        const tests = await api('GET', '/tests');
        const select = document.getElementById('test-select');
        select.innerHTML = '';
        tests.forEach(test => {
          const option = document.createElement('option');
          option.value = test.id;
          option.textContent = `${test.title} (${test.time_limit} min)`;
          select.appendChild(option);
        });
        document.getElementById('user-id').value = 'student-' + Math.random().toString(36).slice(2, 8);
      }

      async function openSession() {
        const status = document.getElementById('start-status');
        status.textContent = '';
        try {
          session = await api('POST', '/sessions', {
            test_id: document.getElementById('test-select').value,
            user_id: document.getElementById('user-id').value.trim(),
            user_name: document.getElementById('user-name').value.trim() || 'Learner',
          });
          sessionId = session.session_id;
          applySession(session);
          pollHandle = setInterval(refreshSession, 1000);
        } catch (error) {
          status.textContent = error.message;
        }
      }

      async function refreshSession() {
        if (!sessionId) return;
        try {
          applySession(await api('GET', `/sessions/${sessionId}`));
        } catch (error) {
          console.error('Unable to refresh session', error);
        }
      }

      function setStatus(elementId, status) {
        const el = document.getElementById(elementId);
        el.textContent = status || 'pending';
        el.className = `status-${status || 'pending'}`;
      }

      function applySession(view) {
        session = view;
        if (view.state === 'proctor-gate') {
          show('gate-card');
          setStatus('camera-status', view.camera_status);
          setStatus('screen-status', view.screen_status);
          document.getElementById('begin-button').disabled = !view.all_ready;
        } else if (view.state === 'active') {
          show('exam-card');
          renderExam(view);
        } else if (view.state === 'submitting') {
          show('submitting-card');
          stopStreams();
          document.getElementById('submit-error').textContent = view.last_error || '';
          document.getElementById('retry-button').classList.toggle('hidden', !view.last_error);
        } else if (view.state === 'submitted') {
          clearInterval(pollHandle);
          stopStreams();
          show('review-card');
          loadReview();
        } else if (view.state === 'closed') {
          clearInterval(pollHandle);
          stopStreams();
        }
      }

      function renderExam(view) {
        document.getElementById('exam-title').textContent = view.title;
        const timer = document.getElementById('timer');
        timer.textContent = view.formatted_remaining;
        timer.className = view.warning_level;
        document.getElementById('progress-label').textContent = `${view.answered_count} of ${view.question_count} answered`;
        document.getElementById('progress-fill').style.width = `${Math.round(100 * view.answered_count / Math.max(1, view.question_count))}%`;
        const grid = document.getElementById('nav-grid');
        grid.innerHTML = '';
        view.answered.forEach((answered, index) => {
          const button = document.createElement('button');
          button.className = 'nav-button' + (answered ? ' answered' : '') + (index === view.current_index ? ' current' : '');
          button.textContent = String(index + 1);
          button.addEventListener('click', () => navigate({ index }));
          grid.appendChild(button);
        });
        document.getElementById('previous-button').disabled = view.current_index === 0;
        document.getElementById('next-button').disabled = view.current_index >= view.question_count - 1;
        if (view.question && view.question.id !== renderedQuestionId) {
          renderQuestion(view.question);
        }
      }

      function renderQuestion(question) {
        renderedQuestionId = question.id;
        const container = document.getElementById('question-container');
        container.innerHTML = `<p><span class=\"badge\">${question.difficulty_label}</span><span class=\"badge\">${question.points_label}</span></p>` + question.content_html;
        if (question.input_kind === 'single-choice') {
          question.choices.forEach(choice => {
            const label = document.createElement('label');
            label.className = 'choice';
            const input = document.createElement('input');
            input.type = 'radio';
            input.name = `question-${question.id}`;
            input.value = choice.value;
            input.checked = choice.selected;
            input.addEventListener('change', () => saveAnswer(question.id, choice.value));
            const text = document.createElement('span');
            text.innerHTML = choice.label_html;
            label.append(input, text);
            container.appendChild(label);
          });
        } else if (question.input_kind === 'text-line' || question.input_kind === 'text-area') {
          const input = document.createElement(question.input_kind === 'text-line' ? 'input' : 'textarea');
          if (question.input_kind === 'text-line') input.type = 'text';
          input.placeholder = 'Enter your answer here...';
          input.value = question.text_value;
          input.addEventListener('input', () => saveAnswer(question.id, input.value));
          container.appendChild(input);
        } else if (question.input_kind === 'match-dropdowns') {
          const selections = question.slots.map(slot => slot.selected);
          question.slots.forEach((slot, index) => {
            const row = document.createElement('div');
            row.className = 'match-row';
            const prompt = document.createElement('span');
            prompt.innerHTML = slot.prompt_html;
            const select = document.createElement('select');
            [slot.placeholder].concat(slot.choices).forEach((choice, choiceIndex) => {
              const option = document.createElement('option');
              option.value = choiceIndex === 0 ? '' : choice;
              option.textContent = choice;
              select.appendChild(option);
            });
            select.value = slot.selected;
            select.addEventListener('change', () => {
              selections[index] = select.value;
              saveAnswer(question.id, selections.slice());
            });
            row.append(prompt, select);
            container.appendChild(row);
          });
        } else {
          const p = document.createElement('p');
          p.textContent = question.unsupported_message;
          container.appendChild(p);
        }
        typesetMath([container]);
      }

      async function saveAnswer(questionId, value) {
        const errorEl = document.getElementById('exam-error');
        try {
          await api('PUT', `/sessions/${sessionId}/answer`, { value, question_id: questionId });
          errorEl.textContent = '';
          refreshSession();
        } catch (error) {
          errorEl.textContent = error.message;
        }
      }

      async function navigate(body) {
        try {
          applySession(await api('POST', `/sessions/${sessionId}/navigate`, body));
        } catch (error) {
          document.getElementById('exam-error').textContent = error.message;
        }
      }

      async function requestCapability(kind) {
        const errorEl = document.getElementById('gate-error');
        let granted = false;
        let detail = null;
        try {
          const stream = kind === 'camera'
            ? await navigator.mediaDevices.getUserMedia({ video: true, audio: false })
            : await navigator.mediaDevices.getDisplayMedia({ video: true });
          streams.push(stream);
          granted = true;
          detail = stream.id;
          if (kind === 'camera') {
            const preview = document.getElementById('camera-preview');
            preview.srcObject = stream;
            preview.classList.remove('hidden');
          }
        } catch (error) {
          detail = error.message || 'Permission denied';
        }
        try {
          const result = await api('POST', `/sessions/${sessionId}/proctoring/${kind}`, { granted, detail });
          errorEl.textContent = result.error || '';
          applySession(result.session);
        } catch (error) {
          errorEl.textContent = error.message;
        }
      }

      async function submitExam() {
        if (session && session.answered_count < session.question_count) {
          const missing = session.question_count - session.answered_count;
          if (!confirm(`You have ${missing} unanswered question(s). Submit anyway?`)) return;
        }
        show('submitting-card');
        try {
          await api('POST', `/sessions/${sessionId}/submit`);
        } catch (error) {
          document.getElementById('submit-error').textContent = error.message;
          document.getElementById('retry-button').classList.remove('hidden');
        }
        refreshSession();
      }

      async function loadReview() {
        const container = document.getElementById('review-container');
        try {
          const review = await api('GET', `/sessions/${sessionId}/review`);
          const rows = review.breakdown.map(b => `<li>${b.difficulty}: ${b.correct}/${b.total} (${b.percentage}%)</li>`).join('');
          const flags = review.flags.map(f => `<li>${f}</li>`).join('');
          container.innerHTML = `
            <p class=\"band-${review.band}\"><strong>${review.percent_score}%</strong> (${review.passed ? 'Passed' : 'Not passed'}, passing score ${review.passing_score}%)</p>
            <p>${review.correct_count} of ${review.question_count} correct, ${review.earned_points}/${review.total_points} points` +
            (review.duration_minutes !== null ? `, ${review.duration_minutes} min` : '') + `</p>
            <ul>${rows}</ul>` + (flags ? `<h3>Proctoring flags</h3><ul>${flags}</ul>` : '') +
            review.questions.map(q => `<div class=\"review-question\">${q.html}</div>`).join('');
          typesetMath([container]);
        } catch (error) {
          container.textContent = error.status === 403
            ? 'Your answers were submitted. Results will be released later.'
            : error.message;
        }
      }

      document.getElementById('start-button').addEventListener('click', openSession);
      document.getElementById('camera-button').addEventListener('click', () => requestCapability('camera'));
      document.getElementById('screen-button').addEventListener('click', () => requestCapability('screen'));
      document.getElementById('begin-button').addEventListener('click', async () => {
        try { applySession(await api('POST', `/sessions/${sessionId}/begin`)); }
        catch (error) { document.getElementById('gate-error').textContent = error.message; }
      });
      document.getElementById('previous-button').addEventListener('click', () => navigate({ direction: 'previous' }));
      document.getElementById('next-button').addEventListener('click', () => navigate({ direction: 'next' }));
      document.getElementById('submit-button').addEventListener('click', submitExam);
      document.getElementById('retry-button').addEventListener('click', submitExam);
      document.addEventListener('visibilitychange', () => {
        if (document.hidden && session && session.state === 'active') {
          api('POST', `/sessions/${sessionId}/flags`, { type: 'tab-switch', evidence: 'Page hidden' }).catch(() => {});
        }
      });
      window.addEventListener('pagehide', () => {
        if (sessionId && session && session.state !== 'submitted') {
          fetch(`/sessions/${sessionId}`, { method: 'DELETE', keepalive: true });
        }
        stopStreams();
      });

      loadTests().catch(error => { document.getElementById('start-status').textContent = error.message; });
    </script>
  </body>
</html>
"""


class OpenSessionPayload(BaseModel):
    """Payload schema for opening a taking session."""

    test_id: str
    user_id: str = Field(min_length=1)
    user_name: str = Field(min_length=1)
    role: UserRole = UserRole.STUDENT


class CapabilityReportPayload(BaseModel):
    """Outcome of a browser permission prompt."""

    granted: bool
    detail: str | None = None


class NavigatePayload(BaseModel):
    index: int | None = None
    direction: Literal["next", "previous"] | None = None


class AnswerPayload(BaseModel):
    """Payload schema for answer edits."""

    value: str | list[str]
    question_id: str | None = None


class FlagPayload(BaseModel):
    type: ProctorFlagType
    evidence: str | None = None


def _question_view(session: ExamSession) -> dict[str, object] | None:
    question = session.current_question
    if question is None:
        return None
    rendered = render_question(question, session.current_answer)
    return {
        "id": question.id,
        "type": question.type,
        "input_kind": rendered.input_kind.value,
        "content_html": renderer.render_fragment(rendered.content),
        "difficulty_label": rendered.difficulty_label,
        "points_label": rendered.points_label,
        "choices": [
            {"value": c.value, "label_html": renderer.render_inline(c.label), "selected": c.selected}
            for c in rendered.choices
        ],
        "slots": [
            {
                "prompt_html": renderer.render_inline(s.prompt),
                "choices": list(s.choices),
                "selected": s.selected,
                "placeholder": s.placeholder,
            }
            for s in rendered.slots
        ],
        "text_value": rendered.text_value,
        "unsupported_message": rendered.unsupported_message,
    }


def _session_view(service: ExamService, session: ExamSession) -> dict[str, object]:
    snapshot = service.get_snapshot(session.session_id)
    return {
        "session_id": snapshot.session_id,
        "test_id": snapshot.test_id,
        "state": snapshot.state.value,
        "title": snapshot.title,
        "question_count": snapshot.question_count,
        "current_index": snapshot.current_index,
        "answered": list(snapshot.answered),
        "answered_count": snapshot.answered_count,
        "remaining_seconds": snapshot.remaining_seconds,
        "formatted_remaining": snapshot.formatted_remaining,
        "warning_level": snapshot.warning_level,
        "proctoring_required": snapshot.proctoring_required,
        "camera_status": snapshot.camera_status.value if snapshot.camera_status else None,
        "screen_status": snapshot.screen_status.value if snapshot.screen_status else None,
        "all_ready": snapshot.all_ready,
        "flag_count": snapshot.flag_count,
        "submit_reason": snapshot.submit_reason.value if snapshot.submit_reason else None,
        "score": snapshot.score,
        "last_error": snapshot.last_error,
        "question": _question_view(session) if snapshot.state is SessionState.ACTIVE else None,
    }


def _review_view(session: ExamSession, review: AttemptReview) -> dict[str, object]:
    attempt = session.attempt
    questions = []
    for question in session.questions:
        record = attempt.answer_for(question.id) if attempt else None
        rendered = render_question(question, record.answer if record else None, show_answer=True)
        questions.append(
            {
                "id": question.id,
                "html": rendered.to_html(),
                "is_correct": record.is_correct if record else None,
                "points": record.points if record else 0,
                "feedback": record.feedback if record else None,
            }
        )
    return {
        "percent_score": review.percent_score,
        "passed": review.passed,
        "passing_score": review.passing_score,
        "band": performance_band(review.percent_score),
        "earned_points": review.earned_points,
        "total_points": review.total_points,
        "correct_count": review.correct_count,
        "question_count": review.question_count,
        "duration_minutes": review.duration_minutes,
        "breakdown": [
            {"difficulty": b.difficulty.value, "correct": b.correct, "total": b.total, "percentage": b.percentage}
            for b in review.breakdown
        ],
        "flags": list(review.flag_descriptions),
        "questions": questions,
    }


def _get_exam_service_dependency(exam_service: ExamService):
    def dependency() -> ExamService:
        return exam_service

    return dependency


def create_api_app(exam_service: ExamService) -> FastAPI:
    """Create a FastAPI application wired to the provided exam service."""

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        exam_service.attach_loop(asyncio.get_running_loop())
        yield
        exam_service.shutdown()

    app = FastAPI(title=f"{APP_NAME} API", version=APP_VERSION, lifespan=lifespan)
    service_dep = _get_exam_service_dependency(exam_service)

    @app.get("/", response_class=HTMLResponse)
    def serve_learner_page() -> str:
        return _LEARNER_PAGE_HTML

    @app.get("/tests")
    def list_tests(service: ExamService = Depends(service_dep)) -> list[dict[str, object]]:
        return [
            {
                "id": test.id,
                "title": test.title,
                "description": test.description,
                "time_limit": test.time_limit,
                "question_count": len(test.question_ids),
                "require_proctoring": test.require_proctoring,
            }
            for test in service.get_tests()
        ]

    @app.post("/sessions", status_code=201)
    async def open_session(
        payload: OpenSessionPayload,
        service: ExamService = Depends(service_dep),
    ) -> dict[str, object]:
        user = User(id=payload.user_id, name=payload.user_name, role=payload.role)
        try:
            session = await service.open_session(payload.test_id, user)
        except ExamError as exc:
            raise _http_error(exc) from exc
        return _session_view(service, session)

    @app.get("/sessions/{session_id}")
    async def get_session(session_id: str, service: ExamService = Depends(service_dep)) -> dict[str, object]:
        try:
            return _session_view(service, service.get_session(session_id))
        except ExamError as exc:
            raise _http_error(exc) from exc

    @app.post("/sessions/{session_id}/proctoring/{capability}")
    async def report_capability(
        session_id: str,
        capability: Capability,
        payload: CapabilityReportPayload,
        service: ExamService = Depends(service_dep),
    ) -> dict[str, object]:
        try:
            status = await service.report_capability(session_id, capability, payload.granted, payload.detail)
            session = service.get_session(session_id)
        except ExamError as exc:
            raise _http_error(exc) from exc
        error = session.gate.error_for(capability) if session.gate else None
        return {
            "status": status.value,
            "error": error.reason if error else None,
            "session": _session_view(service, session),
        }

    @app.post("/sessions/{session_id}/begin")
    async def begin_exam(session_id: str, service: ExamService = Depends(service_dep)) -> dict[str, object]:
        try:
            service.begin(session_id)
            return _session_view(service, service.get_session(session_id))
        except ExamError as exc:
            raise _http_error(exc) from exc

    @app.post("/sessions/{session_id}/navigate")
    async def navigate(
        session_id: str,
        payload: NavigatePayload,
        service: ExamService = Depends(service_dep),
    ) -> dict[str, object]:
        try:
            service.navigate(session_id, index=payload.index, direction=payload.direction)
            return _session_view(service, service.get_session(session_id))
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        except ExamError as exc:
            raise _http_error(exc) from exc

    @app.put("/sessions/{session_id}/answer")
    async def save_answer(
        session_id: str,
        payload: AnswerPayload,
        service: ExamService = Depends(service_dep),
    ) -> dict[str, object]:
        try:
            service.set_answer(session_id, payload.value, question_id=payload.question_id)
            snapshot = service.get_snapshot(session_id)
        except ExamError as exc:
            raise _http_error(exc) from exc
        return {"answered_count": snapshot.answered_count, "answered": list(snapshot.answered)}

    @app.post("/sessions/{session_id}/flags", status_code=201)
    async def record_flag(
        session_id: str,
        payload: FlagPayload,
        service: ExamService = Depends(service_dep),
    ) -> dict[str, object]:
        try:
            flag = service.record_flag(session_id, payload.type, payload.evidence)
        except ExamError as exc:
            raise _http_error(exc) from exc
        return {"type": flag.type.value, "timestamp": flag.timestamp.isoformat()}

    @app.post("/sessions/{session_id}/submit")
    async def submit_exam(session_id: str, service: ExamService = Depends(service_dep)) -> dict[str, object]:
        try:
            attempt = await service.submit(session_id)
            session = service.get_session(session_id)
        except ExamError as exc:
            raise _http_error(exc) from exc
        return {
            "attempt_id": attempt.id,
            "completed": attempt.completed,
            "end_time": attempt.end_time.isoformat() if attempt.end_time else None,
            "session": _session_view(service, session),
        }

    @app.get("/sessions/{session_id}/review")
    async def get_review(session_id: str, service: ExamService = Depends(service_dep)) -> dict[str, object]:
        try:
            review = service.get_review(session_id)
            return _review_view(service.get_session(session_id), review)
        except ExamError as exc:
            raise _http_error(exc) from exc

    @app.delete("/sessions/{session_id}", status_code=204)
    async def close_session(session_id: str, service: ExamService = Depends(service_dep)) -> None:
        try:
            service.close_session(session_id)
        except ExamError as exc:
            raise _http_error(exc) from exc

    return app


def start_api_server(
    exam_service: ExamService,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
) -> Thread:
    """Start the FastAPI server in a background daemon thread."""
    app = create_api_app(exam_service)
    config = uvicorn.Config(app=app, host=host, port=port, log_level="info")
    server = uvicorn.Server(config)

    def run_server() -> None:
        server.run()

    thread = Thread(target=run_server, name="ExamApiServer", daemon=True)
    thread.start()
    logger.info("API server listening on %s:%s", host, port)
    return thread
