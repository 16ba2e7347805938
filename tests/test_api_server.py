"""Tests for the learner-facing HTTP API."""

import pytest
from fastapi.testclient import TestClient

from exam_app.core.exam_service import ExamService
from exam_app.server.api_server import create_api_app

from .conftest import FakeSubmissionService

LEARNER = {"user_id": "learner-1", "user_name": "Ada"}


@pytest.fixture
def exam_service(sample_repository):
    return ExamService(sample_repository, tick_interval=60.0)


@pytest.fixture
def client(exam_service):
    with TestClient(create_api_app(exam_service)) as test_client:
        yield test_client


def _open(client, test_id="warm-up", **overrides):
    return client.post("/sessions", json={"test_id": test_id, **LEARNER, **overrides})


class TestCatalogue:
    def test_learner_page_is_served(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]

    def test_learner_page_stops_streams_once_submitting(self, client):
        page = client.get("/").text

        submitting = page.split("view.state === 'submitting'", 1)[1].split("view.state === 'submitted'", 1)[0]

        assert "stopStreams();" in submitting

    def test_list_tests(self, client):
        response = client.get("/tests")

        assert response.status_code == 200
        tests = {test["id"]: test for test in response.json()}
        assert tests["warm-up"]["question_count"] == 3
        assert tests["warm-up"]["require_proctoring"] is False
        assert tests["module-2"]["require_proctoring"] is True


class TestOpenSession:
    def test_unproctored_session_is_active(self, client):
        response = _open(client)

        assert response.status_code == 201
        data = response.json()
        assert data["state"] == "active"
        assert data["question_count"] == 3
        assert data["formatted_remaining"] == "05:00"
        assert data["warning_level"] == "normal"
        assert data["question"]["id"] == "q1"
        assert data["question"]["input_kind"] == "single-choice"
        assert [c["value"] for c in data["question"]["choices"]] == ["London", "Berlin", "Paris", "Madrid"]
        assert "correct_answer" not in data["question"]

    def test_proctored_session_waits_at_the_gate(self, client):
        data = _open(client, "module-2").json()

        assert data["state"] == "proctor-gate"
        assert data["camera_status"] == "pending"
        assert data["question"] is None
        assert data["remaining_seconds"] is None

    def test_staff_role_is_forbidden(self, client):
        assert _open(client, role="teacher").status_code == 403

    def test_unknown_test_is_not_found(self, client):
        assert _open(client, "no-such-test").status_code == 404

    def test_blank_name_is_invalid(self, client):
        assert _open(client, user_name="").status_code == 422

    def test_unknown_session_is_not_found(self, client):
        assert client.get("/sessions/nope").status_code == 404


class TestProctoring:
    def test_gate_flow(self, client):
        sid = _open(client, "module-2").json()["session_id"]

        assert client.post(f"/sessions/{sid}/begin").status_code == 409

        denied = client.post(f"/sessions/{sid}/proctoring/camera", json={"granted": False, "detail": "NotAllowedError"})
        assert denied.status_code == 200
        assert denied.json()["status"] == "denied"
        assert denied.json()["error"] == "NotAllowedError"

        assert client.post(f"/sessions/{sid}/proctoring/camera", json={"granted": True}).json()["status"] == "granted"
        screen = client.post(f"/sessions/{sid}/proctoring/screen", json={"granted": True, "detail": "Entire screen"})
        assert screen.json()["session"]["all_ready"] is True

        started = client.post(f"/sessions/{sid}/begin")
        assert started.status_code == 200
        assert started.json()["state"] == "active"
        assert started.json()["question"] is not None

    def test_unknown_capability_is_invalid(self, client):
        sid = _open(client, "module-2").json()["session_id"]

        assert client.post(f"/sessions/{sid}/proctoring/microphone", json={"granted": True}).status_code == 422


class TestAnswering:
    def test_navigate_and_answer(self, client):
        sid = _open(client).json()["session_id"]

        moved = client.post(f"/sessions/{sid}/navigate", json={"index": 2})
        assert moved.json()["question"]["id"] == "q6"
        assert moved.json()["question"]["input_kind"] == "match-dropdowns"

        saved = client.put(f"/sessions/{sid}/answer", json={"value": ["Summer"], "question_id": "q6"})
        assert saved.status_code == 200
        assert saved.json() == {"answered_count": 1, "answered": [False, False, True]}

        previous = client.post(f"/sessions/{sid}/navigate", json={"direction": "previous"})
        assert previous.json()["current_index"] == 1

    def test_stale_answer_is_a_conflict(self, client):
        sid = _open(client).json()["session_id"]
        client.post(f"/sessions/{sid}/navigate", json={"direction": "next"})

        response = client.put(f"/sessions/{sid}/answer", json={"value": "Paris", "question_id": "q1"})

        assert response.status_code == 409

    def test_navigation_needs_a_target(self, client):
        sid = _open(client).json()["session_id"]

        assert client.post(f"/sessions/{sid}/navigate", json={}).status_code == 422
        assert client.post(f"/sessions/{sid}/navigate", json={"direction": "sideways"}).status_code == 422


class TestSubmitAndReview:
    def test_submit_then_review(self, client):
        sid = _open(client).json()["session_id"]
        client.put(f"/sessions/{sid}/answer", json={"value": "Paris"})
        client.post(f"/sessions/{sid}/navigate", json={"index": 2})
        client.put(f"/sessions/{sid}/answer", json={"value": ["Summer", "Autumn", "Winter", "Spring"]})
        client.post(f"/sessions/{sid}/flags", json={"type": "tab-switch"})

        submitted = client.post(f"/sessions/{sid}/submit")
        assert submitted.status_code == 200
        assert submitted.json()["completed"] is True
        assert submitted.json()["session"]["state"] == "submitted"

        review = client.get(f"/sessions/{sid}/review").json()
        assert review["percent_score"] == 75
        assert review["passed"] is True
        assert review["band"] == "good"
        assert review["earned_points"] == 3
        assert review["total_points"] == 4
        assert [(b["difficulty"], b["correct"], b["total"]) for b in review["breakdown"]] == [
            ("easy", 1, 1),
            ("medium", 1, 1),
        ]
        assert review["flags"][0].startswith("Browser tab switch detected at ")
        assert [q["is_correct"] for q in review["questions"]] == [True, False, True]

    def test_review_before_submit_is_a_conflict(self, client):
        sid = _open(client).json()["session_id"]

        assert client.get(f"/sessions/{sid}/review").status_code == 409

    def test_answers_locked_after_submit(self, client):
        sid = _open(client).json()["session_id"]
        client.post(f"/sessions/{sid}/submit")

        assert client.put(f"/sessions/{sid}/answer", json={"value": "Paris"}).status_code == 409

    def test_failed_submission_reports_bad_gateway_and_can_retry(self, sample_repository):
        grading = FakeSubmissionService(sample_repository, failures=1)
        service = ExamService(sample_repository, grading, tick_interval=60.0)

        with TestClient(create_api_app(service)) as client:
            sid = _open(client).json()["session_id"]

            failed = client.post(f"/sessions/{sid}/submit")
            assert failed.status_code == 502
            snapshot = client.get(f"/sessions/{sid}").json()
            assert snapshot["state"] == "submitting"
            assert snapshot["last_error"] == "Grading service unavailable"

            retried = client.post(f"/sessions/{sid}/submit")
            assert retried.status_code == 200
            assert retried.json()["session"]["state"] == "submitted"


class TestClose:
    def test_closed_session_stays_readable(self, client):
        sid = _open(client).json()["session_id"]

        assert client.delete(f"/sessions/{sid}").status_code == 204
        assert client.get(f"/sessions/{sid}").json()["state"] == "closed"
        assert client.post(f"/sessions/{sid}/submit").status_code == 409
