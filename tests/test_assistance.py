"""API and service tests for the three assistance levels."""

import uuid
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from quizassist.core.errors import AuthorizationError, ValidationError
from quizassist.core.security import AuthContext
from quizassist.db.models import (
    AssistanceLevel3Completion,
    FinalStatusEnum,
    RoleEnum,
)
from quizassist.services import assistance
from quizassist.services.progress_store import ProgressStore

from helpers import ALL_LEVELS, auth, make_progress, pass_level1, setup_quiz, status, submit


def _fail_main(client, setup, times=1):
    for _ in range(times):
        resp = submit(client, setup, "x", "x", "x")
        assert resp.status_code == 201, resp.text
    return resp.json()


def _submit_level2(client, setup):
    content = client.get(
        f"/api/quizzes/{setup.quiz_id}/assistance/2", headers=auth(setup.student)
    ).json()
    return client.post(
        f"/api/quizzes/{setup.quiz_id}/assistance/2/submit",
        json={
            "answers": [
                {"question_id": q["id"], "answer_text": "Because it is close to the sun"}
                for q in content["questions"]
            ]
        },
        headers=auth(setup.student),
    )


def _seed_progress(db, setup, **fields):
    ProgressStore(db).upsert(uuid.UUID(setup.student_id), uuid.UUID(setup.quiz_id), **fields)
    db.commit()


class TestContent:
    def test_locked_before_first_failure(self, client: TestClient):
        setup = setup_quiz(client)
        resp = client.get(
            f"/api/quizzes/{setup.quiz_id}/assistance/1", headers=auth(setup.student)
        )
        assert resp.status_code == 403
        assert resp.json()["error_code"] == "NOT_YET_ALLOWED"

    def test_student_view_hides_answers(self, client: TestClient):
        setup = setup_quiz(client)
        _fail_main(client, setup)
        resp = client.get(
            f"/api/quizzes/{setup.quiz_id}/assistance/1", headers=auth(setup.student)
        )
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["is_completed"] is False
        assert all("correct_answer" not in q for q in data["questions"])

    def test_owner_sees_answers(self, client: TestClient):
        setup = setup_quiz(client)
        resp = client.get(
            f"/api/quizzes/{setup.quiz_id}/assistance/2", headers=auth(setup.teacher)
        )
        assert resp.status_code == 200
        assert resp.json()["questions"][0]["correct_answer"] == "Closest to the sun"

    def test_unconfigured_level(self, client: TestClient):
        setup = setup_quiz(client, levels=(1,))
        resp = client.get(
            f"/api/quizzes/{setup.quiz_id}/assistance/2", headers=auth(setup.teacher)
        )
        assert resp.status_code == 404

    def test_level_out_of_range(self, client: TestClient):
        setup = setup_quiz(client)
        resp = client.get(
            f"/api/quizzes/{setup.quiz_id}/assistance/4", headers=auth(setup.teacher)
        )
        assert resp.status_code == 422

    def test_only_owner_authors(self, client: TestClient):
        setup = setup_quiz(client)
        resp = client.put(
            f"/api/quizzes/{setup.quiz_id}/assistance/3",
            json={"title": "Mine", "pdf_url": "/api/uploads/x.pdf"},
            headers=auth(setup.student),
        )
        assert resp.status_code == 403

    def test_delete_level(self, client: TestClient):
        setup = setup_quiz(client)
        resp = client.delete(
            f"/api/quizzes/{setup.quiz_id}/assistance/3", headers=auth(setup.teacher)
        )
        assert resp.status_code == 204
        quiz = client.get(f"/api/quizzes/{setup.quiz_id}", headers=auth(setup.teacher)).json()
        assert quiz["available_assistance_levels"] == [1, 2]


class TestLevel1:
    def test_wrong_answers_do_not_complete(self, client: TestClient):
        setup = setup_quiz(client)
        _fail_main(client, setup)
        content = client.get(
            f"/api/quizzes/{setup.quiz_id}/assistance/1", headers=auth(setup.student)
        ).json()
        resp = client.post(
            f"/api/quizzes/{setup.quiz_id}/assistance/1/submit",
            json={"answers": [{"question_id": q["id"], "answer": True} for q in content["questions"]]},
            headers=auth(setup.student),
        )
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["passed"] is False
        assert data["score"] == 50
        assert data["status"] == "FAILED"
        assert data["next_action"] == "COMPLETE_ASSISTANCE_LEVEL1"
        assert status(client, setup)["progress"]["level1_completed"] is False

        resp = client.post(
            f"/api/quizzes/{setup.quiz_id}/assistance/1/complete",
            json={"submission_id": data["submission_id"]},
            headers=auth(setup.student),
        )
        assert resp.status_code == 400

    def test_all_correct_completes(self, client: TestClient):
        setup = setup_quiz(client)
        _fail_main(client, setup)
        resp = pass_level1(client, setup)
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["passed"] is True
        assert data["score"] == 100
        assert data["next_action"] == "TRY_MAIN_QUIZ_AGAIN"
        assert all(r["is_correct"] for r in data["results"])

        progress = status(client, setup)["progress"]
        assert progress["level1_completed"] is True
        assert progress["level1_completed_at"] is not None
        assert progress["level1_accessible"] is False

    def test_one_wrong_answer_in_a_long_recap_fails(self, client: TestClient):
        setup = setup_quiz(client)
        resp = client.put(
            f"/api/quizzes/{setup.quiz_id}/assistance/1",
            json={
                "title": "Long recap",
                "questions": [
                    {"statement": f"Statement {i}", "correct_answer": True} for i in range(200)
                ],
            },
            headers=auth(setup.teacher),
        )
        assert resp.status_code == 200, resp.text
        _fail_main(client, setup)
        content = client.get(
            f"/api/quizzes/{setup.quiz_id}/assistance/1", headers=auth(setup.student)
        ).json()
        answers = [{"question_id": q["id"], "answer": True} for q in content["questions"]]
        answers[0]["answer"] = False

        resp = client.post(
            f"/api/quizzes/{setup.quiz_id}/assistance/1/submit",
            json={"answers": answers},
            headers=auth(setup.student),
        )
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["passed"] is False
        assert data["status"] == "FAILED"
        assert status(client, setup)["progress"]["level1_completed"] is False

    def test_explicit_complete_is_idempotent(self, client: TestClient):
        setup = setup_quiz(client)
        _fail_main(client, setup)
        submission_id = pass_level1(client, setup).json()["submission_id"]
        before = status(client, setup)["progress"]["level1_completed_at"]

        resp = client.post(
            f"/api/quizzes/{setup.quiz_id}/assistance/1/complete",
            json={"submission_id": submission_id},
            headers=auth(setup.student),
        )
        assert resp.status_code == 200, resp.text
        assert resp.json()["newly_completed"] is False
        assert resp.json()["progress"]["level1_completed_at"] == before

    def test_foreign_question_rejected(self, client: TestClient):
        setup = setup_quiz(client)
        _fail_main(client, setup)
        resp = client.post(
            f"/api/quizzes/{setup.quiz_id}/assistance/1/submit",
            json={"answers": [{"question_id": str(uuid.uuid4()), "answer": True}]},
            headers=auth(setup.student),
        )
        assert resp.status_code == 400

    def test_questions_locked_after_submissions(self, client: TestClient):
        setup = setup_quiz(client)
        _fail_main(client, setup)
        pass_level1(client, setup)
        resp = client.put(
            f"/api/quizzes/{setup.quiz_id}/assistance/1",
            json={"title": "New", "questions": [{"statement": "s", "correct_answer": True}]},
            headers=auth(setup.teacher),
        )
        assert resp.status_code == 400


class TestLevel2:
    def _reach_level2(self, client, setup):
        _fail_main(client, setup)
        pass_level1(client, setup)
        data = _fail_main(client, setup)
        assert data["next_action"] == "COMPLETE_ASSISTANCE_LEVEL2"

    def test_locked_after_one_failure(self, client: TestClient):
        setup = setup_quiz(client)
        _fail_main(client, setup)
        resp = client.get(
            f"/api/quizzes/{setup.quiz_id}/assistance/2", headers=auth(setup.student)
        )
        assert resp.status_code == 403

    def test_submission_waits_for_review(self, client: TestClient):
        setup = setup_quiz(client)
        self._reach_level2(client, setup)
        resp = _submit_level2(client, setup)
        assert resp.status_code == 201, resp.text
        data = resp.json()
        assert data["status"] == "PENDING"
        assert data["is_completed"] is False
        assert status(client, setup)["next_action"] == "COMPLETE_ASSISTANCE_LEVEL2"

        pending = client.get("/api/grading/level2/pending", headers=auth(setup.teacher)).json()
        assert [p["id"] for p in pending] == [data["id"]]

        mine = client.get(
            f"/api/quizzes/{setup.quiz_id}/assistance/2/submissions", headers=auth(setup.student)
        ).json()
        assert [m["id"] for m in mine] == [data["id"]]

    def test_approval_completes_level(self, client: TestClient):
        setup = setup_quiz(client)
        self._reach_level2(client, setup)
        submission_id = _submit_level2(client, setup).json()["id"]

        resp = client.post(
            f"/api/grading/level2/{submission_id}",
            json={"is_approved": True, "feedback": "Good"},
            headers=auth(setup.teacher),
        )
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["is_approved"] is True
        assert data["is_completed"] is True
        assert data["status"] == "PASSED"
        assert data["feedback"] == "Good"

        state = status(client, setup)
        assert state["progress"]["level2_completed"] is True
        assert state["next_action"] == "TRY_MAIN_QUIZ_AGAIN"
        assert client.get("/api/grading/level2/pending", headers=auth(setup.teacher)).json() == []

    def test_rejection_keeps_level_pending(self, client: TestClient):
        setup = setup_quiz(client)
        self._reach_level2(client, setup)
        submission_id = _submit_level2(client, setup).json()["id"]

        resp = client.post(
            f"/api/grading/level2/{submission_id}",
            json={"is_approved": False, "go_to_level3": True},
            headers=auth(setup.teacher),
        )
        assert resp.status_code == 200, resp.text
        assert resp.json()["status"] == "FAILED"

        state = status(client, setup)
        assert state["progress"]["level2_completed"] is False
        assert state["progress"]["level3_access_granted"] is True
        assert state["assistance"][2]["allow"] is True

    def test_approval_after_status_reset(self, client: TestClient):
        setup = setup_quiz(client)
        self._reach_level2(client, setup)
        submission_id = _submit_level2(client, setup).json()["id"]

        resp = client.post(
            f"/api/grading/quizzes/{setup.quiz_id}/students/{setup.student_id}/status",
            json={"status": "ON_GOING"},
            headers=auth(setup.teacher),
        )
        assert resp.status_code == 200, resp.text

        resp = client.post(
            f"/api/grading/level2/{submission_id}",
            json={"is_approved": True},
            headers=auth(setup.teacher),
        )
        assert resp.status_code == 200, resp.text
        assert resp.json()["is_completed"] is True

        state = status(client, setup)
        assert state["progress"]["level2_completed"] is True
        assert state["progress"]["failed_attempts"] == 0
        assert state["next_action"] == "TRY_MAIN_QUIZ_AGAIN"

    def test_cannot_reject_after_approval(self, client: TestClient):
        setup = setup_quiz(client)
        self._reach_level2(client, setup)
        submission_id = _submit_level2(client, setup).json()["id"]
        client.post(
            f"/api/grading/level2/{submission_id}",
            json={"is_approved": True},
            headers=auth(setup.teacher),
        )
        resp = client.post(
            f"/api/grading/level2/{submission_id}",
            json={"is_approved": False},
            headers=auth(setup.teacher),
        )
        assert resp.status_code == 400

    def test_other_teacher_cannot_review(self, client: TestClient):
        setup = setup_quiz(client)
        self._reach_level2(client, setup)
        submission_id = _submit_level2(client, setup).json()["id"]
        other = setup_quiz(client)
        resp = client.post(
            f"/api/grading/level2/{submission_id}",
            json={"is_approved": True},
            headers=auth(other.teacher),
        )
        assert resp.status_code == 403

    def test_complete_level2_service(self, client: TestClient, db):
        setup = setup_quiz(client)
        self._reach_level2(client, setup)
        submission_id = uuid.UUID(_submit_level2(client, setup).json()["id"])
        student_id = uuid.UUID(setup.student_id)
        quiz_id = uuid.UUID(setup.quiz_id)

        outcome = assistance.complete_level2(db, student_id, quiz_id, submission_id, True)
        assert outcome.newly_completed is True
        assert outcome.progress.level2_completed is True

        again = assistance.complete_level2(db, student_id, quiz_id, submission_id, True)
        assert again.newly_completed is False


class TestLevel3:
    def test_completion_after_three_failures(self, client: TestClient, db):
        setup = setup_quiz(client)
        _seed_progress(
            db,
            setup,
            current_attempt=3,
            failed_attempts=3,
            level1_completed=True,
            level2_completed=True,
        )
        assert status(client, setup)["next_action"] == "COMPLETE_ASSISTANCE_LEVEL3"

        content = client.get(
            f"/api/quizzes/{setup.quiz_id}/assistance/3", headers=auth(setup.student)
        )
        assert content.status_code == 200, content.text
        assert content.json()["pdf_url"] == "/api/uploads/reading.pdf"

        resp = client.post(
            f"/api/quizzes/{setup.quiz_id}/assistance/3/complete",
            json={"reading_time": 120},
            headers=auth(setup.student),
        )
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["newly_completed"] is True
        assert data["next_action"] == "TRY_MAIN_QUIZ_AGAIN"
        assert data["progress"]["level3_completed"] is True
        assert data["progress"]["must_retake_main_quiz"] is True

        state = status(client, setup)
        assert state["main_quiz"]["allow"] is True
        assert state["main_quiz"]["must_retake"] is True

    def test_repeated_completion_changes_nothing(self, client: TestClient, db):
        setup = setup_quiz(client)
        _seed_progress(
            db,
            setup,
            current_attempt=3,
            failed_attempts=3,
            level1_completed=True,
            level2_completed=True,
        )
        url = f"/api/quizzes/{setup.quiz_id}/assistance/3/complete"
        first = client.post(url, json={}, headers=auth(setup.student)).json()
        second = client.post(url, json={"reading_time": 30}, headers=auth(setup.student))
        assert second.status_code == 200, second.text
        assert second.json()["newly_completed"] is False
        assert (
            second.json()["progress"]["level3_completed_at"]
            == first["progress"]["level3_completed_at"]
        )

        records = (
            db.query(AssistanceLevel3Completion)
            .filter(AssistanceLevel3Completion.student_id == uuid.UUID(setup.student_id))
            .all()
        )
        assert len(records) == 1
        assert records[0].reading_time_seconds == 30

    def test_locked_below_threshold(self, client: TestClient):
        setup = setup_quiz(client)
        _fail_main(client, setup)
        resp = client.post(
            f"/api/quizzes/{setup.quiz_id}/assistance/3/complete",
            json={},
            headers=auth(setup.student),
        )
        assert resp.status_code == 403

    def test_granted_access_is_routed(self, client: TestClient):
        setup = setup_quiz(client)
        _fail_main(client, setup)
        pass_level1(client, setup)
        resp = client.post(
            f"/api/grading/quizzes/{setup.quiz_id}/students/{setup.student_id}/level3-access",
            json={"granted": True},
            headers=auth(setup.teacher),
        )
        assert resp.status_code == 200, resp.text
        assert resp.json()["next_step"] == "VIEW_ASSISTANCE_LEVEL3"

        resp = client.post(
            f"/api/quizzes/{setup.quiz_id}/assistance/3/complete",
            json={},
            headers=auth(setup.student),
        )
        assert resp.status_code == 200, resp.text
        assert resp.json()["next_action"] == "TRY_MAIN_QUIZ_AGAIN"

    def test_completion_after_pass_leaves_progress(self):
        progress = make_progress(
            current_attempt=1,
            failed_attempts=0,
            final_status=FinalStatusEnum.PASSED,
        )
        store = MagicMock(spec=ProgressStore)
        assert assistance.mark_level_completed(store, progress, 3, ALL_LEVELS) is False
        assert progress.level3_completed is False
        store.refresh_derived.assert_not_called()


class TestServiceGuards:
    def test_teacher_cannot_submit_level1(self, db):
        teacher = AuthContext(user_id=uuid.uuid4(), role=RoleEnum.TEACHER)
        with pytest.raises(AuthorizationError):
            assistance.submit_level1(db, teacher, uuid.uuid4(), [])

    def test_student_cannot_review(self, db):
        student = AuthContext(user_id=uuid.uuid4(), role=RoleEnum.STUDENT)
        with pytest.raises(AuthorizationError):
            assistance.review_level2(db, student, uuid.uuid4(), True)

    def test_negative_reading_time(self, db):
        student = AuthContext(user_id=uuid.uuid4(), role=RoleEnum.STUDENT)
        with pytest.raises(ValidationError):
            assistance.complete_level3(db, student, uuid.uuid4(), reading_time=-1)

    def test_invalid_level_on_content_read(self, db):
        student = AuthContext(user_id=uuid.uuid4(), role=RoleEnum.STUDENT)
        with pytest.raises(ValidationError) as exc_info:
            assistance.get_assistance_content(db, student, uuid.uuid4(), 0)
        assert exc_info.value.details == {"level": 0, "allowed": [1, 2, 3]}
