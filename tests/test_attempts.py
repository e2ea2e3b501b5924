"""API tests for main quiz attempts and post-attempt routing."""

import uuid

from fastapi.testclient import TestClient

from helpers import auth, pass_level1, register, setup_quiz, status, submit


class TestSubmit:
    def test_two_of_three_routes_to_level1(self, client: TestClient):
        setup = setup_quiz(client)
        resp = submit(client, setup, "4", "paris", "Venus")
        assert resp.status_code == 201, resp.text
        data = resp.json()
        assert data["score"] == 67
        assert data["correct_answers"] == 2
        assert data["passed"] is False
        assert data["status"] == "PENDING"
        assert data["attempt_number"] == 1
        assert data["failed_attempts"] == 1
        assert data["next_action"] == "COMPLETE_ASSISTANCE_LEVEL1"

        state = status(client, setup)
        assert state["progress"]["current_attempt"] == 1
        assert state["progress"]["level1_accessible"] is True
        assert state["progress"]["assistance_required"] == "ASSISTANCE_LEVEL1"
        assert state["main_quiz"]["allow"] is False
        assert state["main_quiz"]["required_level"] == 1

    def test_perfect_first_attempt_passes(self, client: TestClient):
        setup = setup_quiz(client)
        resp = submit(client, setup, "4", "Paris", "Mercury")
        assert resp.status_code == 201, resp.text
        data = resp.json()
        assert data["score"] == 100
        assert data["passed"] is True
        assert data["status"] == "PASSED"
        assert data["failed_attempts"] == 0
        assert data["next_action"] == "QUIZ_PASSED"

        state = status(client, setup)
        assert state["progress"]["final_status"] == "PASSED"
        assert state["progress"]["last_attempt_passed"] is True

    def test_resubmit_after_pass_is_rejected(self, client: TestClient):
        setup = setup_quiz(client)
        submit(client, setup, "4", "Paris", "Mercury")
        resp = submit(client, setup, "4", "Paris", "Mercury")
        assert resp.status_code == 403
        body = resp.json()
        assert body["error_code"] == "ATTEMPT_LIMIT_EXCEEDED"
        assert body["details"]["reason"] == "ALREADY_PASSED"
        assert body["details"]["permanent"] is True

    def test_blocked_until_assistance_is_done(self, client: TestClient):
        setup = setup_quiz(client)
        submit(client, setup, "x", "x", "x")
        resp = submit(client, setup, "4", "Paris", "Mercury")
        assert resp.status_code == 403
        body = resp.json()
        assert body["error_code"] == "NOT_YET_ALLOWED"
        assert body["details"]["required_level"] == 1
        assert body["details"]["permanent"] is False

    def test_retake_after_level1(self, client: TestClient):
        setup = setup_quiz(client)
        submit(client, setup, "x", "x", "x")
        assert pass_level1(client, setup).json()["passed"] is True

        state = status(client, setup)
        assert state["next_action"] == "TRY_MAIN_QUIZ_AGAIN"
        assert state["progress"]["must_retake_main_quiz"] is True

        resp = submit(client, setup, "4", "Paris", "x")
        assert resp.status_code == 201, resp.text
        data = resp.json()
        assert data["attempt_number"] == 2
        assert data["failed_attempts"] == 2
        assert data["next_action"] == "COMPLETE_ASSISTANCE_LEVEL2"

    def test_four_failures_end_the_quiz(self, client: TestClient):
        setup = setup_quiz(client, levels=())
        tokens = []
        for _ in range(4):
            resp = submit(client, setup, "x", "x", "x")
            assert resp.status_code == 201, resp.text
            tokens.append(resp.json()["next_action"])
        assert tokens == ["TRY_MAIN_QUIZ_AGAIN"] * 3 + ["QUIZ_FAILED_MAX_ATTEMPTS"]

        resp = submit(client, setup, "4", "Paris", "Mercury")
        assert resp.status_code == 403
        assert resp.json()["details"]["reason"] == "MAX_FAILED_ATTEMPTS"

        history = client.get(
            f"/api/attempts/quiz/{setup.quiz_id}", headers=auth(setup.student)
        ).json()
        assert [s["attempt_number"] for s in history] == [1, 2, 3, 4]

        state = status(client, setup)
        assert state["progress"]["final_status"] == "FAILED"
        assert state["progress"]["current_attempt"] == 4
        assert state["main_quiz"]["permanent"] is True

    def test_missing_level_is_skipped(self, client: TestClient):
        setup = setup_quiz(client, levels=(2, 3))
        resp = submit(client, setup, "x", "x", "x")
        assert resp.json()["next_action"] == "TRY_MAIN_QUIZ_AGAIN"
        resp = submit(client, setup, "x", "x", "x")
        assert resp.json()["next_action"] == "COMPLETE_ASSISTANCE_LEVEL2"

    def test_unknown_and_missing_questions_are_reported(self, client: TestClient):
        setup = setup_quiz(client)
        stray = str(uuid.uuid4())
        resp = client.post(
            f"/api/attempts/{setup.quiz_id}/submit",
            json={
                "answers": [
                    {"question_id": setup.questions[0]["id"], "answer": "4"},
                    {"question_id": stray, "answer": "?"},
                ]
            },
            headers=auth(setup.student),
        )
        assert resp.status_code == 201, resp.text
        data = resp.json()
        assert data["inconsistencies"]["unknown_question_ids"] == [stray]
        assert len(data["inconsistencies"]["missing_question_ids"]) == 2
        assert data["score"] == 33

    def test_duplicate_answers_rejected(self, client: TestClient):
        setup = setup_quiz(client)
        qid = setup.questions[0]["id"]
        resp = client.post(
            f"/api/attempts/{setup.quiz_id}/submit",
            json={"answers": [{"question_id": qid, "answer": "4"}, {"question_id": qid, "answer": "5"}]},
            headers=auth(setup.student),
        )
        assert resp.status_code == 400
        assert resp.json()["error_code"] == "VALIDATION_ERROR"
        assert status(client, setup)["progress"]["current_attempt"] == 0

    def test_quiz_without_questions(self, client: TestClient):
        setup = setup_quiz(client)
        resp = client.post(
            "/api/quizzes/",
            json={"title": "Empty", "class_id": setup.class_id},
            headers=auth(setup.teacher),
        )
        empty_id = resp.json()["id"]
        resp = client.post(
            f"/api/attempts/{empty_id}/submit",
            json={"answers": [{"question_id": str(uuid.uuid4()), "answer": "x"}]},
            headers=auth(setup.student),
        )
        assert resp.status_code == 400

    def test_student_outside_class_is_forbidden(self, client: TestClient):
        setup = setup_quiz(client)
        outsider, _ = register(client, "student")
        resp = client.post(
            f"/api/attempts/{setup.quiz_id}/submit",
            json=setup.answers("4", "Paris", "Mercury"),
            headers=auth(outsider),
        )
        assert resp.status_code == 403

    def test_teacher_cannot_submit(self, client: TestClient):
        setup = setup_quiz(client)
        resp = client.post(
            f"/api/attempts/{setup.quiz_id}/submit",
            json=setup.answers("4", "Paris", "Mercury"),
            headers=auth(setup.teacher),
        )
        assert resp.status_code == 403

    def test_unknown_quiz(self, client: TestClient):
        token, _ = register(client, "student")
        resp = client.post(
            f"/api/attempts/{uuid.uuid4()}/submit",
            json={"answers": [{"question_id": str(uuid.uuid4()), "answer": "x"}]},
            headers=auth(token),
        )
        assert resp.status_code == 404
        assert resp.json()["error_code"] == "NOT_FOUND"


class TestStart:
    def test_start_clears_retake_flag(self, client: TestClient):
        setup = setup_quiz(client)
        submit(client, setup, "x", "x", "x")
        pass_level1(client, setup)

        resp = client.post(f"/api/attempts/{setup.quiz_id}/start", headers=auth(setup.student))
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["must_retake"] is True
        assert data["progress"]["must_retake_main_quiz"] is False

    def test_start_blocked_while_level_pending(self, client: TestClient):
        setup = setup_quiz(client)
        submit(client, setup, "x", "x", "x")
        resp = client.post(f"/api/attempts/{setup.quiz_id}/start", headers=auth(setup.student))
        assert resp.status_code == 403


class TestSubmissionReads:
    def test_student_reads_own_submission(self, client: TestClient):
        setup = setup_quiz(client)
        submission_id = submit(client, setup, "4", "x", "x").json()["submission_id"]
        resp = client.get(f"/api/attempts/{submission_id}", headers=auth(setup.student))
        assert resp.status_code == 200
        answers = resp.json()["answers"]
        assert [a["verdict"] for a in answers] == ["CORRECT", "INCORRECT", "INCORRECT"]
        assert answers[0]["is_correct"] is True

    def test_other_student_cannot_read_submission(self, client: TestClient):
        setup = setup_quiz(client)
        submission_id = submit(client, setup, "4", "x", "x").json()["submission_id"]
        other, _ = register(client, "student")
        resp = client.get(f"/api/attempts/{submission_id}", headers=auth(other))
        assert resp.status_code == 404

    def test_owner_teacher_reads_submission(self, client: TestClient):
        setup = setup_quiz(client)
        submission_id = submit(client, setup, "4", "x", "x").json()["submission_id"]
        resp = client.get(f"/api/attempts/{submission_id}", headers=auth(setup.teacher))
        assert resp.status_code == 200


class TestStatus:
    def test_fresh_student(self, client: TestClient):
        setup = setup_quiz(client)
        state = status(client, setup)
        assert state["next_action"] == "TAKE_MAIN_QUIZ_NOW"
        assert state["state"] == "NOT_STARTED"
        assert state["main_quiz"]["allow"] is True
        assert state["latest_submission"] is None
        assert [a["allow"] for a in state["assistance"]] == [False, False, False]

    def test_teacher_reads_student_status(self, client: TestClient):
        setup = setup_quiz(client)
        submit(client, setup, "x", "x", "x")
        resp = client.get(
            f"/api/progress/quizzes/{setup.quiz_id}",
            params={"student_id": setup.student_id},
            headers=auth(setup.teacher),
        )
        assert resp.status_code == 200, resp.text
        assert resp.json()["next_action"] == "COMPLETE_ASSISTANCE_LEVEL1"
        assert resp.json()["latest_submission"]["attempt_number"] == 1

    def test_teacher_must_name_a_student(self, client: TestClient):
        setup = setup_quiz(client)
        resp = client.get(f"/api/progress/quizzes/{setup.quiz_id}", headers=auth(setup.teacher))
        assert resp.status_code == 400

    def test_student_cannot_read_another_student(self, client: TestClient):
        setup = setup_quiz(client)
        resp = client.get(
            f"/api/progress/quizzes/{setup.quiz_id}",
            params={"student_id": setup.teacher_id},
            headers=auth(setup.student),
        )
        assert resp.status_code == 403

    def test_roster(self, client: TestClient):
        setup = setup_quiz(client)
        submit(client, setup, "x", "x", "x")
        resp = client.get(
            f"/api/progress/quizzes/{setup.quiz_id}/roster", headers=auth(setup.teacher)
        )
        assert resp.status_code == 200
        assert [row["student_id"] for row in resp.json()] == [setup.student_id]
