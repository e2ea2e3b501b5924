"""Request helpers shared by the API tests."""

import uuid
from dataclasses import dataclass

from fastapi.testclient import TestClient

from quizassist.db.models import StudentQuizProgress

PASSWORD = "testpwd1"


def register(client: TestClient, role: str = "student") -> tuple[str, str]:
    """Create a user and return ``(token, user_id)``."""
    uid = str(uuid.uuid4())[:8]
    email = f"{role}_{uid}@ex.com"
    resp = client.post(
        "/api/users/register",
        json={
            "email": email,
            "password": PASSWORD,
            "full_name": f"Test {role.title()}",
            "role": role,
        },
    )
    assert resp.status_code == 201, resp.text
    data = resp.json()
    return data["access_token"], data["user"]["id"]


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


LEVEL1 = {
    "title": "Recap",
    "questions": [
        {"statement": "Venus is closest to the sun", "correct_answer": False},
        {"statement": "Paris is the capital of France", "correct_answer": True},
    ],
}
LEVEL2 = {
    "title": "Explain",
    "questions": [
        {"question": "Why is Mercury hot?", "hint": "Distance", "correct_answer": "Closest to the sun"},
    ],
}
LEVEL3 = {"title": "Reading", "pdf_url": "/api/uploads/reading.pdf"}
LEVELS = {1: LEVEL1, 2: LEVEL2, 3: LEVEL3}


@dataclass
class QuizSetup:
    teacher: str
    teacher_id: str
    student: str
    student_id: str
    class_id: str
    quiz_id: str
    questions: list[dict]

    def answers(self, *texts: str) -> dict:
        return {
            "answers": [
                {"question_id": q["id"], "answer": text}
                for q, text in zip(self.questions, texts)
            ]
        }


def setup_quiz(
    client: TestClient,
    expected: tuple = ("4", "Paris", "Mercury"),
    levels: tuple = (1, 2, 3),
) -> QuizSetup:
    """Teacher with a class, an enrolled student and a quiz."""
    teacher, teacher_id = register(client, "teacher")
    student, student_id = register(client, "student")

    resp = client.post("/api/classes/", json={"name": "Class"}, headers=auth(teacher))
    assert resp.status_code == 201, resp.text
    class_id = resp.json()["id"]
    resp = client.post(
        f"/api/classes/{class_id}/students",
        json={"student_id": student_id},
        headers=auth(teacher),
    )
    assert resp.status_code == 201, resp.text

    resp = client.post(
        "/api/quizzes/",
        json={
            "title": "Quiz",
            "class_id": class_id,
            "questions": [
                {"text": f"Question {i}", "expected_answer": answer}
                for i, answer in enumerate(expected)
            ],
        },
        headers=auth(teacher),
    )
    assert resp.status_code == 201, resp.text
    quiz = resp.json()

    for level in levels:
        resp = client.put(
            f"/api/quizzes/{quiz['id']}/assistance/{level}",
            json=LEVELS[level],
            headers=auth(teacher),
        )
        assert resp.status_code == 200, resp.text

    return QuizSetup(
        teacher=teacher,
        teacher_id=teacher_id,
        student=student,
        student_id=student_id,
        class_id=class_id,
        quiz_id=quiz["id"],
        questions=quiz["questions"],
    )


def submit(client: TestClient, setup: QuizSetup, *texts: str):
    return client.post(
        f"/api/attempts/{setup.quiz_id}/submit",
        json=setup.answers(*texts),
        headers=auth(setup.student),
    )


def status(client: TestClient, setup: QuizSetup) -> dict:
    resp = client.get(f"/api/progress/quizzes/{setup.quiz_id}", headers=auth(setup.student))
    assert resp.status_code == 200, resp.text
    return resp.json()


def pass_level1(client: TestClient, setup: QuizSetup):
    content = client.get(
        f"/api/quizzes/{setup.quiz_id}/assistance/1", headers=auth(setup.student)
    ).json()
    correct = {"Venus is closest to the sun": False, "Paris is the capital of France": True}
    return client.post(
        f"/api/quizzes/{setup.quiz_id}/assistance/1/submit",
        json={
            "answers": [
                {"question_id": q["id"], "answer": correct[q["statement"]]}
                for q in content["questions"]
            ]
        },
        headers=auth(setup.student),
    )


ALL_LEVELS = frozenset({1, 2, 3})


def make_progress(**overrides):
    """Transient progress row with every flag spelled out."""
    fields = dict(
        current_attempt=0,
        failed_attempts=0,
        last_attempt_passed=None,
        final_status=None,
        level1_completed=False,
        level2_completed=False,
        level3_completed=False,
        level1_accessible=False,
        level2_accessible=False,
        level3_accessible=False,
        must_retake_main_quiz=False,
        can_take_main_quiz=True,
        override_system_flow=False,
        manually_assigned_level=None,
        level3_access_granted=False,
    )
    fields.update(overrides)
    return StudentQuizProgress(**fields)
