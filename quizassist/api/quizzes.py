"""Quiz authoring and listing routes."""

import logging
import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from quizassist.api.deps import get_auth_context
from quizassist.core.errors import NotFoundError
from quizassist.core.security import AuthContext
from quizassist.db.models import ClassEnrollment, Question, Quiz
from quizassist.db.session import get_db
from quizassist.schemas.quiz import (
    QuestionCreate,
    QuestionRead,
    QuestionUpdate,
    QuizCreate,
    QuizDetail,
    QuizRead,
    QuizUpdate,
    StudentQuestionRead,
    StudentQuizRead,
)
from quizassist.services import authz

logger = logging.getLogger(__name__)
router = APIRouter()


def _quiz_fields(quiz: Quiz) -> dict:
    return {
        "id": quiz.id,
        "title": quiz.title,
        "description": quiz.description,
        "class_id": quiz.class_id,
        "teacher_id": quiz.teacher_id,
        "question_count": len(quiz.questions),
        "available_assistance_levels": sorted(quiz.available_assistance_levels),
        "created_at": quiz.created_at,
    }


def quiz_detail(quiz: Quiz) -> QuizDetail:
    return QuizDetail(
        **_quiz_fields(quiz),
        questions=[QuestionRead.model_validate(q) for q in quiz.questions],
    )


def student_quiz(quiz: Quiz) -> StudentQuizRead:
    return StudentQuizRead(
        **_quiz_fields(quiz),
        questions=[StudentQuestionRead.model_validate(q) for q in quiz.questions],
    )


def _owned_quiz(db: Session, auth: AuthContext, quiz_id: uuid.UUID) -> Quiz:
    quiz = authz.load_quiz(db, quiz_id)
    authz.ensure_quiz_owner(auth, quiz)
    return quiz


def _renumber(quiz: Quiz) -> None:
    for index, question in enumerate(sorted(quiz.questions, key=lambda q: q.position)):
        question.position = index


# ── Quizzes ───────────────────────────────────────────────────────────────────


@router.post("/", response_model=QuizDetail, status_code=status.HTTP_201_CREATED)
def create_quiz(
    body: QuizCreate,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    authz.require_teacher(auth)
    if body.class_id is not None:
        authz.ensure_class_owner(auth, authz.load_class(db, body.class_id))

    quiz = Quiz(
        title=body.title,
        description=body.description,
        class_id=body.class_id,
        teacher_id=auth.user_id,
    )
    quiz.questions = [
        Question(
            position=q.position if q.position is not None else index,
            text=q.text,
            expected_answer=q.expected_answer,
            image_url=q.image_url,
        )
        for index, q in enumerate(body.questions)
    ]
    db.add(quiz)
    db.commit()
    db.refresh(quiz)
    logger.info(
        "Teacher %s created quiz %s with %d question(s)",
        auth.user_id,
        quiz.id,
        len(quiz.questions),
    )
    return quiz_detail(quiz)


@router.get("/", response_model=list[QuizRead])
def list_quizzes(
    class_id: uuid.UUID | None = None,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """Teachers list quizzes they own; students those of their classes."""
    query = db.query(Quiz)
    if auth.is_teacher:
        query = query.filter(Quiz.teacher_id == auth.user_id)
    else:
        query = query.join(ClassEnrollment, ClassEnrollment.class_id == Quiz.class_id).filter(
            ClassEnrollment.student_id == auth.user_id
        )
    if class_id is not None:
        query = query.filter(Quiz.class_id == class_id)
    return [QuizRead(**_quiz_fields(q)) for q in query.order_by(Quiz.created_at).all()]


@router.get("/{quiz_id}", response_model=None)
def get_quiz(
    quiz_id: uuid.UUID,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """Quiz with questions; expected answers are only shown to the owner."""
    quiz = authz.load_quiz(db, quiz_id)
    if auth.is_student:
        authz.ensure_student_enrolled(db, auth, quiz)
        return student_quiz(quiz)
    authz.ensure_quiz_owner(auth, quiz)
    return quiz_detail(quiz)


@router.patch("/{quiz_id}", response_model=QuizDetail)
def update_quiz(
    quiz_id: uuid.UUID,
    body: QuizUpdate,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    quiz = _owned_quiz(db, auth, quiz_id)
    changes = body.model_dump(exclude_unset=True)
    if changes.get("class_id") is not None:
        authz.ensure_class_owner(auth, authz.load_class(db, changes["class_id"]))
    for field, value in changes.items():
        setattr(quiz, field, value)
    db.commit()
    db.refresh(quiz)
    return quiz_detail(quiz)


@router.delete("/{quiz_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_quiz(
    quiz_id: uuid.UUID,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    quiz = _owned_quiz(db, auth, quiz_id)
    db.delete(quiz)
    db.commit()
    logger.info("Teacher %s deleted quiz %s", auth.user_id, quiz_id)


# ── Questions ─────────────────────────────────────────────────────────────────


@router.post(
    "/{quiz_id}/questions", response_model=QuestionRead, status_code=status.HTTP_201_CREATED
)
def add_question(
    quiz_id: uuid.UUID,
    body: QuestionCreate,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    quiz = _owned_quiz(db, auth, quiz_id)
    question = Question(
        position=body.position if body.position is not None else len(quiz.questions),
        text=body.text,
        expected_answer=body.expected_answer,
        image_url=body.image_url,
    )
    quiz.questions.append(question)
    db.commit()
    db.refresh(question)
    return question


def _owned_question(
    db: Session, auth: AuthContext, quiz_id: uuid.UUID, question_id: uuid.UUID
) -> tuple[Quiz, Question]:
    quiz = _owned_quiz(db, auth, quiz_id)
    question = db.get(Question, question_id)
    if question is None or question.quiz_id != quiz.id:
        raise NotFoundError("Question not found", {"question_id": str(question_id)})
    return quiz, question


@router.patch("/{quiz_id}/questions/{question_id}", response_model=QuestionRead)
def update_question(
    quiz_id: uuid.UUID,
    question_id: uuid.UUID,
    body: QuestionUpdate,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    _, question = _owned_question(db, auth, quiz_id, question_id)
    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(question, field, value)
    db.commit()
    db.refresh(question)
    return question


@router.delete(
    "/{quiz_id}/questions/{question_id}", status_code=status.HTTP_204_NO_CONTENT
)
def delete_question(
    quiz_id: uuid.UUID,
    question_id: uuid.UUID,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    quiz, question = _owned_question(db, auth, quiz_id, question_id)
    quiz.questions.remove(question)
    _renumber(quiz)
    db.commit()
