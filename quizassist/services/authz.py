"""Ownership and enrollment checks shared by the services."""

import uuid

from sqlalchemy.orm import Session

from quizassist.core.errors import AuthorizationError, NotFoundError, ValidationError
from quizassist.core.security import AuthContext
from quizassist.db.models import ClassEnrollment, Classroom, Quiz, RoleEnum, User


def require_teacher(auth: AuthContext) -> None:
    if not auth.is_teacher:
        raise AuthorizationError("Teacher access required")


def require_student(auth: AuthContext) -> None:
    if not auth.is_student:
        raise AuthorizationError("Student access required")


def load_quiz(db: Session, quiz_id: uuid.UUID) -> Quiz:
    quiz = db.get(Quiz, quiz_id)
    if quiz is None:
        raise NotFoundError("Quiz not found", {"quiz_id": str(quiz_id)})
    return quiz


def load_class(db: Session, class_id: uuid.UUID) -> Classroom:
    klass = db.get(Classroom, class_id)
    if klass is None:
        raise NotFoundError("Class not found", {"class_id": str(class_id)})
    return klass


def load_student(db: Session, student_id: uuid.UUID) -> User:
    student = db.get(User, student_id)
    if student is None or student.role != RoleEnum.STUDENT:
        raise NotFoundError("Student not found", {"student_id": str(student_id)})
    return student


def ensure_class_owner(auth: AuthContext, klass: Classroom) -> None:
    require_teacher(auth)
    if klass.teacher_id != auth.user_id:
        raise AuthorizationError("You do not own this class")


def ensure_quiz_owner(auth: AuthContext, quiz: Quiz) -> None:
    require_teacher(auth)
    if quiz.teacher_id != auth.user_id:
        raise AuthorizationError("You do not own this quiz")


def is_enrolled(db: Session, student_id: uuid.UUID, class_id: uuid.UUID | None) -> bool:
    if class_id is None:
        return False
    return (
        db.query(ClassEnrollment)
        .filter(
            ClassEnrollment.class_id == class_id,
            ClassEnrollment.student_id == student_id,
        )
        .first()
        is not None
    )


def ensure_student_enrolled(db: Session, auth: AuthContext, quiz: Quiz) -> None:
    require_student(auth)
    if not is_enrolled(db, auth.user_id, quiz.class_id):
        raise AuthorizationError("You are not enrolled in this quiz's class")


def resolve_student(
    db: Session, auth: AuthContext, quiz: Quiz, student_id: uuid.UUID | None
) -> uuid.UUID:
    """Whose progress is being asked about.

    Students may only look at themselves. Teachers must own the quiz and
    name an enrolled student.
    """
    if auth.is_student:
        if student_id is not None and student_id != auth.user_id:
            raise AuthorizationError("Students can only view their own progress")
        ensure_student_enrolled(db, auth, quiz)
        return auth.user_id

    ensure_quiz_owner(auth, quiz)
    if student_id is None:
        raise ValidationError("student_id is required")
    load_student(db, student_id)
    if not is_enrolled(db, student_id, quiz.class_id):
        raise NotFoundError(
            "Student is not enrolled in this quiz's class",
            {"student_id": str(student_id)},
        )
    return student_id
