"""Class management & enrollment routes."""

import logging
import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from quizassist.api.deps import get_auth_context
from quizassist.core.errors import NotFoundError, ValidationError
from quizassist.core.security import AuthContext
from quizassist.db.models import ClassEnrollment, Classroom, RoleEnum, User
from quizassist.db.session import get_db
from quizassist.schemas.klass import (
    ClassCreate,
    ClassDetail,
    ClassRead,
    ClassUpdate,
    EnrollRequest,
    StudentSummary,
)
from quizassist.services import authz

logger = logging.getLogger(__name__)
router = APIRouter()


def _class_read(klass: Classroom) -> ClassRead:
    return ClassRead(
        id=klass.id,
        name=klass.name,
        description=klass.description,
        teacher_id=klass.teacher_id,
        student_count=len(klass.enrollments),
        created_at=klass.created_at,
    )


def _class_detail(klass: Classroom) -> ClassDetail:
    return ClassDetail(
        **_class_read(klass).model_dump(),
        students=[StudentSummary.model_validate(e.student) for e in klass.enrollments],
    )


@router.post("/", response_model=ClassRead, status_code=status.HTTP_201_CREATED)
def create_class(
    body: ClassCreate,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    authz.require_teacher(auth)
    klass = Classroom(name=body.name, description=body.description, teacher_id=auth.user_id)
    db.add(klass)
    db.commit()
    db.refresh(klass)
    logger.info("Teacher %s created class %s", auth.user_id, klass.id)
    return _class_read(klass)


@router.get("/", response_model=list[ClassRead])
def list_classes(
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """Teachers see the classes they own; students the ones they are enrolled in."""
    if auth.is_teacher:
        classes = (
            db.query(Classroom)
            .filter(Classroom.teacher_id == auth.user_id)
            .order_by(Classroom.created_at)
            .all()
        )
    else:
        classes = (
            db.query(Classroom)
            .join(ClassEnrollment, ClassEnrollment.class_id == Classroom.id)
            .filter(ClassEnrollment.student_id == auth.user_id)
            .order_by(Classroom.created_at)
            .all()
        )
    return [_class_read(k) for k in classes]


@router.get("/{class_id}", response_model=ClassDetail)
def get_class(
    class_id: uuid.UUID,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    klass = authz.load_class(db, class_id)
    if auth.is_student:
        if not authz.is_enrolled(db, auth.user_id, klass.id):
            raise NotFoundError("Class not found", {"class_id": str(class_id)})
        return _class_read(klass)
    authz.ensure_class_owner(auth, klass)
    return _class_detail(klass)


@router.patch("/{class_id}", response_model=ClassRead)
def update_class(
    class_id: uuid.UUID,
    body: ClassUpdate,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    klass = authz.load_class(db, class_id)
    authz.ensure_class_owner(auth, klass)
    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(klass, field, value)
    db.commit()
    db.refresh(klass)
    return _class_read(klass)


@router.delete("/{class_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_class(
    class_id: uuid.UUID,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    klass = authz.load_class(db, class_id)
    authz.ensure_class_owner(auth, klass)
    for quiz in list(klass.quizzes):
        quiz.class_id = None
    db.delete(klass)
    db.commit()
    logger.info("Teacher %s deleted class %s", auth.user_id, class_id)


@router.post(
    "/{class_id}/students", response_model=ClassDetail, status_code=status.HTTP_201_CREATED
)
def enroll_student(
    class_id: uuid.UUID,
    body: EnrollRequest,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    klass = authz.load_class(db, class_id)
    authz.ensure_class_owner(auth, klass)

    if body.student_id is not None:
        student = db.get(User, body.student_id)
    else:
        student = db.query(User).filter(User.email == body.email).first()
    if student is None:
        raise NotFoundError("Student not found")
    if student.role != RoleEnum.STUDENT:
        raise ValidationError("Only student accounts can be enrolled")

    if not authz.is_enrolled(db, student.id, klass.id):
        db.add(ClassEnrollment(class_id=klass.id, student_id=student.id))
        db.commit()
        db.refresh(klass)
        logger.info("Enrolled student %s in class %s", student.id, klass.id)
    return _class_detail(klass)


@router.delete("/{class_id}/students/{student_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_student(
    class_id: uuid.UUID,
    student_id: uuid.UUID,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    klass = authz.load_class(db, class_id)
    authz.ensure_class_owner(auth, klass)
    enrollment = (
        db.query(ClassEnrollment)
        .filter(
            ClassEnrollment.class_id == klass.id,
            ClassEnrollment.student_id == student_id,
        )
        .first()
    )
    if enrollment is None:
        raise NotFoundError("Student is not enrolled in this class")
    db.delete(enrollment)
    db.commit()
