"""Assistance level routes: authoring (quiz owner) and student flows."""

import logging
import uuid

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.orm import Session

from quizassist.api.deps import get_auth_context, require_submit_rate_limit
from quizassist.core.errors import ValidationError
from quizassist.core.security import AuthContext
from quizassist.db.models import (
    AssistanceLevel1,
    AssistanceLevel1Question,
    AssistanceLevel2,
    AssistanceLevel2Question,
    AssistanceLevel2Submission,
    AssistanceLevel3,
    Quiz,
)
from quizassist.db.session import get_db
from quizassist.schemas.assistance import (
    CompletionResponse,
    Level1Complete,
    Level1QuestionRead,
    Level1Read,
    Level1ResultRead,
    Level1Submit,
    Level1SubmitResponse,
    Level1Upsert,
    Level2QuestionRead,
    Level2Read,
    Level2Submit,
    Level2SubmissionRead,
    Level2Upsert,
    Level3Complete,
    Level3Read,
    Level3Upsert,
    StudentLevel1QuestionRead,
    StudentLevel1Read,
    StudentLevel2QuestionRead,
    StudentLevel2Read,
)
from quizassist.schemas.progress import ProgressRead
from quizassist.services import assistance, authz

logger = logging.getLogger(__name__)
router = APIRouter()


def _owned_quiz(db: Session, auth: AuthContext, quiz_id: uuid.UUID) -> Quiz:
    quiz = authz.load_quiz(db, quiz_id)
    authz.ensure_quiz_owner(auth, quiz)
    return quiz


def _base(definition, level: int, is_completed: bool | None = None) -> dict:
    return {
        "id": definition.id,
        "quiz_id": definition.quiz_id,
        "level": level,
        "title": definition.title,
        "description": definition.description,
        "is_completed": is_completed,
    }


def _render(definition, level: int, *, student: bool, is_completed: bool | None = None):
    base = _base(definition, level, is_completed)
    if level == 1:
        if student:
            return StudentLevel1Read(
                **base,
                questions=[StudentLevel1QuestionRead.model_validate(q) for q in definition.questions],
            )
        return Level1Read(
            **base, questions=[Level1QuestionRead.model_validate(q) for q in definition.questions]
        )
    if level == 2:
        if student:
            return StudentLevel2Read(
                **base,
                questions=[StudentLevel2QuestionRead.model_validate(q) for q in definition.questions],
            )
        return Level2Read(
            **base, questions=[Level2QuestionRead.model_validate(q) for q in definition.questions]
        )
    return Level3Read(**base, pdf_url=definition.pdf_url)


def _completion_response(outcome: assistance.CompletionOutcome) -> CompletionResponse:
    return CompletionResponse(
        level=outcome.level,
        newly_completed=outcome.newly_completed,
        next_action=outcome.next_action,
        progress=ProgressRead.model_validate(outcome.progress),
    )


# ── Authoring ─────────────────────────────────────────────────────────────────


@router.put("/{quiz_id}/assistance/1", response_model=Level1Read)
def upsert_level1(
    quiz_id: uuid.UUID,
    body: Level1Upsert,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    quiz = _owned_quiz(db, auth, quiz_id)
    definition = quiz.assistance_level1
    if definition is None:
        definition = AssistanceLevel1(title=body.title)
        quiz.assistance_level1 = definition
    elif definition.submissions:
        raise ValidationError("Level 1 questions cannot change once students have answered")
    definition.title = body.title
    definition.description = body.description
    definition.questions = [
        AssistanceLevel1Question(
            position=index,
            statement=q.statement,
            correct_answer=q.correct_answer,
            explanation=q.explanation,
        )
        for index, q in enumerate(body.questions)
    ]
    db.commit()
    db.refresh(definition)
    logger.info("Teacher %s saved level 1 assistance for quiz %s", auth.user_id, quiz.id)
    return _render(definition, 1, student=False)


@router.put("/{quiz_id}/assistance/2", response_model=Level2Read)
def upsert_level2(
    quiz_id: uuid.UUID,
    body: Level2Upsert,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    quiz = _owned_quiz(db, auth, quiz_id)
    definition = quiz.assistance_level2
    if definition is None:
        definition = AssistanceLevel2(title=body.title)
        quiz.assistance_level2 = definition
    elif definition.submissions:
        raise ValidationError("Level 2 questions cannot change once students have answered")
    definition.title = body.title
    definition.description = body.description
    definition.questions = [
        AssistanceLevel2Question(
            position=index,
            question=q.question,
            hint=q.hint,
            correct_answer=q.correct_answer,
        )
        for index, q in enumerate(body.questions)
    ]
    db.commit()
    db.refresh(definition)
    logger.info("Teacher %s saved level 2 assistance for quiz %s", auth.user_id, quiz.id)
    return _render(definition, 2, student=False)


@router.put("/{quiz_id}/assistance/3", response_model=Level3Read)
def upsert_level3(
    quiz_id: uuid.UUID,
    body: Level3Upsert,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    quiz = _owned_quiz(db, auth, quiz_id)
    definition = quiz.assistance_level3
    if definition is None:
        definition = AssistanceLevel3(title=body.title, pdf_url=body.pdf_url)
        quiz.assistance_level3 = definition
    definition.title = body.title
    definition.description = body.description
    definition.pdf_url = body.pdf_url
    db.commit()
    db.refresh(definition)
    logger.info("Teacher %s saved level 3 assistance for quiz %s", auth.user_id, quiz.id)
    return _render(definition, 3, student=False)


@router.get("/{quiz_id}/assistance/{level}", response_model=None)
def get_assistance(
    quiz_id: uuid.UUID,
    level: int = Path(ge=1, le=3),
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """Level content. Students must pass the access gate and never see answers."""
    definition, access = assistance.get_assistance_content(db, auth, quiz_id, level)
    if access is None:
        return _render(definition, level, student=False)
    return _render(definition, level, student=True, is_completed=access.is_completed)


@router.delete("/{quiz_id}/assistance/{level}", status_code=status.HTTP_204_NO_CONTENT)
def delete_assistance(
    quiz_id: uuid.UUID,
    level: int = Path(ge=1, le=3),
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    quiz = _owned_quiz(db, auth, quiz_id)
    setattr(quiz, f"assistance_level{level}", None)
    db.commit()
    logger.info("Teacher %s removed level %d assistance from quiz %s", auth.user_id, level, quiz.id)


# ── Student flows ─────────────────────────────────────────────────────────────


@router.post(
    "/{quiz_id}/assistance/1/submit",
    response_model=Level1SubmitResponse,
    dependencies=[Depends(require_submit_rate_limit)],
)
def submit_level1(
    quiz_id: uuid.UUID,
    body: Level1Submit,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    outcome = assistance.submit_level1(
        db, auth, quiz_id, [(a.question_id, a.answer) for a in body.answers]
    )
    return Level1SubmitResponse(
        submission_id=outcome.submission.id,
        score=outcome.submission.score,
        passed=outcome.passed,
        status=outcome.submission.status,
        next_action=outcome.next_action,
        results=[
            Level1ResultRead(
                question_id=r.question_id,
                answer=r.answer,
                is_correct=r.is_correct,
                explanation=r.explanation,
            )
            for r in outcome.results
        ],
    )


@router.post("/{quiz_id}/assistance/1/complete", response_model=CompletionResponse)
def complete_level1(
    quiz_id: uuid.UUID,
    body: Level1Complete,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    outcome = assistance.complete_level1(db, auth, quiz_id, body.submission_id)
    return _completion_response(outcome)


@router.post(
    "/{quiz_id}/assistance/2/submit",
    response_model=Level2SubmissionRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_submit_rate_limit)],
)
def submit_level2(
    quiz_id: uuid.UUID,
    body: Level2Submit,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    submission = assistance.submit_level2(
        db, auth, quiz_id, [(a.question_id, a.answer_text) for a in body.answers]
    )
    db.refresh(submission)
    return submission


@router.get("/{quiz_id}/assistance/2/submissions", response_model=list[Level2SubmissionRead])
def my_level2_submissions(
    quiz_id: uuid.UUID,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    quiz = authz.load_quiz(db, quiz_id)
    authz.ensure_student_enrolled(db, auth, quiz)
    if quiz.assistance_level2 is None:
        return []
    return (
        db.query(AssistanceLevel2Submission)
        .filter(
            AssistanceLevel2Submission.assistance_id == quiz.assistance_level2.id,
            AssistanceLevel2Submission.student_id == auth.user_id,
        )
        .order_by(AssistanceLevel2Submission.created_at)
        .all()
    )


@router.post("/{quiz_id}/assistance/3/complete", response_model=CompletionResponse)
def complete_level3(
    quiz_id: uuid.UUID,
    body: Level3Complete,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    outcome = assistance.complete_level3(
        db, auth, quiz_id, body.assistance_id, body.reading_time
    )
    return _completion_response(outcome)
