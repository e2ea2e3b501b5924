"""Teacher grading, review and override routes."""

import logging
import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from quizassist.api.deps import get_auth_context
from quizassist.core.security import AuthContext
from quizassist.db.session import get_db
from quizassist.schemas.assistance import Level2Review, Level2SubmissionRead
from quizassist.schemas.grading import (
    GradeRequest,
    GradeResponse,
    Level3GrantRequest,
    LevelOverrideRequest,
    StatusOverrideRequest,
)
from quizassist.schemas.progress import ProgressRead
from quizassist.schemas.submission import SubmissionDetail, SubmissionRead
from quizassist.services import assistance, grading

logger = logging.getLogger(__name__)
router = APIRouter()


# ── Main quiz submissions ─────────────────────────────────────────────────────


@router.get("/quizzes/{quiz_id}/submissions", response_model=list[SubmissionRead])
def list_submissions(
    quiz_id: uuid.UUID,
    student_id: uuid.UUID | None = None,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return grading.list_quiz_submissions(db, auth, quiz_id, student_id)


@router.post("/submissions/{submission_id}", response_model=GradeResponse)
def grade_submission(
    submission_id: uuid.UUID,
    body: GradeRequest,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """Record per-answer scores; the submission passes on either grading path."""
    outcome = grading.grade_submission(
        db,
        auth,
        submission_id,
        [
            grading.AnswerGrade(answer_id=s.answer_id, score=s.score, feedback=s.feedback)
            for s in body.scores
        ],
        body.feedback,
    )
    db.refresh(outcome.submission)
    return GradeResponse(
        teacher_percentage=outcome.teacher_percentage,
        auto_correct_percentage=outcome.auto_correct_percentage,
        passed=outcome.passed,
        submission=SubmissionDetail.model_validate(outcome.submission),
    )


# ── Level 2 review ────────────────────────────────────────────────────────────


@router.get("/level2/pending", response_model=list[Level2SubmissionRead])
def pending_level2(
    quiz_id: uuid.UUID | None = None,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return assistance.pending_level2_submissions(db, auth, quiz_id)


@router.post("/level2/{submission_id}", response_model=Level2SubmissionRead)
def review_level2(
    submission_id: uuid.UUID,
    body: Level2Review,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    submission = assistance.review_level2(
        db, auth, submission_id, body.is_approved, body.feedback, body.go_to_level3
    )
    db.refresh(submission)
    return submission


# ── Progress overrides ────────────────────────────────────────────────────────


@router.post(
    "/quizzes/{quiz_id}/students/{student_id}/status", response_model=ProgressRead
)
def override_status(
    quiz_id: uuid.UUID,
    student_id: uuid.UUID,
    body: StatusOverrideRequest,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    progress = grading.override_student_status(db, auth, student_id, quiz_id, body.status)
    db.refresh(progress)
    return progress


@router.post(
    "/quizzes/{quiz_id}/students/{student_id}/assistance-level",
    response_model=ProgressRead,
)
def override_assistance_level(
    quiz_id: uuid.UUID,
    student_id: uuid.UUID,
    body: LevelOverrideRequest,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    progress = grading.override_assistance_level(
        db,
        auth,
        student_id,
        quiz_id,
        body.override_system_flow,
        body.manually_assigned_level,
    )
    db.refresh(progress)
    return progress


@router.post(
    "/quizzes/{quiz_id}/students/{student_id}/level3-access",
    response_model=ProgressRead,
)
def grant_level3_access(
    quiz_id: uuid.UUID,
    student_id: uuid.UUID,
    body: Level3GrantRequest,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    progress = grading.grant_level3_access(db, auth, student_id, quiz_id, body.granted)
    db.refresh(progress)
    return progress
