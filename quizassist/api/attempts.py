"""Main quiz start, submission and history routes."""

import logging
import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from quizassist.api.deps import get_auth_context, require_submit_rate_limit
from quizassist.core.security import AuthContext
from quizassist.db.session import get_db
from quizassist.schemas.progress import ProgressRead, StartResponse
from quizassist.schemas.submission import (
    GradingInconsistencies,
    MainQuizSubmit,
    SubmissionDetail,
    SubmissionRead,
    SubmitResponse,
)
from quizassist.services import attempts

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/{quiz_id}/start", response_model=StartResponse)
def start_quiz(
    quiz_id: uuid.UUID,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """Check the gate and begin an attempt (clears the pending retake flag)."""
    outcome = attempts.start_main_quiz(db, auth, quiz_id)
    return StartResponse(
        next_action=outcome.next_action,
        must_retake=outcome.access.must_retake,
        progress=ProgressRead.model_validate(outcome.progress),
    )


@router.post(
    "/{quiz_id}/submit",
    response_model=SubmitResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_submit_rate_limit)],
)
def submit_quiz(
    quiz_id: uuid.UUID,
    body: MainQuizSubmit,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """Grade a main quiz attempt and route the student to the next step."""
    outcome = attempts.submit_main_quiz(
        db, auth, quiz_id, [(a.question_id, a.answer) for a in body.answers]
    )
    submission = outcome.submission
    return SubmitResponse(
        submission_id=submission.id,
        attempt_number=submission.attempt_number,
        score=outcome.grading.score,
        correct_answers=outcome.grading.correct_count,
        total_questions=outcome.grading.total_questions,
        passed=outcome.grading.passed,
        status=submission.status,
        next_action=outcome.next_action,
        failed_attempts=outcome.progress.failed_attempts,
        inconsistencies=GradingInconsistencies(
            unknown_question_ids=outcome.grading.unknown_question_ids,
            missing_question_ids=outcome.grading.missing_question_ids,
        ),
    )


@router.get("/quiz/{quiz_id}", response_model=list[SubmissionRead])
def my_submissions(
    quiz_id: uuid.UUID,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """The caller's attempts at one quiz, oldest first."""
    return attempts.list_my_submissions(db, auth, quiz_id)


@router.get("/{submission_id}", response_model=SubmissionDetail)
def get_submission(
    submission_id: uuid.UUID,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return attempts.get_submission(db, auth, submission_id)
