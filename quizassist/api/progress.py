"""Per-quiz progress status routes."""

import logging
import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from quizassist.api.deps import get_auth_context
from quizassist.core.security import AuthContext
from quizassist.db.session import get_db
from quizassist.schemas.progress import (
    AssistanceAccessRead,
    LatestSubmissionRead,
    MainQuizAccessRead,
    ProgressRead,
    QuizStatusRead,
)
from quizassist.services import attempts, grading

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/quizzes/{quiz_id}", response_model=QuizStatusRead)
def quiz_status(
    quiz_id: uuid.UUID,
    student_id: uuid.UUID | None = None,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """Where a student stands on a quiz and what they should do next.

    Teachers pass ``student_id`` for one of their students.
    """
    result = attempts.get_quiz_status(db, auth, quiz_id, student_id)
    return QuizStatusRead(
        quiz_id=quiz_id,
        student_id=result.student_id,
        state=result.state.value,
        next_action=result.next_action,
        main_quiz=MainQuizAccessRead.model_validate(result.main_quiz),
        assistance=[
            AssistanceAccessRead(
                level=level,
                available=level in result.available_levels,
                allow=access.allow,
                is_completed=access.is_completed,
                reason=access.reason,
            )
            for level, access in sorted(result.levels.items())
        ],
        progress=ProgressRead.model_validate(result.progress),
        latest_submission=(
            LatestSubmissionRead.model_validate(result.latest_submission)
            if result.latest_submission is not None
            else None
        ),
    )


@router.get("/quizzes/{quiz_id}/roster", response_model=list[ProgressRead])
def quiz_roster(
    quiz_id: uuid.UUID,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """Progress rows of every student who has touched the quiz (owner only)."""
    return grading.quiz_roster(db, auth, quiz_id)
