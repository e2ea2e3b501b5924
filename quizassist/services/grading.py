"""Teacher grading and progress overrides.

Teacher grading writes per-answer ``score`` / ``feedback`` only. The
auto-grade verdicts recorded at submission time are never touched, so the
two outcomes are reconciled rather than merged:

    teacher_percentage      = mean(answer.score or 0) over every answer row
    auto_correct_percentage = correct_answers / total_questions * 100
    passed                  = either of them >= PASSING_GRADE
"""

from __future__ import annotations

import enum
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable

from sqlalchemy.orm import Session

from quizassist.config import settings
from quizassist.core.errors import GradingInconsistency, NotFoundError, ValidationError
from quizassist.core.security import AuthContext
from quizassist.db.models import (
    AnswerVerdictEnum,
    AssistanceRequirementEnum,
    FinalStatusEnum,
    QuizSubmission,
    StudentQuizProgress,
    SubmissionStatusEnum,
)
from quizassist.services import authz, progression
from quizassist.services.auto_grader import round_half_up
from quizassist.services.progress_store import ProgressStore, run_in_transaction

logger = logging.getLogger(__name__)


class StudentStatusOverride(str, enum.Enum):
    PASSED = "PASSED"
    FAILED = "FAILED"
    ON_GOING = "ON_GOING"


@dataclass(frozen=True)
class AnswerGrade:
    answer_id: uuid.UUID
    score: int | None = None
    feedback: str | None = None


@dataclass
class GradingOutcome:
    submission: QuizSubmission
    teacher_percentage: float
    auto_correct_percentage: float
    passed: bool
    progress: StudentQuizProgress | None = None


def reconcile(
    teacher_scores: Iterable[int | None], correct_answers: int, total_questions: int
) -> tuple[float, float, bool]:
    """Return ``(teacher_percentage, auto_correct_percentage, passed)``."""
    scores = [score or 0 for score in teacher_scores]
    teacher_percentage = sum(scores) / len(scores) if scores else 0.0
    auto_correct_percentage = (
        correct_answers / total_questions * 100 if total_questions else 0.0
    )
    passed = (
        teacher_percentage >= settings.PASSING_GRADE
        or auto_correct_percentage >= settings.PASSING_GRADE
    )
    return teacher_percentage, auto_correct_percentage, passed


# ── Submission grading ────────────────────────────────────────────────────────


def grade_submission(
    db: Session,
    auth: AuthContext,
    submission_id: uuid.UUID,
    scores: Iterable[AnswerGrade],
    feedback: str | None = None,
) -> GradingOutcome:
    authz.require_teacher(auth)
    grades = list(scores)
    for grade in grades:
        if grade.score is not None and not 0 <= grade.score <= 100:
            raise ValidationError(
                "Scores must be between 0 and 100",
                {"answer_id": str(grade.answer_id), "score": grade.score},
            )
    return run_in_transaction(db, _grade, db, auth, submission_id, grades, feedback)


def _grade(
    db: Session,
    auth: AuthContext,
    submission_id: uuid.UUID,
    grades: list[AnswerGrade],
    feedback: str | None,
) -> GradingOutcome:
    submission = db.get(QuizSubmission, submission_id)
    if submission is None:
        raise NotFoundError("Submission not found", {"submission_id": str(submission_id)})
    quiz = submission.quiz
    authz.ensure_quiz_owner(auth, quiz)

    answers = {answer.id: answer for answer in submission.answers}
    unknown = [str(g.answer_id) for g in grades if g.answer_id not in answers]
    if unknown:
        logger.warning(
            "Grading payload for submission %s references foreign answers: %s",
            submission.id,
            unknown,
        )
        raise GradingInconsistency(
            "Some answers do not belong to this submission", {"answer_ids": unknown}
        )

    for grade in grades:
        answer = answers[grade.answer_id]
        answer.score = grade.score
        answer.feedback = grade.feedback

    correct = sum(
        1 for answer in submission.answers if answer.verdict is AnswerVerdictEnum.CORRECT
    )
    teacher_pct, auto_pct, passed = reconcile(
        (answer.score for answer in submission.answers),
        correct,
        submission.total_questions,
    )

    submission.status = SubmissionStatusEnum.PASSED if passed else SubmissionStatusEnum.FAILED
    submission.score = round_half_up(teacher_pct)
    if feedback is not None:
        submission.feedback = feedback
    submission.graded_at = datetime.now(timezone.utc)
    submission.graded_by = auth.user_id

    progress = None
    if passed:
        store = ProgressStore(db)
        progress = store.get_for_update(submission.student_id, quiz.id)
        available = quiz.available_assistance_levels
        source = progression.derive_state(progress, available)
        progress.final_status = FinalStatusEnum.PASSED
        progress.last_attempt_passed = True
        progress.must_retake_main_quiz = False
        target = store.refresh_derived(progress, available)
        progression.check_transition(progression.Event.TEACHER_GRADED, source, target)
    db.flush()

    logger.info(
        "Teacher %s graded submission %s: teacher=%.1f%% auto=%.1f%% passed=%s",
        auth.user_id,
        submission.id,
        teacher_pct,
        auto_pct,
        passed,
    )
    return GradingOutcome(
        submission=submission,
        teacher_percentage=teacher_pct,
        auto_correct_percentage=auto_pct,
        passed=passed,
        progress=progress,
    )


# ── Overrides ─────────────────────────────────────────────────────────────────


def _owned_progress(
    db: Session, auth: AuthContext, student_id: uuid.UUID, quiz_id: uuid.UUID
):
    quiz = authz.load_quiz(db, quiz_id)
    authz.ensure_quiz_owner(auth, quiz)
    authz.load_student(db, student_id)
    store = ProgressStore(db)
    return quiz, store, store.get_for_update(student_id, quiz.id)


def _clear_manual_override(progress: StudentQuizProgress) -> None:
    progress.override_system_flow = False
    progress.manually_assigned_level = None


def override_student_status(
    db: Session,
    auth: AuthContext,
    student_id: uuid.UUID,
    quiz_id: uuid.UUID,
    status: StudentStatusOverride,
) -> StudentQuizProgress:
    authz.require_teacher(auth)
    return run_in_transaction(
        db, _override_status, db, auth, student_id, quiz_id, StudentStatusOverride(status)
    )


def _override_status(
    db: Session,
    auth: AuthContext,
    student_id: uuid.UUID,
    quiz_id: uuid.UUID,
    status: StudentStatusOverride,
) -> StudentQuizProgress:
    quiz, store, progress = _owned_progress(db, auth, student_id, quiz_id)

    if status is StudentStatusOverride.PASSED:
        progress.final_status = FinalStatusEnum.PASSED
        progress.last_attempt_passed = True
        progress.must_retake_main_quiz = False
        _clear_manual_override(progress)
    elif status is StudentStatusOverride.FAILED:
        progress.final_status = FinalStatusEnum.FAILED
        progress.failed_attempts = settings.MAX_FAILED_ATTEMPTS
        progress.last_attempt_passed = False
        progress.must_retake_main_quiz = False
    else:
        progress.final_status = None
        progress.failed_attempts = 0
        progress.current_attempt = 0
        progress.last_attempt_passed = None
        progress.must_retake_main_quiz = False
        _clear_manual_override(progress)

    store.refresh_derived(progress, quiz.available_assistance_levels)
    db.flush()
    logger.info(
        "Teacher %s set quiz %s status for student %s to %s",
        auth.user_id,
        quiz.id,
        student_id,
        status.value,
    )
    return progress


def override_assistance_level(
    db: Session,
    auth: AuthContext,
    student_id: uuid.UUID,
    quiz_id: uuid.UUID,
    override_system_flow: bool,
    manually_assigned_level: AssistanceRequirementEnum | None = None,
) -> StudentQuizProgress:
    authz.require_teacher(auth)
    if override_system_flow and manually_assigned_level is None:
        raise ValidationError("manually_assigned_level is required when overriding")
    return run_in_transaction(
        db,
        _override_level,
        db,
        auth,
        student_id,
        quiz_id,
        override_system_flow,
        manually_assigned_level,
    )


def _override_level(
    db: Session,
    auth: AuthContext,
    student_id: uuid.UUID,
    quiz_id: uuid.UUID,
    override_system_flow: bool,
    manually_assigned_level: AssistanceRequirementEnum | None,
) -> StudentQuizProgress:
    quiz, store, progress = _owned_progress(db, auth, student_id, quiz_id)
    available = quiz.available_assistance_levels
    if (
        manually_assigned_level is not None
        and manually_assigned_level.level is not None
        and manually_assigned_level.level not in available
    ):
        raise ValidationError(
            f"Assistance level {manually_assigned_level.level} is not configured for this quiz"
        )

    progress.override_system_flow = override_system_flow
    progress.manually_assigned_level = (
        manually_assigned_level if override_system_flow else None
    )
    if manually_assigned_level is AssistanceRequirementEnum.ASSISTANCE_LEVEL3:
        progress.level3_access_granted = True
    store.refresh_derived(progress, available)
    db.flush()
    logger.info(
        "Teacher %s assistance override for student %s on quiz %s: %s %s",
        auth.user_id,
        student_id,
        quiz.id,
        override_system_flow,
        manually_assigned_level.value if manually_assigned_level else None,
    )
    return progress


def grant_level3_access(
    db: Session,
    auth: AuthContext,
    student_id: uuid.UUID,
    quiz_id: uuid.UUID,
    granted: bool = True,
) -> StudentQuizProgress:
    authz.require_teacher(auth)
    return run_in_transaction(db, _grant_level3, db, auth, student_id, quiz_id, granted)


def _grant_level3(
    db: Session,
    auth: AuthContext,
    student_id: uuid.UUID,
    quiz_id: uuid.UUID,
    granted: bool,
) -> StudentQuizProgress:
    quiz, store, progress = _owned_progress(db, auth, student_id, quiz_id)
    available = quiz.available_assistance_levels
    if 3 not in available:
        raise ValidationError("Assistance level 3 is not configured for this quiz")
    progress.level3_access_granted = granted
    store.refresh_derived(progress, available)
    db.flush()
    logger.info(
        "Teacher %s %s level 3 access for student %s on quiz %s",
        auth.user_id,
        "granted" if granted else "revoked",
        student_id,
        quiz.id,
    )
    return progress


# ── Queries ───────────────────────────────────────────────────────────────────


def list_quiz_submissions(
    db: Session,
    auth: AuthContext,
    quiz_id: uuid.UUID,
    student_id: uuid.UUID | None = None,
) -> list[QuizSubmission]:
    quiz = authz.load_quiz(db, quiz_id)
    authz.ensure_quiz_owner(auth, quiz)
    query = db.query(QuizSubmission).filter(QuizSubmission.quiz_id == quiz.id)
    if student_id is not None:
        query = query.filter(QuizSubmission.student_id == student_id)
    return query.order_by(
        QuizSubmission.student_id, QuizSubmission.attempt_number
    ).all()


def quiz_roster(
    db: Session, auth: AuthContext, quiz_id: uuid.UUID
) -> list[StudentQuizProgress]:
    quiz = authz.load_quiz(db, quiz_id)
    authz.ensure_quiz_owner(auth, quiz)
    return (
        db.query(StudentQuizProgress)
        .filter(StudentQuizProgress.quiz_id == quiz.id)
        .order_by(StudentQuizProgress.created_at)
        .all()
    )
