"""Main quiz attempt orchestration.

``submit_main_quiz`` grades the answers, stores the submission and moves the
student's progress forward in a single transaction. Routing after a failed
attempt follows the failed count reached: 1 -> level 1, 2 -> level 2,
3 -> level 3, 4 -> the quiz is failed for good. A level the quiz does not
offer, or one already completed, is skipped.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from sqlalchemy.orm import Session

from quizassist.config import settings
from quizassist.core.errors import (
    AttemptLimitExceeded,
    NotFoundError,
    NotYetAllowed,
    ValidationError,
)
from quizassist.core.security import AuthContext
from quizassist.db.models import (
    FinalStatusEnum,
    NextActionEnum,
    QuizSubmission,
    StudentQuizProgress,
    SubmissionAnswer,
    SubmissionStatusEnum,
)
from quizassist.services import access_gate, authz, auto_grader, progression
from quizassist.services.progress_store import ProgressStore, run_in_transaction

logger = logging.getLogger(__name__)


@dataclass
class SubmissionOutcome:
    submission: QuizSubmission
    progress: StudentQuizProgress
    grading: auto_grader.GradingResult
    next_action: NextActionEnum


@dataclass
class StartOutcome:
    progress: StudentQuizProgress
    access: access_gate.MainQuizAccess
    next_action: NextActionEnum


@dataclass
class QuizStatus:
    student_id: uuid.UUID
    progress: StudentQuizProgress
    state: progression.QuizState
    next_action: NextActionEnum
    main_quiz: access_gate.MainQuizAccess
    available_levels: frozenset[int]
    levels: dict[int, access_gate.AssistanceAccess] = field(default_factory=dict)
    latest_submission: QuizSubmission | None = None


def _check_attempt_limits(progress: StudentQuizProgress) -> None:
    if progress.final_status == FinalStatusEnum.PASSED:
        raise AttemptLimitExceeded(AttemptLimitExceeded.ALREADY_PASSED)
    if (
        progress.final_status == FinalStatusEnum.FAILED
        or progress.failed_attempts >= settings.MAX_FAILED_ATTEMPTS
    ):
        raise AttemptLimitExceeded(AttemptLimitExceeded.MAX_FAILED_ATTEMPTS)


def _check_gate(progress: StudentQuizProgress, available: frozenset[int]) -> access_gate.MainQuizAccess:
    access = access_gate.can_take_main_quiz(progress, available)
    if not access.allow:
        raise NotYetAllowed(
            access.reason or "Main quiz is not available yet",
            {"required_level": access.required_level},
        )
    return access


def _validate_answers(answers: Sequence[tuple[uuid.UUID, str]]) -> None:
    seen: set[uuid.UUID] = set()
    duplicates: list[str] = []
    for question_id, _ in answers:
        if question_id in seen:
            duplicates.append(str(question_id))
        seen.add(question_id)
    if duplicates:
        raise ValidationError(
            "Each question may only be answered once", {"question_ids": duplicates}
        )


# ── Submit ────────────────────────────────────────────────────────────────────


def submit_main_quiz(
    db: Session,
    auth: AuthContext,
    quiz_id: uuid.UUID,
    answers: Iterable[tuple[uuid.UUID, str]],
) -> SubmissionOutcome:
    authz.require_student(auth)
    pairs = list(answers)
    _validate_answers(pairs)
    return run_in_transaction(db, _submit, db, auth, quiz_id, pairs)


def _submit(
    db: Session,
    auth: AuthContext,
    quiz_id: uuid.UUID,
    answers: list[tuple[uuid.UUID, str]],
) -> SubmissionOutcome:
    quiz = authz.load_quiz(db, quiz_id)
    authz.ensure_student_enrolled(db, auth, quiz)
    if not quiz.questions:
        raise ValidationError("Quiz has no questions")

    store = ProgressStore(db)
    progress = store.get_for_update(auth.user_id, quiz.id)
    _check_attempt_limits(progress)
    available = quiz.available_assistance_levels
    _check_gate(progress, available)
    source = progression.derive_state(progress, available)

    result = auto_grader.grade_submission(quiz.questions, answers)

    submission = QuizSubmission(
        quiz_id=quiz.id,
        student_id=auth.user_id,
        attempt_number=store.next_attempt_number(auth.user_id, quiz.id),
        status=(
            SubmissionStatusEnum.PASSED if result.passed else SubmissionStatusEnum.PENDING
        ),
        score=result.score,
        correct_answers=result.correct_count,
        total_questions=result.total_questions,
    )
    submission.answers = [
        SubmissionAnswer(
            question_id=graded.question_id,
            answer_text=graded.answer_text,
            verdict=graded.verdict,
        )
        for graded in result.answers
    ]
    db.add(submission)
    db.flush()

    progress.current_attempt = min(progress.current_attempt + 1, settings.MAX_ATTEMPTS)
    progress.last_submission_id = submission.id
    progress.must_retake_main_quiz = False
    if result.passed:
        progress.final_status = FinalStatusEnum.PASSED
        progress.last_attempt_passed = True
    else:
        progress.failed_attempts += 1
        progress.last_attempt_passed = False
        if progress.failed_attempts >= settings.MAX_FAILED_ATTEMPTS:
            progress.final_status = FinalStatusEnum.FAILED

    target = store.refresh_derived(progress, available)
    progression.check_transition(progression.Event.MAIN_QUIZ_SUBMITTED, source, target)
    db.flush()

    logger.info(
        "Quiz %s attempt %d by student %s: %d/%d (%d%%) passed=%s -> %s",
        quiz.id,
        submission.attempt_number,
        auth.user_id,
        result.correct_count,
        result.total_questions,
        result.score,
        result.passed,
        progress.next_step.value,
    )
    return SubmissionOutcome(
        submission=submission,
        progress=progress,
        grading=result,
        next_action=progress.next_step,
    )


# ── Start ─────────────────────────────────────────────────────────────────────


def start_main_quiz(db: Session, auth: AuthContext, quiz_id: uuid.UUID) -> StartOutcome:
    authz.require_student(auth)
    return run_in_transaction(db, _start, db, auth, quiz_id)


def _start(db: Session, auth: AuthContext, quiz_id: uuid.UUID) -> StartOutcome:
    quiz = authz.load_quiz(db, quiz_id)
    authz.ensure_student_enrolled(db, auth, quiz)

    store = ProgressStore(db)
    progress = store.get_for_update(auth.user_id, quiz.id)
    _check_attempt_limits(progress)
    available = quiz.available_assistance_levels
    access = _check_gate(progress, available)

    # The retake has begun.
    progress.must_retake_main_quiz = False
    store.refresh_derived(progress, available)
    db.flush()
    logger.info("Student %s started quiz %s", auth.user_id, quiz.id)
    return StartOutcome(progress=progress, access=access, next_action=progress.next_step)


# ── Status ────────────────────────────────────────────────────────────────────


def get_quiz_status(
    db: Session,
    auth: AuthContext,
    quiz_id: uuid.UUID,
    student_id: uuid.UUID | None = None,
) -> QuizStatus:
    return run_in_transaction(db, _status, db, auth, quiz_id, student_id)


def _status(
    db: Session,
    auth: AuthContext,
    quiz_id: uuid.UUID,
    student_id: uuid.UUID | None,
) -> QuizStatus:
    quiz = authz.load_quiz(db, quiz_id)
    target_student = authz.resolve_student(db, auth, quiz, student_id)

    store = ProgressStore(db)
    progress = store.get_for_update(target_student, quiz.id)
    available = quiz.available_assistance_levels
    state = store.refresh_derived(progress, available)
    db.flush()

    latest = (
        db.query(QuizSubmission)
        .filter(
            QuizSubmission.quiz_id == quiz.id,
            QuizSubmission.student_id == target_student,
        )
        .order_by(QuizSubmission.attempt_number.desc())
        .first()
    )
    return QuizStatus(
        student_id=target_student,
        progress=progress,
        state=state,
        next_action=progression.STATE_TOKENS[state],
        main_quiz=access_gate.can_take_main_quiz(progress, available),
        available_levels=available,
        levels={
            level: access_gate.can_access_assistance_level(progress, level, available)
            for level in access_gate.ASSISTANCE_LEVELS
        },
        latest_submission=latest,
    )


# ── History ───────────────────────────────────────────────────────────────────


def list_my_submissions(
    db: Session, auth: AuthContext, quiz_id: uuid.UUID
) -> list[QuizSubmission]:
    quiz = authz.load_quiz(db, quiz_id)
    authz.ensure_student_enrolled(db, auth, quiz)
    return (
        db.query(QuizSubmission)
        .filter(
            QuizSubmission.quiz_id == quiz.id,
            QuizSubmission.student_id == auth.user_id,
        )
        .order_by(QuizSubmission.attempt_number)
        .all()
    )


def get_submission(
    db: Session, auth: AuthContext, submission_id: uuid.UUID
) -> QuizSubmission:
    """A student sees their own submissions; a teacher those on quizzes they own."""
    submission = db.get(QuizSubmission, submission_id)
    if submission is None:
        raise NotFoundError("Submission not found", {"submission_id": str(submission_id)})
    if auth.is_student:
        if submission.student_id != auth.user_id:
            raise NotFoundError(
                "Submission not found", {"submission_id": str(submission_id)}
            )
    else:
        authz.ensure_quiz_owner(auth, submission.quiz)
    return submission
