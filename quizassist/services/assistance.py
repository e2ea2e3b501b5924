"""Assistance level submissions and completion handlers.

Level 1  true/false recap, passes only with every answer right.
Level 2  short essay, completed once the teacher approves it.
Level 3  reference reading, completed when the student confirms.

Completing a level for the first time marks it on the progress row and
sends the student back to the main quiz (``must_retake_main_quiz``).
Completing it again changes nothing on the progress row. Once the quiz is
passed or failed for good, completion records are still stored but the
progress routing is left alone.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from quizassist.config import settings
from quizassist.core.errors import NotFoundError, NotYetAllowed, ValidationError
from quizassist.core.security import AuthContext
from quizassist.db.models import (
    AssistanceLevel1,
    AssistanceLevel1Answer,
    AssistanceLevel1Submission,
    AssistanceLevel2,
    AssistanceLevel2Answer,
    AssistanceLevel2Submission,
    AssistanceLevel3,
    AssistanceLevel3Completion,
    NextActionEnum,
    Quiz,
    StudentQuizProgress,
    SubmissionStatusEnum,
)
from quizassist.services import access_gate, authz, progression
from quizassist.services.auto_grader import round_half_up
from quizassist.services.progress_store import ProgressStore, run_in_transaction

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Level1Result:
    question_id: uuid.UUID
    answer: bool
    is_correct: bool
    explanation: str | None


@dataclass
class Level1Outcome:
    submission: AssistanceLevel1Submission
    progress: StudentQuizProgress
    passed: bool
    next_action: NextActionEnum
    results: list[Level1Result] = field(default_factory=list)


@dataclass
class CompletionOutcome:
    progress: StudentQuizProgress
    level: int
    newly_completed: bool
    next_action: NextActionEnum
    record: object | None = None


# ── Shared ────────────────────────────────────────────────────────────────────


def _definition(quiz: Quiz, level: int):
    definition = getattr(quiz, f"assistance_level{level}")
    if definition is None:
        raise NotFoundError(
            f"Assistance level {level} is not configured for this quiz",
            {"quiz_id": str(quiz.id), "level": level},
        )
    return definition


def _require_access(
    progress: StudentQuizProgress | None, level: int, available: frozenset[int]
) -> access_gate.AssistanceAccess:
    access = access_gate.can_access_assistance_level(progress, level, available)
    if not access.allow:
        raise NotYetAllowed(access.reason or f"Level {level} is locked", {"level": level})
    return access


def mark_level_completed(
    store: ProgressStore,
    progress: StudentQuizProgress,
    level: int,
    available: frozenset[int],
) -> bool:
    """Record a first-time completion on the progress row.

    Returns True when the level was newly completed.
    """
    if progress.final_status is not None:
        logger.info(
            "Level %d completion for student %s on quiz %s after final status %s; "
            "progress left unchanged",
            level,
            progress.student_id,
            progress.quiz_id,
            progress.final_status.value,
        )
        return False
    if progress.level_completed(level):
        return False

    source = progression.derive_state(progress, available)
    setattr(progress, f"level{level}_completed", True)
    setattr(progress, f"level{level}_completed_at", _utcnow())
    progress.must_retake_main_quiz = True
    progress.can_take_main_quiz = True
    target = store.refresh_derived(progress, available)
    progression.check_transition(progression.Event.ASSISTANCE_COMPLETED, source, target)
    store.db.flush()
    logger.info(
        "Student %s completed assistance level %d on quiz %s -> %s",
        progress.student_id,
        level,
        progress.quiz_id,
        progress.next_step.value,
    )
    return True


def _locked_progress(
    db: Session, auth: AuthContext, quiz_id: uuid.UUID
) -> tuple[Quiz, ProgressStore, StudentQuizProgress]:
    quiz = authz.load_quiz(db, quiz_id)
    authz.ensure_student_enrolled(db, auth, quiz)
    store = ProgressStore(db)
    return quiz, store, store.get_for_update(auth.user_id, quiz.id)


# ── Content ───────────────────────────────────────────────────────────────────


def get_assistance_content(
    db: Session, auth: AuthContext, quiz_id: uuid.UUID, level: int
) -> tuple[AssistanceLevel1 | AssistanceLevel2 | AssistanceLevel3, access_gate.AssistanceAccess | None]:
    """Return the level definition and, for students, the gate decision.

    Quiz owners always see the content (and no gate decision).
    """
    access_gate.ensure_valid_level(level)
    if auth.is_teacher:
        quiz = authz.load_quiz(db, quiz_id)
        authz.ensure_quiz_owner(auth, quiz)
        return _definition(quiz, level), None
    return run_in_transaction(db, _student_content, db, auth, quiz_id, level)


def _student_content(db: Session, auth: AuthContext, quiz_id: uuid.UUID, level: int):
    quiz, store, progress = _locked_progress(db, auth, quiz_id)
    available = quiz.available_assistance_levels
    store.refresh_derived(progress, available)
    access = _require_access(progress, level, available)
    return _definition(quiz, level), access


# ── Level 1 ───────────────────────────────────────────────────────────────────


def submit_level1(
    db: Session,
    auth: AuthContext,
    quiz_id: uuid.UUID,
    answers: Iterable[tuple[uuid.UUID, bool]],
) -> Level1Outcome:
    authz.require_student(auth)
    return run_in_transaction(db, _submit_level1, db, auth, quiz_id, list(answers))


def _submit_level1(
    db: Session,
    auth: AuthContext,
    quiz_id: uuid.UUID,
    answers: list[tuple[uuid.UUID, bool]],
) -> Level1Outcome:
    quiz, store, progress = _locked_progress(db, auth, quiz_id)
    definition = _definition(quiz, 1)
    available = quiz.available_assistance_levels
    _require_access(progress, 1, available)

    questions = {q.id: q for q in definition.questions}
    given: dict[uuid.UUID, bool] = {}
    for question_id, answer in answers:
        if question_id not in questions:
            raise ValidationError(
                "Answer references a question outside this assistance level",
                {"question_id": str(question_id)},
            )
        if question_id in given:
            raise ValidationError(
                "Each question may only be answered once",
                {"question_id": str(question_id)},
            )
        given[question_id] = answer

    results = []
    for question in definition.questions:
        answer = given.get(question.id)
        results.append(
            Level1Result(
                question_id=question.id,
                answer=bool(answer) if answer is not None else False,
                is_correct=answer is not None and answer == question.correct_answer,
                explanation=question.explanation,
            )
        )
    correct = sum(1 for r in results if r.is_correct)
    total = len(results)
    score = round_half_up(correct / total * 100) if total else 0
    passed = total > 0 and correct * 100 >= settings.LEVEL1_PASSING_GRADE * total

    submission = AssistanceLevel1Submission(
        assistance_id=definition.id,
        student_id=auth.user_id,
        status=SubmissionStatusEnum.PASSED if passed else SubmissionStatusEnum.FAILED,
        score=score,
        is_completed=passed,
    )
    submission.answers = [
        AssistanceLevel1Answer(
            question_id=r.question_id, answer=r.answer, is_correct=r.is_correct
        )
        for r in results
        if r.question_id in given
    ]
    db.add(submission)
    db.flush()

    if passed:
        mark_level_completed(store, progress, 1, available)
    logger.info(
        "Level 1 submission by student %s on quiz %s: %d/%d passed=%s",
        auth.user_id,
        quiz.id,
        correct,
        total,
        passed,
    )
    return Level1Outcome(
        submission=submission,
        progress=progress,
        passed=passed,
        next_action=progress.next_step,
        results=results,
    )


def complete_level1(
    db: Session, auth: AuthContext, quiz_id: uuid.UUID, submission_id: uuid.UUID
) -> CompletionOutcome:
    authz.require_student(auth)
    return run_in_transaction(db, _complete_level1, db, auth, quiz_id, submission_id)


def _complete_level1(
    db: Session, auth: AuthContext, quiz_id: uuid.UUID, submission_id: uuid.UUID
) -> CompletionOutcome:
    quiz, store, progress = _locked_progress(db, auth, quiz_id)
    definition = _definition(quiz, 1)
    submission = db.get(AssistanceLevel1Submission, submission_id)
    if (
        submission is None
        or submission.student_id != auth.user_id
        or submission.assistance_id != definition.id
    ):
        raise NotFoundError(
            "Level 1 submission not found", {"submission_id": str(submission_id)}
        )
    if submission.status != SubmissionStatusEnum.PASSED:
        raise ValidationError(
            "Level 1 is completed only when every answer is correct",
            {"score": submission.score},
        )
    newly = mark_level_completed(store, progress, 1, quiz.available_assistance_levels)
    return CompletionOutcome(
        progress=progress,
        level=1,
        newly_completed=newly,
        next_action=progress.next_step,
        record=submission,
    )


# ── Level 2 ───────────────────────────────────────────────────────────────────


def submit_level2(
    db: Session,
    auth: AuthContext,
    quiz_id: uuid.UUID,
    answers: Iterable[tuple[uuid.UUID, str]],
) -> AssistanceLevel2Submission:
    authz.require_student(auth)
    return run_in_transaction(db, _submit_level2, db, auth, quiz_id, list(answers))


def _submit_level2(
    db: Session,
    auth: AuthContext,
    quiz_id: uuid.UUID,
    answers: list[tuple[uuid.UUID, str]],
) -> AssistanceLevel2Submission:
    quiz, store, progress = _locked_progress(db, auth, quiz_id)
    definition = _definition(quiz, 2)
    _require_access(progress, 2, quiz.available_assistance_levels)
    if not answers:
        raise ValidationError("At least one answer is required")

    question_ids = {q.id for q in definition.questions}
    seen: set[uuid.UUID] = set()
    for question_id, _ in answers:
        if question_id not in question_ids:
            raise ValidationError(
                "Answer references a question outside this assistance level",
                {"question_id": str(question_id)},
            )
        if question_id in seen:
            raise ValidationError(
                "Each question may only be answered once",
                {"question_id": str(question_id)},
            )
        seen.add(question_id)

    submission = AssistanceLevel2Submission(
        assistance_id=definition.id,
        student_id=auth.user_id,
        status=SubmissionStatusEnum.PENDING,
    )
    submission.answers = [
        AssistanceLevel2Answer(question_id=question_id, answer_text=text)
        for question_id, text in answers
    ]
    db.add(submission)
    db.flush()
    logger.info(
        "Level 2 submission %s by student %s on quiz %s awaits review",
        submission.id,
        auth.user_id,
        quiz.id,
    )
    return submission


def apply_level2_approval(
    db: Session, submission: AssistanceLevel2Submission, is_approved: bool
) -> CompletionOutcome:
    """Mark an approved essay complete; unapproved ones stay PENDING."""
    quiz = submission.assistance.quiz
    store = ProgressStore(db)
    progress = store.get_for_update(submission.student_id, quiz.id)
    if not is_approved:
        return CompletionOutcome(
            progress=progress,
            level=2,
            newly_completed=False,
            next_action=progress.next_step
            or progression.next_action(progress, quiz.available_assistance_levels),
            record=submission,
        )
    submission.is_approved = True
    submission.is_completed = True
    submission.status = SubmissionStatusEnum.PASSED
    newly = mark_level_completed(store, progress, 2, quiz.available_assistance_levels)
    db.flush()
    return CompletionOutcome(
        progress=progress,
        level=2,
        newly_completed=newly,
        next_action=progress.next_step,
        record=submission,
    )


def complete_level2(
    db: Session,
    student_id: uuid.UUID,
    quiz_id: uuid.UUID,
    submission_id: uuid.UUID,
    is_approved: bool,
) -> CompletionOutcome:
    return run_in_transaction(
        db, _complete_level2, db, student_id, quiz_id, submission_id, is_approved
    )


def _complete_level2(
    db: Session,
    student_id: uuid.UUID,
    quiz_id: uuid.UUID,
    submission_id: uuid.UUID,
    is_approved: bool,
) -> CompletionOutcome:
    submission = db.get(AssistanceLevel2Submission, submission_id)
    if (
        submission is None
        or submission.student_id != student_id
        or submission.assistance.quiz_id != quiz_id
    ):
        raise NotFoundError(
            "Level 2 submission not found", {"submission_id": str(submission_id)}
        )
    return apply_level2_approval(db, submission, is_approved)


def review_level2(
    db: Session,
    auth: AuthContext,
    submission_id: uuid.UUID,
    is_approved: bool | None,
    feedback: str | None = None,
    go_to_level3: bool = False,
) -> AssistanceLevel2Submission:
    """Teacher decision on an essay submission.

    ``is_approved`` True completes level 2, False rejects the essay (and may
    open level 3 straight away), None only records feedback.
    """
    authz.require_teacher(auth)
    return run_in_transaction(
        db, _review_level2, db, auth, submission_id, is_approved, feedback, go_to_level3
    )


def _review_level2(
    db: Session,
    auth: AuthContext,
    submission_id: uuid.UUID,
    is_approved: bool | None,
    feedback: str | None,
    go_to_level3: bool,
) -> AssistanceLevel2Submission:
    submission = db.get(AssistanceLevel2Submission, submission_id)
    if submission is None:
        raise NotFoundError(
            "Level 2 submission not found", {"submission_id": str(submission_id)}
        )
    quiz = submission.assistance.quiz
    authz.ensure_quiz_owner(auth, quiz)

    if feedback is not None:
        submission.feedback = feedback
    submission.reviewed_by = auth.user_id
    submission.reviewed_at = _utcnow()

    if is_approved is True:
        apply_level2_approval(db, submission, True)
    elif is_approved is False:
        if submission.is_completed:
            raise ValidationError("Submission was already approved")
        submission.is_approved = False
        submission.status = SubmissionStatusEnum.FAILED
        if go_to_level3:
            if 3 not in quiz.available_assistance_levels:
                raise ValidationError("Assistance level 3 is not configured for this quiz")
            store = ProgressStore(db)
            progress = store.get_for_update(submission.student_id, quiz.id)
            progress.level3_access_granted = True
            store.refresh_derived(progress, quiz.available_assistance_levels)

    db.flush()
    logger.info(
        "Teacher %s reviewed level 2 submission %s: approved=%s level3=%s",
        auth.user_id,
        submission.id,
        is_approved,
        go_to_level3,
    )
    return submission


# ── Level 3 ───────────────────────────────────────────────────────────────────


def complete_level3(
    db: Session,
    auth: AuthContext,
    quiz_id: uuid.UUID,
    assistance_id: uuid.UUID | None = None,
    reading_time: int | None = None,
) -> CompletionOutcome:
    authz.require_student(auth)
    if reading_time is not None and reading_time < 0:
        raise ValidationError("reading_time must not be negative")
    return run_in_transaction(
        db, _complete_level3, db, auth, quiz_id, assistance_id, reading_time
    )


def _complete_level3(
    db: Session,
    auth: AuthContext,
    quiz_id: uuid.UUID,
    assistance_id: uuid.UUID | None,
    reading_time: int | None,
) -> CompletionOutcome:
    quiz, store, progress = _locked_progress(db, auth, quiz_id)
    definition: AssistanceLevel3 = _definition(quiz, 3)
    if assistance_id is not None and assistance_id != definition.id:
        raise NotFoundError(
            "Level 3 assistance not found", {"assistance_id": str(assistance_id)}
        )
    available = quiz.available_assistance_levels
    _require_access(progress, 3, available)

    query = db.query(AssistanceLevel3Completion).filter(
        AssistanceLevel3Completion.assistance_id == definition.id,
        AssistanceLevel3Completion.student_id == auth.user_id,
    )
    record = query.first()
    if record is None:
        try:
            with db.begin_nested():
                record = AssistanceLevel3Completion(
                    assistance_id=definition.id,
                    student_id=auth.user_id,
                    is_completed=True,
                    reading_time_seconds=reading_time,
                )
                db.add(record)
        except IntegrityError:
            record = query.populate_existing().one()
            if reading_time is not None:
                record.reading_time_seconds = reading_time
    elif reading_time is not None:
        record.reading_time_seconds = reading_time
    db.flush()

    newly = mark_level_completed(store, progress, 3, available)
    return CompletionOutcome(
        progress=progress,
        level=3,
        newly_completed=newly,
        next_action=progress.next_step,
        record=record,
    )


# ── Queries ───────────────────────────────────────────────────────────────────


def pending_level2_submissions(
    db: Session, auth: AuthContext, quiz_id: uuid.UUID | None = None
) -> list[AssistanceLevel2Submission]:
    authz.require_teacher(auth)
    query = (
        db.query(AssistanceLevel2Submission)
        .join(AssistanceLevel2, AssistanceLevel2Submission.assistance_id == AssistanceLevel2.id)
        .join(Quiz, AssistanceLevel2.quiz_id == Quiz.id)
        .filter(
            Quiz.teacher_id == auth.user_id,
            AssistanceLevel2Submission.status == SubmissionStatusEnum.PENDING,
        )
    )
    if quiz_id is not None:
        query = query.filter(Quiz.id == quiz_id)
    return query.order_by(AssistanceLevel2Submission.created_at).all()
