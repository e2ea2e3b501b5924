"""Access to ``StudentQuizProgress`` rows and the write transaction wrapper.

Rows are created lazily on first use and read with ``SELECT ... FOR UPDATE``
(a no-op on SQLite). Every write goes through :func:`run_in_transaction`,
which commits the whole unit of work or rolls all of it back.
"""

from __future__ import annotations

import logging
import uuid
from typing import AbstractSet, Callable, TypeVar

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from quizassist.core.errors import ConcurrencyConflict
from quizassist.db.models import QuizSubmission, StudentQuizProgress
from quizassist.services import access_gate, progression

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ProgressStore:
    def __init__(self, db: Session):
        self.db = db

    def _query(self, student_id: uuid.UUID, quiz_id: uuid.UUID):
        return self.db.query(StudentQuizProgress).filter(
            StudentQuizProgress.student_id == student_id,
            StudentQuizProgress.quiz_id == quiz_id,
        )

    def get(self, student_id: uuid.UUID, quiz_id: uuid.UUID) -> StudentQuizProgress | None:
        return self._query(student_id, quiz_id).first()

    def get_for_update(
        self, student_id: uuid.UUID, quiz_id: uuid.UUID
    ) -> StudentQuizProgress:
        """Return the locked progress row, creating it if needed."""
        query = self._query(student_id, quiz_id).with_for_update()
        progress = query.first()
        if progress is not None:
            return progress

        try:
            with self.db.begin_nested():
                progress = StudentQuizProgress(student_id=student_id, quiz_id=quiz_id)
                self.db.add(progress)
        except IntegrityError:
            # Another request created the row first.
            logger.info(
                "Progress row for student=%s quiz=%s created concurrently; re-reading",
                student_id,
                quiz_id,
            )
            progress = query.populate_existing().one()
        return progress

    def upsert(
        self, student_id: uuid.UUID, quiz_id: uuid.UUID, **changes
    ) -> StudentQuizProgress:
        progress = self.get_for_update(student_id, quiz_id)
        for name, value in changes.items():
            if not hasattr(StudentQuizProgress, name):
                raise AttributeError(f"StudentQuizProgress has no field {name!r}")
            setattr(progress, name, value)
        self.db.flush()
        return progress

    def next_attempt_number(self, student_id: uuid.UUID, quiz_id: uuid.UUID) -> int:
        """Call while holding the progress row lock."""
        current = (
            self.db.query(func.max(QuizSubmission.attempt_number))
            .filter(
                QuizSubmission.student_id == student_id,
                QuizSubmission.quiz_id == quiz_id,
            )
            .scalar()
        )
        return (current or 0) + 1

    @staticmethod
    def refresh_derived(
        progress: StudentQuizProgress, available_levels: AbstractSet[int]
    ) -> progression.QuizState:
        """Recompute the derived columns from the stored facts."""
        for level in access_gate.ASSISTANCE_LEVELS:
            setattr(
                progress,
                f"level{level}_accessible",
                access_gate.threshold_accessible(progress, level, available_levels),
            )
        state = progression.derive_state(progress, available_levels)
        progress.assistance_required = progression.required_assistance(state)
        progress.next_step = progression.STATE_TOKENS[state]
        progress.can_take_main_quiz = access_gate.can_take_main_quiz(
            progress, available_levels
        ).allow
        return state


def run_in_transaction(db: Session, fn: Callable[..., T], *args, **kwargs) -> T:
    """Run ``fn`` and commit; retry once on a write conflict.

    A stale ``version_id`` or a duplicate attempt number means another request
    for the same student and quiz won the race. The unit of work is replayed
    once from scratch; a second conflict raises ``ConcurrencyConflict``.
    """
    for attempt in (1, 2):
        try:
            result = fn(*args, **kwargs)
            db.commit()
            return result
        except (StaleDataError, IntegrityError) as exc:
            db.rollback()
            if attempt == 2:
                logger.warning("Write conflict persisted after retry: %s", exc)
                raise ConcurrencyConflict(
                    "Another request updated this record at the same time; please retry"
                ) from exc
            logger.warning("Write conflict, retrying once: %s", exc)
        except Exception:
            db.rollback()
            raise
    raise AssertionError("unreachable")
