"""Attempt / assistance progression state machine.

The stored progress row holds facts (attempt counters, completed levels,
teacher overrides). The state is derived from those facts, and each state
maps to exactly one routing token (``NextActionEnum``) handed back to callers.

Events may only move a student along the edges listed in ``TRANSITIONS``.
Teacher status overrides write the facts directly and do not go through it.
"""

from __future__ import annotations

import enum
import logging
from typing import AbstractSet

from quizassist.config import settings
from quizassist.core.errors import InvalidTransition
from quizassist.db.models import (
    AssistanceRequirementEnum,
    FinalStatusEnum,
    NextActionEnum,
    StudentQuizProgress,
)
from quizassist.services.access_gate import lowest_pending_level

logger = logging.getLogger(__name__)


class QuizState(str, enum.Enum):
    NOT_STARTED = "NOT_STARTED"
    RETAKE_ALLOWED = "RETAKE_ALLOWED"
    ASSISTANCE_LEVEL1 = "ASSISTANCE_LEVEL1"
    ASSISTANCE_LEVEL2 = "ASSISTANCE_LEVEL2"
    ASSISTANCE_LEVEL3 = "ASSISTANCE_LEVEL3"
    LEVEL3_GRANTED = "LEVEL3_GRANTED"
    MUST_RETAKE = "MUST_RETAKE"
    PASSED = "PASSED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (QuizState.PASSED, QuizState.FAILED)

    @classmethod
    def assistance(cls, level: int) -> "QuizState":
        return cls(f"ASSISTANCE_LEVEL{level}")


class Event(str, enum.Enum):
    MAIN_QUIZ_SUBMITTED = "MAIN_QUIZ_SUBMITTED"
    ASSISTANCE_COMPLETED = "ASSISTANCE_COMPLETED"
    TEACHER_GRADED = "TEACHER_GRADED"


_ASSISTANCE_STATES = frozenset(
    {QuizState.ASSISTANCE_LEVEL1, QuizState.ASSISTANCE_LEVEL2, QuizState.ASSISTANCE_LEVEL3}
)
_OPEN_FOR_ATTEMPT = frozenset(
    {
        QuizState.NOT_STARTED,
        QuizState.RETAKE_ALLOWED,
        QuizState.MUST_RETAKE,
        QuizState.LEVEL3_GRANTED,
    }
)

# event -> (states it may fire from, states it may lead to)
TRANSITIONS: dict[Event, tuple[frozenset[QuizState], frozenset[QuizState]]] = {
    Event.MAIN_QUIZ_SUBMITTED: (
        _OPEN_FOR_ATTEMPT,
        _ASSISTANCE_STATES
        | {
            QuizState.RETAKE_ALLOWED,
            QuizState.LEVEL3_GRANTED,
            QuizState.PASSED,
            QuizState.FAILED,
        },
    ),
    Event.ASSISTANCE_COMPLETED: (
        _ASSISTANCE_STATES
        | {
            QuizState.NOT_STARTED,
            QuizState.RETAKE_ALLOWED,
            QuizState.LEVEL3_GRANTED,
            QuizState.MUST_RETAKE,
        },
        _ASSISTANCE_STATES | {QuizState.LEVEL3_GRANTED, QuizState.MUST_RETAKE},
    ),
    Event.TEACHER_GRADED: (
        frozenset(QuizState),
        frozenset({QuizState.PASSED}),
    ),
}

STATE_TOKENS: dict[QuizState, NextActionEnum] = {
    QuizState.NOT_STARTED: NextActionEnum.TAKE_MAIN_QUIZ_NOW,
    QuizState.RETAKE_ALLOWED: NextActionEnum.TRY_MAIN_QUIZ_AGAIN,
    QuizState.ASSISTANCE_LEVEL1: NextActionEnum.COMPLETE_ASSISTANCE_LEVEL1,
    QuizState.ASSISTANCE_LEVEL2: NextActionEnum.COMPLETE_ASSISTANCE_LEVEL2,
    QuizState.ASSISTANCE_LEVEL3: NextActionEnum.COMPLETE_ASSISTANCE_LEVEL3,
    QuizState.LEVEL3_GRANTED: NextActionEnum.VIEW_ASSISTANCE_LEVEL3,
    QuizState.MUST_RETAKE: NextActionEnum.TRY_MAIN_QUIZ_AGAIN,
    QuizState.PASSED: NextActionEnum.QUIZ_PASSED,
    QuizState.FAILED: NextActionEnum.QUIZ_FAILED_MAX_ATTEMPTS,
}


def derive_state(
    progress: StudentQuizProgress | None, available_levels: AbstractSet[int]
) -> QuizState:
    """Map stored progress facts onto a single state."""
    if progress is None:
        return QuizState.NOT_STARTED
    if progress.final_status == FinalStatusEnum.PASSED:
        return QuizState.PASSED
    if (
        progress.final_status == FinalStatusEnum.FAILED
        or (progress.failed_attempts or 0) >= settings.MAX_FAILED_ATTEMPTS
    ):
        return QuizState.FAILED

    started = bool(progress.current_attempt or progress.failed_attempts)

    override = progress.manual_override_level
    if override is not None:
        if override is AssistanceRequirementEnum.NONE:
            return QuizState.RETAKE_ALLOWED if started else QuizState.NOT_STARTED
        if not progress.level_completed(override.level):
            return QuizState.assistance(override.level)
        return QuizState.MUST_RETAKE

    pending = lowest_pending_level(progress, available_levels)
    if pending is not None:
        return QuizState.assistance(pending)

    if (
        progress.level3_access_granted
        and 3 in available_levels
        and not progress.level3_completed
    ):
        return QuizState.LEVEL3_GRANTED

    if progress.must_retake_main_quiz:
        return QuizState.MUST_RETAKE
    if not started:
        return QuizState.NOT_STARTED
    return QuizState.RETAKE_ALLOWED


def next_action(
    progress: StudentQuizProgress | None, available_levels: AbstractSet[int]
) -> NextActionEnum:
    return STATE_TOKENS[derive_state(progress, available_levels)]


def required_assistance(state: QuizState) -> AssistanceRequirementEnum:
    if state in _ASSISTANCE_STATES:
        return AssistanceRequirementEnum(state.value)
    return AssistanceRequirementEnum.NONE


def check_transition(event: Event, source: QuizState, target: QuizState) -> None:
    """Raise ``InvalidTransition`` unless ``event`` may move ``source`` to ``target``.

    Staying in the same state is always allowed (repeated completions,
    regrades that do not change the outcome).
    """
    if source == target:
        return
    sources, targets = TRANSITIONS[event]
    if source not in sources or target not in targets:
        logger.error("Rejected transition %s: %s -> %s", event.value, source.value, target.value)
        raise InvalidTransition(event, source, target)
