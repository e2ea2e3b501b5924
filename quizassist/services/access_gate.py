"""Access gate: may a student take the main quiz, or open an assistance level?

Pure functions over a ``StudentQuizProgress`` row (or ``None`` for a student
who has never touched the quiz) and the set of assistance levels configured
for the quiz. No database access, no side effects.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet

from quizassist.config import settings
from quizassist.core.errors import ValidationError
from quizassist.db.models import (
    AssistanceRequirementEnum,
    FinalStatusEnum,
    StudentQuizProgress,
)

ASSISTANCE_LEVELS = (1, 2, 3)


@dataclass(frozen=True)
class MainQuizAccess:
    allow: bool
    must_retake: bool = False
    reason: str | None = None
    permanent: bool = False
    required_level: int | None = None


@dataclass(frozen=True)
class AssistanceAccess:
    allow: bool
    is_completed: bool = False
    reason: str | None = None


def threshold_accessible(
    progress: StudentQuizProgress | None, level: int, available_levels: AbstractSet[int]
) -> bool:
    """``failed_attempts >= level``, configured, and not yet completed."""
    if progress is None or level not in available_levels:
        return False
    return (progress.failed_attempts or 0) >= level and not progress.level_completed(level)


def lowest_pending_level(
    progress: StudentQuizProgress | None, available_levels: AbstractSet[int]
) -> int | None:
    for level in ASSISTANCE_LEVELS:
        if threshold_accessible(progress, level, available_levels):
            return level
    return None


def _is_terminal_failure(progress: StudentQuizProgress) -> bool:
    return (
        progress.final_status == FinalStatusEnum.FAILED
        or (progress.failed_attempts or 0) >= settings.MAX_FAILED_ATTEMPTS
    )


def can_take_main_quiz(
    progress: StudentQuizProgress | None, available_levels: AbstractSet[int]
) -> MainQuizAccess:
    if progress is None:
        return MainQuizAccess(allow=True)

    if progress.final_status == FinalStatusEnum.PASSED:
        return MainQuizAccess(allow=False, reason="Quiz already passed", permanent=True)

    if _is_terminal_failure(progress):
        return MainQuizAccess(
            allow=False,
            reason="Maximum number of failed attempts reached",
            permanent=True,
        )

    override = progress.manual_override_level
    if override is not None:
        if override is AssistanceRequirementEnum.NONE:
            return MainQuizAccess(allow=True, must_retake=bool(progress.must_retake_main_quiz))
        if not progress.level_completed(override.level):
            return MainQuizAccess(
                allow=False,
                reason=f"Must complete assistance level {override.level} first",
                required_level=override.level,
            )
        return MainQuizAccess(allow=True, must_retake=bool(progress.must_retake_main_quiz))

    pending = lowest_pending_level(progress, available_levels)
    if pending is not None:
        return MainQuizAccess(
            allow=False,
            reason=f"Must complete assistance level {pending} first",
            required_level=pending,
        )

    if progress.must_retake_main_quiz and progress.can_take_main_quiz:
        return MainQuizAccess(allow=True, must_retake=True)

    return MainQuizAccess(allow=True)


def ensure_valid_level(level: int) -> None:
    if level not in ASSISTANCE_LEVELS:
        raise ValidationError(
            f"Invalid assistance level {level}",
            {"level": level, "allowed": list(ASSISTANCE_LEVELS)},
        )


def can_access_assistance_level(
    progress: StudentQuizProgress | None, level: int, available_levels: AbstractSet[int]
) -> AssistanceAccess:
    ensure_valid_level(level)

    if level not in available_levels:
        return AssistanceAccess(
            allow=False, reason=f"Assistance level {level} is not available for this quiz"
        )

    if progress is None:
        return AssistanceAccess(
            allow=False, reason=f"Level {level} unlocks after {level} failed attempt(s)"
        )

    if progress.level_completed(level):
        return AssistanceAccess(allow=True, is_completed=True)

    if progress.final_status == FinalStatusEnum.PASSED:
        return AssistanceAccess(allow=False, reason="Quiz already passed")

    override = progress.manual_override_level
    if override is not None:
        if override.level == level:
            return AssistanceAccess(allow=True)
        return AssistanceAccess(
            allow=False,
            reason="Teacher has assigned a different assistance level",
        )

    if level == 3 and progress.level3_access_granted:
        return AssistanceAccess(allow=True)

    if (progress.failed_attempts or 0) >= level:
        return AssistanceAccess(allow=True)

    return AssistanceAccess(
        allow=False, reason=f"Level {level} unlocks after {level} failed attempt(s)"
    )
