"""Automatic string‑match grading for main quiz submissions.

Grading rules
-------------
* A question without an expected answer (absent, or blank after trimming)
  gets an INDETERMINATE verdict, never INCORRECT.
* Otherwise the verdict is CORRECT when ``lower(trim(student))`` equals
  ``lower(trim(expected))``.
* A quiz question the student did not answer counts as INCORRECT and is
  listed in ``missing_question_ids``.
* Answers pointing at question ids the quiz does not have are not graded;
  they are listed in ``unknown_question_ids`` so the caller can surface them.
* ``score = round_half_up(correct / total * 100)`` (0 when the quiz is empty)
  and the attempt passes at ``PASSING_GRADE`` or when every question is right.

Nothing here touches the database.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Sequence

from quizassist.config import settings
from quizassist.db.models import AnswerVerdictEnum

logger = logging.getLogger(__name__)


def _normalise(text: str) -> str:
    return text.strip().lower()


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero (66.5 -> 67)."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def verdict_for(student_answer: str | None, expected_answer: str | None) -> AnswerVerdictEnum:
    """Compare one answer against one expected answer."""
    if expected_answer is None or not expected_answer.strip():
        return AnswerVerdictEnum.INDETERMINATE
    if student_answer is None:
        return AnswerVerdictEnum.INCORRECT
    if _normalise(student_answer) == _normalise(expected_answer):
        return AnswerVerdictEnum.CORRECT
    return AnswerVerdictEnum.INCORRECT


@dataclass(frozen=True)
class GradedAnswer:
    question_id: uuid.UUID
    answer_text: str
    verdict: AnswerVerdictEnum


@dataclass
class GradingResult:
    answers: list[GradedAnswer] = field(default_factory=list)
    correct_count: int = 0
    total_questions: int = 0
    score: int = 0
    passed: bool = False
    unknown_question_ids: list[uuid.UUID] = field(default_factory=list)
    missing_question_ids: list[uuid.UUID] = field(default_factory=list)

    @property
    def has_inconsistencies(self) -> bool:
        return bool(self.unknown_question_ids)


def compute_score(correct: int, total: int) -> int:
    if total <= 0:
        return 0
    return round_half_up(correct / total * 100)


def is_passing(score: int, correct: int, total: int) -> bool:
    """70% or better passes, and so does a perfect sheet whatever the rounding."""
    return score >= settings.PASSING_GRADE or (total > 0 and correct == total)


def grade_submission(
    questions: Sequence,
    answers: Iterable[tuple[uuid.UUID, str]],
) -> GradingResult:
    """Grade ``answers`` against the quiz ``questions``.

    ``questions`` are objects exposing ``id`` and ``expected_answer`` (ORM
    ``Question`` rows in practice). ``answers`` are ``(question_id,
    answer_text)`` pairs in submission order.
    """
    by_id = {q.id: q for q in questions}
    result = GradingResult(total_questions=len(by_id))
    answered: set[uuid.UUID] = set()

    for question_id, answer_text in answers:
        question = by_id.get(question_id)
        if question is None:
            result.unknown_question_ids.append(question_id)
            continue
        answered.add(question_id)
        try:
            verdict = verdict_for(answer_text, question.expected_answer)
        except Exception:
            logger.exception("Could not grade answer for question %s", question_id)
            verdict = AnswerVerdictEnum.INDETERMINATE
        if verdict is AnswerVerdictEnum.CORRECT:
            result.correct_count += 1
        result.answers.append(
            GradedAnswer(
                question_id=question_id,
                answer_text=answer_text if answer_text is not None else "",
                verdict=verdict,
            )
        )

    result.missing_question_ids = [q.id for q in questions if q.id not in answered]
    if result.unknown_question_ids:
        logger.warning(
            "Answers reference %d question(s) outside the quiz: %s",
            len(result.unknown_question_ids),
            result.unknown_question_ids,
        )

    result.score = compute_score(result.correct_count, result.total_questions)
    result.passed = is_passing(
        result.score, result.correct_count, result.total_questions
    )
    return result
