"""Main quiz submission schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from quizassist.db.models import (
    AnswerVerdictEnum,
    NextActionEnum,
    SubmissionStatusEnum,
)


class AnswerIn(BaseModel):
    question_id: uuid.UUID
    answer: str = ""


class MainQuizSubmit(BaseModel):
    """POST /api/quizzes/{id}/submit"""

    answers: list[AnswerIn] = Field(min_length=1)


class GradingInconsistencies(BaseModel):
    unknown_question_ids: list[uuid.UUID] = []
    missing_question_ids: list[uuid.UUID] = []


class SubmitResponse(BaseModel):
    submission_id: uuid.UUID
    attempt_number: int
    score: int
    correct_answers: int
    total_questions: int
    passed: bool
    status: SubmissionStatusEnum
    next_action: NextActionEnum
    failed_attempts: int
    inconsistencies: GradingInconsistencies


class SubmissionAnswerRead(BaseModel):
    id: uuid.UUID
    question_id: uuid.UUID | None = None
    answer_text: str
    verdict: AnswerVerdictEnum
    is_correct: bool | None = None
    score: int | None = None
    feedback: str | None = None

    model_config = {"from_attributes": True}


class SubmissionRead(BaseModel):
    id: uuid.UUID
    quiz_id: uuid.UUID
    student_id: uuid.UUID
    attempt_number: int
    status: SubmissionStatusEnum
    score: int | None = None
    correct_answers: int
    total_questions: int
    feedback: str | None = None
    graded_at: datetime | None = None
    graded_by: uuid.UUID | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class SubmissionDetail(SubmissionRead):
    answers: list[SubmissionAnswerRead] = []
