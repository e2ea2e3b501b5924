"""Assistance level authoring and submission schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from quizassist.db.models import NextActionEnum, SubmissionStatusEnum
from quizassist.schemas.progress import ProgressRead


# ── Authoring ─────────────────────────────────────────────────────────────────


class Level1QuestionIn(BaseModel):
    statement: str = Field(min_length=1)
    correct_answer: bool
    explanation: str | None = None


class Level1Upsert(BaseModel):
    """PUT /api/quizzes/{id}/assistance/1"""

    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    questions: list[Level1QuestionIn] = Field(min_length=1)


class Level2QuestionIn(BaseModel):
    question: str = Field(min_length=1)
    hint: str | None = None
    correct_answer: str = Field(min_length=1)


class Level2Upsert(BaseModel):
    """PUT /api/quizzes/{id}/assistance/2"""

    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    questions: list[Level2QuestionIn] = Field(min_length=1)


class Level3Upsert(BaseModel):
    """PUT /api/quizzes/{id}/assistance/3

    ``pdf_url`` is a URL returned by the upload endpoint.
    """

    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    pdf_url: str = Field(min_length=1, max_length=1000)


# ── Reads ─────────────────────────────────────────────────────────────────────


class Level1QuestionRead(BaseModel):
    id: uuid.UUID
    position: int
    statement: str
    correct_answer: bool
    explanation: str | None = None

    model_config = {"from_attributes": True}


class StudentLevel1QuestionRead(BaseModel):
    id: uuid.UUID
    position: int
    statement: str

    model_config = {"from_attributes": True}


class Level2QuestionRead(BaseModel):
    id: uuid.UUID
    position: int
    question: str
    hint: str | None = None
    correct_answer: str

    model_config = {"from_attributes": True}


class StudentLevel2QuestionRead(BaseModel):
    id: uuid.UUID
    position: int
    question: str
    hint: str | None = None

    model_config = {"from_attributes": True}


class AssistanceRead(BaseModel):
    id: uuid.UUID
    quiz_id: uuid.UUID
    level: int
    title: str
    description: str | None = None
    is_completed: bool | None = None


class Level1Read(AssistanceRead):
    questions: list[Level1QuestionRead] = []


class StudentLevel1Read(AssistanceRead):
    questions: list[StudentLevel1QuestionRead] = []


class Level2Read(AssistanceRead):
    questions: list[Level2QuestionRead] = []


class StudentLevel2Read(AssistanceRead):
    questions: list[StudentLevel2QuestionRead] = []


class Level3Read(AssistanceRead):
    pdf_url: str


# ── Submissions ───────────────────────────────────────────────────────────────


class Level1AnswerIn(BaseModel):
    question_id: uuid.UUID
    answer: bool


class Level1Submit(BaseModel):
    """POST /api/quizzes/{id}/assistance/1/submit"""

    answers: list[Level1AnswerIn] = Field(min_length=1)


class Level1ResultRead(BaseModel):
    question_id: uuid.UUID
    answer: bool
    is_correct: bool
    explanation: str | None = None


class Level1SubmitResponse(BaseModel):
    submission_id: uuid.UUID
    score: int
    passed: bool
    status: SubmissionStatusEnum
    next_action: NextActionEnum
    results: list[Level1ResultRead] = []


class Level1Complete(BaseModel):
    submission_id: uuid.UUID


class Level2AnswerIn(BaseModel):
    question_id: uuid.UUID
    answer_text: str = Field(min_length=1)


class Level2Submit(BaseModel):
    """POST /api/quizzes/{id}/assistance/2/submit"""

    answers: list[Level2AnswerIn] = Field(min_length=1)


class Level2AnswerRead(BaseModel):
    id: uuid.UUID
    question_id: uuid.UUID
    answer_text: str

    model_config = {"from_attributes": True}


class Level2SubmissionRead(BaseModel):
    id: uuid.UUID
    assistance_id: uuid.UUID
    student_id: uuid.UUID
    status: SubmissionStatusEnum
    is_approved: bool
    is_completed: bool
    feedback: str | None = None
    reviewed_at: datetime | None = None
    created_at: datetime
    answers: list[Level2AnswerRead] = []

    model_config = {"from_attributes": True}


class Level2Review(BaseModel):
    """POST /api/grading/level2/{submission_id}

    ``is_approved`` null records feedback only.
    """

    is_approved: bool | None = None
    feedback: str | None = None
    go_to_level3: bool = False


class Level3Complete(BaseModel):
    """POST /api/quizzes/{id}/assistance/3/complete"""

    assistance_id: uuid.UUID | None = None
    reading_time: int | None = Field(default=None, ge=0)


class CompletionResponse(BaseModel):
    level: int
    newly_completed: bool
    next_action: NextActionEnum
    progress: ProgressRead
