"""Quiz & question schemas.

Teachers get ``QuizDetail`` (with expected answers); students get
``StudentQuizRead``, which never carries them.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class QuestionCreate(BaseModel):
    text: str = Field(min_length=1)
    expected_answer: str | None = None
    image_url: str | None = None
    position: int | None = None


class QuestionUpdate(BaseModel):
    text: str | None = Field(default=None, min_length=1)
    expected_answer: str | None = None
    image_url: str | None = None
    position: int | None = None


class QuizCreate(BaseModel):
    """POST /api/quizzes"""

    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    class_id: uuid.UUID | None = None
    questions: list[QuestionCreate] = []


class QuizUpdate(BaseModel):
    """PATCH /api/quizzes/{id}"""

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    class_id: uuid.UUID | None = None


class QuestionRead(BaseModel):
    id: uuid.UUID
    position: int
    text: str
    expected_answer: str | None = None
    image_url: str | None = None

    model_config = {"from_attributes": True}


class StudentQuestionRead(BaseModel):
    id: uuid.UUID
    position: int
    text: str
    image_url: str | None = None

    model_config = {"from_attributes": True}


class QuizRead(BaseModel):
    id: uuid.UUID
    title: str
    description: str | None = None
    class_id: uuid.UUID | None = None
    teacher_id: uuid.UUID
    question_count: int = 0
    available_assistance_levels: list[int] = []
    created_at: datetime

    model_config = {"from_attributes": True}


class QuizDetail(QuizRead):
    questions: list[QuestionRead] = []


class StudentQuizRead(QuizRead):
    questions: list[StudentQuestionRead] = []
