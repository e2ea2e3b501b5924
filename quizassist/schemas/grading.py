"""Teacher grading & override schemas."""

import uuid

from pydantic import BaseModel, Field

from quizassist.db.models import AssistanceRequirementEnum
from quizassist.schemas.submission import SubmissionDetail
from quizassist.services.grading import StudentStatusOverride


class AnswerScoreIn(BaseModel):
    answer_id: uuid.UUID
    score: int | None = Field(default=None, ge=0, le=100)
    feedback: str | None = None


class GradeRequest(BaseModel):
    """POST /api/grading/submissions/{id}"""

    scores: list[AnswerScoreIn] = []
    feedback: str | None = None


class GradeResponse(BaseModel):
    teacher_percentage: float
    auto_correct_percentage: float
    passed: bool
    submission: SubmissionDetail


class StatusOverrideRequest(BaseModel):
    status: StudentStatusOverride


class LevelOverrideRequest(BaseModel):
    override_system_flow: bool
    manually_assigned_level: AssistanceRequirementEnum | None = None


class Level3GrantRequest(BaseModel):
    granted: bool = True
