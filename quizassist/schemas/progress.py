"""Progress & quiz status schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel

from quizassist.db.models import (
    AssistanceRequirementEnum,
    FinalStatusEnum,
    NextActionEnum,
    SubmissionStatusEnum,
)


class ProgressRead(BaseModel):
    student_id: uuid.UUID
    quiz_id: uuid.UUID
    current_attempt: int
    failed_attempts: int
    last_attempt_passed: bool | None = None
    final_status: FinalStatusEnum | None = None
    level1_completed: bool
    level2_completed: bool
    level3_completed: bool
    level1_completed_at: datetime | None = None
    level2_completed_at: datetime | None = None
    level3_completed_at: datetime | None = None
    level1_accessible: bool
    level2_accessible: bool
    level3_accessible: bool
    must_retake_main_quiz: bool
    can_take_main_quiz: bool
    next_step: NextActionEnum | None = None
    assistance_required: AssistanceRequirementEnum
    override_system_flow: bool
    manually_assigned_level: AssistanceRequirementEnum | None = None
    level3_access_granted: bool
    updated_at: datetime

    model_config = {"from_attributes": True}


class MainQuizAccessRead(BaseModel):
    allow: bool
    must_retake: bool = False
    reason: str | None = None
    permanent: bool = False
    required_level: int | None = None

    model_config = {"from_attributes": True}


class AssistanceAccessRead(BaseModel):
    level: int
    available: bool
    allow: bool
    is_completed: bool = False
    reason: str | None = None


class LatestSubmissionRead(BaseModel):
    id: uuid.UUID
    attempt_number: int
    status: SubmissionStatusEnum
    score: int | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class QuizStatusRead(BaseModel):
    """GET /api/progress/quizzes/{quiz_id}"""

    quiz_id: uuid.UUID
    student_id: uuid.UUID
    state: str
    next_action: NextActionEnum
    main_quiz: MainQuizAccessRead
    assistance: list[AssistanceAccessRead]
    progress: ProgressRead
    latest_submission: LatestSubmissionRead | None = None


class StartResponse(BaseModel):
    next_action: NextActionEnum
    must_retake: bool
    progress: ProgressRead
