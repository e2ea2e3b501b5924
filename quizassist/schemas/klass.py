"""Class & enrollment schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, model_validator


class ClassCreate(BaseModel):
    """POST /api/classes"""

    name: str = Field(min_length=1, max_length=200)
    description: str | None = None


class ClassUpdate(BaseModel):
    """PATCH /api/classes/{id}"""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None


class EnrollRequest(BaseModel):
    """POST /api/classes/{id}/students (by id or by email)"""

    student_id: uuid.UUID | None = None
    email: EmailStr | None = None

    @model_validator(mode="after")
    def _one_of(self):
        if (self.student_id is None) == (self.email is None):
            raise ValueError("Provide exactly one of student_id or email")
        return self


class StudentSummary(BaseModel):
    id: uuid.UUID
    email: str
    full_name: str

    model_config = {"from_attributes": True}


class ClassRead(BaseModel):
    id: uuid.UUID
    name: str
    description: str | None = None
    teacher_id: uuid.UUID
    student_count: int = 0
    created_at: datetime

    model_config = {"from_attributes": True}


class ClassDetail(ClassRead):
    students: list[StudentSummary] = []
