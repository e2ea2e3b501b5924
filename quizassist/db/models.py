"""SQLAlchemy ORM models for the quiz + assistance platform.

Tables
------
- users                        – student / teacher accounts
- classes, class_enrollments   – teacher‑owned classes and their students
- quizzes, questions           – main quizzes authored by a teacher
- quiz_submissions             – one row per main‑quiz attempt
- submission_answers           – per‑question answers + auto‑grade verdict
- student_quiz_progress        – per‑student per‑quiz progression state
- assistance_level{1,2,3}      – remediation content attached to a quiz
- assistance_level1_*          – true/false recap submissions
- assistance_level2_*          – essay submissions reviewed by the teacher
- assistance_level3_completions – reading confirmations
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from quizassist.db.session import Base


# ── helpers ───────────────────────────────────────────────────────────────────


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _uuid() -> uuid.UUID:
    return uuid.uuid4()


# ── Enums (stored as VARCHAR via SQLAlchemy Enum) ─────────────────────────────


class RoleEnum(str, enum.Enum):
    STUDENT = "student"
    TEACHER = "teacher"


class SubmissionStatusEnum(str, enum.Enum):
    PENDING = "PENDING"
    PASSED = "PASSED"
    FAILED = "FAILED"


class FinalStatusEnum(str, enum.Enum):
    PASSED = "PASSED"
    FAILED = "FAILED"


class AnswerVerdictEnum(str, enum.Enum):
    """Auto‑grade outcome for one answer.

    INDETERMINATE means the question has no expected answer, so the
    auto‑grader could not decide. It is never the same thing as INCORRECT.
    """

    CORRECT = "CORRECT"
    INCORRECT = "INCORRECT"
    INDETERMINATE = "INDETERMINATE"

    @property
    def as_bool(self) -> bool | None:
        if self is AnswerVerdictEnum.INDETERMINATE:
            return None
        return self is AnswerVerdictEnum.CORRECT


class AssistanceRequirementEnum(str, enum.Enum):
    NONE = "NONE"
    ASSISTANCE_LEVEL1 = "ASSISTANCE_LEVEL1"
    ASSISTANCE_LEVEL2 = "ASSISTANCE_LEVEL2"
    ASSISTANCE_LEVEL3 = "ASSISTANCE_LEVEL3"

    @property
    def level(self) -> int | None:
        if self is AssistanceRequirementEnum.NONE:
            return None
        return int(self.value[-1])

    @classmethod
    def for_level(cls, level: int | None) -> "AssistanceRequirementEnum":
        if level is None:
            return cls.NONE
        return cls(f"ASSISTANCE_LEVEL{level}")


class NextActionEnum(str, enum.Enum):
    """Routing tokens handed back to callers after every progression step."""

    TAKE_MAIN_QUIZ_NOW = "TAKE_MAIN_QUIZ_NOW"
    COMPLETE_ASSISTANCE_LEVEL1 = "COMPLETE_ASSISTANCE_LEVEL1"
    COMPLETE_ASSISTANCE_LEVEL2 = "COMPLETE_ASSISTANCE_LEVEL2"
    COMPLETE_ASSISTANCE_LEVEL3 = "COMPLETE_ASSISTANCE_LEVEL3"
    TRY_MAIN_QUIZ_AGAIN = "TRY_MAIN_QUIZ_AGAIN"
    QUIZ_FAILED_MAX_ATTEMPTS = "QUIZ_FAILED_MAX_ATTEMPTS"
    VIEW_ASSISTANCE_LEVEL3 = "VIEW_ASSISTANCE_LEVEL3"
    QUIZ_PASSED = "QUIZ_PASSED"


# ── Users ─────────────────────────────────────────────────────────────────────


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=_uuid)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255))
    full_name: Mapped[str] = mapped_column(String(255))
    role: Mapped[RoleEnum] = mapped_column(
        Enum(RoleEnum, name="role_enum"), default=RoleEnum.STUDENT
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    taught_classes: Mapped[list["Classroom"]] = relationship(back_populates="teacher")
    enrollments: Mapped[list["ClassEnrollment"]] = relationship(
        back_populates="student", cascade="all, delete-orphan"
    )


# ── Classes ───────────────────────────────────────────────────────────────────


class Classroom(Base):
    __tablename__ = "classes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(200))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    teacher_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    teacher: Mapped["User"] = relationship(back_populates="taught_classes")
    enrollments: Mapped[list["ClassEnrollment"]] = relationship(
        back_populates="classroom", cascade="all, delete-orphan"
    )
    quizzes: Mapped[list["Quiz"]] = relationship(back_populates="classroom")


class ClassEnrollment(Base):
    __tablename__ = "class_enrollments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=_uuid)
    class_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("classes.id"))
    student_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )

    classroom: Mapped["Classroom"] = relationship(back_populates="enrollments")
    student: Mapped["User"] = relationship(back_populates="enrollments")

    __table_args__ = (
        UniqueConstraint("class_id", "student_id", name="uq_class_student"),
    )


# ── Quizzes ───────────────────────────────────────────────────────────────────


class Quiz(Base):
    __tablename__ = "quizzes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=_uuid)
    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    class_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("classes.id"), nullable=True
    )
    teacher_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    classroom: Mapped["Classroom | None"] = relationship(back_populates="quizzes")
    teacher: Mapped["User"] = relationship("User")
    questions: Mapped[list["Question"]] = relationship(
        back_populates="quiz",
        cascade="all, delete-orphan",
        order_by="Question.position",
    )
    assistance_level1: Mapped["AssistanceLevel1 | None"] = relationship(
        back_populates="quiz", uselist=False, cascade="all, delete-orphan"
    )
    assistance_level2: Mapped["AssistanceLevel2 | None"] = relationship(
        back_populates="quiz", uselist=False, cascade="all, delete-orphan"
    )
    assistance_level3: Mapped["AssistanceLevel3 | None"] = relationship(
        back_populates="quiz", uselist=False, cascade="all, delete-orphan"
    )
    submissions: Mapped[list["QuizSubmission"]] = relationship(
        back_populates="quiz", cascade="all, delete-orphan"
    )
    progress_records: Mapped[list["StudentQuizProgress"]] = relationship(
        back_populates="quiz", cascade="all, delete-orphan"
    )

    @property
    def available_assistance_levels(self) -> frozenset[int]:
        """Assistance levels the teacher has configured for this quiz."""
        configured = (
            (1, self.assistance_level1),
            (2, self.assistance_level2),
            (3, self.assistance_level3),
        )
        return frozenset(level for level, item in configured if item is not None)


class Question(Base):
    __tablename__ = "questions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=_uuid)
    quiz_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("quizzes.id"))
    position: Mapped[int] = mapped_column(Integer, default=0)
    text: Mapped[str] = mapped_column(Text)
    expected_answer: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )

    quiz: Mapped["Quiz"] = relationship(back_populates="questions")


# ── Main quiz submissions ─────────────────────────────────────────────────────


class QuizSubmission(Base):
    __tablename__ = "quiz_submissions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=_uuid)
    quiz_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("quizzes.id"))
    student_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"))
    attempt_number: Mapped[int] = mapped_column(Integer)
    status: Mapped[SubmissionStatusEnum] = mapped_column(
        Enum(SubmissionStatusEnum, name="submission_status_enum"),
        default=SubmissionStatusEnum.PENDING,
    )
    score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    correct_answers: Mapped[int] = mapped_column(Integer, default=0)
    total_questions: Mapped[int] = mapped_column(Integer, default=0)
    feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    graded_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=True
    )
    graded_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    quiz: Mapped["Quiz"] = relationship(back_populates="submissions")
    student: Mapped["User"] = relationship("User", foreign_keys=[student_id])
    answers: Mapped[list["SubmissionAnswer"]] = relationship(
        back_populates="submission", cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint(
            "quiz_id", "student_id", "attempt_number", name="uq_submission_attempt"
        ),
    )


class SubmissionAnswer(Base):
    """One answer within a main‑quiz submission.

    ``verdict`` is written once by the auto‑grader. ``score`` and
    ``feedback`` belong to the teacher and never feed back into it.
    """

    __tablename__ = "submission_answers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=_uuid)
    submission_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("quiz_submissions.id")
    )
    question_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("questions.id", ondelete="SET NULL"), nullable=True
    )
    answer_text: Mapped[str] = mapped_column(Text, default="")
    verdict: Mapped[AnswerVerdictEnum] = mapped_column(
        Enum(AnswerVerdictEnum, name="answer_verdict_enum")
    )
    score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    feedback: Mapped[str | None] = mapped_column(Text, nullable=True)

    submission: Mapped["QuizSubmission"] = relationship(back_populates="answers")
    question: Mapped["Question | None"] = relationship("Question")

    @validates("verdict")
    def _verdict_is_write_once(self, key, value):
        current = self.__dict__.get("verdict")
        if current is not None and current != value:
            raise ValueError("auto-grade verdict is immutable once recorded")
        return value

    @property
    def is_correct(self) -> bool | None:
        return self.verdict.as_bool if self.verdict is not None else None


# ── Progress (per‑student, per‑quiz progression state) ────────────────────────


class StudentQuizProgress(Base):
    __tablename__ = "student_quiz_progress"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=_uuid)
    student_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"))
    quiz_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("quizzes.id"))

    current_attempt: Mapped[int] = mapped_column(Integer, default=0)
    failed_attempts: Mapped[int] = mapped_column(Integer, default=0)
    last_attempt_passed: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    final_status: Mapped[FinalStatusEnum | None] = mapped_column(
        Enum(FinalStatusEnum, name="final_status_enum"), nullable=True
    )

    level1_completed: Mapped[bool] = mapped_column(Boolean, default=False)
    level2_completed: Mapped[bool] = mapped_column(Boolean, default=False)
    level3_completed: Mapped[bool] = mapped_column(Boolean, default=False)
    level1_completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    level2_completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    level3_completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    level1_accessible: Mapped[bool] = mapped_column(Boolean, default=False)
    level2_accessible: Mapped[bool] = mapped_column(Boolean, default=False)
    level3_accessible: Mapped[bool] = mapped_column(Boolean, default=False)

    must_retake_main_quiz: Mapped[bool] = mapped_column(Boolean, default=False)
    can_take_main_quiz: Mapped[bool] = mapped_column(Boolean, default=True)
    next_step: Mapped[NextActionEnum | None] = mapped_column(
        Enum(NextActionEnum, name="next_action_enum"), nullable=True
    )
    assistance_required: Mapped[AssistanceRequirementEnum] = mapped_column(
        Enum(AssistanceRequirementEnum, name="assistance_requirement_enum"),
        default=AssistanceRequirementEnum.NONE,
    )

    # Teacher overrides
    override_system_flow: Mapped[bool] = mapped_column(Boolean, default=False)
    manually_assigned_level: Mapped[AssistanceRequirementEnum | None] = mapped_column(
        Enum(
            AssistanceRequirementEnum,
            name="assistance_requirement_enum",
            create_constraint=False,
        ),
        nullable=True,
    )
    level3_access_granted: Mapped[bool] = mapped_column(Boolean, default=False)

    last_submission_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("quiz_submissions.id"), nullable=True
    )
    version_id: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    quiz: Mapped["Quiz"] = relationship(back_populates="progress_records")
    student: Mapped["User"] = relationship("User")

    __table_args__ = (
        UniqueConstraint("student_id", "quiz_id", name="uq_student_quiz_progress"),
    )
    __mapper_args__ = {"version_id_col": version_id}

    def level_completed(self, level: int) -> bool:
        return bool(getattr(self, f"level{level}_completed"))

    def level_accessible(self, level: int) -> bool:
        return bool(getattr(self, f"level{level}_accessible"))

    @property
    def manual_override_level(self) -> AssistanceRequirementEnum | None:
        """The teacher's manual assignment, when it is in force."""
        if self.override_system_flow and self.manually_assigned_level is not None:
            return self.manually_assigned_level
        return None


# ── Assistance content ────────────────────────────────────────────────────────


class AssistanceLevel1(Base):
    """True/false recap shown after the first failed attempt."""

    __tablename__ = "assistance_level1"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=_uuid)
    quiz_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("quizzes.id"), unique=True
    )
    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    quiz: Mapped["Quiz"] = relationship(back_populates="assistance_level1")
    questions: Mapped[list["AssistanceLevel1Question"]] = relationship(
        back_populates="assistance",
        cascade="all, delete-orphan",
        order_by="AssistanceLevel1Question.position",
    )
    submissions: Mapped[list["AssistanceLevel1Submission"]] = relationship(
        back_populates="assistance", cascade="all, delete-orphan"
    )


class AssistanceLevel1Question(Base):
    __tablename__ = "assistance_level1_questions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=_uuid)
    assistance_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("assistance_level1.id")
    )
    position: Mapped[int] = mapped_column(Integer, default=0)
    statement: Mapped[str] = mapped_column(Text)
    correct_answer: Mapped[bool] = mapped_column(Boolean)
    explanation: Mapped[str | None] = mapped_column(Text, nullable=True)

    assistance: Mapped["AssistanceLevel1"] = relationship(back_populates="questions")


class AssistanceLevel2(Base):
    """Short essay questions reviewed by the teacher."""

    __tablename__ = "assistance_level2"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=_uuid)
    quiz_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("quizzes.id"), unique=True
    )
    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    quiz: Mapped["Quiz"] = relationship(back_populates="assistance_level2")
    questions: Mapped[list["AssistanceLevel2Question"]] = relationship(
        back_populates="assistance",
        cascade="all, delete-orphan",
        order_by="AssistanceLevel2Question.position",
    )
    submissions: Mapped[list["AssistanceLevel2Submission"]] = relationship(
        back_populates="assistance", cascade="all, delete-orphan"
    )


class AssistanceLevel2Question(Base):
    __tablename__ = "assistance_level2_questions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=_uuid)
    assistance_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("assistance_level2.id")
    )
    position: Mapped[int] = mapped_column(Integer, default=0)
    question: Mapped[str] = mapped_column(Text)
    hint: Mapped[str | None] = mapped_column(Text, nullable=True)
    correct_answer: Mapped[str] = mapped_column(Text)

    assistance: Mapped["AssistanceLevel2"] = relationship(back_populates="questions")


class AssistanceLevel3(Base):
    """Reference reading (PDF) the student confirms having read."""

    __tablename__ = "assistance_level3"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=_uuid)
    quiz_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("quizzes.id"), unique=True
    )
    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    pdf_url: Mapped[str] = mapped_column(String(1000))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    quiz: Mapped["Quiz"] = relationship(back_populates="assistance_level3")
    completions: Mapped[list["AssistanceLevel3Completion"]] = relationship(
        back_populates="assistance", cascade="all, delete-orphan"
    )


# ── Assistance records ────────────────────────────────────────────────────────


class AssistanceLevel1Submission(Base):
    __tablename__ = "assistance_level1_submissions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=_uuid)
    assistance_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("assistance_level1.id")
    )
    student_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"))
    status: Mapped[SubmissionStatusEnum] = mapped_column(
        Enum(
            SubmissionStatusEnum,
            name="submission_status_enum",
            create_constraint=False,
        ),
        default=SubmissionStatusEnum.PENDING,
    )
    score: Mapped[int] = mapped_column(Integer, default=0)
    is_completed: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )

    assistance: Mapped["AssistanceLevel1"] = relationship(back_populates="submissions")
    answers: Mapped[list["AssistanceLevel1Answer"]] = relationship(
        back_populates="submission", cascade="all, delete-orphan"
    )


class AssistanceLevel1Answer(Base):
    __tablename__ = "assistance_level1_answers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=_uuid)
    submission_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("assistance_level1_submissions.id")
    )
    question_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("assistance_level1_questions.id")
    )
    answer: Mapped[bool] = mapped_column(Boolean)
    is_correct: Mapped[bool] = mapped_column(Boolean)

    submission: Mapped["AssistanceLevel1Submission"] = relationship(
        back_populates="answers"
    )


class AssistanceLevel2Submission(Base):
    __tablename__ = "assistance_level2_submissions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=_uuid)
    assistance_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("assistance_level2.id")
    )
    student_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"))
    status: Mapped[SubmissionStatusEnum] = mapped_column(
        Enum(
            SubmissionStatusEnum,
            name="submission_status_enum",
            create_constraint=False,
        ),
        default=SubmissionStatusEnum.PENDING,
    )
    is_approved: Mapped[bool] = mapped_column(Boolean, default=False)
    is_completed: Mapped[bool] = mapped_column(Boolean, default=False)
    feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=True
    )
    reviewed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    assistance: Mapped["AssistanceLevel2"] = relationship(back_populates="submissions")
    student: Mapped["User"] = relationship("User", foreign_keys=[student_id])
    answers: Mapped[list["AssistanceLevel2Answer"]] = relationship(
        back_populates="submission", cascade="all, delete-orphan"
    )


class AssistanceLevel2Answer(Base):
    __tablename__ = "assistance_level2_answers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=_uuid)
    submission_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("assistance_level2_submissions.id")
    )
    question_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("assistance_level2_questions.id")
    )
    answer_text: Mapped[str] = mapped_column(Text)

    submission: Mapped["AssistanceLevel2Submission"] = relationship(
        back_populates="answers"
    )
    question: Mapped["AssistanceLevel2Question"] = relationship(
        "AssistanceLevel2Question"
    )


class AssistanceLevel3Completion(Base):
    __tablename__ = "assistance_level3_completions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=_uuid)
    assistance_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("assistance_level3.id")
    )
    student_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"))
    is_completed: Mapped[bool] = mapped_column(Boolean, default=True)
    reading_time_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    assistance: Mapped["AssistanceLevel3"] = relationship(back_populates="completions")

    __table_args__ = (
        UniqueConstraint("assistance_id", "student_id", name="uq_level3_completion"),
    )
