"""Initial schema - users, classes, quizzes, submissions, progress, assistance

Revision ID: 0001_initial
Revises: 
Create Date: 2026-10-17 00:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


_ENUMS = {
    'role_enum': ('STUDENT', 'TEACHER'),
    'submission_status_enum': ('PENDING', 'PASSED', 'FAILED'),
    'final_status_enum': ('PASSED', 'FAILED'),
    'answer_verdict_enum': ('CORRECT', 'INCORRECT', 'INDETERMINATE'),
    'assistance_requirement_enum': (
        'NONE', 'ASSISTANCE_LEVEL1', 'ASSISTANCE_LEVEL2', 'ASSISTANCE_LEVEL3',
    ),
    'next_action_enum': (
        'TAKE_MAIN_QUIZ_NOW',
        'COMPLETE_ASSISTANCE_LEVEL1',
        'COMPLETE_ASSISTANCE_LEVEL2',
        'COMPLETE_ASSISTANCE_LEVEL3',
        'TRY_MAIN_QUIZ_AGAIN',
        'QUIZ_FAILED_MAX_ATTEMPTS',
        'VIEW_ASSISTANCE_LEVEL3',
        'QUIZ_PASSED',
    ),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*_ENUMS[name], name=name, create_type=False)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    # ── Create enums ──────────────────────────────────────────────────
    for name, values in _ENUMS.items():
        labels = ", ".join(f"'{v}'" for v in values)
        op.execute(f"""
            DO $$ BEGIN
                CREATE TYPE {name} AS ENUM ({labels});
            EXCEPTION WHEN duplicate_object THEN null;
            END $$;
        """)

    # ── users / classes ───────────────────────────────────────────────
    op.create_table(
        'users',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('role', _enum('role_enum'), nullable=False, server_default='STUDENT'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'classes',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('teacher_id', sa.UUID(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['teacher_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'class_enrollments',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('class_id', sa.UUID(), nullable=False),
        sa.Column('student_id', sa.UUID(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['class_id'], ['classes.id']),
        sa.ForeignKeyConstraint(['student_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('class_id', 'student_id', name='uq_class_student'),
    )

    # ── quizzes / questions ───────────────────────────────────────────
    op.create_table(
        'quizzes',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('class_id', sa.UUID(), nullable=True),
        sa.Column('teacher_id', sa.UUID(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['class_id'], ['classes.id']),
        sa.ForeignKeyConstraint(['teacher_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'questions',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('quiz_id', sa.UUID(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('expected_answer', sa.Text(), nullable=True),
        sa.Column('image_url', sa.String(1000), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['quiz_id'], ['quizzes.id']),
        sa.PrimaryKeyConstraint('id'),
    )

    # ── main quiz submissions ─────────────────────────────────────────
    op.create_table(
        'quiz_submissions',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('quiz_id', sa.UUID(), nullable=False),
        sa.Column('student_id', sa.UUID(), nullable=False),
        sa.Column('attempt_number', sa.Integer(), nullable=False),
        sa.Column('status', _enum('submission_status_enum'), nullable=False, server_default='PENDING'),
        sa.Column('score', sa.Integer(), nullable=True),
        sa.Column('correct_answers', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_questions', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('feedback', sa.Text(), nullable=True),
        sa.Column('graded_by', sa.UUID(), nullable=True),
        sa.Column('graded_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['quiz_id'], ['quizzes.id']),
        sa.ForeignKeyConstraint(['student_id'], ['users.id']),
        sa.ForeignKeyConstraint(['graded_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('quiz_id', 'student_id', 'attempt_number', name='uq_submission_attempt'),
    )

    op.create_table(
        'submission_answers',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('submission_id', sa.UUID(), nullable=False),
        sa.Column('question_id', sa.UUID(), nullable=True),
        sa.Column('answer_text', sa.Text(), nullable=False, server_default=''),
        sa.Column('verdict', _enum('answer_verdict_enum'), nullable=False),
        sa.Column('score', sa.Integer(), nullable=True),
        sa.Column('feedback', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['submission_id'], ['quiz_submissions.id']),
        sa.ForeignKeyConstraint(['question_id'], ['questions.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )

    # ── progress ──────────────────────────────────────────────────────
    op.create_table(
        'student_quiz_progress',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('student_id', sa.UUID(), nullable=False),
        sa.Column('quiz_id', sa.UUID(), nullable=False),
        sa.Column('current_attempt', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('failed_attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_attempt_passed', sa.Boolean(), nullable=True),
        sa.Column('final_status', _enum('final_status_enum'), nullable=True),
        sa.Column('level1_completed', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('level2_completed', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('level3_completed', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('level1_completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('level2_completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('level3_completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('level1_accessible', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('level2_accessible', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('level3_accessible', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('must_retake_main_quiz', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('can_take_main_quiz', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('next_step', _enum('next_action_enum'), nullable=True),
        sa.Column('assistance_required', _enum('assistance_requirement_enum'), nullable=False, server_default='NONE'),
        sa.Column('override_system_flow', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('manually_assigned_level', _enum('assistance_requirement_enum'), nullable=True),
        sa.Column('level3_access_granted', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('last_submission_id', sa.UUID(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['student_id'], ['users.id']),
        sa.ForeignKeyConstraint(['quiz_id'], ['quizzes.id']),
        sa.ForeignKeyConstraint(['last_submission_id'], ['quiz_submissions.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('student_id', 'quiz_id', name='uq_student_quiz_progress'),
    )

    # ── assistance content ────────────────────────────────────────────
    for level in (1, 2):
        op.create_table(
            f'assistance_level{level}',
            sa.Column('id', sa.UUID(), nullable=False),
            sa.Column('quiz_id', sa.UUID(), nullable=False, unique=True),
            sa.Column('title', sa.String(255), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(['quiz_id'], ['quizzes.id']),
            sa.PrimaryKeyConstraint('id'),
        )

    op.create_table(
        'assistance_level3',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('quiz_id', sa.UUID(), nullable=False, unique=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('pdf_url', sa.String(1000), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['quiz_id'], ['quizzes.id']),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'assistance_level1_questions',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('assistance_id', sa.UUID(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('statement', sa.Text(), nullable=False),
        sa.Column('correct_answer', sa.Boolean(), nullable=False),
        sa.Column('explanation', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['assistance_id'], ['assistance_level1.id']),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'assistance_level2_questions',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('assistance_id', sa.UUID(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('question', sa.Text(), nullable=False),
        sa.Column('hint', sa.Text(), nullable=True),
        sa.Column('correct_answer', sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(['assistance_id'], ['assistance_level2.id']),
        sa.PrimaryKeyConstraint('id'),
    )

    # ── assistance records ────────────────────────────────────────────
    op.create_table(
        'assistance_level1_submissions',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('assistance_id', sa.UUID(), nullable=False),
        sa.Column('student_id', sa.UUID(), nullable=False),
        sa.Column('status', _enum('submission_status_enum'), nullable=False, server_default='PENDING'),
        sa.Column('score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_completed', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['assistance_id'], ['assistance_level1.id']),
        sa.ForeignKeyConstraint(['student_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'assistance_level1_answers',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('submission_id', sa.UUID(), nullable=False),
        sa.Column('question_id', sa.UUID(), nullable=False),
        sa.Column('answer', sa.Boolean(), nullable=False),
        sa.Column('is_correct', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['submission_id'], ['assistance_level1_submissions.id']),
        sa.ForeignKeyConstraint(['question_id'], ['assistance_level1_questions.id']),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'assistance_level2_submissions',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('assistance_id', sa.UUID(), nullable=False),
        sa.Column('student_id', sa.UUID(), nullable=False),
        sa.Column('status', _enum('submission_status_enum'), nullable=False, server_default='PENDING'),
        sa.Column('is_approved', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('is_completed', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('feedback', sa.Text(), nullable=True),
        sa.Column('reviewed_by', sa.UUID(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['assistance_id'], ['assistance_level2.id']),
        sa.ForeignKeyConstraint(['student_id'], ['users.id']),
        sa.ForeignKeyConstraint(['reviewed_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'assistance_level2_answers',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('submission_id', sa.UUID(), nullable=False),
        sa.Column('question_id', sa.UUID(), nullable=False),
        sa.Column('answer_text', sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(['submission_id'], ['assistance_level2_submissions.id']),
        sa.ForeignKeyConstraint(['question_id'], ['assistance_level2_questions.id']),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'assistance_level3_completions',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('assistance_id', sa.UUID(), nullable=False),
        sa.Column('student_id', sa.UUID(), nullable=False),
        sa.Column('is_completed', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('reading_time_seconds', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['assistance_id'], ['assistance_level3.id']),
        sa.ForeignKeyConstraint(['student_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('assistance_id', 'student_id', name='uq_level3_completion'),
    )


def downgrade() -> None:
    for table in (
        'assistance_level3_completions',
        'assistance_level2_answers',
        'assistance_level2_submissions',
        'assistance_level1_answers',
        'assistance_level1_submissions',
        'assistance_level2_questions',
        'assistance_level1_questions',
        'assistance_level3',
        'assistance_level2',
        'assistance_level1',
        'student_quiz_progress',
        'submission_answers',
        'quiz_submissions',
        'questions',
        'quizzes',
        'class_enrollments',
        'classes',
    ):
        op.drop_table(table)
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
    for name in reversed(list(_ENUMS)):
        op.execute(f"DROP TYPE IF EXISTS {name}")
