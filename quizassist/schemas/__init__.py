"""Pydantic schemas, re-exported for convenience."""

from quizassist.schemas.common import ErrorResponse, SuccessResponse  # noqa: F401
from quizassist.schemas.user import (  # noqa: F401
    UserCreate,
    UserLogin,
    UserRead,
    Token,
)
from quizassist.schemas.quiz import (  # noqa: F401
    QuizCreate,
    QuizRead,
    QuizDetail,
    StudentQuizRead,
)
from quizassist.schemas.submission import (  # noqa: F401
    MainQuizSubmit,
    SubmitResponse,
    SubmissionRead,
    SubmissionDetail,
)
from quizassist.schemas.progress import (  # noqa: F401
    ProgressRead,
    QuizStatusRead,
)
