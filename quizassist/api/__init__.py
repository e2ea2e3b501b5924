"""API route package: imports all routers for main.py."""

from quizassist.api.health import router as health_router  # noqa: F401
from quizassist.api.users import router as users_router  # noqa: F401
from quizassist.api.classes import router as classes_router  # noqa: F401
from quizassist.api.quizzes import router as quizzes_router  # noqa: F401
from quizassist.api.assistance import router as assistance_router  # noqa: F401
from quizassist.api.attempts import router as attempts_router  # noqa: F401
from quizassist.api.progress import router as progress_router  # noqa: F401
from quizassist.api.grading import router as grading_router  # noqa: F401
from quizassist.api.uploads import router as uploads_router  # noqa: F401
