"""Domain error taxonomy.

Every error carries an HTTP status, a machine readable ``error_code`` and a
``permanent`` flag so callers can tell "not yet" apart from "never".
The exception handler in ``quizassist.main`` renders them with the shared
``ErrorResponse`` envelope.
"""

from typing import Any


class QuizAssistError(Exception):
    status_code: int = 400
    error_code: str = "QUIZASSIST_ERROR"
    permanent: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(QuizAssistError):
    status_code = 400
    error_code = "VALIDATION_ERROR"


class NotFoundError(QuizAssistError):
    status_code = 404
    error_code = "NOT_FOUND"


class AuthorizationError(QuizAssistError):
    status_code = 403
    error_code = "FORBIDDEN"


class AttemptLimitExceeded(QuizAssistError):
    """The student can never take this quiz again."""

    status_code = 403
    error_code = "ATTEMPT_LIMIT_EXCEEDED"
    permanent = True

    ALREADY_PASSED = "ALREADY_PASSED"
    MAX_FAILED_ATTEMPTS = "MAX_FAILED_ATTEMPTS"

    def __init__(self, reason: str, message: str | None = None):
        if message is None:
            message = (
                "Quiz already passed"
                if reason == self.ALREADY_PASSED
                else "Maximum number of failed attempts reached"
            )
        super().__init__(message, {"reason": reason})
        self.reason = reason


class NotYetAllowed(QuizAssistError):
    """Gate denial the student can resolve (e.g. by finishing assistance)."""

    status_code = 403
    error_code = "NOT_YET_ALLOWED"


class GradingInconsistency(QuizAssistError):
    status_code = 422
    error_code = "GRADING_INCONSISTENCY"


class ConcurrencyConflict(QuizAssistError):
    """Concurrent write lost twice in a row; safe to retry."""

    status_code = 409
    error_code = "CONCURRENCY_CONFLICT"


class InvalidTransition(QuizAssistError):
    """An event tried to move a student's progress along an edge that does not exist."""

    status_code = 409
    error_code = "INVALID_TRANSITION"

    def __init__(self, event, source, target):
        super().__init__(
            f"{event.value}: {source.value} -> {target.value} is not allowed",
            {"event": event.value, "source": source.value, "target": target.value},
        )
        self.event = event
        self.source = source
        self.target = target
