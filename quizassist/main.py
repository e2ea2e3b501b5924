"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse

from quizassist.config import settings
from quizassist.core.errors import QuizAssistError
from quizassist.schemas.common import ErrorResponse
from quizassist.api import (
    health_router,
    users_router,
    classes_router,
    quizzes_router,
    assistance_router,
    attempts_router,
    progress_router,
    grading_router,
    uploads_router,
)

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s  %(name)-25s  %(levelname)-8s  %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("quizassist backend starting (env=%s)", settings.ENV)
    yield
    logger.info("quizassist backend shut down")


app = FastAPI(
    title="QuizAssist API",
    description="Quizzes with tiered assistance and teacher grading",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Middleware ─────────────────────────────────────────────────────────────────

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.ALLOWED_HOSTS)

# ── Errors ────────────────────────────────────────────────────────────────────


@app.exception_handler(QuizAssistError)
async def quizassist_error_handler(request: Request, exc: QuizAssistError):
    if exc.status_code >= 409:
        logger.warning("%s on %s %s: %s", exc.error_code, request.method, request.url.path, exc.message)
    body = ErrorResponse(
        error_code=exc.error_code,
        message=exc.message,
        details={**exc.details, "permanent": exc.permanent},
    )
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(mode="json"))


# ── Routers ───────────────────────────────────────────────────────────────────

app.include_router(health_router, tags=["Health"])
app.include_router(users_router, prefix="/api/users", tags=["Users"])
app.include_router(classes_router, prefix="/api/classes", tags=["Classes"])
app.include_router(quizzes_router, prefix="/api/quizzes", tags=["Quizzes"])
app.include_router(assistance_router, prefix="/api/quizzes", tags=["Assistance"])
app.include_router(attempts_router, prefix="/api/attempts", tags=["Attempts"])
app.include_router(progress_router, prefix="/api/progress", tags=["Progress"])
app.include_router(grading_router, prefix="/api/grading", tags=["Grading"])
app.include_router(uploads_router, prefix="/api/uploads", tags=["Uploads"])


@app.get("/")
async def root():
    return {
        "name": "QuizAssist API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }
