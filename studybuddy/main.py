"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

import redis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse

from studybuddy.config import settings
from studybuddy.api import (
    health_router,
    users_router,
    quizzes_router,
    attempts_router,
    progress_router,
    goals_router,
)
from studybuddy.core.errors import StudyBuddyError
from studybuddy.db.session import Database
from studybuddy.schemas.common import ErrorResponse
from studybuddy.services.genai_cache import GenAICache
from studybuddy.services.genai_client import GenAIClient
from studybuddy.services.rate_limiter import RateLimiter

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s  %(name)-25s  %(levelname)-8s  %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 StudyBuddy backend starting…")

    database = Database(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
    if settings.AUTO_CREATE_TABLES:
        database.create_all()
    app.state.database = database

    r = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)
    app.state.redis = r
    app.state.genai_cache = GenAICache(r)
    app.state.rate_limiter = RateLimiter(r)

    app.state.genai_client = GenAIClient()
    if not app.state.genai_client.configured:
        logger.warning("GOOGLE_API_KEY not set; generation endpoints will fail")

    yield

    r.close()
    database.dispose()
    logger.info("✅ StudyBuddy backend shut down")


app = FastAPI(
    title="StudyBuddy API",
    description="Quiz practice and learning-progress tracking",
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


@app.exception_handler(StudyBuddyError)
async def studybuddy_error_handler(request: Request, exc: StudyBuddyError):
    if exc.status_code >= 500:
        logger.warning("%s on %s: %s", exc.error_code, request.url.path, exc.message)
    body = ErrorResponse(
        error_code=exc.error_code, message=exc.message, details=exc.details
    )
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


# ── Routers ───────────────────────────────────────────────────────────────────

app.include_router(health_router, tags=["Health"])
app.include_router(users_router, prefix="/api/users", tags=["Users"])
app.include_router(quizzes_router, prefix="/api/quizzes", tags=["Quizzes"])
app.include_router(attempts_router, prefix="/api/attempts", tags=["Attempts"])
app.include_router(progress_router, prefix="/api/progress", tags=["Progress"])
app.include_router(goals_router, prefix="/api/goals", tags=["Goals"])


@app.get("/")
async def root():
    return {
        "name": "StudyBuddy API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }
