"""Shared pytest fixtures for backend tests."""

import os
import uuid

# Settings are read at import time; point them at throwaway backends first.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ["GENAI_CACHE_ENABLED"] = "false"
os.environ["RATE_LIMIT_GENAI_RPM"] = "0"
os.environ["GOOGLE_API_KEY"] = ""
os.environ["STUDY_TIMEZONE"] = "UTC"

import pytest
from unittest.mock import MagicMock
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from studybuddy.db.models import Quiz, QuizQuestion, User
from studybuddy.db.session import Database, get_db
from studybuddy.main import app
from studybuddy.services.genai_cache import GenAICache
from studybuddy.services.genai_client import GenAIClient
from studybuddy.services.rate_limiter import RateLimiter


@pytest.fixture(scope="function")
def database():
    """A fresh in-memory SQLite database per test."""
    database = Database(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,  # one shared connection keeps the in-memory DB alive
    )
    database.create_all()
    yield database
    database.dispose()


@pytest.fixture(scope="function")
def db(database: Database):
    """Get a DB session for each test."""
    session = database.session()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def genai_client():
    return MagicMock(spec=GenAIClient)


@pytest.fixture
def genai_cache():
    cache = MagicMock(spec=GenAICache)
    cache.get.return_value = None
    return cache


@pytest.fixture
def rate_limiter():
    limiter = MagicMock(spec=RateLimiter)
    limiter.bucket_key.side_effect = RateLimiter.bucket_key
    limiter.allow.return_value = True
    return limiter


@pytest.fixture(scope="function")
def client(db: Session, genai_client, genai_cache, rate_limiter):
    """FastAPI test client with overridden DB dependency and mocked Redis/Gemini."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    # Remove TrustedHostMiddleware for tests to allow 'testserver' host
    app.user_middleware = [m for m in app.user_middleware if "TrustedHost" not in str(m)]

    with TestClient(app) as test_client:
        app.state.genai_client = genai_client
        app.state.genai_cache = genai_cache
        app.state.rate_limiter = rate_limiter
        yield test_client
    app.dependency_overrides.clear()


# ── Helpers ────────────────────────────────────────────────────────────────────


def register(client: TestClient, email: str | None = None, password: str = "testpwd1") -> str:
    """Register a learner and return a bearer token."""
    email = email or f"learner_{uuid.uuid4().hex[:8]}@ex.com"
    resp = client.post(
        "/api/users/register",
        json={"email": email, "password": password, "display_name": "Test Learner"},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["access_token"]


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def token(client: TestClient) -> str:
    return register(client)


@pytest.fixture
def user(db: Session) -> User:
    """A user created directly in the database, for store-level tests."""
    u = User(email=f"store_{uuid.uuid4().hex[:8]}@ex.com", hashed_password="x")
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


def make_quiz(
    db: Session,
    owner: User,
    topics: list[str],
    *,
    subject: str = "Biology",
    correct_answer: int = 0,
) -> Quiz:
    """A quiz with one 4-option question per entry in *topics*."""
    quiz = Quiz(user_id=owner.id, title="Sample", subject=subject, difficulty="medium")
    db.add(quiz)
    db.flush()
    for position, topic in enumerate(topics):
        db.add(
            QuizQuestion(
                quiz_id=quiz.id,
                position=position,
                prompt=f"Question {position + 1}?",
                options=["A", "B", "C", "D"],
                correct_answer=correct_answer,
                explanation="",
                topic=topic,
                concept=f"{topic} basics",
            )
        )
    db.commit()
    db.refresh(quiz)
    return quiz


QUIZ_BODY = {
    "title": "Cell biology",
    "subject": "Biology",
    "questions": [
        {
            "prompt": "Powerhouse of the cell?",
            "options": ["Nucleus", "Mitochondria", "Ribosome", "Golgi"],
            "correct_answer": 1,
            "topic": "Cells",
            "concept": "Organelles",
        },
        {
            "prompt": "DNA is found in the…",
            "options": ["Nucleus", "Membrane"],
            "correct_answer": 0,
            "topic": "Genetics",
        },
    ],
}
