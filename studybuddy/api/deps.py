"""FastAPI dependencies shared across routes."""

import uuid

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from studybuddy.core.security import decode_access_token
from studybuddy.db.models import User
from studybuddy.db.session import get_db
from studybuddy.services.genai_cache import GenAICache
from studybuddy.services.genai_client import GenAIClient
from studybuddy.services.progress_store import ProgressStore
from studybuddy.services.rate_limiter import RateLimiter

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/users/login")


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Decode JWT and return the authenticated user, or 401."""
    payload = decode_access_token(token)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    user_id = payload.get("sub")
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload"
        )
    try:
        uid = uuid.UUID(user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload"
        )
    user = db.query(User).filter(User.id == uid).first()
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )
    return user


def get_progress_store(db: Session = Depends(get_db)) -> ProgressStore:
    return ProgressStore(db)


def get_genai_client(request: Request) -> GenAIClient:
    return request.app.state.genai_client


def get_genai_cache(request: Request) -> GenAICache:
    return request.app.state.genai_cache


def require_genai_rate_limit(
    request: Request,
    current_user: User = Depends(get_current_user),
) -> None:
    """Raise 429 if the caller exceeds the Gemini request budget."""
    limiter: RateLimiter = request.app.state.rate_limiter
    key = limiter.bucket_key(current_user.id)
    if not limiter.allow(key):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests — please slow down.",
        )
