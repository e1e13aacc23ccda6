"""Learner credentials: bcrypt password hashes and bearer tokens.

Tokens are HS256 JWTs whose ``sub`` claim is the learner's UUID; every study
endpoint resolves the caller from it in :mod:`studybuddy.api.deps`.
"""

import uuid
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

from studybuddy.config import settings

# bcrypt only looks at the first 72 bytes of its input.
_BCRYPT_MAX_BYTES = 72


# ── Passwords ─────────────────────────────────────────────────────────────────


def hash_password(plain: str) -> str:
    """Hash a learner's password for storage.

    Raises:
        ValueError: the UTF-8 encoding is longer than bcrypt accepts.
    """
    raw = plain.encode("utf-8")
    if len(raw) > _BCRYPT_MAX_BYTES:
        raise ValueError(
            f"Password must be at most {_BCRYPT_MAX_BYTES} bytes "
            f"(got {len(raw)})"
        )
    return bcrypt.hashpw(raw, bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash.
        return False


# ── Bearer tokens ─────────────────────────────────────────────────────────────


def create_access_token(
    user_id: uuid.UUID,
    expires_delta: timedelta | None = None,
) -> str:
    """Sign a token identifying *user_id*, valid for ACCESS_TOKEN_EXPIRE_MINUTES."""
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {
        "sub": str(user_id),
        "exp": datetime.now(timezone.utc) + lifetime,
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict | None:
    """Return the token's claims, or None if it is forged, malformed or expired."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
