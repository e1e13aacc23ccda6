"""Redis-backed cache for generated study recommendations.

Avoids a Gemini round-trip when the same topic snapshot has already been
answered. Keys are content-addressed (SHA-256 of the serialised request).
Every Redis failure is logged and treated as a miss.
"""

import hashlib
import json
import logging
from typing import Any

import redis

from studybuddy.config import settings

logger = logging.getLogger(__name__)


def make_key(prefix: str, params: dict[str, Any]) -> str:
    """Create a deterministic cache key from prefix + sorted param hash."""
    serialised = json.dumps(params, sort_keys=True, default=str)
    digest = hashlib.sha256(serialised.encode()).hexdigest()[:16]
    return f"genai_cache:{prefix}:{digest}"


class GenAICache:
    def __init__(
        self,
        client: redis.Redis,
        *,
        enabled: bool | None = None,
        ttl_seconds: int | None = None,
    ) -> None:
        self._redis = client
        self.enabled = settings.GENAI_CACHE_ENABLED if enabled is None else enabled
        self.ttl_seconds = (
            settings.GENAI_CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        )

    def get(self, prefix: str, params: dict[str, Any]) -> Any | None:
        """Return the cached value, or None on miss / disabled / Redis error."""
        if not self.enabled:
            return None
        key = make_key(prefix, params)
        try:
            raw = self._redis.get(key)
        except redis.RedisError as e:
            logger.warning("GenAI cache read failed (non-fatal): %s", e)
            return None
        if raw:
            logger.debug("GenAI cache HIT: %s", key)
            return json.loads(raw)
        logger.debug("GenAI cache MISS: %s", key)
        return None

    def set(
        self,
        prefix: str,
        params: dict[str, Any],
        value: Any,
        ttl: int | None = None,
    ) -> None:
        if not self.enabled:
            return
        key = make_key(prefix, params)
        try:
            self._redis.setex(key, ttl or self.ttl_seconds, json.dumps(value, default=str))
            logger.debug("GenAI cache SET: %s (ttl=%ds)", key, ttl or self.ttl_seconds)
        except redis.RedisError as e:
            logger.warning("GenAI cache write failed (non-fatal): %s", e)
