"""Tests for the Redis-backed rate limiter and recommendation cache.

Redis is a MagicMock; both helpers must fail open when it errors.
"""

import json
from unittest.mock import MagicMock

import redis

from studybuddy.services.genai_cache import GenAICache, make_key
from studybuddy.services.rate_limiter import RateLimiter


# ── rate limiter ──────────────────────────────────────────────────────────────


def test_bucket_key_is_per_user():
    assert RateLimiter.bucket_key("abc") == "rl:genai:u:abc"


def test_disabled_limiter_never_touches_redis():
    r = MagicMock()
    assert RateLimiter(r, rpm=0, burst=5).allow("rl:genai:u:1") is True
    r.eval.assert_not_called()


def test_limiter_follows_lua_result():
    r = MagicMock()
    limiter = RateLimiter(r, rpm=60, burst=2)
    r.eval.return_value = 1
    assert limiter.allow("rl:genai:u:1") is True
    r.eval.return_value = 0
    assert limiter.allow("rl:genai:u:1") is False
    args = r.eval.call_args.args
    assert args[1:4] == (1, "rl:genai:u:1", 2)
    assert args[4] == 1.0  # tokens per second


def test_limiter_fails_open_on_redis_error():
    r = MagicMock()
    r.eval.side_effect = redis.ConnectionError("down")
    assert RateLimiter(r, rpm=60, burst=2).allow("rl:genai:u:1") is True


# ── cache ─────────────────────────────────────────────────────────────────────


def test_make_key_is_order_independent():
    a = make_key("recommendations", {"weak": ["x"], "recent": ["y"]})
    b = make_key("recommendations", {"recent": ["y"], "weak": ["x"]})
    assert a == b
    assert a.startswith("genai_cache:recommendations:")


def test_cache_round_trip():
    r = MagicMock()
    cache = GenAICache(r, enabled=True, ttl_seconds=60)
    params = {"weak": ["Cells"]}

    cache.set("recommendations", params, [{"topic": "Cells"}])
    key, ttl, raw = r.setex.call_args.args
    assert key == make_key("recommendations", params)
    assert ttl == 60

    r.get.return_value = raw
    assert cache.get("recommendations", params) == [{"topic": "Cells"}]


def test_cache_miss_returns_none():
    r = MagicMock()
    r.get.return_value = None
    assert GenAICache(r, enabled=True).get("recommendations", {}) is None


def test_disabled_cache_is_inert():
    r = MagicMock()
    cache = GenAICache(r, enabled=False)
    cache.set("recommendations", {}, [1])
    assert cache.get("recommendations", {}) is None
    r.setex.assert_not_called()
    r.get.assert_not_called()


def test_cache_fails_open_on_redis_error():
    r = MagicMock()
    r.get.side_effect = redis.ConnectionError("down")
    r.setex.side_effect = redis.ConnectionError("down")
    cache = GenAICache(r, enabled=True)
    cache.set("recommendations", {}, [1])
    assert cache.get("recommendations", {}) is None


def test_cached_value_is_json():
    r = MagicMock()
    GenAICache(r, enabled=True, ttl_seconds=5).set("p", {}, {"a": 1})
    assert json.loads(r.setex.call_args.args[2]) == {"a": 1}
