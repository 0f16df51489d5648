"""Redis store for caching.

Handles:
- Caching with TTL policies

TTL policies:
- Compare payloads: settings.compare_cache_ttl (default 60 seconds)

The cache is best-effort: callers treat an uninitialized or unreachable Redis as a miss.
"""

import json
import logging
from typing import Any

import redis.asyncio as redis

from app.settings import get_settings

# Key prefixes
PREFIX_COMPARE = "compare:"

# Redis client (initialized on startup)
_redis: redis.Redis | None = None
logger = logging.getLogger("uvicorn.error")


async def init_redis() -> None:
    """Initialize Redis connection."""
    global _redis
    settings = get_settings()
    _redis = redis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
    )
    # Validate connectivity early (especially for `rediss://` in production).
    await _redis.ping()
    logger.info("Redis connected")


async def close_redis() -> None:
    """Close Redis connection."""
    global _redis
    if _redis:
        await _redis.aclose()
        _redis = None


def _get_redis() -> redis.Redis:
    """Get Redis client instance."""
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis


# ============================================================
# Generic cache operations
# ============================================================


async def cache_get(key: str) -> str | None:
    """Get value from cache.

    Args:
        key: Cache key.

    Returns:
        Cached value or None if not found.
    """
    return await _get_redis().get(key)


async def cache_set(key: str, value: str, ttl: int) -> None:
    """Set value in cache with TTL.

    Args:
        key: Cache key.
        value: Value to cache.
        ttl: Time-to-live in seconds.
    """
    await _get_redis().setex(key, ttl, value)


async def cache_get_json(key: str) -> dict[str, Any] | None:
    value = await cache_get(key)
    if value:
        return json.loads(value)
    return None


async def cache_set_json(key: str, value: dict[str, Any], ttl: int) -> None:
    await cache_set(key, json.dumps(value), ttl)


# ============================================================
# Compare payload cache
# ============================================================


def compare_cache_key(canonical_key: str, lookback_days: int) -> str:
    return f"{PREFIX_COMPARE}{lookback_days}:{canonical_key}"


async def get_compare_cache(canonical_key: str, lookback_days: int) -> dict[str, Any] | None:
    """Get cached compare payload for a parsed key."""
    return await cache_get_json(compare_cache_key(canonical_key, lookback_days))


async def set_compare_cache(canonical_key: str, lookback_days: int, payload: dict[str, Any]) -> None:
    """Cache a compare payload (TTL from settings; 0 disables)."""
    ttl = get_settings().compare_cache_ttl
    if ttl <= 0:
        return
    await cache_set_json(compare_cache_key(canonical_key, lookback_days), payload, ttl)
