"""Redis caching utilities.

Provides the shared Redis client plus a decorator for caching expensive
aggregate queries (dashboard and stats endpoints). Redis being down never
breaks a request: every helper falls back to the uncached path.
"""

import functools
import hashlib
import json
import logging
from datetime import date, datetime
from typing import Callable, Optional

import redis.asyncio as redis

from app.config import settings

logger = logging.getLogger(__name__)

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> redis.Redis:
    """Get or create the Redis client."""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=50,
        )
    return _redis_client


def set_redis(client: Optional[redis.Redis]) -> None:
    """Swap the shared client (tests inject fakeredis here)."""
    global _redis_client
    _redis_client = client


async def close_redis():
    """Close the Redis connection (app shutdown)."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def cache_key(**kwargs) -> str:
    """Deterministic hash of the keyword arguments that identify a call."""
    if not kwargs:
        return "default"
    key_data = json.dumps(kwargs, sort_keys=True)
    return hashlib.md5(key_data.encode()).hexdigest()


def _cacheable_kwargs(kwargs: dict) -> dict:
    """Keep only simple values; injected deps (db, user) are skipped.

    A user's scope matters for own-scoped stats, so a User contributes
    its client_id.
    """
    out = {}
    for k, v in kwargs.items():
        if k.startswith("_"):
            continue
        if isinstance(v, (int, str, bool, float, type(None))):
            out[k] = v
        elif isinstance(v, (date, datetime)):
            out[k] = v.isoformat()
        elif k == "user" and hasattr(v, "client_id"):
            out["scope"] = v.client_id if v.user_type == "client" else None
    return out


def cached(ttl: int = 300, prefix: str = "cache"):
    """Decorator to cache an async function's JSON-able result in Redis.

    Example:
        @router.get("/stats")
        @cached(ttl=60, prefix="dashboard")
        async def dashboard_stats(db: AsyncSession = Depends(get_db), ...):
            ...

    Cache keys: {prefix}:{function_name}:{kwargs_hash}
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            key = f"{prefix}:{func.__name__}:{cache_key(**_cacheable_kwargs(kwargs))}"

            try:
                redis_client = await get_redis()
                cached_value = await redis_client.get(key)
            except redis.RedisError as e:
                logger.warning(f"Redis error (falling back to uncached): {e}")
                return await func(*args, **kwargs)

            if cached_value:
                logger.debug(f"Cache HIT: {key}")
                return json.loads(cached_value)

            logger.debug(f"Cache MISS: {key}")
            result = await func(*args, **kwargs)

            if hasattr(result, "model_dump"):
                serialized = result.model_dump(mode="json")
            else:
                serialized = result

            try:
                await redis_client.setex(key, ttl, json.dumps(serialized, default=str))
            except redis.RedisError as e:
                logger.warning(f"Failed to store cache entry {key}: {e}")

            return result

        return wrapper

    return decorator


async def invalidate_cache(pattern: str):
    """Delete every key matching `pattern` (e.g. "dashboard:*")."""
    try:
        redis_client = await get_redis()
        keys = [key async for key in redis_client.scan_iter(match=pattern)]
        if keys:
            await redis_client.delete(*keys)
            logger.info(f"Invalidated {len(keys)} cache keys matching {pattern}")
    except redis.RedisError as e:
        logger.warning(f"Failed to invalidate cache: {e}")
