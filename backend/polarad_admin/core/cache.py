"""Redis caching for dashboard status counters."""

import json
import logging

import redis.asyncio as aioredis

from polarad_admin.core.config import settings

logger = logging.getLogger(__name__)

_redis: aioredis.Redis | None = None


async def _get_redis() -> aioredis.Redis:
    global _redis
    if _redis is None:
        _redis = aioredis.from_url(settings.redis_url, decode_responses=True)
    return _redis


def make_cache_key(*parts: str) -> str:
    return "cache:" + ":".join(parts)


async def cache_get_json(key: str) -> dict | None:
    try:
        r = await _get_redis()
        raw = await r.get(key)
    except Exception:
        logger.exception("Cache get failed for key=%s", key)
        return None
    return json.loads(raw) if raw else None


async def cache_set_json(key: str, value: dict, ttl: int | None = None) -> None:
    try:
        r = await _get_redis()
        await r.set(key, json.dumps(value), ex=ttl or settings.cache_stats_ttl)
    except Exception:
        logger.exception("Cache set failed for key=%s", key)


async def cache_delete(*keys: str) -> None:
    try:
        r = await _get_redis()
        await r.delete(*keys)
    except Exception:
        logger.exception("Cache delete failed for keys=%s", keys)
