# src/cache/redis_store.py - v2
"""Redis-based result cache (KV_BACKEND=redis).

Suitable for multi-instance deployments: every instance reads and writes the
same keys and relies on Redis per-key TTL for expiry.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from pydantic import ValidationError

from docsift.cache.base_cache_store import BaseResultCache, ensure_cacheable
from docsift.cache.fingerprint import cache_key
from docsift.cache.models import CacheEntry
from docsift.core.models import AnalysisResult

logger = logging.getLogger(__name__)


class RedisResultCache(BaseResultCache):
    """Redis-backed result cache using ``redis.asyncio``."""

    def __init__(self, redis_url: str = "", client: Any | None = None) -> None:
        if client is None:
            import redis.asyncio as aioredis

            client = aioredis.Redis.from_url(redis_url, decode_responses=True)
        self._client = client

    async def get(self, fingerprint: str) -> CacheEntry | None:
        data = await self._client.get(cache_key(fingerprint))
        if data is None:
            return None
        try:
            entry = CacheEntry.model_validate_json(data)
        except ValidationError as e:
            logger.warning("Failed to deserialize cache entry %s: %s", fingerprint, e)
            return None
        if entry.is_expired():
            return None
        return entry

    async def put(
        self, fingerprint: str, result: AnalysisResult, ttl_s: int
    ) -> CacheEntry:
        ensure_cacheable(result)
        entry = CacheEntry(
            fingerprint=fingerprint,
            result=result,
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=ttl_s),
        )
        await self._client.set(cache_key(fingerprint), entry.model_dump_json(), ex=ttl_s)
        return entry

    async def delete(self, fingerprint: str) -> None:
        await self._client.delete(cache_key(fingerprint))

    async def close(self) -> None:
        await self._client.aclose()
