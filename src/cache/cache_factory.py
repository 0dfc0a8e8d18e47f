# src/cache/cache_factory.py - v3
"""Factory for result cache instantiation."""

from __future__ import annotations

from typing import Any

from docsift.cache.base_cache_store import BaseResultCache
from docsift.config.settings import ConfigurationError, Settings


def create_result_cache(
    settings: Settings, client: Any | None = None
) -> BaseResultCache:
    """Instantiate the configured cache backend.

    Args:
        settings: Application settings (KV_BACKEND, REDIS_URL).
        client: Optional shared ``redis.asyncio`` client.

    Returns:
        Configured BaseResultCache implementation.
    """
    if settings.kv_backend == "memory":
        from docsift.cache.memory_store import InMemoryResultCache

        return InMemoryResultCache()

    if settings.kv_backend == "redis":
        from docsift.cache.redis_store import RedisResultCache

        if client is None and not settings.redis_url:
            raise ConfigurationError("REDIS_URL must be set when KV_BACKEND=redis")
        return RedisResultCache(redis_url=settings.redis_url, client=client)

    raise ConfigurationError(f"Unsupported key/value backend: {settings.kv_backend!r}")
