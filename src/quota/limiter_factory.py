# src/quota/limiter_factory.py - v1
"""Factory for rate limiter instantiation."""

from __future__ import annotations

from typing import Any

from docsift.config.settings import ConfigurationError, Settings
from docsift.quota.base_rate_limiter import BaseRateLimiter


def create_rate_limiter(
    settings: Settings, client: Any | None = None
) -> BaseRateLimiter:
    """Instantiate the quota backend matching KV_BACKEND."""
    if settings.kv_backend == "memory":
        from docsift.quota.memory_limiter import InMemoryRateLimiter

        return InMemoryRateLimiter(limit=settings.rate_limit_daily)

    if settings.kv_backend == "redis":
        from docsift.quota.redis_limiter import RedisRateLimiter

        if client is None and not settings.redis_url:
            raise ConfigurationError("REDIS_URL must be set when KV_BACKEND=redis")
        return RedisRateLimiter(
            limit=settings.rate_limit_daily,
            redis_url=settings.redis_url,
            client=client,
        )

    raise ConfigurationError(f"Unsupported key/value backend: {settings.kv_backend!r}")
