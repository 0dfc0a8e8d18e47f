# src/quota/redis_limiter.py - v1
"""Redis-backed daily quota (KV_BACKEND=redis).

Check, increment and expiry run inside one Lua script so concurrent
instances never race between reading and incrementing the counter.
"""

from __future__ import annotations

import logging
from typing import Any

from docsift.quota.base_rate_limiter import (
    BaseRateLimiter,
    RateLimitDecision,
    next_utc_midnight,
    rate_limit_key,
    utc_day,
)

logger = logging.getLogger(__name__)

# KEYS[1] = counter key; ARGV[1] = limit; ARGV[2] = window end (unix seconds)
_CHECK_AND_INCREMENT = """
local current = tonumber(redis.call('GET', KEYS[1]) or '0')
local limit = tonumber(ARGV[1])
if current >= limit then
  return {0, current}
end
local count = redis.call('INCR', KEYS[1])
if count == 1 then
  redis.call('EXPIREAT', KEYS[1], ARGV[2])
end
return {1, count}
"""


class RedisRateLimiter(BaseRateLimiter):
    """Daily counter per identity stored under ``ratelimit:{identity}:{date}``."""

    def __init__(
        self,
        limit: int,
        redis_url: str = "",
        client: Any | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(limit, **kwargs)
        if client is None:
            import redis.asyncio as aioredis

            client = aioredis.Redis.from_url(redis_url, decode_responses=True)
        self._client = client
        self._script = client.register_script(_CHECK_AND_INCREMENT)

    async def check_and_increment(self, identity: str) -> RateLimitDecision:
        now = self._clock()
        key = rate_limit_key(identity, utc_day(now))
        reset_at = next_utc_midnight(now)

        allowed, count = await self._script(
            keys=[key], args=[self._limit, int(reset_at.timestamp())]
        )
        decision = self._decision(bool(int(allowed)), int(count), now)

        if decision.allowed:
            logger.info(
                "Rate limit check passed",
                extra={"data": {"identity": identity, "count": decision.count, "limit": self._limit}},
            )
        else:
            logger.warning(
                "Rate limit exceeded",
                extra={"data": {"identity": identity, "count": decision.count, "limit": self._limit}},
            )
        return decision

    async def close(self) -> None:
        await self._client.aclose()
