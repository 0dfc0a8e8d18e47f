# src/quota/memory_limiter.py - v1
"""In-process daily quota (KV_BACKEND=memory). Single-process use only."""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Any

from docsift.quota.base_rate_limiter import BaseRateLimiter, RateLimitDecision, utc_day

logger = logging.getLogger(__name__)


class InMemoryRateLimiter(BaseRateLimiter):
    """Counters keyed by (identity, UTC day), guarded by an asyncio lock."""

    def __init__(self, limit: int, **kwargs: Any) -> None:
        super().__init__(limit, **kwargs)
        self._counts: dict[tuple[str, date], int] = {}
        self._lock = asyncio.Lock()

    async def check_and_increment(self, identity: str) -> RateLimitDecision:
        now = self._clock()
        day = utc_day(now)
        async with self._lock:
            self._prune(day)
            count = self._counts.get((identity, day), 0)
            if count >= self._limit:
                logger.warning(
                    "Rate limit exceeded",
                    extra={"data": {"identity": identity, "count": count, "limit": self._limit}},
                )
                return self._decision(False, count, now)
            count += 1
            self._counts[(identity, day)] = count
        return self._decision(True, count, now)

    def _prune(self, today: date) -> None:
        """Drop counters from past windows."""
        for key in [k for k in self._counts if k[1] < today]:
            del self._counts[key]
