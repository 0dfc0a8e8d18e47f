# src/cache/memory_store.py - v1
"""In-process result cache (KV_BACKEND=memory).

For single-process development and tests only: state is not shared across
instances.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable

from docsift.cache.base_cache_store import BaseResultCache, ensure_cacheable
from docsift.cache.models import CacheEntry
from docsift.core.models import AnalysisResult


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryResultCache(BaseResultCache):
    """Dict-backed cache; expired entries are dropped on read."""

    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._clock = clock

    async def get(self, fingerprint: str) -> CacheEntry | None:
        entry = self._entries.get(fingerprint)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            self._entries.pop(fingerprint, None)
            return None
        return entry

    async def put(
        self, fingerprint: str, result: AnalysisResult, ttl_s: int
    ) -> CacheEntry:
        ensure_cacheable(result)
        entry = CacheEntry(
            fingerprint=fingerprint,
            result=result,
            expires_at=self._clock() + timedelta(seconds=ttl_s),
        )
        self._entries[fingerprint] = entry
        return entry

    async def delete(self, fingerprint: str) -> None:
        self._entries.pop(fingerprint, None)

    def __len__(self) -> int:
        return len(self._entries)
