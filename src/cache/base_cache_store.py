# src/cache/base_cache_store.py - v2
"""Abstract result cache interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from docsift.cache.models import CacheEntry
from docsift.core.models import AnalysisResult


class BaseResultCache(ABC):
    """Fingerprint -> AnalysisResult store with per-entry TTL.

    Capacity bounding is left to the backing store; the only expiry policy
    is the TTL given to ``put``.
    """

    @abstractmethod
    async def get(self, fingerprint: str) -> CacheEntry | None:
        """Return the live entry for a fingerprint, or None."""

    @abstractmethod
    async def put(
        self, fingerprint: str, result: AnalysisResult, ttl_s: int
    ) -> CacheEntry:
        """Store a result, overwriting any previous entry for the key.

        Raises:
            ValueError: If ``result`` is a fallback result.
        """

    @abstractmethod
    async def delete(self, fingerprint: str) -> None:
        """Remove a cached entry."""

    async def close(self) -> None:
        """Release backend resources."""


def ensure_cacheable(result: AnalysisResult) -> None:
    """Fallback results must never be written to the cache."""
    if result.is_fallback:
        raise ValueError("fallback results are not cacheable")
