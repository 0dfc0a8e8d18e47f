# src/cache/models.py - v2
"""Cache domain model: CacheEntry."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel

from docsift.core.models import AnalysisResult


class CacheEntry(BaseModel):
    """Cached analysis result for one fingerprint.

    Entries are never updated in place; a new analysis overwrites the entry
    under the same key.
    """

    fingerprint: str
    result: AnalysisResult
    expires_at: datetime

    def is_expired(self, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at
