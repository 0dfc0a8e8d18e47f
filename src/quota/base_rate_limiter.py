# src/quota/base_rate_limiter.py - v1
"""Per-identity daily quota on expensive analysis calls.

The window is the calendar day in UTC. A request is rejected once the
stored count has reached the limit, before incrementing, so a rejection
never consumes quota. The request that brings the count to exactly the
limit is still allowed.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date, datetime, time, timedelta, timezone

from pydantic import BaseModel


class RateLimitDecision(BaseModel):
    """Outcome of one check-and-increment."""

    allowed: bool
    limit: int
    count: int
    remaining: int
    reset_at: datetime


class QuotaExceededError(Exception):
    """Raised when an identity has used up its daily analysis quota."""

    def __init__(self, identity: str, decision: RateLimitDecision) -> None:
        self.identity = identity
        self.decision = decision
        super().__init__(
            f"Daily analysis limit reached ({decision.limit} requests per day). "
            "Limit resets at midnight UTC."
        )


def utc_day(now: datetime) -> date:
    """Calendar date of ``now`` in UTC."""
    return now.astimezone(timezone.utc).date()


def next_utc_midnight(now: datetime) -> datetime:
    """Start of the UTC day following ``now``."""
    return datetime.combine(utc_day(now) + timedelta(days=1), time.min, tzinfo=timezone.utc)


def rate_limit_key(identity: str, day: date) -> str:
    """Key-value store key for one identity's counter on one UTC day."""
    return f"ratelimit:{identity}:{day.isoformat()}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BaseRateLimiter(ABC):
    """Unified interface for quota backends."""

    def __init__(self, limit: int, clock=_utcnow) -> None:
        if limit <= 0:
            raise ValueError("limit must be > 0")
        self._limit = limit
        self._clock = clock

    @property
    def limit(self) -> int:
        return self._limit

    @abstractmethod
    async def check_and_increment(self, identity: str) -> RateLimitDecision:
        """Atomically check the quota and, if allowed, consume one unit."""

    async def close(self) -> None:
        """Release backend resources."""

    def _decision(self, allowed: bool, count: int, now: datetime) -> RateLimitDecision:
        return RateLimitDecision(
            allowed=allowed,
            limit=self._limit,
            count=count,
            remaining=max(0, self._limit - count),
            reset_at=next_utc_midnight(now),
        )
