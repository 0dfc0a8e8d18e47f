# src/core/retry.py - v1
"""Retry policy with exponential backoff and transient-error classification.

Shared by the AI analysis client and the object-store adapter so both use
the same schedule: ``base * factor ** attempt`` (1s, 2s with the defaults).
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]

_RETRYABLE_PATTERNS: tuple[str, ...] = (
    "timeout",
    "timed out",
    "network",
    "econnreset",
    "econnrefused",
    "etimedout",
    "connection reset",
    "connection refused",
    "connection aborted",
    "socket hang up",
    "service unavailable",
    "temporarily unavailable",
    "internal server error",
    "rate limit",
    "too many requests",
    "resource exhausted",
)
# Status codes only count as whole numbers, never as part of "5000px".
_RETRYABLE_STATUS_RE = re.compile(r"\b(?:429|50[0234])\b")


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry schedule.

    ``max_retries`` counts retries, not attempts: 2 retries means 3 calls.
    """

    max_retries: int = 2
    base_delay_s: float = 1.0
    backoff_factor: float = 2.0

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_for(self, attempt: int) -> float:
        """Delay before retry number ``attempt + 1`` (attempt is 0-based)."""
        return self.base_delay_s * (self.backoff_factor ** attempt)


def _status_code(error: BaseException) -> int | None:
    """HTTP status carried by a provider exception, if any.

    google.api_core errors expose it as ``code``; httpx-style errors as
    ``status_code``.
    """
    for attr in ("status_code", "code"):
        value = getattr(error, attr, None)
        if isinstance(value, int) and not isinstance(value, bool) and 100 <= value <= 599:
            return value
    return None


def is_retryable_error(error: BaseException) -> bool:
    """Classify an exception as transient (retryable) or permanent.

    Timeouts, connection failures, 5xx-class responses and provider-side
    rate limits are retryable. Everything else (bad request, auth failure,
    content rejection, unparseable output) is not. A status code carried by
    the exception wins over anything in its message.
    """
    if isinstance(error, (TimeoutError, asyncio.TimeoutError, ConnectionError)):
        return True

    status = _status_code(error)
    if status is not None:
        return status in (408, 429) or status >= 500

    msg = f"{type(error).__name__}: {error}".lower()
    if _RETRYABLE_STATUS_RE.search(msg):
        return True
    return any(pattern in msg for pattern in _RETRYABLE_PATTERNS)


async def retry_async(
    fn: Callable[[], Awaitable[Any]],
    policy: RetryPolicy,
    *,
    operation: str = "operation",
    is_retryable: Callable[[BaseException], bool] = is_retryable_error,
    sleep: Sleep = asyncio.sleep,
) -> Any:
    """Run ``fn`` with retries on transient errors.

    Non-retryable errors and the last failure after exhausting retries are
    re-raised unchanged.
    """
    attempt = 0
    while True:
        try:
            return await fn()
        except Exception as e:
            if not is_retryable(e) or attempt >= policy.max_retries:
                raise
            delay = policy.delay_for(attempt)
            attempt += 1
            logger.warning(
                "%s failed (attempt %d/%d), retrying in %.1fs: %s",
                operation, attempt, policy.max_attempts, delay, type(e).__name__,
            )
            await sleep(delay)
