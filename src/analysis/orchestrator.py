# src/analysis/orchestrator.py - v1
"""Analysis facade: quota -> cache -> AI call -> write-through.

Per request:
  1. Fingerprint the content.
  2. Check and consume quota (raises QuotaExceededError when over).
  3. Return a cached result on hit, without calling the model.
  4. On miss, detect the content kind and call the AI client.
  5. Cache non-fallback results.
  6. Return the result; a fallback is a degraded success, not an error.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel

from docsift.analysis.client import AIAnalysisClient
from docsift.cache.base_cache_store import BaseResultCache
from docsift.cache.fingerprint import compute_fingerprint
from docsift.core.content import decode_base64_payload, detect_content_kind
from docsift.core.models import AnalysisRequest, AnalysisResult
from docsift.logging.context import set_fingerprint
from docsift.quota.base_rate_limiter import (
    BaseRateLimiter,
    QuotaExceededError,
    RateLimitDecision,
)

logger = logging.getLogger(__name__)


class AnalysisOutcome(BaseModel):
    """Result plus the quota decision and cache provenance for one request."""

    result: AnalysisResult
    rate_limit: RateLimitDecision
    fingerprint: str
    cache_hit: bool = False


class AnalysisOrchestrator:
    """Coordinates RateLimiter, ResultCache and AIAnalysisClient."""

    def __init__(
        self,
        cache: BaseResultCache,
        rate_limiter: BaseRateLimiter,
        client: AIAnalysisClient,
        cache_ttl_s: int = 7 * 24 * 60 * 60,
    ) -> None:
        self._cache = cache
        self._rate_limiter = rate_limiter
        self._client = client
        self._cache_ttl_s = cache_ttl_s

    async def analyze(
        self, request: AnalysisRequest, data_uri_mime: str | None = None
    ) -> AnalysisOutcome:
        """Run one analysis request.

        Raises:
            QuotaExceededError: If the identity's daily quota is used up.
        """
        fingerprint = compute_fingerprint(request.content)
        set_fingerprint(fingerprint)

        decision = await self._rate_limiter.check_and_increment(request.identity)
        if not decision.allowed:
            raise QuotaExceededError(request.identity, decision)

        cached = await self._read_cache(fingerprint)
        if cached is not None:
            logger.info(
                "Cache hit",
                extra={"data": {"cache_hit": True, "display_name": request.display_name}},
            )
            return AnalysisOutcome(
                result=cached, rate_limit=decision, fingerprint=fingerprint, cache_hit=True,
            )
        logger.info(
            "Cache miss",
            extra={"data": {"cache_hit": False, "display_name": request.display_name}},
        )

        content_kind = detect_content_kind(
            request.content_type, request.display_name, data_uri_mime
        )
        result = await self._client.analyze(request, content_kind)

        if result.is_fallback:
            logger.info("Skipping cache for fallback result")
        else:
            await self._write_through(fingerprint, result)

        return AnalysisOutcome(result=result, rate_limit=decision, fingerprint=fingerprint)

    async def analyze_base64(
        self,
        content_base64: str,
        content_type: str,
        display_name: str,
        identity: str,
    ) -> AnalysisOutcome:
        """Decode a base64 / data-URI payload and analyze it.

        Raises:
            ValueError: If the payload is not valid base64.
            QuotaExceededError: If the identity's daily quota is used up.
        """
        content, data_uri_mime = decode_base64_payload(content_base64)
        request = AnalysisRequest(
            content=content,
            content_type=content_type,
            display_name=display_name,
            identity=identity,
        )
        return await self.analyze(request, data_uri_mime=data_uri_mime)

    async def _read_cache(self, fingerprint: str) -> AnalysisResult | None:
        try:
            entry = await self._cache.get(fingerprint)
        except Exception:
            logger.warning("Cache read failed, treating as miss", exc_info=True)
            return None
        return entry.result if entry is not None else None

    async def _write_through(self, fingerprint: str, result: AnalysisResult) -> None:
        """Cache a fresh result.

        A racing caller may already have written the same result; in that
        case the write is skipped. Otherwise the last write wins.
        """
        try:
            current = await self._cache.get(fingerprint)
            if current is not None and current.result == result:
                logger.debug("Identical result already cached, skipping write")
                return
            await self._cache.put(fingerprint, result, self._cache_ttl_s)
            logger.info(
                "Cached analysis result",
                extra={"data": {"ttl_s": self._cache_ttl_s}},
            )
        except Exception:
            logger.warning("Cache write failed, result not cached", exc_info=True)
