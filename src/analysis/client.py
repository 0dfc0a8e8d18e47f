# src/analysis/client.py - v1
"""AI analysis client: one external call per attempt, raced against a
timeout, classified on failure and retried with exponential backoff.

Per request the client moves through Build -> Call(timeout) -> Success |
Timeout | TransportError | HTTPError. Every attempt emits one structured
log record (attempt number, elapsed time, outcome). Whatever happens, the
caller receives an AnalysisResult: non-retryable errors and exhausted
retries resolve to the fallback.
"""

from __future__ import annotations

import asyncio
import logging
import time

from docsift.analysis.fallback import build_fallback
from docsift.analysis.prompts import build_prompt
from docsift.analysis.validator import ResponseValidationError, ResponseValidator
from docsift.core.models import AnalysisRequest, AnalysisResult, ContentKind
from docsift.core.retry import RetryPolicy, Sleep, is_retryable_error
from docsift.llm.base_client import BaseLLMClient
from docsift.llm.models import Attachment, LLMResponse

logger = logging.getLogger(__name__)


class AnalysisTimeoutError(TimeoutError):
    """The model call lost the race against the wall-clock timeout."""


def resolve_media_type(content_type: str, content_kind: ContentKind) -> str:
    """MIME type sent to the provider for the attachment."""
    normalized = (content_type or "").lower()
    if content_kind == "pdf":
        return normalized if "pdf" in normalized else "application/pdf"
    return normalized if normalized.startswith("image/") else "image/jpeg"


def _discard_late_result(task: asyncio.Task) -> None:
    """Consume the outcome of an abandoned call so it has no effect."""
    if task.cancelled():
        return
    error = task.exception()
    logger.debug(
        "Late AI response discarded",
        extra={"data": {"late_outcome": "failure" if error else "success"}},
    )


class AIAnalysisClient:
    """Owns the external model call for one analysis request."""

    def __init__(
        self,
        llm: BaseLLMClient,
        validator: ResponseValidator | None = None,
        policy: RetryPolicy | None = None,
        timeout_s: float = 5.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._llm = llm
        self._validator = validator or ResponseValidator()
        self._policy = policy or RetryPolicy()
        self._timeout_s = timeout_s
        self._sleep = sleep

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def analyze(
        self, request: AnalysisRequest, content_kind: ContentKind
    ) -> AnalysisResult:
        """Analyze content, returning a real or a fallback result. Never raises."""
        prompt = build_prompt(content_kind)
        attachment = Attachment(
            data=request.content,
            media_type=resolve_media_type(request.content_type, content_kind),
        )
        max_attempts = self._policy.max_attempts
        started = time.monotonic()

        for attempt in range(max_attempts):
            t0 = time.monotonic()
            try:
                response = await self._call_with_timeout(prompt, attachment)
                result = self._validator.parse(response.content)
            except ResponseValidationError as e:
                self._log_attempt(attempt, t0, "failure", content_kind, e, retryable=False)
                break
            except Exception as e:
                retryable = is_retryable_error(e)
                self._log_attempt(attempt, t0, "failure", content_kind, e, retryable=retryable)
                if not retryable or attempt >= self._policy.max_retries:
                    break
                delay = self._policy.delay_for(attempt)
                logger.info(
                    "Retrying analysis",
                    extra={"data": {"backoff_s": delay, "next_attempt": attempt + 2}},
                )
                await self._sleep(delay)
            else:
                self._log_attempt(attempt, t0, "success", content_kind)
                return result

        fallback = build_fallback(
            request.display_name,
            content_kind,
            description_max_chars=self._validator.description_max_chars,
        )
        logger.warning(
            "Using fallback result",
            extra={
                "data": {
                    "outcome": "fallback",
                    "attempt": attempt + 1,
                    "max_attempts": max_attempts,
                    "elapsed_ms": int((time.monotonic() - started) * 1000),
                    "content_kind": content_kind,
                    "display_name": request.display_name,
                }
            },
        )
        return fallback

    async def _call_with_timeout(self, prompt: str, attachment: Attachment) -> LLMResponse:
        """Race one call against the timeout.

        The losing call is not cancelled at the network layer; it is left to
        finish and its outcome is discarded.
        """
        task = asyncio.ensure_future(self._llm.generate(prompt, attachment))
        try:
            done, _ = await asyncio.wait({task}, timeout=self._timeout_s)
        except asyncio.CancelledError:
            task.cancel()
            raise
        if task in done:
            return task.result()
        task.add_done_callback(_discard_late_result)
        raise AnalysisTimeoutError(f"API timeout after {self._timeout_s:.1f}s")

    def _log_attempt(
        self,
        attempt: int,
        t0: float,
        outcome: str,
        content_kind: ContentKind,
        error: BaseException | None = None,
        retryable: bool | None = None,
    ) -> None:
        data: dict[str, object] = {
            "attempt": attempt + 1,
            "max_attempts": self._policy.max_attempts,
            "elapsed_ms": int((time.monotonic() - t0) * 1000),
            "outcome": outcome,
            "content_kind": content_kind,
            "provider": self._llm.provider_name,
        }
        if error is not None:
            data["error_type"] = type(error).__name__
            data["error_class"] = "retryable" if retryable else "non_retryable"
            logger.warning("Analysis attempt failed: %s", error, extra={"data": data})
        else:
            logger.info("Analysis attempt succeeded", extra={"data": data})
