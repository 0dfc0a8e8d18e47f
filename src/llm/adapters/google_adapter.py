# src/llm/adapters/google_adapter.py - v2
"""Google Gemini adapter implementing BaseLLMClient.

Uses the google-generativeai SDK with inline attachment data and a JSON
response MIME type. The API key is checked on the first call, so a missing
key degrades analysis to the fallback result instead of blocking startup.
"""

from __future__ import annotations

import time
from typing import Any

from docsift.config.settings import ConfigurationError
from docsift.llm.base_client import BaseLLMClient
from docsift.llm.models import Attachment, LLMResponse


class GoogleAdapter(BaseLLMClient):
    """Google Gemini adapter."""

    def __init__(
        self,
        model: str = "gemini-2.5-flash",
        api_key: str = "",
        temperature: float = 0.4,
        max_output_tokens: int = 1000,
        **kwargs: Any,
    ):
        self._model = model
        self._api_key = api_key
        self._generation_config: dict[str, Any] = {
            "temperature": temperature,
            "max_output_tokens": max_output_tokens,
            "response_mime_type": "application/json",
        }
        self._client: Any = None

    def _get_model(self) -> Any:
        if self._client is None:
            if not self._api_key:
                raise ConfigurationError("AI_API_KEY must be set for the google provider")
            import google.generativeai as genai

            genai.configure(api_key=self._api_key)
            self._client = genai.GenerativeModel(
                self._model, generation_config=self._generation_config,
            )
        return self._client

    async def generate(self, prompt: str, attachment: Attachment) -> LLMResponse:
        model = self._get_model()
        parts = [
            prompt,
            {"inline_data": {"mime_type": attachment.media_type, "data": attachment.data}},
        ]

        t0 = time.monotonic()
        resp = await model.generate_content_async(parts)
        latency = int((time.monotonic() - t0) * 1000)

        return LLMResponse(
            content=resp.text or "",
            model=self._model,
            provider="google",
            latency_ms=latency,
            raw_response=resp,
        )

    @property
    def provider_name(self) -> str:
        return "google"
