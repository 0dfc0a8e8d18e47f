# tests/unit/llm/test_google_adapter.py - v2
"""Tests for llm/adapters/google_adapter.py and llm/client_factory.py."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from docsift.analysis.client import AIAnalysisClient
from docsift.config.settings import ConfigurationError
from docsift.core.models import AnalysisRequest
from docsift.llm.adapters.google_adapter import GoogleAdapter
from docsift.llm.client_factory import (
    UnsupportedProviderError,
    _PROVIDER_REGISTRY,
    create_llm_client,
    register_provider,
)
from docsift.llm.models import Attachment
from fakes import RecordingSleep, make_settings


class TestGoogleAdapter:
    @pytest.mark.asyncio
    async def test_missing_api_key_fails_on_call(self):
        adapter = GoogleAdapter(api_key="")
        with pytest.raises(ConfigurationError, match="AI_API_KEY"):
            await adapter.generate("p", Attachment(data=b"x", media_type="image/png"))

    @pytest.mark.asyncio
    async def test_missing_api_key_degrades_to_fallback(self):
        sleep = RecordingSleep()
        client = AIAnalysisClient(GoogleAdapter(api_key=""), sleep=sleep)
        request = AnalysisRequest(
            content=b"x", content_type="image/png", display_name="scan.png", identity="u1"
        )
        result = await client.analyze(request, "image")
        assert result.is_fallback is True
        assert sleep.delays == []

    def test_generation_config(self):
        adapter = GoogleAdapter(api_key="k", temperature=0.2, max_output_tokens=256)
        assert adapter._generation_config == {
            "temperature": 0.2,
            "max_output_tokens": 256,
            "response_mime_type": "application/json",
        }
        assert adapter.provider_name == "google"

    @pytest.mark.asyncio
    async def test_generate_sends_inline_attachment(self):
        adapter = GoogleAdapter(model="gemini-test", api_key="k")
        model = MagicMock()
        model.generate_content_async = AsyncMock(return_value=MagicMock(text='{"a": 1}'))

        with patch.object(adapter, "_get_model", return_value=model):
            resp = await adapter.generate("prompt", Attachment(data=b"img", media_type="image/png"))

        parts = model.generate_content_async.call_args.args[0]
        assert parts[0] == "prompt"
        assert parts[1] == {"inline_data": {"mime_type": "image/png", "data": b"img"}}
        assert resp.content == '{"a": 1}'
        assert resp.model == "gemini-test"
        assert resp.provider == "google"

    @pytest.mark.asyncio
    async def test_empty_text_becomes_empty_string(self):
        adapter = GoogleAdapter(api_key="k")
        model = MagicMock()
        model.generate_content_async = AsyncMock(return_value=MagicMock(text=None))
        with patch.object(adapter, "_get_model", return_value=model):
            resp = await adapter.generate("p", Attachment(data=b"x", media_type="application/pdf"))
        assert resp.content == ""

    def test_model_is_built_once(self):
        adapter = GoogleAdapter(model="gemini-test", api_key="k")
        fake_genai = MagicMock()
        with patch.dict("sys.modules", {"google.generativeai": fake_genai}):
            with patch("google.generativeai", fake_genai, create=True):
                first = adapter._get_model()
                second = adapter._get_model()
        assert first is second
        fake_genai.configure.assert_called_once_with(api_key="k")
        fake_genai.GenerativeModel.assert_called_once()


class TestClientFactory:
    def test_google_from_settings(self):
        client = create_llm_client(make_settings(ai_model="gemini-x", ai_temperature=0.1))
        assert isinstance(client, GoogleAdapter)
        assert client._model == "gemini-x"

    def test_unsupported_provider(self):
        with pytest.raises(UnsupportedProviderError, match="Unsupported AI provider"):
            create_llm_client(make_settings(ai_provider="nope"))

    def test_register_provider(self):
        register_provider("custom", "docsift.llm.adapters.google_adapter.GoogleAdapter")
        try:
            client = create_llm_client(make_settings(ai_provider="custom"))
            assert isinstance(client, GoogleAdapter)
        finally:
            _PROVIDER_REGISTRY.pop("custom", None)
