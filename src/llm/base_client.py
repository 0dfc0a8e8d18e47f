# src/llm/base_client.py - v2
"""Abstract LLM client interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from docsift.llm.models import Attachment, LLMResponse


class BaseLLMClient(ABC):
    """Unified interface for generative model providers."""

    @abstractmethod
    async def generate(self, prompt: str, attachment: Attachment) -> LLMResponse:
        """Run one multimodal generation call and return the raw text."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (google, ...)."""
