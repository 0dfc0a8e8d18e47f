# src/llm/models.py - v2
"""LLM-specific types: Attachment, LLMResponse."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class Attachment(BaseModel):
    """Binary payload sent alongside the prompt (image or PDF)."""

    data: bytes
    media_type: str


class LLMResponse(BaseModel):
    """Normalized response from any LLM provider."""

    content: str
    model: str
    provider: str
    latency_ms: int
    raw_response: Any = None
