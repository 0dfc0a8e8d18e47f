# src/analysis/prompts.py - v1
"""JSON-only prompts per content kind."""

from __future__ import annotations

from docsift.core.models import ContentKind

IMAGE_PROMPT = """You must respond with ONLY valid JSON, no other text.

Analyze this image and return JSON with this exact structure:
{
  "description": "brief description (max 80 chars)",
  "summary": "key details and information"
}

If it's a document/receipt: include company name, date, amounts.
If it's a photo: describe what you see briefly.

Respond with ONLY the JSON object, nothing else."""

PDF_PROMPT = """You must respond with ONLY valid JSON, no other text.

Analyze this PDF and return JSON with this exact structure:
{
  "description": "brief description (max 80 chars)",
  "summary": "key points and details (max 400 chars)"
}

Include: document type, main subject, key dates, important numbers.

Respond with ONLY the JSON object, nothing else."""

_PROMPTS: dict[str, str] = {"image": IMAGE_PROMPT, "pdf": PDF_PROMPT}


def build_prompt(content_kind: ContentKind) -> str:
    return _PROMPTS[content_kind]
