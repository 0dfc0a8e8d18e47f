# src/analysis/fallback.py - v1
"""Deterministic degraded result used when analysis cannot complete."""

from __future__ import annotations

from docsift.core.models import AnalysisResult, ContentKind

FALLBACK_SUMMARY = "Auto-analysis unavailable. Please add details manually."

_KIND_LABELS: dict[str, str] = {"pdf": "PDF", "image": "Image"}


def build_fallback(
    display_name: str,
    content_kind: ContentKind,
    description_max_chars: int = 100,
) -> AnalysisResult:
    """Build a generic, user-editable result. No I/O, never raises."""
    label = _KIND_LABELS.get(content_kind, "Document")
    name = display_name or "untitled"
    return AnalysisResult(
        description=f"{label} - {name}"[:description_max_chars],
        summary=FALLBACK_SUMMARY,
        is_fallback=True,
    )
