# src/analysis/validator.py - v1
"""Parse and clean the model's raw output into an AnalysisResult.

Order matters: fences are stripped, JSON is parsed, both required fields are
checked, control characters are removed, and only then are the fields cut
to their maximum length.
"""

from __future__ import annotations

import json
import logging
import re

from docsift.core.models import AnalysisResult

logger = logging.getLogger(__name__)

# C0 controls except tab (\x09), newline (\x0a) and carriage return (\x0d),
# plus DEL and the C1 block.
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")
_FENCE = re.compile(r"^```[a-zA-Z0-9_-]*\s*\n?(.*?)\n?\s*```$", re.DOTALL)
_REQUIRED_FIELDS = ("description", "summary")


class ResponseValidationError(ValueError):
    """Model output could not be turned into a valid result.

    Never retryable: calling the model again with the same input is unlikely
    to fix a format problem.
    """


def strip_code_fences(text: str) -> str:
    """Remove a surrounding Markdown code fence (``` or ```json) if present."""
    cleaned = text.strip()
    match = _FENCE.match(cleaned)
    if match:
        return match.group(1).strip()
    if cleaned.startswith("```"):
        # Unterminated fence: drop the opening line only.
        first_newline = cleaned.find("\n")
        return cleaned[first_newline + 1:].strip() if first_newline != -1 else ""
    return cleaned


def sanitize_text(text: str) -> str:
    """Strip control characters, keeping newlines and tabs."""
    return _CONTROL_CHARS.sub("", text)


class ResponseValidator:
    """Validates raw model text against the description/summary contract."""

    def __init__(self, description_max_chars: int = 100, summary_max_chars: int = 500) -> None:
        self.description_max_chars = description_max_chars
        self.summary_max_chars = summary_max_chars

    def parse(self, text: str) -> AnalysisResult:
        """Parse raw model output.

        Raises:
            ResponseValidationError: If the text is not a JSON object or a
                required field is missing, empty or not a string.
        """
        cleaned = strip_code_fences(text or "")
        try:
            parsed = json.loads(cleaned)
        except json.JSONDecodeError as e:
            raise ResponseValidationError("Invalid response format: not JSON") from e

        if not isinstance(parsed, dict):
            raise ResponseValidationError("Invalid response format: expected a JSON object")

        missing = [
            name for name in _REQUIRED_FIELDS
            if not isinstance(parsed.get(name), str) or not parsed[name].strip()
        ]
        if missing:
            raise ResponseValidationError(
                f"Missing required fields in response: {', '.join(missing)}"
            )

        description = sanitize_text(parsed["description"])[: self.description_max_chars]
        summary = sanitize_text(parsed["summary"])[: self.summary_max_chars]

        logger.debug(
            "Response parsed",
            extra={
                "data": {
                    "original_description_length": len(parsed["description"]),
                    "original_summary_length": len(parsed["summary"]),
                    "truncated_description": len(description) < len(parsed["description"]),
                    "truncated_summary": len(summary) < len(parsed["summary"]),
                }
            },
        )
        return AnalysisResult(description=description, summary=summary, is_fallback=False)
