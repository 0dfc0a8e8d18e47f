# src/core/content.py - v1
"""Helpers for uploaded content: base64/data-URI decoding, content-kind
detection and filename sanitizing."""

from __future__ import annotations

import base64
import binascii
import logging
import re

from docsift.core.models import ContentKind

logger = logging.getLogger(__name__)

_DATA_URI_RE = re.compile(r"^data:([^;,]+)?(?:;[^,]*)?,", re.IGNORECASE)
_IMAGE_TOKENS = ("image", "jpeg", "jpg", "png", "gif", "webp")
_IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp")
_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


def decode_base64_payload(data: str) -> tuple[bytes, str | None]:
    """Decode raw base64 or a ``data:<mime>;base64,`` URI.

    Returns:
        (decoded bytes, MIME type from the data URI or None).

    Raises:
        ValueError: If the payload is not valid base64.
    """
    mime: str | None = None
    payload = data.strip()
    match = _DATA_URI_RE.match(payload)
    if match:
        mime = match.group(1).lower() if match.group(1) else None
        payload = payload[match.end():]

    try:
        return base64.b64decode(payload, validate=True), mime
    except (binascii.Error, ValueError) as e:
        raise ValueError("content is not valid base64") from e


def detect_content_kind(
    content_type: str,
    display_name: str = "",
    data_uri_mime: str | None = None,
) -> ContentKind:
    """Decide whether content is an image or a PDF document.

    Checks the declared MIME type, then the data-URI MIME type, then the
    file extension. Defaults to image when nothing matches.
    """
    normalized = (content_type or "").lower()
    if "pdf" in normalized:
        return "pdf"
    if any(token in normalized for token in _IMAGE_TOKENS):
        return "image"

    if data_uri_mime:
        if data_uri_mime.startswith("application/pdf"):
            return "pdf"
        if data_uri_mime.startswith("image/"):
            return "image"

    name = (display_name or "").lower()
    if name.endswith(".pdf"):
        return "pdf"
    if name.endswith(_IMAGE_EXTENSIONS):
        return "image"

    logger.warning(
        "Could not determine content kind, defaulting to image",
        extra={"data": {"content_type": content_type, "display_name": display_name}},
    )
    return "image"


def sanitize_filename(name: str) -> str:
    """Replace characters outside ``[A-Za-z0-9._-]`` with underscores."""
    cleaned = _UNSAFE_FILENAME_CHARS.sub("_", name or "")
    return cleaned or "unnamed"
