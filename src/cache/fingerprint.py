# src/cache/fingerprint.py - v3
"""Content fingerprinting for cache keys.

A fingerprint is the SHA-256 hex digest of the raw content bytes. It is
deterministic, has no failure modes for valid input, and the empty buffer
has a stable fingerprint like any other.
"""

from __future__ import annotations

import hashlib


def compute_fingerprint(raw_bytes: bytes) -> str:
    """Return the SHA-256 hex digest of ``raw_bytes``.

    Raises:
        TypeError: If ``raw_bytes`` is not a bytes-like object.
    """
    if not isinstance(raw_bytes, (bytes, bytearray, memoryview)):
        raise TypeError(
            f"fingerprint input must be bytes, got {type(raw_bytes).__name__}"
        )
    return hashlib.sha256(raw_bytes).hexdigest()


def cache_key(fingerprint: str) -> str:
    """Key-value store key for a fingerprint."""
    return f"analysis:{fingerprint}"
