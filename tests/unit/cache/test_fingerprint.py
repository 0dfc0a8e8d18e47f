# tests/unit/cache/test_fingerprint.py - v2
"""Tests for cache/fingerprint.py."""

from __future__ import annotations

import hashlib

import pytest

from docsift.cache.fingerprint import cache_key, compute_fingerprint


class TestComputeFingerprint:
    def test_sha256_hex(self):
        assert compute_fingerprint(b"abc") == hashlib.sha256(b"abc").hexdigest()

    def test_deterministic_and_distinct(self):
        assert compute_fingerprint(b"one") == compute_fingerprint(b"one")
        assert compute_fingerprint(b"one") != compute_fingerprint(b"two")

    def test_empty_buffer_is_stable(self):
        assert compute_fingerprint(b"") == (
            "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
        )

    def test_rejects_text(self):
        with pytest.raises(TypeError):
            compute_fingerprint("abc")  # type: ignore[arg-type]


def test_cache_key_layout():
    assert cache_key("ff00") == "analysis:ff00"
