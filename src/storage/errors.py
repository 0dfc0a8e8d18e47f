# src/storage/errors.py - v1
"""Typed storage failure surfaced to callers.

Messages never carry credentials; ``details`` holds only non-secret
context such as the storage key or the underlying exception type.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class StorageErrorCode(str, Enum):
    UPLOAD_FAILED = "upload_failed"
    DOWNLOAD_FAILED = "download_failed"
    DELETE_FAILED = "delete_failed"
    NOT_FOUND = "not_found"
    CONFIGURATION_ERROR = "configuration_error"
    SIZE_LIMIT_EXCEEDED = "size_limit_exceeded"


class StorageError(Exception):
    """Storage operation failed with a typed code."""

    def __init__(
        self,
        code: StorageErrorCode,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def __repr__(self) -> str:
        return f"StorageError(code={self.code.value!r}, message={self.message!r})"
