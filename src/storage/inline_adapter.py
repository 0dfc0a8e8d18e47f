# src/storage/inline_adapter.py - v1
"""Inline storage adapter (STORAGE_BACKEND=inline).

Small payloads travel inside the document metadata record as a data URI,
so there is nothing to fetch or delete on a remote backend.
"""

from __future__ import annotations

import base64
import logging
import secrets
import time

from docsift.config.settings import InlineStorageConfig
from docsift.core.models import AccessUrl, StorageBackend, StorageMetadata, StorageResult
from docsift.storage.base_storage_adapter import BaseStorageAdapter
from docsift.storage.errors import StorageError, StorageErrorCode

logger = logging.getLogger(__name__)


def to_data_uri(data: bytes, content_type: str) -> str:
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{content_type or 'application/octet-stream'};base64,{encoded}"


class InlineStorageAdapter(BaseStorageAdapter):
    """Encode payloads into the metadata record; enforce the inline size cap."""

    backend = StorageBackend.INLINE

    def __init__(self, config: InlineStorageConfig | None = None) -> None:
        self._config = config or InlineStorageConfig()

    @property
    def max_bytes(self) -> int:
        return self._config.max_bytes

    def is_configured(self) -> bool:
        return True

    async def upload(self, data: bytes, metadata: StorageMetadata) -> StorageResult:
        if len(data) > self._config.max_bytes:
            raise StorageError(
                StorageErrorCode.SIZE_LIMIT_EXCEEDED,
                f"File size exceeds maximum limit of {self._config.max_bytes // 1024}KB. "
                f"Current size: {len(data) / 1024:.2f}KB",
                {"byte_size": len(data), "max_bytes": self._config.max_bytes},
            )
        key = f"inline_{int(time.time() * 1000)}_{secrets.token_hex(4)}"
        logger.debug(
            "Inline payload encoded",
            extra={"data": {"storage_key": key, "byte_size": len(data)}},
        )
        return StorageResult(
            storage_key=key,
            backend=self.backend,
            access_hint=to_data_uri(data, metadata.content_type),
        )

    async def get_access_url(self, storage_key: str) -> AccessUrl:
        raise StorageError(
            StorageErrorCode.DOWNLOAD_FAILED,
            "Inline documents are returned directly, not through a URL",
            {"storage_key": storage_key},
        )

    async def delete(self, storage_key: str) -> None:
        """Nothing to remove: the payload goes away with its metadata record."""
