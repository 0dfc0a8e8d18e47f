# src/storage/base_storage_adapter.py - v1
"""Abstract storage adapters.

Every backend exposes the same four operations. Only the relational
backend can also stream payloads back through the server; that capability
is expressed as the separate StreamingStorage base so the registry can
resolve it once instead of probing adapters per request.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar

from docsift.core.models import (
    AccessUrl,
    StorageBackend,
    StorageMetadata,
    StorageResult,
    StoredContent,
)


class BaseStorageAdapter(ABC):
    """Unified interface for binary document storage backends."""

    backend: ClassVar[StorageBackend]

    @abstractmethod
    async def upload(self, data: bytes, metadata: StorageMetadata) -> StorageResult:
        """Store a payload and return its durable handle.

        Raises:
            StorageError: upload_failed or size_limit_exceeded.
        """

    @abstractmethod
    async def get_access_url(self, storage_key: str) -> AccessUrl:
        """Return a URL (or server endpoint) for retrieving the payload.

        Raises:
            StorageError: not_found or download_failed.
        """

    @abstractmethod
    async def delete(self, storage_key: str) -> None:
        """Remove a stored payload.

        Raises:
            StorageError: not_found or delete_failed.
        """

    @abstractmethod
    def is_configured(self) -> bool:
        """True when every field the backend needs is present."""

    async def close(self) -> None:
        """Release held resources (connection pools, clients)."""


class StreamingStorage(ABC):
    """Backends whose payloads are served through the streaming endpoint."""

    @abstractmethod
    async def read(self, storage_key: str) -> StoredContent:
        """Return payload bytes plus stored metadata.

        Raises:
            StorageError: not_found or download_failed.
        """
