# src/documents/base_catalog.py - v1
"""Document metadata catalog: one bounded, newest-first list per collection.

Concrete stores only load and save the whole list; list maintenance
(prepend, eviction, removal) lives here so every backend behaves the same.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod

from docsift.core.models import Document

logger = logging.getLogger(__name__)

DEFAULT_MAX_DOCUMENTS = 20


def documents_key(collection_id: str) -> str:
    return f"documents:{collection_id}"


class BaseDocumentCatalog(ABC):
    """Abstract per-collection document list."""

    def __init__(self, max_documents: int = DEFAULT_MAX_DOCUMENTS) -> None:
        if max_documents <= 0:
            raise ValueError("max_documents must be > 0")
        self._max_documents = max_documents
        self._lock = asyncio.Lock()

    @property
    def max_documents(self) -> int:
        return self._max_documents

    @abstractmethod
    async def _load(self, collection_id: str) -> list[Document]:
        """Return the stored list, newest first (empty when absent)."""

    @abstractmethod
    async def _save(self, collection_id: str, documents: list[Document]) -> None:
        """Replace the stored list."""

    async def close(self) -> None:
        """Release backend resources."""

    async def list_documents(self, collection_id: str) -> list[Document]:
        return await self._load(collection_id)

    async def get(self, collection_id: str, document_id: str) -> Document | None:
        for doc in await self._load(collection_id):
            if doc.id == document_id:
                return doc
        return None

    async def find_by_storage_key(
        self, collection_id: str, storage_key: str
    ) -> Document | None:
        for doc in await self._load(collection_id):
            if doc.storage_key == storage_key:
                return doc
        return None

    async def add(self, collection_id: str, document: Document) -> list[Document]:
        """Prepend a document, evicting the oldest beyond the bound.

        Returns:
            Documents evicted to respect the bound.
        """
        async with self._lock:
            documents = await self._load(collection_id)
            documents.insert(0, document)
            evicted = documents[self._max_documents:]
            await self._save(collection_id, documents[: self._max_documents])
        if evicted:
            logger.info(
                "Evicted oldest documents from collection",
                extra={"data": {"evicted": [d.id for d in evicted]}},
            )
        return evicted

    async def remove(self, collection_id: str, document_id: str) -> bool:
        """Drop a document from the list. Returns False if it was absent."""
        async with self._lock:
            documents = await self._load(collection_id)
            remaining = [d for d in documents if d.id != document_id]
            if len(remaining) == len(documents):
                return False
            await self._save(collection_id, remaining)
        return True
