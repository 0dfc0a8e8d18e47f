# src/documents/memory_catalog.py - v1
"""In-process document catalog (KV_BACKEND=memory). Single instance only."""

from __future__ import annotations

from docsift.core.models import Document
from docsift.documents.base_catalog import (
    DEFAULT_MAX_DOCUMENTS,
    BaseDocumentCatalog,
    documents_key,
)


class InMemoryDocumentCatalog(BaseDocumentCatalog):
    def __init__(self, max_documents: int = DEFAULT_MAX_DOCUMENTS) -> None:
        super().__init__(max_documents)
        self._store: dict[str, list[Document]] = {}

    async def _load(self, collection_id: str) -> list[Document]:
        return list(self._store.get(documents_key(collection_id), []))

    async def _save(self, collection_id: str, documents: list[Document]) -> None:
        self._store[documents_key(collection_id)] = list(documents)
