# src/documents/catalog_factory.py - v1
"""Factory for document catalog instantiation."""

from __future__ import annotations

from typing import Any

from docsift.config.settings import ConfigurationError, Settings
from docsift.documents.base_catalog import BaseDocumentCatalog


def create_document_catalog(
    settings: Settings, client: Any | None = None
) -> BaseDocumentCatalog:
    """Instantiate the catalog matching KV_BACKEND."""
    max_documents = settings.documents_max_per_collection

    if settings.kv_backend == "memory":
        from docsift.documents.memory_catalog import InMemoryDocumentCatalog

        return InMemoryDocumentCatalog(max_documents=max_documents)

    if settings.kv_backend == "redis":
        from docsift.documents.redis_catalog import RedisDocumentCatalog

        if client is None and not settings.redis_url:
            raise ConfigurationError("REDIS_URL must be set when KV_BACKEND=redis")
        return RedisDocumentCatalog(
            redis_url=settings.redis_url, client=client, max_documents=max_documents
        )

    raise ConfigurationError(f"Unsupported key/value backend: {settings.kv_backend!r}")
