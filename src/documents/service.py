# src/documents/service.py - v1
"""Document upload, retrieval, streaming and deletion.

Couples the storage adapter (payload) with the catalog (metadata). Metadata
is written after a successful upload and removed only after a successful
backend delete, so a failed delete never orphans a payload behind missing
metadata. If the metadata write itself fails, the fresh payload is removed
again on a best-effort basis.
"""

from __future__ import annotations

import logging
import secrets
import time
from datetime import datetime, timezone

from docsift.core.models import (
    Document,
    DocumentRetrieval,
    StorageBackend,
    StorageMetadata,
    StoredContent,
)
from docsift.documents.base_catalog import BaseDocumentCatalog
from docsift.storage.errors import StorageError, StorageErrorCode
from docsift.storage.registry import StorageRegistry

logger = logging.getLogger(__name__)


class DocumentNotFoundError(LookupError):
    """No document with the given id / storage key in the collection."""


class StreamingNotSupportedError(ValueError):
    """Streaming was requested for a document outside the relational backend."""


def new_document_id() -> str:
    return f"doc_{int(time.time() * 1000)}_{secrets.token_hex(5)}"


class DocumentService:
    """Storage-backed document operations scoped to a collection."""

    def __init__(
        self,
        registry: StorageRegistry,
        catalog: BaseDocumentCatalog,
        max_upload_bytes: int,
    ) -> None:
        self._registry = registry
        self._catalog = catalog
        self._max_upload_bytes = max_upload_bytes

    @property
    def catalog(self) -> BaseDocumentCatalog:
        return self._catalog

    async def upload(
        self,
        content: bytes,
        *,
        content_type: str,
        display_name: str,
        owner_id: str,
        collection_id: str,
        description: str = "",
        notes: str = "",
    ) -> Document:
        """Store the payload, then record its metadata.

        Raises:
            StorageError: size_limit_exceeded before any backend call, or
                the adapter's upload failure.
        """
        if len(content) > self._max_upload_bytes:
            raise StorageError(
                StorageErrorCode.SIZE_LIMIT_EXCEEDED,
                f"File size exceeds maximum limit of "
                f"{self._max_upload_bytes // (1024 * 1024)}MB",
                {"byte_size": len(content), "max_bytes": self._max_upload_bytes},
            )

        adapter = self._registry.adapter
        stored = await adapter.upload(
            content,
            StorageMetadata(
                display_name=display_name,
                content_type=content_type,
                byte_size=len(content),
                owner_id=owner_id,
                collection_id=collection_id,
            ),
        )

        inline = stored.backend is StorageBackend.INLINE
        document = Document(
            id=new_document_id(),
            display_name=display_name,
            content_type=content_type,
            byte_size=len(content),
            backend=stored.backend,
            storage_key=None if inline else stored.storage_key,
            inline_content=stored.access_hint if inline else None,
            owner_id=owner_id,
            description=description,
            notes=notes,
            created_at=datetime.now(timezone.utc),
        )
        try:
            evicted = await self._catalog.add(collection_id, document)
        except Exception:
            logger.error(
                "Recording document metadata failed, removing stored payload",
                extra={"data": {"document_id": document.id, "backend": stored.backend.value}},
                exc_info=True,
            )
            await self._discard_payload(document)
            raise
        for old in evicted:
            await self._discard_payload(old)

        logger.info(
            "Document uploaded",
            extra={
                "data": {
                    "document_id": document.id,
                    "backend": document.backend.value,
                    "byte_size": document.byte_size,
                }
            },
        )
        return document

    async def list_documents(self, collection_id: str) -> list[Document]:
        return await self._catalog.list_documents(collection_id)

    async def retrieve(self, collection_id: str, document_id: str) -> DocumentRetrieval:
        """Resolve how a client fetches a document's content.

        Raises:
            DocumentNotFoundError: Unknown document id.
            StorageError: From the adapter (not_found, download_failed).
        """
        document = await self._require(collection_id, document_id)
        if document.backend is StorageBackend.INLINE:
            return DocumentRetrieval(
                backend=document.backend, inline_content=document.inline_content
            )

        adapter = self._adapter_for(document)
        access = await adapter.get_access_url(document.storage_key or "")
        logger.info(
            "Access URL issued",
            extra={"data": {"document_id": document.id, "backend": document.backend.value}},
        )
        return DocumentRetrieval(
            backend=document.backend, url=access.url, expires_in=access.expires_in
        )

    async def stream(
        self, collection_id: str, storage_key: str
    ) -> StoredContent:
        """Read a relational payload after checking it belongs to the collection.

        Raises:
            DocumentNotFoundError: Key not owned by this collection.
            StreamingNotSupportedError: Document is not stored relationally.
            StorageError: From the adapter.
        """
        document = await self._catalog.find_by_storage_key(collection_id, storage_key)
        if document is None:
            raise DocumentNotFoundError("Document not found")
        if document.backend is not StorageBackend.RELATIONAL:
            raise StreamingNotSupportedError("Invalid storage provider for streaming")
        return await self._registry.streaming.read(storage_key)

    async def delete(self, collection_id: str, document_id: str) -> None:
        """Delete the payload, then the metadata.

        Raises:
            DocumentNotFoundError: Unknown document id.
            StorageError: Backend delete failed; metadata is left intact.
        """
        document = await self._require(collection_id, document_id)
        if document.backend is not StorageBackend.INLINE:
            adapter = self._adapter_for(document)
            try:
                await adapter.delete(document.storage_key or "")
            except StorageError:
                logger.error(
                    "Backend delete failed, keeping metadata",
                    extra={"data": {"document_id": document.id}},
                    exc_info=True,
                )
                raise

        await self._catalog.remove(collection_id, document_id)
        logger.info("Document deleted", extra={"data": {"document_id": document.id}})

    async def _require(self, collection_id: str, document_id: str) -> Document:
        document = await self._catalog.get(collection_id, document_id)
        if document is None:
            raise DocumentNotFoundError("Document not found")
        return document

    def _adapter_for(self, document: Document):
        adapter = self._registry.adapter
        if adapter.backend is not document.backend:
            raise StorageError(
                StorageErrorCode.CONFIGURATION_ERROR,
                f"Document is stored in {document.backend.value} but the active "
                f"backend is {adapter.backend.value}",
                {"document_id": document.id},
            )
        return adapter

    async def _discard_payload(self, document: Document) -> None:
        """Best-effort removal of a payload whose metadata is gone or never landed."""
        if document.backend is StorageBackend.INLINE:
            return
        try:
            await self._adapter_for(document).delete(document.storage_key or "")
        except StorageError as e:
            logger.warning(
                "Could not delete orphaned payload: %s",
                e.message,
                extra={"data": {"document_id": document.id, "code": e.code.value}},
            )
