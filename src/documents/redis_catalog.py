# src/documents/redis_catalog.py - v1
"""Redis-backed document catalog (KV_BACKEND=redis).

Each collection is one JSON array stored at ``documents:{collectionId}``.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import TypeAdapter, ValidationError

from docsift.core.models import Document
from docsift.documents.base_catalog import (
    DEFAULT_MAX_DOCUMENTS,
    BaseDocumentCatalog,
    documents_key,
)

logger = logging.getLogger(__name__)

_DOCUMENT_LIST = TypeAdapter(list[Document])


class RedisDocumentCatalog(BaseDocumentCatalog):
    def __init__(
        self,
        redis_url: str = "",
        client: Any | None = None,
        max_documents: int = DEFAULT_MAX_DOCUMENTS,
    ) -> None:
        super().__init__(max_documents)
        if client is None:
            import redis.asyncio as aioredis

            client = aioredis.Redis.from_url(redis_url, decode_responses=True)
        self._client = client

    async def _load(self, collection_id: str) -> list[Document]:
        data = await self._client.get(documents_key(collection_id))
        if data is None:
            return []
        try:
            return _DOCUMENT_LIST.validate_json(data)
        except ValidationError as e:
            logger.error("Corrupt document list for %s: %s", collection_id, e)
            raise

    async def _save(self, collection_id: str, documents: list[Document]) -> None:
        await self._client.set(
            documents_key(collection_id), _DOCUMENT_LIST.dump_json(documents)
        )

    async def close(self) -> None:
        await self._client.aclose()
