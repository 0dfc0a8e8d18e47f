# src/storage/postgres_adapter.py - v1
"""PostgreSQL storage adapter (STORAGE_BACKEND=postgresql).

Payloads live in a BYTEA column next to their metadata. Retrieval goes
through the server's streaming endpoint rather than an external URL, and
every read bumps the access audit columns. All statements are
parameterized.

Requires psycopg 3 with psycopg_pool; the pool is bounded by
POSTGRESQL_POOL_MAX and queues callers beyond that.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import time
from typing import Any

from docsift.config.settings import PostgresStorageConfig
from docsift.core.models import (
    AccessUrl,
    StorageBackend,
    StorageMetadata,
    StorageResult,
    StoredContent,
)
from docsift.storage.base_storage_adapter import BaseStorageAdapter, StreamingStorage
from docsift.storage.errors import StorageError, StorageErrorCode

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS document_storage (
    id SERIAL PRIMARY KEY,
    storage_key TEXT UNIQUE NOT NULL,
    display_name TEXT NOT NULL,
    content_type TEXT NOT NULL,
    byte_size INTEGER NOT NULL,
    owner_id TEXT NOT NULL,
    collection_id TEXT NOT NULL,
    payload BYTEA NOT NULL,
    created_at TIMESTAMPTZ DEFAULT NOW(),
    accessed_at TIMESTAMPTZ,
    access_count INTEGER DEFAULT 0
);
CREATE INDEX IF NOT EXISTS idx_document_storage_key ON document_storage(storage_key);
CREATE INDEX IF NOT EXISTS idx_document_storage_collection ON document_storage(collection_id);
CREATE INDEX IF NOT EXISTS idx_document_storage_owner ON document_storage(owner_id);
CREATE INDEX IF NOT EXISTS idx_document_storage_created ON document_storage(created_at DESC);
"""

_INSERT_SQL = """
INSERT INTO document_storage
    (storage_key, display_name, content_type, byte_size, owner_id, collection_id, payload)
VALUES (%s, %s, %s, %s, %s, %s, %s)
"""
_EXISTS_SQL = "SELECT 1 FROM document_storage WHERE storage_key = %s"
_READ_SQL = """
UPDATE document_storage
SET access_count = access_count + 1, accessed_at = NOW()
WHERE storage_key = %s
RETURNING payload, content_type, display_name
"""
_DELETE_SQL = "DELETE FROM document_storage WHERE storage_key = %s"


class PostgresStorageAdapter(BaseStorageAdapter, StreamingStorage):
    """Store documents in PostgreSQL and serve them through the stream endpoint."""

    backend = StorageBackend.RELATIONAL

    def __init__(self, config: PostgresStorageConfig, pool: Any = None) -> None:
        """Initialize the adapter.

        Args:
            config: Validated PostgreSQL settings.
            pool: Pre-built async connection pool (tests inject a fake).
                When omitted, a psycopg_pool.AsyncConnectionPool is opened
                lazily on first use.
        """
        self._config = config
        self._pool = pool
        self._owns_pool = pool is None
        self._schema_ready = False
        self._pool_lock = asyncio.Lock()

    def is_configured(self) -> bool:
        return bool(self._config.dsn and self._config.server_base_url)

    async def _get_pool(self) -> Any:
        if self._pool is not None:
            return self._pool
        async with self._pool_lock:
            if self._pool is None:
                from psycopg_pool import AsyncConnectionPool

                kwargs: dict[str, Any] = {}
                if self._config.ssl:
                    kwargs["sslmode"] = "require"
                pool = AsyncConnectionPool(
                    self._config.dsn,
                    min_size=1,
                    max_size=self._config.pool_max,
                    kwargs=kwargs,
                    open=False,
                )
                await pool.open()
                # Publish only after open() completes.
                self._pool = pool
                logger.info(
                    "PostgreSQL connection pool opened",
                    extra={"data": {"max_size": self._config.pool_max}},
                )
        return self._pool

    async def _execute(self, sql: str, params: tuple[Any, ...]) -> tuple[Any, int]:
        """Run one statement; return (first row or None, affected row count)."""
        pool = await self._get_pool()
        async with pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(sql, params)
                row = await cur.fetchone() if cur.description else None
                return row, cur.rowcount

    async def init_schema(self) -> None:
        """Create the storage table and its indexes if missing."""
        if self._schema_ready:
            return
        pool = await self._get_pool()
        async with pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(SCHEMA_SQL)
        self._schema_ready = True
        logger.info("PostgreSQL storage schema ready")

    @staticmethod
    def build_key(now_ms: int | None = None) -> str:
        epoch_ms = now_ms if now_ms is not None else int(time.time() * 1000)
        return f"pg_{epoch_ms}_{secrets.token_hex(6)}"

    def stream_url(self, storage_key: str) -> str:
        base = self._config.server_base_url.rstrip("/")
        return f"{base}/documents/stream/{storage_key}"

    async def upload(self, data: bytes, metadata: StorageMetadata) -> StorageResult:
        key = self.build_key()
        try:
            await self.init_schema()
            await self._execute(
                _INSERT_SQL,
                (
                    key,
                    metadata.display_name,
                    metadata.content_type,
                    len(data),
                    metadata.owner_id,
                    metadata.collection_id,
                    data,
                ),
            )
        except Exception as e:
            raise StorageError(
                StorageErrorCode.UPLOAD_FAILED,
                f"Failed to upload to PostgreSQL: {type(e).__name__}",
                {"storage_key": key},
            ) from e

        logger.info(
            "PostgreSQL upload complete",
            extra={"data": {"storage_key": key, "byte_size": len(data)}},
        )
        return StorageResult(
            storage_key=key,
            backend=self.backend,
            access_hint=self.stream_url(key),
        )

    async def get_access_url(self, storage_key: str) -> AccessUrl:
        try:
            row, _ = await self._execute(_EXISTS_SQL, (storage_key,))
        except Exception as e:
            raise StorageError(
                StorageErrorCode.DOWNLOAD_FAILED,
                f"Failed to look up document: {type(e).__name__}",
                {"storage_key": storage_key},
            ) from e
        if row is None:
            raise StorageError(
                StorageErrorCode.NOT_FOUND,
                "File not found in storage",
                {"storage_key": storage_key},
            )
        return AccessUrl(url=self.stream_url(storage_key))

    async def read(self, storage_key: str) -> StoredContent:
        try:
            row, _ = await self._execute(_READ_SQL, (storage_key,))
        except Exception as e:
            raise StorageError(
                StorageErrorCode.DOWNLOAD_FAILED,
                f"Failed to read document: {type(e).__name__}",
                {"storage_key": storage_key},
            ) from e
        if row is None:
            raise StorageError(
                StorageErrorCode.NOT_FOUND,
                "File not found in storage",
                {"storage_key": storage_key},
            )
        payload, content_type, display_name = row
        return StoredContent(
            data=bytes(payload), content_type=content_type, display_name=display_name
        )

    async def delete(self, storage_key: str) -> None:
        try:
            _, rowcount = await self._execute(_DELETE_SQL, (storage_key,))
        except Exception as e:
            raise StorageError(
                StorageErrorCode.DELETE_FAILED,
                f"Failed to delete from PostgreSQL: {type(e).__name__}",
                {"storage_key": storage_key},
            ) from e
        if rowcount == 0:
            raise StorageError(
                StorageErrorCode.NOT_FOUND,
                "File not found in storage",
                {"storage_key": storage_key},
            )
        logger.info("PostgreSQL document deleted", extra={"data": {"storage_key": storage_key}})

    async def close(self) -> None:
        if self._owns_pool and self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("PostgreSQL connection pool closed")
