# src/storage/registry.py - v1
"""Storage registry: resolve the configured adapter once, fail fast.

The registry is an explicit dependency built at process start. ``resolve``
validates the backend-specific configuration, constructs the adapter and
caches it; a half-configured backend is never handed out. The streaming
capability is determined at the same moment and exposed through
``streaming``.
"""

from __future__ import annotations

import logging
from typing import Any

from docsift.config.settings import (
    ConfigurationError,
    InlineStorageConfig,
    PostgresStorageConfig,
    S3StorageConfig,
    Settings,
    StorageConfig,
)
from docsift.core.models import StorageBackend
from docsift.core.retry import RetryPolicy
from docsift.storage.base_storage_adapter import BaseStorageAdapter, StreamingStorage
from docsift.storage.errors import StorageError, StorageErrorCode

logger = logging.getLogger(__name__)

MASK = "***MASKED***"
_SECRET_FIELDS = {"secret_access_key"}
_PARTIAL_FIELDS = {"access_key_id", "dsn"}


def mask_value(value: str) -> str:
    """Show the first and last four characters of a long secret."""
    if len(value) <= 8:
        return MASK
    return f"{value[:4]}...{value[-4:]}"


class StorageRegistry:
    """Owns the process-wide storage adapter."""

    def __init__(
        self,
        settings: Settings,
        *,
        s3_client: Any = None,
        pg_pool: Any = None,
    ) -> None:
        """Initialize the registry.

        Args:
            settings: Application settings (STORAGE_BACKEND and friends).
            s3_client: Pre-built boto3 client, passed to the S3 adapter.
            pg_pool: Pre-built async pool, passed to the PostgreSQL adapter.
        """
        self._settings = settings
        self._s3_client = s3_client
        self._pg_pool = pg_pool
        self._config: StorageConfig | None = None
        self._adapter: BaseStorageAdapter | None = None
        self._streaming: StreamingStorage | None = None

    def resolve(self) -> BaseStorageAdapter:
        """Validate configuration and build the adapter (cached).

        Raises:
            ConfigurationError: If the selected backend is misconfigured.
        """
        if self._adapter is not None:
            return self._adapter

        config = self._settings.storage_config()
        adapter = self._build(config)
        if not adapter.is_configured():
            raise ConfigurationError(
                f"Storage backend {self._settings.storage_backend!r} is not fully configured"
            )

        self._config = config
        self._adapter = adapter
        self._streaming = adapter if isinstance(adapter, StreamingStorage) else None
        logger.info(
            "Storage adapter resolved",
            extra={
                "data": {
                    "storage_backend": adapter.backend.value,
                    "streaming": self._streaming is not None,
                }
            },
        )
        return adapter

    def _build(self, config: StorageConfig) -> BaseStorageAdapter:
        if isinstance(config, S3StorageConfig):
            from docsift.storage.s3_adapter import S3StorageAdapter

            policy = RetryPolicy(
                max_retries=self._settings.ai_max_retries,
                base_delay_s=self._settings.ai_retry_base_delay_s,
            )
            return S3StorageAdapter(config, policy=policy, client=self._s3_client)
        if isinstance(config, PostgresStorageConfig):
            from docsift.storage.postgres_adapter import PostgresStorageAdapter

            return PostgresStorageAdapter(config, pool=self._pg_pool)
        if isinstance(config, InlineStorageConfig):
            from docsift.storage.inline_adapter import InlineStorageAdapter

            return InlineStorageAdapter(config)
        raise ConfigurationError(f"Unsupported storage config: {type(config).__name__}")

    @property
    def adapter(self) -> BaseStorageAdapter:
        return self.resolve()

    @property
    def backend(self) -> StorageBackend:
        return self.resolve().backend

    @property
    def streaming(self) -> StreamingStorage:
        """The streaming-capable adapter.

        Raises:
            StorageError: configuration_error when the active backend
                does not stream.
        """
        self.resolve()
        if self._streaming is None:
            raise StorageError(
                StorageErrorCode.CONFIGURATION_ERROR,
                "Storage backend does not support streaming",
                {"storage_backend": self._settings.storage_backend},
            )
        return self._streaming

    def masked_config(self) -> dict[str, Any]:
        """Configuration of the active backend, safe for diagnostics."""
        config = self._config or self._settings.storage_config()
        masked: dict[str, Any] = {}
        for name, value in config.model_dump().items():
            if isinstance(value, str) and value:
                if name in _SECRET_FIELDS:
                    value = MASK
                elif name in _PARTIAL_FIELDS:
                    value = mask_value(value)
            masked[name] = value
        masked["max_upload_mb"] = self._settings.max_upload_mb
        return masked

    async def close(self) -> None:
        if self._adapter is not None:
            await self._adapter.close()

    def reset(self) -> None:
        """Forget the resolved adapter. Test harnesses only."""
        self._config = None
        self._adapter = None
        self._streaming = None
