# src/storage/s3_adapter.py - v1
"""S3-compatible object storage adapter (STORAGE_BACKEND=s3).

Supports AWS S3, MinIO and other S3-compatible endpoints. boto3 is
synchronous, so every call runs in a worker thread to keep the event loop
free for other requests.

Key layout: documents/{owner}/{collection}/{epoch_ms}/{random}/{filename}
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import time
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote

from botocore.exceptions import (
    ClientError,
    ConnectionClosedError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from docsift.config.settings import S3StorageConfig
from docsift.core.content import sanitize_filename
from docsift.core.models import AccessUrl, StorageBackend, StorageMetadata, StorageResult
from docsift.core.retry import RetryPolicy, Sleep, is_retryable_error, retry_async
from docsift.storage.base_storage_adapter import BaseStorageAdapter
from docsift.storage.errors import StorageError, StorageErrorCode

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}
_RETRYABLE_CODES = {
    "RequestTimeout",
    "RequestTimeoutException",
    "SlowDown",
    "ServiceUnavailable",
    "InternalError",
    "Throttling",
    "ThrottlingException",
}


def _client_error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


def is_retryable_s3_error(error: BaseException) -> bool:
    """Transient network and 5xx/throttling failures are retryable."""
    if isinstance(error, (EndpointConnectionError, ConnectionClosedError, ReadTimeoutError)):
        return True
    if isinstance(error, ClientError):
        status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0)
        return status >= 500 or _client_error_code(error) in _RETRYABLE_CODES
    return is_retryable_error(error)


def _is_not_found(error: BaseException) -> bool:
    return isinstance(error, ClientError) and _client_error_code(error) in _NOT_FOUND_CODES


class S3StorageAdapter(BaseStorageAdapter):
    """Store documents as objects; hand out presigned GET URLs."""

    backend = StorageBackend.OBJECT_STORE

    def __init__(
        self,
        config: S3StorageConfig,
        policy: RetryPolicy | None = None,
        client: Any = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Initialize the adapter.

        Args:
            config: Validated S3 settings.
            policy: Retry schedule for uploads (defaults to the AI schedule).
            client: Pre-built boto3 S3 client (tests inject a fake).
            sleep: Backoff sleep, injectable for tests.
        """
        self._config = config
        self._policy = policy or RetryPolicy()
        self._sleep = sleep
        self._s3 = client if client is not None else self._build_client(config)

    @staticmethod
    def _build_client(config: S3StorageConfig) -> Any:
        import boto3

        kwargs: dict[str, Any] = {
            "region_name": config.region,
            "aws_access_key_id": config.access_key_id,
            "aws_secret_access_key": config.secret_access_key,
        }
        if config.endpoint_url:
            kwargs["endpoint_url"] = config.endpoint_url
        return boto3.client("s3", **kwargs)

    def is_configured(self) -> bool:
        c = self._config
        return bool(c.region and c.access_key_id and c.secret_access_key and c.bucket)

    @staticmethod
    def build_key(metadata: StorageMetadata, now_ms: int | None = None) -> str:
        """Hierarchical, collision-resistant object key."""
        epoch_ms = now_ms if now_ms is not None else int(time.time() * 1000)
        return "/".join([
            "documents",
            sanitize_filename(metadata.owner_id),
            sanitize_filename(metadata.collection_id),
            str(epoch_ms),
            secrets.token_hex(4),
            sanitize_filename(metadata.display_name),
        ])

    async def upload(self, data: bytes, metadata: StorageMetadata) -> StorageResult:
        key = self.build_key(metadata)
        object_metadata = {
            "original-name": quote(metadata.display_name),
            "owner-id": quote(metadata.owner_id),
            "collection-id": quote(metadata.collection_id),
            "byte-size": str(len(data)),
            "uploaded-at": datetime.now(timezone.utc).isoformat(),
        }

        async def _put() -> None:
            await asyncio.to_thread(
                self._s3.put_object,
                Bucket=self._config.bucket,
                Key=key,
                Body=data,
                ContentType=metadata.content_type,
                Metadata=object_metadata,
            )

        try:
            await retry_async(
                _put,
                self._policy,
                operation="S3 upload",
                is_retryable=is_retryable_s3_error,
                sleep=self._sleep,
            )
        except Exception as e:
            raise StorageError(
                StorageErrorCode.UPLOAD_FAILED,
                f"Failed to upload to S3: {type(e).__name__}",
                {"storage_key": key},
            ) from e

        logger.info(
            "S3 upload complete",
            extra={"data": {"storage_key": key, "byte_size": len(data)}},
        )
        return StorageResult(storage_key=key, backend=self.backend)

    async def _ensure_exists(self, storage_key: str, failure: StorageErrorCode) -> None:
        try:
            await asyncio.to_thread(
                self._s3.head_object, Bucket=self._config.bucket, Key=storage_key
            )
        except Exception as e:
            if _is_not_found(e):
                raise StorageError(
                    StorageErrorCode.NOT_FOUND,
                    "File not found in storage",
                    {"storage_key": storage_key},
                ) from e
            raise StorageError(
                failure,
                f"S3 request failed: {type(e).__name__}",
                {"storage_key": storage_key},
            ) from e

    async def get_access_url(self, storage_key: str) -> AccessUrl:
        await self._ensure_exists(storage_key, StorageErrorCode.DOWNLOAD_FAILED)
        try:
            url = await asyncio.to_thread(
                self._s3.generate_presigned_url,
                "get_object",
                Params={"Bucket": self._config.bucket, "Key": storage_key},
                ExpiresIn=self._config.url_expiry_s,
            )
        except Exception as e:
            raise StorageError(
                StorageErrorCode.DOWNLOAD_FAILED,
                f"Failed to generate download URL: {type(e).__name__}",
                {"storage_key": storage_key},
            ) from e
        return AccessUrl(url=url, expires_in=self._config.url_expiry_s)

    async def delete(self, storage_key: str) -> None:
        await self._ensure_exists(storage_key, StorageErrorCode.DELETE_FAILED)
        try:
            await asyncio.to_thread(
                self._s3.delete_object, Bucket=self._config.bucket, Key=storage_key
            )
        except Exception as e:
            raise StorageError(
                StorageErrorCode.DELETE_FAILED,
                f"Failed to delete from S3: {type(e).__name__}",
                {"storage_key": storage_key},
            ) from e
        logger.info("S3 object deleted", extra={"data": {"storage_key": storage_key}})
