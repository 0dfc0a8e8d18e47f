# tests/unit/storage/test_s3_adapter.py - v1
"""Tests for storage/s3_adapter.py with an in-memory boto3 client."""

from __future__ import annotations

import pytest
from botocore.exceptions import EndpointConnectionError

from docsift.core.models import StorageBackend, StorageMetadata
from docsift.core.retry import RetryPolicy
from docsift.storage.errors import StorageError, StorageErrorCode
from docsift.storage.s3_adapter import S3StorageAdapter, is_retryable_s3_error
from fakes import PDF_BYTES, RecordingSleep, client_error

SECRET = "super-secret-access-key-value"


def _metadata(name: str = "Q1 report.pdf") -> StorageMetadata:
    return StorageMetadata(
        display_name=name,
        content_type="application/pdf",
        byte_size=len(PDF_BYTES),
        owner_id="user-1",
        collection_id="col-9",
    )


@pytest.fixture
def adapter(s3_settings, fake_s3, recording_sleep) -> S3StorageAdapter:
    return S3StorageAdapter(
        s3_settings.storage_config(), policy=RetryPolicy(), client=fake_s3, sleep=recording_sleep
    )


class TestKeys:
    def test_layout(self):
        key = S3StorageAdapter.build_key(_metadata(), now_ms=1700000000000)
        parts = key.split("/")
        assert parts[:4] == ["documents", "user-1", "col-9", "1700000000000"]
        assert len(parts[4]) == 8
        assert parts[5] == "Q1_report.pdf"

    def test_collision_resistant(self):
        a = S3StorageAdapter.build_key(_metadata(), now_ms=1)
        b = S3StorageAdapter.build_key(_metadata(), now_ms=1)
        assert a != b


class TestRoundTrip:
    @pytest.mark.asyncio
    async def test_upload_url_delete(self, adapter, fake_s3):
        result = await adapter.upload(PDF_BYTES, _metadata())
        assert result.backend is StorageBackend.OBJECT_STORE

        stored = fake_s3.objects[("docs-bucket", result.storage_key)]
        assert stored["Body"] == PDF_BYTES
        assert stored["ContentType"] == "application/pdf"
        assert stored["Metadata"]["original-name"] == "Q1%20report.pdf"
        assert stored["Metadata"]["byte-size"] == str(len(PDF_BYTES))

        access = await adapter.get_access_url(result.storage_key)
        assert result.storage_key in access.url
        assert access.expires_in == 3600

        await adapter.delete(result.storage_key)
        with pytest.raises(StorageError) as exc_info:
            await adapter.get_access_url(result.storage_key)
        assert exc_info.value.code is StorageErrorCode.NOT_FOUND

    @pytest.mark.asyncio
    async def test_delete_missing_is_not_found(self, adapter):
        with pytest.raises(StorageError) as exc_info:
            await adapter.delete("documents/none")
        assert exc_info.value.code is StorageErrorCode.NOT_FOUND

    def test_is_configured(self, adapter):
        assert adapter.is_configured() is True


class TestUploadRetries:
    @pytest.mark.asyncio
    async def test_transient_failures_retried_with_backoff(self, adapter, fake_s3, recording_sleep):
        fake_s3.put_failures = [
            EndpointConnectionError(endpoint_url="https://s3.test"),
            client_error("SlowDown", 503, "PutObject"),
        ]
        result = await adapter.upload(PDF_BYTES, _metadata())
        assert fake_s3.put_calls == 3
        assert recording_sleep.delays == [1.0, 2.0]
        assert ("docs-bucket", result.storage_key) in fake_s3.objects

    @pytest.mark.asyncio
    async def test_retries_exhausted(self, adapter, fake_s3):
        fake_s3.put_failures = [EndpointConnectionError(endpoint_url="https://s3.test")] * 3
        with pytest.raises(StorageError) as exc_info:
            await adapter.upload(PDF_BYTES, _metadata())
        assert exc_info.value.code is StorageErrorCode.UPLOAD_FAILED
        assert fake_s3.put_calls == 3

    @pytest.mark.asyncio
    async def test_access_denied_fails_fast_without_secrets(self, adapter, fake_s3, recording_sleep):
        fake_s3.put_failures = [client_error("AccessDenied", 403, "PutObject")]
        with pytest.raises(StorageError) as exc_info:
            await adapter.upload(PDF_BYTES, _metadata())
        assert fake_s3.put_calls == 1
        assert recording_sleep.delays == []
        assert SECRET not in str(exc_info.value)
        assert SECRET not in repr(exc_info.value.details)


class TestFailures:
    @pytest.mark.asyncio
    async def test_head_forbidden_is_download_failed(self, adapter, fake_s3, monkeypatch):
        def forbidden(**_):
            raise client_error("403", 403)

        monkeypatch.setattr(fake_s3, "head_object", forbidden)
        with pytest.raises(StorageError) as exc_info:
            await adapter.get_access_url("documents/x")
        assert exc_info.value.code is StorageErrorCode.DOWNLOAD_FAILED

    @pytest.mark.asyncio
    async def test_delete_failure(self, adapter, fake_s3):
        result = await adapter.upload(PDF_BYTES, _metadata())
        fake_s3.delete_failures = [client_error("InternalError", 500, "DeleteObject")]
        with pytest.raises(StorageError) as exc_info:
            await adapter.delete(result.storage_key)
        assert exc_info.value.code is StorageErrorCode.DELETE_FAILED


class TestClassification:
    def test_retryable(self):
        assert is_retryable_s3_error(EndpointConnectionError(endpoint_url="x"))
        assert is_retryable_s3_error(client_error("InternalError", 500, "PutObject"))
        assert is_retryable_s3_error(client_error("SlowDown", 503, "PutObject"))

    def test_not_retryable(self):
        assert not is_retryable_s3_error(client_error("AccessDenied", 403, "PutObject"))
        assert not is_retryable_s3_error(client_error("NoSuchBucket", 404, "PutObject"))
