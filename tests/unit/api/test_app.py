# tests/unit/api/test_app.py - v1
"""Tests for api/app.py using FastAPI's TestClient."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError
from redis.exceptions import TimeoutError as RedisTimeoutError

from docsift.analysis.client import AIAnalysisClient
from docsift.analysis.orchestrator import AnalysisOrchestrator
from docsift.api.app import create_app
from docsift.cache.memory_store import InMemoryResultCache
from docsift.config.settings import ConfigurationError
from docsift.core.retry import RetryPolicy
from docsift.quota.memory_limiter import InMemoryRateLimiter
from docsift.storage.registry import StorageRegistry
from fakes import PDF_BYTES, PNG_BYTES, RecordingSleep, ScriptedLLM, b64, client_error, make_settings

USER = {"X-User-Id": "alice", "X-Collection-Id": "col-1"}


def _orchestrator(llm: ScriptedLLM, limit: int = 100) -> AnalysisOrchestrator:
    client = AIAnalysisClient(llm, policy=RetryPolicy(max_retries=0), sleep=RecordingSleep())
    return AnalysisOrchestrator(InMemoryResultCache(), InMemoryRateLimiter(limit=limit), client)


def _analyze_body(content: bytes = PNG_BYTES) -> dict:
    return {"contentBase64": b64(content), "contentType": "image/png", "displayName": "scan.png"}


def _upload_body(content: bytes = PNG_BYTES) -> dict:
    return {
        "contentBase64": b64(content),
        "contentType": "image/png",
        "displayName": "scan.png",
        "description": "A scan",
    }


@pytest.fixture
def llm() -> ScriptedLLM:
    return ScriptedLLM()


@pytest.fixture
def client(settings, llm):
    app = create_app(settings, orchestrator=_orchestrator(llm, limit=3))
    with TestClient(app) as test_client:
        yield test_client


class TestAnalyze:
    def test_success_with_rate_headers(self, client):
        resp = client.post("/analyze", json=_analyze_body(), headers=USER)
        assert resp.status_code == 200
        body = resp.json()
        assert body["description"] == "Receipt from ACME"
        assert body["isFallback"] is False
        assert resp.headers["X-RateLimit-Limit"] == "3"
        assert resp.headers["X-RateLimit-Remaining"] == "2"
        assert resp.headers["X-RateLimit-Reset"].endswith("+00:00")

    def test_quota_exceeded(self, client):
        for _ in range(3):
            assert client.post("/analyze", json=_analyze_body(), headers=USER).status_code == 200
        resp = client.post("/analyze", json=_analyze_body(), headers=USER)
        assert resp.status_code == 429
        assert resp.json()["status"] == "error"
        assert "Daily analysis limit reached" in resp.json()["message"]
        assert resp.headers["X-RateLimit-Remaining"] == "0"

        other = client.post("/analyze", json=_analyze_body(), headers={"X-User-Id": "bob"})
        assert other.status_code == 200

    def test_cached_flag(self, client, llm):
        client.post("/analyze", json=_analyze_body(), headers=USER)
        resp = client.post("/analyze", json=_analyze_body(), headers=USER)
        assert resp.json()["cached"] is True
        assert len(llm.calls) == 1

    def test_fallback_is_success(self, settings):
        app = create_app(settings, orchestrator=_orchestrator(ScriptedLLM("not json")))
        with TestClient(app) as test_client:
            resp = test_client.post("/analyze", json=_analyze_body(), headers=USER)
        assert resp.status_code == 200
        assert resp.json()["isFallback"] is True
        assert resp.json()["description"] == "Image - scan.png"

    def test_missing_field(self, client):
        body = _analyze_body()
        del body["contentType"]
        assert client.post("/analyze", json=body, headers=USER).status_code == 422

    def test_bad_base64(self, client):
        body = _analyze_body()
        body["contentBase64"] = "%%% not base64"
        resp = client.post("/analyze", json=body, headers=USER)
        assert resp.status_code == 400
        assert resp.json() == {"status": "error", "message": "content is not valid base64"}

    def test_requires_identity(self, client):
        resp = client.post("/analyze", json=_analyze_body())
        assert resp.status_code == 401
        assert resp.json()["status"] == "error"


class TestDocumentsInline:
    def test_upload_list_retrieve_delete(self, client):
        resp = client.post("/documents", json=_upload_body(), headers=USER)
        assert resp.status_code == 200
        body = resp.json()
        assert body["backend"] == "inline"
        assert body["inlineContent"].startswith("data:image/png;base64,")
        doc_id = body["document"]["id"]

        listed = client.get("/documents", headers=USER).json()["documents"]
        assert [d["id"] for d in listed] == [doc_id]

        retrieval = client.get(f"/documents/{doc_id}", headers=USER).json()
        assert retrieval["backend"] == "inline"
        assert retrieval["inlineContent"] == body["inlineContent"]

        assert client.delete(f"/documents/{doc_id}", headers=USER).json() == {"status": "success"}
        assert client.get(f"/documents/{doc_id}", headers=USER).status_code == 404

    def test_requires_collection(self, client):
        resp = client.post("/documents", json=_upload_body(), headers={"X-User-Id": "alice"})
        assert resp.status_code == 400

    def test_inline_size_limit(self, llm):
        settings = make_settings(inline_max_kb=1)
        app = create_app(settings, orchestrator=_orchestrator(llm))
        with TestClient(app) as test_client:
            resp = test_client.post("/documents", json=_upload_body(b"x" * 2048), headers=USER)
        assert resp.status_code == 413

    def test_stream_rejects_inline(self, client):
        resp = client.get("/documents/stream/inline_1", headers=USER)
        assert resp.status_code == 404


class TestDocumentsRelational:
    @pytest.fixture
    def pg_client(self, pg_settings, fake_pg_pool, llm):
        registry = StorageRegistry(pg_settings, pg_pool=fake_pg_pool)
        app = create_app(pg_settings, orchestrator=_orchestrator(llm), registry=registry)
        with TestClient(app) as test_client:
            yield test_client

    def test_stream(self, pg_client):
        upload = pg_client.post("/documents", json=_upload_body(PDF_BYTES), headers=USER).json()
        key = upload["storageKey"]

        retrieval = pg_client.get(f"/documents/{upload['document']['id']}", headers=USER).json()
        assert retrieval["url"] == f"https://docs.example.com/documents/stream/{key}"

        resp = pg_client.get(f"/documents/stream/{key}", headers=USER)
        assert resp.status_code == 200
        assert resp.content == PDF_BYTES
        assert resp.headers["content-type"] == "image/png"
        assert resp.headers["content-disposition"] == (
            "inline; filename=\"scan.png\"; filename*=UTF-8''scan.png"
        )

    def test_stream_non_ascii_name(self, pg_client):
        body = _upload_body(PDF_BYTES)
        body["displayName"] = "re\u00e7u_\u6771\u4eac.png"
        key = pg_client.post("/documents", json=body, headers=USER).json()["storageKey"]

        resp = pg_client.get(f"/documents/stream/{key}", headers=USER)

        assert resp.status_code == 200
        assert resp.content == PDF_BYTES
        assert resp.headers["content-disposition"] == (
            "inline; filename=\"re_u___.png\"; "
            "filename*=UTF-8''re%C3%A7u_%E6%9D%B1%E4%BA%AC.png"
        )

    def test_stream_other_collection(self, pg_client):
        key = pg_client.post("/documents", json=_upload_body(), headers=USER).json()["storageKey"]
        resp = pg_client.get(
            f"/documents/stream/{key}", headers={"X-User-Id": "eve", "X-Collection-Id": "col-2"}
        )
        assert resp.status_code == 404


class TestDocumentsObjectStore:
    @pytest.fixture
    def s3_client(self, s3_settings, fake_s3, llm):
        registry = StorageRegistry(s3_settings, s3_client=fake_s3)
        app = create_app(s3_settings, orchestrator=_orchestrator(llm), registry=registry)
        with TestClient(app) as test_client:
            yield test_client

    def test_presigned_url(self, s3_client):
        upload = s3_client.post("/documents", json=_upload_body(), headers=USER).json()
        retrieval = s3_client.get(f"/documents/{upload['document']['id']}", headers=USER).json()
        assert retrieval["backend"] == "object-store"
        assert retrieval["expiresIn"] == 3600

    def test_failed_delete_keeps_metadata(self, s3_client, fake_s3):
        doc_id = s3_client.post("/documents", json=_upload_body(), headers=USER).json()["document"]["id"]
        fake_s3.delete_failures = [client_error("InternalError", 500, "DeleteObject")]

        resp = s3_client.delete(f"/documents/{doc_id}", headers=USER)

        assert resp.status_code == 502
        assert resp.json()["status"] == "error"
        listed = s3_client.get("/documents", headers=USER).json()["documents"]
        assert [d["id"] for d in listed] == [doc_id]

    def test_stream_not_supported(self, s3_client):
        key = s3_client.post("/documents", json=_upload_body(), headers=USER).json()["storageKey"]
        resp = s3_client.get(f"/documents/stream/{key}", headers=USER)
        assert resp.status_code == 400


class TestOperational:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok", "storageBackend": "inline"}

    def test_config_is_masked(self, s3_settings, fake_s3, llm):
        registry = StorageRegistry(s3_settings, s3_client=fake_s3)
        app = create_app(s3_settings, orchestrator=_orchestrator(llm), registry=registry)
        with TestClient(app) as test_client:
            config = test_client.get("/config").json()["storage"]
        assert config["secret_access_key"] == "***MASKED***"
        assert "super-secret-access-key-value" not in str(config)

    def test_request_id_echoed(self, client):
        resp = client.get("/health", headers={"X-Request-Id": "req-42"})
        assert resp.headers["X-Request-Id"] == "req-42"

    def test_misconfigured_storage_fails_at_startup(self, llm):
        settings = make_settings(storage_backend="s3")
        app = create_app(settings, orchestrator=_orchestrator(llm))
        with pytest.raises(ConfigurationError):
            with TestClient(app):
                pass

    def test_default_wiring(self, settings):
        app = create_app(settings)
        with TestClient(app) as test_client:
            assert test_client.get("/health").status_code == 200


class TestBackingStoreFailures:
    def _client(self, settings, error: BaseException, **client_kwargs) -> TestClient:
        limiter = MagicMock()
        limiter.check_and_increment = AsyncMock(side_effect=error)
        client = AIAnalysisClient(ScriptedLLM(), policy=RetryPolicy(max_retries=0), sleep=RecordingSleep())
        orchestrator = AnalysisOrchestrator(InMemoryResultCache(), limiter, client)
        return TestClient(create_app(settings, orchestrator=orchestrator), **client_kwargs)

    @pytest.mark.parametrize("error,status", [
        (RedisConnectionError("Error 111 connecting to localhost:6379"), 503),
        (RedisTimeoutError("Timeout reading from socket"), 504),
        (ResponseError("WRONGTYPE Operation against a key"), 502),
    ])
    def test_kv_store_errors_mapped(self, settings, error, status):
        with self._client(settings, error) as test_client:
            resp = test_client.post("/analyze", json=_analyze_body(), headers=USER)
        assert resp.status_code == status
        assert resp.json()["status"] == "error"
        assert "localhost" not in resp.json()["message"]

    def test_unexpected_error_is_json(self, settings):
        with self._client(settings, RuntimeError("boom"), raise_server_exceptions=False) as test_client:
            resp = test_client.post("/analyze", json=_analyze_body(), headers=USER)
        assert resp.status_code == 500
        assert resp.json() == {"status": "error", "message": "Internal server error"}


class TestMissingApiKey:
    def test_documents_served_and_analysis_degrades(self):
        app = create_app(make_settings(ai_api_key=""))
        with TestClient(app) as test_client:
            upload = test_client.post("/documents", json=_upload_body(), headers=USER)
            analyze = test_client.post("/analyze", json=_analyze_body(), headers=USER)

        assert upload.status_code == 200
        assert upload.json()["backend"] == "inline"
        assert analyze.status_code == 200
        assert analyze.json()["isFallback"] is True
