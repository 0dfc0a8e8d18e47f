# src/api/app.py - v1
"""FastAPI application: analysis and document endpoints.

Dependencies are built once by ``create_app`` and held on ``app.state``;
there are no module-level singletons. Caller identity comes from the
hosting platform through the ``X-User-Id`` and ``X-Collection-Id``
headers.
"""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable
from urllib.parse import quote

from fastapi import Depends, FastAPI, Header, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError
from starlette.exceptions import HTTPException as StarletteHTTPException

from docsift.analysis.orchestrator import AnalysisOrchestrator
from docsift.api.models import (
    AnalyzeRequest,
    AnalyzeResponse,
    DocumentListResponse,
    DocumentView,
    HealthResponse,
    RetrievalResponse,
    StatusResponse,
    UploadRequest,
    UploadResponse,
)
from docsift.config.settings import ConfigurationError, Settings, load_settings
from docsift.core.content import decode_base64_payload
from docsift.documents.service import (
    DocumentNotFoundError,
    DocumentService,
    StreamingNotSupportedError,
)
from docsift.logging.context import clear_context, set_operation, set_request_context
from docsift.logging.logger import get_logger, setup_logging
from docsift.quota.base_rate_limiter import QuotaExceededError, RateLimitDecision
from docsift.storage.errors import StorageError, StorageErrorCode
from docsift.storage.registry import StorageRegistry
from docsift.version import __version__

logger = get_logger("api")

_STORAGE_STATUS: dict[StorageErrorCode, int] = {
    StorageErrorCode.NOT_FOUND: 404,
    StorageErrorCode.SIZE_LIMIT_EXCEEDED: 413,
    StorageErrorCode.CONFIGURATION_ERROR: 503,
}


@dataclass
class AppServices:
    """Everything the endpoints need, built once per process."""

    settings: Settings
    registry: StorageRegistry
    orchestrator: AnalysisOrchestrator
    documents: DocumentService
    closers: list[Callable[[], Awaitable[None]]] = field(default_factory=list)

    async def close(self) -> None:
        for close in self.closers:
            try:
                await close()
            except Exception:
                logger.warning("Error while closing resource", exc_info=True)


def build_orchestrator(
    settings: Settings, closers: list[Callable[[], Awaitable[None]]]
) -> AnalysisOrchestrator:
    """Wire cache, rate limiter and AI client from settings."""
    from docsift.analysis.client import AIAnalysisClient
    from docsift.analysis.validator import ResponseValidator
    from docsift.cache.cache_factory import create_result_cache
    from docsift.core.retry import RetryPolicy
    from docsift.llm.client_factory import create_llm_client
    from docsift.quota.limiter_factory import create_rate_limiter

    cache = create_result_cache(settings)
    limiter = create_rate_limiter(settings)
    closers.extend([cache.close, limiter.close])
    client = AIAnalysisClient(
        llm=create_llm_client(settings),
        validator=ResponseValidator(
            description_max_chars=settings.description_max_chars,
            summary_max_chars=settings.summary_max_chars,
        ),
        policy=RetryPolicy(
            max_retries=settings.ai_max_retries,
            base_delay_s=settings.ai_retry_base_delay_s,
        ),
        timeout_s=settings.ai_timeout_s,
    )
    return AnalysisOrchestrator(cache, limiter, client, cache_ttl_s=settings.cache_ttl_s)


def build_document_service(
    settings: Settings,
    registry: StorageRegistry,
    closers: list[Callable[[], Awaitable[None]]],
) -> DocumentService:
    from docsift.documents.catalog_factory import create_document_catalog

    catalog = create_document_catalog(settings)
    closers.append(catalog.close)
    return DocumentService(registry, catalog, settings.max_upload_bytes)


def error_response(
    status_code: int, message: str, headers: dict[str, str] | None = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": "error", "message": message},
        headers=headers,
    )


def rate_limit_headers(decision: RateLimitDecision) -> dict[str, str]:
    return {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
        "X-RateLimit-Reset": decision.reset_at.isoformat(),
    }


def content_disposition(display_name: str, disposition: str = "inline") -> str:
    """RFC 6266 header value: ASCII ``filename`` plus UTF-8 ``filename*``."""
    fallback = "".join(
        ch if " " <= ch <= "~" and ch not in '"\\' else "_" for ch in display_name
    )
    return (
        f'{disposition}; filename="{fallback or "download"}"; '
        f"filename*=UTF-8''{quote(display_name, safe='')}"
    )


def require_user(x_user_id: str | None = Header(default=None)) -> str:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return x_user_id


def require_collection(x_collection_id: str | None = Header(default=None)) -> str:
    if not x_collection_id:
        raise HTTPException(status_code=400, detail="collectionId is required")
    return x_collection_id


def get_services(request: Request) -> AppServices:
    return request.app.state.services


def create_app(
    settings: Settings | None = None,
    *,
    orchestrator: AnalysisOrchestrator | None = None,
    documents: DocumentService | None = None,
    registry: StorageRegistry | None = None,
) -> FastAPI:
    """Build the application.

    Components not passed in are constructed from ``settings``. The storage
    registry is resolved at startup so a misconfigured backend stops the
    process before it serves any request.
    """
    settings = settings or load_settings()
    closers: list[Callable[[], Awaitable[None]]] = []
    registry = registry or StorageRegistry(settings)
    closers.append(registry.close)
    services = AppServices(
        settings=settings,
        registry=registry,
        orchestrator=orchestrator or build_orchestrator(settings, closers),
        documents=documents or build_document_service(settings, registry, closers),
        closers=closers,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        setup_logging(
            level=settings.log_level,
            log_format=settings.log_format,
            log_file=str(settings.log_file) if settings.log_file else None,
            rotation=settings.log_rotation,
            retention=settings.log_retention,
        )
        adapter = registry.resolve()
        logger.info(
            "docsift started",
            extra={"data": {"version": __version__, "storage_backend": adapter.backend.value}},
        )
        yield
        await services.close()
        logger.info("docsift stopped")

    app = FastAPI(title="docsift", version=__version__, lifespan=lifespan)
    app.state.services = services
    _register_error_handlers(app)

    @app.middleware("http")
    async def request_context(request: Request, call_next: Any) -> Response:
        request_id = request.headers.get("X-Request-Id") or uuid.uuid4().hex[:12]
        set_request_context(request_id, identity=request.headers.get("X-User-Id"))
        try:
            response = await call_next(request)
        finally:
            clear_context()
        response.headers["X-Request-Id"] = request_id
        return response

    @app.get("/health")
    async def health(svc: AppServices = Depends(get_services)) -> HealthResponse:
        return HealthResponse(storage_backend=svc.settings.storage_backend)

    @app.get("/config")
    async def config(svc: AppServices = Depends(get_services)) -> dict[str, Any]:
        return {"storage": svc.registry.masked_config()}

    @app.post("/analyze")
    async def analyze(
        body: AnalyzeRequest,
        response: Response,
        user_id: str = Depends(require_user),
        svc: AppServices = Depends(get_services),
    ) -> AnalyzeResponse:
        set_operation("analyze")
        try:
            outcome = await svc.orchestrator.analyze_base64(
                body.content_base64, body.content_type, body.display_name, user_id
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        response.headers.update(rate_limit_headers(outcome.rate_limit))
        return AnalyzeResponse(
            description=outcome.result.description,
            summary=outcome.result.summary,
            is_fallback=outcome.result.is_fallback,
            cached=outcome.cache_hit,
        )

    @app.post("/documents")
    async def upload_document(
        body: UploadRequest,
        user_id: str = Depends(require_user),
        collection_id: str = Depends(require_collection),
        svc: AppServices = Depends(get_services),
    ) -> UploadResponse:
        set_operation("upload")
        try:
            content, _ = decode_base64_payload(body.content_base64)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        document = await svc.documents.upload(
            content,
            content_type=body.content_type,
            display_name=body.display_name,
            owner_id=user_id,
            collection_id=collection_id,
            description=body.description,
            notes=body.notes,
        )
        return UploadResponse(
            backend=document.backend,
            storage_key=document.storage_key,
            inline_content=document.inline_content,
            document=DocumentView.from_document(document),
        )

    @app.get("/documents")
    async def list_documents(
        collection_id: str = Depends(require_collection),
        svc: AppServices = Depends(get_services),
    ) -> DocumentListResponse:
        documents = await svc.documents.list_documents(collection_id)
        return DocumentListResponse(
            documents=[DocumentView.from_document(d) for d in documents]
        )

    @app.get("/documents/stream/{storage_key}")
    async def stream_document(
        storage_key: str,
        _user_id: str = Depends(require_user),
        collection_id: str = Depends(require_collection),
        svc: AppServices = Depends(get_services),
    ) -> Response:
        set_operation("stream")
        stored = await svc.documents.stream(collection_id, storage_key)
        return Response(
            content=stored.data,
            media_type=stored.content_type,
            headers={
                "Content-Disposition": content_disposition(stored.display_name),
            },
        )

    @app.get("/documents/{document_id}")
    async def retrieve_document(
        document_id: str,
        collection_id: str = Depends(require_collection),
        svc: AppServices = Depends(get_services),
    ) -> RetrievalResponse:
        set_operation("retrieve")
        retrieval = await svc.documents.retrieve(collection_id, document_id)
        return RetrievalResponse.model_validate(retrieval.model_dump())

    @app.delete("/documents/{document_id}")
    async def delete_document(
        document_id: str,
        _user_id: str = Depends(require_user),
        collection_id: str = Depends(require_collection),
        svc: AppServices = Depends(get_services),
    ) -> StatusResponse:
        set_operation("delete")
        await svc.documents.delete(collection_id, document_id)
        return StatusResponse()

    return app


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(QuotaExceededError)
    async def quota_exceeded(_: Request, exc: QuotaExceededError) -> JSONResponse:
        logger.info(
            "Quota exceeded",
            extra={"data": {"limit": exc.decision.limit, "count": exc.decision.count}},
        )
        return error_response(429, str(exc), headers=rate_limit_headers(exc.decision))

    @app.exception_handler(StorageError)
    async def storage_failed(_: Request, exc: StorageError) -> JSONResponse:
        status = _STORAGE_STATUS.get(exc.code, 502)
        logger.warning(
            "Storage error: %s",
            exc.message,
            extra={"data": {"code": exc.code.value, "status": status}},
        )
        return error_response(status, exc.message)

    @app.exception_handler(DocumentNotFoundError)
    async def not_found(_: Request, exc: DocumentNotFoundError) -> JSONResponse:
        return error_response(404, str(exc))

    @app.exception_handler(StreamingNotSupportedError)
    async def not_streamable(_: Request, exc: StreamingNotSupportedError) -> JSONResponse:
        return error_response(400, str(exc))

    @app.exception_handler(ConfigurationError)
    async def misconfigured(_: Request, exc: ConfigurationError) -> JSONResponse:
        logger.error("Configuration error: %s", exc)
        return error_response(503, str(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_error(_: Request, exc: StarletteHTTPException) -> JSONResponse:
        return error_response(exc.status_code, str(exc.detail), headers=exc.headers)

    @app.exception_handler(RedisTimeoutError)
    async def store_timeout(_: Request, exc: RedisTimeoutError) -> JSONResponse:
        logger.error("Key/value store timed out: %s", exc)
        return error_response(504, "Request took too long. Please try again.")

    @app.exception_handler(RedisConnectionError)
    async def store_unreachable(_: Request, exc: RedisConnectionError) -> JSONResponse:
        logger.error("Key/value store unreachable: %s", exc)
        return error_response(503, "Service is temporarily unavailable. Please try again.")

    @app.exception_handler(RedisError)
    async def store_failed(_: Request, exc: RedisError) -> JSONResponse:
        logger.error("Key/value store error: %s", exc)
        return error_response(502, "Backing store returned an error. Please try again.")

    @app.exception_handler(Exception)
    async def unexpected(_: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error", exc_info=exc)
        return error_response(500, "Internal server error")
