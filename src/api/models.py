# src/api/models.py - v2
"""HTTP request and response bodies.

Field names are camelCase on the wire and snake_case in Python.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from docsift.core.models import Document, StorageBackend


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AnalyzeRequest(CamelModel):
    """POST /analyze body."""

    content_base64: str = Field(min_length=1)
    content_type: str = Field(min_length=1)
    display_name: str = Field(min_length=1)


class AnalyzeResponse(CamelModel):
    description: str
    summary: str
    is_fallback: bool = False
    cached: bool = False


class UploadRequest(CamelModel):
    """POST /documents body."""

    content_base64: str = Field(min_length=1)
    content_type: str = Field(min_length=1)
    display_name: str = Field(min_length=1)
    description: str = Field(min_length=1)
    notes: str = ""


class DocumentView(CamelModel):
    """Document metadata as returned to clients."""

    id: str
    display_name: str
    content_type: str
    byte_size: int
    backend: StorageBackend
    storage_key: str | None = None
    inline_content: str | None = None
    description: str = ""
    notes: str = ""
    created_at: datetime

    @classmethod
    def from_document(cls, document: Document) -> DocumentView:
        return cls.model_validate(document.model_dump(exclude={"owner_id"}))


class UploadResponse(CamelModel):
    backend: StorageBackend
    storage_key: str | None = None
    inline_content: str | None = None
    document: DocumentView


class DocumentListResponse(CamelModel):
    documents: list[DocumentView]


class RetrievalResponse(CamelModel):
    backend: StorageBackend
    url: str | None = None
    expires_in: int | None = None
    inline_content: str | None = None


class StatusResponse(CamelModel):
    status: str = "success"


class HealthResponse(CamelModel):
    status: str = "ok"
    storage_backend: str
