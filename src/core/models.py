# src/core/models.py - v1
"""Core domain models shared across analysis, storage and documents.

All models are pydantic v2. Results are frozen: once an AnalysisResult or a
StorageResult is produced it is never mutated.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

ContentKind = Literal["image", "pdf"]


class StorageBackend(str, Enum):
    """Closed set of storage variants a document can live in."""

    OBJECT_STORE = "object-store"
    RELATIONAL = "relational"
    INLINE = "inline"


class AnalysisRequest(BaseModel):
    """One analysis call: raw bytes plus declared type and display name."""

    content: bytes
    content_type: str
    display_name: str
    identity: str


class AnalysisResult(BaseModel):
    """Description/summary pair produced by the model or the fallback."""

    model_config = ConfigDict(frozen=True)

    description: str
    summary: str
    is_fallback: bool = False


class StorageMetadata(BaseModel):
    """Input metadata for StorageAdapter.upload."""

    display_name: str
    content_type: str
    byte_size: int = Field(ge=0)
    owner_id: str
    collection_id: str


class StorageResult(BaseModel):
    """Durable handle returned by an upload."""

    model_config = ConfigDict(frozen=True)

    storage_key: str
    backend: StorageBackend
    access_hint: str | None = None


class AccessUrl(BaseModel):
    """Retrieval reference: a URL or endpoint with optional expiry (seconds)."""

    url: str
    expires_in: int | None = None


class StoredContent(BaseModel):
    """Binary payload and its stored metadata, for streaming reads."""

    data: bytes
    content_type: str
    display_name: str


class Document(BaseModel):
    """Document metadata record kept in the owning collection's list.

    Exactly one of ``storage_key`` / ``inline_content`` is populated,
    determined by ``backend``.
    """

    id: str
    display_name: str
    content_type: str
    byte_size: int = Field(ge=0)
    backend: StorageBackend
    storage_key: str | None = None
    inline_content: str | None = None
    owner_id: str = ""
    description: str = ""
    notes: str = ""
    created_at: datetime

    @model_validator(mode="after")
    def validate_storage_location(self) -> Document:
        if self.backend is StorageBackend.INLINE:
            if not self.inline_content or self.storage_key:
                raise ValueError(
                    "inline documents carry inline_content and no storage_key"
                )
        elif not self.storage_key or self.inline_content:
            raise ValueError(
                f"{self.backend.value} documents carry storage_key and no inline_content"
            )
        return self


class DocumentRetrieval(BaseModel):
    """Retrieval answer for one document."""

    backend: StorageBackend
    url: str | None = None
    expires_in: int | None = None
    inline_content: str | None = None
