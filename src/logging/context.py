# src/logging/context.py - v1
"""Contextual logging support: attach request_id, identity, fingerprint and
operation to log records.

Context variables are per asyncio task, so concurrent requests never see each
other's values.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
_identity: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "identity", default=None
)
_fingerprint: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "fingerprint", default=None
)
_operation: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "operation", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    request_id: str | None = None
    identity: str | None = None
    fingerprint: str | None = None
    operation: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        request_id=_request_id.get(),
        identity=_identity.get(),
        fingerprint=_fingerprint.get(),
        operation=_operation.get(),
    )


def set_request_context(request_id: str, identity: str | None = None) -> None:
    """Set request-level context (called once per inbound request)."""
    _request_id.set(request_id)
    _identity.set(identity)


def set_fingerprint(fingerprint: str | None) -> None:
    """Attach the content fingerprint being analyzed."""
    _fingerprint.set(fingerprint)


def set_operation(operation: str | None) -> None:
    """Set the current operation name (analyze, upload, delete, ...)."""
    _operation.set(operation)


def clear_context() -> None:
    """Reset all context variables."""
    _request_id.set(None)
    _identity.set(None)
    _fingerprint.set(None)
    _operation.set(None)
