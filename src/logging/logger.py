# src/logging/logger.py - v1
"""Logger factory with JSON and text formatters.

Structured payloads are passed through ``extra={"data": {...}}`` and land in
the ``data`` field of JSON records. The current request context (request id,
identity, fingerprint, operation) is attached to every record.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from docsift.logging.context import get_context

_NOISY_LOGGERS = ("botocore", "urllib3", "httpx", "psycopg.pool")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class JsonFormatter(logging.Formatter):
    """One JSON object per line, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": _utc_now().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = get_context().as_dict()
        if context:
            entry["context"] = context
        data = getattr(record, "data", None)
        if data:
            entry["data"] = data
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Single-line human-readable output for local development."""

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_context()
        line = f"{_utc_now():%Y-%m-%d %H:%M:%S} [{record.levelname:8s}] {record.name}"
        if ctx.request_id:
            line += f" [{ctx.request_id}]"
        if ctx.operation:
            line += f" ({ctx.operation})"
        line += f" - {record.getMessage()}"
        data = getattr(record, "data", None)
        if data:
            line += " " + json.dumps(data, default=str, sort_keys=True)
        if record.exc_info and record.exc_info[1] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``docsift`` namespace."""
    return logging.getLogger(f"docsift.{name}")


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
    log_file: str | None = None,
    rotation: str = "10MB",
    retention: int = 30,
) -> None:
    """Install handlers on the ``docsift`` logger.

    Safe to call more than once: previously installed handlers are replaced.

    Args:
        level: DEBUG, INFO, WARNING or ERROR.
        log_format: "json" or "text".
        log_file: Optional file path; stdout is always used.
        rotation: File size that triggers rotation, e.g. "10MB".
        retention: Rotated files kept on disk.
    """
    formatter: logging.Formatter = (
        JsonFormatter() if log_format == "json" else TextFormatter()
    )
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        from docsift.logging.handlers import create_rotating_handler

        handlers.append(
            create_rotating_handler(log_file, rotation=rotation, retention=retention)
        )

    package_logger = logging.getLogger("docsift")
    package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    for old in list(package_logger.handlers):
        package_logger.removeHandler(old)
        old.close()
    for handler in handlers:
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
