# src/logging/handlers.py - v1
"""Size-based file rotation for the optional log file."""

from __future__ import annotations

import re
from logging.handlers import RotatingFileHandler
from pathlib import Path

_SIZE_RE = re.compile(r"^(\d+)\s*([KMG])B$", re.IGNORECASE)
_UNIT_EXPONENT = {"K": 1, "M": 2, "G": 3}


def _parse_size(size_str: str) -> int:
    """Bytes for a human size such as '512KB', '10MB' or '1 GB'."""
    match = _SIZE_RE.match(size_str.strip())
    if match is None:
        raise ValueError(f"Invalid size format: {size_str!r}. Use e.g. '10MB'.")
    return int(match.group(1)) * 1024 ** _UNIT_EXPONENT[match.group(2).upper()]


def create_rotating_handler(
    log_file: str,
    rotation: str = "10MB",
    retention: int = 30,
) -> RotatingFileHandler:
    """Rotating handler writing UTF-8 to ``log_file``; parent dirs are created."""
    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(
        filename=str(path),
        maxBytes=_parse_size(rotation),
        backupCount=retention,
        encoding="utf-8",
    )
