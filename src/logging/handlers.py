# src/logging/handlers.py — v2
"""Size-rotated log file handler."""

from __future__ import annotations

import re
from logging.handlers import RotatingFileHandler
from pathlib import Path

_UNITS = {"": 1, "B": 1, "KB": 1024, "MB": 1024**2, "GB": 1024**3}
_SIZE = re.compile(r"^(\d+)\s*([KMG]?B)?$", re.IGNORECASE)


def parse_size(size: str) -> int:
    """'10MB' -> 10485760. A bare number is a byte count."""
    match = _SIZE.match(size.strip())
    if not match:
        raise ValueError(f"Invalid size format: {size!r}. Use e.g. '10MB'.")
    return int(match.group(1)) * _UNITS[(match.group(2) or "").upper()]


def create_rotating_handler(
    log_file: str | Path,
    rotation: str = "10MB",
    retention: int = 5,
) -> RotatingFileHandler:
    """Rotating handler writing UTF-8 to log_file, parent dirs created.

    Args:
        log_file: Path to log file (~ is expanded).
        rotation: Max file size before rotation.
        retention: Number of rotated files to keep.
    """
    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(
        filename=str(path),
        maxBytes=parse_size(rotation),
        backupCount=retention,
        encoding="utf-8",
    )
