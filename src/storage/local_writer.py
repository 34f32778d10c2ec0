# src/storage/local_writer.py — v3
"""Local filesystem output writer (default backend)."""

from __future__ import annotations

import os
import uuid
from pathlib import Path

from loretech.core.errors import StorageFailure
from loretech.storage.base_output_writer import BaseOutputWriter

TMP_SUFFIX = ".tmp"


class LocalWriter(BaseOutputWriter):
    """Write outputs to the local filesystem."""

    def __init__(self, base_path: str | Path | None = None) -> None:
        """Initialize with optional base path.

        Args:
            base_path: Root directory for all writes. If None, paths are absolute.
        """
        self._base = Path(base_path) if base_path else None

    def _resolve(self, path: str) -> Path:
        """Resolve a path relative to base_path."""
        if self._base is not None:
            return self._base / path
        return Path(path)

    async def write(self, path: str, content: bytes | str) -> None:
        """Write via a sibling temp file and os.replace so readers never see a partial file."""
        p = self._resolve(path)
        tmp = p.with_name(f".{p.name}.{uuid.uuid4().hex[:8]}{TMP_SUFFIX}")
        data = content.encode("utf-8") if isinstance(content, str) else content
        try:
            p.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_bytes(data)
            os.replace(tmp, p)
        except OSError as e:
            tmp.unlink(missing_ok=True)
            raise StorageFailure(str(p), e) from e

    async def read(self, path: str) -> bytes | None:
        p = self._resolve(path)
        try:
            return p.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageFailure(str(p), e) from e

    async def exists(self, path: str) -> bool:
        p = self._resolve(path)
        try:
            return p.exists()
        except OSError as e:
            raise StorageFailure(str(p), e) from e

    async def list_dir(self, path: str) -> list[str]:
        """List directory contents, skipping in-flight temp files."""
        p = self._resolve(path)
        try:
            if not p.is_dir():
                return []
            return sorted(
                entry.name
                for entry in p.iterdir()
                if not (entry.name.startswith(".") and entry.name.endswith(TMP_SUFFIX))
            )
        except OSError as e:
            raise StorageFailure(str(p), e) from e
