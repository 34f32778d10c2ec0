# src/storage/base_output_writer.py — v2
"""Abstract output writer interface."""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseOutputWriter(ABC):
    """Unified interface for run and echo storage backends.

    Implementations raise StorageFailure for I/O errors and report missing
    files as None / False / [] rather than raising.
    """

    @abstractmethod
    async def write(self, path: str, content: bytes | str) -> None:
        """Write content to the given path, replacing it atomically."""

    @abstractmethod
    async def read(self, path: str) -> bytes | None:
        """Read content from the given path, None if it does not exist."""

    @abstractmethod
    async def exists(self, path: str) -> bool:
        """Check if path exists."""

    @abstractmethod
    async def list_dir(self, path: str) -> list[str]:
        """List directory entry names, sorted. Empty if the directory is missing."""
