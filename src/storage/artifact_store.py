# src/storage/artifact_store.py — v1
"""Named artifact blobs scoped to a run directory.

No business logic: put / get / list over runs/{run_id}/.
"""

from __future__ import annotations

from pathlib import Path

from loretech.storage import layout
from loretech.storage.base_output_writer import BaseOutputWriter


class ArtifactStore:
    """File-backed key/value storage, one namespace per run."""

    def __init__(self, writer: BaseOutputWriter, data_dir: Path) -> None:
        self._writer = writer
        self._data_dir = Path(data_dir)

    def run_path(self, run_id: str) -> Path:
        return layout.run_dir(self._data_dir, run_id)

    def _artifact_path(self, run_id: str, name: str) -> Path:
        return self.run_path(run_id) / layout.check_name(name, "artifact name")

    async def put(self, run_id: str, name: str, content: bytes | str) -> Path:
        """Persist content under (run_id, name), overwriting silently.

        Returns:
            Location of the written artifact.

        Raises:
            StorageFailure: On any filesystem error.
        """
        path = self._artifact_path(run_id, name)
        await self._writer.write(str(path), content)
        return path

    async def get(self, run_id: str, name: str) -> bytes | None:
        """Exact bytes last written, or None if never written."""
        return await self._writer.read(str(self._artifact_path(run_id, name)))

    async def get_text(self, run_id: str, name: str) -> str | None:
        data = await self.get(run_id, name)
        return data.decode("utf-8") if data is not None else None

    async def list(self, run_id: str) -> list[str]:
        """All names stored for the run, sorted; empty if the run scope is missing."""
        return await self._writer.list_dir(str(self.run_path(run_id)))
