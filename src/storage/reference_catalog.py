# src/storage/reference_catalog.py — v1
"""Local echo references under .loretech/echoes/.

Each echo is a plain markdown file (frontmatter + body) keyed by echo id,
overwritten on every update, plus an optional companion JSON dataset.
These files outlive the runs that produced them.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from loretech.storage import echo_format, layout
from loretech.storage.base_output_writer import BaseOutputWriter
from loretech.storage.models import EchoRef

logger = logging.getLogger(__name__)


class ReferenceCatalog:
    """Last-writer-wins store of EchoRefs, one file per echo id."""

    def __init__(self, writer: BaseOutputWriter, data_dir: Path) -> None:
        self._writer = writer
        self._data_dir = Path(data_dir)

    @property
    def root(self) -> Path:
        return layout.echoes_dir(self._data_dir)

    def echo_path(self, echo_id: str) -> Path:
        return layout.echo_path(self._data_dir, echo_id)

    async def upsert(self, ref: EchoRef, dataset: Any | None = None) -> EchoRef:
        """Write the echo file; with a dataset, also write the companion JSON.

        Without a dataset, a companion JSON already on disk stays referenced
        from the header.

        Returns:
            The stored record, with dataset_ref/dataset_path filled whenever
            a companion dataset exists.
        """
        dataset_path = layout.echo_dataset_path(self._data_dir, ref.echo_id)
        if dataset:
            await self._writer.write(str(dataset_path), echo_format.dump_dataset(dataset))
            has_dataset = True
        else:
            has_dataset = await self._writer.exists(str(dataset_path))

        if has_dataset:
            ref = ref.model_copy(update={
                "dataset_ref": echo_format.dataset_ref_for(ref.echo_id),
                "dataset_path": dataset_path,
            })
        else:
            ref = ref.model_copy(update={"dataset_ref": None, "dataset_path": None})

        await self._writer.write(str(self.echo_path(ref.echo_id)), echo_format.render_echo(ref))
        logger.debug("Stored echo %s", ref.echo_id)
        return ref

    async def attach_dataset(self, echo_id: str, dataset: Any) -> bool:
        """Write a dataset for an existing echo and reference it from its header.

        Returns:
            False if no echo file exists for echo_id (the dataset file is
            still written), True otherwise.
        """
        existing = await self.find_by_id(echo_id)
        if existing is None:
            dataset_path = layout.echo_dataset_path(self._data_dir, echo_id)
            await self._writer.write(str(dataset_path), echo_format.dump_dataset(dataset))
            return False
        await self.upsert(existing, dataset=dataset)
        return True

    async def find_by_id(self, echo_id: str) -> EchoRef | None:
        try:
            path = self.echo_path(echo_id)
        except ValueError:
            return None
        ref = await self._read(path)
        if ref is None or ref.echo_id != echo_id:
            return None
        return ref

    async def list_all(self) -> list[EchoRef]:
        """All readable echoes, most recently updated first. Malformed files are skipped."""
        refs: list[EchoRef] = []
        for name in await self._writer.list_dir(str(self.root)):
            if not name.endswith(".md"):
                continue
            ref = await self._read(self.root / name)
            if ref is not None:
                refs.append(ref)
        refs.sort(key=lambda r: r.updated_at, reverse=True)
        return refs

    async def _read(self, path: Path) -> EchoRef | None:
        data = await self._writer.read(str(path))
        if data is None:
            return None
        try:
            ref = echo_format.parse_echo(data.decode("utf-8"))
        except UnicodeDecodeError:
            ref = None
        if ref is None:
            logger.warning("Skipping malformed echo file %s", path.name)
            return None
        try:
            dataset_path = layout.echo_dataset_path(self._data_dir, ref.echo_id)
        except ValueError:
            return ref
        if await self._writer.exists(str(dataset_path)):
            ref = ref.model_copy(update={"dataset_path": dataset_path})
        return ref
