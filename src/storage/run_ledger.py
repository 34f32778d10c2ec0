# src/storage/run_ledger.py — v2
"""Run lifecycle ledger: create, transition steps, complete, read, list.

Every mutation is a read-modify-write of runs/{run_id}/meta.json done under
a per-run asyncio.Lock and persisted atomically before the call returns.

Mutations against a run that has no record are silent no-ops. The background
enrichment task may outlive its run's directory, and its late updates must
not fail or resurrect the run.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
import weakref
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from loretech.core.errors import DuplicateRun, InvalidStepTransition
from loretech.storage import layout
from loretech.storage.base_output_writer import BaseOutputWriter
from loretech.storage.models import RunRecord, StepStatus, utc_now

logger = logging.getLogger(__name__)


def generate_run_id(timestamp: datetime | None = None) -> str:
    """Generate a run_id: yyyymmdd_hhmmss_{uuid4_short}.

    Lexicographic order matches creation order down to the second.
    """
    ts = timestamp or datetime.now(timezone.utc)
    return f"{ts.strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:6]}"


class RunLedger:
    """Owns RunRecords and their durable meta.json representation."""

    def __init__(self, writer: BaseOutputWriter, data_dir: Path) -> None:
        self._writer = writer
        self._data_dir = Path(data_dir)
        # A lock lives only while some caller holds or awaits it.
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _lock(self, run_id: str) -> asyncio.Lock:
        lock = self._locks.get(run_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[run_id] = lock
        return lock

    async def create(self, run_id: str) -> RunRecord:
        """Initialize a run with every step pending.

        Raises:
            DuplicateRun: If run_id already has a record.
            StorageFailure: If meta.json cannot be written.
        """
        path = layout.meta_path(self._data_dir, run_id)
        async with self._lock(run_id):
            if await self._writer.exists(str(path)):
                raise DuplicateRun(run_id)
            record = RunRecord(run_id=run_id)
            await self._persist(record)
        logger.debug("Created run %s", run_id)
        return record

    async def transition_step(
        self,
        run_id: str,
        step_name: str,
        status: StepStatus,
        artifact_name: str | None = None,
    ) -> None:
        """Move one step to a new status and stamp its timestamps.

        No-op if the run or the step is unknown.

        Raises:
            InvalidStepTransition: If status is not a legal successor.
            StorageFailure: If meta.json cannot be written.
        """
        async with self._lock(run_id):
            record = await self._load(run_id)
            if record is None:
                logger.debug("Ignoring %s -> %s for unknown run %s", step_name, status, run_id)
                return
            step = record.step(step_name)
            if step is None:
                logger.debug("Ignoring unknown step %s in run %s", step_name, run_id)
                return
            if not step.can_move_to(status):
                raise InvalidStepTransition(run_id, step_name, step.status, status)

            now = utc_now()
            step.status = status
            if status == "running":
                step.started_at = now
            else:
                step.completed_at = now
            if artifact_name:
                step.artifact_name = artifact_name
            await self._persist(record)

    async def complete(
        self,
        run_id: str,
        echo_id: str | None = None,
        error: str | None = None,
    ) -> None:
        """Set the terminal run status: failed if error is given, else completed.

        Repeated calls are tolerated; the last call's fields win.
        No-op if the run is unknown.
        """
        async with self._lock(run_id):
            record = await self._load(run_id)
            if record is None:
                logger.debug("Ignoring completion of unknown run %s", run_id)
                return
            record.status = "failed" if error else "completed"
            record.completed_at = utc_now()
            record.echo_id = echo_id
            record.error = error
            await self._persist(record)

    async def read(self, run_id: str) -> RunRecord | None:
        return await self._load(run_id)

    async def list(self, limit: int = 20) -> list[RunRecord]:
        """Runs newest first by started_at."""
        runs: list[RunRecord] = []
        for name in await self._writer.list_dir(str(layout.runs_dir(self._data_dir))):
            record = await self._load(name)
            if record is not None:
                runs.append(record)
        runs.sort(key=lambda r: r.started_at, reverse=True)
        return runs[:limit]

    async def _load(self, run_id: str) -> RunRecord | None:
        try:
            path = layout.meta_path(self._data_dir, run_id)
        except ValueError:
            return None
        data = await self._writer.read(str(path))
        if data is None:
            return None
        try:
            return RunRecord.model_validate_json(data)
        except ValidationError as e:
            logger.warning("Unreadable meta.json for run %s: %s", run_id, e)
            return None

    async def _persist(self, record: RunRecord) -> None:
        path = layout.meta_path(self._data_dir, record.run_id)
        await self._writer.write(str(path), record.to_json())
