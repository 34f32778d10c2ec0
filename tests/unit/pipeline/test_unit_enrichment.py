# tests/unit/pipeline/test_unit_enrichment.py — v1
"""Tests for pipeline/enrichment.py — polling bounds and late writes."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import SecretStr

from loretech.core.errors import EngineRequestFailure, StorageFailure
from loretech.engine.models import EnrichmentStatus
from loretech.pipeline.enrichment import poll_enrichment
from loretech.storage import layout

_DONE = EnrichmentStatus(webset_status="completed", dataset=[{"row": 1}])
_RUNNING = EnrichmentStatus(webset_status="running")


async def _start_webset(ledger, run_id: str = "run1") -> None:
    await ledger.create(run_id)
    await ledger.transition_step(run_id, "webset", "running")


def _poll(engine, artifacts, ledger, catalog, run_id: str = "run1", max_attempts: int = 3):
    return poll_enrichment(
        run_id=run_id,
        echo_id="echo-abc",
        access_token=SecretStr("pk_secret"),
        engine=engine,
        artifacts=artifacts,
        ledger=ledger,
        catalog=catalog,
        interval_s=0,
        max_attempts=max_attempts,
    )


class TestPollEnrichment:
    @pytest.mark.asyncio
    async def test_stops_at_first_complete(self, artifacts, ledger, catalog):
        await _start_webset(ledger)
        engine = MagicMock()
        engine.fetch_enrichment = AsyncMock(side_effect=[_RUNNING, _DONE, _DONE])

        assert await _poll(engine, artifacts, ledger, catalog) is True

        assert engine.fetch_enrichment.await_count == 2
        engine.fetch_enrichment.assert_awaited_with("echo-abc", "pk_secret")
        step = (await ledger.read("run1")).step("webset")
        assert step.status == "completed"
        assert step.artifact_name == "dataset.json"

    @pytest.mark.asyncio
    async def test_bounded_attempts_on_errors(self, artifacts, ledger, catalog):
        await _start_webset(ledger)
        engine = MagicMock()
        engine.fetch_enrichment = AsyncMock(side_effect=EngineRequestFailure("down"))

        assert await _poll(engine, artifacts, ledger, catalog, max_attempts=4) is False

        assert engine.fetch_enrichment.await_count == 4
        step = (await ledger.read("run1")).step("webset")
        assert step.status == "completed"
        assert step.artifact_name is None

    @pytest.mark.asyncio
    async def test_vanished_run_is_not_recreated(self, artifacts, ledger, catalog, data_dir):
        engine = MagicMock()
        engine.fetch_enrichment = AsyncMock(return_value=_DONE)

        assert await _poll(engine, artifacts, ledger, catalog, run_id="gone") is True

        assert not layout.run_dir(data_dir, "gone").exists()
        assert (data_dir / "echoes" / "echo-abc.json").exists()

    @pytest.mark.asyncio
    async def test_storage_error_still_closes_step(self, artifacts, ledger, catalog):
        await _start_webset(ledger)
        engine = MagicMock()
        engine.fetch_enrichment = AsyncMock(return_value=_DONE)
        broken_catalog = MagicMock()
        broken_catalog.attach_dataset = AsyncMock(
            side_effect=StorageFailure("echoes", OSError("read-only")),
        )

        assert await _poll(engine, artifacts, ledger, broken_catalog) is False
        assert (await ledger.read("run1")).step("webset").status == "completed"
