# src/pipeline/orchestrator.py — v2
"""Echo pipeline orchestrator.

Drives one run through the fixed step sequence:
  context  capture the request as context.json
  sources  call the engine, stage sources.json
  compose  stage the composed echo.md
  store    upsert the local echo reference
  record   stage record.json (public summary of the produced echo)
  webset   poll for the enrichment dataset in a background task

Each step is persisted to the ledger as it starts and finishes. Any failure
before the webset step marks the current step failed, records the error on
the run, and comes back as a RunResult: run() never raises.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx

from loretech.core.errors import LoretechError
from loretech.engine.client import EngineClient
from loretech.logging.context import set_echo_context, set_run_context, set_step_context
from loretech.pipeline.enrichment import poll_enrichment
from loretech.pipeline.models import CapturedContext, RunResult
from loretech.storage import layout
from loretech.storage.artifact_store import ArtifactStore
from loretech.storage.local_writer import LocalWriter
from loretech.storage.models import EchoRef, StepName
from loretech.storage.reference_catalog import ReferenceCatalog
from loretech.storage.run_ledger import RunLedger, generate_run_id

if TYPE_CHECKING:
    from loretech.config.settings import Settings
    from loretech.engine.models import EchoRequest, EchoResponse

logger = logging.getLogger(__name__)


@dataclass
class _Progress:
    """Which step of a run is currently open, if any."""

    run_id: str
    step: StepName | None = None
    created: bool = False


class EchoOrchestrator:
    """Runs the echo pipeline and owns its background enrichment tasks.

    Args:
        settings: Poll interval and attempt bound.
        engine: Remote engine client.
        artifacts: Per-run artifact storage.
        ledger: Run/step status ledger.
        catalog: Local echo references.
    """

    def __init__(
        self,
        settings: Settings,
        engine: EngineClient,
        artifacts: ArtifactStore,
        ledger: RunLedger,
        catalog: ReferenceCatalog,
    ) -> None:
        self._settings = settings
        self._engine = engine
        self._artifacts = artifacts
        self._ledger = ledger
        self._catalog = catalog
        self._background: set[asyncio.Task] = set()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> EchoOrchestrator:
        """Wire the default local storage and HTTP engine client."""
        writer = LocalWriter()
        data_dir = settings.data_dir
        return cls(
            settings=settings,
            engine=EngineClient(settings, transport=transport),
            artifacts=ArtifactStore(writer, data_dir),
            ledger=RunLedger(writer, data_dir),
            catalog=ReferenceCatalog(writer, data_dir),
        )

    @property
    def artifacts(self) -> ArtifactStore:
        return self._artifacts

    @property
    def ledger(self) -> RunLedger:
        return self._ledger

    @property
    def catalog(self) -> ReferenceCatalog:
        return self._catalog

    async def run(
        self,
        request: EchoRequest,
        replayed_from: str | None = None,
        replayed_step: str | None = None,
        run_id: str | None = None,
    ) -> RunResult:
        """Execute the pipeline for one request.

        Args:
            request: Engine input.
            replayed_from: Source run id when this run is a replay.
            replayed_step: Step the replay was requested from.
            run_id: Explicit run id (default: generated).

        Returns:
            RunResult; ok=False carries a human-readable error.
        """
        progress = _Progress(run_id or generate_run_id())
        set_run_context(progress.run_id)
        logger.info(
            "Starting run %s (depth=%s%s)", progress.run_id, request.depth,
            f", replay of {replayed_from}" if replayed_from else "",
        )
        try:
            result = await self._execute(request, progress, replayed_from, replayed_step)
        except Exception as e:
            message = str(e) or type(e).__name__
            logger.error(
                "Run %s failed at step %s: %s", progress.run_id, progress.step, message,
                exc_info=not isinstance(e, LoretechError),
            )
            await self._record_failure(progress, message)
            return RunResult(
                run_id=progress.run_id,
                ok=False,
                run_dir=self._artifacts.run_path(progress.run_id),
                error=message,
                failed_step=progress.step,
                replayed_from=replayed_from,
                replayed_step=replayed_step,
            )
        finally:
            set_step_context(None)

        assert result.echo is not None
        logger.info("Run %s completed -> echo %s", progress.run_id, result.echo.echo_id)
        return result

    async def drain(self) -> None:
        """Wait for all background enrichment tasks to finish."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    @property
    def pending_enrichments(self) -> int:
        return len(self._background)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _execute(
        self,
        request: EchoRequest,
        progress: _Progress,
        replayed_from: str | None,
        replayed_step: str | None,
    ) -> RunResult:
        run_id = progress.run_id
        await self._ledger.create(run_id)
        progress.created = True

        await self._begin(progress, "context")
        captured = CapturedContext.capture(request, replayed_from, replayed_step)
        await self._artifacts.put(run_id, layout.CONTEXT_ARTIFACT, captured.to_json())
        await self._finish(progress, layout.CONTEXT_ARTIFACT)

        await self._begin(progress, "sources")
        access_token = await self._access_token_for(request.echo_id)
        echo = await self._engine.create_echo(request, access_token=access_token)
        set_echo_context(echo.echo_id)
        await self._artifacts.put(run_id, layout.SOURCES_ARTIFACT, _sources_json(echo))
        await self._finish(progress, layout.SOURCES_ARTIFACT)

        await self._begin(progress, "compose")
        await self._artifacts.put(run_id, layout.ECHO_ARTIFACT, echo.markdown)
        await self._finish(progress, layout.ECHO_ARTIFACT)

        await self._begin(progress, "store")
        await self._catalog.upsert(_echo_ref(echo))
        await self._finish(progress)

        await self._begin(progress, "record")
        await self._artifacts.put(run_id, layout.RECORD_ARTIFACT, _record_json(run_id, echo))
        await self._finish(progress, layout.RECORD_ARTIFACT)

        await self._begin(progress, "webset")
        if echo.webset_id:
            self._schedule_enrichment(run_id, echo)
            progress.step = None
        else:
            await self._finish(progress)

        await self._ledger.complete(run_id, echo_id=echo.echo_id)
        return RunResult(
            run_id=run_id,
            ok=True,
            run_dir=self._artifacts.run_path(run_id),
            echo=echo,
            echo_path=self._catalog.echo_path(echo.echo_id),
            enrichment_pending=bool(echo.webset_id),
            replayed_from=replayed_from,
            replayed_step=replayed_step,
        )

    async def _begin(self, progress: _Progress, step: StepName) -> None:
        set_step_context(step)
        await self._ledger.transition_step(progress.run_id, step, "running")
        progress.step = step

    async def _finish(self, progress: _Progress, artifact_name: str | None = None) -> None:
        assert progress.step is not None
        await self._ledger.transition_step(
            progress.run_id, progress.step, "completed", artifact_name,
        )
        progress.step = None

    async def _record_failure(self, progress: _Progress, message: str) -> None:
        if not progress.created:
            return
        try:
            if progress.step is not None:
                await self._ledger.transition_step(progress.run_id, progress.step, "failed")
            await self._ledger.complete(progress.run_id, error=message)
        except LoretechError as e:
            logger.error("Could not record failure of run %s: %s", progress.run_id, e)

    async def _access_token_for(self, echo_id: str | None) -> str | None:
        if not echo_id:
            return None
        existing = await self._catalog.find_by_id(echo_id)
        if existing is None:
            logger.warning("No local reference for echo %s; updating without a key", echo_id)
            return None
        return existing.private_key.get_secret_value()

    def _schedule_enrichment(self, run_id: str, echo: EchoResponse) -> None:
        task = asyncio.create_task(
            poll_enrichment(
                run_id=run_id,
                echo_id=echo.echo_id,
                access_token=echo.private_key,
                engine=self._engine,
                artifacts=self._artifacts,
                ledger=self._ledger,
                catalog=self._catalog,
                interval_s=self._settings.poll_interval_s,
                max_attempts=self._settings.poll_max_attempts,
            ),
            name=f"enrichment-{run_id}",
        )
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        logger.info("Webset %s %s; enriching in background", echo.webset_id, echo.webset_status)


def _echo_ref(echo: EchoResponse) -> EchoRef:
    return EchoRef(
        echo_id=echo.echo_id,
        private_key=echo.private_key,
        title=echo.title,
        status=echo.status,
        created_at=echo.created_at,
        updated_at=echo.updated_at,
        markdown=echo.markdown,
    )


def _sources_json(echo: EchoResponse) -> str:
    sources = [s.model_dump(by_alias=True, exclude_none=True) for s in echo.sources]
    return json.dumps(sources, indent=2, ensure_ascii=False)


def _record_json(run_id: str, echo: EchoResponse) -> str:
    record = {"runId": run_id}
    record.update(echo.model_dump(
        mode="json",
        by_alias=True,
        exclude_none=True,
        exclude={"private_key", "private_url", "markdown", "sources"},
    ))
    record["sourceCount"] = len(echo.sources)
    return json.dumps(record, indent=2, ensure_ascii=False)
