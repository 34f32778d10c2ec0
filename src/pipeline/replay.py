# src/pipeline/replay.py — v1
"""Replay a previous run as a fresh one.

The engine performs research and composition in a single call, so replaying
from sources or compose re-issues the same request as replaying from context.
Only a context replay accepts a replacement context string.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import ValidationError

from loretech.core.errors import MissingInputArtifact, SourceRunNotFound
from loretech.pipeline.models import CapturedContext, RunResult
from loretech.storage import layout

if TYPE_CHECKING:
    from loretech.pipeline.orchestrator import EchoOrchestrator
    from loretech.storage.artifact_store import ArtifactStore
    from loretech.storage.run_ledger import RunLedger

logger = logging.getLogger(__name__)

REPLAYABLE_STEPS: tuple[str, ...] = ("context", "sources", "compose")


class ReplayController:
    """Rebuilds a request from a source run's context.json and reruns it."""

    def __init__(
        self,
        orchestrator: EchoOrchestrator,
        ledger: RunLedger,
        artifacts: ArtifactStore,
    ) -> None:
        self._orchestrator = orchestrator
        self._ledger = ledger
        self._artifacts = artifacts

    async def replay(
        self,
        source_run_id: str,
        from_step: str,
        override_context: str | None = None,
    ) -> RunResult:
        """Start a new run seeded from source_run_id.

        The source run is only read, never modified.

        Raises:
            ValueError: If from_step is not replayable.
            SourceRunNotFound: If the ledger has no such run.
            MissingInputArtifact: If the run has no usable context.json.
        """
        if from_step not in REPLAYABLE_STEPS:
            raise ValueError(
                f"Cannot replay from '{from_step}'; "
                f"choose one of: {', '.join(REPLAYABLE_STEPS)}"
            )
        if await self._ledger.read(source_run_id) is None:
            raise SourceRunNotFound(source_run_id)

        request = (await self._load_context(source_run_id)).to_request()
        if from_step == "context" and override_context:
            request = request.model_copy(update={"context": override_context})

        logger.info(
            "Replaying run %s from %s%s", source_run_id, from_step,
            " with modified context" if override_context and from_step == "context" else "",
        )
        return await self._orchestrator.run(
            request,
            replayed_from=source_run_id,
            replayed_step=from_step,
        )

    async def _load_context(self, run_id: str) -> CapturedContext:
        raw = await self._artifacts.get(run_id, layout.CONTEXT_ARTIFACT)
        if raw is None:
            raise MissingInputArtifact(run_id, layout.CONTEXT_ARTIFACT)
        try:
            return CapturedContext.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("Unusable context.json in run %s: %s", run_id, e)
            raise MissingInputArtifact(run_id, layout.CONTEXT_ARTIFACT) from e
