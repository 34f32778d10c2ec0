# src/pipeline/enrichment.py — v1
"""Background dataset polling for the webset step.

Runs as a detached task after the synchronous pipeline has returned. Polls
at a fixed interval for a bounded number of attempts, and always resolves
the webset step to completed: a dataset that never arrives is not a failure.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from pydantic import SecretStr

from loretech.core.errors import EngineRequestFailure
from loretech.logging.context import set_step_context
from loretech.storage import echo_format, layout

if TYPE_CHECKING:
    from loretech.engine.client import EngineClient
    from loretech.storage.artifact_store import ArtifactStore
    from loretech.storage.reference_catalog import ReferenceCatalog
    from loretech.storage.run_ledger import RunLedger

logger = logging.getLogger(__name__)

STEP = "webset"


async def poll_enrichment(
    *,
    run_id: str,
    echo_id: str,
    access_token: SecretStr,
    engine: EngineClient,
    artifacts: ArtifactStore,
    ledger: RunLedger,
    catalog: ReferenceCatalog,
    interval_s: float,
    max_attempts: int,
) -> bool:
    """Wait for the engine's dataset and stage it locally.

    Never raises (cancellation aside). Returns True if a dataset arrived.
    """
    set_step_context(STEP)
    arrived = False
    try:
        dataset = await _wait_for_dataset(
            engine, echo_id, access_token, interval_s, max_attempts,
        )
        if dataset is not None:
            await _store_dataset(run_id, echo_id, dataset, artifacts, ledger, catalog)
            arrived = True
        else:
            logger.info(
                "No dataset for echo %s after %d attempts", echo_id, max_attempts,
            )
    except Exception:
        logger.exception("Enrichment for echo %s aborted", echo_id)

    try:
        await ledger.transition_step(
            run_id, STEP, "completed",
            layout.DATASET_ARTIFACT if arrived else None,
        )
    except Exception:
        logger.exception("Could not close webset step of run %s", run_id)
    return arrived


async def _wait_for_dataset(
    engine: EngineClient,
    echo_id: str,
    access_token: SecretStr,
    interval_s: float,
    max_attempts: int,
) -> list[Any] | None:
    for attempt in range(1, max_attempts + 1):
        await asyncio.sleep(interval_s)
        try:
            status = await engine.fetch_enrichment(echo_id, access_token.get_secret_value())
        except EngineRequestFailure as e:
            logger.debug("Poll %d/%d for %s failed: %s", attempt, max_attempts, echo_id, e)
            continue
        if status.is_complete:
            logger.info("Dataset for echo %s ready after %d poll(s)", echo_id, attempt)
            return status.dataset
    return None


async def _store_dataset(
    run_id: str,
    echo_id: str,
    dataset: list[Any],
    artifacts: ArtifactStore,
    ledger: RunLedger,
    catalog: ReferenceCatalog,
) -> None:
    # A run whose directory vanished must not be recreated by a late write.
    if await ledger.read(run_id) is not None:
        await artifacts.put(run_id, layout.DATASET_ARTIFACT, echo_format.dump_dataset(dataset))
    else:
        logger.debug("Run %s is gone; dataset kept in echoes only", run_id)
    await catalog.attach_dataset(echo_id, dataset)
