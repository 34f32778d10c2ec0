# src/pipeline/models.py — v1
"""Pipeline models: CapturedContext (the context.json artifact) and RunResult."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel

from loretech.engine.models import EchoRequest, EchoResponse


class CapturedContext(EchoRequest):
    """Full engine input as staged for a run, plus replay provenance."""

    replayed_from: str | None = None
    replayed_step: str | None = None

    @classmethod
    def capture(
        cls,
        request: EchoRequest,
        replayed_from: str | None = None,
        replayed_step: str | None = None,
    ) -> CapturedContext:
        return cls(
            **request.model_dump(),
            replayed_from=replayed_from,
            replayed_step=replayed_step,
        )

    def to_request(self) -> EchoRequest:
        return EchoRequest.model_validate(
            self.model_dump(exclude={"replayed_from", "replayed_step"})
        )

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2)


class RunResult(BaseModel):
    """Outcome of one orchestrated run. Failures are values, not exceptions."""

    run_id: str
    ok: bool
    run_dir: Path
    error: str | None = None
    failed_step: str | None = None
    echo: EchoResponse | None = None
    echo_path: Path | None = None
    enrichment_pending: bool = False
    replayed_from: str | None = None
    replayed_step: str | None = None
