# src/storage/models.py — v2
"""Storage domain models: RunRecord, StepRecord, EchoRef.

RunRecord is written to runs/{run_id}/meta.json with camelCase keys.
EchoRef is the structured form of an echoes/{echo_id}.md file.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr
from pydantic.alias_generators import to_camel

StepName = Literal["context", "sources", "compose", "store", "record", "webset"]
StepStatus = Literal["pending", "running", "completed", "failed"]
RunStatus = Literal["running", "completed", "failed"]

# Fixed pipeline order; every run carries exactly these steps.
STEP_NAMES: tuple[StepName, ...] = (
    "context",
    "sources",
    "compose",
    "store",
    "record",
    "webset",
)

TERMINAL_STEP_STATUSES: frozenset[str] = frozenset({"completed", "failed"})

LEGAL_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"running"}),
    "running": frozenset({"completed", "failed"}),
    "completed": frozenset(),
    "failed": frozenset(),
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StepRecord(_CamelModel):
    """One named stage within a run."""

    name: StepName
    status: StepStatus = "pending"
    started_at: datetime | None = None
    completed_at: datetime | None = None
    artifact_name: str | None = Field(default=None, alias="artifact")

    def can_move_to(self, status: StepStatus) -> bool:
        return status in LEGAL_TRANSITIONS[self.status]


class RunRecord(_CamelModel):
    """Ledger entry for one pipeline execution."""

    run_id: str
    status: RunStatus = "running"
    started_at: datetime = Field(default_factory=utc_now)
    completed_at: datetime | None = None
    steps: list[StepRecord] = Field(
        default_factory=lambda: [StepRecord(name=name) for name in STEP_NAMES]
    )
    echo_id: str | None = None
    error: str | None = None

    def step(self, name: str) -> StepRecord | None:
        for step in self.steps:
            if step.name == name:
                return step
        return None

    @property
    def duration_seconds(self) -> float | None:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2)


class EchoRef(BaseModel):
    """Durable local record of an echo, independent of any run.

    The private key authorizes updates on the engine; it is held as a
    SecretStr so reprs and logs never show it.
    """

    echo_id: str
    private_key: SecretStr
    title: str = ""
    status: str = "draft"
    created_at: str = ""
    updated_at: str = ""
    markdown: str = ""
    dataset_ref: str | None = None
    dataset_path: Path | None = None
