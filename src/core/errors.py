# src/core/errors.py — v1
"""Exception hierarchy for run staging, the engine client and replay.

Lookups against unknown runs or echoes are not errors: they return None
and the caller decides. These types cover operations that actually failed.
"""

from __future__ import annotations


class LoretechError(Exception):
    """Base exception for loretech."""


class DuplicateRun(LoretechError):
    """A ledger record already exists for this run id."""

    def __init__(self, run_id: str):
        self.run_id = run_id
        super().__init__(f"Run {run_id} already exists")


class StorageFailure(LoretechError):
    """Filesystem I/O failed (disk full, permission denied, ...)."""

    def __init__(self, path: str, cause: Exception):
        self.path = path
        self.cause = cause
        super().__init__(f"Storage failure at {path}: {cause}")


class EngineRequestFailure(LoretechError):
    """Remote engine returned non-2xx, timed out, or sent a malformed body."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
    ):
        self.status_code = status_code
        self.body = body
        super().__init__(message)

    @classmethod
    def from_status(cls, status_code: int, body: str) -> EngineRequestFailure:
        return cls(
            f"Engine returned {status_code}: {body}",
            status_code=status_code,
            body=body,
        )


class SourceRunNotFound(LoretechError):
    """Replay was requested for a run the ledger does not know."""

    def __init__(self, run_id: str):
        self.run_id = run_id
        super().__init__(f"Run {run_id} not found.")


class MissingInputArtifact(LoretechError):
    """The source run has no captured context to replay from."""

    def __init__(self, run_id: str, artifact: str):
        self.run_id = run_id
        self.artifact = artifact
        super().__init__(f"No {artifact} found in run {run_id}. Cannot replay.")


class InvalidStepTransition(LoretechError):
    """A step was asked to move along an edge its state machine forbids."""

    def __init__(self, run_id: str, step: str, current: str, requested: str):
        self.run_id = run_id
        self.step = step
        self.current = current
        self.requested = requested
        super().__init__(
            f"Step '{step}' of run {run_id} cannot go from {current} to {requested}"
        )
