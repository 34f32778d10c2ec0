# src/logging/context.py — v2
"""Contextual logging support: attach run_id, step and echo_id to log records.

Context variables are copied into tasks at creation time, so the background
enrichment task keeps logging under the run that spawned it.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "run_id", default=None
)
_step: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "step", default=None
)
_echo_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "echo_id", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    run_id: str | None = None
    step: str | None = None
    echo_id: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        run_id=_run_id.get(),
        step=_step.get(),
        echo_id=_echo_id.get(),
    )


def set_run_context(run_id: str) -> None:
    """Set run-level context (called once per pipeline execution)."""
    _run_id.set(run_id)
    _step.set(None)
    _echo_id.set(None)


def set_step_context(step: str | None) -> None:
    _step.set(step)


def set_echo_context(echo_id: str | None) -> None:
    _echo_id.set(echo_id)


def clear_context() -> None:
    """Reset all context variables."""
    _run_id.set(None)
    _step.set(None)
    _echo_id.set(None)
