# src/api/models.py — v2
"""Tool-level models: argument schemas for the non-echo tools and ToolResult.

The echo tool takes EchoRequest directly (see loretech.engine.models).
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ReplayStep = Literal["context", "sources", "compose"]


class ToolResult(BaseModel):
    """Rendered outcome of one tool call."""

    text: str
    is_error: bool = False


class _ToolArguments(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RunsArguments(_ToolArguments):
    limit: int = Field(
        default=10, ge=1, le=50, description="Maximum number of runs to return",
    )


class InspectArguments(_ToolArguments):
    run_id: str = Field(alias="runId", description="The run ID to inspect")
    artifact: str | None = Field(
        default=None,
        description="Specific artifact filename to read (e.g., 'sources.json'). "
        "Omit to list all artifacts.",
    )


class RerunArguments(_ToolArguments):
    run_id: str = Field(alias="runId", description="The original run ID to replay from")
    from_step: ReplayStep = Field(
        alias="fromStep",
        description="Step to restart from (reuses all prior artifacts)",
    )
    override_context: str | None = Field(
        default=None,
        alias="overrideContext",
        description="New context to use (only when fromStep is 'context')",
    )
