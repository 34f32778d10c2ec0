# src/api/facade.py — v2
"""Tool facade: the five agent-facing operations rendered as text.

Usage:
    facade = ToolFacade.from_settings(load_settings())
    result = await facade.create_echo({"context": "..."})

Every method returns a ToolResult and never raises. Bad arguments, unknown
runs and engine failures all come back as is_error=True with a message a
host agent can show to its user.
"""

from __future__ import annotations

import functools
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable

import httpx
from pydantic import ValidationError

from loretech.api.models import (
    InspectArguments,
    RerunArguments,
    RunsArguments,
    ToolResult,
)
from loretech.core.errors import LoretechError
from loretech.engine.models import EchoRequest
from loretech.pipeline.orchestrator import EchoOrchestrator
from loretech.pipeline.replay import ReplayController

if TYPE_CHECKING:
    from loretech.config.settings import Settings
    from loretech.pipeline.models import RunResult
    from loretech.storage.models import RunRecord

logger = logging.getLogger(__name__)

TOOL_ECHO = "loretech_echo"
TOOL_RUNS = "loretech_runs"
TOOL_INSPECT = "loretech_inspect"
TOOL_RERUN = "loretech_rerun"
TOOL_ECHOES = "loretech_echoes"

_GLYPHS = {"completed": "✓", "failed": "✗"}


def _glyph(status: str) -> str:
    return _GLYPHS.get(status, "…")


def describe_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        loc = ".".join(str(p) for p in item["loc"]) or "arguments"
        parts.append(f"{loc}: {item['msg']}")
    return "; ".join(parts)


def _contained(
    method: Callable[..., Awaitable[ToolResult]],
) -> Callable[..., Awaitable[ToolResult]]:
    """Turn argument and domain errors into error results."""

    @functools.wraps(method)
    async def wrapper(*args: Any, **kwargs: Any) -> ToolResult:
        try:
            return await method(*args, **kwargs)
        except ValidationError as e:
            return ToolResult(
                text=f"Invalid arguments: {describe_validation_error(e)}", is_error=True,
            )
        except (LoretechError, ValueError) as e:
            logger.warning("%s failed: %s", method.__name__, e)
            return ToolResult(text=str(e), is_error=True)

    return wrapper


class ToolFacade:
    """Binds settings, the orchestrator and the replay controller to tool calls."""

    def __init__(
        self,
        settings: Settings,
        orchestrator: EchoOrchestrator,
        replay: ReplayController,
    ) -> None:
        self._settings = settings
        self._orchestrator = orchestrator
        self._replay = replay

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> ToolFacade:
        orchestrator = EchoOrchestrator.from_settings(settings, transport=transport)
        replay = ReplayController(orchestrator, orchestrator.ledger, orchestrator.artifacts)
        return cls(settings, orchestrator, replay)

    @property
    def orchestrator(self) -> EchoOrchestrator:
        return self._orchestrator

    async def call(self, name: str, arguments: dict[str, Any] | None = None) -> ToolResult:
        """Dispatch an MCP tool call by name."""
        arguments = arguments or {}
        if name == TOOL_ECHO:
            return await self.create_echo(arguments)
        if name == TOOL_RUNS:
            return await self._call_runs(arguments)
        if name == TOOL_INSPECT:
            return await self._call_inspect(arguments)
        if name == TOOL_RERUN:
            return await self._call_rerun(arguments)
        if name == TOOL_ECHOES:
            return await self.list_echoes()
        return ToolResult(text=f"Unknown tool: {name}", is_error=True)

    async def drain(self) -> None:
        await self._orchestrator.drain()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    @_contained
    async def create_echo(self, arguments: dict[str, Any] | EchoRequest) -> ToolResult:
        """Validate the request, run the pipeline and render the echo."""
        request = (
            arguments if isinstance(arguments, EchoRequest)
            else EchoRequest.model_validate(arguments)
        )
        missing = self._missing_keys()
        if missing is not None:
            return missing

        result = await self._orchestrator.run(request)
        if not result.ok:
            return ToolResult(text=f"Echo creation failed: {result.error}", is_error=True)
        return ToolResult(text=_render_echo(result))

    @_contained
    async def list_runs(self, limit: int = 10) -> ToolResult:
        """Recent runs, newest first, with step progress."""
        limit = RunsArguments(limit=limit).limit
        runs = await self._orchestrator.ledger.list(limit)
        if not runs:
            return ToolResult(text="No runs found. Create an echo first with loretech_echo.")
        return ToolResult(text="\n\n".join(_render_run(run) for run in runs))

    @_contained
    async def inspect(self, run_id: str, artifact: str | None = None) -> ToolResult:
        """List a run's artifacts, or return one artifact's content."""
        artifacts = self._orchestrator.artifacts
        if not artifact:
            names = await artifacts.list(run_id)
            if not names:
                return ToolResult(text=f"No artifacts found for run {run_id}.")
            meta = await self._orchestrator.ledger.read(run_id)
            header = ""
            if meta is not None:
                target = f" → {meta.echo_id}" if meta.echo_id else ""
                header = f"Run {run_id} ({meta.status}){target}\n\n"
            listing = "\n".join(f"  • {name}" for name in names)
            return ToolResult(text=f"{header}Artifacts:\n{listing}")

        try:
            content = await artifacts.get_text(run_id, artifact)
        except ValueError:
            content = None
        if content is None:
            return ToolResult(
                text=f"Artifact '{artifact}' not found in run {run_id}.", is_error=True,
            )
        return ToolResult(text=content)

    @_contained
    async def rerun(
        self,
        run_id: str,
        from_step: str,
        override_context: str | None = None,
    ) -> ToolResult:
        """Replay a previous run from one of its early steps."""
        missing = self._missing_keys()
        if missing is not None:
            return missing

        result = await self._replay.replay(run_id, from_step, override_context)
        if not result.ok:
            return ToolResult(text=f"Rerun failed: {result.error}", is_error=True)
        return ToolResult(text=_render_rerun(result, override_context))

    @_contained
    async def list_echoes(self) -> ToolResult:
        """Locally stored echoes, most recently updated first."""
        refs = await self._orchestrator.catalog.list_all()
        if not refs:
            return ToolResult(text="No echoes found. Create one with loretech_echo.")
        blocks = []
        for ref in refs:
            lines = [
                f"• {ref.title or '(untitled)'} [{ref.status}]",
                f"  ID: {ref.echo_id}",
                f"  Updated: {ref.updated_at or 'unknown'}",
                f"  File: {self._orchestrator.catalog.echo_path(ref.echo_id)}",
            ]
            if ref.dataset_path is not None:
                lines.append(f"  Dataset: {ref.dataset_path}")
            blocks.append("\n".join(lines))
        return ToolResult(text="\n\n".join(blocks))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @_contained
    async def _call_runs(self, arguments: dict[str, Any]) -> ToolResult:
        return await self.list_runs(RunsArguments.model_validate(arguments).limit)

    @_contained
    async def _call_inspect(self, arguments: dict[str, Any]) -> ToolResult:
        parsed = InspectArguments.model_validate(arguments)
        return await self.inspect(parsed.run_id, parsed.artifact)

    @_contained
    async def _call_rerun(self, arguments: dict[str, Any]) -> ToolResult:
        parsed = RerunArguments.model_validate(arguments)
        return await self.rerun(parsed.run_id, parsed.from_step, parsed.override_context)

    def _missing_keys(self) -> ToolResult | None:
        missing = self._settings.missing_credentials()
        if not missing:
            return None
        return ToolResult(
            text=f"Missing API keys: {', '.join(missing)}. Set them in {self._settings.env_path}.",
            is_error=True,
        )


def _render_echo(result: RunResult) -> str:
    echo = result.echo
    assert echo is not None
    lines = [f"# {echo.title}"]
    if echo.subtitle:
        lines.append(f"*{echo.subtitle}*")
    lines.append("")
    if echo.tags:
        lines.append(f"Tags: {', '.join(echo.tags)}")
    lines.append(f"Sources: {len(echo.sources)} found")
    if echo.webset_id:
        lines.append(f"Webset: {echo.webset_status} (enriching in background)")
    lines.append(f"Run artifacts: {result.run_dir}/")
    lines.append("")
    lines.append(f"Private URL: {echo.private_url}")
    lines.append(f"Echo saved to: {result.echo_path}")
    lines.extend(["", "---", "", echo.markdown])
    return "\n".join(lines)


def _render_rerun(result: RunResult, override_context: str | None) -> str:
    echo = result.echo
    assert echo is not None
    modified = (
        " (with modified context)"
        if override_context and result.replayed_step == "context" else ""
    )
    lines = [
        f"Rerun complete: {echo.title}",
        f"Original run: {result.replayed_from} → New run: {result.run_id}",
        f"Replayed from: {result.replayed_step}{modified}",
        f"Echo: {result.echo_path}",
        f"Run artifacts: {result.run_dir}/",
        f"Private URL: {echo.private_url}",
    ]
    if echo.webset_id:
        lines.append(f"Webset: {echo.webset_status} (enriching in background)")
    return "\n".join(lines)


def _render_run(run: RunRecord) -> str:
    duration = f"{run.duration_seconds:.1f}s" if run.duration_seconds is not None else "running"
    target = f" → {run.echo_id}" if run.echo_id else ""
    steps = ", ".join(
        f"{_glyph(step.status)} {step.name}"
        for step in run.steps
        if step.status != "pending"
    )
    line = f"{_glyph(run.status)} {run.run_id} ({duration}){target}\n  Steps: {steps}"
    if run.error:
        line += f"\n  Error: {run.error}"
    return line
