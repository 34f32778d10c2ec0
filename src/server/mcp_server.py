# src/server/mcp_server.py — v1
"""MCP stdio server exposing the tool facade.

stdout carries the protocol; all logging goes to stderr.
"""

from __future__ import annotations

import logging
from typing import Any

import mcp.types as types
from mcp.server.lowlevel import NotificationOptions, Server
from mcp.server.models import InitializationOptions
from mcp.server.stdio import stdio_server

from loretech.api.facade import (
    TOOL_ECHO,
    TOOL_ECHOES,
    TOOL_INSPECT,
    TOOL_RERUN,
    TOOL_RUNS,
    ToolFacade,
)
from loretech.api.models import InspectArguments, RerunArguments, RunsArguments
from loretech.config.settings import Settings
from loretech.core.errors import LoretechError
from loretech.engine.models import EchoRequest
from loretech.version import __version__

logger = logging.getLogger(__name__)

SERVER_NAME = "loretech"


class ToolCallFailed(LoretechError):
    """Raised inside a tool handler so the SDK reports isError=True."""


def tool_definitions() -> list[types.Tool]:
    return [
        types.Tool(
            name=TOOL_ECHO,
            description=(
                "Materialize an Echo: a living artifact from conversation context.\n"
                "Context in, persistent enriched artifact out. The engine researches,\n"
                "composes, and returns a structured artifact at a shareable URL.\n"
                "Artifacts materialize step-by-step in .loretech/runs/{runId}/.\n\n"
                "Use this when conversation produces understanding worth making visible: "
                "research, verification, tracking, comparison, or briefing."
            ),
            inputSchema=EchoRequest.model_json_schema(by_alias=True),
        ),
        types.Tool(
            name=TOOL_RUNS,
            description=(
                "List recent echo pipeline runs with their status and artifacts. "
                "Each run has a .loretech/runs/{runId}/ directory with step-by-step artifacts."
            ),
            inputSchema=RunsArguments.model_json_schema(by_alias=True),
        ),
        types.Tool(
            name=TOOL_INSPECT,
            description=(
                "Read a specific artifact from an echo pipeline run. Artifacts include "
                "context.json, sources.json, echo.md, record.json, meta.json, dataset.json."
            ),
            inputSchema=InspectArguments.model_json_schema(by_alias=True),
        ),
        types.Tool(
            name=TOOL_RERUN,
            description=(
                "Replay an echo pipeline from a specific step, optionally with modified inputs.\n"
                "Use this when the user wants to adjust context or retry a failed run.\n"
                "Reads the original run's context.json and creates a new run."
            ),
            inputSchema=RerunArguments.model_json_schema(by_alias=True),
        ),
        types.Tool(
            name=TOOL_ECHOES,
            description="List echoes stored locally in .loretech/echoes/, newest first.",
            inputSchema={"type": "object", "properties": {}},
        ),
    ]


def build_server(facade: ToolFacade) -> Server:
    """Register the loretech tools on a low-level MCP server."""
    server: Server = Server(SERVER_NAME)

    @server.list_tools()
    async def handle_list_tools() -> list[types.Tool]:
        return tool_definitions()

    @server.call_tool()
    async def handle_call_tool(
        name: str, arguments: dict[str, Any] | None,
    ) -> list[types.TextContent]:
        result = await facade.call(name, arguments)
        if result.is_error:
            raise ToolCallFailed(result.text)
        return [types.TextContent(type="text", text=result.text)]

    return server


async def serve(settings: Settings) -> None:
    """Run the MCP server over stdio until the host closes the streams."""
    facade = ToolFacade.from_settings(settings)
    server = build_server(facade)
    missing = settings.missing_credentials()
    if missing:
        logger.warning(
            "Missing API keys (%s); set them in %s", ", ".join(missing), settings.env_path,
        )

    logger.info("Loretech MCP server started (data dir: %s)", settings.data_dir)
    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream,
                write_stream,
                InitializationOptions(
                    server_name=SERVER_NAME,
                    server_version=__version__,
                    capabilities=server.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={},
                    ),
                ),
            )
    finally:
        if facade.orchestrator.pending_enrichments:
            logger.info(
                "Waiting for %d background enrichment(s)",
                facade.orchestrator.pending_enrichments,
            )
        await facade.drain()
