# tests/unit/server/test_unit_mcp_server.py — v1
"""Tests for server/mcp_server.py — tool registration and call handling."""

from __future__ import annotations

import mcp.types as types
import pytest

from loretech.api.facade import ToolFacade
from loretech.server.mcp_server import build_server, tool_definitions


@pytest.fixture
def server(settings, engine_stub):
    return build_server(ToolFacade.from_settings(settings, transport=engine_stub.transport))


async def _call(server, name: str, arguments: dict) -> types.CallToolResult:
    handler = server.request_handlers[types.CallToolRequest]
    request = types.CallToolRequest(
        method="tools/call",
        params=types.CallToolRequestParams(name=name, arguments=arguments),
    )
    return (await handler(request)).root


class TestToolDefinitions:
    def test_names(self):
        assert [t.name for t in tool_definitions()] == [
            "loretech_echo",
            "loretech_runs",
            "loretech_inspect",
            "loretech_rerun",
            "loretech_echoes",
        ]

    def test_echo_schema_from_request_model(self):
        echo = tool_definitions()[0]
        assert echo.inputSchema["required"] == ["context"]
        assert "signals" in echo.inputSchema["properties"]

    @pytest.mark.asyncio
    async def test_list_tools_handler(self, server):
        handler = server.request_handlers[types.ListToolsRequest]
        result = await handler(types.ListToolsRequest(method="tools/list"))
        assert len(result.root.tools) == 5


class TestCallTool:
    @pytest.mark.asyncio
    async def test_success_is_text(self, server):
        result = await _call(server, "loretech_echo", {"context": "x"})
        assert not result.isError
        assert result.content[0].text.startswith('# State of "local-first" sync')

    @pytest.mark.asyncio
    async def test_failure_sets_is_error(self, server):
        result = await _call(server, "loretech_rerun", {"runId": "ghost", "fromStep": "context"})
        assert result.isError
        assert "Run ghost not found." in result.content[0].text
