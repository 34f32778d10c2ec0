# tests/unit/engine/test_unit_engine_client.py — v1
"""Tests for engine/client.py — headers, bodies and failure mapping."""

from __future__ import annotations

import json

import httpx
import pytest

from loretech.config.settings import Settings
from loretech.core.errors import EngineRequestFailure
from loretech.engine.client import EngineClient
from loretech.engine.models import EchoRequest


def _client(settings: Settings, handler) -> EngineClient:
    return EngineClient(settings, transport=httpx.MockTransport(handler))


class TestCreateEcho:
    @pytest.mark.asyncio
    async def test_posts_body_and_headers(self, settings: Settings, echo_payload):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=echo_payload)

        request = EchoRequest(context="what is CRDT?", depth="quick", focus="academic")
        echo = await _client(settings, handler).create_echo(request)

        assert echo.echo_id == "echo-abc"
        assert echo.private_key.get_secret_value() == "pk_secret"
        sent = seen[0]
        assert sent.method == "POST"
        assert str(sent.url) == "https://engine.test/echo"
        assert sent.headers["X-Loretech-Key"] == "lt-key"
        assert sent.headers["X-OpenRouter-Key"] == "or-key"
        assert sent.headers["X-Exa-Key"] == "exa-key"
        assert "Authorization" not in sent.headers
        assert "X-Display-Name" not in sent.headers
        assert json.loads(sent.content) == {
            "context": "what is CRDT?", "depth": "quick", "focus": "academic",
        }

    @pytest.mark.asyncio
    async def test_update_sends_bearer_and_attribution(self, settings: Settings, echo_payload):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=echo_payload)

        settings = settings.model_copy(update={"display_name": "Ada", "x_handle": "@ada"})
        request = EchoRequest(context="again", echo_id="echo-abc")
        await _client(settings, handler).create_echo(request, access_token="pk_secret")

        sent = seen[0]
        assert sent.headers["Authorization"] == "Bearer pk_secret"
        assert sent.headers["X-Display-Name"] == "Ada"
        assert sent.headers["X-Handle"] == "@ada"
        assert json.loads(sent.content)["echoId"] == "echo-abc"

    @pytest.mark.asyncio
    async def test_non_2xx(self, settings: Settings):
        client = _client(settings, lambda r: httpx.Response(502, text="upstream down"))
        with pytest.raises(EngineRequestFailure) as exc_info:
            await client.create_echo(EchoRequest(context="x"))
        assert str(exc_info.value) == "Engine returned 502: upstream down"
        assert exc_info.value.status_code == 502
        assert exc_info.value.body == "upstream down"

    @pytest.mark.asyncio
    async def test_timeout(self, settings: Settings):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(EngineRequestFailure, match="timed out after 120s"):
            await _client(settings, handler).create_echo(EchoRequest(context="x"))

    @pytest.mark.asyncio
    async def test_transport_error(self, settings: Settings):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(EngineRequestFailure, match="Engine request failed: refused"):
            await _client(settings, handler).create_echo(EchoRequest(context="x"))

    @pytest.mark.asyncio
    async def test_missing_required_field(self, settings: Settings, echo_payload):
        del echo_payload["privateKey"]
        client = _client(settings, lambda r: httpx.Response(200, json=echo_payload))
        with pytest.raises(EngineRequestFailure, match="Malformed engine response"):
            await client.create_echo(EchoRequest(context="x"))

    @pytest.mark.asyncio
    async def test_non_json_body(self, settings: Settings):
        client = _client(settings, lambda r: httpx.Response(200, text="<html>"))
        with pytest.raises(EngineRequestFailure, match="Malformed engine response"):
            await client.create_echo(EchoRequest(context="x"))

    @pytest.mark.asyncio
    async def test_extra_fields_ignored(self, settings: Settings, echo_payload):
        echo_payload["newField"] = {"nested": True}
        client = _client(settings, lambda r: httpx.Response(200, json=echo_payload))
        echo = await client.create_echo(EchoRequest(context="x"))
        assert echo.title == echo_payload["title"]


class TestFetchEnrichment:
    @pytest.mark.asyncio
    async def test_get_with_bearer(self, settings: Settings):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"websetStatus": "completed", "dataset": [{"a": 1}]})

        status = await _client(settings, handler).fetch_enrichment("echo-abc", "pk_secret")
        assert status.is_complete
        assert status.dataset == [{"a": 1}]
        assert seen[0].method == "GET"
        assert seen[0].url.path == "/echo/echo-abc"
        assert seen[0].headers["Authorization"] == "Bearer pk_secret"
        assert seen[0].headers["X-Exa-Key"] == "exa-key"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [
        {"websetStatus": "running"},
        {"websetStatus": "completed", "dataset": []},
        {"websetStatus": "completed"},
        {},
    ])
    async def test_incomplete(self, settings: Settings, body):
        client = _client(settings, lambda r: httpx.Response(200, json=body))
        assert not (await client.fetch_enrichment("echo-abc", "pk")).is_complete
