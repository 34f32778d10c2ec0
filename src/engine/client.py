# src/engine/client.py — v1
"""Async HTTP client for the remote echo engine.

Every call has a hard timeout. Timeouts, transport errors, non-2xx statuses
and bodies that fail validation all surface as EngineRequestFailure.
"""

from __future__ import annotations

import logging
from typing import TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from loretech.config.settings import Settings
from loretech.core.errors import EngineRequestFailure
from loretech.engine.models import EchoRequest, EchoResponse, EnrichmentStatus

logger = logging.getLogger(__name__)

_M = TypeVar("_M", bound=BaseModel)


class EngineClient:
    """Thin wrapper over httpx.AsyncClient for /echo endpoints.

    Args:
        settings: Base URL, API keys and timeouts.
        transport: Optional httpx transport (tests pass httpx.MockTransport).
    """

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    async def create_echo(
        self,
        request: EchoRequest,
        access_token: str | None = None,
    ) -> EchoResponse:
        """POST /echo. Pass access_token when updating an existing echo."""
        headers = self._credential_headers()
        headers["Content-Type"] = "application/json"
        if self._settings.display_name:
            headers["X-Display-Name"] = self._settings.display_name
        if self._settings.x_handle:
            headers["X-Handle"] = self._settings.x_handle
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"

        logger.debug("POST /echo (depth=%s, update=%s)", request.depth, bool(request.echo_id))
        response = await self._send(
            "POST", "/echo",
            timeout=self._settings.engine_timeout_s,
            headers=headers,
            json=request.to_body(),
        )
        return _parse(response, EchoResponse)

    async def fetch_enrichment(self, echo_id: str, access_token: str) -> EnrichmentStatus:
        """GET /echo/{echo_id} for dataset status."""
        headers = {
            "Authorization": f"Bearer {access_token}",
            "X-Exa-Key": self._settings.exa_api_key,
        }
        response = await self._send(
            "GET", f"/echo/{echo_id}",
            timeout=self._settings.poll_timeout_s,
            headers=headers,
        )
        return _parse(response, EnrichmentStatus)

    def _credential_headers(self) -> dict[str, str]:
        return {
            "X-Loretech-Key": self._settings.loretech_api_key,
            "X-OpenRouter-Key": self._settings.openrouter_api_key,
            "X-Exa-Key": self._settings.exa_api_key,
        }

    async def _send(self, method: str, url: str, timeout: float, **kwargs) -> httpx.Response:
        try:
            async with httpx.AsyncClient(
                base_url=self._settings.loretech_api_url,
                timeout=timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise EngineRequestFailure(
                f"Engine request timed out after {timeout:g}s"
            ) from e
        except httpx.HTTPError as e:
            raise EngineRequestFailure(f"Engine request failed: {e}") from e

        if not response.is_success:
            raise EngineRequestFailure.from_status(response.status_code, response.text)
        return response


def _parse(response: httpx.Response, model: type[_M]) -> _M:
    try:
        return model.model_validate_json(response.content)
    except ValidationError as e:
        raise EngineRequestFailure(
            f"Malformed engine response: {e.error_count()} validation error(s)",
            status_code=response.status_code,
            body=response.text,
        ) from e
