# tests/conftest.py — v2
"""Shared test fixtures for all unit and integration tests.

Provides settings bound to a temp .loretech directory, the storage stack,
a sample engine response and a scriptable engine behind httpx.MockTransport.
No network access: every engine call is answered in-process.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import httpx
import pytest

from loretech.config.settings import Settings
from loretech.pipeline.orchestrator import EchoOrchestrator
from loretech.storage.artifact_store import ArtifactStore
from loretech.storage.local_writer import LocalWriter
from loretech.storage.reference_catalog import ReferenceCatalog
from loretech.storage.run_ledger import RunLedger

_ENV_VARS = (
    "LORETECH_API_URL",
    "LORETECH_API_KEY",
    "OPENROUTER_API_KEY",
    "EXA_API_KEY",
    "DISPLAY_NAME",
    "X_HANDLE",
    "LORETECH_DIR",
    "POLL_INTERVAL_S",
    "POLL_MAX_ATTEMPTS",
    "LOG_LEVEL",
    "LOG_FORMAT",
    "LOG_FILE",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's shell environment out of Settings."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


# === FIXTURES: Configuration and storage ===


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / ".loretech"


@pytest.fixture
def settings(data_dir: Path) -> Settings:
    """Fully credentialed settings that poll immediately and give up fast."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        loretech_dir=data_dir,
        loretech_api_url="https://engine.test",
        loretech_api_key="lt-key",
        openrouter_api_key="or-key",
        exa_api_key="exa-key",
        poll_interval_s=0,
        poll_max_attempts=2,
    )


@pytest.fixture
def writer() -> LocalWriter:
    return LocalWriter()


@pytest.fixture
def artifacts(writer: LocalWriter, data_dir: Path) -> ArtifactStore:
    return ArtifactStore(writer, data_dir)


@pytest.fixture
def ledger(writer: LocalWriter, data_dir: Path) -> RunLedger:
    return RunLedger(writer, data_dir)


@pytest.fixture
def catalog(writer: LocalWriter, data_dir: Path) -> ReferenceCatalog:
    return ReferenceCatalog(writer, data_dir)


# === FIXTURES: Engine ===


@pytest.fixture
def echo_payload() -> dict[str, Any]:
    """Successful POST /echo body as the engine sends it."""
    return {
        "echoId": "echo-abc",
        "status": "draft",
        "title": "State of \"local-first\" sync",
        "subtitle": "CRDTs in production",
        "markdown": "## Findings\n\nCRDT adoption is growing.",
        "tags": ["crdt", "sync"],
        "sources": [
            {"url": "https://a.example/1", "title": "One", "type": "paper",
             "domain": "a.example", "score": 0.9},
            {"url": "https://b.example/2", "title": "Two", "type": "blog",
             "domain": "b.example"},
        ],
        "privateUrl": "https://engine.test/e/echo-abc?k=pk_secret",
        "privateKey": "pk_secret",
        "createdAt": "2026-02-26T10:00:00Z",
        "updatedAt": "2026-02-26T10:00:00Z",
    }


class EngineStub:
    """In-process engine answering through httpx.MockTransport.

    POST /echo returns echo_payload (or post_status/post_text when set).
    GET /echo/{id} pops poll_responses in order, then reports "running".
    """

    def __init__(self, echo_payload: dict[str, Any]) -> None:
        self.echo_payload = echo_payload
        self.post_status = 200
        self.post_text: str | None = None
        self.poll_responses: list[tuple[int, Any]] = []
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "POST":
            if self.post_text is not None:
                return httpx.Response(self.post_status, text=self.post_text)
            return httpx.Response(self.post_status, json=self.echo_payload)
        if self.poll_responses:
            status, body = self.poll_responses.pop(0)
            return httpx.Response(status, json=body)
        return httpx.Response(200, json={"websetStatus": "running"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def posts(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "POST"]

    @property
    def polls(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "GET"]

    def posted_body(self, index: int = -1) -> dict[str, Any]:
        return json.loads(self.posts[index].content)


@pytest.fixture
def engine_stub(echo_payload: dict[str, Any]) -> EngineStub:
    return EngineStub(echo_payload)


@pytest.fixture
def orchestrator(settings: Settings, engine_stub: EngineStub) -> EchoOrchestrator:
    return EchoOrchestrator.from_settings(settings, transport=engine_stub.transport)
