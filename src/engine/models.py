# src/engine/models.py — v1
"""Engine wire models: EchoRequest in, EchoResponse / EnrichmentStatus out.

EchoRequest is the universal input contract. Its field descriptions are
exported verbatim as the tool input schema, so a host agent can fill it by
reading them. Response models validate strictly: a body that does not fit is
treated as a failed request rather than a half-empty record.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr
from pydantic.alias_generators import to_camel

Depth = Literal["quick", "standard", "deep"]
Focus = Literal["academic", "industry", "discourse", "financial"]
Intent = Literal["explore", "verify", "track", "compare", "brief"]
SourceType = Literal["human", "agent", "swarm", "pipeline", "webhook"]


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# === Request ===


class Signals(_WireModel):
    """Structured hints from sources that already have context."""

    known: list[str] | None = Field(
        default=None,
        description="Things the source already knows about this topic. "
        "Lets the engine skip common ground and go deeper.",
    )
    claims: list[str] | None = Field(
        default=None,
        description="Specific claims to verify or challenge. "
        "The engine will seek confirming and disconfirming evidence.",
    )
    domains: list[str] | None = Field(
        default=None,
        description="Domains of expertise relevant to this context "
        "(e.g. 'distributed systems', 'behavioral economics'). Shapes source selection.",
    )
    avoid: list[str] | None = Field(
        default=None,
        description="Topics, sources, or framings to deprioritize. "
        "Useful when the source has already explored dead ends.",
    )
    entities: list[str] | None = Field(
        default=None,
        description="People, companies, papers, or projects that are central to this context. "
        "Seeds entity-aware research.",
    )


class SourceModel(_WireModel):
    model: str = Field(description="Model identifier (e.g. 'gemma-3-27b').")
    role: str | None = Field(
        default=None,
        description="What this model contributed to filling the schema: "
        "'orchestrator', 'context', 'signals', 'intent', etc.",
    )


class Source(_WireModel):
    """Where an echo request originated."""

    type: SourceType = Field(description="What kind of intelligence initiated this echo.")
    id: str | None = Field(
        default=None,
        description="Identifier for the source (agent name, pipeline ID, webhook slug).",
    )
    label: str | None = Field(
        default=None,
        description="Human-readable label for attribution (e.g. 'Scott via Claude Desktop').",
    )
    models: list[SourceModel] | None = Field(
        default=None,
        description="Models that contributed to filling this schema. "
        "Single agent: one entry. Swarm/pipeline: multiple entries with roles.",
    )


class EchoRequest(_WireModel):
    """Everything the engine accepts. One required field, the rest is optional signal."""

    context: str = Field(
        min_length=1,
        description="What to investigate. A question, a conversation excerpt, a half-formed "
        "idea, or a full research brief. Include what you are trying to understand, what "
        "you have already explored, and what would make this echo useful.",
    )
    depth: Depth = Field(
        default="standard",
        description="Research depth: quick (~10s, fast take + 3 sources), standard (~30s, "
        "full synthesis, 8+ sources), deep (~60s, comprehensive + async dataset).",
    )
    focus: Focus | None = Field(
        default=None,
        description="Shape research category weights. academic: papers, arxiv. industry: "
        "news, companies. discourse: tweets, blogs. financial: filings, reports. "
        "Omit for auto-detection.",
    )
    intent: Intent | None = Field(
        default=None,
        description="Shapes research strategy and composition voice. explore: open-ended. "
        "verify: challenge claims with evidence. track: monitor an evolving situation. "
        "compare: evaluate alternatives side-by-side. brief: tight executive summary. "
        "Omit to let the engine infer from context.",
    )
    signals: Signals | None = Field(
        default=None,
        description="Structured hints from agents, swarms or pipelines that already have "
        "context: what is known, what to verify, which domains matter, what to avoid.",
    )
    scope: str | None = Field(
        default=None,
        description="Memory isolation boundary. Echoes with the same scope share taste "
        "memory; different scopes are fully isolated. Omit for the default scope.",
    )
    source: Source | None = Field(
        default=None,
        description="Where this echo request originated. Attribution and provenance.",
    )
    echo_id: str | None = Field(
        default=None,
        description="Existing echo ID to update instead of creating new. "
        "The echo URL stays the same; content evolves.",
    )
    model: str | None = Field(
        default=None,
        description="Override composition model (OpenRouter model ID). Default: engine default.",
    )

    def to_body(self) -> dict[str, Any]:
        """JSON body for POST /echo, unset optional fields omitted."""
        return self.model_dump(by_alias=True, exclude_none=True)


# === Responses ===


class EngineSource(_WireModel):
    url: str
    title: str = ""
    type: str = ""
    domain: str = ""
    score: float | None = None


class EchoResponse(_WireModel):
    """Successful POST /echo body."""

    echo_id: str = Field(min_length=1)
    status: str
    title: str
    subtitle: str | None = None
    markdown: str
    tags: list[str] = Field(default_factory=list)
    sources: list[EngineSource] = Field(default_factory=list)
    private_url: str
    private_key: SecretStr
    created_at: str
    updated_at: str
    webset_id: str | None = None
    webset_status: str | None = None


class EnrichmentStatus(_WireModel):
    """GET /echo/{id} body, as far as dataset polling cares."""

    webset_status: str | None = None
    dataset: list[Any] | None = None

    @property
    def is_complete(self) -> bool:
        return self.webset_status == "completed" and bool(self.dataset)
