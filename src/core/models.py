# src/core/models.py — v1
"""Shared Pydantic domain models used across modules.

No module redefines these types; all imports come from core.models.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

Severity = Literal["low", "medium", "high", "critical"]
JobStatus = Literal[
    "pending", "running", "completed", "completed_with_partial_failures", "failed"
]


def utc_now() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


def normalize_identity(value: str) -> str:
    """Canonical form of a person identifier (e.g. an email address)."""
    return value.strip().lower()


# === RAW INPUT ===


class CommunicationEvent(BaseModel):
    """One message sent by a person to one or more recipients."""

    organization_id: str
    sender: str
    recipients: list[str] = Field(default_factory=list)
    timestamp: datetime
    channel: str = "email"

    @field_validator("timestamp")
    @classmethod
    def ensure_timezone(cls, v: datetime) -> datetime:  # noqa: N805
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class DirectoryEntry(BaseModel):
    """HR directory row: identity attributes and the formal manager link."""

    person_id: str
    display_name: str | None = None
    department: str | None = None
    job_title: str | None = None
    manager_id: str | None = None


# === GRAPH ===


DERIVED_FIELDS: frozenset[str] = frozenset({
    "degree_centrality",
    "in_degree_centrality",
    "out_degree_centrality",
    "betweenness_centrality",
    "closeness_centrality",
    "pagerank",
    "influence_score",
    "influence_rank",
    "influence_percentile",
    "network_influence",
    "bridging_influence",
    "community_id",
    "hierarchy_level",
    "hierarchy_gap",
    "hidden_influence_type",
    "hidden_influence_confidence",
})

IDENTITY_FIELDS: tuple[str, ...] = ("display_name", "department", "job_title")


class Person(BaseModel):
    """Graph node: one employee of an organization.

    Identity attributes come from the directory. Derived fields are written
    by analysis stages and are last-write-wins.
    """

    person_id: str
    organization_id: str
    display_name: str | None = None
    department: str | None = None
    job_title: str | None = None

    # --- Derived (written by stages) ---
    degree_centrality: float | None = None
    in_degree_centrality: float | None = None
    out_degree_centrality: float | None = None
    betweenness_centrality: float | None = None
    closeness_centrality: float | None = None
    pagerank: float | None = None
    influence_score: float | None = None
    influence_rank: int | None = None
    influence_percentile: float | None = None
    network_influence: float | None = None
    bridging_influence: float | None = None
    community_id: str | None = None
    hierarchy_level: int | None = None
    hierarchy_gap: int | None = None
    hidden_influence_type: str | None = None
    hidden_influence_confidence: float | None = None

    def derived(self) -> dict[str, Any]:
        """Derived fields that are currently set."""
        return {
            name: getattr(self, name)
            for name in sorted(DERIVED_FIELDS)
            if getattr(self, name) is not None
        }


class CommunicationEdge(BaseModel):
    """Directed, weighted edge: source sent messages to target."""

    organization_id: str
    source: str
    target: str
    message_count: int = Field(ge=1)
    recent_count: int = Field(default=0, ge=0)
    first_interaction: datetime | None = None
    last_interaction: datetime | None = None

    @model_validator(mode="after")
    def reject_self_edge(self) -> CommunicationEdge:
        if self.source == self.target:
            raise ValueError(f"self-edge not allowed: {self.source}")
        return self

    @property
    def key(self) -> tuple[str, str]:
        return (self.source, self.target)


def validate_derived_fields(fields: dict[str, Any]) -> None:
    """Raise ValueError if any key is not a known derived field."""
    unknown = sorted(set(fields) - DERIVED_FIELDS)
    if unknown:
        raise ValueError(f"Unknown derived field(s): {', '.join(unknown)}")


# === INSIGHTS & JOBS ===


class Insight(BaseModel):
    """Structured, reportable finding about an organization or a person."""

    insight_id: str
    organization_id: str
    type: str
    category: str
    severity: Severity
    title: str
    description: str
    entity_type: Literal["organization", "person"] = "organization"
    entity_id: str
    score: float = 0.0
    metadata: dict[str, Any] = Field(default_factory=dict)
    recommended_actions: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class AnalysisJobRecord(BaseModel):
    """Persisted state of one analysis job."""

    job_id: str
    organization_id: str
    analysis_types: list[str] = Field(default_factory=list)
    status: JobStatus = "pending"
    triggered_by: str | None = None
    result_summary: dict[str, Any] = Field(default_factory=dict)
    duration_ms: int | None = None
    created_at: datetime = Field(default_factory=utc_now)
    completed_at: datetime | None = None
