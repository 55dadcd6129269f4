# src/network/models.py — v1
"""Result models for the network analysis stages.

Each stage result exposes summary(), the compact dict recorded in the
analysis job's per-stage summaries.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from orgnet.core.models import CommunicationEdge, Person

# === NETWORK BUILDER ===


class NetworkStats(BaseModel):
    """Size and shape of a built network."""

    node_count: int = 0
    edge_count: int = 0
    density: float = 0.0
    avg_degree: float = 0.0


class NetworkBuildResult(BaseModel):
    """Persons, edges and manager links aggregated from raw events."""

    organization_id: str
    persons: list[Person] = Field(default_factory=list)
    edges: list[CommunicationEdge] = Field(default_factory=list)
    reporting_lines: dict[str, str] = Field(default_factory=dict)
    stats: NetworkStats = Field(default_factory=NetworkStats)
    events_considered: int = 0
    edges_below_threshold: int = 0
    reference_time: datetime

    def summary(self) -> dict[str, Any]:
        return {
            **self.stats.model_dump(),
            "events_considered": self.events_considered,
            "reporting_lines": len(self.reporting_lines),
        }


# === CENTRALITY ===


class CentralityScores(BaseModel):
    """Centrality measures for one Person."""

    person_id: str
    degree: float = 0.0
    in_degree: float = 0.0
    out_degree: float = 0.0
    betweenness: float = 0.0
    closeness: float = 0.0
    pagerank: float = 0.0


class CentralityStats(BaseModel):
    avg_degree: float = 0.0
    avg_betweenness: float = 0.0
    avg_closeness: float = 0.0
    avg_pagerank: float = 0.0
    max_degree: float = 0.0
    max_betweenness: float = 0.0
    max_closeness: float = 0.0
    max_pagerank: float = 0.0


class CentralityResult(BaseModel):
    scores: dict[str, CentralityScores] = Field(default_factory=dict)
    stats: CentralityStats = Field(default_factory=CentralityStats)
    pagerank_retried: bool = False

    def summary(self) -> dict[str, Any]:
        return {"persons_scored": len(self.scores), **self.stats.model_dump()}


# === INFLUENCE ===


class InfluenceComponents(BaseModel):
    """Weighted sub-scores of the composite influence score, each in [0, 1]."""

    network: float = 0.0
    volume: float = 0.0
    response: float = 0.0
    bridging: float = 0.0
    temporal: float = 0.0


class InfluenceScore(BaseModel):
    person_id: str
    department: str | None = None
    score: float
    rank: int
    percentile: float
    components: InfluenceComponents


class InfluenceStats(BaseModel):
    mean: float = 0.0
    median: float = 0.0
    std_dev: float = 0.0
    top_departments: list[tuple[str, int]] = Field(default_factory=list)


class InfluenceResult(BaseModel):
    """Influence scores ordered by rank (rank 1 first)."""

    scores: list[InfluenceScore] = Field(default_factory=list)
    stats: InfluenceStats = Field(default_factory=InfluenceStats)

    def by_person(self) -> dict[str, InfluenceScore]:
        return {s.person_id: s for s in self.scores}

    def summary(self) -> dict[str, Any]:
        return {
            "persons_scored": len(self.scores),
            "mean": self.stats.mean,
            "median": self.stats.median,
            "std_dev": self.stats.std_dev,
            "top_departments": [list(pair) for pair in self.stats.top_departments],
            "top_person": self.scores[0].person_id if self.scores else None,
        }


# === COMMUNITY ===

CommunityRole = Literal["hub", "bridge", "peripheral", "member"]


class CommunityMember(BaseModel):
    person_id: str
    internal_connections: int = 0
    external_connections: int = 0
    role: CommunityRole = "member"


class Community(BaseModel):
    """One detected community. Ids are ordered by size, largest first."""

    community_id: str
    name: str
    size: int
    members: list[CommunityMember] = Field(default_factory=list)
    density: float = 0.0
    department_mix: dict[str, int] = Field(default_factory=dict)
    dominant_department: str | None = None
    key_members: list[str] = Field(default_factory=list)

    @property
    def member_ids(self) -> list[str]:
        return [m.person_id for m in self.members]


class CommunityResult(BaseModel):
    assignments: dict[str, str | None] = Field(default_factory=dict)
    communities: list[Community] = Field(default_factory=list)
    modularity: float = 0.0
    community_count: int = 0
    avg_size: float = 0.0
    largest_size: int = 0
    smallest_size: int = 0
    isolated_count: int = 0
    isolated_nodes: list[str] = Field(default_factory=list)

    def summary(self) -> dict[str, Any]:
        return {
            "community_count": self.community_count,
            "modularity": self.modularity,
            "avg_size": self.avg_size,
            "largest_size": self.largest_size,
            "smallest_size": self.smallest_size,
            "isolated_count": self.isolated_count,
        }


# === HIERARCHY ===

DiscrepancyType = Literal["aligned", "shadow-leader", "over-performer", "under-leveraged"]


class HierarchyNode(BaseModel):
    person_id: str
    formal_level: int
    actual_level: int
    direct_reports: int = 0
    manager_id: str | None = None
    gap: int = 0
    discrepancy_type: DiscrepancyType = "aligned"


class HierarchyMetrics(BaseModel):
    alignment_score: float = 0.0
    shadow_leader_count: int = 0
    under_leveraged_count: int = 0
    over_performer_count: int = 0
    avg_discrepancy: float = 0.0


class HierarchyResult(BaseModel):
    nodes: list[HierarchyNode] = Field(default_factory=list)
    metrics: HierarchyMetrics = Field(default_factory=HierarchyMetrics)
    formal_levels: dict[int, list[str]] = Field(default_factory=dict)
    actual_levels: dict[int, list[str]] = Field(default_factory=dict)

    def by_person(self) -> dict[str, HierarchyNode]:
        return {n.person_id: n for n in self.nodes}

    def summary(self) -> dict[str, Any]:
        return {"persons_compared": len(self.nodes), **self.metrics.model_dump()}


# === HIDDEN INFLUENCERS ===

HiddenInfluenceType = Literal[
    "shadow-leader",
    "knowledge-broker",
    "connector",
    "rising-star",
    "quiet-expert",
    "cultural-anchor",
    "information-bottleneck",
]
RiskLevel = Literal["none", "low", "medium", "high", "critical"]


class InfluenceIndicator(BaseModel):
    """A triggered signal; value is normalized to [0, 1]."""

    name: str
    value: float
    weight: float
    description: str


class HiddenInfluencer(BaseModel):
    person_id: str
    department: str | None = None
    type: HiddenInfluenceType
    confidence: float
    indicators: list[InfluenceIndicator] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    formal_level: int | None = None
    influence_score: float = 0.0


class HiddenInfluencerStats(BaseModel):
    total: int = 0
    by_type: dict[str, int] = Field(default_factory=dict)
    avg_confidence: float = 0.0
    departments: dict[str, int] = Field(default_factory=dict)


class HiddenInfluencerResult(BaseModel):
    influencers: list[HiddenInfluencer] = Field(default_factory=list)
    stats: HiddenInfluencerStats = Field(default_factory=HiddenInfluencerStats)
    analyzed_count: int = 0

    def summary(self) -> dict[str, Any]:
        return {"analyzed_count": self.analyzed_count, **self.stats.model_dump()}


class PersonRisk(BaseModel):
    person_id: str
    type: HiddenInfluenceType
    confidence: float
    risk_type: str
    impact: str
    mitigation: str


class RiskAssessment(BaseModel):
    risk_level: RiskLevel = "none"
    key_person_count: int = 0
    key_person_ratio: float = 0.0
    by_type: dict[str, int] = Field(default_factory=dict)
    risks: list[PersonRisk] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)


# === PATTERNS ===

HealthLabel = Literal["healthy", "neutral", "concerning"]


class TemporalPattern(BaseModel):
    peak_hours: list[int] = Field(default_factory=list)
    peak_days: list[int] = Field(default_factory=list)
    median_response_minutes: float | None = None
    after_hours_ratio: float = 0.0
    weekend_ratio: float = 0.0
    consistency: float = 0.0


class BehavioralPattern(BaseModel):
    messages_sent: int = 0
    messages_received: int = 0
    initiation_ratio: float = 0.0
    reciprocity: float = 0.0
    broadcast_ratio: float = 0.0


class RelationalPattern(BaseModel):
    strong_ties: int = 0
    weak_ties: int = 0
    bridging_connections: int = 0
    concentration: float = 0.0
    reach: int = 0


class PatternAnomaly(BaseModel):
    type: str
    severity: Literal["low", "medium", "high"]
    description: str
    recommendation: str = ""


class PersonPattern(BaseModel):
    person_id: str
    department: str | None = None
    temporal: TemporalPattern = Field(default_factory=TemporalPattern)
    behavioral: BehavioralPattern = Field(default_factory=BehavioralPattern)
    relational: RelationalPattern = Field(default_factory=RelationalPattern)
    anomalies: list[PatternAnomaly] = Field(default_factory=list)
    health_score: float = 100.0


class OrganizationTrends(BaseModel):
    avg_after_hours_ratio: float = 0.0
    avg_response_minutes: float | None = None
    avg_reach: float = 0.0
    silo_risk: float = 0.0
    collaboration_score: float = 0.0
    avg_health_score: float = 0.0
    hourly_volume: list[int] = Field(default_factory=lambda: [0] * 24)
    health: HealthLabel = "neutral"


class PatternAlert(BaseModel):
    type: str
    severity: Literal["info", "warning", "critical"]
    message: str
    affected_people: list[str] = Field(default_factory=list)
    recommendation: str = ""


class DepartmentPattern(BaseModel):
    """Pattern rollup for one department."""

    department: str
    member_count: int
    avg_health_score: float = 0.0
    avg_reach: float = 0.0
    common_anomalies: list[str] = Field(default_factory=list)


class PatternResult(BaseModel):
    people: list[PersonPattern] = Field(default_factory=list)
    trends: OrganizationTrends = Field(default_factory=OrganizationTrends)
    alerts: list[PatternAlert] = Field(default_factory=list)
    events_analyzed: int = 0
    timeframe_days: int = 90

    def summary(self) -> dict[str, Any]:
        return {
            "people_analyzed": len(self.people),
            "events_analyzed": self.events_analyzed,
            "health": self.trends.health,
            "avg_health_score": self.trends.avg_health_score,
            "avg_after_hours_ratio": self.trends.avg_after_hours_ratio,
            "silo_risk": self.trends.silo_risk,
            "collaboration_score": self.trends.collaboration_score,
            "alerts": len(self.alerts),
        }
