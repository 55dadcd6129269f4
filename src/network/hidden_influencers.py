# src/network/hidden_influencers.py — v1
"""Hidden influencer detection and key-person risk assessment.

A hidden influencer is someone whose informal weight in the network exceeds
what their formal position suggests. Each person is profiled, indicators
are evaluated (value normalized to [0, 1], fixed weight), and the clamped
weighted sum is the confidence. People below min_confidence are dropped.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass

import networkx as nx

from orgnet.network.community import communities_from_graph
from orgnet.network.influence import calculate_influence, influence_from_graph
from orgnet.network.models import (
    CommunityResult,
    HiddenInfluencer,
    HiddenInfluencerResult,
    HiddenInfluencerStats,
    HiddenInfluenceType,
    HierarchyResult,
    InfluenceIndicator,
    InfluenceResult,
    PersonRisk,
    RiskAssessment,
)
from orgnet.store.base_graph_store import BaseGraphStore

logger = logging.getLogger(__name__)

RECOMMENDATIONS: dict[str, list[str]] = {
    "shadow-leader": [
        "Consider for formal leadership role or project lead",
        "Leverage their informal influence for change initiatives",
    ],
    "knowledge-broker": [
        "Recognize as key information conduit",
        "Include in cross-functional initiatives",
    ],
    "connector": [
        "Leverage for breaking down silos",
        "Consider for liaison or coordinator roles",
    ],
    "rising-star": [
        "Fast-track for development opportunities",
        "Assign stretch projects to accelerate growth",
    ],
    "cultural-anchor": [
        "Consult for cultural change initiatives",
        "Recognize as informal culture keeper",
    ],
    "quiet-expert": [
        "Increase visibility through presentations or mentoring",
        "Document their expertise for knowledge sharing",
    ],
    "information-bottleneck": [
        "Map the information flows that route through this person",
        "Open redundant communication paths between the groups they connect",
    ],
}

# type -> (risk type, impact, mitigation)
RISK_PROFILES: dict[str, tuple[str, str, str]] = {
    "shadow-leader": (
        "Leadership Vacuum Risk",
        "Departure could leave informal leadership void",
        "Formalize role or develop succession plan",
    ),
    "knowledge-broker": (
        "Knowledge Concentration Risk",
        "Critical information flow dependency",
        "Document knowledge and create backup channels",
    ),
    "connector": (
        "Silo Creation Risk",
        "Cross-functional coordination could break down",
        "Establish formal coordination mechanisms",
    ),
    "quiet-expert": (
        "Expertise Loss Risk",
        "Critical technical knowledge could be lost",
        "Knowledge transfer and documentation program",
    ),
    "information-bottleneck": (
        "Single Point of Failure Risk",
        "Information flow between groups stalls without them",
        "Create redundant communication channels",
    ),
}
DEFAULT_RISK_PROFILE = (
    "Influence Dependency Risk",
    "Organizational effectiveness could be impacted",
    "Distribute influence more broadly",
)

BOTTLENECK_SHARE_OF_MAX = 0.8
AUTHORITY_MAX_LEVEL = 3


@dataclass
class PersonProfile:
    """Raw per-person signals used to evaluate indicators."""

    person_id: str
    department: str | None = None
    influence_score: float = 0.0
    network_influence: float = 0.0
    bridging_influence: float = 0.0
    formal_level: int | None = None
    gap: int | None = None
    discrepancy_type: str | None = None
    communities_touched: int = 0
    response_rate: float = 0.0
    initiation_rate: float = 0.0
    cross_dept_ratio: float = 0.0
    growth: float = 0.0
    betweenness: float = 0.0
    max_betweenness: float = 0.0

    @property
    def lacks_authority(self) -> bool:
        """True unless the person is known to hold a formal leadership level."""
        return self.formal_level is None or self.formal_level > AUTHORITY_MAX_LEVEL


def detect_hidden_influencers(
    graph: nx.DiGraph,
    influence: InfluenceResult | None = None,
    hierarchy: HierarchyResult | None = None,
    communities: CommunityResult | dict[str, str | None] | None = None,
    min_confidence: float = 0.6,
    include_types: list[HiddenInfluenceType] | None = None,
) -> HiddenInfluencerResult:
    """Find people whose informal influence outweighs their formal role.

    Args:
        graph: Directed communication graph.
        influence: Influence ranking; stored or in-memory ranking when None.
        hierarchy: Hierarchy comparison; position-based indicators are
            skipped when None.
        communities: Community result or assignments; the stored
            ``community_id`` labels are used when None.
        min_confidence: Minimum confidence for a person to be reported.
        include_types: Report only these influence types (all when None).

    Returns:
        HiddenInfluencerResult ordered by confidence, highest first.
    """
    profiles = build_profiles(graph, influence, hierarchy, communities)
    found: list[HiddenInfluencer] = []
    for profile in profiles:
        indicators = evaluate_indicators(profile)
        confidence = confidence_score(indicators)
        if confidence < min_confidence:
            continue
        influence_type = classify(profile, indicators)
        if include_types is not None and influence_type not in include_types:
            continue
        found.append(HiddenInfluencer(
            person_id=profile.person_id,
            department=profile.department,
            type=influence_type,
            confidence=confidence,
            indicators=indicators,
            recommendations=list(RECOMMENDATIONS[influence_type]),
            formal_level=profile.formal_level,
            influence_score=profile.influence_score,
        ))

    found.sort(key=lambda h: -h.confidence)
    result = HiddenInfluencerResult(
        influencers=found,
        stats=_stats(found),
        analyzed_count=len(profiles),
    )
    logger.info(
        "Hidden influencers: %d of %d persons above confidence %.2f",
        len(found), len(profiles), min_confidence,
    )
    return result


def build_profiles(
    graph: nx.DiGraph,
    influence: InfluenceResult | None = None,
    hierarchy: HierarchyResult | None = None,
    communities: CommunityResult | dict[str, str | None] | None = None,
) -> list[PersonProfile]:
    """Gather per-person signals from the graph and upstream stage results."""
    if graph.number_of_nodes() == 0:
        return []
    if influence is None:
        influence = influence_from_graph(graph) or calculate_influence(graph)
    scores = influence.by_person()
    hierarchy_nodes = hierarchy.by_person() if hierarchy else {}

    if isinstance(communities, CommunityResult):
        assignments = communities.assignments
    elif communities is None:
        assignments = communities_from_graph(graph) or {}
    else:
        assignments = communities

    betweenness = {
        n: graph.nodes[n].get("betweenness_centrality") or 0.0 for n in graph.nodes
    }
    if not any(betweenness.values()) and graph.number_of_edges() > 0:
        betweenness = nx.betweenness_centrality(graph, normalized=True)
    max_betweenness = max(betweenness.values(), default=0.0)

    profiles = []
    for node in graph.nodes:
        score = scores.get(node)
        h = hierarchy_nodes.get(node)
        sent = graph.out_degree(node, weight="weight")
        received = graph.in_degree(node, weight="weight")
        recent = sum(d.get("recent_count", 0) for _, _, d in graph.out_edges(node, data=True))
        older = max(sent - recent, 1)

        neighbours = (set(graph.predecessors(node)) | set(graph.successors(node))) - {node}
        touched = {assignments.get(nb) for nb in neighbours} | {assignments.get(node)}
        touched.discard(None)

        profiles.append(PersonProfile(
            person_id=node,
            department=graph.nodes[node].get("department"),
            influence_score=score.score if score else 0.0,
            network_influence=score.components.network if score else 0.0,
            bridging_influence=score.components.bridging if score else 0.0,
            formal_level=h.formal_level if h else None,
            gap=h.gap if h else None,
            discrepancy_type=h.discrepancy_type if h else None,
            communities_touched=len(touched),
            response_rate=received / sent if sent > 0 else 0.0,
            initiation_rate=sent / (sent + received) if sent + received > 0 else 0.0,
            cross_dept_ratio=_cross_dept_ratio(graph, node),
            growth=(recent - older) / older,
            betweenness=betweenness.get(node, 0.0),
            max_betweenness=max_betweenness,
        ))
    return profiles


def evaluate_indicators(p: PersonProfile) -> list[InfluenceIndicator]:
    """Triggered indicators for one person, values normalized to [0, 1]."""
    indicators: list[InfluenceIndicator] = []

    if p.gap is not None and p.gap > 1:
        indicators.append(InfluenceIndicator(
            name="position-gap",
            value=min(p.gap / 3, 1.0),
            weight=0.30,
            description=f"Influence level {p.gap} levels higher than formal position",
        ))
    if p.bridging_influence > 0.5:
        indicators.append(InfluenceIndicator(
            name="bridging-influence",
            value=min(p.bridging_influence, 1.0),
            weight=0.25,
            description="Strong cross-functional connections",
        ))
    if p.communities_touched > 2:
        indicators.append(InfluenceIndicator(
            name="community-bridge",
            value=min(p.communities_touched / 4, 1.0),
            weight=0.20,
            description=f"Connects {p.communities_touched} distinct communities",
        ))
    if p.response_rate > 1.5:
        indicators.append(InfluenceIndicator(
            name="sought-after",
            value=min(p.response_rate / 2, 1.0),
            weight=0.15,
            description="Receives significantly more messages than they send",
        ))
    if p.cross_dept_ratio > 0.4:
        indicators.append(InfluenceIndicator(
            name="cross-dept-reach",
            value=min(p.cross_dept_ratio, 1.0),
            weight=0.15,
            description=f"{round(p.cross_dept_ratio * 100)}% of contacts are cross-departmental",
        ))
    if p.growth > 0.3:
        indicators.append(InfluenceIndicator(
            name="growth-trajectory",
            value=min(p.growth, 1.0),
            weight=0.10,
            description=f"{round(p.growth * 100)}% increase in recent activity",
        ))
    if p.network_influence > 0.6 and p.lacks_authority:
        indicators.append(InfluenceIndicator(
            name="informal-centrality",
            value=min(p.network_influence, 1.0),
            weight=0.25,
            description="High network centrality without leadership title",
        ))
    if (
        p.max_betweenness > 0
        and p.betweenness >= BOTTLENECK_SHARE_OF_MAX * p.max_betweenness
        and p.lacks_authority
    ):
        indicators.append(InfluenceIndicator(
            name="information-bottleneck",
            value=min(p.betweenness / p.max_betweenness, 1.0),
            weight=0.20,
            description="Sits on most shortest paths between colleagues without formal authority",
        ))
    return indicators


def confidence_score(indicators: list[InfluenceIndicator]) -> float:
    """Weighted sum of indicator values, clamped to [0, 1]."""
    total = sum(i.value * i.weight for i in indicators)
    return min(max(total, 0.0), 1.0)


def classify(p: PersonProfile, indicators: list[InfluenceIndicator]) -> str:
    """Pick the hidden influence type by priority."""
    names = {i.name for i in indicators}
    has_gap = "position-gap" in names

    if p.gap is not None and p.gap > 2 and p.bridging_influence > 0.6:
        return "shadow-leader"
    if p.communities_touched > 2 and p.cross_dept_ratio > 0.5:
        return "connector"
    if "information-bottleneck" in names and not has_gap:
        return "information-bottleneck"
    if "bridging-influence" in names and not has_gap:
        return "knowledge-broker"
    if p.growth > 0.5:
        return "rising-star"
    if p.response_rate > 2 and p.initiation_rate < 0.3:
        return "quiet-expert"
    if p.discrepancy_type == "over-performer":
        return "cultural-anchor"
    return "shadow-leader"


def influencers_in_department(
    result: HiddenInfluencerResult, department: str
) -> list[HiddenInfluencer]:
    """Hidden influencers of one department, in confidence order."""
    return [h for h in result.influencers if h.department == department]


def analyze_risk(
    result: HiddenInfluencerResult, key_person_confidence: float = 0.8
) -> RiskAssessment:
    """Assess organizational dependency on hidden influencers.

    Key persons are those above key_person_confidence. The ratio is taken
    over everyone analyzed.

    Args:
        result: Detection result.
        key_person_confidence: Confidence above which a person is a key person.

    Returns:
        RiskAssessment with level, per-person risks and recommendations.
    """
    if not result.influencers:
        return RiskAssessment(
            risk_level="none",
            recommendations=["No hidden influencers detected; keep monitoring each cycle"],
        )

    key = [h for h in result.influencers if h.confidence > key_person_confidence]
    ratio = len(key) / result.analyzed_count if result.analyzed_count else 0.0
    risks = []
    for h in key:
        risk_type, impact, mitigation = RISK_PROFILES.get(h.type, DEFAULT_RISK_PROFILE)
        risks.append(PersonRisk(
            person_id=h.person_id,
            type=h.type,
            confidence=h.confidence,
            risk_type=risk_type,
            impact=impact,
            mitigation=mitigation,
        ))

    if len(key) > 5 or ratio > 0.3:
        level = "critical"
    elif len(key) > 3 or ratio > 0.2:
        level = "high"
    elif len(key) > 1:
        level = "medium"
    else:
        level = "low"

    by_type = result.stats.by_type
    recommendations: list[str] = []
    if level in ("critical", "high"):
        recommendations.append("Conduct immediate succession planning for key hidden influencers")
        recommendations.append("Implement knowledge documentation and transfer programs")
    if by_type.get("shadow-leader", 0) > 2:
        recommendations.append(
            "Review organizational structure - informal leadership may indicate formal gaps"
        )
    if by_type.get("connector", 0) > 2:
        recommendations.append("Strengthen formal cross-functional coordination mechanisms")
    if by_type.get("quiet-expert", 0) > 2:
        recommendations.append(
            "Increase visibility of technical experts through knowledge sharing programs"
        )
    if by_type.get("information-bottleneck", 0) > 0:
        recommendations.append("Reduce single points of failure in cross-team information flow")

    return RiskAssessment(
        risk_level=level,
        key_person_count=len(key),
        key_person_ratio=ratio,
        by_type=dict(by_type),
        risks=risks,
        recommendations=recommendations,
    )


async def store_hidden_influencers(
    store: BaseGraphStore,
    organization_id: str,
    result: HiddenInfluencerResult,
    person_ids: list[str],
) -> None:
    """Write type/confidence for detected people and clear it for everyone else."""
    detected = {h.person_id: h for h in result.influencers}
    updates = {}
    for pid in person_ids:
        h = detected.get(pid)
        updates[pid] = {
            "hidden_influence_type": h.type if h else None,
            "hidden_influence_confidence": h.confidence if h else None,
        }
    if updates:
        await store.write_scores_batch(organization_id, updates)


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _cross_dept_ratio(graph: nx.DiGraph, node: str) -> float:
    """Share of outgoing contacts in a different known department."""
    department = graph.nodes[node].get("department")
    contacts = [t for t in graph.successors(node) if t != node]
    if not department or not contacts:
        return 0.0
    cross = sum(
        1 for t in contacts
        if graph.nodes[t].get("department")
        and graph.nodes[t]["department"] != department
    )
    return cross / len(contacts)


def _stats(found: list[HiddenInfluencer]) -> HiddenInfluencerStats:
    if not found:
        return HiddenInfluencerStats()
    return HiddenInfluencerStats(
        total=len(found),
        by_type=dict(Counter(h.type for h in found)),
        avg_confidence=sum(h.confidence for h in found) / len(found),
        departments=dict(Counter(h.department or "Unknown" for h in found)),
    )
