# src/analysis/insights.py — v1
"""Insight emission: turn stage results into structured, deduplicated insights.

Rules run after all stages. Each rule inspects one stage result and emits
zero or more InsightDrafts. Drafts are saved through save_insight, which
updates an insight of the same (organization, type, entity) created within
the dedup window instead of inserting a duplicate.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from orgnet.core.models import Insight, Severity, utc_now
from orgnet.network.models import (
    CommunityResult,
    HiddenInfluencerResult,
    HierarchyResult,
    PatternResult,
    RiskAssessment,
)
from orgnet.store.base_insight_store import BaseInsightStore

logger = logging.getLogger(__name__)

DEFAULT_DEDUP_WINDOW_DAYS = 7

ALERT_SEVERITY: dict[str, Severity] = {
    "info": "low",
    "warning": "medium",
    "critical": "critical",
}
ALERT_SCORE: dict[str, float] = {"critical": 90, "warning": 60, "info": 30}


class InsightDraft(BaseModel):
    """An insight before persistence (no id or timestamps yet)."""

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


class InsightThresholds(BaseModel):
    """Reportability thresholds (mirrors the corresponding settings)."""

    low_modularity: float = 0.3
    isolated_nodes: int = 5
    alignment: float = 0.5
    shadow_leaders: int = 3
    key_person_confidence: float = 0.8
    max_person_insights: int = 5


def generate_insights(
    organization_id: str,
    communities: CommunityResult | None = None,
    hierarchy: HierarchyResult | None = None,
    hidden: HiddenInfluencerResult | None = None,
    risk: RiskAssessment | None = None,
    patterns: PatternResult | None = None,
    thresholds: InsightThresholds | None = None,
) -> list[InsightDraft]:
    """Apply every rule to the available stage results.

    Args:
        organization_id: Organization the insights are about.
        communities: Community detection result, if that stage succeeded.
        hierarchy: Hierarchy comparison, if that stage succeeded.
        hidden: Hidden influencer detection, if that stage succeeded.
        risk: Risk assessment of the hidden influencer result.
        patterns: Pattern analysis, if that stage succeeded.
        thresholds: Reportability thresholds (defaults when None).

    Returns:
        Drafts in rule order.
    """
    t = thresholds or InsightThresholds()
    drafts: list[InsightDraft] = []
    if communities is not None:
        drafts.extend(_community_insights(organization_id, communities, t))
    if hierarchy is not None:
        drafts.extend(_hierarchy_insights(organization_id, hierarchy, t))
    if hidden is not None:
        drafts.extend(_hidden_influencer_insights(organization_id, hidden, risk, t))
    if patterns is not None:
        drafts.extend(_pattern_insights(organization_id, patterns))
    return drafts


async def save_insight(
    store: BaseInsightStore,
    organization_id: str,
    draft: InsightDraft,
    dedup_window_days: int = DEFAULT_DEDUP_WINDOW_DAYS,
    now: datetime | None = None,
) -> tuple[Insight, bool]:
    """Insert a draft, or update the recent insight it duplicates.

    Returns:
        (stored insight, True if an existing insight was updated).
    """
    now = now or utc_now()
    existing = await store.find_recent_insight(
        organization_id, draft.type, draft.entity_id, dedup_window_days, now=now,
    )
    if existing is not None:
        updated = await store.update_insight(existing.insight_id, {
            "severity": draft.severity,
            "title": draft.title,
            "description": draft.description,
            "score": draft.score,
            "metadata": draft.metadata,
            "recommended_actions": draft.recommended_actions,
            "updated_at": now,
        })
        return updated, True

    insight = Insight(
        insight_id=f"ins_{uuid.uuid4().hex}",
        organization_id=organization_id,
        created_at=now,
        updated_at=now,
        **draft.model_dump(),
    )
    await store.insert_insight(insight)
    return insight, False


async def save_insights(
    store: BaseInsightStore,
    organization_id: str,
    drafts: list[InsightDraft],
    dedup_window_days: int = DEFAULT_DEDUP_WINDOW_DAYS,
    now: datetime | None = None,
) -> tuple[int, int]:
    """Save every draft; a failed write is logged and counted, never raised.

    Returns:
        (saved count, failed count).
    """
    saved = failed = 0
    for draft in drafts:
        try:
            await save_insight(store, organization_id, draft, dedup_window_days, now)
            saved += 1
        except Exception:
            logger.exception("Failed to save insight %s/%s", draft.type, draft.entity_id)
            failed += 1
    return saved, failed


# ------------------------------------------------------------------
# Rules
# ------------------------------------------------------------------


def _community_insights(
    org: str, result: CommunityResult, t: InsightThresholds
) -> list[InsightDraft]:
    drafts = []
    if result.community_count > 0 and result.modularity < t.low_modularity:
        drafts.append(InsightDraft(
            type="weak_community_structure",
            category="collaboration",
            severity="medium",
            title="Weak team structure detected",
            description=(
                f"Network modularity is {result.modularity:.2f}, indicating teams are "
                "not clearly separated and collaboration boundaries are blurred."
            ),
            entity_id=org,
            score=(1 - result.modularity) * 100,
            metadata={
                "modularity": result.modularity,
                "communityCount": result.community_count,
            },
            recommended_actions=[
                "Clarify team responsibilities and ownership",
                "Review how work is split across teams",
            ],
        ))
    if result.isolated_count > t.isolated_nodes:
        drafts.append(InsightDraft(
            type="isolated_employees",
            category="engagement",
            severity="medium",
            title=f"{result.isolated_count} employees are disconnected from the network",
            description=(
                f"{result.isolated_count} people have no meaningful communication ties "
                "to any team."
            ),
            entity_id=org,
            score=min(result.isolated_count * 10, 100),
            metadata={
                "isolatedCount": result.isolated_count,
                "isolatedPeople": result.isolated_nodes[:10],
            },
            recommended_actions=[
                "Check in with isolated employees",
                "Pair them with mentors or buddies",
            ],
        ))
    return drafts


def _hierarchy_insights(
    org: str, result: HierarchyResult, t: InsightThresholds
) -> list[InsightDraft]:
    m = result.metrics
    drafts = []
    if m.alignment_score < t.alignment:
        drafts.append(InsightDraft(
            type="hierarchy_misalignment",
            category="structure",
            severity="high",
            title="Formal hierarchy diverges from actual influence",
            description=(
                f"Only {round(m.alignment_score * 100)}% of people hold an influence level "
                "consistent with their formal position."
            ),
            entity_id=org,
            score=(1 - m.alignment_score) * 100,
            metadata={
                "alignmentScore": m.alignment_score,
                "shadowLeaders": m.shadow_leader_count,
                "underLeveraged": m.under_leveraged_count,
            },
            recommended_actions=[
                "Review role definitions against actual responsibilities",
                "Consider formal recognition for informal leaders",
            ],
        ))
    if m.shadow_leader_count > t.shadow_leaders:
        drafts.append(InsightDraft(
            type="shadow_leaders_detected",
            category="structure",
            severity="medium",
            title=f"{m.shadow_leader_count} shadow leaders identified",
            description=(
                "Several people exert influence well above their formal position."
            ),
            entity_id=org,
            score=min(m.shadow_leader_count * 15, 100),
            metadata={
                "shadowLeaderCount": m.shadow_leader_count,
                "shadowLeaders": [
                    n.person_id for n in result.nodes
                    if n.discrepancy_type == "shadow-leader"
                ][:10],
            },
            recommended_actions=[
                "Engage shadow leaders in change initiatives",
                "Evaluate them for formal leadership roles",
            ],
        ))
    return drafts


def _hidden_influencer_insights(
    org: str,
    result: HiddenInfluencerResult,
    risk: RiskAssessment | None,
    t: InsightThresholds,
) -> list[InsightDraft]:
    drafts = []
    if risk is not None and risk.risk_level in ("high", "critical"):
        critical = risk.risk_level == "critical"
        drafts.append(InsightDraft(
            type="hidden_influence_risk",
            category="risk",
            severity="critical" if critical else "high",
            title="Organization depends on hidden influencers",
            description=(
                f"{risk.key_person_count} key people carry influence that the formal "
                "structure does not reflect."
            ),
            entity_id=org,
            score=90 if critical else 70,
            metadata={
                "riskLevel": risk.risk_level,
                "keyPersonCount": risk.key_person_count,
                "byType": risk.by_type,
            },
            recommended_actions=list(risk.recommendations),
        ))

    strong = [h for h in result.influencers if h.confidence > t.key_person_confidence]
    for h in strong[:t.max_person_insights]:
        drafts.append(InsightDraft(
            type="hidden_influencer",
            category="people",
            severity="medium",
            title=f"Hidden influencer: {h.type.replace('-', ' ')}",
            description=(
                f"{h.person_id} shows {len(h.indicators)} hidden influence indicator(s) "
                f"with confidence {h.confidence:.2f}."
            ),
            entity_type="person",
            entity_id=h.person_id,
            score=h.confidence * 100,
            metadata={
                "type": h.type,
                "confidence": h.confidence,
                "department": h.department,
                "indicators": [i.name for i in h.indicators],
            },
            recommended_actions=list(h.recommendations),
        ))
    return drafts


def _pattern_insights(org: str, result: PatternResult) -> list[InsightDraft]:
    drafts = []
    for alert in result.alerts:
        drafts.append(InsightDraft(
            type=f"pattern_{alert.type}",
            category="communication",
            severity=ALERT_SEVERITY[alert.severity],
            title=alert.message,
            description=alert.message,
            entity_id=org,
            score=ALERT_SCORE[alert.severity],
            metadata={
                "type": alert.type,
                "affectedCount": len(alert.affected_people),
                "affectedPeople": alert.affected_people[:10],
            },
            recommended_actions=[alert.recommendation] if alert.recommendation else [],
        ))

    trends = result.trends
    if trends.health == "concerning":
        drafts.append(InsightDraft(
            type="communication_health_concern",
            category="wellbeing",
            severity="high",
            title="Communication health is concerning",
            description=(
                f"After-hours communication ratio is {round(trends.avg_after_hours_ratio * 100)}% "
                f"and {round(trends.silo_risk * 100)}% of people have no cross-department ties."
            ),
            entity_id=org,
            score=80,
            metadata={
                "health": trends.health,
                "afterHoursRatio": trends.avg_after_hours_ratio,
                "siloRisk": trends.silo_risk,
                "collaborationScore": trends.collaboration_score,
            },
            recommended_actions=[
                "Review workload distribution",
                "Implement work-life balance initiatives",
                "Strengthen cross-team collaboration",
            ],
        ))
    return drafts
