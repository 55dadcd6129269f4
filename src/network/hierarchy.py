# src/network/hierarchy.py — v1
"""Hierarchy comparator: formal (reporting lines) vs. actual (influence) levels.

Levels run from 1 (top leadership) to 5 (participants). The formal level is
derived from manager links with provisional, configurable thresholds; the
actual level is the influence-rank quintile. gap = formal - actual, so a
positive gap means a person acts above their formal position.
"""

from __future__ import annotations

import logging
import math
from collections import Counter

import networkx as nx

from orgnet.network.influence import calculate_influence, influence_from_graph
from orgnet.network.models import (
    HierarchyMetrics,
    HierarchyNode,
    HierarchyResult,
    InfluenceResult,
)
from orgnet.store.base_graph_store import BaseGraphStore

logger = logging.getLogger(__name__)

LEVEL_LABELS: dict[int, str] = {
    1: "Top Leadership",
    2: "Senior Leaders",
    3: "Key Influencers",
    4: "Contributors",
    5: "Participants",
}
LEVEL_COUNT = 5


class InsufficientHierarchyDataError(Exception):
    """Raised when the organization has no usable manager links."""


def compare_hierarchy(
    graph: nx.DiGraph,
    reporting_lines: dict[str, str],
    influence: InfluenceResult | None = None,
    senior_direct_reports: int = 10,
    shadow_gap: int = 2,
) -> HierarchyResult:
    """Compare each Person's formal level with their influence level.

    Args:
        graph: Directed communication graph; its nodes are the Persons compared.
        reporting_lines: report_id -> manager_id.
        influence: Precomputed influence ranking. When None, ranks stored on
            the nodes are used, or computed in memory if absent.
        senior_direct_reports: Direct-report count above which a manager is
            a senior leader.
        shadow_gap: Minimum positive gap classified as shadow-leader.

    Returns:
        HierarchyResult with per-person levels, metrics and groupings.

    Raises:
        InsufficientHierarchyDataError: If no manager link connects two
            Persons of the graph.
    """
    lines = {
        report: manager for report, manager in reporting_lines.items()
        if report in graph and manager in graph and report != manager
    }
    if not lines:
        raise InsufficientHierarchyDataError(
            "No manager links between people in this organization"
        )

    if influence is None:
        influence = influence_from_graph(graph) or calculate_influence(graph)
    ranks = {s.person_id: s.rank for s in influence.scores}
    total = len(graph)

    direct_reports = Counter(lines.values())
    nodes: list[HierarchyNode] = []
    for person_id in graph.nodes:
        manager = lines.get(person_id)
        reports = direct_reports.get(person_id, 0)
        formal = formal_level(manager is not None, reports, senior_direct_reports)
        actual = actual_level(ranks.get(person_id, total), total)
        gap = formal - actual
        nodes.append(HierarchyNode(
            person_id=person_id,
            formal_level=formal,
            actual_level=actual,
            direct_reports=reports,
            manager_id=manager,
            gap=gap,
            discrepancy_type=classify_gap(gap, shadow_gap),
        ))

    result = HierarchyResult(
        nodes=nodes,
        metrics=_metrics(nodes),
        formal_levels=_group(nodes, "formal_level"),
        actual_levels=_group(nodes, "actual_level"),
    )
    logger.info(
        "Hierarchy compared for %d persons: alignment %.2f, %d shadow leaders",
        len(nodes), result.metrics.alignment_score, result.metrics.shadow_leader_count,
    )
    return result


def formal_level(has_manager: bool, direct_reports: int, senior_direct_reports: int = 10) -> int:
    """Formal level from the reporting structure."""
    if not has_manager and direct_reports > 0:
        return 1
    if direct_reports > senior_direct_reports:
        return 2
    if direct_reports > 0:
        return 3
    if not has_manager:
        return 4
    return 5


def actual_level(rank: int, total: int) -> int:
    """Influence quintile: ceil(rank / total * 5), clamped to 1..5."""
    if total <= 0:
        return LEVEL_COUNT
    return min(max(math.ceil(rank / total * LEVEL_COUNT), 1), LEVEL_COUNT)


def classify_gap(gap: int, shadow_gap: int = 2) -> str:
    if gap >= shadow_gap:
        return "shadow-leader"
    if gap >= 1:
        return "over-performer"
    if gap <= -2:
        return "under-leveraged"
    return "aligned"


async def store_hierarchy(
    store: BaseGraphStore, organization_id: str, result: HierarchyResult
) -> None:
    """Write the formal level and gap of every compared Person."""
    updates = {
        n.person_id: {"hierarchy_level": n.formal_level, "hierarchy_gap": n.gap}
        for n in result.nodes
    }
    if updates:
        await store.write_scores_batch(organization_id, updates)


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _metrics(nodes: list[HierarchyNode]) -> HierarchyMetrics:
    if not nodes:
        return HierarchyMetrics()
    types = Counter(n.discrepancy_type for n in nodes)
    return HierarchyMetrics(
        alignment_score=sum(1 for n in nodes if abs(n.gap) <= 1) / len(nodes),
        shadow_leader_count=types.get("shadow-leader", 0),
        under_leveraged_count=types.get("under-leveraged", 0),
        over_performer_count=types.get("over-performer", 0),
        avg_discrepancy=sum(abs(n.gap) for n in nodes) / len(nodes),
    )


def _group(nodes: list[HierarchyNode], attr: str) -> dict[int, list[str]]:
    groups: dict[int, list[str]] = {}
    for n in nodes:
        groups.setdefault(getattr(n, attr), []).append(n.person_id)
    return {level: sorted(ids) for level, ids in sorted(groups.items())}
