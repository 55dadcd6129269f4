# src/network/influence.py — v1
"""Influence scorer: composite influence score, rank and percentile per Person.

Composite = 0.30 network + 0.20 volume + 0.15 response + 0.20 bridging
+ 0.15 temporal, every component in [0, 1]. Ranking is a stable
descending sort, so equal scores keep graph node order.
"""

from __future__ import annotations

import logging
import math
from collections import Counter

import networkx as nx
import numpy as np

from orgnet.network.centrality import calculate_centrality, centrality_from_graph
from orgnet.network.models import (
    CentralityResult,
    InfluenceComponents,
    InfluenceResult,
    InfluenceScore,
    InfluenceStats,
)
from orgnet.store.base_graph_store import BaseGraphStore

logger = logging.getLogger(__name__)

COMPONENT_WEIGHTS: dict[str, float] = {
    "network": 0.30,
    "volume": 0.20,
    "response": 0.15,
    "bridging": 0.20,
    "temporal": 0.15,
}
NETWORK_WEIGHTS = {"degree": 0.3, "betweenness": 0.3, "pagerank": 0.4}
VOLUME_WEIGHTS = {"sent": 0.3, "received": 0.3, "contacts": 0.4}
MAX_RESPONSE_RATIO = 2.0
TOP_DECILE = 0.1


def calculate_influence(
    graph: nx.DiGraph,
    centrality: CentralityResult | None = None,
) -> InfluenceResult:
    """Score, rank and summarize influence for every node.

    Args:
        graph: Directed communication graph (edge attributes ``weight`` and
            ``recent_count``; node attribute ``department``).
        centrality: Precomputed centrality. When None, centrality stored on
            the nodes is used, or computed in memory if absent.

    Returns:
        InfluenceResult with scores ordered by rank.
    """
    nodes = list(graph.nodes)
    if not nodes:
        return InfluenceResult()

    if centrality is None:
        centrality = centrality_from_graph(graph)
        if centrality is None:
            logger.info("No stored centrality on snapshot, computing in memory")
            centrality = calculate_centrality(graph)

    sent = {n: graph.out_degree(n, weight="weight") for n in nodes}
    received = {n: graph.in_degree(n, weight="weight") for n in nodes}
    contacts = {n: len(_neighbours(graph, n)) for n in nodes}
    recent = {
        n: sum(d.get("recent_count", 0) for _, _, d in graph.out_edges(n, data=True))
        + sum(d.get("recent_count", 0) for _, _, d in graph.in_edges(n, data=True))
        for n in nodes
    }

    max_sent = max(max(sent.values()), 1)
    max_received = max(max(received.values()), 1)
    max_contacts = max(max(contacts.values()), 1)
    max_recent = max(max(recent.values()), 1)

    raw: list[tuple[str, float, InfluenceComponents]] = []
    for node in nodes:
        c = centrality.scores.get(node)
        network = (
            NETWORK_WEIGHTS["degree"] * c.degree
            + NETWORK_WEIGHTS["betweenness"] * c.betweenness
            + NETWORK_WEIGHTS["pagerank"] * c.pagerank
        ) if c else 0.0
        volume = (
            VOLUME_WEIGHTS["sent"] * sent[node] / max_sent
            + VOLUME_WEIGHTS["received"] * received[node] / max_received
            + VOLUME_WEIGHTS["contacts"] * contacts[node] / max_contacts
        )
        components = InfluenceComponents(
            network=network,
            volume=volume,
            response=response_score(sent[node], received[node]),
            bridging=bridging_ratio(graph, node),
            temporal=recent[node] / max_recent,
        )
        raw.append((node, composite_score(components), components))

    # sorted() is stable: ties keep node order
    ranked = sorted(raw, key=lambda item: -item[1])
    total = len(ranked)
    scores = [
        InfluenceScore(
            person_id=node,
            department=graph.nodes[node].get("department"),
            score=score,
            rank=rank,
            percentile=(total - rank + 1) / total * 100,
            components=components,
        )
        for rank, (node, score, components) in enumerate(ranked, start=1)
    ]
    stats = _stats(scores)
    logger.info(
        "Influence scored for %d persons (mean %.3f, top %s)",
        total, stats.mean, scores[0].person_id,
    )
    return InfluenceResult(scores=scores, stats=stats)


def composite_score(components: InfluenceComponents) -> float:
    """Weighted sum of the five components."""
    return sum(
        weight * getattr(components, name)
        for name, weight in COMPONENT_WEIGHTS.items()
    )


def response_score(sent: float, received: float) -> float:
    """min(received / sent, 2) / 2 with sent floored at 1; 0 when nothing was received."""
    if received <= 0:
        return 0.0
    return min(received / max(sent, 1), MAX_RESPONSE_RATIO) / MAX_RESPONSE_RATIO


def bridging_ratio(graph: nx.DiGraph, node: str) -> float:
    """Fraction of neighbours whose known department differs from the node's."""
    department = graph.nodes[node].get("department")
    neighbours = _neighbours(graph, node)
    if not department or not neighbours:
        return 0.0
    cross = sum(
        1 for other in neighbours
        if graph.nodes[other].get("department")
        and graph.nodes[other]["department"] != department
    )
    return cross / len(neighbours)


def top_influencers(result: InfluenceResult, limit: int = 10) -> list[InfluenceScore]:
    """The `limit` highest-ranked scores."""
    return result.scores[:max(limit, 0)]


def influence_from_graph(graph: nx.DiGraph) -> InfluenceResult | None:
    """Rebuild a ranking from stored node attributes, if every node has one."""
    rows = []
    for node, data in graph.nodes(data=True):
        if data.get("influence_rank") is None or data.get("influence_score") is None:
            return None
        rows.append(InfluenceScore(
            person_id=node,
            department=data.get("department"),
            score=data["influence_score"],
            rank=data["influence_rank"],
            percentile=data.get("influence_percentile") or 0.0,
            components=InfluenceComponents(
                network=data.get("network_influence") or 0.0,
                bridging=data.get("bridging_influence") or 0.0,
            ),
        ))
    if not rows:
        return None
    rows.sort(key=lambda s: s.rank)
    return InfluenceResult(scores=rows, stats=_stats(rows))


async def store_influence(
    store: BaseGraphStore, organization_id: str, result: InfluenceResult
) -> None:
    """Write influence score, rank, percentile and the network/bridging components."""
    updates = {
        s.person_id: {
            "influence_score": s.score,
            "influence_rank": s.rank,
            "influence_percentile": s.percentile,
            "network_influence": s.components.network,
            "bridging_influence": s.components.bridging,
        }
        for s in result.scores
    }
    if updates:
        await store.write_scores_batch(organization_id, updates)


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _neighbours(graph: nx.DiGraph, node: str) -> set[str]:
    return (set(graph.predecessors(node)) | set(graph.successors(node))) - {node}


def _stats(scores: list[InfluenceScore]) -> InfluenceStats:
    if not scores:
        return InfluenceStats()
    values = np.array([s.score for s in scores])
    top_n = math.ceil(len(scores) * TOP_DECILE)
    departments = Counter(
        s.department or "Unknown"
        for s in sorted(scores, key=lambda s: s.rank)[:top_n]
    )
    return InfluenceStats(
        mean=float(values.mean()),
        median=float(np.median(values)),
        std_dev=float(values.std()),
        top_departments=sorted(departments.items(), key=lambda kv: (-kv[1], kv[0])),
    )
