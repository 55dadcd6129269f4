# src/network/centrality.py — v1
"""Centrality calculator: degree, betweenness, closeness and PageRank per Person.

Pure function over a directed communication graph. PageRank uses
nx.pagerank (scipy-backed) and is max-normalized into [0, 1]; a graph
without edges yields all-zero scores.
"""

from __future__ import annotations

import logging
from typing import Literal

import networkx as nx
import numpy as np

from orgnet.network.graph_loader import undirected_projection
from orgnet.network.models import CentralityResult, CentralityScores, CentralityStats
from orgnet.store.base_graph_store import BaseGraphStore

logger = logging.getLogger(__name__)

DEFAULT_DAMPING = 0.85
DEFAULT_MAX_ITER = 100
DEFAULT_TOL = 1e-6
RELAXED_TOL = 1e-4


def calculate_centrality(
    graph: nx.DiGraph,
    damping: float = DEFAULT_DAMPING,
    max_iter: int = DEFAULT_MAX_ITER,
    tol: float = DEFAULT_TOL,
    betweenness_sample_size: int | None = None,
    closeness_scope: Literal["reachable", "component_scaled"] = "reachable",
    seed: int | None = 42,
) -> CentralityResult:
    """Compute centrality measures for every node.

    Args:
        graph: Directed communication graph (edge attribute ``weight``).
        damping: PageRank damping factor.
        max_iter: PageRank iteration cap.
        tol: PageRank convergence tolerance.
        betweenness_sample_size: Pivot sample size for approximate
            betweenness on large graphs (None = exact).
        closeness_scope: "reachable" scores each node within its reachable
            set; "component_scaled" applies Wasserman-Faust scaling.
        seed: Random seed for betweenness sampling.

    Returns:
        CentralityResult keyed by person_id.

    Raises:
        networkx.PowerIterationFailedConvergence: If PageRank fails to
            converge even after the relaxed retry.
    """
    n = graph.number_of_nodes()
    if n == 0:
        return CentralityResult()

    working = graph.copy()
    working.remove_edges_from(list(nx.selfloop_edges(working)))

    degree, in_degree, out_degree = _degree_measures(working)
    betweenness = _betweenness(working, betweenness_sample_size, seed)
    closeness = nx.closeness_centrality(
        undirected_projection(working),
        wf_improved=(closeness_scope == "component_scaled"),
    )
    pagerank, retried = _pagerank(working, damping, max_iter, tol)

    scores = {
        node: CentralityScores(
            person_id=node,
            degree=degree[node],
            in_degree=in_degree[node],
            out_degree=out_degree[node],
            betweenness=betweenness.get(node, 0.0),
            closeness=closeness.get(node, 0.0),
            pagerank=pagerank.get(node, 0.0),
        )
        for node in working.nodes
    }
    stats = _stats(list(scores.values()))
    logger.info(
        "Centrality computed for %d persons (avg pagerank %.3f, max betweenness %.3f)",
        n, stats.avg_pagerank, stats.max_betweenness,
    )
    return CentralityResult(scores=scores, stats=stats, pagerank_retried=retried)


async def store_centrality(
    store: BaseGraphStore, organization_id: str, result: CentralityResult
) -> None:
    """Write centrality fields (and only those) for every scored Person."""
    updates = {
        pid: {
            "degree_centrality": s.degree,
            "in_degree_centrality": s.in_degree,
            "out_degree_centrality": s.out_degree,
            "betweenness_centrality": s.betweenness,
            "closeness_centrality": s.closeness,
            "pagerank": s.pagerank,
        }
        for pid, s in result.scores.items()
    }
    if updates:
        await store.write_scores_batch(organization_id, updates)


def centrality_from_graph(graph: nx.DiGraph) -> CentralityResult | None:
    """Rebuild a CentralityResult from stored node attributes, if all are present."""
    scores: dict[str, CentralityScores] = {}
    for node, data in graph.nodes(data=True):
        values = (
            data.get("degree_centrality"),
            data.get("betweenness_centrality"),
            data.get("pagerank"),
        )
        if any(v is None for v in values):
            return None
        scores[node] = CentralityScores(
            person_id=node,
            degree=data["degree_centrality"],
            in_degree=data.get("in_degree_centrality") or 0.0,
            out_degree=data.get("out_degree_centrality") or 0.0,
            betweenness=data["betweenness_centrality"],
            closeness=data.get("closeness_centrality") or 0.0,
            pagerank=data["pagerank"],
        )
    if not scores:
        return None
    return CentralityResult(scores=scores, stats=_stats(list(scores.values())))


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _degree_measures(
    graph: nx.DiGraph,
) -> tuple[dict[str, float], dict[str, float], dict[str, float]]:
    """Distinct-neighbour degree plus in/out degree, each divided by N-1."""
    n = graph.number_of_nodes()
    scale = 1.0 / (n - 1) if n > 1 else 0.0
    degree, in_degree, out_degree = {}, {}, {}
    for node in graph.nodes:
        neighbours = set(graph.predecessors(node)) | set(graph.successors(node))
        degree[node] = len(neighbours) * scale
        in_degree[node] = graph.in_degree(node) * scale
        out_degree[node] = graph.out_degree(node) * scale
    return degree, in_degree, out_degree


def _betweenness(
    graph: nx.DiGraph, sample_size: int | None, seed: int | None
) -> dict[str, float]:
    n = graph.number_of_nodes()
    k = sample_size if sample_size is not None and sample_size < n else None
    if k is not None:
        logger.debug("Approximating betweenness with %d of %d pivots", k, n)
    return nx.betweenness_centrality(graph, k=k, normalized=True, seed=seed)


def _pagerank(
    graph: nx.DiGraph, damping: float, max_iter: int, tol: float
) -> tuple[dict[str, float], bool]:
    """Weighted PageRank, zero for edgeless nodes, max-normalized."""
    if graph.number_of_edges() == 0:
        return {node: 0.0 for node in graph.nodes}, False

    retried = False
    try:
        raw = nx.pagerank(graph, alpha=damping, max_iter=max_iter, tol=tol, weight="weight")
    except nx.PowerIterationFailedConvergence:
        logger.warning("PageRank failed to converge in %d iterations, retrying", max_iter)
        retried = True
        raw = nx.pagerank(
            graph, alpha=damping, max_iter=max_iter * 2, tol=RELAXED_TOL, weight="weight",
        )

    scores = {
        node: (raw[node] if graph.degree(node) > 0 else 0.0)
        for node in graph.nodes
    }
    max_score = max(scores.values())
    if max_score > 0:
        scores = {k: v / max_score for k, v in scores.items()}
    return scores, retried


def _stats(scores: list[CentralityScores]) -> CentralityStats:
    if not scores:
        return CentralityStats()
    degree = np.array([s.degree for s in scores])
    betweenness = np.array([s.betweenness for s in scores])
    closeness = np.array([s.closeness for s in scores])
    pagerank = np.array([s.pagerank for s in scores])
    return CentralityStats(
        avg_degree=float(degree.mean()),
        avg_betweenness=float(betweenness.mean()),
        avg_closeness=float(closeness.mean()),
        avg_pagerank=float(pagerank.mean()),
        max_degree=float(degree.max()),
        max_betweenness=float(betweenness.max()),
        max_closeness=float(closeness.max()),
        max_pagerank=float(pagerank.max()),
    )
