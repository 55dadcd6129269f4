# src/network/community.py — v1
"""Community detection via Louvain on the undirected weighted projection.

Pure function: takes a directed communication graph, returns a
CommunityResult. Does NOT modify the input graph.

Louvain levels are bounded by max_iterations and the level with the highest
modularity is kept. Communities below min_community_size are merged into the
neighbouring community they share most weight with, or left unlabeled.
Community ids (comm_000, comm_001, ...) are ordered by size, largest first.
"""

from __future__ import annotations

import logging
from collections import Counter
from itertools import islice
from typing import Literal

import networkx as nx

from orgnet.network.graph_loader import undirected_projection
from orgnet.network.models import Community, CommunityMember, CommunityResult
from orgnet.store.base_graph_store import BaseGraphStore

logger = logging.getLogger(__name__)

HUB_MIN_INTERNAL = 5
BRIDGE_MIN_EXTERNAL = 3
KEY_MEMBER_COUNT = 3


def detect_communities(
    graph: nx.DiGraph,
    min_community_size: int = 2,
    max_iterations: int = 10,
    small_community_strategy: Literal["merge", "isolate"] = "merge",
    resolution: float = 1.0,
    seed: int | None = 42,
) -> CommunityResult:
    """Partition Persons into communities.

    Args:
        graph: Directed communication graph.
        min_community_size: Minimum members per community.
        max_iterations: Maximum Louvain levels to evaluate.
        small_community_strategy: "merge" folds undersized communities into
            their most connected neighbour; "isolate" unlabels their members.
        resolution: Louvain resolution (higher = more communities).
        seed: Random seed for reproducibility (None = non-deterministic).

    Returns:
        CommunityResult with assignments, community details and modularity.
    """
    projection = undirected_projection(graph)
    nodes = list(projection.nodes)
    if not nodes:
        return CommunityResult()

    zero_degree = sorted(n for n in nodes if projection.degree(n) == 0)

    if projection.number_of_edges() == 0:
        logger.info("No edges, every person is isolated")
        return CommunityResult(
            assignments={n: None for n in nodes},
            isolated_count=len(nodes),
            isolated_nodes=sorted(nodes),
        )

    partition = _best_louvain_level(projection, max_iterations, resolution, seed)
    zero_set = set(zero_degree)
    groups = [set(g) - zero_set for g in partition]
    groups = [g for g in groups if g]

    if small_community_strategy == "merge":
        groups = _merge_small(projection, groups, min_community_size)
    kept = [g for g in groups if len(g) >= min_community_size]
    unlabeled = sorted(n for g in groups if len(g) < min_community_size for n in g)

    # Size desc, then smallest member for deterministic ids
    kept.sort(key=lambda g: (-len(g), min(g)))
    assignments: dict[str, str | None] = {n: None for n in nodes}
    communities: list[Community] = []
    for index, members in enumerate(kept):
        community_id = f"comm_{index:03d}"
        for m in members:
            assignments[m] = community_id
        communities.append(_describe(projection, community_id, index, members, assignments))

    modularity = community_modularity(projection, kept, unlabeled + zero_degree)
    isolated = sorted(zero_degree + unlabeled)
    sizes = [c.size for c in communities]

    result = CommunityResult(
        assignments=assignments,
        communities=communities,
        modularity=modularity,
        community_count=len(communities),
        avg_size=sum(sizes) / len(sizes) if sizes else 0.0,
        largest_size=max(sizes, default=0),
        smallest_size=min(sizes, default=0),
        isolated_count=len(isolated),
        isolated_nodes=isolated,
    )
    logger.info(
        "Detected %d communities (modularity %.3f, %d isolated)",
        result.community_count, result.modularity, result.isolated_count,
    )
    return result


def community_modularity(
    projection: nx.Graph,
    communities: list[set[str]],
    singletons: list[str] | None = None,
) -> float:
    """Modularity of a labeling; unlabeled nodes count as singletons.

    Independent of how communities are labeled. 0 for edgeless graphs.
    """
    if projection.number_of_edges() == 0:
        return 0.0
    parts = [set(c) for c in communities if c]
    parts.extend({n} for n in (singletons or []))
    covered = set().union(*parts) if parts else set()
    parts.extend({n} for n in projection.nodes if n not in covered)
    return float(nx.community.modularity(projection, parts, weight="weight"))


def find_community_bridges(
    graph: nx.DiGraph, assignments: dict[str, str | None] | None = None
) -> dict[str, list[str]]:
    """Persons whose neighbours span two or more communities.

    Args:
        graph: Directed communication graph.
        assignments: person_id -> community_id. Defaults to the
            ``community_id`` node attribute.

    Returns:
        person_id -> sorted community ids touched (own included).
    """
    if assignments is None:
        assignments = {n: d.get("community_id") for n, d in graph.nodes(data=True)}
    bridges: dict[str, list[str]] = {}
    projection = undirected_projection(graph)
    for node in projection.nodes:
        touched = {assignments.get(nb) for nb in projection.neighbors(node)}
        touched.add(assignments.get(node))
        touched.discard(None)
        if len(touched) >= 2:
            bridges[node] = sorted(touched)
    return bridges


def communities_from_graph(graph: nx.DiGraph) -> dict[str, str | None] | None:
    """Stored community labels, or None when the snapshot carries none."""
    assignments = {n: d.get("community_id") for n, d in graph.nodes(data=True)}
    if not any(assignments.values()):
        return None
    return assignments


async def store_communities(
    store: BaseGraphStore, organization_id: str, result: CommunityResult
) -> None:
    """Write community_id for every Person (None for isolated Persons)."""
    updates = {
        pid: {"community_id": community_id}
        for pid, community_id in result.assignments.items()
    }
    if updates:
        await store.write_scores_batch(organization_id, updates)


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _best_louvain_level(
    projection: nx.Graph,
    max_iterations: int,
    resolution: float,
    seed: int | None,
) -> list[set[str]]:
    best: list[set[str]] | None = None
    best_q = float("-inf")
    levels = nx.community.louvain_partitions(
        projection, weight="weight", resolution=resolution, seed=seed,
    )
    for level, partition in enumerate(islice(levels, max(max_iterations, 1)), start=1):
        q = nx.community.modularity(projection, partition, weight="weight")
        logger.debug("Louvain level %d: %d groups, modularity %.4f", level, len(partition), q)
        if q > best_q:
            best, best_q = [set(p) for p in partition], q
    if best is None:
        best = [{n} for n in projection.nodes]
    return best


def _merge_small(
    projection: nx.Graph, groups: list[set[str]], min_size: int
) -> list[set[str]]:
    """Fold undersized groups into the neighbouring group sharing most weight."""
    groups = [set(g) for g in groups]
    while True:
        small = sorted(
            (i for i, g in enumerate(groups) if len(g) < min_size),
            key=lambda i: (len(groups[i]), min(groups[i])),
        )
        merged = False
        for i in small:
            target = _strongest_neighbour_group(projection, groups, i)
            if target is None:
                continue
            groups[target] |= groups[i]
            groups.pop(i)
            merged = True
            break
        if not merged:
            return groups


def _strongest_neighbour_group(
    projection: nx.Graph, groups: list[set[str]], index: int
) -> int | None:
    owner = {n: i for i, g in enumerate(groups) for n in g}
    shared: Counter[int] = Counter()
    for node in groups[index]:
        for nb, data in projection[node].items():
            j = owner.get(nb)
            if j is not None and j != index:
                shared[j] += data.get("weight", 1)
    if not shared:
        return None
    # Most weight, then the larger group, then lowest index
    return max(shared, key=lambda j: (shared[j], len(groups[j]), -j))


def _describe(
    projection: nx.Graph,
    community_id: str,
    index: int,
    members: set[str],
    assignments: dict[str, str | None],
) -> Community:
    member_rows: list[CommunityMember] = []
    internal_weight: dict[str, float] = {}
    for node in sorted(members):
        internal = external = 0
        weight = 0.0
        for nb, data in projection[node].items():
            if assignments.get(nb) == community_id:
                internal += 1
                weight += data.get("weight", 1)
            else:
                external += 1
        internal_weight[node] = weight
        member_rows.append(CommunityMember(
            person_id=node,
            internal_connections=internal,
            external_connections=external,
            role=_role(internal, external),
        ))

    departments = Counter(
        projection.nodes[n].get("department") or "Unknown" for n in members
    )
    dominant = min(departments, key=lambda d: (-departments[d], d))
    key_members = sorted(members, key=lambda n: (-internal_weight[n], n))[:KEY_MEMBER_COUNT]

    return Community(
        community_id=community_id,
        name=f"{dominant} Group {index + 1}",
        size=len(members),
        members=member_rows,
        density=nx.density(projection.subgraph(members)),
        department_mix=dict(sorted(departments.items())),
        dominant_department=dominant,
        key_members=key_members,
    )


def _role(internal: int, external: int) -> str:
    if internal > HUB_MIN_INTERNAL and external > BRIDGE_MIN_EXTERNAL:
        return "bridge"
    if internal > HUB_MIN_INTERNAL:
        return "hub"
    if internal <= 1:
        return "peripheral"
    return "member"
