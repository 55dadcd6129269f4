# src/network/graph_loader.py — v1
"""Materialize an organization's snapshot from the graph store as networkx graphs."""

from __future__ import annotations

import logging

import networkx as nx

from orgnet.core.models import CommunicationEdge, Person
from orgnet.store.base_graph_store import BaseGraphStore

logger = logging.getLogger(__name__)


def to_digraph(persons: list[Person], edges: list[CommunicationEdge]) -> nx.DiGraph:
    """Build a DiGraph: node attributes are Person fields, edge weight is message_count.

    Edges whose endpoints are not known Persons are skipped.
    """
    graph = nx.DiGraph()
    for person in persons:
        graph.add_node(
            person.person_id,
            **person.model_dump(exclude={"person_id", "organization_id"}),
        )
    skipped = 0
    for edge in edges:
        if edge.source not in graph or edge.target not in graph:
            skipped += 1
            continue
        graph.add_edge(
            edge.source,
            edge.target,
            weight=edge.message_count,
            recent_count=edge.recent_count,
        )
    if skipped:
        logger.warning("Skipped %d edges with unknown endpoints", skipped)
    return graph


async def load_network(store: BaseGraphStore, organization_id: str) -> nx.DiGraph:
    """Load the organization's current snapshot from the store."""
    persons = await store.get_persons(organization_id)
    edges = await store.get_edges(organization_id)
    graph = to_digraph(persons, edges)
    graph.graph["organization_id"] = organization_id
    logger.debug(
        "Loaded snapshot: %d nodes, %d edges",
        graph.number_of_nodes(), graph.number_of_edges(),
    )
    return graph


def undirected_projection(graph: nx.DiGraph) -> nx.Graph:
    """Undirected view where reciprocal edge weights (and recent counts) are summed."""
    projection = nx.Graph()
    projection.add_nodes_from(graph.nodes(data=True))
    for u, v, data in graph.edges(data=True):
        if u == v:
            continue
        weight = data.get("weight", 1)
        recent = data.get("recent_count", 0)
        if projection.has_edge(u, v):
            projection[u][v]["weight"] += weight
            projection[u][v]["recent_count"] += recent
        else:
            projection.add_edge(u, v, weight=weight, recent_count=recent)
    return projection
