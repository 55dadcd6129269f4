# tests/unit/network/test_unit_influence.py — v1
"""Tests for network/influence.py — composite score, rank and percentile."""

from __future__ import annotations

import networkx as nx
import pytest

from orgnet.core.models import Person
from orgnet.network.centrality import calculate_centrality
from orgnet.network.influence import (
    COMPONENT_WEIGHTS,
    bridging_ratio,
    calculate_influence,
    composite_score,
    influence_from_graph,
    response_score,
    store_influence,
    top_influencers,
)
from orgnet.network.models import InfluenceComponents
from orgnet.store.memory_graph_store import MemoryGraphStore


class TestComponents:
    def test_weights_sum_to_one(self):
        assert sum(COMPONENT_WEIGHTS.values()) == pytest.approx(1.0)

    def test_composite_bounds(self):
        full = InfluenceComponents(network=1, volume=1, response=1, bridging=1, temporal=1)
        assert composite_score(full) == pytest.approx(1.0)
        assert composite_score(InfluenceComponents()) == 0.0

    def test_response_score(self):
        assert response_score(0, 0) == 0.0
        assert response_score(4, 2) == pytest.approx(0.25)
        assert response_score(1, 4) == pytest.approx(1.0)
        # sent floored at 1
        assert response_score(0, 1) == pytest.approx(0.5)

    def test_bridging_ratio(self, abc_graph):
        assert bridging_ratio(abc_graph, "b") == pytest.approx(0.5)
        assert bridging_ratio(abc_graph, "a") == 0.0

    def test_bridging_ratio_unknown_department(self, make_graph):
        graph = make_graph([("a", "b", 2)], departments={"b": "Eng"})
        assert bridging_ratio(graph, "a") == 0.0


class TestCalculateInfluence:
    def test_ranks_are_a_permutation(self, two_cliques):
        result = calculate_influence(two_cliques)
        assert sorted(s.rank for s in result.scores) == list(range(1, 9))
        assert [s.rank for s in result.scores] == list(range(1, 9))

    def test_scores_in_unit_interval_and_descending(self, two_cliques):
        scores = [s.score for s in calculate_influence(two_cliques).scores]
        assert all(0.0 <= s <= 1.0 for s in scores)
        assert scores == sorted(scores, reverse=True)

    def test_percentile(self, abc_graph):
        result = calculate_influence(abc_graph)
        assert result.scores[0].percentile == pytest.approx(100.0)
        assert result.scores[-1].percentile == pytest.approx(100 / 3)

    def test_hub_ranks_first(self, abc_graph):
        assert calculate_influence(abc_graph).scores[0].person_id == "b"

    def test_ties_keep_node_order(self):
        graph = nx.DiGraph()
        graph.add_nodes_from(["c", "a", "b"])
        result = calculate_influence(graph)
        assert [s.person_id for s in result.scores] == ["c", "a", "b"]
        assert all(s.score == 0.0 for s in result.scores)

    def test_uses_given_centrality(self, abc_graph):
        centrality = calculate_centrality(abc_graph)
        with_given = calculate_influence(abc_graph, centrality)
        computed = calculate_influence(abc_graph)
        assert [s.score for s in with_given.scores] == pytest.approx(
            [s.score for s in computed.scores]
        )

    def test_empty(self):
        result = calculate_influence(nx.DiGraph())
        assert result.scores == []
        assert result.summary()["top_person"] is None

    def test_stats_and_top_departments(self, two_cliques):
        result = calculate_influence(two_cliques)
        assert result.stats.mean > 0
        # top decile of 8 people is one person
        assert sum(count for _, count in result.stats.top_departments) == 1

    def test_unknown_department_bucket(self, make_graph):
        result = calculate_influence(make_graph([("a", "b", 3)]))
        assert result.stats.top_departments == [("Unknown", 1)]
        assert result.summary()["top_departments"] == [["Unknown", 1]]

    def test_top_influencers(self, two_cliques):
        result = calculate_influence(two_cliques)
        assert len(top_influencers(result, limit=3)) == 3
        assert top_influencers(result, limit=0) == []


class TestStoreInfluence:
    @pytest.mark.asyncio
    async def test_store_and_rebuild(self, abc_graph):
        from orgnet.network.graph_loader import load_network

        store = MemoryGraphStore()
        for node in abc_graph.nodes:
            await store.upsert_person(Person(person_id=node, organization_id="acme"))
        result = calculate_influence(abc_graph)
        await store_influence(store, "acme", result)

        persons = {p.person_id: p for p in await store.get_persons("acme")}
        assert persons["b"].influence_rank == 1
        assert persons["b"].pagerank is None

        rebuilt = influence_from_graph(await load_network(store, "acme"))
        assert [s.person_id for s in rebuilt.scores] == [s.person_id for s in result.scores]

    def test_from_graph_without_ranks(self, abc_graph):
        assert influence_from_graph(abc_graph) is None
