# tests/unit/network/test_unit_hierarchy.py — v1
"""Tests for network/hierarchy.py — formal vs. actual levels."""

from __future__ import annotations

import pytest

from orgnet.core.models import Person
from orgnet.network.hierarchy import (
    InsufficientHierarchyDataError,
    actual_level,
    classify_gap,
    compare_hierarchy,
    formal_level,
    store_hierarchy,
)
from orgnet.network.models import InfluenceComponents, InfluenceResult, InfluenceScore
from orgnet.store.memory_graph_store import MemoryGraphStore


def _ranking(order: list[str]) -> InfluenceResult:
    total = len(order)
    return InfluenceResult(scores=[
        InfluenceScore(
            person_id=pid, score=1 - i / total, rank=i + 1,
            percentile=(total - i) / total * 100, components=InfluenceComponents(),
        )
        for i, pid in enumerate(order)
    ])


@pytest.fixture
def team_graph(make_graph):
    """Manager m with three reports; r3 is the most influential."""
    return make_graph([
        ("r1", "m", 3), ("r2", "m", 3), ("r3", "m", 3),
        ("r3", "r1", 5), ("r3", "r2", 5),
    ])


LINES = {"r1": "m", "r2": "m", "r3": "m"}


class TestLevels:
    def test_formal_level(self):
        assert formal_level(False, 3) == 1
        assert formal_level(True, 11, senior_direct_reports=10) == 2
        assert formal_level(True, 2) == 3
        assert formal_level(False, 0) == 4
        assert formal_level(True, 0) == 5

    def test_actual_level(self):
        assert actual_level(1, 10) == 1
        assert actual_level(3, 10) == 2
        assert actual_level(10, 10) == 5
        assert actual_level(1, 0) == 5

    def test_classify_gap(self):
        assert classify_gap(2) == "shadow-leader"
        assert classify_gap(1) == "over-performer"
        assert classify_gap(0) == "aligned"
        assert classify_gap(-1) == "aligned"
        assert classify_gap(-2) == "under-leveraged"

    def test_classify_gap_custom_threshold(self):
        assert classify_gap(2, shadow_gap=3) == "over-performer"
        assert classify_gap(3, shadow_gap=3) == "shadow-leader"


class TestCompareHierarchy:
    def test_levels_and_gaps(self, team_graph):
        result = compare_hierarchy(team_graph, LINES, _ranking(["r3", "r1", "r2", "m"]))
        nodes = result.by_person()
        assert nodes["m"].formal_level == 1
        assert nodes["m"].direct_reports == 3
        assert nodes["m"].gap == -4
        assert nodes["m"].discrepancy_type == "under-leveraged"
        assert nodes["r3"].gap == 3
        assert nodes["r3"].discrepancy_type == "shadow-leader"
        assert nodes["r1"].discrepancy_type == "shadow-leader"
        assert nodes["r2"].discrepancy_type == "over-performer"
        assert nodes["r2"].manager_id == "m"

    def test_gap_is_formal_minus_actual(self, team_graph):
        result = compare_hierarchy(team_graph, LINES, _ranking(["r3", "r1", "r2", "m"]))
        for n in result.nodes:
            assert n.gap == n.formal_level - n.actual_level

    def test_metrics(self, team_graph):
        metrics = compare_hierarchy(
            team_graph, LINES, _ranking(["r3", "r1", "r2", "m"]),
        ).metrics
        assert metrics.alignment_score == pytest.approx(0.25)
        assert metrics.shadow_leader_count == 2
        assert metrics.under_leveraged_count == 1
        assert metrics.over_performer_count == 1
        assert metrics.avg_discrepancy == pytest.approx(2.5)

    def test_level_groupings(self, team_graph):
        result = compare_hierarchy(team_graph, LINES, _ranking(["r3", "r1", "r2", "m"]))
        assert result.formal_levels == {1: ["m"], 5: ["r1", "r2", "r3"]}
        assert result.actual_levels[5] == ["m"]

    def test_computes_influence_when_missing(self, team_graph):
        result = compare_hierarchy(team_graph, LINES)
        assert len(result.nodes) == 4

    def test_no_reporting_lines(self, team_graph):
        with pytest.raises(InsufficientHierarchyDataError):
            compare_hierarchy(team_graph, {})

    def test_lines_outside_graph_ignored(self, team_graph):
        with pytest.raises(InsufficientHierarchyDataError):
            compare_hierarchy(team_graph, {"x": "y", "r1": "nobody"})

    @pytest.mark.asyncio
    async def test_store_hierarchy(self, team_graph):
        store = MemoryGraphStore()
        for node in team_graph.nodes:
            await store.upsert_person(Person(person_id=node, organization_id="acme"))
        result = compare_hierarchy(team_graph, LINES, _ranking(["r3", "r1", "r2", "m"]))
        await store_hierarchy(store, "acme", result)
        persons = {p.person_id: p for p in await store.get_persons("acme")}
        assert persons["m"].hierarchy_level == 1
        assert persons["r3"].hierarchy_gap == 3
