# tests/unit/network/test_unit_hidden_influencers.py — v1
"""Tests for network/hidden_influencers.py — indicators, types and risk."""

from __future__ import annotations

import pytest

from orgnet.core.models import Person
from orgnet.network.community import detect_communities
from orgnet.network.hidden_influencers import (
    PersonProfile,
    analyze_risk,
    build_profiles,
    classify,
    confidence_score,
    detect_hidden_influencers,
    evaluate_indicators,
    influencers_in_department,
    store_hidden_influencers,
)
from orgnet.network.models import (
    HiddenInfluencer,
    HiddenInfluencerResult,
    HiddenInfluencerStats,
    InfluenceIndicator,
)
from orgnet.store.memory_graph_store import MemoryGraphStore


def _indicator(name: str, value: float = 1.0, weight: float = 0.2) -> InfluenceIndicator:
    return InfluenceIndicator(name=name, value=value, weight=weight, description="")


def _result(confidences: list[float], analyzed: int, type_: str = "connector"):
    influencers = [
        HiddenInfluencer(person_id=f"p{i}", type=type_, confidence=c)
        for i, c in enumerate(confidences)
    ]
    return HiddenInfluencerResult(
        influencers=influencers,
        stats=HiddenInfluencerStats(total=len(influencers), by_type={type_: len(influencers)}),
        analyzed_count=analyzed,
    )


class TestIndicators:
    def test_position_gap_and_bridging(self):
        profile = PersonProfile(person_id="x", gap=3, bridging_influence=0.7)
        indicators = {i.name: i for i in evaluate_indicators(profile)}
        assert indicators["position-gap"].value == pytest.approx(1.0)
        assert indicators["bridging-influence"].value == pytest.approx(0.7)
        assert confidence_score(list(indicators.values())) == pytest.approx(0.3 + 0.175)

    def test_values_normalized(self):
        profile = PersonProfile(
            person_id="x", communities_touched=8, response_rate=5.0, growth=4.0,
        )
        for indicator in evaluate_indicators(profile):
            assert 0.0 <= indicator.value <= 1.0

    def test_no_indicators_for_quiet_person(self):
        assert evaluate_indicators(PersonProfile(person_id="x")) == []

    def test_informal_centrality_requires_missing_authority(self):
        leader = PersonProfile(person_id="x", network_influence=0.8, formal_level=2)
        member = PersonProfile(person_id="y", network_influence=0.8, formal_level=5)
        assert "informal-centrality" not in {i.name for i in evaluate_indicators(leader)}
        assert "informal-centrality" in {i.name for i in evaluate_indicators(member)}

    def test_information_bottleneck(self):
        profile = PersonProfile(person_id="x", betweenness=0.9, max_betweenness=1.0)
        names = {i.name for i in evaluate_indicators(profile)}
        assert "information-bottleneck" in names

    def test_confidence_clamped(self):
        indicators = [_indicator(f"i{n}", 1.0, 0.3) for n in range(5)]
        assert confidence_score(indicators) == 1.0
        assert confidence_score([]) == 0.0


class TestLacksAuthority:
    def test_levels(self):
        assert PersonProfile(person_id="x").lacks_authority is True
        assert PersonProfile(person_id="x", formal_level=3).lacks_authority is False
        assert PersonProfile(person_id="x", formal_level=4).lacks_authority is True


class TestClassify:
    def test_shadow_leader(self):
        p = PersonProfile(person_id="x", gap=3, bridging_influence=0.7)
        assert classify(p, evaluate_indicators(p)) == "shadow-leader"

    def test_connector(self):
        p = PersonProfile(person_id="x", communities_touched=3, cross_dept_ratio=0.6)
        assert classify(p, evaluate_indicators(p)) == "connector"

    def test_information_bottleneck(self):
        p = PersonProfile(person_id="x", betweenness=1.0, max_betweenness=1.0)
        assert classify(p, evaluate_indicators(p)) == "information-bottleneck"

    def test_knowledge_broker(self):
        p = PersonProfile(person_id="x", bridging_influence=0.6)
        assert classify(p, evaluate_indicators(p)) == "knowledge-broker"

    def test_rising_star(self):
        p = PersonProfile(person_id="x", growth=0.8)
        assert classify(p, evaluate_indicators(p)) == "rising-star"

    def test_quiet_expert(self):
        p = PersonProfile(person_id="x", response_rate=3.0, initiation_rate=0.2)
        assert classify(p, evaluate_indicators(p)) == "quiet-expert"

    def test_cultural_anchor(self):
        p = PersonProfile(person_id="x", discrepancy_type="over-performer")
        assert classify(p, []) == "cultural-anchor"

    def test_fallback(self):
        assert classify(PersonProfile(person_id="x"), []) == "shadow-leader"


class TestDetect:
    def test_sorted_and_above_threshold(self, two_cliques):
        result = detect_hidden_influencers(two_cliques, min_confidence=0.1)
        confidences = [h.confidence for h in result.influencers]
        assert confidences == sorted(confidences, reverse=True)
        assert all(c >= 0.1 for c in confidences)
        assert result.analyzed_count == 8

    def test_zero_threshold_reports_everyone(self, two_cliques):
        result = detect_hidden_influencers(two_cliques, min_confidence=0.0)
        assert len(result.influencers) == 8
        assert result.stats.total == 8

    def test_empty_graph(self, make_graph):
        result = detect_hidden_influencers(make_graph([]))
        assert result.influencers == []
        assert result.analyzed_count == 0

    def test_recommendations_attached(self, two_cliques):
        result = detect_hidden_influencers(two_cliques, min_confidence=0.0)
        assert all(h.recommendations for h in result.influencers)

    def test_profiles_use_community_result(self, two_cliques):
        communities = detect_communities(two_cliques)
        profiles = {p.person_id: p for p in build_profiles(two_cliques, communities=communities)}
        assert profiles["d"].communities_touched == 2
        assert profiles["a"].communities_touched == 1
        # without hierarchy, position is unknown
        assert profiles["a"].formal_level is None

    def test_growth_from_recent_counts(self, make_graph):
        graph = make_graph(
            [("a", "b", 10), ("b", "a", 10)],
            recent={("a", "b"): 8, ("b", "a"): 2},
        )
        profiles = {p.person_id: p for p in build_profiles(graph)}
        # a: 8 recent vs 2 older -> +300%; b: 2 recent vs 8 older
        assert profiles["a"].growth == pytest.approx(3.0)
        assert profiles["b"].growth == pytest.approx(-0.75)

    def test_include_types_filters_reported_types(self, two_cliques):
        everyone = detect_hidden_influencers(two_cliques, min_confidence=0.0)
        wanted = everyone.influencers[0].type
        expected = [h.person_id for h in everyone.influencers if h.type == wanted]

        result = detect_hidden_influencers(
            two_cliques, min_confidence=0.0, include_types=[wanted],
        )
        assert [h.person_id for h in result.influencers] == expected
        assert result.stats.by_type == {wanted: len(expected)}
        assert result.analyzed_count == 8

    def test_empty_include_types_reports_nobody(self, two_cliques):
        result = detect_hidden_influencers(two_cliques, min_confidence=0.0, include_types=[])
        assert result.influencers == []
        assert result.analyzed_count == 8

    def test_influencers_in_department(self, two_cliques):
        result = detect_hidden_influencers(two_cliques, min_confidence=0.0)
        eng = influencers_in_department(result, "Eng")
        assert sorted(h.person_id for h in eng) == ["a", "b", "c", "d"]
        assert [h.confidence for h in eng] == sorted((h.confidence for h in eng), reverse=True)
        assert influencers_in_department(result, "Legal") == []


class TestAnalyzeRisk:
    def test_none(self):
        assessment = analyze_risk(HiddenInfluencerResult(analyzed_count=10))
        assert assessment.risk_level == "none"
        assert assessment.key_person_count == 0

    def test_low(self):
        assert analyze_risk(_result([0.9], analyzed=100)).risk_level == "low"

    def test_medium(self):
        assert analyze_risk(_result([0.9, 0.85], analyzed=100)).risk_level == "medium"

    def test_high(self):
        assert analyze_risk(_result([0.9] * 4, analyzed=100)).risk_level == "high"

    def test_critical_by_count(self):
        assessment = analyze_risk(_result([0.9] * 6, analyzed=100))
        assert assessment.risk_level == "critical"
        assert "succession" in assessment.recommendations[0]

    def test_critical_by_ratio(self):
        assert analyze_risk(_result([0.9], analyzed=3)).risk_level == "critical"

    def test_key_threshold_excludes_weaker(self):
        assessment = analyze_risk(_result([0.9, 0.7, 0.65], analyzed=100))
        assert assessment.key_person_count == 1
        assert assessment.risks[0].risk_type == "Silo Creation Risk"

    def test_default_risk_profile(self):
        assessment = analyze_risk(_result([0.9], analyzed=100, type_="rising-star"))
        assert assessment.risks[0].risk_type == "Influence Dependency Risk"


class TestStoreHiddenInfluencers:
    @pytest.mark.asyncio
    async def test_detected_written_and_others_cleared(self):
        store = MemoryGraphStore()
        for pid in ("p0", "p1"):
            await store.upsert_person(Person(person_id=pid, organization_id="acme"))
        await store.write_scores("acme", "p1", {
            "hidden_influence_type": "connector", "hidden_influence_confidence": 0.9,
        })
        await store_hidden_influencers(store, "acme", _result([0.75], analyzed=2), ["p0", "p1"])
        persons = {p.person_id: p for p in await store.get_persons("acme")}
        assert persons["p0"].hidden_influence_type == "connector"
        assert persons["p0"].hidden_influence_confidence == 0.75
        assert persons["p1"].hidden_influence_type is None
