# src/network/patterns.py — v1
"""Communication pattern analyzer: per-person temporal, behavioural and
relational patterns, anomalies, health scores and organization trends.

Timestamps are evaluated in UTC. Business hours are [start, end);
weekend traffic is tracked separately.
"""

from __future__ import annotations

import bisect
import logging
from collections import Counter, defaultdict
from datetime import datetime, timedelta, timezone

import networkx as nx
import numpy as np

from orgnet.core.models import CommunicationEvent, normalize_identity, utc_now
from orgnet.network.graph_loader import undirected_projection
from orgnet.network.models import (
    BehavioralPattern,
    DepartmentPattern,
    OrganizationTrends,
    PatternAlert,
    PatternAnomaly,
    PatternResult,
    PersonPattern,
    RelationalPattern,
    TemporalPattern,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEFRAME_DAYS = 90
STRONG_TIE_MESSAGES = 20
BROADCAST_MIN_RECIPIENTS = 3
RESPONSE_WINDOW = timedelta(hours=72)
PEAK_HOURS = 3
PEAK_DAYS = 2

SEVERITY_PENALTY = {"high": 15, "medium": 10, "low": 5}
COMMON_ANOMALY_SHARE = 0.3


def analyze_patterns(
    events: list[CommunicationEvent],
    graph: nx.DiGraph,
    reference_time: datetime | None = None,
    timeframe_days: int = DEFAULT_TIMEFRAME_DAYS,
    business_hours: tuple[int, int] = (8, 18),
) -> PatternResult:
    """Analyze communication patterns over the lookback window.

    Args:
        events: Raw events; only those in (reference - timeframe, reference]
            are used.
        graph: Directed communication graph; its nodes are the people analyzed.
        reference_time: End of the window (defaults to now).
        timeframe_days: Lookback window in days.
        business_hours: (start_hour, end_hour) in UTC.

    Returns:
        PatternResult with per-person patterns, trends and alerts.
    """
    reference = reference_time or utc_now()
    window_start = reference - timedelta(days=timeframe_days)
    window = [e for e in events if window_start < e.timestamp <= reference]

    sent_by: dict[str, list[CommunicationEvent]] = defaultdict(list)
    received_by: dict[str, list[tuple[datetime, str]]] = defaultdict(list)
    hourly = [0] * 24
    for event in window:
        sender = normalize_identity(event.sender)
        recipients = {normalize_identity(r) for r in event.recipients} - {sender, ""}
        sent_by[sender].append(event)
        for r in recipients:
            received_by[r].append((event.timestamp, sender))
        hourly[_utc_hour(event.timestamp)] += 1

    reply_index = _reply_index(window)
    projection = undirected_projection(graph)
    weeks = max(timeframe_days / 7, 1)

    people: list[PersonPattern] = []
    for node in graph.nodes:
        temporal = _temporal(
            sent_by.get(node, []), received_by.get(node, []), reply_index.get(node, {}),
            business_hours, window_start, weeks,
        )
        behavioral = _behavioral(graph, node, sent_by.get(node, []), len(received_by.get(node, [])))
        relational = _relational(projection, node)
        pattern = PersonPattern(
            person_id=node,
            department=graph.nodes[node].get("department"),
            temporal=temporal,
            behavioral=behavioral,
            relational=relational,
        )
        pattern.anomalies = detect_anomalies(pattern)
        pattern.health_score = health_score(pattern)
        people.append(pattern)

    trends = organization_trends(people, hourly)
    alerts = generate_alerts(people, trends)
    logger.info(
        "Patterns analyzed for %d people over %d events: health %s, %d alerts",
        len(people), len(window), trends.health, len(alerts),
    )
    return PatternResult(
        people=people,
        trends=trends,
        alerts=alerts,
        events_analyzed=len(window),
        timeframe_days=timeframe_days,
    )


def detect_anomalies(p: PersonPattern) -> list[PatternAnomaly]:
    """Flag unusual hours, burnout, isolation, overload and silo patterns."""
    t, b, r = p.temporal, p.behavioral, p.relational
    anomalies: list[PatternAnomaly] = []

    if t.after_hours_ratio > 0.3:
        anomalies.append(PatternAnomaly(
            type="unusual-hours",
            severity="high" if t.after_hours_ratio > 0.5 else "medium",
            description=f"{round(t.after_hours_ratio * 100)}% of communication outside business hours",
            recommendation="Review workload distribution and work-life balance",
        ))
    if t.weekend_ratio > 0.15:
        anomalies.append(PatternAnomaly(
            type="unusual-hours",
            severity="high" if t.weekend_ratio > 0.3 else "medium",
            description=f"{round(t.weekend_ratio * 100)}% of communication on weekends",
            recommendation="Consider workload rebalancing",
        ))
    if t.after_hours_ratio > 0.4 and t.weekend_ratio > 0.15:
        anomalies.append(PatternAnomaly(
            type="burnout-indicators",
            severity="high",
            description="Sustained after-hours and weekend work suggests burnout risk",
            recommendation="Proactive check-in and workload review recommended",
        ))
    if r.reach < 5 and r.strong_ties < 2:
        anomalies.append(PatternAnomaly(
            type="isolation-trend",
            severity="medium",
            description="Limited network connections may indicate isolation",
            recommendation="Consider team integration activities",
        ))
    if r.reach > 50 and b.initiation_ratio < 0.3:
        anomalies.append(PatternAnomaly(
            type="overload-risk",
            severity="medium",
            description="High inbound communication volume with limited outbound",
            recommendation="Review if communication routing is appropriate",
        ))
    if r.bridging_connections == 0 and r.strong_ties > 5:
        anomalies.append(PatternAnomaly(
            type="silo-formation",
            severity="low",
            description="Strong internal connections but no cross-department links",
            recommendation="Encourage cross-functional collaboration",
        ))
    return anomalies


def health_score(p: PersonPattern) -> float:
    """Start at 100, subtract penalties, clamp to [0, 100]."""
    t, b, r = p.temporal, p.behavioral, p.relational
    score = 100.0
    score -= t.after_hours_ratio * 20
    score -= t.weekend_ratio * 15
    if b.reciprocity < 0.3:
        score -= 15
    if r.reach < 5:
        score -= 10
    if r.concentration > 0.5:
        score -= 10
    if r.bridging_connections == 0:
        score -= 5
    for anomaly in p.anomalies:
        score -= SEVERITY_PENALTY[anomaly.severity]
    return max(0.0, min(100.0, score))


def health_label(avg_health: float, after_hours: float, silo_risk: float) -> str:
    if avg_health < 60 or (after_hours >= 0.5 and silo_risk >= 0.5):
        return "concerning"
    if avg_health < 75:
        return "neutral"
    return "healthy"


def organization_trends(
    people: list[PersonPattern], hourly_volume: list[int] | None = None
) -> OrganizationTrends:
    """Aggregate per-person patterns into organization-level trends."""
    hourly = list(hourly_volume) if hourly_volume else [0] * 24
    if not people:
        return OrganizationTrends(hourly_volume=hourly, health="healthy")

    n = len(people)
    after_hours = sum(p.temporal.after_hours_ratio for p in people) / n
    responses = [
        p.temporal.median_response_minutes for p in people
        if p.temporal.median_response_minutes is not None
    ]
    avg_reach = sum(p.relational.reach for p in people) / n
    silo_risk = sum(1 for p in people if p.relational.bridging_connections == 0) / n
    avg_reciprocity = sum(p.behavioral.reciprocity for p in people) / n
    avg_bridging = sum(p.relational.bridging_connections for p in people) / n
    collaboration = (avg_reciprocity * 0.5 + min(avg_bridging / 10, 1) * 0.5) * 100
    avg_health = sum(p.health_score for p in people) / n

    return OrganizationTrends(
        avg_after_hours_ratio=after_hours,
        avg_response_minutes=sum(responses) / len(responses) if responses else None,
        avg_reach=avg_reach,
        silo_risk=silo_risk,
        collaboration_score=collaboration,
        avg_health_score=avg_health,
        hourly_volume=hourly,
        health=health_label(avg_health, after_hours, silo_risk),
    )


def generate_alerts(people: list[PersonPattern], trends: OrganizationTrends) -> list[PatternAlert]:
    """Organization-level alerts naming the affected people."""
    alerts: list[PatternAlert] = []

    late = [p.person_id for p in people if p.temporal.after_hours_ratio > 0.4]
    if len(late) > 3:
        alerts.append(PatternAlert(
            type="after-hours-concern",
            severity="warning",
            message=f"{len(late)} people have high after-hours communication",
            affected_people=late,
            recommendation="Review workload distribution and consider process improvements",
        ))

    isolated = [p.person_id for p in people if p.relational.reach < 5]
    if len(isolated) > 2:
        alerts.append(PatternAlert(
            type="isolation-concern",
            severity="warning",
            message=f"{len(isolated)} people have limited network connections",
            affected_people=isolated,
            recommendation="Consider team building and integration activities",
        ))

    if trends.silo_risk > 0.3:
        alerts.append(PatternAlert(
            type="silo-risk",
            severity="critical" if trends.silo_risk > 0.5 else "warning",
            message=f"{round(trends.silo_risk * 100)}% of people have no cross-department connections",
            affected_people=[p.person_id for p in people if p.relational.bridging_connections == 0],
            recommendation="Implement cross-functional initiatives and collaboration programs",
        ))

    if trends.health == "concerning":
        alerts.append(PatternAlert(
            type="health-concern",
            severity="critical",
            message="Overall communication health is concerning",
            affected_people=[p.person_id for p in people if p.health_score < 60],
            recommendation="Conduct organization-wide review of communication practices",
        ))
    return alerts


def department_patterns(result: PatternResult) -> list[DepartmentPattern]:
    """Roll per-person patterns up by department, sorted by department name.

    An anomaly type is common when more than 30% of the department's
    members show it. People without a department are left out.
    """
    by_dept: dict[str, list[PersonPattern]] = defaultdict(list)
    for p in result.people:
        if p.department:
            by_dept[p.department].append(p)

    rollups = []
    for department in sorted(by_dept):
        members = by_dept[department]
        n = len(members)
        counts = Counter(t for p in members for t in {a.type for a in p.anomalies})
        rollups.append(DepartmentPattern(
            department=department,
            member_count=n,
            avg_health_score=sum(p.health_score for p in members) / n,
            avg_reach=sum(p.relational.reach for p in members) / n,
            common_anomalies=sorted(
                t for t, count in counts.items() if count > n * COMMON_ANOMALY_SHARE
            ),
        ))
    return rollups


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _utc_hour(ts: datetime) -> int:
    return ts.astimezone(timezone.utc).hour


def _utc_weekday(ts: datetime) -> int:
    return ts.astimezone(timezone.utc).weekday()


def _reply_index(window: list[CommunicationEvent]) -> dict[str, dict[str, list[datetime]]]:
    """sender -> recipient -> sorted send timestamps."""
    index: dict[str, dict[str, list[datetime]]] = defaultdict(lambda: defaultdict(list))
    for event in window:
        sender = normalize_identity(event.sender)
        for r in {normalize_identity(x) for x in event.recipients} - {sender, ""}:
            index[sender][r].append(event.timestamp)
    for per_recipient in index.values():
        for stamps in per_recipient.values():
            stamps.sort()
    return index


def _temporal(
    sent: list[CommunicationEvent],
    received: list[tuple[datetime, str]],
    replies: dict[str, list[datetime]],
    business_hours: tuple[int, int],
    window_start: datetime,
    weeks: float,
) -> TemporalPattern:
    start_hour, end_hour = business_hours
    if not sent:
        return TemporalPattern(median_response_minutes=_median_response(received, replies))

    hours = Counter(_utc_hour(e.timestamp) for e in sent)
    days = Counter(_utc_weekday(e.timestamp) for e in sent)
    weekend = sum(1 for e in sent if _utc_weekday(e.timestamp) >= 5)
    after_hours = sum(
        1 for e in sent
        if not start_hour <= _utc_hour(e.timestamp) < end_hour
    )

    weekly = np.zeros(max(int(np.ceil(weeks)), 1))
    for e in sent:
        slot = int((e.timestamp - window_start) / timedelta(weeks=1))
        weekly[min(max(slot, 0), len(weekly) - 1)] += 1
    mean = weekly.mean()
    consistency = max(0.0, 1.0 - float(weekly.std() / mean)) if mean > 0 else 0.0

    return TemporalPattern(
        peak_hours=sorted(h for h, _ in sorted(hours.items(), key=lambda kv: (-kv[1], kv[0]))[:PEAK_HOURS]),
        peak_days=sorted(d for d, _ in sorted(days.items(), key=lambda kv: (-kv[1], kv[0]))[:PEAK_DAYS]),
        median_response_minutes=_median_response(received, replies),
        after_hours_ratio=after_hours / len(sent),
        weekend_ratio=weekend / len(sent),
        consistency=consistency,
    )


def _median_response(
    received: list[tuple[datetime, str]], replies: dict[str, list[datetime]]
) -> float | None:
    """Median minutes between a received message and the next message back to its sender."""
    gaps = []
    for ts, sender in received:
        stamps = replies.get(sender)
        if not stamps:
            continue
        i = bisect.bisect_right(stamps, ts)
        if i < len(stamps) and stamps[i] - ts <= RESPONSE_WINDOW:
            gaps.append((stamps[i] - ts).total_seconds() / 60)
    return float(np.median(gaps)) if gaps else None


def _behavioral(
    graph: nx.DiGraph, node: str, sent: list[CommunicationEvent], received: int
) -> BehavioralPattern:
    out_nb = set(graph.successors(node)) - {node}
    in_nb = set(graph.predecessors(node)) - {node}
    union = out_nb | in_nb
    broadcasts = sum(1 for e in sent if len(set(e.recipients)) >= BROADCAST_MIN_RECIPIENTS)
    total = len(sent) + received
    return BehavioralPattern(
        messages_sent=len(sent),
        messages_received=received,
        initiation_ratio=len(sent) / total if total else 0.0,
        reciprocity=len(out_nb & in_nb) / len(union) if union else 0.0,
        broadcast_ratio=broadcasts / len(sent) if sent else 0.0,
    )


def _relational(projection: nx.Graph, node: str) -> RelationalPattern:
    department = projection.nodes[node].get("department")
    weights = {nb: data.get("weight", 1) for nb, data in projection[node].items() if nb != node}
    total = sum(weights.values())
    strong = sum(1 for w in weights.values() if w > STRONG_TIE_MESSAGES)
    bridging = sum(
        1 for nb in weights
        if department
        and projection.nodes[nb].get("department")
        and projection.nodes[nb]["department"] != department
    )
    return RelationalPattern(
        strong_ties=strong,
        weak_ties=len(weights) - strong,
        bridging_connections=bridging,
        concentration=max(weights.values()) / total if total else 0.0,
        reach=len(weights),
    )
