# src/network/builder.py — v1
"""Network builder: aggregate raw communication events into Persons and edges.

One Person per distinct identity seen in the window (sender or recipient),
enriched from the directory. One directed edge per (sender, recipient)
pair whose message count reaches the threshold. Self-messages are dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from orgnet.core.models import (
    CommunicationEdge,
    CommunicationEvent,
    DirectoryEntry,
    Person,
    normalize_identity,
    utc_now,
)
from orgnet.network.models import NetworkBuildResult, NetworkStats
from orgnet.store.base_event_source import in_window
from orgnet.store.base_graph_store import BaseGraphStore

logger = logging.getLogger(__name__)

DEFAULT_MIN_COMMUNICATIONS = 2
DEFAULT_RECENT_DAYS = 30


@dataclass
class _EdgeAccumulator:
    count: int = 0
    recent: int = 0
    first: datetime | None = None
    last: datetime | None = None

    def add(self, ts: datetime, recent: bool) -> None:
        self.count += 1
        if recent:
            self.recent += 1
        if self.first is None or ts < self.first:
            self.first = ts
        if self.last is None or ts > self.last:
            self.last = ts


@dataclass
class _Aggregation:
    identities: set[str] = field(default_factory=set)
    edges: dict[tuple[str, str], _EdgeAccumulator] = field(default_factory=dict)
    events: int = 0


def build_network(
    organization_id: str,
    events: list[CommunicationEvent],
    directory: list[DirectoryEntry] | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    min_communications: int = DEFAULT_MIN_COMMUNICATIONS,
    reference_time: datetime | None = None,
    recent_days: int = DEFAULT_RECENT_DAYS,
) -> NetworkBuildResult:
    """Aggregate events into a communication network.

    Args:
        organization_id: Organization whose events are aggregated; events of
            other organizations are ignored.
        events: Raw communication events.
        directory: Directory entries used to enrich Persons and supply
            manager links.
        start: Inclusive window start (None = unbounded).
        end: Inclusive window end (None = unbounded).
        min_communications: Minimum messages for an edge to be kept.
        reference_time: "Now" for the recent-activity window (defaults to
            end, then the current time).
        recent_days: Size of the recent-activity window.

    Returns:
        NetworkBuildResult with persons, edges, reporting lines and stats.

    Raises:
        ValueError: If start > end or min_communications < 1.
    """
    if start is not None and end is not None and start > end:
        raise ValueError(f"Invalid window: start {start} is after end {end}")
    if min_communications < 1:
        raise ValueError("min_communications must be >= 1")

    reference = reference_time or end or utc_now()
    recent_cutoff = reference - timedelta(days=recent_days)

    agg = _aggregate(organization_id, events, start, end, recent_cutoff)

    directory_map = {
        normalize_identity(entry.person_id): entry for entry in (directory or [])
    }

    persons = []
    for pid in sorted(agg.identities):
        entry = directory_map.get(pid)
        persons.append(Person(
            person_id=pid,
            organization_id=organization_id,
            display_name=entry.display_name if entry else None,
            department=entry.department if entry else None,
            job_title=entry.job_title if entry else None,
        ))

    edges = []
    below = 0
    for (source, target), acc in sorted(agg.edges.items()):
        if acc.count < min_communications:
            below += 1
            continue
        edges.append(CommunicationEdge(
            organization_id=organization_id,
            source=source,
            target=target,
            message_count=acc.count,
            recent_count=acc.recent,
            first_interaction=acc.first,
            last_interaction=acc.last,
        ))

    reporting_lines = _reporting_lines(directory_map, agg.identities)

    stats = network_stats(len(persons), len(edges))
    logger.info(
        "Built network for %s: %d persons, %d edges (%d below threshold %d) from %d events",
        organization_id, stats.node_count, stats.edge_count, below,
        min_communications, agg.events,
    )
    return NetworkBuildResult(
        organization_id=organization_id,
        persons=persons,
        edges=edges,
        reporting_lines=reporting_lines,
        stats=stats,
        events_considered=agg.events,
        edges_below_threshold=below,
        reference_time=reference,
    )


def network_stats(node_count: int, edge_count: int) -> NetworkStats:
    """Density E/(N(N-1)) and average degree 2E/N; both 0 for degenerate graphs."""
    density = edge_count / (node_count * (node_count - 1)) if node_count > 1 else 0.0
    avg_degree = 2 * edge_count / node_count if node_count > 0 else 0.0
    return NetworkStats(
        node_count=node_count,
        edge_count=edge_count,
        density=density,
        avg_degree=avg_degree,
    )


async def persist_network(store: BaseGraphStore, result: NetworkBuildResult) -> None:
    """Write the built network to the store.

    Persons are merged (derived fields survive) and edge weights are set to
    absolute values. Persons, edges and reporting lines missing from the
    new build are pruned, so the stored snapshot matches the build window.
    """
    org = result.organization_id
    for person in result.persons:
        await store.upsert_person(person)
    pruned_persons = await store.prune_persons(org, {p.person_id for p in result.persons})
    for edge in result.edges:
        await store.upsert_edge(edge)
    pruned = await store.prune_edges(org, {edge.key for edge in result.edges})
    await store.prune_reporting_lines(org, set(result.reporting_lines))
    for report_id, manager_id in sorted(result.reporting_lines.items()):
        await store.upsert_reporting_line(org, report_id, manager_id)
    logger.info(
        "Persisted network for %s (%d persons, %d edges, %d persons and %d edges pruned)",
        org, len(result.persons), len(result.edges), pruned_persons, pruned,
    )


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _aggregate(
    organization_id: str,
    events: list[CommunicationEvent],
    start: datetime | None,
    end: datetime | None,
    recent_cutoff: datetime,
) -> _Aggregation:
    agg = _Aggregation()
    for event in events:
        if event.organization_id != organization_id:
            continue
        if not in_window(event.timestamp, start, end):
            continue
        sender = normalize_identity(event.sender)
        if not sender:
            continue
        agg.events += 1
        agg.identities.add(sender)
        recent = event.timestamp >= recent_cutoff
        recipients = {normalize_identity(r) for r in event.recipients}
        for recipient in sorted(recipients):
            if not recipient:
                continue
            agg.identities.add(recipient)
            if recipient == sender:
                continue
            acc = agg.edges.setdefault((sender, recipient), _EdgeAccumulator())
            acc.add(event.timestamp, recent)
    return agg


def _reporting_lines(
    directory_map: dict[str, DirectoryEntry], identities: set[str]
) -> dict[str, str]:
    """Manager links whose both ends are Persons of this network."""
    lines: dict[str, str] = {}
    dropped = 0
    for pid, entry in directory_map.items():
        if not entry.manager_id or pid not in identities:
            continue
        manager = normalize_identity(entry.manager_id)
        if manager == pid:
            continue
        if manager not in identities:
            dropped += 1
            continue
        lines[pid] = manager
    if dropped:
        logger.debug("Dropped %d manager links to people outside the window", dropped)
    return lines
