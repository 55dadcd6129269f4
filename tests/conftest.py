# tests/conftest.py — v1
"""Shared test fixtures for all unit and integration tests.

Provides settings without .env, a small two-department organization
(directory + events), graph factories and in-memory stores.
No external dependencies: every store is in memory.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import networkx as nx
import pytest

from orgnet.config.settings import Settings
from orgnet.core.models import (
    CommunicationEdge,
    CommunicationEvent,
    DirectoryEntry,
    Person,
)
from orgnet.network.graph_loader import to_digraph
from orgnet.store.base_job_store import MemoryJobStore
from orgnet.store.memory_event_source import MemoryEventSource
from orgnet.store.memory_graph_store import MemoryGraphStore
from orgnet.store.memory_insight_store import MemoryInsightStore

ORG = "acme"
# Monday, mid-day UTC
REFERENCE_TIME = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


def _exchange(
    a: str, b: str, a_to_b: int, b_to_a: int, org: str = ORG
) -> list[CommunicationEvent]:
    """a_to_b messages from a to b and b_to_a back, one per weekday at 10:00 UTC."""
    events = []
    for i in range(a_to_b):
        events.append(CommunicationEvent(
            organization_id=org, sender=a, recipients=[b],
            timestamp=REFERENCE_TIME - timedelta(days=i + 1, hours=2),
        ))
    for i in range(b_to_a):
        events.append(CommunicationEvent(
            organization_id=org, sender=b, recipients=[a],
            timestamp=REFERENCE_TIME - timedelta(days=i + 1, hours=1),
        ))
    return events


# === FIXTURES: Settings ===


@pytest.fixture
def settings() -> Settings:
    """Default settings, isolated from any local .env file."""
    return Settings(_env_file=None)


# === FIXTURES: Sample organization ===


@pytest.fixture
def reference_time() -> datetime:
    return REFERENCE_TIME


@pytest.fixture
def sample_directory() -> list[DirectoryEntry]:
    """Eight people: an executive, two leads, three engineers, two sales reps."""
    return [
        DirectoryEntry(person_id="ana@acme.com", display_name="Ana", department="Executive",
                       job_title="CEO"),
        DirectoryEntry(person_id="ben@acme.com", display_name="Ben", department="Engineering",
                       job_title="Engineering Lead", manager_id="ana@acme.com"),
        DirectoryEntry(person_id="cara@acme.com", display_name="Cara", department="Sales",
                       job_title="Sales Lead", manager_id="ana@acme.com"),
        DirectoryEntry(person_id="dan@acme.com", department="Engineering",
                       manager_id="ben@acme.com"),
        DirectoryEntry(person_id="eve@acme.com", department="Engineering",
                       manager_id="ben@acme.com"),
        DirectoryEntry(person_id="fay@acme.com", department="Engineering",
                       manager_id="ben@acme.com"),
        DirectoryEntry(person_id="gus@acme.com", department="Sales",
                       manager_id="cara@acme.com"),
        DirectoryEntry(person_id="hal@acme.com", department="Sales",
                       manager_id="cara@acme.com"),
    ]


@pytest.fixture
def sample_events() -> list[CommunicationEvent]:
    """Two tight teams joined through eve, plus noise below the edge threshold."""
    events: list[CommunicationEvent] = []
    # Engineering
    events += _exchange("dan@acme.com", "eve@acme.com", 6, 6)
    events += _exchange("eve@acme.com", "fay@acme.com", 6, 6)
    events += _exchange("dan@acme.com", "fay@acme.com", 4, 4)
    events += _exchange("ben@acme.com", "dan@acme.com", 3, 3)
    events += _exchange("ben@acme.com", "eve@acme.com", 3, 3)
    # Sales
    events += _exchange("gus@acme.com", "hal@acme.com", 6, 6)
    events += _exchange("cara@acme.com", "gus@acme.com", 4, 4)
    events += _exchange("cara@acme.com", "hal@acme.com", 3, 3)
    # Bridge and leadership
    events += _exchange("eve@acme.com", "gus@acme.com", 4, 3)
    events += _exchange("ana@acme.com", "ben@acme.com", 3, 2)
    events += _exchange("ana@acme.com", "cara@acme.com", 3, 2)
    # Noise: a single message stays below the default threshold of 2
    events += _exchange("dan@acme.com", "hal@acme.com", 1, 0)
    # Another organization's traffic must never leak in
    events += _exchange("zed@globex.com", "yan@globex.com", 5, 5, org="globex")
    return events


@pytest.fixture
def event_source(sample_events, sample_directory) -> MemoryEventSource:
    return MemoryEventSource(sample_events, {ORG: sample_directory})


# === FIXTURES: Stores ===


@pytest.fixture
def graph_store() -> MemoryGraphStore:
    return MemoryGraphStore()


@pytest.fixture
def insight_store() -> MemoryInsightStore:
    return MemoryInsightStore()


@pytest.fixture
def job_store() -> MemoryJobStore:
    return MemoryJobStore()


# === FIXTURES: Graphs ===


@pytest.fixture
def make_graph():
    """Factory: build a snapshot DiGraph from (source, target, count) triples.

    Usage:
        graph = make_graph([("a", "b", 3)], departments={"a": "Eng"})
    """

    def _make(
        edges: list[tuple[str, str, int]],
        departments: dict[str, str] | None = None,
        nodes: list[str] | None = None,
        recent: dict[tuple[str, str], int] | None = None,
    ) -> nx.DiGraph:
        departments = departments or {}
        recent = recent or {}
        ids = set(nodes or [])
        for s, t, _ in edges:
            ids.update((s, t))
        persons = [
            Person(person_id=pid, organization_id=ORG, department=departments.get(pid))
            for pid in sorted(ids)
        ]
        comm_edges = [
            CommunicationEdge(
                organization_id=ORG, source=s, target=t, message_count=count,
                recent_count=recent.get((s, t), 0),
            )
            for s, t, count in edges
        ]
        return to_digraph(persons, comm_edges)

    return _make


@pytest.fixture
def abc_graph(make_graph) -> nx.DiGraph:
    """A -> B -> C chain with B answering A."""
    return make_graph(
        [("a", "b", 5), ("b", "a", 2), ("b", "c", 3)],
        departments={"a": "Eng", "b": "Eng", "c": "Sales"},
    )


@pytest.fixture
def two_cliques(make_graph) -> nx.DiGraph:
    """Two dense 4-person groups joined by a single weak link d -> e."""
    edges = []
    left = ["a", "b", "c", "d"]
    right = ["e", "f", "g", "h"]
    for group in (left, right):
        for s in group:
            for t in group:
                if s != t:
                    edges.append((s, t, 10))
    edges.append(("d", "e", 1))
    departments = {n: "Eng" for n in left} | {n: "Sales" for n in right}
    return make_graph(edges, departments=departments)
