# src/store/memory_graph_store.py — v1
"""In-process graph store backed by dictionaries.

Used by the CLI and the test-suite. Returned models are copies, so callers
cannot mutate stored state behind the store's back.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any

from orgnet.core.models import (
    IDENTITY_FIELDS,
    CommunicationEdge,
    Person,
    validate_derived_fields,
)
from orgnet.store.base_graph_store import BaseGraphStore

logger = logging.getLogger(__name__)


class MemoryGraphStore(BaseGraphStore):
    """Graph store held in memory, partitioned by organization."""

    def __init__(self) -> None:
        self._persons: dict[str, dict[str, Person]] = defaultdict(dict)
        self._edges: dict[str, dict[tuple[str, str], CommunicationEdge]] = defaultdict(dict)
        self._managers: dict[str, dict[str, str]] = defaultdict(dict)

    async def get_persons(self, organization_id: str) -> list[Person]:
        persons = self._persons.get(organization_id, {})
        return [persons[pid].model_copy() for pid in sorted(persons)]

    async def upsert_person(self, person: Person) -> None:
        org_persons = self._persons[person.organization_id]
        existing = org_persons.get(person.person_id)
        if existing is None:
            org_persons[person.person_id] = person.model_copy()
            return
        identity = {
            name: getattr(person, name)
            for name in IDENTITY_FIELDS
            if getattr(person, name) is not None
        }
        if identity:
            org_persons[person.person_id] = existing.model_copy(update=identity)

    async def get_edges(self, organization_id: str) -> list[CommunicationEdge]:
        edges = self._edges.get(organization_id, {})
        return [edges[key].model_copy() for key in sorted(edges)]

    async def upsert_edge(self, edge: CommunicationEdge) -> None:
        self._edges[edge.organization_id][edge.key] = edge.model_copy()

    async def prune_edges(
        self, organization_id: str, keep: set[tuple[str, str]]
    ) -> int:
        edges = self._edges.get(organization_id, {})
        stale = [key for key in edges if key not in keep]
        for key in stale:
            del edges[key]
        if stale:
            logger.debug("Pruned %d stale edges for %s", len(stale), organization_id)
        return len(stale)

    async def prune_persons(self, organization_id: str, keep: set[str]) -> int:
        persons = self._persons.get(organization_id, {})
        stale = {pid for pid in persons if pid not in keep}
        if not stale:
            return 0
        for pid in stale:
            del persons[pid]
        edges = self._edges.get(organization_id, {})
        for key in [k for k in edges if k[0] in stale or k[1] in stale]:
            del edges[key]
        managers = self._managers.get(organization_id, {})
        for report in [r for r, m in managers.items() if r in stale or m in stale]:
            del managers[report]
        logger.debug("Pruned %d stale persons for %s", len(stale), organization_id)
        return len(stale)

    async def get_reporting_lines(self, organization_id: str) -> dict[str, str]:
        return dict(self._managers.get(organization_id, {}))

    async def upsert_reporting_line(
        self, organization_id: str, report_id: str, manager_id: str
    ) -> None:
        if report_id == manager_id:
            raise ValueError(f"{report_id} cannot report to themselves")
        self._managers[organization_id][report_id] = manager_id

    async def prune_reporting_lines(self, organization_id: str, keep: set[str]) -> int:
        managers = self._managers.get(organization_id, {})
        stale = [report for report in managers if report not in keep]
        for report in stale:
            del managers[report]
        return len(stale)

    async def write_scores(
        self, organization_id: str, person_id: str, fields: dict[str, Any]
    ) -> None:
        await self.write_scores_batch(organization_id, {person_id: fields})

    async def write_scores_batch(
        self, organization_id: str, updates: dict[str, dict[str, Any]]
    ) -> None:
        persons = self._persons.get(organization_id, {})
        # Validate everything before touching state
        for person_id, fields in updates.items():
            validate_derived_fields(fields)
            if person_id not in persons:
                raise KeyError(f"Unknown person {person_id!r} in {organization_id!r}")
        for person_id, fields in updates.items():
            persons[person_id] = persons[person_id].model_copy(update=fields)

    @property
    def provider_name(self) -> str:
        return "memory"
