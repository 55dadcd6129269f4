# src/store/base_graph_store.py — v1
"""Abstract graph store interface for the communication network.

Every operation is scoped to one organization. Persons are merged by
person_id, edges by (source, target); edge weights are absolute values so a
rerun with identical inputs converges to the same graph.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from orgnet.core.models import CommunicationEdge, Person


class StoreUnavailableError(Exception):
    """Raised when the backing store cannot be reached."""


class BaseGraphStore(ABC):
    """Unified interface for graph store backends."""

    # --- Persons ---

    @abstractmethod
    async def get_persons(self, organization_id: str) -> list[Person]:
        """Return all Persons of an organization, ordered by person_id."""

    @abstractmethod
    async def upsert_person(self, person: Person) -> None:
        """Insert or merge a Person.

        Identity attributes that are set on `person` overwrite stored ones;
        derived fields already stored are never clobbered.
        """

    # --- Edges ---

    @abstractmethod
    async def get_edges(self, organization_id: str) -> list[CommunicationEdge]:
        """Return all communication edges of an organization."""

    @abstractmethod
    async def upsert_edge(self, edge: CommunicationEdge) -> None:
        """Insert or replace an edge (merge by source+target)."""

    @abstractmethod
    async def prune_edges(
        self, organization_id: str, keep: set[tuple[str, str]]
    ) -> int:
        """Delete edges whose (source, target) is not in `keep`. Returns count deleted."""

    @abstractmethod
    async def prune_persons(self, organization_id: str, keep: set[str]) -> int:
        """Delete Persons not in `keep`, with their edges and reporting lines.

        Returns count of Persons deleted.
        """

    # --- Formal hierarchy ---

    @abstractmethod
    async def get_reporting_lines(self, organization_id: str) -> dict[str, str]:
        """Return report_id -> manager_id for the organization."""

    @abstractmethod
    async def upsert_reporting_line(
        self, organization_id: str, report_id: str, manager_id: str
    ) -> None:
        """Record that report_id reports to manager_id (replaces previous manager)."""

    @abstractmethod
    async def prune_reporting_lines(self, organization_id: str, keep: set[str]) -> int:
        """Delete reporting lines whose report_id is not in `keep`. Returns count deleted."""

    # --- Derived scores ---

    @abstractmethod
    async def write_scores(
        self, organization_id: str, person_id: str, fields: dict[str, Any]
    ) -> None:
        """Write derived fields on one Person.

        Raises:
            ValueError: If a field is not a derived field.
            KeyError: If the Person does not exist.
        """

    @abstractmethod
    async def write_scores_batch(
        self, organization_id: str, updates: dict[str, dict[str, Any]]
    ) -> None:
        """Write derived fields on many Persons, all-or-nothing.

        Args:
            organization_id: Owning organization.
            updates: person_id -> {field: value}. A None value clears the field.
        """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (memory, neo4j)."""
