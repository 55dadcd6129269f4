# src/store/neo4j_graph_store.py — v1
"""Neo4j graph store adapter.

Uses the neo4j Python driver. Persons are (:Person) nodes, communication
edges are [:COMMUNICATES_WITH] relationships and manager links are
[:REPORTS_TO] relationships. Every query is scoped by organizationId.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from neo4j import GraphDatabase
from neo4j.exceptions import ServiceUnavailable, SessionExpired

from orgnet.core.models import (
    IDENTITY_FIELDS,
    CommunicationEdge,
    Person,
    validate_derived_fields,
)
from orgnet.store.base_graph_store import BaseGraphStore, StoreUnavailableError

logger = logging.getLogger(__name__)

_PERSON_FIELDS = [name for name in Person.model_fields if name != "organization_id"]


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


class Neo4jGraphStore(BaseGraphStore):
    """Graph store backed by Neo4j."""

    def __init__(
        self,
        uri: str = "bolt://localhost:7687",
        user: str = "",
        password: str = "",
        database: str = "neo4j",
    ) -> None:
        auth = (user, password) if user else None
        self._driver = GraphDatabase.driver(uri, auth=auth)
        self._database = database

    def _run(self, query: str, **params: Any) -> list[dict]:
        """Execute a Cypher query and return results as list of dicts."""
        try:
            with self._driver.session(database=self._database) as session:
                result = session.run(query, **params)
                return [record.data() for record in result]
        except (ServiceUnavailable, SessionExpired) as e:
            raise StoreUnavailableError(f"Neo4j unavailable: {e}") from e

    # --- Persons ---

    async def get_persons(self, organization_id: str) -> list[Person]:
        rows = self._run(
            "MATCH (p:Person {organizationId: $org}) "
            "RETURN properties(p) AS props ORDER BY p.person_id",
            org=organization_id,
        )
        persons = []
        for row in rows:
            props = row["props"]
            persons.append(Person(
                organization_id=organization_id,
                **{k: props.get(k) for k in _PERSON_FIELDS},
            ))
        return persons

    async def upsert_person(self, person: Person) -> None:
        identity = {
            name: getattr(person, name)
            for name in IDENTITY_FIELDS
            if getattr(person, name) is not None
        }
        self._run(
            "MERGE (p:Person {organizationId: $org, person_id: $pid}) "
            "SET p += $identity",
            org=person.organization_id,
            pid=person.person_id,
            identity=identity,
        )

    # --- Edges ---

    async def get_edges(self, organization_id: str) -> list[CommunicationEdge]:
        rows = self._run(
            "MATCH (a:Person {organizationId: $org})-[r:COMMUNICATES_WITH]->"
            "(b:Person {organizationId: $org}) "
            "RETURN a.person_id AS source, b.person_id AS target, properties(r) AS props "
            "ORDER BY source, target",
            org=organization_id,
        )
        edges = []
        for row in rows:
            props = row["props"]
            first = props.get("first_interaction")
            last = props.get("last_interaction")
            edges.append(CommunicationEdge(
                organization_id=organization_id,
                source=row["source"],
                target=row["target"],
                message_count=props.get("message_count", 1),
                recent_count=props.get("recent_count", 0),
                first_interaction=datetime.fromisoformat(first) if first else None,
                last_interaction=datetime.fromisoformat(last) if last else None,
            ))
        return edges

    async def upsert_edge(self, edge: CommunicationEdge) -> None:
        self._run(
            "MATCH (a:Person {organizationId: $org, person_id: $src}), "
            "(b:Person {organizationId: $org, person_id: $tgt}) "
            "MERGE (a)-[r:COMMUNICATES_WITH]->(b) "
            "SET r.message_count = $message_count, r.recent_count = $recent_count, "
            "r.first_interaction = $first, r.last_interaction = $last",
            org=edge.organization_id,
            src=edge.source,
            tgt=edge.target,
            message_count=edge.message_count,
            recent_count=edge.recent_count,
            first=_iso(edge.first_interaction),
            last=_iso(edge.last_interaction),
        )

    async def prune_edges(
        self, organization_id: str, keep: set[tuple[str, str]]
    ) -> int:
        results = self._run(
            "MATCH (a:Person {organizationId: $org})-[r:COMMUNICATES_WITH]->"
            "(b:Person {organizationId: $org}) "
            "WHERE NOT [a.person_id, b.person_id] IN $keep "
            "DELETE r RETURN count(r) AS cnt",
            org=organization_id,
            keep=[list(k) for k in sorted(keep)],
        )
        return results[0]["cnt"] if results else 0

    async def prune_persons(self, organization_id: str, keep: set[str]) -> int:
        # DETACH DELETE drops the Person's edges and reporting lines with it
        results = self._run(
            "MATCH (p:Person {organizationId: $org}) "
            "WHERE NOT p.person_id IN $keep "
            "DETACH DELETE p RETURN count(p) AS cnt",
            org=organization_id,
            keep=sorted(keep),
        )
        return results[0]["cnt"] if results else 0

    # --- Formal hierarchy ---

    async def get_reporting_lines(self, organization_id: str) -> dict[str, str]:
        rows = self._run(
            "MATCH (r:Person {organizationId: $org})-[:REPORTS_TO]->"
            "(m:Person {organizationId: $org}) "
            "RETURN r.person_id AS report, m.person_id AS manager",
            org=organization_id,
        )
        return {row["report"]: row["manager"] for row in rows}

    async def upsert_reporting_line(
        self, organization_id: str, report_id: str, manager_id: str
    ) -> None:
        if report_id == manager_id:
            raise ValueError(f"{report_id} cannot report to themselves")
        self._run(
            "MATCH (r:Person {organizationId: $org, person_id: $report}) "
            "OPTIONAL MATCH (r)-[old:REPORTS_TO]->() DELETE old "
            "WITH r "
            "MATCH (m:Person {organizationId: $org, person_id: $manager}) "
            "MERGE (r)-[:REPORTS_TO]->(m)",
            org=organization_id,
            report=report_id,
            manager=manager_id,
        )

    async def prune_reporting_lines(self, organization_id: str, keep: set[str]) -> int:
        results = self._run(
            "MATCH (r:Person {organizationId: $org})-[l:REPORTS_TO]->() "
            "WHERE NOT r.person_id IN $keep "
            "DELETE l RETURN count(l) AS cnt",
            org=organization_id,
            keep=sorted(keep),
        )
        return results[0]["cnt"] if results else 0

    # --- Derived scores ---

    async def write_scores(
        self, organization_id: str, person_id: str, fields: dict[str, Any]
    ) -> None:
        await self.write_scores_batch(organization_id, {person_id: fields})

    async def write_scores_batch(
        self, organization_id: str, updates: dict[str, dict[str, Any]]
    ) -> None:
        for fields in updates.values():
            validate_derived_fields(fields)
        rows = [
            {"person_id": pid, "fields": fields}
            for pid, fields in sorted(updates.items())
        ]
        # Single statement, so the batch commits or fails as one transaction.
        # SET += with a null value removes the property.
        results = self._run(
            "UNWIND $rows AS row "
            "MATCH (p:Person {organizationId: $org, person_id: row.person_id}) "
            "SET p += row.fields RETURN count(p) AS cnt",
            org=organization_id,
            rows=rows,
        )
        written = results[0]["cnt"] if results else 0
        if written != len(rows):
            logger.warning(
                "Score batch for %s matched %d of %d persons",
                organization_id, written, len(rows),
            )

    @property
    def provider_name(self) -> str:
        return "neo4j"

    def close(self) -> None:
        """Close the driver connection."""
        self._driver.close()
