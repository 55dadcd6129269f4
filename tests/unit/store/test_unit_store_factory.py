# tests/unit/store/test_unit_store_factory.py — v1
"""Tests for store/store_factory.py and the Neo4j adapter (driver mocked)."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from neo4j.exceptions import ServiceUnavailable

from orgnet.config.settings import Settings
from orgnet.store.base_graph_store import StoreUnavailableError
from orgnet.store.memory_graph_store import MemoryGraphStore
from orgnet.store.memory_insight_store import MemoryInsightStore
from orgnet.store.neo4j_graph_store import Neo4jGraphStore
from orgnet.store.sqlite_insight_store import SqliteInsightStore
from orgnet.store.store_factory import (
    UnsupportedStoreError,
    create_graph_store,
    create_insight_store,
)


class TestCreateGraphStore:
    def test_memory(self):
        assert isinstance(create_graph_store(Settings(_env_file=None)), MemoryGraphStore)

    def test_neo4j(self):
        settings = Settings(_env_file=None, graph_db_type="neo4j", graph_db_user="neo4j")
        with patch("orgnet.store.neo4j_graph_store.GraphDatabase") as gdb:
            store = create_graph_store(settings)
        assert isinstance(store, Neo4jGraphStore)
        gdb.driver.assert_called_once_with("bolt://localhost:7687", auth=("neo4j", ""))

    def test_unsupported(self):
        settings = Settings(_env_file=None).model_copy(update={"graph_db_type": "arangodb"})
        with pytest.raises(UnsupportedStoreError, match="arangodb"):
            create_graph_store(settings)


class TestCreateInsightStore:
    def test_memory(self):
        assert isinstance(create_insight_store(Settings(_env_file=None)), MemoryInsightStore)

    def test_sqlite(self, tmp_path):
        settings = Settings(
            _env_file=None, insight_store_type="sqlite", insight_db_path=tmp_path / "i.db",
        )
        store = create_insight_store(settings)
        assert isinstance(store, SqliteInsightStore)
        store.close()

    def test_unsupported_is_value_error(self):
        settings = Settings(_env_file=None).model_copy(update={"insight_store_type": "redis"})
        with pytest.raises(ValueError):
            create_insight_store(settings)


def _neo4j_store(records: list[dict] | None = None, error: Exception | None = None):
    session = MagicMock()
    if error is not None:
        session.run.side_effect = error
    else:
        rows = []
        for data in records or []:
            record = MagicMock()
            record.data.return_value = data
            rows.append(record)
        session.run.return_value = rows
    driver = MagicMock()
    driver.session.return_value.__enter__.return_value = session
    with patch("orgnet.store.neo4j_graph_store.GraphDatabase") as gdb:
        gdb.driver.return_value = driver
        store = Neo4jGraphStore()
    return store, session


class TestNeo4jGraphStore:
    @pytest.mark.asyncio
    async def test_get_persons_maps_properties(self):
        store, _ = _neo4j_store([{"props": {
            "organizationId": "acme", "person_id": "a", "department": "Eng", "pagerank": 0.4,
        }}])
        [person] = await store.get_persons("acme")
        assert person.person_id == "a"
        assert person.organization_id == "acme"
        assert person.pagerank == 0.4

    @pytest.mark.asyncio
    async def test_unavailable_maps_to_store_error(self):
        store, _ = _neo4j_store(error=ServiceUnavailable("down"))
        with pytest.raises(StoreUnavailableError):
            await store.get_edges("acme")

    @pytest.mark.asyncio
    async def test_batch_is_single_statement(self):
        store, session = _neo4j_store([{"cnt": 2}])
        await store.write_scores_batch("acme", {
            "a": {"pagerank": 1.0}, "b": {"pagerank": 0.5},
        })
        assert session.run.call_count == 1
        _, kwargs = session.run.call_args
        assert [row["person_id"] for row in kwargs["rows"]] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_batch_rejects_unknown_fields_before_query(self):
        store, session = _neo4j_store()
        with pytest.raises(ValueError):
            await store.write_scores_batch("acme", {"a": {"job_title": "CTO"}})
        session.run.assert_not_called()

    @pytest.mark.asyncio
    async def test_self_report_rejected(self):
        store, session = _neo4j_store()
        with pytest.raises(ValueError):
            await store.upsert_reporting_line("acme", "a", "a")
        session.run.assert_not_called()

    @pytest.mark.asyncio
    async def test_prune_persons_detaches(self):
        store, session = _neo4j_store([{"cnt": 2}])
        assert await store.prune_persons("acme", {"b", "a"}) == 2
        query, = session.run.call_args.args
        assert "DETACH DELETE" in query
        assert session.run.call_args.kwargs["keep"] == ["a", "b"]
        assert session.run.call_args.kwargs["org"] == "acme"

    def test_provider_name(self):
        store, _ = _neo4j_store()
        assert store.provider_name == "neo4j"
