# src/store/store_factory.py — v1
"""Factory: instantiate graph and insight stores from configuration."""

from __future__ import annotations

import logging

from orgnet.config.settings import Settings
from orgnet.store.base_graph_store import BaseGraphStore
from orgnet.store.base_insight_store import BaseInsightStore

logger = logging.getLogger(__name__)


class UnsupportedStoreError(ValueError):
    """Raised when a store backend type is not supported."""


def create_graph_store(settings: Settings) -> BaseGraphStore:
    """Instantiate the configured graph store.

    Args:
        settings: Application settings (GRAPH_DB_TYPE).

    Returns:
        Configured BaseGraphStore instance.

    Raises:
        UnsupportedStoreError: If type is not supported.
    """
    db_type = settings.graph_db_type

    if db_type == "memory":
        from orgnet.store.memory_graph_store import MemoryGraphStore
        return MemoryGraphStore()

    if db_type == "neo4j":
        from orgnet.store.neo4j_graph_store import Neo4jGraphStore
        logger.info("Using Neo4j graph store at %s", settings.graph_db_uri)
        return Neo4jGraphStore(
            uri=settings.graph_db_uri,
            user=settings.graph_db_user,
            password=settings.graph_db_password,
            database=settings.graph_db_database,
        )

    raise UnsupportedStoreError(
        f"Unsupported graph store type: {db_type!r}. Available: memory, neo4j"
    )


def create_insight_store(settings: Settings) -> BaseInsightStore:
    """Instantiate the configured insight store.

    Raises:
        UnsupportedStoreError: If type is not supported.
    """
    store_type = settings.insight_store_type

    if store_type == "memory":
        from orgnet.store.memory_insight_store import MemoryInsightStore
        return MemoryInsightStore()

    if store_type == "sqlite":
        from orgnet.store.sqlite_insight_store import SqliteInsightStore
        return SqliteInsightStore(settings.insight_db_path)

    raise UnsupportedStoreError(
        f"Unsupported insight store type: {store_type!r}. Available: memory, sqlite"
    )
