# src/store/sqlite_insight_store.py — v1
"""SQLite-based insight store (INSIGHT_STORE_TYPE=sqlite).

Uses stdlib sqlite3. Indexed columns serve the dedup lookup; the full
insight is kept as JSON. Timestamps are stored as UTC ISO strings so that
lexical order matches chronological order.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from orgnet.core.models import Insight, utc_now
from orgnet.store.base_insight_store import (
    BaseInsightStore,
    check_updatable,
    window_start,
)

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS insights (
    insight_id TEXT PRIMARY KEY,
    organization_id TEXT NOT NULL,
    type TEXT NOT NULL,
    entity_id TEXT NOT NULL,
    created_at TEXT NOT NULL,
    data TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_insight_dedup
    ON insights(organization_id, type, entity_id, created_at);
"""


def _utc_iso(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat()


class SqliteInsightStore(BaseInsightStore):
    """SQLite-backed insight store."""

    def __init__(self, db_path: Path | str) -> None:
        db_path = str(db_path)
        if db_path != ":memory:":
            path = Path(db_path).expanduser()
            path.parent.mkdir(parents=True, exist_ok=True)
            db_path = str(path)
        self._conn = sqlite3.connect(db_path)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    def _decode(self, raw: str) -> Insight:
        return Insight(**json.loads(raw))

    async def find_recent_insight(
        self,
        organization_id: str,
        insight_type: str,
        entity_id: str,
        within_days: int,
        now: datetime | None = None,
    ) -> Insight | None:
        cutoff = window_start(now or utc_now(), within_days)
        cursor = self._conn.execute(
            """SELECT data FROM insights
               WHERE organization_id = ? AND type = ? AND entity_id = ?
                 AND created_at >= ?
               ORDER BY created_at DESC LIMIT 1""",
            (organization_id, insight_type, entity_id, _utc_iso(cutoff)),
        )
        row = cursor.fetchone()
        return self._decode(row[0]) if row else None

    async def insert_insight(self, insight: Insight) -> None:
        try:
            self._conn.execute(
                """INSERT INTO insights
                   (insight_id, organization_id, type, entity_id, created_at, data)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (
                    insight.insight_id,
                    insight.organization_id,
                    insight.type,
                    insight.entity_id,
                    _utc_iso(insight.created_at),
                    insight.model_dump_json(),
                ),
            )
        except sqlite3.IntegrityError as e:
            raise ValueError(f"Insight {insight.insight_id} already exists") from e
        self._conn.commit()

    async def update_insight(self, insight_id: str, fields: dict[str, Any]) -> Insight:
        check_updatable(fields)
        cursor = self._conn.execute(
            "SELECT data FROM insights WHERE insight_id = ?", (insight_id,)
        )
        row = cursor.fetchone()
        if row is None:
            raise KeyError(insight_id)
        updated = self._decode(row[0]).model_copy(update=fields)
        self._conn.execute(
            "UPDATE insights SET data = ? WHERE insight_id = ?",
            (updated.model_dump_json(), insight_id),
        )
        self._conn.commit()
        return updated

    async def list_insights(
        self, organization_id: str, insight_type: str | None = None
    ) -> list[Insight]:
        if insight_type is None:
            cursor = self._conn.execute(
                "SELECT data FROM insights WHERE organization_id = ? ORDER BY created_at",
                (organization_id,),
            )
        else:
            cursor = self._conn.execute(
                """SELECT data FROM insights
                   WHERE organization_id = ? AND type = ? ORDER BY created_at""",
                (organization_id, insight_type),
            )
        return [self._decode(row[0]) for row in cursor.fetchall()]

    def close(self) -> None:
        self._conn.close()
