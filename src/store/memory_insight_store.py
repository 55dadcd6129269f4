# src/store/memory_insight_store.py — v1
"""In-memory insight store."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from orgnet.core.models import Insight, utc_now
from orgnet.store.base_insight_store import (
    BaseInsightStore,
    check_updatable,
    window_start,
)


class MemoryInsightStore(BaseInsightStore):
    """Insight store held in a dict keyed by insight_id."""

    def __init__(self) -> None:
        self._insights: dict[str, Insight] = {}

    async def find_recent_insight(
        self,
        organization_id: str,
        insight_type: str,
        entity_id: str,
        within_days: int,
        now: datetime | None = None,
    ) -> Insight | None:
        cutoff = window_start(now or utc_now(), within_days)
        matches = [
            i for i in self._insights.values()
            if i.organization_id == organization_id
            and i.type == insight_type
            and i.entity_id == entity_id
            and i.created_at >= cutoff
        ]
        if not matches:
            return None
        return max(matches, key=lambda i: i.created_at).model_copy(deep=True)

    async def insert_insight(self, insight: Insight) -> None:
        if insight.insight_id in self._insights:
            raise ValueError(f"Insight {insight.insight_id} already exists")
        self._insights[insight.insight_id] = insight.model_copy(deep=True)

    async def update_insight(self, insight_id: str, fields: dict[str, Any]) -> Insight:
        check_updatable(fields)
        if insight_id not in self._insights:
            raise KeyError(insight_id)
        updated = self._insights[insight_id].model_copy(update=fields, deep=True)
        self._insights[insight_id] = updated
        return updated.model_copy(deep=True)

    async def list_insights(
        self, organization_id: str, insight_type: str | None = None
    ) -> list[Insight]:
        found = [
            i.model_copy(deep=True) for i in self._insights.values()
            if i.organization_id == organization_id
            and (insight_type is None or i.type == insight_type)
        ]
        found.sort(key=lambda i: i.created_at)
        return found
