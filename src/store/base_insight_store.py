# src/store/base_insight_store.py — v1
"""Abstract insight store interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any

from orgnet.core.models import Insight

# Fields an in-place update may touch; identity and created_at never change.
UPDATABLE_FIELDS: frozenset[str] = frozenset({
    "severity",
    "title",
    "description",
    "score",
    "metadata",
    "recommended_actions",
    "updated_at",
})


class BaseInsightStore(ABC):
    """Persistence for generated insights."""

    @abstractmethod
    async def find_recent_insight(
        self,
        organization_id: str,
        insight_type: str,
        entity_id: str,
        within_days: int,
        now: datetime | None = None,
    ) -> Insight | None:
        """Return the newest matching insight created within the last `within_days`."""

    @abstractmethod
    async def insert_insight(self, insight: Insight) -> None:
        """Persist a new insight."""

    @abstractmethod
    async def update_insight(self, insight_id: str, fields: dict[str, Any]) -> Insight:
        """Update an existing insight in place and return it.

        Raises:
            KeyError: If no insight has this id.
            ValueError: If a field may not be updated.
        """

    @abstractmethod
    async def list_insights(
        self, organization_id: str, insight_type: str | None = None
    ) -> list[Insight]:
        """Return the organization's insights, oldest first."""


def check_updatable(fields: dict[str, Any]) -> None:
    """Raise ValueError for fields an update must not touch."""
    bad = sorted(set(fields) - UPDATABLE_FIELDS)
    if bad:
        raise ValueError(f"Insight field(s) not updatable: {', '.join(bad)}")


def window_start(now: datetime, within_days: int) -> datetime:
    return now - timedelta(days=within_days)
