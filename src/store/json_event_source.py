# src/store/json_event_source.py — v1
"""Event source reading a JSON export.

Expected layout:
    {
      "organization_id": "acme",          (optional)
      "events": [{"sender": ..., "recipients": [...], "timestamp": ..., "channel": ...}],
      "people": [{"person_id": ..., "department": ..., "manager_id": ...}]
    }

Events without an organization_id are attributed to the organization
being queried.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from orgnet.core.models import CommunicationEvent, DirectoryEntry
from orgnet.store.base_event_source import BaseEventSource, in_window

logger = logging.getLogger(__name__)


class JsonEventSource(BaseEventSource):
    """Event source backed by a JSON file (parsed lazily, once)."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path).expanduser()
        self._raw: dict[str, Any] | None = None

    def _load(self) -> dict[str, Any]:
        if self._raw is None:
            with self._path.open(encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError(f"{self._path}: expected a JSON object at top level")
            self._raw = data
            logger.debug(
                "Loaded %d events, %d people from %s",
                len(data.get("events", [])), len(data.get("people", [])), self._path,
            )
        return self._raw

    async def fetch_events(
        self,
        organization_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[CommunicationEvent]:
        data = self._load()
        file_org = data.get("organization_id")
        if file_org is not None and file_org != organization_id:
            return []
        events = []
        for raw in data.get("events", []):
            event = CommunicationEvent(**{"organization_id": organization_id, **raw})
            if event.organization_id != organization_id:
                continue
            if in_window(event.timestamp, start, end):
                events.append(event)
        events.sort(key=lambda e: e.timestamp)
        return events

    async def fetch_directory(self, organization_id: str) -> list[DirectoryEntry]:
        data = self._load()
        file_org = data.get("organization_id")
        if file_org is not None and file_org != organization_id:
            return []
        return [DirectoryEntry(**raw) for raw in data.get("people", [])]
