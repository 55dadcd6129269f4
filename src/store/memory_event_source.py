# src/store/memory_event_source.py — v1
"""In-memory event source."""

from __future__ import annotations

from datetime import datetime

from orgnet.core.models import CommunicationEvent, DirectoryEntry
from orgnet.store.base_event_source import BaseEventSource, in_window


class MemoryEventSource(BaseEventSource):
    """Event source over lists held in memory (single or multi organization)."""

    def __init__(
        self,
        events: list[CommunicationEvent] | None = None,
        directory: dict[str, list[DirectoryEntry]] | None = None,
    ) -> None:
        self._events = list(events or [])
        self._directory = dict(directory or {})

    def add_events(self, events: list[CommunicationEvent]) -> None:
        self._events.extend(events)

    def set_directory(self, organization_id: str, entries: list[DirectoryEntry]) -> None:
        self._directory[organization_id] = list(entries)

    async def fetch_events(
        self,
        organization_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[CommunicationEvent]:
        return sorted(
            (
                e for e in self._events
                if e.organization_id == organization_id
                and in_window(e.timestamp, start, end)
            ),
            key=lambda e: e.timestamp,
        )

    async def fetch_directory(self, organization_id: str) -> list[DirectoryEntry]:
        return list(self._directory.get(organization_id, []))
