# src/store/base_event_source.py — v1
"""Abstract source of raw communication events and directory data."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from orgnet.core.models import CommunicationEvent, DirectoryEntry


class BaseEventSource(ABC):
    """Read-only access to an organization's communication history."""

    @abstractmethod
    async def fetch_events(
        self,
        organization_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[CommunicationEvent]:
        """Return events with start <= timestamp <= end (open bounds when None)."""

    @abstractmethod
    async def fetch_directory(self, organization_id: str) -> list[DirectoryEntry]:
        """Return the organization's directory entries."""


def in_window(
    timestamp: datetime, start: datetime | None, end: datetime | None
) -> bool:
    """True when timestamp falls inside the inclusive [start, end] window."""
    if start is not None and timestamp < start:
        return False
    if end is not None and timestamp > end:
        return False
    return True
