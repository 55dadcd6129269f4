# src/store/base_job_store.py — v1
"""Analysis job records: abstract interface and in-memory implementation."""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from typing import Any

from orgnet.core.models import AnalysisJobRecord, JobStatus, utc_now

TERMINAL_STATUSES: frozenset[str] = frozenset({
    "completed", "completed_with_partial_failures", "failed",
})


class BaseJobStore(ABC):
    """Persistence for analysis job records."""

    @abstractmethod
    async def create_job_record(
        self,
        organization_id: str,
        analysis_types: list[str],
        job_id: str | None = None,
        triggered_by: str | None = None,
    ) -> AnalysisJobRecord:
        """Create a pending job record (or return the existing one for job_id)."""

    @abstractmethod
    async def update_job_record(
        self,
        job_id: str,
        status: JobStatus,
        result_summary: dict[str, Any] | None = None,
        duration_ms: int | None = None,
    ) -> AnalysisJobRecord:
        """Update status and results. Terminal statuses stamp completed_at."""

    @abstractmethod
    async def get_job_record(self, job_id: str) -> AnalysisJobRecord | None:
        """Return the job record, or None."""


class MemoryJobStore(BaseJobStore):
    """Job store held in memory."""

    def __init__(self) -> None:
        self._jobs: dict[str, AnalysisJobRecord] = {}

    async def create_job_record(
        self,
        organization_id: str,
        analysis_types: list[str],
        job_id: str | None = None,
        triggered_by: str | None = None,
    ) -> AnalysisJobRecord:
        if job_id is not None and job_id in self._jobs:
            return self._jobs[job_id].model_copy(deep=True)
        record = AnalysisJobRecord(
            job_id=job_id or f"job_{uuid.uuid4().hex[:12]}",
            organization_id=organization_id,
            analysis_types=list(analysis_types),
            triggered_by=triggered_by,
        )
        self._jobs[record.job_id] = record
        return record.model_copy(deep=True)

    async def update_job_record(
        self,
        job_id: str,
        status: JobStatus,
        result_summary: dict[str, Any] | None = None,
        duration_ms: int | None = None,
    ) -> AnalysisJobRecord:
        if job_id not in self._jobs:
            raise KeyError(job_id)
        update: dict[str, Any] = {"status": status}
        if result_summary is not None:
            update["result_summary"] = result_summary
        if duration_ms is not None:
            update["duration_ms"] = duration_ms
        if status in TERMINAL_STATUSES:
            update["completed_at"] = utc_now()
        record = self._jobs[job_id].model_copy(update=update, deep=True)
        self._jobs[job_id] = record
        return record.model_copy(deep=True)

    async def get_job_record(self, job_id: str) -> AnalysisJobRecord | None:
        record = self._jobs.get(job_id)
        return record.model_copy(deep=True) if record else None
