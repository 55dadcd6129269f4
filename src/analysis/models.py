# src/analysis/models.py — v1
"""Analysis request, stage outcome and run result models."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from orgnet.core.models import JobStatus

STAGE_ORDER: list[str] = [
    "network",
    "centrality",
    "influence",
    "community",
    "hierarchy",
    "hidden-influencers",
    "patterns",
]
FULL_ANALYSIS = "full"
ANALYSIS_TYPES: frozenset[str] = frozenset(STAGE_ORDER) | {FULL_ANALYSIS}


class InvalidAnalysisRequestError(Exception):
    """Raised when an analysis request is rejected before any stage runs."""


class AnalysisOptions(BaseModel):
    """Per-run overrides; None falls back to settings."""

    min_communications: int | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    min_community_size: int | None = None
    max_iterations: int | None = None
    min_confidence: float | None = None
    timeframe_days: int | None = None

    @field_validator("start_date", "end_date")
    @classmethod
    def ensure_timezone(cls, v: datetime | None) -> datetime | None:  # noqa: N805
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class AnalysisRequest(BaseModel):
    organization_id: str
    analysis_types: list[str] = Field(default_factory=lambda: [FULL_ANALYSIS])
    options: AnalysisOptions = Field(default_factory=AnalysisOptions)
    analysis_job_id: str | None = None
    triggered_by: str | None = None


class StageOutcome(BaseModel):
    """Tagged outcome of one stage."""

    stage: str
    status: Literal["succeeded", "failed"]
    summary: dict[str, Any] = Field(default_factory=dict)
    error: str | None = None
    duration_ms: int = 0


class AnalysisResult(BaseModel):
    organization_id: str
    job_id: str
    run_id: str
    status: JobStatus
    stages_requested: list[str] = Field(default_factory=list)
    stage_summaries: dict[str, dict[str, Any]] = Field(default_factory=dict)
    stage_outcomes: list[StageOutcome] = Field(default_factory=list)
    failed_stages: list[str] = Field(default_factory=list)
    summary: dict[str, Any] = Field(default_factory=dict)
    alerts_generated: int = 0
    insights_failed: int = 0
    duration_ms: int = 0
    completed_at: datetime | None = None


def resolve_stages(analysis_types: list[str]) -> list[str]:
    """Validate requested types and return the stages to run, in fixed order.

    Raises:
        InvalidAnalysisRequestError: On an empty list or unknown type.
    """
    if not analysis_types:
        raise InvalidAnalysisRequestError("analysis_types must not be empty")
    unknown = sorted(set(analysis_types) - ANALYSIS_TYPES)
    if unknown:
        raise InvalidAnalysisRequestError(
            f"Unknown analysis type(s): {', '.join(unknown)}. "
            f"Available: {', '.join(STAGE_ORDER + [FULL_ANALYSIS])}"
        )
    if FULL_ANALYSIS in analysis_types:
        return list(STAGE_ORDER)
    requested = set(analysis_types)
    return [stage for stage in STAGE_ORDER if stage in requested]


def validate_request(request: AnalysisRequest) -> list[str]:
    """Check the whole request; returns the resolved stage list.

    Raises:
        InvalidAnalysisRequestError: If the request cannot run.
    """
    if not request.organization_id.strip():
        raise InvalidAnalysisRequestError("organization_id must not be empty")
    stages = resolve_stages(request.analysis_types)
    opts = request.options
    if opts.start_date and opts.end_date and opts.start_date > opts.end_date:
        raise InvalidAnalysisRequestError(
            f"start_date {opts.start_date} is after end_date {opts.end_date}"
        )
    for name in ("min_communications", "min_community_size", "max_iterations", "timeframe_days"):
        value = getattr(opts, name)
        if value is not None and value < 1:
            raise InvalidAnalysisRequestError(f"{name} must be >= 1")
    if opts.min_confidence is not None and not 0.0 <= opts.min_confidence <= 1.0:
        raise InvalidAnalysisRequestError("min_confidence must be within [0, 1]")
    return stages
