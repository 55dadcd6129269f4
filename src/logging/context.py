# src/logging/context.py — v1
"""Contextual logging support: attach organization_id, run_id, stage to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging, set per analysis run.
_organization_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "organization_id", default=None
)
_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "run_id", default=None
)
_stage: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "stage", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    organization_id: str | None = None
    run_id: str | None = None
    stage: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        organization_id=_organization_id.get(),
        run_id=_run_id.get(),
        stage=_stage.get(),
    )


def set_run_context(organization_id: str, run_id: str) -> None:
    """Set run-level context (called once per analysis run)."""
    _organization_id.set(organization_id)
    _run_id.set(run_id)
    _stage.set(None)


def set_stage_context(stage: str | None) -> None:
    """Set stage-level context (called per stage execution)."""
    _stage.set(stage)


def clear_context() -> None:
    """Reset all context variables."""
    _organization_id.set(None)
    _run_id.set(None)
    _stage.set(None)
