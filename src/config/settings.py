# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for store backends, stage thresholds and logging.
Heuristic thresholds (hierarchy levels, alert cut-offs) are provisional
defaults and can be overridden per deployment.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Network builder ===
    network_min_communications: int = 2
    recent_activity_days: int = 30

    # === Centrality ===
    pagerank_damping: float = 0.85
    pagerank_max_iter: int = 100
    pagerank_tol: float = 1e-6
    betweenness_sample_size: int | None = None
    closeness_scope: Literal["reachable", "component_scaled"] = "reachable"
    random_seed: int | None = 42

    # === Community detection ===
    community_min_size: int = 2
    community_max_iterations: int = 10
    community_resolution: float = 1.0
    community_small_strategy: Literal["merge", "isolate"] = "merge"
    low_modularity_threshold: float = 0.3
    isolated_nodes_alert_threshold: int = 5

    # === Hierarchy comparison ===
    hierarchy_senior_direct_reports: int = 10
    hierarchy_shadow_gap: int = 2
    hierarchy_alignment_threshold: float = 0.5
    shadow_leader_alert_threshold: int = 3

    # === Hidden influencers ===
    hidden_min_confidence: float = 0.6
    hidden_key_person_confidence: float = 0.8

    # === Pattern analysis ===
    pattern_timeframe_days: int = 90
    business_hours_start: int = 8
    business_hours_end: int = 18

    # === Insights ===
    insight_dedup_window_days: int = 7
    insight_max_person_insights: int = 5

    # === Orchestration ===
    run_lock_enabled: bool = True

    # === Graph database ===
    graph_db_type: Literal["memory", "neo4j"] = "memory"
    graph_db_uri: str = "bolt://localhost:7687"
    graph_db_database: str = "neo4j"
    graph_db_user: str = ""
    graph_db_password: str = ""

    # === Insight store ===
    insight_store_type: Literal["memory", "sqlite"] = "memory"
    insight_db_path: Path = Path("~/.orgnet/insights.db")

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("network_min_communications", "community_min_size")
    @classmethod
    def validate_positive(cls, v: int) -> int:  # noqa: N805
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @field_validator("pagerank_damping")
    @classmethod
    def validate_damping(cls, v: float) -> float:  # noqa: N805
        if not 0.0 < v < 1.0:
            raise ValueError("pagerank_damping must be in (0, 1)")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.graph_db_type == "neo4j" and not self.graph_db_uri:
            errors.append("GRAPH_DB_TYPE is neo4j but GRAPH_DB_URI is empty")

        if not 0 <= self.business_hours_start < self.business_hours_end <= 23:
            errors.append(
                "BUSINESS_HOURS_START must be < BUSINESS_HOURS_END, both within 0-23"
            )

        for name in ("hidden_min_confidence", "hidden_key_person_confidence"):
            if not 0.0 <= getattr(self, name) <= 1.0:
                errors.append(f"{name.upper()} must be within [0, 1]")

        if self.pagerank_max_iter < 1 or self.community_max_iterations < 1:
            errors.append("iteration caps must be >= 1")

        if self.insight_dedup_window_days < 0:
            errors.append("INSIGHT_DEDUP_WINDOW_DAYS must be >= 0")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-run config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
