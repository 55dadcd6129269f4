# src/analysis/orchestrator.py — v1
"""Analysis orchestrator: validate a request, run stages, emit insights.

Stages run sequentially in a fixed order:
  network -> centrality -> influence -> community -> hierarchy
  -> hidden-influencers -> patterns

Each stage reloads the organization's snapshot from the graph store, so it
sees what earlier stages wrote. A stage exception is logged and recorded as
a failed StageOutcome; later stages still run. StoreUnavailableError is an
infrastructure failure: the job is marked failed and the error propagates
so the queue layer can retry.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Callable

from orgnet.analysis.insights import InsightThresholds, generate_insights, save_insights
from orgnet.analysis.models import (
    AnalysisRequest,
    AnalysisResult,
    StageOutcome,
    validate_request,
)
from orgnet.config.settings import Settings, load_settings
from orgnet.core.models import utc_now
from orgnet.logging.context import clear_context, set_run_context, set_stage_context
from orgnet.network.builder import build_network, persist_network
from orgnet.network.centrality import calculate_centrality, store_centrality
from orgnet.network.community import detect_communities, store_communities
from orgnet.network.graph_loader import load_network
from orgnet.network.hidden_influencers import (
    analyze_risk,
    detect_hidden_influencers,
    store_hidden_influencers,
)
from orgnet.network.hierarchy import (
    InsufficientHierarchyDataError,
    compare_hierarchy,
    store_hierarchy,
)
from orgnet.network.influence import calculate_influence, store_influence
from orgnet.network.models import HierarchyResult, RiskAssessment
from orgnet.network.patterns import analyze_patterns
from orgnet.store.base_graph_store import StoreUnavailableError

if TYPE_CHECKING:
    from orgnet.store.base_event_source import BaseEventSource
    from orgnet.store.base_graph_store import BaseGraphStore
    from orgnet.store.base_insight_store import BaseInsightStore
    from orgnet.store.base_job_store import BaseJobStore

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, str], Any]


@dataclass
class _RunContext:
    """Mutable state shared by the stages of one run."""

    request: AnalysisRequest
    reference_time: datetime
    results: dict[str, Any] = field(default_factory=dict)
    risk: RiskAssessment | None = None

    @property
    def organization_id(self) -> str:
        return self.request.organization_id


class AnalysisOrchestrator:
    """Run analysis stages for one organization at a time.

    Args:
        graph_store: Graph store holding Persons, edges and derived scores.
        event_source: Source of raw events and directory entries.
        insight_store: Destination of generated insights.
        job_store: Job record persistence.
        settings: Application settings (defaults loaded from .env).
        progress_callback: Optional callable receiving
            (stages_completed, stages_requested, stage) after each stage.
    """

    def __init__(
        self,
        graph_store: BaseGraphStore,
        event_source: BaseEventSource,
        insight_store: BaseInsightStore,
        job_store: BaseJobStore,
        settings: Settings | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        self._graph = graph_store
        self._events = event_source
        self._insights = insight_store
        self._jobs = job_store
        self._settings = settings or load_settings()
        self._progress = progress_callback
        self._locks: dict[str, asyncio.Lock] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(self, request: AnalysisRequest) -> AnalysisResult:
        """Run the requested stages and emit insights.

        Args:
            request: Analysis request.

        Returns:
            AnalysisResult with per-stage outcomes and summaries.

        Raises:
            InvalidAnalysisRequestError: Before any stage runs.
            StoreUnavailableError: If a store cannot be reached.
        """
        stages = validate_request(request)
        if not self._settings.run_lock_enabled:
            return await self._run_stages(request, stages)
        lock = self._locks.setdefault(request.organization_id, asyncio.Lock())
        if lock.locked():
            logger.info("Waiting for running analysis of %s", request.organization_id)
        async with lock:
            return await self._run_stages(request, stages)

    # ------------------------------------------------------------------
    # Run lifecycle
    # ------------------------------------------------------------------

    async def _run_stages(self, request: AnalysisRequest, stages: list[str]) -> AnalysisResult:
        run_id = f"run_{uuid.uuid4().hex[:12]}"
        set_run_context(request.organization_id, run_id)
        try:
            return await self._run_job(request, stages, run_id)
        finally:
            clear_context()

    async def _run_job(
        self, request: AnalysisRequest, stages: list[str], run_id: str
    ) -> AnalysisResult:
        org = request.organization_id
        start = time.monotonic()

        job = await self._jobs.create_job_record(
            organization_id=org,
            analysis_types=request.analysis_types,
            job_id=request.analysis_job_id,
            triggered_by=request.triggered_by,
        )
        ctx = _RunContext(
            request=request,
            reference_time=request.options.end_date or utc_now(),
        )
        try:
            await self._jobs.update_job_record(job.job_id, status="running")
            logger.info("Starting analysis %s: %s", job.job_id, ", ".join(stages))

            outcomes: list[StageOutcome] = []
            for index, stage in enumerate(stages, start=1):
                set_stage_context(stage)
                outcomes.append(await self._execute_stage(stage, ctx))
                await self._notify(index, len(stages), stage)

            set_stage_context("insights")
            alerts, insights_failed = await self._emit_insights(ctx)
        except StoreUnavailableError as e:
            logger.error("Store unavailable, marking job %s failed: %s", job.job_id, e)
            await self._jobs.update_job_record(
                job.job_id,
                status="failed",
                result_summary={"error": str(e)},
                duration_ms=int((time.monotonic() - start) * 1000),
            )
            raise

        failed = [o.stage for o in outcomes if o.status == "failed"]
        status = "completed_with_partial_failures" if failed else "completed"
        summary = self._job_summary(ctx, alerts)
        duration_ms = int((time.monotonic() - start) * 1000)

        record = await self._jobs.update_job_record(
            job.job_id, status=status, result_summary=summary, duration_ms=duration_ms,
        )
        logger.info(
            "Analysis %s finished with status %s in %dms (%d insights, %d failed stages)",
            job.job_id, status, duration_ms, alerts, len(failed),
        )
        return AnalysisResult(
            organization_id=org,
            job_id=job.job_id,
            run_id=run_id,
            status=status,
            stages_requested=stages,
            stage_summaries={o.stage: o.summary for o in outcomes if o.status == "succeeded"},
            stage_outcomes=outcomes,
            failed_stages=failed,
            summary=summary,
            alerts_generated=alerts,
            insights_failed=insights_failed,
            duration_ms=duration_ms,
            completed_at=record.completed_at,
        )

    async def _execute_stage(self, stage: str, ctx: _RunContext) -> StageOutcome:
        logger.info("Running stage: %s", stage)
        start = time.monotonic()
        try:
            summary = await self._run_stage(stage, ctx)
        except StoreUnavailableError:
            raise
        except Exception as e:
            logger.exception("Stage %s failed", stage)
            return StageOutcome(
                stage=stage,
                status="failed",
                error=f"{type(e).__name__}: {e}",
                duration_ms=int((time.monotonic() - start) * 1000),
            )
        duration_ms = int((time.monotonic() - start) * 1000)
        logger.info("Stage %s completed in %dms", stage, duration_ms)
        return StageOutcome(
            stage=stage, status="succeeded", summary=summary, duration_ms=duration_ms,
        )

    async def _notify(self, completed: int, requested: int, stage: str) -> None:
        if self._progress is None:
            return
        try:
            outcome = self._progress(completed, requested, stage)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:
            logger.warning("Progress callback failed after stage %s", stage, exc_info=True)

    # ------------------------------------------------------------------
    # Internal stage dispatch
    # ------------------------------------------------------------------

    async def _run_stage(self, stage: str, ctx: _RunContext) -> dict[str, Any]:
        """Dispatch a single stage by name."""
        if stage == "network":
            return await self._execute_network(ctx)
        elif stage == "centrality":
            return await self._execute_centrality(ctx)
        elif stage == "influence":
            return await self._execute_influence(ctx)
        elif stage == "community":
            return await self._execute_community(ctx)
        elif stage == "hierarchy":
            return await self._execute_hierarchy(ctx)
        elif stage == "hidden-influencers":
            return await self._execute_hidden_influencers(ctx)
        elif stage == "patterns":
            return await self._execute_patterns(ctx)
        else:
            raise ValueError(f"Unknown stage: {stage}")

    async def _execute_network(self, ctx: _RunContext) -> dict[str, Any]:
        """Build the network from raw events and persist it."""
        opts = ctx.request.options
        s = self._settings
        events = await self._events.fetch_events(
            ctx.organization_id, opts.start_date, opts.end_date,
        )
        directory = await self._events.fetch_directory(ctx.organization_id)
        result = build_network(
            ctx.organization_id,
            events,
            directory,
            start=opts.start_date,
            end=opts.end_date,
            min_communications=opts.min_communications or s.network_min_communications,
            reference_time=ctx.reference_time,
            recent_days=s.recent_activity_days,
        )
        await persist_network(self._graph, result)
        ctx.results["network"] = result
        return result.summary()

    async def _execute_centrality(self, ctx: _RunContext) -> dict[str, Any]:
        s = self._settings
        graph = await load_network(self._graph, ctx.organization_id)
        result = calculate_centrality(
            graph,
            damping=s.pagerank_damping,
            max_iter=s.pagerank_max_iter,
            tol=s.pagerank_tol,
            betweenness_sample_size=s.betweenness_sample_size,
            closeness_scope=s.closeness_scope,
            seed=s.random_seed,
        )
        await store_centrality(self._graph, ctx.organization_id, result)
        ctx.results["centrality"] = result
        return result.summary()

    async def _execute_influence(self, ctx: _RunContext) -> dict[str, Any]:
        graph = await load_network(self._graph, ctx.organization_id)
        result = calculate_influence(graph, ctx.results.get("centrality"))
        await store_influence(self._graph, ctx.organization_id, result)
        ctx.results["influence"] = result
        return result.summary()

    async def _execute_community(self, ctx: _RunContext) -> dict[str, Any]:
        opts = ctx.request.options
        s = self._settings
        graph = await load_network(self._graph, ctx.organization_id)
        result = detect_communities(
            graph,
            min_community_size=opts.min_community_size or s.community_min_size,
            max_iterations=opts.max_iterations or s.community_max_iterations,
            small_community_strategy=s.community_small_strategy,
            resolution=s.community_resolution,
            seed=s.random_seed,
        )
        await store_communities(self._graph, ctx.organization_id, result)
        ctx.results["community"] = result
        return result.summary()

    async def _execute_hierarchy(self, ctx: _RunContext) -> dict[str, Any]:
        result = await self._compare_hierarchy(ctx)
        await store_hierarchy(self._graph, ctx.organization_id, result)
        ctx.results["hierarchy"] = result
        return result.summary()

    async def _execute_hidden_influencers(self, ctx: _RunContext) -> dict[str, Any]:
        s = self._settings
        opts = ctx.request.options
        graph = await load_network(self._graph, ctx.organization_id)

        hierarchy = ctx.results.get("hierarchy")
        if hierarchy is None:
            try:
                hierarchy = await self._compare_hierarchy(ctx)
            except InsufficientHierarchyDataError:
                logger.info("No reporting lines; position indicators skipped")

        min_confidence = opts.min_confidence
        if min_confidence is None:
            min_confidence = s.hidden_min_confidence
        result = detect_hidden_influencers(
            graph,
            influence=ctx.results.get("influence"),
            hierarchy=hierarchy,
            communities=ctx.results.get("community"),
            min_confidence=min_confidence,
        )
        risk = analyze_risk(result, key_person_confidence=s.hidden_key_person_confidence)
        await store_hidden_influencers(
            self._graph, ctx.organization_id, result, list(graph.nodes),
        )
        ctx.results["hidden-influencers"] = result
        ctx.risk = risk
        return {
            **result.summary(),
            "risk_level": risk.risk_level,
            "key_person_count": risk.key_person_count,
        }

    async def _execute_patterns(self, ctx: _RunContext) -> dict[str, Any]:
        s = self._settings
        days = ctx.request.options.timeframe_days or s.pattern_timeframe_days
        window_start = ctx.reference_time - timedelta(days=days)
        events = await self._events.fetch_events(
            ctx.organization_id, window_start, ctx.reference_time,
        )
        graph = await load_network(self._graph, ctx.organization_id)
        result = analyze_patterns(
            events,
            graph,
            reference_time=ctx.reference_time,
            timeframe_days=days,
            business_hours=(s.business_hours_start, s.business_hours_end),
        )
        ctx.results["patterns"] = result
        return result.summary()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _compare_hierarchy(self, ctx: _RunContext) -> HierarchyResult:
        s = self._settings
        graph = await load_network(self._graph, ctx.organization_id)
        lines = await self._graph.get_reporting_lines(ctx.organization_id)
        return compare_hierarchy(
            graph,
            lines,
            influence=ctx.results.get("influence"),
            senior_direct_reports=s.hierarchy_senior_direct_reports,
            shadow_gap=s.hierarchy_shadow_gap,
        )

    async def _emit_insights(self, ctx: _RunContext) -> tuple[int, int]:
        s = self._settings
        drafts = generate_insights(
            ctx.organization_id,
            communities=ctx.results.get("community"),
            hierarchy=ctx.results.get("hierarchy"),
            hidden=ctx.results.get("hidden-influencers"),
            risk=ctx.risk,
            patterns=ctx.results.get("patterns"),
            thresholds=InsightThresholds(
                low_modularity=s.low_modularity_threshold,
                isolated_nodes=s.isolated_nodes_alert_threshold,
                alignment=s.hierarchy_alignment_threshold,
                shadow_leaders=s.shadow_leader_alert_threshold,
                key_person_confidence=s.hidden_key_person_confidence,
                max_person_insights=s.insight_max_person_insights,
            ),
        )
        saved, failed = await save_insights(
            self._insights, ctx.organization_id, drafts,
            dedup_window_days=s.insight_dedup_window_days,
        )
        if failed:
            logger.warning("%d of %d insights could not be saved", failed, len(drafts))
        return saved, failed

    def _job_summary(self, ctx: _RunContext, alerts: int) -> dict[str, Any]:
        """Compact result summary stored on the job record."""
        r = ctx.results
        summary: dict[str, Any] = {}
        if "network" in r:
            summary["networkNodes"] = r["network"].stats.node_count
        if "centrality" in r:
            summary["centralityCalculated"] = len(r["centrality"].scores)
        if "influence" in r:
            summary["influenceCalculated"] = len(r["influence"].scores)
        if "community" in r:
            summary["communitiesDetected"] = r["community"].community_count
        if "hierarchy" in r:
            summary["hierarchyAlignment"] = r["hierarchy"].metrics.alignment_score
        if "hidden-influencers" in r:
            summary["hiddenInfluencers"] = r["hidden-influencers"].stats.total
        if "patterns" in r:
            summary["patternsAnalyzed"] = len(r["patterns"].people)
        summary["alertsGenerated"] = alerts
        return summary
