# src/main.py — v1
"""CLI entry point — analyze command.

Usage:
    orgnet analyze <events.json> --org ORG [options]
    orgnet --version
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from orgnet.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    _setup_logging(args.verbose)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return asyncio.run(args.func(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="orgnet",
        description=f"orgnet v{__version__} — Organizational network analysis",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- analyze ---
    p_analyze = subparsers.add_parser(
        "analyze", help="Analyze an organization from a JSON export",
    )
    p_analyze.add_argument("file", type=Path, help="JSON file with events and people")
    p_analyze.add_argument("--org", required=True, help="Organization id")
    p_analyze.add_argument(
        "--types", default="full",
        help="Comma-separated analysis types (default: full)",
    )
    p_analyze.add_argument(
        "--min-communications", type=int, default=None,
        help="Minimum messages for an edge (default: from settings)",
    )
    p_analyze.add_argument(
        "--timeframe-days", type=int, default=None,
        help="Pattern analysis lookback in days (default: from settings)",
    )
    p_analyze.add_argument(
        "--insights-db", type=Path, default=None,
        help="Persist insights to this SQLite file (default: in memory)",
    )
    p_analyze.add_argument(
        "-o", "--output", type=Path, default=None,
        help="Write the result as JSON to this file",
    )
    p_analyze.set_defaults(func=_cmd_analyze)

    return parser


async def _cmd_analyze(args: argparse.Namespace) -> int:
    """Run an analysis against in-memory stores loaded from a JSON export."""
    from orgnet.analysis.models import AnalysisOptions, AnalysisRequest
    from orgnet.analysis.orchestrator import AnalysisOrchestrator
    from orgnet.config.settings import load_settings
    from orgnet.store.base_insight_store import BaseInsightStore
    from orgnet.store.base_job_store import MemoryJobStore
    from orgnet.store.json_event_source import JsonEventSource
    from orgnet.store.memory_graph_store import MemoryGraphStore
    from orgnet.store.memory_insight_store import MemoryInsightStore
    from orgnet.store.sqlite_insight_store import SqliteInsightStore

    file_path: Path = args.file
    if not file_path.exists():
        logger.error("File not found: %s", file_path)
        return 1

    settings = load_settings()
    insight_store: BaseInsightStore
    if args.insights_db is not None:
        insight_store = SqliteInsightStore(args.insights_db)
    else:
        insight_store = MemoryInsightStore()

    orchestrator = AnalysisOrchestrator(
        graph_store=MemoryGraphStore(),
        event_source=JsonEventSource(file_path),
        insight_store=insight_store,
        job_store=MemoryJobStore(),
        settings=settings,
        progress_callback=_print_progress,
    )
    request = AnalysisRequest(
        organization_id=args.org,
        analysis_types=[t.strip() for t in args.types.split(",") if t.strip()],
        options=AnalysisOptions(
            min_communications=args.min_communications,
            timeframe_days=args.timeframe_days,
        ),
        triggered_by="cli",
    )

    logger.info("Analyzing %s for organization %s", file_path.name, args.org)
    result = await orchestrator.run(request)
    insights = await insight_store.list_insights(args.org)

    if args.output is not None:
        payload = {
            "result": result.model_dump(mode="json"),
            "insights": [i.model_dump(mode="json") for i in insights],
        }
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        print(f"Result written to {args.output}")

    _print_result_summary(result, insights)
    return 0 if result.status == "completed" else 2


def _print_progress(completed: int, requested: int, stage: str) -> None:
    print(f"  [{completed}/{requested}] {stage}")


def _print_result_summary(result: object, insights: list) -> None:
    """Print a human-readable summary of AnalysisResult."""
    print(f"\nAnalysis {result.status}:")
    print(f"  Job ID:       {result.job_id}")
    print(f"  Duration:     {result.duration_ms}ms")
    for key, value in result.summary.items():
        print(f"  {key + ':':<22}{value}")
    if result.failed_stages:
        print(f"  Failed:       {', '.join(result.failed_stages)}")
    for insight in insights:
        print(f"  - [{insight.severity}] {insight.title}")


def _setup_logging(verbose: bool) -> None:
    """Configure logging for CLI usage from LOG_* settings."""
    from orgnet.config.settings import load_settings
    from orgnet.logging.logger import setup_logging

    settings = load_settings()
    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )


if __name__ == "__main__":
    sys.exit(main())
