"""CLI for running retrieval evaluation sweeps on a Cranfield-style collection."""

import argparse
import asyncio
import logging
import re
import signal
import sys
from pathlib import Path

from pydantic import ValidationError

from cranfield_eval.config import EngineKind, Settings, get_settings
from cranfield_eval.containers import Container
from cranfield_eval.core.domain.models import (
    Document,
    JudgmentFormat,
    MapPolicy,
    Query,
    QueryIdMode,
    RelevanceJudgments,
    RetrievalConfiguration,
)
from cranfield_eval.engine.run_file_engine import RUN_FILE_PARAM
from cranfield_eval.eval.schema import SweepPlan, load_sweep_plan
from cranfield_eval.exceptions import ResourceUnavailable
from cranfield_eval.logging import configure_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_FATAL = 2


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """
    Return a copy of the settings with command-line values applied.

    Only flags that were actually given override the settings. Each changed
    group is validated again, so out-of-range values are rejected.

    Raises:
        pydantic.ValidationError: If an overridden value is invalid
    """
    groups = {
        "corpus": {
            "documents_path": args.documents,
            "queries_path": args.queries,
            "query_id_mode": args.query_id_mode,
        },
        "judgments": {
            "path": args.judgments,
            "format": args.judgment_format,
        },
        "evaluation": {"map_policy": args.map_policy},
        "sweep": {
            "plan_path": args.plan,
            "depth": args.depth,
            "max_workers": args.workers,
            "configuration_timeout": args.timeout,
        },
        "output": {
            "directory": args.output_dir,
            "write_details": False if args.no_details else None,
            "verbose": False if args.quiet else None,
        },
        "engine": {
            "kind": args.engine,
            "base_url": args.url,
            "run_dir": args.run_dir,
        },
        "cross_check": {
            "enabled": True if (args.cross_check or args.trec_eval) else None,
            "trec_eval_path": args.trec_eval,
        },
    }

    update = {}
    for group, values in groups.items():
        changed = {key: value for key, value in values.items() if value is not None}
        if changed:
            current = getattr(settings, group)
            update[group] = type(current).model_validate({**current.model_dump(), **changed})
    return settings.model_copy(update=update)


def run_file_label(path: str) -> str:
    """Configuration label derived from a run file name."""
    label = re.sub(r"[^A-Za-z0-9_.-]+", "_", Path(path).stem).strip(".")
    return label or "run"


def resolve_plan(settings: Settings, run_files: list[str] | None) -> SweepPlan:
    """
    Sweep plan from `--run-file` flags, or from the configured plan file.

    Raises:
        ValueError: If neither is available
        ResourceUnavailable: If the plan file cannot be read
        pydantic.ValidationError: If the plan is invalid
    """
    if run_files:
        return SweepPlan(
            name="run-files",
            configurations=[
                RetrievalConfiguration(label=run_file_label(p), params={RUN_FILE_PARAM: p})
                for p in run_files
            ],
        )
    if settings.sweep.plan_path:
        return load_sweep_plan(settings.sweep.plan_path)
    raise ValueError("No sweep plan given: use --plan or --run-file")


def load_inputs(
    container: Container,
    settings: Settings,
) -> tuple[list[Document], list[Query], RelevanceJudgments]:
    """
    Load corpus, queries and judgments.

    Raises:
        ResourceUnavailable: If the corpus or the query file cannot be read.
            Unreadable judgments are logged and replaced by an empty set.
    """
    parser = container.parser()
    documents = parser.load_documents(settings.corpus.documents_path)
    queries = parser.load_queries(settings.corpus.queries_path)

    try:
        judgments = container.judgment_loader().load(settings.judgments.path)
    except ResourceUnavailable as e:
        logger.error(f"{e}; continuing without relevance judgments")
        judgments = RelevanceJudgments()

    return documents, queries, judgments


async def run_sweep(args: argparse.Namespace) -> int:
    """
    Run the sweep.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 all configurations succeeded, 1 otherwise, 2 fatal input error)
    """
    try:
        settings = apply_overrides(get_settings(), args)
    except ValidationError as e:
        print(f"❌ Error: invalid option: {e}")
        return EXIT_FATAL

    container = Container()
    container.config.override(settings)

    try:
        plan = resolve_plan(settings, args.run_file)
    except (ValueError, ResourceUnavailable, ValidationError) as e:
        print(f"❌ Error: invalid sweep plan: {e}")
        return EXIT_FATAL

    try:
        documents, queries, judgments = load_inputs(container, settings)
    except ResourceUnavailable as e:
        print(f"❌ Error: {e}")
        return EXIT_FATAL

    configurations = plan.expand()
    print(f"🚀 Cranfield Retrieval Evaluation")
    print(f"   Engine: {settings.engine.kind.value}")
    print(f"   Configurations: {len(configurations)}")
    print(f"   Documents: {len(documents)}, Queries: {len(queries)}, Judged queries: {len(judgments)}")
    print(f"   Depth: {settings.sweep.depth}, MAP policy: {settings.evaluation.map_policy.value}")
    print(f"   Output: {settings.output.directory}")
    print()

    async with container.engine() as engine:
        runner = container.sweep_runner(engine=engine)

        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGINT, runner.request_stop)
        except (NotImplementedError, RuntimeError):
            pass

        try:
            result = await runner.run(configurations, documents, queries, judgments)
        finally:
            try:
                loop.remove_signal_handler(signal.SIGINT)
            except (NotImplementedError, RuntimeError):
                pass

    if not result.outcomes or not result.succeeded:
        print("\n❌ Sweep failed: no configuration succeeded")
        return EXIT_FAILURES

    if result.failed:
        print(f"\n⚠️  Sweep completed with {len(result.failed)} failed configuration(s)")
        return EXIT_FAILURES

    best = max(result.succeeded, key=lambda o: o.summary.mean_average_precision)
    print(f"\n✅ Sweep completed successfully!")
    print(f"   Best configuration: {best.label} (MAP {best.summary.mean_average_precision:.4f})")
    return EXIT_OK


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        description="Evaluate retrieval configurations on a Cranfield-style test collection",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Score existing TREC run files
  python -m cranfield_eval --run-file results_english_bm25.txt --run-file results_standard_bm25.txt

  # Run a sweep plan against a ranking service, four configurations at a time
  python -m cranfield_eval --plan sweep.json --engine http --url http://localhost:8080 --workers 4

  # Sequential query numbering, judged-queries MAP and a trec_eval cross-check
  python -m cranfield_eval --plan sweep.json --query-id-mode sequential \\
      --map-policy judged_queries --trec-eval /usr/local/bin/trec_eval

Every option can also be set through CRANFIELD_* environment variables
(e.g. CRANFIELD_SWEEP__DEPTH=50) or a .env file.
        """,
    )

    inputs = parser.add_argument_group("inputs")
    inputs.add_argument("--documents", help="Collection file (default: cran.all.1400)")
    inputs.add_argument("--queries", help="Query file (default: cran.qry)")
    inputs.add_argument("--judgments", help="Relevance judgment file (default: cranqrel)")
    inputs.add_argument(
        "--judgment-format",
        type=JudgmentFormat,
        choices=list(JudgmentFormat),
        help="Column layout of the judgment file (default: four_column)",
    )
    inputs.add_argument(
        "--query-id-mode",
        type=QueryIdMode,
        choices=list(QueryIdMode),
        help="Keep .I query ids or renumber queries 1..N (default: source)",
    )

    sweep = parser.add_argument_group("sweep")
    sweep.add_argument("--plan", help="Sweep plan JSON file")
    sweep.add_argument(
        "--run-file",
        action="append",
        help="TREC run file to score; repeatable, replaces --plan",
    )
    sweep.add_argument(
        "--engine",
        type=EngineKind,
        choices=list(EngineKind),
        help="Ranking engine adapter (default: run_file)",
    )
    sweep.add_argument("--url", help="Base URL of the ranking service (http engine)")
    sweep.add_argument("--run-dir", help="Base directory for relative run_file parameters")
    sweep.add_argument("--depth", type=int, help="Results per query (default: 100)")
    sweep.add_argument("--workers", type=int, help="Configurations run concurrently (default: 1)")
    sweep.add_argument("--timeout", type=float, help="Seconds allowed per configuration")

    evaluation = parser.add_argument_group("evaluation")
    evaluation.add_argument(
        "--map-policy",
        type=MapPolicy,
        choices=list(MapPolicy),
        help="Queries counted in MAP (default: all_queries)",
    )
    evaluation.add_argument(
        "--cross-check",
        action="store_true",
        help="Recompute MAP of each run with ranx",
    )
    evaluation.add_argument(
        "--trec-eval",
        help="Path to a trec_eval binary to cross-check each run (implies --cross-check)",
    )

    output = parser.add_argument_group("output")
    output.add_argument("--output-dir", help="Directory for run files and summaries (default: results)")
    output.add_argument("--no-details", action="store_true", help="Do not write per-query detail files")
    output.add_argument("--quiet", action="store_true", help="Only print the final status")

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    return parser


def main() -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args()
    configure_logging(logging.DEBUG if args.debug else logging.INFO)
    return asyncio.run(run_sweep(args))


if __name__ == "__main__":
    sys.exit(main())
