"""Sweep runner - evaluates retrieval configurations through a ranking engine."""
import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from cranfield_eval.core.domain.models import (
    Document,
    Query,
    QueryMetrics,
    RankedResult,
    RelevanceJudgments,
    RetrievalConfiguration,
    RunSummary,
    ScoredDocument,
)
from cranfield_eval.core.services.evaluation import RetrievalEvaluator
from cranfield_eval.engine.base import RankingEngine
from cranfield_eval.eval.cross_check import CrossChecker, CrossCheckResult
from cranfield_eval.eval.reporter import SweepReporter
from cranfield_eval.eval.run_writer import TrecRunWriter
from cranfield_eval.eval.schema import SweepPlan
from cranfield_eval.exceptions import ConfigurationFailure, QueryEvaluationFailure

logger = logging.getLogger(__name__)

STOPPED_REASON = "sweep stopped before all queries were evaluated"


@dataclass
class SweepConfig:
    """Configuration for running a sweep."""

    depth: int = 100
    output_dir: Path = Path("results")
    max_workers: int = 1
    configuration_timeout: float | None = None
    write_details: bool = True
    verbose: bool = True


@dataclass
class ConfigurationOutcome:
    """What happened to one configuration of the sweep."""

    label: str
    summary: RunSummary | None = None
    failure: str | None = None
    skipped_queries: dict[str, str] = field(default_factory=dict)
    cancelled: bool = False
    run_path: Path | None = None
    summary_path: Path | None = None
    summary_json_path: Path | None = None
    details_path: Path | None = None
    cross_check: CrossCheckResult | None = None

    @property
    def succeeded(self) -> bool:
        return self.summary is not None and self.failure is None


@dataclass
class SweepResult:
    """Outcomes of every configuration, in plan order."""

    outcomes: list[ConfigurationOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> list[ConfigurationOutcome]:
        return [o for o in self.outcomes if o.succeeded]

    @property
    def failed(self) -> list[ConfigurationOutcome]:
        return [o for o in self.outcomes if not o.succeeded]

    @property
    def all_succeeded(self) -> bool:
        """True when at least one configuration ran and none failed."""
        return bool(self.outcomes) and not self.failed

    @property
    def total_queries_evaluated(self) -> int:
        return sum(o.summary.num_evaluated for o in self.outcomes if o.summary is not None)

    @property
    def total_queries_skipped(self) -> int:
        return sum(len(o.skipped_queries) for o in self.outcomes)


class SweepRunner:
    """
    Orchestrates a sweep over retrieval configurations.

    Separates concerns:
    - Ranking: delegated to a RankingEngine
    - Metrics calculation: RetrievalEvaluator
    - Run files: TrecRunWriter
    - Summaries and console output: SweepReporter
    - Optional verification: CrossChecker

    Configurations share only read-only inputs, so up to `max_workers` of
    them run concurrently. A failing query or configuration is recorded in
    the result and the sweep moves on.
    """

    def __init__(
        self,
        engine: RankingEngine,
        evaluator: RetrievalEvaluator,
        run_writer: TrecRunWriter,
        reporter: SweepReporter | None = None,
        config: SweepConfig | None = None,
        cross_checker: CrossChecker | None = None,
    ):
        """
        Initialize the sweep runner.

        Args:
            engine: Ranking engine used for every configuration
            evaluator: Metric calculator with the MAP policy to apply
            run_writer: Writer for TREC run files
            reporter: Output formatter (default: SweepReporter)
            config: Execution settings (default: SweepConfig())
            cross_checker: Optional external verification step
        """
        self.engine = engine
        self.evaluator = evaluator
        self.run_writer = run_writer
        self.reporter = reporter or SweepReporter()
        self.config = config or SweepConfig()
        self.cross_checker = cross_checker
        self._stop_requested = False

    def request_stop(self) -> None:
        """
        Ask the sweep to stop.

        Running configurations finish their current query and write a partial
        summary. Configurations not yet started are not started.
        """
        if not self._stop_requested:
            logger.warning("Stop requested, finishing in-flight queries")
        self._stop_requested = True

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested

    async def run_plan(
        self,
        plan: SweepPlan,
        documents: list[Document],
        queries: list[Query],
        judgments: RelevanceJudgments,
    ) -> SweepResult:
        """Run every configuration of a sweep plan."""
        return await self.run(plan.expand(), documents, queries, judgments)

    async def run(
        self,
        configurations: list[RetrievalConfiguration],
        documents: list[Document],
        queries: list[Query],
        judgments: RelevanceJudgments,
    ) -> SweepResult:
        """
        Evaluate each configuration and persist its outputs.

        Args:
            configurations: Configurations to evaluate, labels unique
            documents: Corpus handed to the engine
            queries: Queries in collection order
            judgments: Relevance judgments (may be empty)

        Returns:
            SweepResult with one outcome per configuration, in input order
        """
        labels = [c.label for c in configurations]
        if len(set(labels)) != len(labels):
            raise ValueError("Configuration labels must be unique")

        semaphore = asyncio.Semaphore(self.config.max_workers)
        logger.info(
            f"Starting sweep: {len(configurations)} configuration(s), {len(documents)} documents, "
            f"{len(queries)} queries, depth={self.config.depth}, workers={self.config.max_workers}"
        )

        outcomes = await asyncio.gather(*(
            self._run_configuration(semaphore, configuration, documents, queries, judgments)
            for configuration in configurations
        ))
        result = SweepResult(outcomes=list(outcomes))

        if self.config.verbose:
            self.reporter.print_sweep_summary(result)

        logger.info(
            f"Sweep finished: {len(result.succeeded)} succeeded, {len(result.failed)} failed, "
            f"{result.total_queries_evaluated} queries evaluated, "
            f"{result.total_queries_skipped} skipped"
        )
        return result

    async def _run_configuration(
        self,
        semaphore: asyncio.Semaphore,
        configuration: RetrievalConfiguration,
        documents: list[Document],
        queries: list[Query],
        judgments: RelevanceJudgments,
    ) -> ConfigurationOutcome:
        """Run one configuration, turning every failure into an outcome."""
        outcome = ConfigurationOutcome(label=configuration.label)

        async with semaphore:
            if self._stop_requested:
                outcome.cancelled = True
                outcome.failure = "not started, sweep stopped"
                return outcome

            if self.config.verbose:
                self.reporter.print_configuration_header(configuration.label)

            try:
                async with asyncio.timeout(self.config.configuration_timeout):
                    await self._evaluate_configuration(
                        configuration, documents, queries, judgments, outcome
                    )
            except TimeoutError:
                outcome.failure = f"timed out after {self.config.configuration_timeout}s"
                logger.error(f"[{configuration.label}] Configuration {outcome.failure}")
            except ConfigurationFailure as e:
                outcome.failure = str(e.reason)
                logger.error(str(e))

        return outcome

    async def _evaluate_configuration(
        self,
        configuration: RetrievalConfiguration,
        documents: list[Document],
        queries: list[Query],
        judgments: RelevanceJudgments,
        outcome: ConfigurationOutcome,
    ) -> None:
        label = configuration.label

        try:
            context = await self.engine.build(configuration, documents)
        except Exception as e:
            raise ConfigurationFailure(label, f"engine build failed: {e}") from e

        try:
            ranked_lists, metrics = await self._rank_queries(
                configuration, context, queries, judgments, outcome
            )
        finally:
            await self._close(label, context)

        summary = self.evaluator.summarize(label, metrics, num_skipped=len(outcome.skipped_queries))
        outcome.summary = summary
        if outcome.cancelled:
            outcome.failure = STOPPED_REASON

        try:
            await self._persist(label, ranked_lists, metrics, summary, outcome)
        except OSError as e:
            raise ConfigurationFailure(label, f"cannot write results: {e}") from e

        if self.config.verbose:
            self.reporter.print_run_summary(summary)

        if self.cross_checker is not None:
            outcome.cross_check = await self.cross_checker.check(
                label,
                ranked_lists,
                metrics,
                judgments,
                run_path=outcome.run_path,
                output_dir=self.config.output_dir,
            )

    async def _rank_queries(
        self,
        configuration: RetrievalConfiguration,
        context: Any,
        queries: list[Query],
        judgments: RelevanceJudgments,
        outcome: ConfigurationOutcome,
    ) -> tuple[list[RankedResult], list[QueryMetrics]]:
        """Rank and evaluate every query in order, recording skipped ones."""
        label = configuration.label
        ranked_lists: list[RankedResult] = []
        metrics: list[QueryMetrics] = []

        for query in queries:
            if self._stop_requested:
                outcome.cancelled = True
                logger.warning(
                    f"[{label}] Stopped after {len(metrics)} of {len(queries)} queries"
                )
                break

            if query.is_blank:
                logger.warning(f"[{label}] Skipping query {query.id}: empty query text")
                outcome.skipped_queries[query.id] = "empty query text"
                continue

            try:
                results = await self._rank(label, context, query)
            except QueryEvaluationFailure as e:
                logger.warning(str(e))
                outcome.skipped_queries[query.id] = str(e.reason)
                continue

            ranked = RankedResult(
                configuration=label,
                query_id=query.id,
                results=results[: self.config.depth],
            )
            ranked_lists.append(ranked)
            metrics.append(self.evaluator.evaluate(ranked, judgments.for_query(query.id)))

        return ranked_lists, metrics

    async def _rank(self, label: str, context: Any, query: Query) -> list[ScoredDocument]:
        try:
            return await self.engine.rank(context, query, self.config.depth)
        except Exception as e:
            raise QueryEvaluationFailure(label, query.id, e) from e

    async def _close(self, label: str, context: Any) -> None:
        try:
            await self.engine.close(context)
        except Exception as e:
            logger.warning(f"[{label}] Engine close failed: {e}")

    async def _persist(
        self,
        label: str,
        ranked_lists: list[RankedResult],
        metrics: list[QueryMetrics],
        summary: RunSummary,
        outcome: ConfigurationOutcome,
    ) -> None:
        """Write the run file, the summaries and optionally the per-query details."""
        output_dir = self.config.output_dir
        outcome.run_path = await asyncio.to_thread(
            self.run_writer.write, output_dir / f"{label}.run", ranked_lists
        )
        outcome.summary_path, outcome.summary_json_path = await asyncio.to_thread(
            self.reporter.write_summary, summary, output_dir
        )
        if self.config.write_details:
            outcome.details_path = await asyncio.to_thread(
                self.reporter.write_details, label, metrics, output_dir
            )
        logger.info(f"[{label}] {summary}")
