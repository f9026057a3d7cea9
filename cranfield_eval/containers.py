"""Dependency injection container using dependency-injector library."""
from pathlib import Path

from dependency_injector import containers, providers

from cranfield_eval.config import Settings
from cranfield_eval.core.services.evaluation import RetrievalEvaluator
from cranfield_eval.core.services.judgments import RelevanceJudgmentLoader
from cranfield_eval.core.services.tagged_parser import TaggedRecordParser
from cranfield_eval.engine.http_engine import HttpRankingEngine
from cranfield_eval.engine.run_file_engine import RunFileRankingEngine
from cranfield_eval.eval.cross_check import CrossChecker
from cranfield_eval.eval.reporter import SweepReporter
from cranfield_eval.eval.run_writer import TrecRunWriter
from cranfield_eval.eval.runner import SweepConfig, SweepRunner


def select_engine_kind(settings: Settings) -> str:
    """Key of the engine provider to use."""
    return settings.engine.kind.value


def create_sweep_config(settings: Settings) -> SweepConfig:
    """Factory function to build the runner configuration from settings."""
    return SweepConfig(
        depth=settings.sweep.depth,
        output_dir=Path(settings.output.directory),
        max_workers=settings.sweep.max_workers,
        configuration_timeout=settings.sweep.configuration_timeout,
        write_details=settings.output.write_details,
        verbose=settings.output.verbose,
    )


def create_cross_checker(settings: Settings) -> CrossChecker | None:
    """
    Factory function to create the cross-check step.

    Returns None when cross-checking is disabled.
    """
    if not settings.cross_check.enabled:
        return None
    return CrossChecker(
        tolerance=settings.cross_check.tolerance,
        trec_eval_path=settings.cross_check.trec_eval_path,
        trec_eval_timeout=settings.cross_check.trec_eval_timeout,
    )


class Container(containers.DeclarativeContainer):
    """Main application dependency injection container."""

    # =========================================================================
    # CONFIGURATION - Singleton (loaded once, cached)
    # =========================================================================
    config = providers.Singleton(Settings)

    # =========================================================================
    # SINGLETONS - Stateless input readers
    # =========================================================================
    parser = providers.Singleton(
        TaggedRecordParser,
        query_id_mode=config.provided.corpus.query_id_mode,
        encoding=config.provided.corpus.encoding,
    )

    judgment_loader = providers.Singleton(
        RelevanceJudgmentLoader,
        judgment_format=config.provided.judgments.format,
        encoding=config.provided.corpus.encoding,
    )

    # =========================================================================
    # SINGLETONS - Evaluation and reporting (no per-run state)
    # =========================================================================
    evaluator = providers.Singleton(
        RetrievalEvaluator,
        map_policy=config.provided.evaluation.map_policy,
    )

    run_writer = providers.Singleton(
        TrecRunWriter,
        score_precision=config.provided.output.score_precision,
    )

    reporter = providers.Singleton(SweepReporter)

    cross_checker = providers.Singleton(create_cross_checker, settings=config)

    # =========================================================================
    # FACTORIES - Ranking engine, selected by engine.kind
    # =========================================================================
    engine = providers.Selector(
        providers.Callable(select_engine_kind, settings=config),
        run_file=providers.Factory(
            RunFileRankingEngine,
            base_dir=config.provided.engine.run_dir,
            encoding=config.provided.corpus.encoding,
        ),
        http=providers.Factory(
            HttpRankingEngine,
            base_url=config.provided.engine.base_url,
            timeout=config.provided.engine.timeout,
        ),
    )

    # =========================================================================
    # FACTORIES - Sweep runner
    # =========================================================================
    sweep_config = providers.Factory(create_sweep_config, settings=config)

    sweep_runner = providers.Factory(
        SweepRunner,
        engine=engine,
        evaluator=evaluator,
        run_writer=run_writer,
        reporter=reporter,
        config=sweep_config,
        cross_checker=cross_checker,
    )
