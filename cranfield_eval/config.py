"""Application configuration with structured settings groups."""
import logging
from enum import StrEnum
from functools import lru_cache

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from cranfield_eval.core.domain.models import JudgmentFormat, MapPolicy, QueryIdMode

logger = logging.getLogger(__name__)


class EngineKind(StrEnum):
    """Available ranking engine adapters."""
    RUN_FILE = "run_file"
    HTTP = "http"


# =============================================================================
# Nested Settings Models
# =============================================================================


class CorpusSettings(BaseModel):
    """
    Test collection input files.

    query_id_mode: `source` keeps `.I` ids, `sequential` renumbers queries
        1..N (the numbering used by the Cranfield `cranqrel` file).
    """

    documents_path: str = "cran.all.1400"
    queries_path: str = "cran.qry"
    encoding: str = "utf-8"
    query_id_mode: QueryIdMode = QueryIdMode.SOURCE


class JudgmentSettings(BaseModel):
    """Relevance judgment file and its column layout."""

    path: str = "cranqrel"
    format: JudgmentFormat = JudgmentFormat.FOUR_COLUMN


class EvaluationSettings(BaseModel):
    """Which queries count towards MAP."""

    map_policy: MapPolicy = MapPolicy.ALL_QUERIES


class SweepSettings(BaseModel):
    """
    Sweep execution settings.

    depth: Results requested per query (K).
    max_workers: Configurations evaluated concurrently; 1 runs them in order.
    configuration_timeout: Seconds allowed per configuration, None for no limit.
    """

    plan_path: str | None = None
    depth: int = Field(100, ge=1)
    max_workers: int = Field(1, ge=1)
    configuration_timeout: float | None = Field(None, gt=0)


class OutputSettings(BaseModel):
    """Where and how results are written."""

    directory: str = "results"
    score_precision: int = Field(6, ge=0)
    write_details: bool = True
    verbose: bool = True


class EngineSettings(BaseModel):
    """
    Ranking engine settings.

    run_dir: Base directory for relative `run_file` parameters (run_file engine).
    base_url: Ranking service URL (http engine).
    """

    kind: EngineKind = EngineKind.RUN_FILE
    run_dir: str | None = None
    base_url: str = "http://localhost:8080"
    timeout: float = 30.0


class CrossCheckSettings(BaseModel):
    """Optional verification of each run with ranx and trec_eval."""

    enabled: bool = False
    tolerance: float = 1e-4
    trec_eval_path: str | None = None
    trec_eval_timeout: float = 60.0


# =============================================================================
# Main Settings Class
# =============================================================================


class Settings(BaseSettings):
    """
    Application settings with nested configuration groups.

    Environment variables use the CRANFIELD_ prefix and a double underscore
    as delimiter for nested values.
    Example: CRANFIELD_SWEEP__DEPTH=50, CRANFIELD_EVALUATION__MAP_POLICY=judged_queries
    """

    # Application metadata
    app_name: str = "cranfield-eval"
    app_version: str = "1.0.0"

    # Nested settings groups
    corpus: CorpusSettings = CorpusSettings()
    judgments: JudgmentSettings = JudgmentSettings()
    evaluation: EvaluationSettings = EvaluationSettings()
    sweep: SweepSettings = SweepSettings()
    output: OutputSettings = OutputSettings()
    engine: EngineSettings = EngineSettings()
    cross_check: CrossCheckSettings = CrossCheckSettings()

    model_config = SettingsConfigDict(
        env_prefix="CRANFIELD_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
