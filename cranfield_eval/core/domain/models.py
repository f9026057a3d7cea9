"""Domain models shared by the parser, the evaluation engine and the sweep runner."""
from collections.abc import Mapping
from enum import StrEnum
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, Field, field_validator

INTERPOLATION_POINTS = 11


class MapPolicy(StrEnum):
    """
    Which queries count towards MAP.

    - ALL_QUERIES: every evaluated query; unjudged queries contribute AP = 0.
    - JUDGED_QUERIES: only queries with at least one relevant judgment.
    """
    ALL_QUERIES = "all_queries"
    JUDGED_QUERIES = "judged_queries"


class JudgmentFormat(StrEnum):
    """Column layout of a relevance judgment file."""
    FOUR_COLUMN = "four_column"    # qid iteration docid grade
    THREE_COLUMN = "three_column"  # qid docid grade

    @property
    def field_count(self) -> int:
        return 4 if self is JudgmentFormat.FOUR_COLUMN else 3


class QueryIdMode(StrEnum):
    """
    How query identifiers are assigned while parsing a query file.

    - SOURCE: keep the `.I` id; a missing id becomes the 1-based record counter.
    - SEQUENTIAL: renumber queries 1..N in file order, ignoring `.I` ids.
      The Cranfield `cranqrel` file is keyed this way.
    """
    SOURCE = "source"
    SEQUENTIAL = "sequential"


class Document(BaseModel):
    """A corpus record parsed from a tagged collection file."""
    id: str = Field(..., min_length=1, description="Document identifier from the .I line")
    title: str = ""
    author: str = ""
    bibliography: str = ""
    body: str = ""

    model_config = {"frozen": True}


class Query(BaseModel):
    """A test query parsed from a tagged query file."""
    id: str = Field(..., min_length=1, description="Query identifier")
    text: str = ""

    model_config = {"frozen": True}

    @property
    def is_blank(self) -> bool:
        return not self.text.strip()


class RelevanceJudgments:
    """
    Read-only lookup of graded relevance assessments (qrels).

    Grades greater than zero mean relevant; zero, negative or absent grades
    mean not relevant.
    """

    def __init__(self, judgments: Mapping[str, Mapping[str, int]] | None = None):
        self._judgments: dict[str, Mapping[str, int]] = {
            query_id: MappingProxyType(dict(grades))
            for query_id, grades in (judgments or {}).items()
        }

    def for_query(self, query_id: str) -> Mapping[str, int]:
        """Grades for one query; an empty mapping when the query has no judgments."""
        return self._judgments.get(query_id, MappingProxyType({}))

    def relevant_count(self, query_id: str) -> int:
        return sum(1 for grade in self.for_query(query_id).values() if grade > 0)

    def is_relevant(self, query_id: str, doc_id: str) -> bool:
        return self.for_query(query_id).get(doc_id, 0) > 0

    @property
    def query_ids(self) -> list[str]:
        return list(self._judgments)

    def relevant_only(self) -> dict[str, dict[str, int]]:
        """
        Plain dict of positive judgments, dropping queries left without any.

        This is the shape external scorers (ranx, trec_eval) expect.
        """
        relevant: dict[str, dict[str, int]] = {}
        for query_id, grades in self._judgments.items():
            positives = {doc_id: grade for doc_id, grade in grades.items() if grade > 0}
            if positives:
                relevant[query_id] = positives
        return relevant

    def items(self):
        return self._judgments.items()

    def __contains__(self, query_id: object) -> bool:
        return query_id in self._judgments

    def __len__(self) -> int:
        return len(self._judgments)

    def __repr__(self) -> str:
        return f"RelevanceJudgments(queries={len(self)})"


class ScoredDocument(BaseModel):
    """One entry of a ranked list returned by a ranking engine."""
    doc_id: str = Field(..., min_length=1)
    score: float

    model_config = {"frozen": True}


class RankedResult(BaseModel):
    """Ranked list for one (configuration, query) pair. Rank 1 is the first entry."""
    configuration: str
    query_id: str
    results: list[ScoredDocument] = Field(default_factory=list)

    model_config = {"frozen": True}

    @property
    def doc_ids(self) -> list[str]:
        return [r.doc_id for r in self.results]


def _check_curve(values: list[float]) -> list[float]:
    if len(values) != INTERPOLATION_POINTS:
        raise ValueError(
            f"Interpolated curve needs {INTERPOLATION_POINTS} points, got {len(values)}"
        )
    return values


class QueryMetrics(BaseModel):
    """Retrieval quality of one ranked list, measured at the size of the list."""

    query_id: str
    num_retrieved: int = Field(..., ge=0)
    num_relevant: int = Field(..., ge=0, description="Relevant documents in the judgments")
    num_relevant_retrieved: int = Field(..., ge=0)
    precision: float = Field(..., ge=0.0, le=1.0)
    recall: float = Field(..., ge=0.0, le=1.0)
    f1: float = Field(..., ge=0.0, le=1.0)
    average_precision: float = Field(..., ge=0.0, le=1.0)
    interpolated_precision: list[float] = Field(
        ..., description="Interpolated precision at recall 0.0, 0.1, ..., 1.0"
    )

    model_config = {"frozen": True}

    @field_validator("interpolated_precision")
    @classmethod
    def validate_curve(cls, v: list[float]) -> list[float]:
        """Ensure one value per recall level."""
        return _check_curve(v)

    @property
    def has_judgments(self) -> bool:
        return self.num_relevant > 0

    def __str__(self) -> str:
        return (
            f"Query {self.query_id}: AP={self.average_precision:.4f}, "
            f"Precision={self.precision:.4f}, Recall={self.recall:.4f}, F1={self.f1:.4f}"
        )


class RunSummary(BaseModel):
    """Aggregate metrics of one retrieval configuration over a query set."""

    label: str
    map_policy: MapPolicy
    num_queries: int = Field(..., ge=0, description="Queries counted in MAP")
    num_evaluated: int = Field(..., ge=0, description="Queries that produced metrics")
    num_skipped: int = Field(0, ge=0, description="Queries skipped for this configuration")
    mean_average_precision: float = Field(..., ge=0.0, le=1.0)
    mean_precision: float = Field(..., ge=0.0, le=1.0)
    mean_recall: float = Field(..., ge=0.0, le=1.0)
    mean_f1: float = Field(..., ge=0.0, le=1.0)
    mean_interpolated_precision: list[float]

    model_config = {"frozen": True}

    @field_validator("mean_interpolated_precision")
    @classmethod
    def validate_curve(cls, v: list[float]) -> list[float]:
        """Ensure one value per recall level."""
        return _check_curve(v)

    def __str__(self) -> str:
        return (
            f"{self.label}: MAP={self.mean_average_precision:.4f}, "
            f"P={self.mean_precision:.4f}, R={self.mean_recall:.4f}, "
            f"F1={self.mean_f1:.4f} ({self.num_queries} queries)"
        )


class RetrievalConfiguration(BaseModel):
    """
    One point of a sweep: an opaque label plus whatever the engine needs.

    The label is the run tag of every TREC line and the stem of every output
    file, so it is limited to letters, digits, `_`, `-` and `.`, and cannot
    be a relative path component like `..`.
    """
    label: str = Field(..., min_length=1, pattern=r"^[A-Za-z0-9_.-]+$")
    params: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @field_validator("label")
    @classmethod
    def validate_label(cls, v: str) -> str:
        if set(v) == {"."}:
            raise ValueError(f"Configuration label cannot be {v!r}")
        return v
