"""
Retrieval evaluation: precision, recall, F1, AP, MAP and 11-point
interpolated precision.

Every metric is measured at the size of the retrieved list. Relevance is
binary: a document is relevant when its grade is greater than zero.
"""
from collections.abc import Mapping, Sequence

import numpy as np

from cranfield_eval.core.domain.models import (
    INTERPOLATION_POINTS,
    MapPolicy,
    QueryMetrics,
    RankedResult,
    RunSummary,
)

# 0.0, 0.1, ..., 1.0 computed as j / 10 so levels compare exactly with tp / n
RECALL_LEVELS = np.arange(INTERPOLATION_POINTS) / (INTERPOLATION_POINTS - 1)


def relevant_total(judgments: Mapping[str, int]) -> int:
    """Number of judged documents with a positive grade."""
    return sum(1 for grade in judgments.values() if grade > 0)


def relevance_flags(retrieved: Sequence[str], judgments: Mapping[str, int]) -> np.ndarray:
    """
    Binary relevance of each rank.

    A document repeated in the list only counts at its first occurrence.
    """
    seen: set[str] = set()
    flags = np.zeros(len(retrieved), dtype=float)
    for i, doc_id in enumerate(retrieved):
        if doc_id in seen:
            continue
        seen.add(doc_id)
        if judgments.get(doc_id, 0) > 0:
            flags[i] = 1.0
    return flags


def precision_recall_f1(
    retrieved: Sequence[str],
    judgments: Mapping[str, int],
) -> tuple[float, float, float]:
    """
    Precision, recall and F1 at N = len(retrieved).

    Returns:
        (precision, recall, f1); each is 0.0 when its denominator is zero
    """
    tp = float(relevance_flags(retrieved, judgments).sum())
    total = relevant_total(judgments)

    precision = tp / len(retrieved) if retrieved else 0.0
    recall = tp / total if total else 0.0
    if precision + recall == 0:
        return precision, recall, 0.0
    return precision, recall, 2 * precision * recall / (precision + recall)


def average_precision(retrieved: Sequence[str], judgments: Mapping[str, int]) -> float:
    """
    Average Precision (binary relevance).

    AP = (sum of k / r over ranks r holding the k-th relevant document) / relevantTotal
    """
    total = relevant_total(judgments)
    if total == 0 or not retrieved:
        return 0.0

    flags = relevance_flags(retrieved, judgments)
    ranks = np.arange(1, len(flags) + 1)
    precision_at_rank = np.cumsum(flags) / ranks
    return float(np.sum(precision_at_rank * flags) / total)


def interpolated_precision(
    retrieved: Sequence[str],
    judgments: Mapping[str, int],
) -> list[float]:
    """
    11-point interpolated precision.

    For each recall level rho the value is the maximum running precision over
    all ranks whose running recall is >= rho, or 0.0 when no rank qualifies.
    """
    total = relevant_total(judgments)
    if not retrieved:
        return [0.0] * INTERPOLATION_POINTS

    flags = relevance_flags(retrieved, judgments)
    tp = np.cumsum(flags)
    precisions = tp / np.arange(1, len(flags) + 1)
    recalls = tp / total if total else np.zeros(len(flags))

    curve = []
    for level in RECALL_LEVELS:
        qualifying = precisions[recalls >= level]
        curve.append(float(qualifying.max()) if qualifying.size else 0.0)
    return curve


def evaluate_query(
    query_id: str,
    retrieved: Sequence[str],
    judgments: Mapping[str, int],
) -> QueryMetrics:
    """Compute every per-query metric for one ranked list."""
    precision, recall, f1 = precision_recall_f1(retrieved, judgments)
    return QueryMetrics(
        query_id=query_id,
        num_retrieved=len(retrieved),
        num_relevant=relevant_total(judgments),
        num_relevant_retrieved=int(relevance_flags(retrieved, judgments).sum()),
        precision=precision,
        recall=recall,
        f1=f1,
        average_precision=average_precision(retrieved, judgments),
        interpolated_precision=interpolated_precision(retrieved, judgments),
    )


def counted_queries(metrics: Sequence[QueryMetrics], policy: MapPolicy) -> list[QueryMetrics]:
    """Queries whose AP counts towards MAP under the given policy."""
    if policy == MapPolicy.JUDGED_QUERIES:
        return [m for m in metrics if m.has_judgments]
    return list(metrics)


def _mean(values: Sequence[float]) -> float:
    if len(values) == 0:
        return 0.0
    return float(np.mean(values))


def mean_average_precision(
    metrics: Sequence[QueryMetrics],
    policy: MapPolicy = MapPolicy.ALL_QUERIES,
) -> float:
    """Arithmetic mean of AP over the queries selected by the policy."""
    return _mean([m.average_precision for m in counted_queries(metrics, policy)])


def summarize(
    label: str,
    metrics: Sequence[QueryMetrics],
    policy: MapPolicy = MapPolicy.ALL_QUERIES,
    num_skipped: int = 0,
) -> RunSummary:
    """
    Aggregate per-query metrics into a RunSummary.

    The policy only selects the queries counted in MAP. Precision, recall,
    F1 and the interpolated curve are averaged over every evaluated query,
    with unjudged queries contributing zeros.
    """
    counted = counted_queries(metrics, policy)
    if metrics:
        curve = np.mean(
            np.array([m.interpolated_precision for m in metrics], dtype=float), axis=0
        ).tolist()
    else:
        curve = [0.0] * INTERPOLATION_POINTS

    return RunSummary(
        label=label,
        map_policy=policy,
        num_queries=len(counted),
        num_evaluated=len(metrics),
        num_skipped=num_skipped,
        mean_average_precision=_mean([m.average_precision for m in counted]),
        mean_precision=_mean([m.precision for m in metrics]),
        mean_recall=_mean([m.recall for m in metrics]),
        mean_f1=_mean([m.f1 for m in metrics]),
        mean_interpolated_precision=curve,
    )


class RetrievalEvaluator:
    """
    Stateless facade over the metric functions with a fixed MAP policy.

    Holds no state between calls, so one instance can be shared by
    concurrently running configurations.
    """

    def __init__(self, map_policy: MapPolicy = MapPolicy.ALL_QUERIES):
        self.map_policy = map_policy

    def evaluate(self, ranked: RankedResult, judgments: Mapping[str, int]) -> QueryMetrics:
        """Evaluate one ranked list against the judgments of its query."""
        return evaluate_query(ranked.query_id, ranked.doc_ids, judgments)

    def summarize(
        self,
        label: str,
        metrics: Sequence[QueryMetrics],
        num_skipped: int = 0,
    ) -> RunSummary:
        return summarize(label, metrics, self.map_policy, num_skipped)
