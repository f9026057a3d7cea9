"""Tests for the retrieval evaluation engine."""
import pytest

from cranfield_eval.core.domain.models import MapPolicy, RankedResult, ScoredDocument
from cranfield_eval.core.services.evaluation import (
    RECALL_LEVELS,
    RetrievalEvaluator,
    average_precision,
    evaluate_query,
    interpolated_precision,
    mean_average_precision,
    precision_recall_f1,
    relevant_total,
    summarize,
)

SCENARIO_JUDGMENTS = {"docA": 1, "docB": 0, "docC": 1}


class TestPrecisionRecallF1:
    """Tests for set-based metrics at N = len(retrieved)."""

    def test_scenario(self):
        """Test [docB, docA, docC] against {docA: 1, docB: 0, docC: 1}."""
        precision, recall, f1 = precision_recall_f1(["docB", "docA", "docC"], SCENARIO_JUDGMENTS)

        assert precision == pytest.approx(2 / 3)
        assert recall == 1.0
        assert f1 == pytest.approx(2 * (2 / 3) / (2 / 3 + 1))

    def test_empty_ranked_list(self):
        assert precision_recall_f1([], SCENARIO_JUDGMENTS) == (0.0, 0.0, 0.0)

    def test_no_relevant_retrieved(self):
        """Test that F1 is 0 when precision + recall is 0."""
        assert precision_recall_f1(["docB", "docX"], SCENARIO_JUDGMENTS) == (0.0, 0.0, 0.0)

    def test_no_judgments(self):
        precision, recall, f1 = precision_recall_f1(["d1", "d2"], {})

        assert (precision, recall, f1) == (0.0, 0.0, 0.0)

    def test_unjudged_documents_are_not_relevant(self):
        precision, recall, _ = precision_recall_f1(["docA", "unknown"], SCENARIO_JUDGMENTS)

        assert precision == 0.5
        assert recall == 0.5

    def test_negative_grades_are_not_relevant(self):
        assert relevant_total({"d1": -1, "d2": 0, "d3": 3}) == 1

    def test_repeated_document_counts_once(self):
        """Test that a duplicate id cannot push recall above 1."""
        precision, recall, f1 = precision_recall_f1(["d1", "d1"], {"d1": 1})

        assert precision == 0.5
        assert recall == 1.0
        assert 0.0 <= f1 <= 1.0


class TestAveragePrecision:
    """Tests for Average Precision."""

    def test_scenario(self):
        ap = average_precision(["docB", "docA", "docC"], SCENARIO_JUDGMENTS)

        assert ap == pytest.approx((1 / 2 + 2 / 3) / 2)

    def test_relevant_first_gives_one(self):
        """Test that ranking every relevant document first yields AP = 1."""
        ap = average_precision(["docA", "docC", "docB", "docX"], SCENARIO_JUDGMENTS)

        assert ap == 1.0

    def test_no_relevant_retrieved_gives_zero(self):
        assert average_precision(["docB", "docX"], SCENARIO_JUDGMENTS) == 0.0

    def test_missing_relevant_documents_lower_ap(self):
        """Test normalization by the total number of relevant documents."""
        ap = average_precision(["d1", "d2", "d3", "d4"], {"d1": 1, "d3": 1, "d5": 1})

        assert ap == pytest.approx((1 + 2 / 3) / 3)

    def test_empty_ranked_list(self):
        assert average_precision([], SCENARIO_JUDGMENTS) == 0.0

    def test_no_judgments(self):
        assert average_precision(["d1"], {}) == 0.0

    def test_repeated_relevant_document(self):
        assert average_precision(["d1", "d1", "d2"], {"d1": 1}) == 1.0


class TestInterpolatedPrecision:
    """Tests for the 11-point interpolated precision curve."""

    def test_recall_levels(self):
        assert len(RECALL_LEVELS) == 11
        assert RECALL_LEVELS[0] == 0.0
        assert RECALL_LEVELS[3] == 0.3
        assert RECALL_LEVELS[-1] == 1.0

    def test_scenario(self):
        curve = interpolated_precision(["docB", "docA", "docC"], SCENARIO_JUDGMENTS)

        assert curve == pytest.approx([2 / 3] * 11)

    def test_max_lookahead(self):
        """Test that each level takes the best precision at or beyond that recall."""
        curve = interpolated_precision(["d1", "d2", "d3", "d4"], {"d1": 1, "d3": 1, "d5": 1})

        assert curve[:4] == pytest.approx([1.0] * 4)
        assert curve[4:7] == pytest.approx([2 / 3] * 3)
        assert curve[7:] == [0.0] * 4

    def test_level_zero_is_max_precision(self):
        retrieved = ["x", "d1", "d2", "y"]
        curve = interpolated_precision(retrieved, {"d1": 1, "d2": 1})

        assert curve[0] == pytest.approx(2 / 3)

    def test_exact_recall_level_qualifies(self):
        """Test that a rank whose recall equals a level exactly counts for it."""
        judgments = {f"d{i}": 1 for i in range(10)}

        curve = interpolated_precision(["d0", "d1", "d2"], judgments)

        assert curve[3] == 1.0
        assert curve[4] == 0.0

    def test_empty_ranked_list(self):
        assert interpolated_precision([], SCENARIO_JUDGMENTS) == [0.0] * 11

    def test_no_judgments(self):
        assert interpolated_precision(["d1", "d2"], {}) == [0.0] * 11


class TestEvaluateQuery:
    """Tests for per-query metrics."""

    def test_scenario(self):
        metrics = evaluate_query("1", ["docB", "docA", "docC"], SCENARIO_JUDGMENTS)

        assert metrics.query_id == "1"
        assert metrics.num_retrieved == 3
        assert metrics.num_relevant == 2
        assert metrics.num_relevant_retrieved == 2
        assert metrics.precision == pytest.approx(2 / 3)
        assert metrics.recall == 1.0
        assert metrics.average_precision == pytest.approx(0.5833333)
        assert metrics.has_judgments

    def test_details_line_format(self):
        metrics = evaluate_query("7", ["docB", "docA", "docC"], SCENARIO_JUDGMENTS)

        assert str(metrics) == "Query 7: AP=0.5833, Precision=0.6667, Recall=1.0000, F1=0.8000"

    @pytest.mark.parametrize("retrieved", [
        [],
        ["docA"],
        ["docX", "docY"],
        ["docA", "docA", "docA", "docC", "docC"],
        ["docC", "docB", "docA", "docX", "docA"],
    ])
    def test_metrics_stay_in_unit_interval(self, retrieved):
        metrics = evaluate_query("1", retrieved, SCENARIO_JUDGMENTS)

        for value in (metrics.precision, metrics.recall, metrics.f1, metrics.average_precision):
            assert 0.0 <= value <= 1.0
        assert all(0.0 <= p <= 1.0 for p in metrics.interpolated_precision)


class TestAggregation:
    """Tests for MAP policies and run summaries."""

    @pytest.fixture
    def metrics(self):
        return [
            evaluate_query("1", ["docA", "docB"], SCENARIO_JUDGMENTS),  # AP 0.5
            evaluate_query("2", ["d1", "d2"], {}),                     # unjudged, AP 0
        ]

    def test_map_over_all_queries(self, metrics):
        assert mean_average_precision(metrics, MapPolicy.ALL_QUERIES) == pytest.approx(0.25)

    def test_map_over_judged_queries(self, metrics):
        assert mean_average_precision(metrics, MapPolicy.JUDGED_QUERIES) == pytest.approx(0.5)

    def test_map_of_nothing_is_zero(self):
        assert mean_average_precision([], MapPolicy.JUDGED_QUERIES) == 0.0

    def test_summary_all_queries(self, metrics):
        summary = summarize("english_bm25", metrics, MapPolicy.ALL_QUERIES, num_skipped=1)

        assert summary.label == "english_bm25"
        assert summary.num_queries == 2
        assert summary.num_evaluated == 2
        assert summary.num_skipped == 1
        assert summary.mean_average_precision == pytest.approx(0.25)
        assert summary.mean_precision == pytest.approx(0.25)
        assert summary.mean_recall == pytest.approx(0.25)
        assert summary.mean_interpolated_precision[0] == pytest.approx(0.5)

    def test_summary_judged_queries_only_narrows_map(self, metrics):
        """Test that unjudged queries still count in the P/R/F1 means and the curve."""
        summary = summarize("run", metrics, MapPolicy.JUDGED_QUERIES)

        assert summary.num_queries == 1
        assert summary.num_evaluated == 2
        assert summary.mean_average_precision == pytest.approx(0.5)
        assert summary.mean_precision == pytest.approx(0.25)
        assert summary.mean_recall == pytest.approx(0.25)
        assert summary.mean_interpolated_precision[0] == pytest.approx(0.5)

    def test_summary_of_nothing(self):
        summary = summarize("empty", [])

        assert summary.num_queries == 0
        assert summary.mean_average_precision == 0.0
        assert summary.mean_interpolated_precision == [0.0] * 11

    def test_evaluator_facade(self):
        evaluator = RetrievalEvaluator(MapPolicy.JUDGED_QUERIES)
        ranked = RankedResult(
            configuration="run",
            query_id="1",
            results=[ScoredDocument(doc_id=d, score=1.0) for d in ["docB", "docA", "docC"]],
        )

        metrics = evaluator.evaluate(ranked, SCENARIO_JUDGMENTS)
        summary = evaluator.summarize("run", [metrics])

        assert metrics.average_precision == pytest.approx(0.5833333)
        assert summary.map_policy == MapPolicy.JUDGED_QUERIES
        assert summary.mean_average_precision == pytest.approx(0.5833333)
