"""Tests for the TREC run writer."""
import pytest

from cranfield_eval.core.domain.models import RankedResult, ScoredDocument
from cranfield_eval.eval.run_writer import TrecRunWriter


def create_ranked(query_id: str, scores: list[tuple[str, float]], label: str = "english_bm25") -> RankedResult:
    """Helper to create a ranked list."""
    return RankedResult(
        configuration=label,
        query_id=query_id,
        results=[ScoredDocument(doc_id=d, score=s) for d, s in scores],
    )


class TestTrecRunWriter:
    """Tests for TrecRunWriter."""

    def test_line_format(self):
        writer = TrecRunWriter()

        assert writer.format_line("1", "184", 1, 12.25, "english_bm25") == "1 Q0 184 1 12.250000 english_bm25"

    def test_score_precision_is_configurable(self):
        writer = TrecRunWriter(score_precision=2)

        assert writer.format_line("1", "184", 3, 0.12345, "run") == "1 Q0 184 3 0.12 run"

    def test_negative_precision_rejected(self):
        with pytest.raises(ValueError):
            TrecRunWriter(score_precision=-1)

    def test_write_numbers_ranks_from_one(self, tmp_path):
        """Test that ranks restart at 1 for every query."""
        writer = TrecRunWriter()
        ranked_lists = [
            create_ranked("1", [("184", 12.0), ("29", 11.5)]),
            create_ranked("2", [("12", 3.0)]),
        ]

        path = writer.write(tmp_path / "out" / "english_bm25.run", ranked_lists)

        assert path.read_text(encoding="utf-8").splitlines() == [
            "1 Q0 184 1 12.000000 english_bm25",
            "1 Q0 29 2 11.500000 english_bm25",
            "2 Q0 12 1 3.000000 english_bm25",
        ]

    def test_empty_lists_write_empty_file(self, tmp_path):
        path = TrecRunWriter().write(tmp_path / "empty.run", [create_ranked("1", [])])

        assert path.read_text(encoding="utf-8") == ""
