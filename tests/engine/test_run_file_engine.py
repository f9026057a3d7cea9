"""Tests for the run file replay engine."""
import pytest

from cranfield_eval.core.domain.models import Query, RetrievalConfiguration
from cranfield_eval.engine.run_file_engine import RunFileRankingEngine, parse_run_line
from cranfield_eval.exceptions import MalformedRecord, ResourceUnavailable

RUN_TEXT = """\
1 Q0 doc3 2 11.500000 english_bm25
1 Q0 doc1 1 12.250000 english_bm25
1 Q0 doc9 3 4.000000 english_bm25
2 Q0 doc4 1 3.000000 english_bm25
this line is broken
"""


@pytest.fixture
def run_file(tmp_path):
    path = tmp_path / "results_english_bm25.txt"
    path.write_text(RUN_TEXT, encoding="utf-8")
    return path


class TestParseRunLine:
    def test_parses_six_columns(self):
        assert parse_run_line(1, "1 Q0 doc1 1 12.25 run") == ("1", "doc1", 1, 12.25)

    def test_rejects_wrong_arity(self):
        with pytest.raises(MalformedRecord):
            parse_run_line(3, "1 Q0 doc1 1 12.25")

    def test_rejects_non_numeric_rank(self):
        with pytest.raises(MalformedRecord):
            parse_run_line(3, "1 Q0 doc1 first 12.25 run")


class TestRunFileRankingEngine:
    """Tests for RunFileRankingEngine."""

    @pytest.mark.asyncio
    async def test_replays_lists_in_rank_order(self, run_file, documents):
        """Test that results are returned ordered by their rank column."""
        engine = RunFileRankingEngine()
        configuration = RetrievalConfiguration(label="replay", params={"run_file": str(run_file)})

        context = await engine.build(configuration, documents)
        results = await engine.rank(context, Query(id="1", text="q"), depth=100)

        assert [r.doc_id for r in results] == ["doc1", "doc3", "doc9"]
        assert results[0].score == 12.25

    @pytest.mark.asyncio
    async def test_truncates_to_depth(self, run_file, documents):
        engine = RunFileRankingEngine()
        context = await engine.build(
            RetrievalConfiguration(label="replay", params={"run_file": str(run_file)}), documents
        )

        results = await engine.rank(context, Query(id="1", text="q"), depth=2)

        assert len(results) == 2

    @pytest.mark.asyncio
    async def test_unknown_query_gives_empty_list(self, run_file, documents):
        engine = RunFileRankingEngine()
        context = await engine.build(
            RetrievalConfiguration(label="replay", params={"run_file": str(run_file)}), documents
        )

        assert await engine.rank(context, Query(id="42", text="q"), depth=10) == []

    @pytest.mark.asyncio
    async def test_warns_about_unknown_documents(self, run_file, documents, caplog):
        """Test that documents missing from the corpus are reported."""
        engine = RunFileRankingEngine()

        await engine.build(
            RetrievalConfiguration(label="replay", params={"run_file": str(run_file)}), documents
        )

        assert "1 result(s) reference documents missing from the corpus" in caplog.text
        assert "skipped 1 malformed line(s)" in caplog.text

    @pytest.mark.asyncio
    async def test_relative_path_uses_base_dir(self, run_file, documents):
        engine = RunFileRankingEngine(base_dir=run_file.parent)
        configuration = RetrievalConfiguration(label="replay", params={"run_file": run_file.name})

        context = await engine.build(configuration, documents)

        assert context.source == run_file

    @pytest.mark.asyncio
    async def test_missing_parameter_raises(self, documents):
        engine = RunFileRankingEngine()

        with pytest.raises(ValueError, match="run_file"):
            await engine.build(RetrievalConfiguration(label="replay"), documents)

    @pytest.mark.asyncio
    async def test_missing_file_raises(self, tmp_path, documents):
        engine = RunFileRankingEngine()
        configuration = RetrievalConfiguration(
            label="replay", params={"run_file": str(tmp_path / "missing.run")}
        )

        with pytest.raises(ResourceUnavailable):
            await engine.build(configuration, documents)
