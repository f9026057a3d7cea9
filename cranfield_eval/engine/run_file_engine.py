"""Ranking engine that replays TREC run files produced by another system."""
import asyncio
import logging
from pathlib import Path
from typing import Any

from cranfield_eval.core.domain.models import (
    Document,
    Query,
    RetrievalConfiguration,
    ScoredDocument,
)
from cranfield_eval.core.services.tagged_parser import read_lines
from cranfield_eval.engine.base import RankingEngine
from cranfield_eval.exceptions import MalformedRecord

logger = logging.getLogger(__name__)

RUN_FILE_PARAM = "run_file"


class ReplayContext:
    """Ranked lists of one run file, keyed by query id."""

    def __init__(self, source: Path, rankings: dict[str, list[ScoredDocument]]):
        self.source = source
        self.rankings = rankings


def parse_run_line(line_number: int, line: str) -> tuple[str, str, int, float]:
    """
    Parse `qid Q0 docid rank score tag`.

    Raises:
        MalformedRecord: On wrong arity or non-numeric rank/score
    """
    parts = line.split()
    if len(parts) != 6:
        raise MalformedRecord(line_number, line, f"expected 6 fields, found {len(parts)}")
    query_id, _q0, doc_id, raw_rank, raw_score, _tag = parts
    try:
        return query_id, doc_id, int(raw_rank), float(raw_score)
    except ValueError as e:
        raise MalformedRecord(line_number, line, str(e))


class RunFileRankingEngine(RankingEngine):
    """
    Replays rankings from a TREC run file.

    The configuration must name the file in `params["run_file"]`. Relative
    paths are resolved against `base_dir`.
    """

    def __init__(self, base_dir: Path | str | None = None, encoding: str = "utf-8"):
        self.base_dir = Path(base_dir) if base_dir else None
        self.encoding = encoding

    def _resolve(self, configuration: RetrievalConfiguration) -> Path:
        raw = configuration.params.get(RUN_FILE_PARAM)
        if not raw:
            raise ValueError(
                f"Configuration '{configuration.label}' has no '{RUN_FILE_PARAM}' parameter"
            )
        path = Path(raw)
        if not path.is_absolute() and self.base_dir is not None:
            path = self.base_dir / path
        return path

    async def build(
        self,
        configuration: RetrievalConfiguration,
        documents: list[Document],
    ) -> ReplayContext:
        path = self._resolve(configuration)
        lines = await asyncio.to_thread(read_lines, path, self.encoding)

        known_ids = {doc.id for doc in documents}
        entries: dict[str, list[tuple[int, ScoredDocument]]] = {}
        unknown = 0
        skipped = 0

        for line_number, raw_line in enumerate(lines, 1):
            line = raw_line.strip()
            if not line:
                continue
            try:
                query_id, doc_id, rank, score = parse_run_line(line_number, line)
            except MalformedRecord as e:
                logger.warning(f"Skipping run line in {path}: {e}")
                skipped += 1
                continue
            if doc_id not in known_ids:
                unknown += 1
            entries.setdefault(query_id, []).append(
                (rank, ScoredDocument(doc_id=doc_id, score=score))
            )

        if unknown:
            logger.warning(
                f"{path}: {unknown} result(s) reference documents missing from the corpus"
            )
        if skipped:
            logger.warning(f"{path}: skipped {skipped} malformed line(s)")

        rankings = {
            query_id: [doc for _, doc in sorted(ranked, key=lambda item: item[0])]
            for query_id, ranked in entries.items()
        }
        logger.info(f"Loaded rankings for {len(rankings)} queries from {path}")
        return ReplayContext(path, rankings)

    async def rank(self, context: Any, query: Query, depth: int) -> list[ScoredDocument]:
        """Stored list for the query, truncated to `depth`; empty when the query is absent."""
        return context.rankings.get(query.id, [])[:depth]
