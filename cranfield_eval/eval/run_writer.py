"""TREC run file writer."""
import logging
from collections.abc import Iterable
from pathlib import Path

from cranfield_eval.core.domain.models import RankedResult

logger = logging.getLogger(__name__)


class TrecRunWriter:
    """
    Writes ranked lists in the six-column TREC run format.

    Each line reads `queryId Q0 docId rank score runTag`, with 1-based ranks
    and the score printed with `score_precision` decimals.
    """

    def __init__(self, score_precision: int = 6):
        if score_precision < 0:
            raise ValueError("score_precision must be non-negative")
        self.score_precision = score_precision

    def format_line(self, query_id: str, doc_id: str, rank: int, score: float, run_tag: str) -> str:
        return f"{query_id} Q0 {doc_id} {rank} {score:.{self.score_precision}f} {run_tag}"

    def lines(self, ranked_lists: Iterable[RankedResult]) -> Iterable[str]:
        for ranked in ranked_lists:
            for rank, result in enumerate(ranked.results, 1):
                yield self.format_line(
                    ranked.query_id, result.doc_id, rank, result.score, ranked.configuration
                )

    def write(self, path: Path | str, ranked_lists: Iterable[RankedResult]) -> Path:
        """Write (or overwrite) a run file, creating parent directories as needed."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        count = 0
        with open(path, "w", encoding="utf-8") as f:
            for line in self.lines(ranked_lists):
                f.write(line + "\n")
                count += 1
        logger.debug(f"Wrote {count} run lines to {path}")
        return path
