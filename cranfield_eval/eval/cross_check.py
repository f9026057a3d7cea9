"""
Independent verification of a configuration's results.

The written run is scored again with ranx and, when a binary is configured,
with trec_eval. Both steps are best effort: problems are logged and reported
in the result, never raised to the sweep.
"""
import asyncio
import logging
import re
from collections.abc import Sequence
from pathlib import Path

from pydantic import BaseModel
from ranx import Qrels, Run, evaluate

from cranfield_eval.core.domain.models import QueryMetrics, RankedResult, RelevanceJudgments

logger = logging.getLogger(__name__)

TREC_EVAL_MAP_PATTERN = re.compile(r"^map\s+all\s+([0-9.]+)\s*$", re.MULTILINE)


class CrossCheckResult(BaseModel):
    """Outcome of the cross-check for one configuration."""

    label: str
    num_queries: int = 0
    internal_map: float | None = None
    ranx_map: float | None = None
    trec_eval_map: float | None = None
    trec_eval_output: Path | None = None
    error: str | None = None
    tolerance: float = 1e-4

    @property
    def agrees(self) -> bool:
        """Whether every external score that was computed matches the internal MAP."""
        if self.internal_map is None or self.error:
            return False
        external = [m for m in (self.ranx_map, self.trec_eval_map) if m is not None]
        return bool(external) and all(
            abs(m - self.internal_map) <= self.tolerance for m in external
        )


def build_run_dict(ranked_lists: Sequence[RankedResult]) -> dict[str, dict[str, float]]:
    """
    Convert ranked lists to a ranx run.

    Scores are replaced by `len(results) - rank` so ties in the engine's
    scores cannot reorder documents; repeated ids keep their first rank.
    """
    run: dict[str, dict[str, float]] = {}
    for ranked in ranked_lists:
        entry: dict[str, float] = {}
        for rank, doc_id in enumerate(ranked.doc_ids):
            if doc_id not in entry:
                entry[doc_id] = float(len(ranked.results) - rank)
        if entry:
            run[ranked.query_id] = entry
    return run


def write_qrels(judgments: RelevanceJudgments, path: Path) -> Path:
    """Write judgments as a four-column qrels file readable by trec_eval."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        for query_id, grades in judgments.items():
            for doc_id, grade in grades.items():
                f.write(f"{query_id} 0 {doc_id} {grade}\n")
    return path


class CrossChecker:
    """Recomputes MAP with external scorers and compares it with the internal value."""

    def __init__(
        self,
        tolerance: float = 1e-4,
        trec_eval_path: str | None = None,
        trec_eval_timeout: float = 60.0,
    ):
        """
        Initialize the cross-checker.

        Args:
            tolerance: Maximum absolute MAP difference still counted as agreement
            trec_eval_path: trec_eval executable; None skips that step
            trec_eval_timeout: Seconds before the trec_eval process is killed
        """
        self.tolerance = tolerance
        self.trec_eval_path = trec_eval_path
        self.trec_eval_timeout = trec_eval_timeout

    async def check(
        self,
        label: str,
        ranked_lists: Sequence[RankedResult],
        metrics: Sequence[QueryMetrics],
        judgments: RelevanceJudgments,
        run_path: Path | None = None,
        output_dir: Path | None = None,
    ) -> CrossCheckResult:
        """
        Cross-check one configuration.

        MAP is compared over the queries that are both judged relevant for at
        least one document and present in the run.
        """
        result = CrossCheckResult(label=label, tolerance=self.tolerance)
        try:
            qrels_dict = judgments.relevant_only()
            run_dict = build_run_dict(ranked_lists)
            common = sorted(set(qrels_dict) & set(run_dict))
            result.num_queries = len(common)
            if not common:
                logger.warning(f"[{label}] Cross-check skipped: no judged queries in the run")
                result.error = "no judged queries in the run"
                return result

            ap_by_query = {m.query_id: m.average_precision for m in metrics}
            result.internal_map = sum(ap_by_query.get(q, 0.0) for q in common) / len(common)

            qrels = Qrels({q: qrels_dict[q] for q in common})
            run = Run({q: run_dict[q] for q in common})  # type: ignore
            result.ranx_map = float(await asyncio.to_thread(evaluate, qrels, run, "map"))

            if self.trec_eval_path and run_path is not None and output_dir is not None:
                await self._run_trec_eval(result, judgments, run_path, output_dir)
        except Exception as e:
            logger.warning(f"[{label}] Cross-check failed: {e}")
            result.error = str(e)
            return result

        if result.agrees:
            logger.info(
                f"[{label}] Cross-check agrees: internal MAP={result.internal_map:.4f}, "
                f"ranx MAP={result.ranx_map:.4f}"
            )
        else:
            logger.warning(
                f"[{label}] Cross-check mismatch: internal MAP={result.internal_map:.4f}, "
                f"ranx MAP={result.ranx_map}, trec_eval MAP={result.trec_eval_map}"
            )
        return result

    async def _run_trec_eval(
        self,
        result: CrossCheckResult,
        judgments: RelevanceJudgments,
        run_path: Path,
        output_dir: Path,
    ) -> None:
        qrels_path = write_qrels(judgments, output_dir / f"{result.label}.qrels")
        process = await asyncio.create_subprocess_exec(
            self.trec_eval_path,
            str(qrels_path),
            str(run_path),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self.trec_eval_timeout
            )
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise RuntimeError(f"trec_eval timed out after {self.trec_eval_timeout}s")

        if process.returncode != 0:
            raise RuntimeError(
                f"trec_eval exited with {process.returncode}: "
                f"{stderr.decode(errors='replace').strip()}"
            )

        output = stdout.decode(errors="replace")
        output_path = output_dir / f"{result.label}.trec_eval.txt"
        output_path.write_text(output, encoding="utf-8")
        result.trec_eval_output = output_path

        match = TREC_EVAL_MAP_PATTERN.search(output)
        if match:
            result.trec_eval_map = float(match.group(1))
