"""Loader for graded relevance judgment (qrels) files."""
import logging
from collections.abc import Iterable
from pathlib import Path

from cranfield_eval.core.domain.models import JudgmentFormat, RelevanceJudgments
from cranfield_eval.core.services.tagged_parser import read_lines
from cranfield_eval.exceptions import MalformedRecord

logger = logging.getLogger(__name__)


class RelevanceJudgmentLoader:
    """
    Builds RelevanceJudgments from whitespace-separated judgment lines.

    Four-column files read `<queryId> <iteration> <docId> <grade>`, three-column
    files `<queryId> <docId> <grade>`. Malformed lines are skipped with a
    warning. When a (query, document) pair appears more than once the last
    grade wins.
    """

    def __init__(
        self,
        judgment_format: JudgmentFormat = JudgmentFormat.FOUR_COLUMN,
        encoding: str = "utf-8",
    ):
        self.judgment_format = judgment_format
        self.encoding = encoding

    def load(self, path: Path | str) -> RelevanceJudgments:
        """
        Load judgments from a file.

        Raises:
            ResourceUnavailable: If the file cannot be read
        """
        judgments = self.parse(read_lines(path, self.encoding))
        logger.info(f"Loaded judgments for {len(judgments)} queries from {path}")
        return judgments

    def parse(self, lines: Iterable[str]) -> RelevanceJudgments:
        grades: dict[str, dict[str, int]] = {}
        skipped = 0

        for line_number, raw_line in enumerate(lines, 1):
            line = raw_line.strip()
            if not line:
                continue
            try:
                query_id, doc_id, grade = self._parse_line(line_number, line)
            except MalformedRecord as e:
                logger.warning(f"Skipping judgment line: {e}")
                skipped += 1
                continue
            grades.setdefault(query_id, {})[doc_id] = grade

        if skipped:
            logger.warning(f"Skipped {skipped} malformed judgment line(s)")

        return RelevanceJudgments(grades)

    def _parse_line(self, line_number: int, line: str) -> tuple[str, str, int]:
        parts = line.split()
        expected = self.judgment_format.field_count
        if len(parts) != expected:
            raise MalformedRecord(
                line_number, line, f"expected {expected} fields, found {len(parts)}"
            )

        if self.judgment_format == JudgmentFormat.FOUR_COLUMN:
            query_id, _iteration, doc_id, raw_grade = parts
        else:
            query_id, doc_id, raw_grade = parts

        try:
            grade = int(raw_grade)
        except ValueError:
            raise MalformedRecord(line_number, line, f"grade {raw_grade!r} is not an integer")

        return query_id, doc_id, grade
