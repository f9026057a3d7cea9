"""Parser for line-tagged Cranfield collection and query files."""
import logging
from collections.abc import Iterable
from pathlib import Path

from cranfield_eval.core.domain.models import Document, Query, QueryIdMode
from cranfield_eval.exceptions import ResourceUnavailable

logger = logging.getLogger(__name__)

RECORD_TAG = ".I"

# Field tags recognised in collection files, mapped to Document attributes
DOCUMENT_FIELDS = {
    ".T": "title",
    ".A": "author",
    ".B": "bibliography",
    ".W": "body",
}

# Query files only carry a body
QUERY_FIELDS = {".W": "body"}


class _OpenRecord:
    """Record being accumulated between two `.I` lines."""

    def __init__(self, record_id: str, ordinal: int, line_number: int):
        self.record_id = record_id
        self.ordinal = ordinal
        self.line_number = line_number
        self.fields: dict[str, list[str]] = {}

    def append(self, field: str, text: str) -> None:
        self.fields.setdefault(field, []).append(text)

    def text(self, field: str) -> str:
        return " ".join(self.fields.get(field, [])).strip()


def read_lines(path: Path | str, encoding: str = "utf-8") -> list[str]:
    """
    Read a whole text file into memory.

    Raises:
        ResourceUnavailable: If the file is missing or cannot be read/decoded
    """
    path = Path(path)
    try:
        with open(path, "r", encoding=encoding) as f:
            return f.read().splitlines()
    except (OSError, UnicodeDecodeError) as e:
        raise ResourceUnavailable(path, e) from e


class TaggedRecordParser:
    """
    Parses `.I/.T/.A/.B/.W` tagged files into Document and Query records.

    A `.I <id>` line opens a record and flushes the previous one. Field tags
    switch the active field; every following non-tag line is appended to it,
    joined by single spaces, until the next tag. Lines seen before any tag
    are discarded and blank lines contribute nothing.
    """

    def __init__(
        self,
        query_id_mode: QueryIdMode = QueryIdMode.SOURCE,
        encoding: str = "utf-8",
    ):
        """
        Initialize the parser.

        Args:
            query_id_mode: How query ids are assigned (see QueryIdMode)
            encoding: Text encoding of the input files
        """
        self.query_id_mode = query_id_mode
        self.encoding = encoding

    def load_documents(self, path: Path | str) -> list[Document]:
        """Parse a collection file such as `cran.all.1400`."""
        lines = read_lines(path, self.encoding)
        documents = self.parse_documents(lines)
        logger.info(f"Parsed {len(documents)} documents from {path}")
        return documents

    def load_queries(self, path: Path | str) -> list[Query]:
        """Parse a query file such as `cran.qry`."""
        lines = read_lines(path, self.encoding)
        queries = self.parse_queries(lines)
        logger.info(f"Parsed {len(queries)} queries from {path}")
        return queries

    def parse_documents(self, lines: Iterable[str]) -> list[Document]:
        documents: list[Document] = []
        seen: set[str] = set()

        for record in self._records(lines, DOCUMENT_FIELDS):
            if not record.record_id:
                logger.warning(
                    f"Skipping document without id opened at line {record.line_number}"
                )
                continue
            if record.record_id in seen:
                logger.warning(
                    f"Duplicate document id {record.record_id} at line "
                    f"{record.line_number}, keeping the first record"
                )
                continue
            seen.add(record.record_id)
            documents.append(Document(
                id=record.record_id,
                title=record.text("title"),
                author=record.text("author"),
                bibliography=record.text("bibliography"),
                body=record.text("body"),
            ))

        return documents

    def parse_queries(self, lines: Iterable[str]) -> list[Query]:
        queries: list[Query] = []
        seen: set[str] = set()

        for record in self._records(lines, QUERY_FIELDS):
            if self.query_id_mode == QueryIdMode.SEQUENTIAL:
                query_id = str(len(queries) + 1)
            else:
                query_id = record.record_id or str(record.ordinal)

            if query_id in seen:
                logger.warning(
                    f"Duplicate query id {query_id} at line {record.line_number}, "
                    f"keeping the first record"
                )
                continue
            seen.add(query_id)
            queries.append(Query(id=query_id, text=record.text("body")))

        return queries

    def _records(
        self,
        lines: Iterable[str],
        fields: dict[str, str],
    ) -> Iterable[_OpenRecord]:
        """Yield every record in order, the last one flushed at end of input."""
        current: _OpenRecord | None = None
        active_field: str | None = None
        ordinal = 0

        for line_number, raw_line in enumerate(lines, 1):
            line = raw_line.strip()
            if not line:
                continue

            tag, *rest = line.split(maxsplit=1)
            rest = rest[0] if rest else ""

            if tag == RECORD_TAG:
                if current is not None:
                    yield current
                ordinal += 1
                current = _OpenRecord(rest.strip(), ordinal, line_number)
                active_field = None
                continue

            if current is None:
                # Before the first .I line
                continue

            if tag in DOCUMENT_FIELDS:
                # Tags outside `fields` (e.g. .T in a query file) silence their section
                active_field = fields.get(tag)
                line = rest.strip()
                if not line:
                    continue

            if active_field is not None:
                current.append(active_field, line)

        if current is not None:
            yield current
