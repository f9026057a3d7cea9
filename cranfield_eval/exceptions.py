"""Custom exceptions for ingestion, evaluation and sweeps."""
from pathlib import Path
from typing import Any


class CranfieldEvalError(Exception):
    """Base class for all errors raised by this package."""


class ResourceUnavailable(CranfieldEvalError):
    """Raised when a required input file cannot be opened or read."""

    def __init__(self, path: Path | str, reason: Any):
        """
        Initialize the exception.

        Args:
            path: Path of the file that could not be read
            reason: Underlying error or message
        """
        super().__init__(f"Cannot read '{path}': {reason}")
        self.path = Path(path)
        self.reason = reason


class MalformedRecord(CranfieldEvalError):
    """Raised when a judgment line has the wrong arity or a non-numeric grade."""

    def __init__(self, line_number: int, line: str, reason: str):
        """
        Initialize the exception.

        Args:
            line_number: 1-based line number in the source file
            line: The offending line (stripped)
            reason: Why the line was rejected
        """
        super().__init__(f"Line {line_number}: {reason} ({line!r})")
        self.line_number = line_number
        self.line = line
        self.reason = reason


class QueryEvaluationFailure(CranfieldEvalError):
    """Raised when the ranking engine fails for a single query."""

    def __init__(self, configuration: str, query_id: str, reason: Any):
        super().__init__(
            f"Configuration '{configuration}' failed on query {query_id}: {reason}"
        )
        self.configuration = configuration
        self.query_id = query_id
        self.reason = reason


class ConfigurationFailure(CranfieldEvalError):
    """Raised when a whole retrieval configuration cannot be prepared or completed."""

    def __init__(self, configuration: str, reason: Any):
        super().__init__(f"Configuration '{configuration}' failed: {reason}")
        self.configuration = configuration
        self.reason = reason
