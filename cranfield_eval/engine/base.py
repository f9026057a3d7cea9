"""Ranking engine contract used by the sweep runner."""
from abc import ABC, abstractmethod
from typing import Any

from cranfield_eval.core.domain.models import (
    Document,
    Query,
    RetrievalConfiguration,
    ScoredDocument,
)


class RankingEngine(ABC):
    """
    Abstract base class for external ranking engines.

    An engine is prepared once per retrieval configuration and then asked
    for one ranked list per query. The value returned by `build` is opaque
    to callers and is passed back to `rank` and `close` unchanged.
    """

    @abstractmethod
    async def build(
        self,
        configuration: RetrievalConfiguration,
        documents: list[Document],
    ) -> Any:
        """
        Prepare the engine for one configuration.

        Args:
            configuration: Label and engine parameters
            documents: Full corpus, in collection order

        Returns:
            Engine-specific context handle

        Raises:
            Exception: Any failure; the caller treats it as a configuration failure
        """
        pass

    @abstractmethod
    async def rank(self, context: Any, query: Query, depth: int) -> list[ScoredDocument]:
        """
        Rank the corpus for one query.

        Args:
            context: Handle returned by `build`
            query: Query id and text
            depth: Maximum number of results wanted

        Returns:
            Results ordered best first
        """
        pass

    async def close(self, context: Any) -> None:
        """Release whatever `build` acquired. The default does nothing."""
        return None

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        return None
