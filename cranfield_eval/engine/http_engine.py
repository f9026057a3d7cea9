"""HTTP client for a remote ranking service."""
from typing import Any, Optional

from httpx import AsyncClient, Response
from pydantic import BaseModel, Field

from cranfield_eval.core.domain.models import (
    Document,
    Query,
    RetrievalConfiguration,
    ScoredDocument,
)
from cranfield_eval.engine.base import RankingEngine


class BuildConfigurationRequest(BaseModel):
    """Request schema for preparing a configuration on the ranking service."""
    label: str
    params: dict[str, Any] = Field(default_factory=dict)
    documents: list[Document]


class BuildConfigurationResponse(BaseModel):
    """Response schema carrying the service-side context handle."""
    context_id: str = Field(..., min_length=1)


class SearchRequest(BaseModel):
    """Request schema for ranking one query."""
    query_id: str
    query: str
    top_k: int = Field(..., ge=1)


class HttpRankingEngine(RankingEngine):
    """Ranking engine backed by a ranking service reachable over HTTP."""

    def __init__(
        self,
        base_url: str,
        client: Optional[AsyncClient] = None,
        timeout: float = 30.0,
    ):
        """
        Initialize the engine client.

        Args:
            base_url: Base URL of the ranking service (e.g., "http://localhost:8080")
            client: Optional httpx.AsyncClient instance. If not provided, a new one will be created.
            timeout: Request timeout in seconds for a client created here
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self):
        """Async context manager entry."""
        if self._owns_client:
            self._client = AsyncClient(base_url=self.base_url, timeout=self.timeout)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        if self._owns_client and self._client:
            await self._client.aclose()

    @property
    def client(self) -> AsyncClient:
        """Get the underlying httpx client."""
        if self._client is None:
            raise RuntimeError("Client not initialized. Use async context manager.")
        return self._client

    async def build(
        self,
        configuration: RetrievalConfiguration,
        documents: list[Document],
    ) -> str:
        """
        Register a configuration and its corpus with the service.

        Returns:
            Context id assigned by the service

        Raises:
            httpx.HTTPStatusError: If the request fails
        """
        request = BuildConfigurationRequest(
            label=configuration.label,
            params=configuration.params,
            documents=documents,
        )
        response: Response = await self.client.post(
            "/configurations",
            json=request.model_dump(mode="json"),
        )
        response.raise_for_status()
        return BuildConfigurationResponse(**response.json()).context_id

    async def rank(self, context: Any, query: Query, depth: int) -> list[ScoredDocument]:
        """
        Search the prepared configuration.

        Raises:
            httpx.HTTPStatusError: If the request fails
        """
        request = SearchRequest(query_id=query.id, query=query.text, top_k=depth)
        response: Response = await self.client.post(
            f"/configurations/{context}/search",
            json=request.model_dump(mode="json"),
        )
        response.raise_for_status()
        return [ScoredDocument(**result) for result in response.json()]

    async def close(self, context: Any) -> None:
        """
        Discard the configuration on the service.

        Raises:
            httpx.HTTPStatusError: If the request fails
        """
        response: Response = await self.client.delete(f"/configurations/{context}")
        response.raise_for_status()
