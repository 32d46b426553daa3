"""
Ollama embedder — local embeddings via Ollama's /api/embed endpoint.
"""

from __future__ import annotations

import logging

import httpx

from vectorbox.embeddings.base import EmbeddingProvider
from vectorbox.errors import EmbeddingUnavailable

logger = logging.getLogger(__name__)


class OllamaEmbedder(EmbeddingProvider):
    """Embedding provider for local Ollama instances."""

    name = "ollama"

    def __init__(
        self,
        model: str,
        dimensions: int,
        url: str = "http://localhost:11434",
        timeout: float = 30.0,
        max_concurrency: int = 8,
    ):
        super().__init__(model, dimensions, max_concurrency)
        self.url = url.rstrip("/")
        self.timeout = timeout

    async def _request(self, text: str) -> list[float]:
        """Get embedding vector from Ollama API (async)."""
        async with httpx.AsyncClient() as client:
            try:
                resp = await client.post(
                    f"{self.url}/api/embed",
                    json={"model": self.model, "input": text},
                    timeout=self.timeout,
                )
                resp.raise_for_status()
            except httpx.TimeoutException as e:
                logger.warning("Ollama embed timed out after %.1fs (model=%s)", self.timeout, self.model)
                raise EmbeddingUnavailable(
                    f"Ollama did not answer within {self.timeout}s", provider=self.name
                ) from e
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                if status == 404:
                    raise EmbeddingUnavailable(
                        f"Embedding model '{self.model}' not found. "
                        f"Run: ollama pull {self.model}",
                        provider=self.name,
                        status_code=status,
                    ) from e
                raise EmbeddingUnavailable(
                    f"Ollama returned HTTP {status}: {e.response.text[:200]}",
                    provider=self.name,
                    status_code=status,
                ) from e
            except httpx.HTTPError as e:
                logger.warning("Ollama embed failed (model=%s): %s", self.model, e)
                raise EmbeddingUnavailable(
                    f"Cannot reach Ollama at {self.url}: {e}", provider=self.name
                ) from e

            try:
                data = resp.json()
            except ValueError as e:
                raise EmbeddingUnavailable(
                    f"Embedding endpoint returned non-JSON response: {resp.text[:200]}",
                    provider=self.name,
                ) from e

        embeddings = data.get("embeddings")
        if not embeddings or not embeddings[0]:
            raise EmbeddingUnavailable(
                f"Embedding model '{self.model}' returned an empty embeddings "
                f"array. The input may be blank or the model may have failed silently.",
                provider=self.name,
            )
        return embeddings[0]
