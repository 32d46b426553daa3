"""
Generic OpenAI-compatible embedder.

Supports any endpoint that speaks the OpenAI /v1/embeddings format:
- OpenAI
- vLLM
- LocalAI
- llama.cpp server
- Ollama (can also use this instead of OllamaEmbedder)
"""

from __future__ import annotations

import logging

import httpx

from vectorbox.embeddings.base import EmbeddingProvider
from vectorbox.errors import EmbeddingUnavailable

logger = logging.getLogger(__name__)


class OpenAICompatEmbedder(EmbeddingProvider):
    """
    Embedding provider for OpenAI-compatible endpoints.

    When send_dimensions is set the requested dimension is passed to the
    API (text-embedding-3 models can shorten their output).
    """

    name = "openai"

    def __init__(
        self,
        model: str,
        dimensions: int,
        url: str = "https://api.openai.com",
        api_key: str = "",
        timeout: float = 30.0,
        max_concurrency: int = 8,
        send_dimensions: bool = False,
    ):
        super().__init__(model, dimensions, max_concurrency)
        self.url = url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.send_dimensions = send_dimensions

    async def _request(self, text: str) -> list[float]:
        headers = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        body: dict = {"model": self.model, "input": text}
        if self.send_dimensions:
            body["dimensions"] = self.dimensions

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(
                    f"{self.url}/v1/embeddings",
                    json=body,
                    headers=headers,
                )
        except httpx.TimeoutException as e:
            logger.warning(
                "OpenAI-compatible embedder timed out after %.1fs (model=%s)",
                self.timeout,
                self.model,
            )
            raise EmbeddingUnavailable(
                f"{self.url} did not answer within {self.timeout}s", provider=self.name
            ) from e
        except httpx.HTTPError as e:
            logger.warning("OpenAI-compatible embedder failed (model=%s): %s", self.model, e)
            raise EmbeddingUnavailable(f"Cannot reach {self.url}: {e}", provider=self.name) from e

        if resp.status_code >= 400:
            raise EmbeddingUnavailable(
                f"HTTP {resp.status_code}: {resp.text[:200]}",
                provider=self.name,
                status_code=resp.status_code,
            )

        try:
            data = resp.json()
            return data["data"][0]["embedding"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise EmbeddingUnavailable(
                f"Unexpected embeddings response: {resp.text[:200]}", provider=self.name
            ) from e
