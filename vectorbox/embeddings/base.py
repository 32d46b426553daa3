"""
Base embedding provider abstraction.
All providers implement this interface so collections can treat them uniformly.
"""

from __future__ import annotations

import abc
import asyncio
import logging
import math
from typing import Iterable

from vectorbox.errors import DimensionMismatch, EmbeddingTimeout, EmbeddingUnavailable

logger = logging.getLogger(__name__)


class EmbeddingProvider(abc.ABC):
    """
    Abstract base for embedding providers.

    Each provider turns text into a vector of a fixed dimension. Providers
    never retry and never substitute a zero vector on failure: errors are
    raised as EmbeddingUnavailable / EmbeddingTimeout.
    """

    name = "base"

    def __init__(self, model: str, dimensions: int, max_concurrency: int = 8):
        if dimensions <= 0:
            raise ValueError(f"dimensions must be positive, got {dimensions}")
        if max_concurrency <= 0:
            raise ValueError(f"max_concurrency must be positive, got {max_concurrency}")
        self.model = model
        self.dimensions = dimensions
        self.max_concurrency = max_concurrency

    @abc.abstractmethod
    async def _request(self, text: str) -> list[float]:
        """Produce a raw embedding for one text."""
        ...

    async def embed(self, text: str) -> list[float]:
        """Embed one text, checking the vector has the configured dimension."""
        raw = await self._request(text)
        try:
            vector = [float(x) for x in raw]
        except (TypeError, ValueError) as e:
            raise EmbeddingUnavailable(
                f"{self.name} returned a malformed embedding: {str(raw)[:200]}",
                provider=self.name,
            ) from e
        if not all(math.isfinite(x) for x in vector):
            raise EmbeddingUnavailable(
                f"{self.name} returned NaN or infinite values", provider=self.name
            )
        if len(vector) != self.dimensions:
            raise DimensionMismatch(self.model, self.dimensions, len(vector))
        return vector

    async def embed_batch(
        self,
        texts: Iterable[str],
        deadline: float | None = None,
    ) -> list[list[float]]:
        """
        Embed many texts concurrently, one call per text.

        Results come back in input order. If any call fails the whole batch
        fails and pending calls are cancelled; no partial result is returned.

        Args:
            texts:    Texts to embed.
            deadline: Seconds to wait for the whole batch, or None for no limit.

        Raises:
            EmbeddingUnavailable: a provider call failed.
            EmbeddingTimeout:     the deadline expired first.
        """
        texts = list(texts)
        if not texts:
            return []

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _one(text: str) -> list[float]:
            async with semaphore:
                return await self.embed(text)

        tasks = [asyncio.ensure_future(_one(text)) for text in texts]
        try:
            joined = asyncio.gather(*tasks)
            if deadline is None:
                return list(await joined)
            return list(await asyncio.wait_for(joined, timeout=deadline))
        except asyncio.TimeoutError as e:
            logger.warning(
                "%s: batch of %d timed out after %.1fs", self.name, len(texts), deadline
            )
            raise EmbeddingTimeout(
                f"Embedding batch of {len(texts)} did not finish within {deadline}s"
            ) from e
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            # Reap every task so late failures are not reported as unretrieved.
            await asyncio.gather(*tasks, return_exceptions=True)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} model={self.model!r} dimensions={self.dimensions}>"
