"""
Deterministic hash-based embedder for tests, demos and offline use.

Each lowercase word is hashed into one of `dimensions` buckets with a +/-1
sign, the counts are summed and the result is L2-normalised. Texts that
share words land close together under cosine similarity, and identical
input always yields the identical vector. No model, no network.
"""

from __future__ import annotations

import hashlib
import re

import numpy as np

from vectorbox.embeddings.base import EmbeddingProvider

_WORD = re.compile(r"\w+")


class HashEmbedder(EmbeddingProvider):
    """Feature-hashing embedder."""

    name = "hash"

    def __init__(self, dimensions: int = 64, model: str = "feature-hash-v1", max_concurrency: int = 8):
        super().__init__(model, dimensions, max_concurrency)

    def embed_sync(self, text: str) -> list[float]:
        vector = np.zeros(self.dimensions, dtype=np.float64)
        for word in _WORD.findall(text.lower()):
            digest = hashlib.md5(word.encode()).digest()
            bucket = int.from_bytes(digest[:4], "little") % self.dimensions
            sign = 1.0 if digest[4] & 1 else -1.0
            vector[bucket] += sign
        norm = np.linalg.norm(vector)
        if norm > 0:
            vector /= norm
        return vector.tolist()

    async def _request(self, text: str) -> list[float]:
        return self.embed_sync(text)
