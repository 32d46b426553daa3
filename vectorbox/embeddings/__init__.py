"""
Embedding provider factory.

Usage:
    from vectorbox.embeddings import make_embedder
    embedder = make_embedder("ollama", model="nomic-embed-text", dimensions=768)

Providers: "ollama", "openai" (any OpenAI-compatible endpoint), "hash"
(deterministic, offline).
"""

from vectorbox.embeddings.base import EmbeddingProvider
from vectorbox.embeddings.hashing import HashEmbedder
from vectorbox.embeddings.ollama import OllamaEmbedder
from vectorbox.embeddings.openai_compat import OpenAICompatEmbedder

_REGISTRY: dict[str, type[EmbeddingProvider]] = {
    "ollama": OllamaEmbedder,
    "openai": OpenAICompatEmbedder,
    "hash": HashEmbedder,
}


def make_embedder(provider: str, **kwargs) -> EmbeddingProvider:
    """
    Instantiate an embedding provider by name.

    Raises:
        ValueError: If the provider is not registered.
    """
    cls = _REGISTRY.get(provider)
    if cls is None:
        available = ", ".join(_REGISTRY.keys())
        raise ValueError(
            f"Unknown embedding provider: '{provider}'. "
            f"Available: {available}"
        )
    return cls(**kwargs)


__all__ = [
    "EmbeddingProvider",
    "HashEmbedder",
    "OllamaEmbedder",
    "OpenAICompatEmbedder",
    "make_embedder",
]
