"""
VectorStore — collection manager facade.

Owns a StorageConnector and, optionally, an EmbeddingProvider. Hands out
RecordCollection handles that share both.

The connector is configured via  storage.connector  in config.yaml
(default: "memory"); the embedder via the  embedding  block.

To add a new storage backend:
  1. Implement StorageConnector in vectorbox/storage/backends/<n>.py
  2. Register it in vectorbox/storage/backends/__init__.py
  3. Set  storage.connector: <n>  in config.yaml
"""

from __future__ import annotations

import logging

from vectorbox.embeddings import EmbeddingProvider, make_embedder
from vectorbox.errors import CollectionNotFound, SchemaMismatch
from vectorbox.schema import Schema
from vectorbox.storage.backends import StorageConnector, make_connector
from vectorbox.storage.collection import RecordCollection

logger = logging.getLogger(__name__)


class VectorStore:
    """
    Enumerates, creates and drops collections on one connector.

    Schema validation and embedding stay in RecordCollection; the
    connector only moves records around.
    """

    def __init__(
        self,
        connector: StorageConnector | None = None,
        embedder: EmbeddingProvider | None = None,
        default_top: int = 3,
    ):
        if connector is None:
            connector = make_connector("memory")
        self._connector = connector
        self.embedder = embedder
        self.default_top = default_top

        logger.info(
            "VectorStore initialised (connector=%s, embedder=%s)",
            type(self._connector).__name__,
            embedder.model if embedder else None,
        )

    @classmethod
    def from_config(cls, cfg: dict) -> "VectorStore":
        """Build connector and embedder from a loaded config dict."""
        storage_cfg = cfg.get("storage", {})
        connector_type = storage_cfg.get("connector", "memory")
        if connector_type == "chromadb":
            connector = make_connector("chromadb", path=storage_cfg.get("chroma_path", "./data/chroma"))
        else:
            connector = make_connector(connector_type)

        embed_cfg = cfg.get("embedding", {})
        embedder = None
        provider = embed_cfg.get("provider")
        if provider:
            kwargs = {
                "model": embed_cfg.get("model", ""),
                "dimensions": int(embed_cfg.get("dimensions", 64)),
                "max_concurrency": int(embed_cfg.get("max_concurrency", 8)),
            }
            if provider in ("ollama", "openai"):
                kwargs["url"] = embed_cfg.get("backend_url", "http://localhost:11434")
                kwargs["timeout"] = float(embed_cfg.get("timeout", 30))
            if provider == "openai":
                kwargs["api_key"] = embed_cfg.get("api_key", "")
            if provider == "hash" and not kwargs["model"]:
                kwargs.pop("model")
            embedder = make_embedder(provider, **kwargs)

        default_top = int(cfg.get("search", {}).get("default_top", 3))
        return cls(connector=connector, embedder=embedder, default_top=default_top)

    def _handle(self, name: str, schema: Schema) -> RecordCollection:
        return RecordCollection(
            name,
            schema,
            self._connector,
            embedder=self.embedder,
            default_top=self.default_top,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def create_collection_if_not_exists(self, name: str, schema: Schema) -> RecordCollection:
        """
        Return the collection, creating it first if needed.

        Raises:
            SchemaMismatch: the collection exists with a different schema.
        """
        if not self._connector.collection_exists(name):
            self._connector.create_collection(name, schema)

        # Another caller may have won the race; trust what the connector holds.
        existing = self._connector.get_schema(name)
        if existing != schema:
            raise SchemaMismatch(
                f"Collection '{name}' already exists with a different schema",
                collection=name,
            )
        return self._handle(name, existing)

    def get_collection(self, name: str) -> RecordCollection:
        """Raises CollectionNotFound when the name is unknown."""
        if not self._connector.collection_exists(name):
            raise CollectionNotFound(name)
        return self._handle(name, self._connector.get_schema(name))

    def delete_collection(self, name: str) -> None:
        """Drop a collection with all of its records. Idempotent."""
        self._connector.drop_collection(name)

    def list_collection_names(self) -> set[str]:
        return self._connector.list_collections()

    def get_stats(self) -> dict:
        """Return record counts per collection."""
        return {name: self._connector.count(name) for name in sorted(self.list_collection_names())}
