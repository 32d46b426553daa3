"""
RecordCollection — typed record operations over one named collection.

Every mutation goes through here: records are validated against the
collection's schema before the connector sees them, so a failed call
never leaves a partial write behind. The connector's vector index is only
ever updated as a side effect of these record writes.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Iterator

from vectorbox.embeddings.base import EmbeddingProvider
from vectorbox.errors import DimensionMismatch, FieldNotVector, RecordValidationError
from vectorbox.schema import VECTOR, Schema, check_vector
from vectorbox.storage.backends.base import StorageConnector
from vectorbox.storage.models import SearchOptions, SearchResult

logger = logging.getLogger(__name__)


class RecordCollection:
    """Handle on a named collection. Obtain one from VectorStore."""

    def __init__(
        self,
        name: str,
        schema: Schema,
        connector: StorageConnector,
        embedder: EmbeddingProvider | None = None,
        default_top: int = 3,
    ):
        self.name = name
        self.schema = schema
        self._connector = connector
        self._embedder = embedder
        self._default_top = default_top

    def __repr__(self) -> str:
        return f"<RecordCollection name={self.name!r} connector={type(self._connector).__name__}>"

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _prepare(self, record: dict) -> tuple[Any, dict]:
        """Validate a record and return (key, normalised copy)."""
        key = self.schema.validate_record(record)
        prepared = dict(record)
        for f in self.schema.vector_fields:
            value = prepared.get(f.name)
            if value is not None:
                prepared[f.name] = check_vector(f, value)
        return key, prepared

    def _vector_field(self, name: str):
        f = self.schema.field(name)
        if f is None or f.role != VECTOR:
            raise FieldNotVector(name)
        return f

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def upsert(self, record: dict):
        """Insert or replace a record by key. Returns the key."""
        key, prepared = self._prepare(record)
        self._connector.upsert_records(self.name, [(key, prepared)])
        logger.debug("upsert %r into '%s'", key, self.name)
        return key

    def upsert_batch(self, records: Iterable[dict]) -> Iterator:
        """
        Validate and commit a batch of records atomically.

        Every record is validated before anything is written; one bad record
        aborts the whole batch. The commit happens when this is called; the
        returned one-shot iterator yields the keys in input order.
        """
        prepared = [self._prepare(record) for record in records]
        keys = [key for key, _ in prepared]
        if len(set(keys)) != len(keys):
            logger.debug("batch for '%s' repeats keys; last occurrence wins", self.name)
        if prepared:
            self._connector.upsert_records(self.name, prepared)
        logger.debug("upsert_batch of %d into '%s'", len(prepared), self.name)
        return iter(keys)

    def delete(self, key) -> None:
        """Remove a record and its index entries. Missing or wrongly typed keys are ignored."""
        if not self.schema.accepts_key(key):
            return
        self._connector.delete_record(self.name, key)

    async def embed_and_upsert_batch(
        self,
        records: Iterable[dict],
        source_field: str,
        vector_field: str,
        embedder: EmbeddingProvider | None = None,
        deadline: float | None = None,
    ) -> list:
        """
        Embed record[source_field] into record[vector_field] for every record,
        then upsert the batch.

        Embeddings are requested concurrently and all must succeed before
        anything is written. On EmbeddingUnavailable or EmbeddingTimeout the
        collection is left untouched.
        """
        embedder = embedder or self._embedder
        if embedder is None:
            raise ValueError("No embedding provider configured for this collection")

        target = self._vector_field(vector_field)
        if embedder.dimensions != target.dimensions:
            raise DimensionMismatch(vector_field, target.dimensions, embedder.dimensions)

        source = self.schema.field(source_field)
        if source is None or source.role == VECTOR:
            raise RecordValidationError(
                f"Source field '{source_field}' must be a key or data field", field=source_field
            )

        records = list(records)
        texts = []
        for record in records:
            text = record.get(source_field)
            if not isinstance(text, str):
                raise RecordValidationError(
                    f"Source field '{source_field}' must hold text to embed", field=source_field
                )
            texts.append(text)

        # Validate up front so an invalid record fails before any provider call.
        for record in records:
            self.schema.validate_record({k: v for k, v in record.items() if k != vector_field})

        vectors = await embedder.embed_batch(texts, deadline=deadline)
        filled = [{**record, vector_field: vector} for record, vector in zip(records, vectors)]
        keys = list(self.upsert_batch(filled))
        logger.info("Embedded and upserted %d record(s) into '%s'", len(keys), self.name)
        return keys

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, key, include_vectors: bool = False) -> dict | None:
        """Fetch one record, or None. Vector fields are omitted unless include_vectors."""
        if not self.schema.accepts_key(key):
            return None
        return self._connector.get_record(self.name, key, include_vectors)

    def get_batch(self, keys: Iterable, include_vectors: bool = False) -> Iterator[dict]:
        """Lazily yield records in the order of keys; missing keys are skipped."""
        wanted = [key for key in keys if self.schema.accepts_key(key)]
        return self._connector.get_records(self.name, wanted, include_vectors)

    def count(self) -> int:
        return self._connector.count(self.name)

    def search(
        self,
        vector_field: str,
        query_vector,
        options: SearchOptions | None = None,
    ) -> list[SearchResult]:
        """
        Nearest-neighbour search over one vector field.

        Raises:
            FieldNotVector:    vector_field is not a vector field of the schema.
            DimensionMismatch: query_vector has the wrong length.
        """
        f = self._vector_field(vector_field)
        query = check_vector(f, query_vector)
        options = options or SearchOptions(top=self._default_top)
        return self._connector.search(self.name, vector_field, query, options)

    async def search_text(
        self,
        vector_field: str,
        text: str,
        options: SearchOptions | None = None,
        embedder: EmbeddingProvider | None = None,
    ) -> list[SearchResult]:
        """Embed text with the collection's provider, then search."""
        embedder = embedder or self._embedder
        if embedder is None:
            raise ValueError("No embedding provider configured for this collection")
        self._vector_field(vector_field)
        query = await embedder.embed(text)
        return self.search(vector_field, query, options)
