"""
StorageConnector — abstract base for record storage backends.

A connector owns named collections. Each collection holds schema-conforming
records keyed by their key field, plus whatever index the backend needs to
answer nearest-neighbour queries over the vector fields.

Validation stays in RecordCollection (the caller), not here. Connectors are
intentionally dumb: they receive records that already passed the schema,
and they keep their index in sync with their record table on every write.

Semantics every connector must honour:
  create_collection  no-op when the name already exists
  drop_collection    no-op when the name is absent
  upsert_records     all-or-nothing; insert-or-replace by key
  get_record(s)      vector fields omitted unless include_vectors
  delete_record      no-op when the key is absent
  search             best score first, ties by ascending key, skip then top
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Iterator

from vectorbox.schema import Schema
from vectorbox.storage.models import SearchOptions, SearchResult


class StorageConnector(ABC):
    """Abstract record storage backend."""

    @abstractmethod
    def create_collection(self, name: str, schema: Schema) -> None:
        """Create a collection. Does nothing if it already exists."""
        ...

    @abstractmethod
    def drop_collection(self, name: str) -> None:
        """Drop a collection with all of its records and indexes."""
        ...

    @abstractmethod
    def collection_exists(self, name: str) -> bool:
        ...

    @abstractmethod
    def list_collections(self) -> set[str]:
        ...

    @abstractmethod
    def get_schema(self, name: str) -> Schema:
        """Return the schema a collection was created with. Raises CollectionNotFound."""
        ...

    @abstractmethod
    def upsert_records(self, name: str, records: list[tuple[Any, dict]]) -> None:
        """Insert or replace (key, fields) pairs atomically."""
        ...

    @abstractmethod
    def get_records(
        self,
        name: str,
        keys: list,
        include_vectors: bool = False,
    ) -> Iterator[dict]:
        """
        Yield stored records in the order of keys, skipping missing ones.

        The set of records is fixed when the call is made; only copying
        happens lazily.
        """
        ...

    @abstractmethod
    def delete_record(self, name: str, key) -> None:
        ...

    @abstractmethod
    def count(self, name: str) -> int:
        """Return the number of records in a collection."""
        ...

    @abstractmethod
    def search(
        self,
        name: str,
        vector_field: str,
        query_vector: list[float],
        options: SearchOptions,
    ) -> list[SearchResult]:
        """
        Nearest-neighbour search over one vector field.

        Records without a value for vector_field are never returned.
        """
        ...

    # ------------------------------------------------------------------
    # Single-record conveniences
    # ------------------------------------------------------------------

    def upsert_record(self, name: str, key, fields: dict) -> None:
        self.upsert_records(name, [(key, fields)])

    def get_record(self, name: str, key, include_vectors: bool = False) -> dict | None:
        return next(iter(self.get_records(name, [key], include_vectors)), None)
