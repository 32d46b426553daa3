"""
InMemoryConnector — reference implementation of StorageConnector.

Records live in a dict per collection; every vector field gets a
VectorIndex. Nothing is persisted.

Thread safety: each collection has its own threading.Lock. Writers hold it
for the whole record + index update. Stored records are replaced, never
mutated in place, so readers hold the lock only long enough to capture
references to a consistent snapshot; copying and scoring happen outside
the lock and concurrent readers don't block each other for long.
"""

from __future__ import annotations

import copy
import logging
import threading
from typing import Any, Iterator

import numpy as np

from vectorbox.errors import CollectionNotFound
from vectorbox.schema import Schema
from vectorbox.storage.backends.base import StorageConnector
from vectorbox.storage.index import (
    VectorIndex,
    matches_filter,
    rank,
    score_vectors,
    without_vectors,
)
from vectorbox.storage.models import SearchOptions, SearchResult

logger = logging.getLogger(__name__)


class _MemoryCollection:
    __slots__ = ("name", "schema", "lock", "records", "indexes")

    def __init__(self, name: str, schema: Schema):
        self.name = name
        self.schema = schema
        self.lock = threading.Lock()
        self.records: dict[Any, dict] = {}
        self.indexes: dict[str, VectorIndex] = {
            f.name: VectorIndex(f) for f in schema.vector_fields
        }

    def export(self, record: dict, include_vectors: bool) -> dict:
        if include_vectors:
            return copy.deepcopy(record)
        return copy.deepcopy(without_vectors(record, self.indexes))


class InMemoryConnector(StorageConnector):
    """Dict-backed storage with exact-scan vector search (thread-safe)."""

    def __init__(self):
        self._lock = threading.Lock()
        self._collections: dict[str, _MemoryCollection] = {}
        logger.info("InMemoryConnector initialised")

    def _get(self, name: str) -> _MemoryCollection:
        with self._lock:
            coll = self._collections.get(name)
        if coll is None:
            raise CollectionNotFound(name)
        return coll

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    def create_collection(self, name: str, schema: Schema) -> None:
        with self._lock:
            if name in self._collections:
                return
            self._collections[name] = _MemoryCollection(name, schema)
        logger.info("Created collection '%s' (%d fields)", name, len(schema.fields))

    def drop_collection(self, name: str) -> None:
        with self._lock:
            coll = self._collections.pop(name, None)
        if coll is None:
            return
        with coll.lock:
            coll.records.clear()
            for index in coll.indexes.values():
                index.clear()
        logger.info("Dropped collection '%s'", name)

    def collection_exists(self, name: str) -> bool:
        with self._lock:
            return name in self._collections

    def list_collections(self) -> set[str]:
        with self._lock:
            return set(self._collections)

    def get_schema(self, name: str) -> Schema:
        return self._get(name).schema

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def upsert_records(self, name: str, records: list[tuple[Any, dict]]) -> None:
        coll = self._get(name)
        # Copy before taking the lock so a failure here can't leave a half-written batch.
        staged = [(key, copy.deepcopy(fields)) for key, fields in records]
        with coll.lock:
            for key, fields in staged:
                coll.records[key] = fields
                for field_name, index in coll.indexes.items():
                    vector = fields.get(field_name)
                    if vector is None:
                        index.remove(key)
                    else:
                        index.put(key, vector)
        logger.debug("Upserted %d record(s) into '%s'", len(staged), name)

    def get_records(
        self,
        name: str,
        keys: list,
        include_vectors: bool = False,
    ) -> Iterator[dict]:
        coll = self._get(name)
        with coll.lock:
            found = [coll.records[k] for k in keys if k in coll.records]
        return (coll.export(record, include_vectors) for record in found)

    def delete_record(self, name: str, key) -> None:
        coll = self._get(name)
        with coll.lock:
            if coll.records.pop(key, None) is None:
                return
            for index in coll.indexes.values():
                index.remove(key)
        logger.debug("Deleted record %r from '%s'", key, name)

    def count(self, name: str) -> int:
        coll = self._get(name)
        with coll.lock:
            return len(coll.records)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search(
        self,
        name: str,
        vector_field: str,
        query_vector: list[float],
        options: SearchOptions,
    ) -> list[SearchResult]:
        coll = self._get(name)
        with coll.lock:
            entries = coll.indexes[vector_field].snapshot()
            records = {key: coll.records[key] for key in entries}

        vector_names = list(coll.indexes)
        candidates = [
            key for key in entries
            if matches_filter(without_vectors(records[key], vector_names), options.filter)
        ]
        if not candidates:
            return []

        field = coll.schema.field(vector_field)
        matrix = np.vstack([entries[key] for key in candidates])
        scores = score_vectors(field.distance_function, query_vector, matrix)
        ranked = rank(
            zip(candidates, (float(s) for s in scores)),
            higher_is_better=field.higher_is_better,
            skip=options.skip,
            top=options.top,
        )
        return [
            SearchResult(
                key=key,
                record=coll.export(records[key], options.include_vectors),
                score=score,
            )
            for key, score in ranked
        ]
