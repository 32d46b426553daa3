"""
ChromaConnector — ChromaDB implementation of StorageConnector.

Wraps chromadb.PersistentClient. All ChromaDB-specific imports and
calls live here; nothing outside this file needs to know about ChromaDB.

Layout for a logical collection "glossary" with vector field "emb":

    glossary        one row per record; the document is the full record
                    as JSON, the collection metadata carries the schema
    glossary__emb   one row per record that has an "emb" vector, indexed
                    with the hnsw space matching the field's distance function

Chroma collection names must be 3-63 characters of [a-zA-Z0-9._-], and
"__" is reserved for the vector collections; create_collection raises
InvalidCollectionName before touching the client otherwise.

Thread safety: PersistentClient is not thread-safe by default.
All client and collection operations are serialised through a
threading.Lock. Writes across the record and vector collections are not
transactional on disk; the lock keeps them consistent within one process.
"""

from __future__ import annotations

import json
import logging
import math
import re
import threading
from pathlib import Path
from typing import Any, Iterator

import chromadb

from vectorbox.errors import CollectionNotFound, InvalidCollectionName
from vectorbox.schema import (
    COSINE_DISTANCE,
    COSINE_SIMILARITY,
    DOT_PRODUCT,
    EUCLIDEAN_DISTANCE,
    Schema,
)
from vectorbox.storage.backends.base import StorageConnector
from vectorbox.storage.index import matches_filter, rank, without_vectors
from vectorbox.storage.models import SearchOptions, SearchResult

logger = logging.getLogger(__name__)

_SCHEMA_KEY = "vectorbox:schema"
# Record rows need an embedding; vectors live in the per-field collections.
_PLACEHOLDER = [1.0]

# Chroma: 3-63 chars, alphanumeric at both ends, [a-zA-Z0-9._-] in between
_CHROMA_NAME = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9._-]{1,61}[a-zA-Z0-9]$")
_VECTOR_SEP = "__"

_SPACES = {
    COSINE_SIMILARITY: "cosine",
    COSINE_DISTANCE: "cosine",
    DOT_PRODUCT: "ip",
}


def _space(distance_function: str) -> str:
    return _SPACES.get(distance_function, "l2")


def _to_score(distance_function: str, distance: float) -> float:
    """Convert a Chroma distance back into this field's score."""
    if distance_function == COSINE_SIMILARITY:
        return 1.0 - distance
    if distance_function == DOT_PRODUCT:
        return 1.0 - distance
    if distance_function == EUCLIDEAN_DISTANCE:
        return math.sqrt(max(distance, 0.0))
    # cosine_distance and euclidean_squared_distance map 1:1
    return distance


class ChromaConnector(StorageConnector):
    """ChromaDB-backed record storage (thread-safe)."""

    def __init__(self, path: str):
        chroma_path = Path(path)
        chroma_path.mkdir(parents=True, exist_ok=True)

        self._lock = threading.Lock()
        self._client = chromadb.PersistentClient(path=str(chroma_path))
        self._schemas: dict[str, Schema] = {}
        logger.info("ChromaConnector initialised (path=%s, thread-safe)", chroma_path)

    @staticmethod
    def _vector_name(name: str, field: str) -> str:
        return f"{name}{_VECTOR_SEP}{field}"

    def _check_names(self, name: str, schema: Schema) -> None:
        if _VECTOR_SEP in name:
            raise InvalidCollectionName(name, f"'{_VECTOR_SEP}' is reserved for vector field collections")
        if not _CHROMA_NAME.match(name) or ".." in name:
            raise InvalidCollectionName(
                name, "ChromaDB needs 3-63 characters of [a-zA-Z0-9._-], alphanumeric at both ends"
            )
        for f in schema.vector_fields:
            vector_name = self._vector_name(name, f.name)
            if not _CHROMA_NAME.match(vector_name) or ".." in vector_name:
                raise InvalidCollectionName(
                    name, f"vector collection '{vector_name}' for field '{f.name}' is not a valid ChromaDB name"
                )

    def _names(self) -> list[str]:
        # chromadb >= 0.6 returns names; older releases return Collection objects
        return [c if isinstance(c, str) else c.name for c in self._client.list_collections()]

    def _load_schema(self, name: str) -> Schema | None:
        if name in self._schemas:
            return self._schemas[name]
        if name not in self._names():
            return None
        metadata = self._client.get_collection(name).metadata or {}
        raw = metadata.get(_SCHEMA_KEY)
        if raw is None:
            return None
        schema = Schema.from_dict(json.loads(raw))
        self._schemas[name] = schema
        return schema

    def _schema_or_raise(self, name: str) -> Schema:
        schema = self._load_schema(name)
        if schema is None:
            raise CollectionNotFound(name)
        return schema

    # ------------------------------------------------------------------
    # StorageConnector interface
    # ------------------------------------------------------------------

    def create_collection(self, name: str, schema: Schema) -> None:
        self._check_names(name, schema)
        with self._lock:
            if self._load_schema(name) is not None:
                return
            self._client.get_or_create_collection(
                name=name,
                metadata={_SCHEMA_KEY: json.dumps(schema.to_dict())},
            )
            for f in schema.vector_fields:
                self._client.get_or_create_collection(
                    name=self._vector_name(name, f.name),
                    metadata={"hnsw:space": _space(f.distance_function)},
                )
            self._schemas[name] = schema
        logger.info("Created Chroma collection '%s'", name)

    def drop_collection(self, name: str) -> None:
        with self._lock:
            schema = self._load_schema(name)
            if schema is None:
                return
            existing = set(self._names())
            for f in schema.vector_fields:
                vector_name = self._vector_name(name, f.name)
                if vector_name in existing:
                    self._client.delete_collection(vector_name)
            self._client.delete_collection(name)
            self._schemas.pop(name, None)
        logger.info("Dropped Chroma collection '%s'", name)

    def collection_exists(self, name: str) -> bool:
        with self._lock:
            return self._load_schema(name) is not None

    def list_collections(self) -> set[str]:
        with self._lock:
            return {n for n in self._names() if self._load_schema(n) is not None}

    def get_schema(self, name: str) -> Schema:
        with self._lock:
            return self._schema_or_raise(name)

    def upsert_records(self, name: str, records: list[tuple[Any, dict]]) -> None:
        if not records:
            return
        # Chroma rejects repeated ids in one call; the last occurrence of a key wins.
        latest: dict[str, dict] = {}
        for key, fields in records:
            latest[str(key)] = fields
        with self._lock:
            schema = self._schema_or_raise(name)
            ids = list(latest)
            self._client.get_collection(name).upsert(
                ids=ids,
                embeddings=[_PLACEHOLDER for _ in ids],
                documents=[json.dumps(fields) for fields in latest.values()],
            )
            for f in schema.vector_fields:
                collection = self._client.get_collection(self._vector_name(name, f.name))
                present = [(i, fields[f.name]) for i, fields in latest.items()
                           if fields.get(f.name) is not None]
                absent = [i for i, fields in latest.items() if fields.get(f.name) is None]
                if present:
                    collection.upsert(
                        ids=[i for i, _ in present],
                        embeddings=[list(v) for _, v in present],
                    )
                if absent:
                    collection.delete(ids=absent)
        logger.debug("Upserted %d record(s) into Chroma '%s'", len(records), name)

    def _fetch(self, name: str, ids: list[str]) -> dict[str, dict]:
        if not ids:
            return {}
        result = self._client.get_collection(name).get(ids=ids, include=["documents"])
        return {i: json.loads(doc) for i, doc in zip(result["ids"], result["documents"])}

    def get_records(
        self,
        name: str,
        keys: list,
        include_vectors: bool = False,
    ) -> Iterator[dict]:
        with self._lock:
            schema = self._schema_or_raise(name)
            ids = [str(k) for k in keys]
            found = self._fetch(name, list(dict.fromkeys(ids)))
        vector_names = [f.name for f in schema.vector_fields]
        ordered = [found[i] for i in ids if i in found]
        if include_vectors:
            return iter(ordered)
        return (without_vectors(record, vector_names) for record in ordered)

    def delete_record(self, name: str, key) -> None:
        with self._lock:
            schema = self._schema_or_raise(name)
            ids = [str(key)]
            self._client.get_collection(name).delete(ids=ids)
            for f in schema.vector_fields:
                self._client.get_collection(self._vector_name(name, f.name)).delete(ids=ids)

    def count(self, name: str) -> int:
        with self._lock:
            self._schema_or_raise(name)
            return self._client.get_collection(name).count()

    def search(
        self,
        name: str,
        vector_field: str,
        query_vector: list[float],
        options: SearchOptions,
    ) -> list[SearchResult]:
        with self._lock:
            schema = self._schema_or_raise(name)
            collection = self._client.get_collection(self._vector_name(name, vector_field))
            total = collection.count()
            if total == 0:
                return []
            # Exact ranking and filtering happen here, so pull every candidate.
            hits = collection.query(
                query_embeddings=[list(query_vector)],
                n_results=total,
                include=["distances"],
            )
            ids = hits["ids"][0]
            distances = hits["distances"][0]
            records = self._fetch(name, ids)

        field = schema.field(vector_field)
        vector_names = [f.name for f in schema.vector_fields]
        key_name = schema.key_field.name
        scored = []
        for i, distance in zip(ids, distances):
            record = records.get(i)
            if record is None:
                continue
            if not matches_filter(without_vectors(record, vector_names), options.filter):
                continue
            scored.append((record[key_name], _to_score(field.distance_function, float(distance))))

        by_key = {record[key_name]: record for record in records.values()}
        ranked = rank(scored, field.higher_is_better, skip=options.skip, top=options.top)
        return [
            SearchResult(
                key=key,
                record=by_key[key] if options.include_vectors
                else without_vectors(by_key[key], vector_names),
                score=score,
            )
            for key, score in ranked
        ]
