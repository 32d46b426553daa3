"""
VectorBox — typed vector record store.
Schemas, pluggable storage connectors, embedding providers and nearest-neighbour search.
"""
from vectorbox.errors import (
    CollectionNotFound,
    DimensionMismatch,
    EmbeddingTimeout,
    EmbeddingUnavailable,
    FieldNotVector,
    InvalidCollectionName,
    RecordValidationError,
    SchemaError,
    SchemaMismatch,
    VectorBoxError,
)
from vectorbox.schema import DATA, KEY, VECTOR, FieldDescriptor, Schema, SchemaBuilder, define
from vectorbox.storage import RecordCollection, SearchOptions, SearchResult, VectorStore

__version__ = "0.1.0"

__all__ = [
    "CollectionNotFound",
    "DATA",
    "DimensionMismatch",
    "EmbeddingTimeout",
    "EmbeddingUnavailable",
    "FieldDescriptor",
    "FieldNotVector",
    "InvalidCollectionName",
    "KEY",
    "RecordCollection",
    "RecordValidationError",
    "Schema",
    "SchemaBuilder",
    "SchemaError",
    "SchemaMismatch",
    "SearchOptions",
    "SearchResult",
    "VECTOR",
    "VectorBoxError",
    "VectorStore",
    "define",
]
