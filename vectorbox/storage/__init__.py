"""
Record storage: connectors, collections and the collection manager.
"""
from vectorbox.storage.collection import RecordCollection
from vectorbox.storage.models import SearchOptions, SearchResult
from vectorbox.storage.vector_store import VectorStore

__all__ = [
    "RecordCollection",
    "SearchOptions",
    "SearchResult",
    "VectorStore",
]
