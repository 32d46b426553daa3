"""
Data models for search.
These define the shape of queries and hits flowing between collections and connectors.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Union

# A filter is a predicate over a record's data fields, or a mapping of
# field -> required value (all clauses must match).
SearchFilter = Union[Callable[[dict], bool], Mapping[str, Any]]


@dataclass(frozen=True)
class SearchOptions:
    """Paging and filtering for a vector search."""
    top: int = 3
    skip: int = 0
    filter: SearchFilter | None = None
    include_vectors: bool = False

    def __post_init__(self):
        if isinstance(self.top, bool) or not isinstance(self.top, int) or self.top < 1:
            raise ValueError(f"top must be a positive integer, got {self.top!r}")
        if isinstance(self.skip, bool) or not isinstance(self.skip, int) or self.skip < 0:
            raise ValueError(f"skip must be a non-negative integer, got {self.skip!r}")
        if self.filter is not None and not (callable(self.filter) or isinstance(self.filter, Mapping)):
            raise ValueError("filter must be a callable or a mapping of field -> value")


@dataclass(frozen=True)
class SearchResult:
    """One ranked hit: the matching record and its score under the field's distance function."""
    key: Any
    record: dict
    score: float
