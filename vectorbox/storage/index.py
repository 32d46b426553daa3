"""
Vector index and scoring.

VectorIndex holds the {key -> vector} entries for one vector field. It is a
cache derived from the record table and is only ever written by the
connector that owns it, inside the same critical section as the record
write.

Scoring is an exact scan: every candidate vector is scored against the
query with numpy, then ranked best-first with ascending key as the
tie-break so results are deterministic.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Iterable

import numpy as np

from vectorbox.schema import (
    COSINE_DISTANCE,
    COSINE_SIMILARITY,
    DOT_PRODUCT,
    EUCLIDEAN_DISTANCE,
    EUCLIDEAN_SQUARED_DISTANCE,
    FieldDescriptor,
)


class VectorIndex:
    """Key -> vector entries for a single vector field."""

    def __init__(self, field: FieldDescriptor):
        self.field = field
        self._entries: dict[Any, np.ndarray] = {}

    def put(self, key, vector) -> None:
        self._entries[key] = np.asarray(vector, dtype=np.float64)

    def remove(self, key) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def snapshot(self) -> dict[Any, np.ndarray]:
        """Shallow copy of the entries. Arrays are replaced on put, never mutated."""
        return dict(self._entries)

    def __contains__(self, key) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def score_vectors(distance_function: str, query, matrix: np.ndarray) -> np.ndarray:
    """Score each row of matrix against query. Returns a 1-D array."""
    q = np.asarray(query, dtype=np.float64)

    if distance_function in (COSINE_SIMILARITY, COSINE_DISTANCE):
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(q)
        dots = matrix @ q
        # zero-norm vectors have no direction; treat them as orthogonal
        sims = np.divide(dots, norms, out=np.zeros_like(dots), where=norms > 0)
        return sims if distance_function == COSINE_SIMILARITY else 1.0 - sims
    if distance_function == DOT_PRODUCT:
        return matrix @ q
    if distance_function == EUCLIDEAN_DISTANCE:
        return np.linalg.norm(matrix - q, axis=1)
    if distance_function == EUCLIDEAN_SQUARED_DISTANCE:
        diff = matrix - q
        return np.einsum("ij,ij->i", diff, diff)
    raise ValueError(f"Unknown distance function: '{distance_function}'")


def rank(
    scored: Iterable[tuple[Any, float]],
    higher_is_better: bool,
    skip: int = 0,
    top: int = 3,
) -> list[tuple[Any, float]]:
    """Sort (key, score) pairs best-first, ties by ascending key, then page."""
    if higher_is_better:
        ordered = sorted(scored, key=lambda kv: (-kv[1], kv[0]))
    else:
        ordered = sorted(scored, key=lambda kv: (kv[1], kv[0]))
    return ordered[skip:skip + top]


def matches_filter(record: dict, search_filter) -> bool:
    """Apply a callable predicate or an equality mapping to a record."""
    if search_filter is None:
        return True
    if isinstance(search_filter, Mapping):
        return all(record.get(name) == value for name, value in search_filter.items())
    return bool(search_filter(record))


def without_vectors(record: dict, vector_names: Iterable[str]) -> dict:
    """Copy of record with vector fields dropped."""
    skip = set(vector_names)
    return {name: value for name, value in record.items() if name not in skip}
