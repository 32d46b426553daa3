"""
Schema registry — field classification for a record type.

A schema is an ordered, immutable tuple of field descriptors. Each field
plays one role:

    key     exactly one per schema; int or str; unique within a collection
    data    any number; str, int, float, bool, list or dict (str-keyed, JSON-shaped); optional
    vector  any number; fixed positive dimension; optional until embedded

Two front-ends build the same Schema object:

    schema = define([
        FieldDescriptor("id", KEY, int),
        FieldDescriptor("term", DATA, str),
        FieldDescriptor("emb", VECTOR, float, dimensions=3),
    ])

    schema = SchemaBuilder().key("id", int).data("term", str).vector("emb", 3).build()
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable

from vectorbox.errors import DimensionMismatch, RecordValidationError, SchemaError


KEY = "key"
DATA = "data"
VECTOR = "vector"
ROLES = (KEY, DATA, VECTOR)

COSINE_SIMILARITY = "cosine_similarity"
COSINE_DISTANCE = "cosine_distance"
DOT_PRODUCT = "dot_product"
EUCLIDEAN_DISTANCE = "euclidean_distance"
EUCLIDEAN_SQUARED_DISTANCE = "euclidean_squared_distance"

# name -> True when a higher score is a better match
DISTANCE_FUNCTIONS: dict[str, bool] = {
    COSINE_SIMILARITY: True,
    COSINE_DISTANCE: False,
    DOT_PRODUCT: True,
    EUCLIDEAN_DISTANCE: False,
    EUCLIDEAN_SQUARED_DISTANCE: False,
}

DEFAULT_DISTANCE_FUNCTION = COSINE_SIMILARITY

_TYPES: dict[str, type] = {
    "str": str,
    "int": int,
    "float": float,
    "bool": bool,
    "list": list,
    "dict": dict,
}
_KEY_TYPES = (int, str)


def _resolve_type(value) -> type:
    if isinstance(value, str):
        resolved = _TYPES.get(value)
        if resolved is None:
            raise SchemaError(f"Unsupported field type: '{value}'")
        return resolved
    if value not in _TYPES.values():
        raise SchemaError(f"Unsupported field type: {value!r}")
    return value


@dataclass(frozen=True)
class FieldDescriptor:
    """One field of a record schema."""
    name: str
    role: str
    type: Any = str
    dimensions: int | None = None
    distance_function: str | None = None

    @property
    def higher_is_better(self) -> bool:
        return DISTANCE_FUNCTIONS[self.distance_function or DEFAULT_DISTANCE_FUNCTION]


@dataclass(frozen=True)
class Schema:
    """Validated, immutable field layout of a record type. Build with define()."""
    fields: tuple[FieldDescriptor, ...]

    @property
    def key_field(self) -> FieldDescriptor:
        return next(f for f in self.fields if f.role == KEY)

    @property
    def data_fields(self) -> tuple[FieldDescriptor, ...]:
        return tuple(f for f in self.fields if f.role == DATA)

    @property
    def vector_fields(self) -> tuple[FieldDescriptor, ...]:
        return tuple(f for f in self.fields if f.role == VECTOR)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    def field(self, name: str) -> FieldDescriptor | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def accepts_key(self, key) -> bool:
        """True when key has the key field's type."""
        return _matches(key, self.key_field.type)

    def validate_record(self, record: dict) -> Any:
        """
        Check a record against this schema and return its key.

        Raises:
            RecordValidationError: missing/invalid key, unknown field, wrong data type.
            DimensionMismatch:     a present vector has the wrong length.
        """
        if not isinstance(record, dict):
            raise RecordValidationError(f"Record must be a dict, got {type(record).__name__}")

        known = set(self.names)
        unknown = [name for name in record if name not in known]
        if unknown:
            raise RecordValidationError(
                f"Unknown field(s) for schema: {', '.join(sorted(map(str, unknown)))}",
                field=str(unknown[0]),
            )

        key_field = self.key_field
        key = record.get(key_field.name)
        if key is None:
            raise RecordValidationError(
                f"Record is missing key field '{key_field.name}'", field=key_field.name
            )
        if not _matches(key, key_field.type):
            raise RecordValidationError(
                f"Key field '{key_field.name}' expects {key_field.type.__name__}, "
                f"got {type(key).__name__}",
                field=key_field.name,
            )

        for f in self.data_fields:
            value = record.get(f.name)
            if value is not None and not _matches(value, f.type):
                raise RecordValidationError(
                    f"Data field '{f.name}' expects {f.type.__name__}, "
                    f"got {type(value).__name__}",
                    field=f.name,
                )
            if f.type in (list, dict) and value is not None and not _is_plain(value):
                raise RecordValidationError(
                    f"Data field '{f.name}' may only nest str-keyed dicts, lists, "
                    f"str, int, float, bool and None",
                    field=f.name,
                )

        for f in self.vector_fields:
            value = record.get(f.name)
            if value is not None:
                check_vector(f, value)

        return key

    def to_dict(self) -> dict:
        """JSON-safe form, used by connectors that persist the schema."""
        return {
            "fields": [
                {
                    "name": f.name,
                    "role": f.role,
                    "type": f.type.__name__,
                    "dimensions": f.dimensions,
                    "distance_function": f.distance_function,
                }
                for f in self.fields
            ]
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Schema":
        return define(
            FieldDescriptor(
                name=f["name"],
                role=f["role"],
                type=f["type"],
                dimensions=f.get("dimensions"),
                distance_function=f.get("distance_function"),
            )
            for f in data["fields"]
        )


def _is_plain(value) -> bool:
    """JSON-shaped: str-keyed dicts, lists and scalars all the way down."""
    if value is None or isinstance(value, (str, bool, int)):
        return True
    if isinstance(value, float):
        return math.isfinite(value)
    if isinstance(value, list):
        return all(_is_plain(v) for v in value)
    if isinstance(value, dict):
        return all(isinstance(k, str) and _is_plain(v) for k, v in value.items())
    return False


def _matches(value, expected: type) -> bool:
    # bool is an int subclass; never let True pass as a number
    if isinstance(value, bool):
        return expected is bool
    if expected is float:
        return isinstance(value, (int, float))
    return isinstance(value, expected)


def check_vector(f: FieldDescriptor, value) -> list[float]:
    """Validate a vector value for field f and return it as list[float]."""
    if isinstance(value, (str, bytes, dict)):
        raise RecordValidationError(
            f"Vector field '{f.name}' must be a sequence of numbers", field=f.name
        )
    try:
        vector = [float(x) for x in value]
    except (TypeError, ValueError) as e:
        raise RecordValidationError(
            f"Vector field '{f.name}' must be a sequence of numbers", field=f.name
        ) from e
    if len(vector) != f.dimensions:
        raise DimensionMismatch(f.name, f.dimensions, len(vector))
    if not all(math.isfinite(x) for x in vector):
        raise RecordValidationError(
            f"Vector field '{f.name}' contains NaN or infinite values", field=f.name
        )
    return vector


def define(fields: Iterable[FieldDescriptor]) -> Schema:
    """
    Validate field descriptors and return an immutable Schema.

    Raises:
        SchemaError: zero or several key fields, duplicate names, a vector
                     field without a positive dimension, an unsupported type
                     or an unknown distance function.
    """
    normalized: list[FieldDescriptor] = []
    seen: set[str] = set()

    for f in fields:
        if not isinstance(f, FieldDescriptor):
            raise SchemaError(f"Expected FieldDescriptor, got {type(f).__name__}")
        if not f.name or not isinstance(f.name, str):
            raise SchemaError("Field name must be a non-empty string")
        if f.name in seen:
            raise SchemaError(f"Duplicate field name: '{f.name}'")
        seen.add(f.name)

        if f.role not in ROLES:
            raise SchemaError(f"Field '{f.name}' has unknown role '{f.role}'")

        if f.role == VECTOR:
            dims = f.dimensions
            if isinstance(dims, bool) or not isinstance(dims, int) or dims <= 0:
                raise SchemaError(
                    f"Vector field '{f.name}' needs a positive integer dimension, got {dims!r}"
                )
            distance = f.distance_function or DEFAULT_DISTANCE_FUNCTION
            if distance not in DISTANCE_FUNCTIONS:
                raise SchemaError(
                    f"Vector field '{f.name}' has unknown distance function '{distance}'. "
                    f"Available: {', '.join(DISTANCE_FUNCTIONS)}"
                )
            normalized.append(FieldDescriptor(f.name, VECTOR, float, dims, distance))
            continue

        if f.dimensions is not None or f.distance_function is not None:
            raise SchemaError(f"Only vector fields take dimensions; '{f.name}' is a {f.role} field")

        field_type = _resolve_type(f.type)
        if f.role == KEY and field_type not in _KEY_TYPES:
            raise SchemaError(f"Key field '{f.name}' must be int or str, got {field_type.__name__}")
        normalized.append(FieldDescriptor(f.name, f.role, field_type))

    keys = [f.name for f in normalized if f.role == KEY]
    if len(keys) != 1:
        raise SchemaError(f"Schema needs exactly one key field, found {len(keys)}")

    return Schema(fields=tuple(normalized))


class SchemaBuilder:
    """Fluent front-end over define()."""

    def __init__(self):
        self._fields: list[FieldDescriptor] = []

    def key(self, name: str, type=str) -> "SchemaBuilder":
        self._fields.append(FieldDescriptor(name, KEY, type))
        return self

    def data(self, name: str, type=str) -> "SchemaBuilder":
        self._fields.append(FieldDescriptor(name, DATA, type))
        return self

    def vector(
        self,
        name: str,
        dimensions: int,
        distance_function: str = DEFAULT_DISTANCE_FUNCTION,
    ) -> "SchemaBuilder":
        self._fields.append(
            FieldDescriptor(name, VECTOR, float, dimensions, distance_function)
        )
        return self

    def build(self) -> Schema:
        return define(self._fields)
