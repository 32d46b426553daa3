"""
Exception hierarchy for VectorBox.

Every error raised by the store derives from VectorBoxError so callers can
catch the whole family at once.

    SchemaError            malformed schema definition (fatal)
    SchemaMismatch         collection exists with a different schema (fatal)
    RecordValidationError  record does not conform to its schema
    DimensionMismatch      vector length differs from the declared dimension
    FieldNotVector         search targeted a non-vector field
    EmbeddingUnavailable   provider unreachable, timed out or returned garbage (transient)
    EmbeddingTimeout       caller deadline expired while embedding (transient)
    CollectionNotFound     named collection does not exist (recoverable)
    InvalidCollectionName  connector cannot store a collection under that name

Nothing in VectorBox retries automatically; transient errors are surfaced
to the caller.
"""

from __future__ import annotations


class VectorBoxError(Exception):
    """Base exception for all VectorBox errors."""


class SchemaError(VectorBoxError):
    """Raised by define() when a schema definition is malformed."""


class SchemaMismatch(VectorBoxError):
    """Raised when a collection already exists with an incompatible schema."""

    def __init__(self, message: str, collection: str = ""):
        super().__init__(message)
        self.collection = collection


class RecordValidationError(VectorBoxError):
    """Raised when a record does not conform to its collection's schema."""

    def __init__(self, message: str, field: str = ""):
        super().__init__(message)
        self.field = field


class DimensionMismatch(RecordValidationError):
    """A vector's length differs from the dimension declared for its field."""

    def __init__(self, field: str, expected: int, actual: int):
        super().__init__(
            f"Vector '{field}' expects {expected} dimensions, got {actual}",
            field=field,
        )
        self.expected = expected
        self.actual = actual


class FieldNotVector(VectorBoxError):
    """Raised when a vector search names a field that is not a vector field."""

    def __init__(self, field: str):
        super().__init__(f"Field '{field}' is not a vector field")
        self.field = field


class EmbeddingError(VectorBoxError):
    """Base for embedding provider failures. Callers may retry these."""


class EmbeddingUnavailable(EmbeddingError):
    """
    The embedding provider could not produce a vector.

    Raised when:
    - the provider is unreachable, times out or returns an HTTP error
    - the response is not JSON or carries no usable embedding
    """

    def __init__(self, message: str, provider: str = "", status_code: int | None = None):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class EmbeddingTimeout(EmbeddingError):
    """The caller's batch deadline expired before every pending embedding call completed."""


class CollectionNotFound(VectorBoxError):
    """The named collection does not exist."""

    def __init__(self, collection: str):
        super().__init__(f"Collection not found: '{collection}'")
        self.collection = collection


class InvalidCollectionName(VectorBoxError):
    """The connector cannot store a collection under this name."""

    def __init__(self, collection: str, reason: str):
        super().__init__(f"Invalid collection name '{collection}': {reason}")
        self.collection = collection
