"""
Tests for schema definition and record validation.
Run with: pytest tests/test_schema.py
"""

import pytest

from vectorbox.errors import DimensionMismatch, RecordValidationError, SchemaError
from vectorbox.schema import (
    COSINE_SIMILARITY,
    DATA,
    EUCLIDEAN_DISTANCE,
    KEY,
    VECTOR,
    FieldDescriptor,
    Schema,
    SchemaBuilder,
    define,
)


@pytest.fixture
def schema():
    return define([
        FieldDescriptor("id", KEY, int),
        FieldDescriptor("term", DATA, str),
        FieldDescriptor("emb", VECTOR, dimensions=3),
    ])


# ---------------------------------------------------------------------------
# define()
# ---------------------------------------------------------------------------

def test_define_valid_schema(schema):
    """A schema with one key, a data and a vector field is accepted."""
    assert schema.key_field.name == "id"
    assert [f.name for f in schema.data_fields] == ["term"]
    assert [f.name for f in schema.vector_fields] == ["emb"]
    assert schema.names == ("id", "term", "emb")


def test_define_key_only():
    """Data and vector fields are optional."""
    s = define([FieldDescriptor("id", KEY, str)])
    assert s.key_field.name == "id"
    assert s.vector_fields == ()


def test_define_no_key_fails():
    with pytest.raises(SchemaError):
        define([FieldDescriptor("term", DATA, str)])


def test_define_two_keys_fails():
    with pytest.raises(SchemaError):
        define([FieldDescriptor("a", KEY, int), FieldDescriptor("b", KEY, str)])


def test_define_empty_fails():
    with pytest.raises(SchemaError):
        define([])


def test_define_duplicate_names_fails():
    with pytest.raises(SchemaError, match="Duplicate"):
        define([FieldDescriptor("id", KEY, int), FieldDescriptor("id", DATA, str)])


@pytest.mark.parametrize("dims", [None, 0, -4, 2.5, True])
def test_define_bad_vector_dimension_fails(dims):
    with pytest.raises(SchemaError):
        define([FieldDescriptor("id", KEY, int), FieldDescriptor("emb", VECTOR, dimensions=dims)])


def test_define_unknown_distance_function_fails():
    with pytest.raises(SchemaError, match="distance function"):
        define([
            FieldDescriptor("id", KEY, int),
            FieldDescriptor("emb", VECTOR, dimensions=3, distance_function="manhattan"),
        ])


def test_define_rejects_float_key():
    with pytest.raises(SchemaError):
        define([FieldDescriptor("id", KEY, float)])


def test_define_rejects_unknown_role_and_type():
    with pytest.raises(SchemaError):
        define([FieldDescriptor("id", "primary", int)])
    with pytest.raises(SchemaError):
        define([FieldDescriptor("id", KEY, int), FieldDescriptor("when", DATA, "datetime")])


def test_define_rejects_dimensions_on_data_field():
    with pytest.raises(SchemaError):
        define([FieldDescriptor("id", KEY, int), FieldDescriptor("term", DATA, str, dimensions=3)])


def test_type_names_resolve():
    """Types may be given by name."""
    s = define([FieldDescriptor("id", KEY, "int"), FieldDescriptor("score", DATA, "float")])
    assert s.key_field.type is int
    assert s.field("score").type is float


def test_vector_defaults_to_cosine(schema):
    assert schema.field("emb").distance_function == COSINE_SIMILARITY
    assert schema.field("emb").higher_is_better


def test_schema_is_immutable(schema):
    with pytest.raises(AttributeError):
        schema.fields = ()


def test_builder_matches_define(schema):
    """SchemaBuilder and define() produce equal schemas."""
    built = SchemaBuilder().key("id", int).data("term", str).vector("emb", 3).build()
    assert built == schema


def test_builder_distance_function():
    s = SchemaBuilder().key("id").vector("emb", 2, distance_function=EUCLIDEAN_DISTANCE).build()
    assert s.field("emb").distance_function == EUCLIDEAN_DISTANCE
    assert not s.field("emb").higher_is_better


def test_dict_round_trip(schema):
    """to_dict/from_dict reproduce an equal schema."""
    assert Schema.from_dict(schema.to_dict()) == schema


# ---------------------------------------------------------------------------
# validate_record()
# ---------------------------------------------------------------------------

def test_validate_returns_key(schema):
    assert schema.validate_record({"id": 7, "term": "API", "emb": [1, 0, 0]}) == 7


def test_validate_missing_key(schema):
    with pytest.raises(RecordValidationError) as exc:
        schema.validate_record({"term": "API"})
    assert exc.value.field == "id"


def test_validate_wrong_key_type(schema):
    with pytest.raises(RecordValidationError):
        schema.validate_record({"id": "7"})


def test_validate_bool_is_not_int(schema):
    with pytest.raises(RecordValidationError):
        schema.validate_record({"id": True})


def test_validate_wrong_data_type(schema):
    with pytest.raises(RecordValidationError) as exc:
        schema.validate_record({"id": 1, "term": 42})
    assert exc.value.field == "term"


def test_validate_unknown_field(schema):
    with pytest.raises(RecordValidationError, match="Unknown"):
        schema.validate_record({"id": 1, "colour": "red"})


def test_validate_absent_optional_fields(schema):
    """Data and vector fields may be absent or None."""
    assert schema.validate_record({"id": 1}) == 1
    assert schema.validate_record({"id": 1, "term": None, "emb": None}) == 1


def test_validate_int_accepted_for_float():
    s = SchemaBuilder().key("id", int).data("weight", float).build()
    assert s.validate_record({"id": 1, "weight": 3}) == 1


def test_validate_dimension_mismatch(schema):
    with pytest.raises(DimensionMismatch) as exc:
        schema.validate_record({"id": 1, "emb": [1.0, 0.0]})
    assert exc.value.expected == 3
    assert exc.value.actual == 2


def test_validate_non_numeric_vector(schema):
    with pytest.raises(RecordValidationError):
        schema.validate_record({"id": 1, "emb": ["a", "b", "c"]})


def test_validate_nan_vector(schema):
    with pytest.raises(RecordValidationError):
        schema.validate_record({"id": 1, "emb": [float("nan"), 0.0, 0.0]})


def test_validate_string_is_not_a_vector(schema):
    with pytest.raises(RecordValidationError):
        schema.validate_record({"id": 1, "emb": "123"})


def test_accepts_key(schema):
    assert schema.accepts_key(7)
    assert not schema.accepts_key("7")
    assert not schema.accepts_key(True)
    assert not schema.accepts_key(7.0)


def test_validate_nested_data_must_be_json_shaped():
    s = SchemaBuilder().key("id", int).data("meta", dict).data("tags", list).build()
    assert s.validate_record({"id": 1, "meta": {"a": [1, {"b": None}]}, "tags": ["x", 2]}) == 1
    with pytest.raises(RecordValidationError) as exc:
        s.validate_record({"id": 1, "meta": {2: "two"}})
    assert exc.value.field == "meta"
    with pytest.raises(RecordValidationError):
        s.validate_record({"id": 1, "tags": [("a", "b")]})
    with pytest.raises(RecordValidationError):
        s.validate_record({"id": 1, "tags": [float("inf")]})
