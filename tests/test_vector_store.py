"""
Tests for VectorStore collection management and the connector factory.
"""

import pytest

from vectorbox.embeddings import HashEmbedder, OllamaEmbedder, OpenAICompatEmbedder
from vectorbox.errors import CollectionNotFound, SchemaMismatch
from vectorbox.schema import EUCLIDEAN_DISTANCE, SchemaBuilder
from vectorbox.storage import VectorStore
from vectorbox.storage.backends import make_connector
from vectorbox.storage.backends.memory import InMemoryConnector


@pytest.fixture
def store():
    return VectorStore()


@pytest.fixture
def schema():
    return SchemaBuilder().key("id", int).data("term", str).vector("emb", 3).build()


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------

def test_create_is_idempotent(store, schema):
    first = store.create_collection_if_not_exists("glossary", schema)
    first.upsert({"id": 1, "term": "API"})
    second = store.create_collection_if_not_exists("glossary", schema)
    assert second.count() == 1
    assert store.list_collection_names() == {"glossary"}


def test_create_with_different_schema_fails(store, schema):
    store.create_collection_if_not_exists("glossary", schema)
    other = SchemaBuilder().key("id", int).vector("emb", 3, distance_function=EUCLIDEAN_DISTANCE).build()
    with pytest.raises(SchemaMismatch) as exc:
        store.create_collection_if_not_exists("glossary", other)
    assert exc.value.collection == "glossary"


def test_get_collection(store, schema):
    store.create_collection_if_not_exists("glossary", schema).upsert({"id": 1})
    handle = store.get_collection("glossary")
    assert handle.schema == schema
    assert handle.get(1) == {"id": 1}


def test_get_missing_collection(store):
    with pytest.raises(CollectionNotFound):
        store.get_collection("nope")


def test_delete_collection(store, schema):
    store.create_collection_if_not_exists("glossary", schema).upsert({"id": 1})
    store.delete_collection("glossary")
    store.delete_collection("glossary")
    assert store.list_collection_names() == set()
    with pytest.raises(CollectionNotFound):
        store.get_collection("glossary")


def test_recreate_after_delete_is_empty(store, schema):
    store.create_collection_if_not_exists("glossary", schema).upsert({"id": 1})
    store.delete_collection("glossary")
    assert store.create_collection_if_not_exists("glossary", schema).count() == 0


def test_stale_handle_raises_after_delete(store, schema):
    handle = store.create_collection_if_not_exists("glossary", schema)
    store.delete_collection("glossary")
    with pytest.raises(CollectionNotFound):
        handle.upsert({"id": 1})


def test_collections_are_isolated(store, schema):
    a = store.create_collection_if_not_exists("a", schema)
    b = store.create_collection_if_not_exists("b", schema)
    a.upsert({"id": 1, "emb": [1, 0, 0]})
    assert b.count() == 0
    assert b.search("emb", [1, 0, 0]) == []


def test_get_stats(store, schema):
    store.create_collection_if_not_exists("b", schema).upsert_batch([{"id": 1}, {"id": 2}])
    store.create_collection_if_not_exists("a", schema)
    assert store.get_stats() == {"a": 0, "b": 2}


def test_default_top_applies_to_handles(schema):
    store = VectorStore(default_top=1)
    coll = store.create_collection_if_not_exists("glossary", schema)
    coll.upsert_batch([{"id": i, "emb": [1, i, 0]} for i in range(5)])
    assert len(coll.search("emb", [1, 0, 0])) == 1


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

def test_make_connector_memory():
    assert isinstance(make_connector("memory"), InMemoryConnector)


def test_make_connector_unknown():
    with pytest.raises(ValueError, match="Unknown storage connector"):
        make_connector("postgres")


def test_from_config_hash_embedder():
    store = VectorStore.from_config({
        "storage": {"connector": "memory"},
        "embedding": {"provider": "hash", "dimensions": 16},
        "search": {"default_top": 5},
    })
    assert isinstance(store.embedder, HashEmbedder)
    assert store.embedder.dimensions == 16
    assert store.default_top == 5


def test_from_config_ollama_embedder():
    store = VectorStore.from_config({
        "embedding": {
            "provider": "ollama",
            "model": "nomic-embed-text",
            "backend_url": "http://gpu-box:11434",
            "dimensions": 768,
            "timeout": 5,
        },
    })
    assert isinstance(store.embedder, OllamaEmbedder)
    assert store.embedder.url == "http://gpu-box:11434"
    assert store.embedder.timeout == 5.0


def test_from_config_openai_embedder():
    store = VectorStore.from_config({
        "embedding": {
            "provider": "openai",
            "model": "text-embedding-3-small",
            "backend_url": "https://api.openai.com",
            "dimensions": 1536,
            "api_key": "sk-test",
        },
    })
    assert isinstance(store.embedder, OpenAICompatEmbedder)
    assert store.embedder.api_key == "sk-test"


def test_from_config_without_embedder():
    store = VectorStore.from_config({})
    assert store.embedder is None
    assert store.default_top == 3
