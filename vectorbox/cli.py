#!/usr/bin/env python3
"""
VectorBox CLI — typed records in, nearest neighbours out.

Every command has a short name and standard aliases:

    COMMAND         ALIASES         WHAT IT DOES
    -------         -------         ----------------------------------
    demo            tour            Glossary walkthrough on an in-memory store
    ingest          load, import    Embed and upsert records from a JSONL file
    sweep           search, query   Semantic search over a collection
    flash           info, stats     Show config and collection stats
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from vectorbox import __version__

logger = logging.getLogger(__name__)

GLOSSARY = [
    {
        "key": "1",
        "category": "External Definitions",
        "term": "API",
        "definition": "Application Programming Interface. A set of rules and specifications "
                      "that allow software components to communicate and exchange data.",
    },
    {
        "key": "2",
        "category": "Core Definitions",
        "term": "Connectors",
        "definition": "Connectors allow you to integrate with various services that provide "
                      "AI capabilities, including LLM, AudioToText, TextToAudio, Embedding "
                      "generation, etc.",
    },
    {
        "key": "3",
        "category": "External Definitions",
        "term": "RAG",
        "definition": "Retrieval Augmented Generation - a term that refers to the process of "
                      "retrieving additional data to provide as context to an LLM to use when "
                      "generating a response (completion) to a user's question (prompt).",
    },
]


def setup_logging(cfg: dict) -> None:
    log_cfg = cfg.get("logging", {})
    level = getattr(logging, str(log_cfg.get("level", "INFO")).upper(), logging.INFO)
    log_file = log_cfg.get("file")

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
    )


def _load(args) -> dict:
    from vectorbox.config import load_config
    cfg = load_config(Path(args.config) if args.config else None)
    setup_logging(cfg)
    return cfg


def _print_hits(results) -> None:
    if not results:
        print("  No signal found.")
        return
    for i, hit in enumerate(results, 1):
        print(f"\n  [{i}] key: {hit.key} | score: {hit.score:.3f}")
        for name, value in hit.record.items():
            text = str(value)
            if len(text) > 200:
                text = text[:200] + "..."
            print(f"      {name}: {text}")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_demo(args):
    """Define a schema, embed a glossary, upsert, fetch and search it."""
    from vectorbox.embeddings import HashEmbedder
    from vectorbox.schema import SchemaBuilder
    from vectorbox.storage import SearchOptions, VectorStore

    cfg = _load(args)
    if args.offline:
        embedder = HashEmbedder(dimensions=64)
    else:
        embedder = VectorStore.from_config({"embedding": cfg["embedding"]}).embedder
        if embedder is None:
            embedder = HashEmbedder(dimensions=64)

    store = VectorStore(embedder=embedder, default_top=cfg["search"]["default_top"])
    schema = (
        SchemaBuilder()
        .key("key", str)
        .data("category", str)
        .data("term", str)
        .data("definition", str)
        .vector("definition_embedding", embedder.dimensions)
        .build()
    )
    glossary = store.create_collection_if_not_exists("skglossary", schema)
    print(f"  Collection: {glossary.name} ({len(schema.fields)} fields, embedder={embedder.model})")

    async def _run():
        keys = await glossary.embed_and_upsert_batch(
            GLOSSARY,
            source_field="definition",
            vector_field="definition_embedding",
            deadline=args.deadline,
        )
        print(f"  Upserted keys: {', '.join(keys)}")

        record = glossary.get("1")
        print(f"\n  get('1') -> {record['term']}: {record['definition']}")

        query = " ".join(args.query) if args.query else "What is an Application Programming Interface?"
        print(f"\n  🔍 Sweeping for: '{query}'")
        print("  " + "─" * 56)
        results = await glossary.search_text("definition_embedding", query, SearchOptions(top=args.results))
        _print_hits(results)

    asyncio.run(_run())


def _infer_type(value) -> str:
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "int"
    if isinstance(value, float):
        return "float"
    if isinstance(value, list):
        return "list"
    if isinstance(value, dict):
        return "dict"
    return "str"


def _schema_for(records: list[dict], key_field: str, vector_field: str, dimensions: int):
    """Derive a schema from sample records: every non-key field becomes a data field."""
    from vectorbox.schema import SchemaBuilder

    builder = SchemaBuilder().key(key_field, _infer_type(records[0][key_field]))
    seen: dict[str, str] = {}
    for record in records:
        for name, value in record.items():
            if name in (key_field, vector_field) or name in seen or value is None:
                continue
            seen[name] = _infer_type(value)
    for name, type_name in seen.items():
        builder.data(name, type_name)
    return builder.vector(vector_field, dimensions).build()


def cmd_ingest(args):
    """Embed and upsert records from a JSONL file."""
    from vectorbox.errors import VectorBoxError
    from vectorbox.storage import VectorStore

    cfg = _load(args)
    store = VectorStore.from_config(cfg)
    if store.embedder is None:
        print("  ✗  No embedding provider configured (embedding.provider)")
        sys.exit(1)

    with open(args.file) as f:
        records = [json.loads(line) for line in f if line.strip()]
    if not records:
        print(f"  Nothing to ingest in {args.file}")
        return

    if args.key_field not in records[0]:
        print(f"  ✗  First record in {args.file} has no '{args.key_field}' field (see --key-field)")
        sys.exit(1)
    try:
        schema = _schema_for(records, args.key_field, args.vector_field, store.embedder.dimensions)
        collection = store.create_collection_if_not_exists(args.collection, schema)
    except VectorBoxError as e:
        print(f"  ✗  Cannot prepare '{args.collection}': {e}")
        sys.exit(1)
    if cfg["storage"]["connector"] == "memory":
        print("  ⚠  storage.connector is 'memory'; records vanish when this process exits")

    async def _run():
        total = 0
        for start in range(0, len(records), args.batch_size):
            batch = records[start:start + args.batch_size]
            keys = await collection.embed_and_upsert_batch(
                batch,
                source_field=args.text_field,
                vector_field=args.vector_field,
                deadline=args.deadline,
            )
            total += len(keys)
            print(f"  ↑  {total}/{len(records)}", flush=True)
        return total

    try:
        total = asyncio.run(_run())
    except VectorBoxError as e:
        print(f"  ✗  Ingest failed: {e}")
        sys.exit(1)
    print(f"  📦 Ingested {total} records into '{args.collection}'")


def cmd_sweep(args):
    """Semantic search over a collection."""
    from vectorbox.errors import VectorBoxError
    from vectorbox.storage import SearchOptions, VectorStore

    cfg = _load(args)
    store = VectorStore.from_config(cfg)

    query = " ".join(args.query)
    print(f"  🔍 Sweeping '{args.collection}' for: '{query}'")
    print("  " + "─" * 56)

    try:
        collection = store.get_collection(args.collection)
        results = asyncio.run(
            collection.search_text(args.vector_field, query, SearchOptions(top=args.results, skip=args.skip))
        )
    except VectorBoxError as e:
        print(f"  ✗  {e}")
        sys.exit(1)
    _print_hits(results)


def cmd_flash(args):
    """Show config and collection stats at a glance."""
    from vectorbox.storage import VectorStore

    cfg = _load(args)
    storage_cfg = cfg["storage"]
    embed_cfg = cfg["embedding"]

    print("  Configuration")
    print(f"  ├─ Connector:  {storage_cfg['connector']}")
    if storage_cfg["connector"] == "chromadb":
        print(f"  ├─ ChromaDB:   {storage_cfg['chroma_path']}")
    print(f"  ├─ Embedder:   {embed_cfg['provider']} ({embed_cfg['model']}, {embed_cfg['dimensions']} dims)")
    print(f"  └─ Top:        {cfg['search']['default_top']}")

    stats = VectorStore.from_config(cfg).get_stats()
    print()
    print("  Collections")
    if not stats:
        print("  └─ none")
    items = list(stats.items())
    for i, (name, count) in enumerate(items):
        prefix = "└─" if i == len(items) - 1 else "├─"
        print(f"  {prefix} {name}: {count} records")


# ---------------------------------------------------------------------------
# Parser with aliases
# ---------------------------------------------------------------------------

def _add_command(subparsers, names, help_text, func, setup_fn=None):
    """Register a command under multiple names."""
    p = subparsers.add_parser(names[0], help=help_text, aliases=names[1:])
    p.set_defaults(func=func)
    if setup_fn:
        setup_fn(p)
    return p


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vectorbox",
        description="VectorBox — typed vector record store.",
        epilog="Run 'vectorbox <command> --help' for command-specific options.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version", "-V", action="version",
        version=f"vectorbox {__version__}",
    )
    parser.add_argument("--config", "-c", default=None, help="Path to config.yaml")

    sub = parser.add_subparsers(dest="command", metavar="<command>")

    def setup_demo(p):
        p.add_argument("query", nargs="*", help="Search query (default: a question about APIs)")
        p.add_argument("--offline", action="store_true", help="Use the hash embedder, no network")
        p.add_argument("--results", "-n", type=int, default=1, help="Number of results")
        p.add_argument("--deadline", type=float, default=None, help="Seconds allowed for embedding")

    _add_command(sub, ["demo", "tour"],
                 "Glossary walkthrough on an in-memory store", cmd_demo, setup_demo)

    def setup_ingest(p):
        p.add_argument("file", help="JSONL file, one record per line")
        p.add_argument("--collection", required=True, help="Target collection")
        p.add_argument("--key-field", default="id", help="Key field name (default: id)")
        p.add_argument("--text-field", default="text", help="Field to embed (default: text)")
        p.add_argument("--vector-field", default="embedding", help="Vector field (default: embedding)")
        p.add_argument("--batch-size", type=int, default=64, help="Records per embedding batch")
        p.add_argument("--deadline", type=float, default=None, help="Seconds allowed per batch")

    _add_command(sub, ["ingest", "load", "import"],
                 "Embed and upsert records from a JSONL file", cmd_ingest, setup_ingest)

    def setup_sweep(p):
        p.add_argument("query", nargs="+", help="Search query")
        p.add_argument("--collection", required=True, help="Collection to search")
        p.add_argument("--vector-field", default="embedding", help="Vector field (default: embedding)")
        p.add_argument("--results", "-n", type=int, default=3, help="Number of results")
        p.add_argument("--skip", type=int, default=0, help="Results to skip")

    _add_command(sub, ["sweep", "search", "query"],
                 "Semantic search over a collection", cmd_sweep, setup_sweep)

    _add_command(sub, ["flash", "info", "stats"],
                 "Show config and collection stats", cmd_flash)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return

    args.func(args)


if __name__ == "__main__":
    main()
