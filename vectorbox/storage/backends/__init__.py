"""
Storage connector factory.

Usage:
    from vectorbox.storage.backends import make_connector
    connector = make_connector("chromadb", path="./data/chroma")

Adding a new connector:
    1. Create vectorbox/storage/backends/<name>.py implementing StorageConnector.
    2. Add an entry to _REGISTRY below.
    3. Set  storage.connector: <name>  in config.yaml.
    No other changes required.
"""

from .base import StorageConnector

_REGISTRY: dict[str, type[StorageConnector]] = {}


def _register():
    """Lazy-import connectors to avoid hard dependencies at import time."""
    global _REGISTRY
    if _REGISTRY:
        return
    from .memory import InMemoryConnector
    from .chroma import ChromaConnector
    _REGISTRY["memory"] = InMemoryConnector
    _REGISTRY["chromadb"] = ChromaConnector


def make_connector(connector_type: str, **kwargs) -> StorageConnector:
    """
    Instantiate a storage connector by name.

    Args:
        connector_type: Registry key ("memory" or "chromadb").
        **kwargs:       Passed directly to the connector constructor.

    Raises:
        ValueError: If the connector type is not registered.
    """
    _register()
    cls = _REGISTRY.get(connector_type)
    if cls is None:
        available = ", ".join(_REGISTRY.keys())
        raise ValueError(
            f"Unknown storage connector: '{connector_type}'. "
            f"Available: {available}"
        )
    return cls(**kwargs)


__all__ = ["StorageConnector", "make_connector"]
