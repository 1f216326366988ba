"""Factory for record store backends.

Provides singleton management and test injection for RecordStore instances.

Note: ``get_record_store()`` returns the singleton but does **not** call
``initialize()``. The server lifespan hook and the MCP stdio entry point
initialize a store and install it with ``set_record_store()``. Test fixtures
should call ``await store.initialize()`` before injecting it.
"""

import logging
import os

from . import RecordStore

logger = logging.getLogger(__name__)

_store: RecordStore | None = None
_initialized: bool = False


def create_record_store(
    backend: str | None = None,
    seed_path: str | None = None,
) -> RecordStore:
    """Create a RecordStore for the given backend name.

    Falls back to the ATLAS_STORAGE env var. Supported values:
        - "memory" (default): empty in-memory store.
        - "yaml": in-memory store seeded from ATLAS_SEED_PATH.
    """
    backend = backend or os.getenv("ATLAS_STORAGE", "memory")
    match backend:
        case "memory":
            from .memory import MemoryRecordStore

            return MemoryRecordStore()
        case "yaml":
            from .yaml_fs import YAMLRecordStore

            return YAMLRecordStore(seed_path)
        case _:
            msg = f"Unknown storage backend: {backend}"
            raise ValueError(msg)


def get_record_store() -> RecordStore:
    """Get or create the singleton RecordStore.

    The caller must ensure ``await store.initialize()`` has been called
    before performing storage operations. The server lifespan hook handles
    this at startup.
    """
    global _store
    if _store is None:
        _store = create_record_store()
        if not _initialized:
            logger.warning(
                "RecordStore created but not yet initialized. "
                "Call await store.initialize() before use."
            )
    return _store


def set_record_store(store: RecordStore | None) -> None:
    """Set the RecordStore instance (for testing)."""
    global _store, _initialized
    _store = store
    # Test-injected stores are considered initialized
    _initialized = store is not None
