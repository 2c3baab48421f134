"""codedrop/store/__init__.py — public API of the store package."""

from codedrop.core.config import Settings, settings
from codedrop.store.base import Clock, Entry, EntryShape, EntryStore, utc_now
from codedrop.store.memory_store import MemoryEntryStore
from codedrop.store.sql_store import SqlEntryStore


def build_store(config: Settings = settings) -> EntryStore:
    """Return an unopened store for the configured backend."""
    if config.store_backend == "memory":
        return MemoryEntryStore()
    return SqlEntryStore(
        database_url=config.database_url,
        timeout_seconds=config.storage_timeout_seconds,
    )


__all__ = [
    "Clock",
    "Entry",
    "EntryShape",
    "EntryStore",
    "MemoryEntryStore",
    "SqlEntryStore",
    "build_store",
    "utc_now",
]
