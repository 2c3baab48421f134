"""
tests/store/test_sql_store.py

Backend-specific tests for SqlEntryStore: persistence across reopen,
initialisation failures, and the storage timeout.
"""

import asyncio
from unittest.mock import patch

import pytest

from codedrop.core.exceptions import StorageUnavailableError
from codedrop.store.base import Entry
from codedrop.store.sql_store import SqlEntryStore


# ── Helpers ────────────────────────────────────────────────────────────────────

def _store(tmp_path, clock, **kwargs) -> SqlEntryStore:
    """Return a fresh, unopened SqlEntryStore backed by a temp SQLite file."""
    return SqlEntryStore(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'nested' / 'entries.db'}",
        clock=clock,
        **kwargs,
    )


# ── Tests ──────────────────────────────────────────────────────────────────────

class TestSqlEntryStore:

    @pytest.mark.asyncio
    async def test_open_creates_database_directory(self, tmp_path, clock) -> None:
        store = _store(tmp_path, clock)
        await store.open()
        try:
            assert (tmp_path / "nested" / "entries.db").exists()
        finally:
            await store.close()

    @pytest.mark.asyncio
    async def test_entries_survive_reopen(self, tmp_path, clock) -> None:
        """Within the TTL, a restart does not lose entries."""
        store = _store(tmp_path, clock)
        await store.open()
        await store.put(Entry.file_entry("4321", b"\x10" * 10, "a.bin",
                                         "application/octet-stream", created_at=clock()))
        await store.close()

        reopened = _store(tmp_path, clock)
        await reopened.open()
        try:
            entry = await reopened.get("4321")
            assert entry.data == b"\x10" * 10
            assert entry.created_at == clock()
        finally:
            await reopened.close()

    @pytest.mark.asyncio
    async def test_use_before_open_raises_storage_unavailable(self, tmp_path, clock) -> None:
        store = _store(tmp_path, clock)
        with pytest.raises(StorageUnavailableError, match="not open"):
            await store.count()

    @pytest.mark.asyncio
    async def test_unreachable_database_fails_open(self, tmp_path, clock) -> None:
        """A path that cannot hold a database surfaces as StorageUnavailableError."""
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        store = SqlEntryStore(
            database_url=f"sqlite+aiosqlite:///{blocker / 'entries.db'}",
            clock=clock,
        )

        with pytest.raises(StorageUnavailableError):
            await store.open()

    @pytest.mark.asyncio
    async def test_slow_storage_call_times_out(self, tmp_path, clock) -> None:
        """A storage call that hangs is cut off and reported, not waited on."""
        store = _store(tmp_path, clock, timeout_seconds=0.05)
        await store.open()

        async def _hang(code: str) -> None:
            await asyncio.sleep(1)

        try:
            with patch.object(store, "_select_live", _hang):
                with pytest.raises(StorageUnavailableError, match="timed out"):
                    await store.get("1234")
        finally:
            await store.close()
