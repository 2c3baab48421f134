"""
tests/store/test_entry_store.py

Contract tests run against every EntryStore backend.

The SQL backend uses a temporary SQLite file (tmp_path) so tests never touch
./data and are fully isolated from each other. Time is driven by the fake
clock from conftest, never by sleeping.
"""

import pytest
import pytest_asyncio

from codedrop.core.exceptions import (
    DuplicateKeyError,
    EntryNotFoundError,
    StorageUnavailableError,
)
from codedrop.store.base import Entry, EntryShape, EntryStore
from codedrop.store.memory_store import MemoryEntryStore
from codedrop.store.sql_store import SqlEntryStore


# ── Fixtures & helpers ─────────────────────────────────────────────────────────

@pytest_asyncio.fixture(params=["memory", "sql"])
async def store(request, tmp_path, clock):
    """An opened store of each backend, closed after the test."""
    if request.param == "memory":
        backend: EntryStore = MemoryEntryStore(clock=clock)
    else:
        backend = SqlEntryStore(
            database_url=f"sqlite+aiosqlite:///{tmp_path / 'entries.db'}",
            clock=clock,
        )
    await backend.open()
    yield backend
    await backend.close()


def _text(store: EntryStore, code: str = "1234", text: str = "hello world") -> Entry:
    return Entry.text_entry(code, text, created_at=store.now())


def _file(store: EntryStore, code: str = "5678", data: bytes = b"\x00\x01\x02\xff") -> Entry:
    return Entry.file_entry(code, data, "a.bin", "application/octet-stream", created_at=store.now())


# ── Tests ──────────────────────────────────────────────────────────────────────

class TestEntryStore:

    @pytest.mark.asyncio
    async def test_put_then_get_text(self, store) -> None:
        """A stored text entry comes back string-identical with TEXT shape."""
        await store.put(_text(store, text="hello world"))

        entry = await store.get("1234")

        assert entry.shape is EntryShape.TEXT
        assert entry.text == "hello world"
        assert entry.data is None

    @pytest.mark.asyncio
    async def test_put_then_get_file(self, store) -> None:
        """A stored file entry comes back byte-identical with its metadata."""
        payload = bytes(range(256))
        await store.put(_file(store, data=payload))

        entry = await store.get("5678")

        assert entry.shape is EntryShape.FILE
        assert entry.data == payload
        assert entry.file_name == "a.bin"
        assert entry.mime_type == "application/octet-stream"
        assert entry.text is None

    @pytest.mark.asyncio
    async def test_unicode_text_is_preserved(self, store) -> None:
        text = "naïve café — 東京 🚀\n\ttabs and  spaces "
        await store.put(_text(store, text=text))
        assert (await store.get("1234")).text == text

    @pytest.mark.asyncio
    async def test_get_unknown_code_raises_not_found(self, store) -> None:
        with pytest.raises(EntryNotFoundError):
            await store.get("9999")

    @pytest.mark.asyncio
    async def test_entry_can_be_read_many_times(self, store) -> None:
        """Reads are not consuming — there is no read-once behaviour."""
        await store.put(_text(store))
        for _ in range(3):
            assert (await store.get("1234")).text == "hello world"

    @pytest.mark.asyncio
    async def test_put_on_live_code_raises_duplicate_key(self, store) -> None:
        await store.put(_text(store, text="first"))

        with pytest.raises(DuplicateKeyError):
            await store.put(_text(store, text="second"))

        assert (await store.get("1234")).text == "first"

    @pytest.mark.asyncio
    async def test_entry_visible_just_before_ttl(self, store, clock) -> None:
        await store.put(_text(store))
        clock.advance(minutes=30, seconds=-10)

        assert (await store.get("1234")).text == "hello world"
        assert await store.exists("1234")

    @pytest.mark.asyncio
    async def test_entry_gone_just_after_ttl(self, store, clock) -> None:
        """Expiry needs no sweep: the entry is invisible as soon as it ages out."""
        await store.put(_text(store))
        clock.advance(minutes=30, seconds=10)

        with pytest.raises(EntryNotFoundError):
            await store.get("1234")
        assert not await store.exists("1234")

    @pytest.mark.asyncio
    async def test_expiry_is_permanent(self, store, clock) -> None:
        """Repeated reads after expiry never flip back to found."""
        await store.put(_text(store))
        clock.advance(minutes=31)

        for _ in range(3):
            with pytest.raises(EntryNotFoundError):
                await store.get("1234")
        await store.expire()
        with pytest.raises(EntryNotFoundError):
            await store.get("1234")

    @pytest.mark.asyncio
    async def test_reads_do_not_extend_lifetime(self, store, clock) -> None:
        await store.put(_text(store))
        clock.advance(minutes=20)
        await store.get("1234")
        clock.advance(minutes=11)

        with pytest.raises(EntryNotFoundError):
            await store.get("1234")

    @pytest.mark.asyncio
    async def test_expired_code_can_be_reused(self, store, clock) -> None:
        """A stale entry that the sweep has not reclaimed yet does not block its code."""
        await store.put(_text(store, text="old"))
        clock.advance(minutes=31)

        await store.put(_text(store, text="new"))

        assert (await store.get("1234")).text == "new"

    @pytest.mark.asyncio
    async def test_expire_reclaims_only_old_entries(self, store, clock) -> None:
        await store.put(_text(store, code="1111"))
        clock.advance(minutes=20)
        await store.put(_text(store, code="2222"))
        clock.advance(minutes=15)

        removed = await store.expire()

        assert removed == 1
        assert await store.count() == 1
        assert await store.exists("2222")

    @pytest.mark.asyncio
    async def test_expire_on_empty_store_is_safe(self, store) -> None:
        assert await store.expire() == 0

    @pytest.mark.asyncio
    async def test_count_ignores_expired_entries(self, store, clock) -> None:
        await store.put(_text(store, code="1111"))
        await store.put(_file(store, code="2222"))
        assert await store.count() == 2

        clock.advance(minutes=30)
        assert await store.count() == 0

    @pytest.mark.asyncio
    async def test_closed_store_raises_storage_unavailable(self, store) -> None:
        """A dead medium is reported as a failure, never as 'not found'."""
        await store.close()

        with pytest.raises(StorageUnavailableError):
            await store.get("1234")
        with pytest.raises(StorageUnavailableError):
            await store.put(_text(store))
        with pytest.raises(StorageUnavailableError):
            await store.exists("1234")
