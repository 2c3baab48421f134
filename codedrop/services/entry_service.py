"""
codedrop/services/entry_service.py

Orchestrates submission and retrieval of entries:

    submit_text / submit_file
      └─ CodeAllocator.insert()  → code claimed, Entry stored
    retrieve
      └─ code format check       → InputError
           └─ EntryStore.get()   → Entry | EntryNotFoundError

The store and allocator are constructor-injected; the application creates
one instance in its lifespan and tests build their own around a
MemoryEntryStore.
"""

from __future__ import annotations

from codedrop.core.constants import is_valid_code
from codedrop.core.exceptions import InputError
from codedrop.core.logger import get_logger
from codedrop.services.code_allocator import CodeAllocator
from codedrop.store.base import Entry, EntryStore

logger = get_logger(__name__)


class EntryService:
    """Submission and retrieval on top of an EntryStore."""

    def __init__(
        self,
        store: EntryStore,
        allocator: CodeAllocator | None = None,
    ) -> None:
        self._store = store
        self._allocator = allocator or CodeAllocator(store)

    @property
    def store(self) -> EntryStore:
        return self._store

    # ── Public API ─────────────────────────────────────────────────────────────

    async def submit_text(self, text: str) -> Entry:
        """
        Store ``text`` under a freshly allocated code.

        Raises:
            CapacityExhaustedError  : The code space is saturated.
            StorageUnavailableError : The store failed.
        """
        entry = await self._allocator.insert(
            lambda code: Entry.text_entry(code, text, created_at=self._store.now())
        )
        logger.info("Stored text entry %s (%d bytes).", entry.code, entry.size)
        return entry

    async def submit_file(self, data: bytes, file_name: str, mime_type: str) -> Entry:
        """
        Store a binary attachment under a freshly allocated code.

        ``file_name`` and ``mime_type`` are kept verbatim; they are only
        ever echoed back to whoever presents the code.

        Raises:
            CapacityExhaustedError  : The code space is saturated.
            StorageUnavailableError : The store failed.
        """
        entry = await self._allocator.insert(
            lambda code: Entry.file_entry(
                code,
                data,
                file_name=file_name,
                mime_type=mime_type,
                created_at=self._store.now(),
            )
        )
        logger.info(
            "Stored file entry %s (%d bytes, %s).", entry.code, entry.size, entry.mime_type
        )
        return entry

    async def retrieve(self, code: str) -> Entry:
        """
        Return the live entry for ``code``.

        Raises:
            InputError              : ``code`` is not four ASCII digits.
            EntryNotFoundError      : No live entry has this code.
            StorageUnavailableError : The store failed.
        """
        if not is_valid_code(code):
            raise InputError("Code must be exactly 4 digits.")
        return await self._store.get(code)
