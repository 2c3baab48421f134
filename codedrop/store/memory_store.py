"""
codedrop/store/memory_store.py

In-process implementation of the EntryStore interface.

Entries live in a plain dict guarded by a lock that is only ever held for a
single-entry check-and-write, so the sweep never stalls put()/get().
Nothing survives a restart — use SqlEntryStore for that.
"""

from __future__ import annotations

import threading
from datetime import timedelta
from typing import Dict, Optional

from codedrop.core.constants import ENTRY_TTL
from codedrop.core.exceptions import (
    DuplicateKeyError,
    EntryNotFoundError,
    StorageUnavailableError,
)
from codedrop.core.logger import get_logger
from codedrop.store.base import Clock, Entry, EntryStore, utc_now

logger = get_logger(__name__)


class MemoryEntryStore(EntryStore):
    """EntryStore backed by a process-local dictionary."""

    def __init__(self, ttl: timedelta = ENTRY_TTL, clock: Clock = utc_now) -> None:
        super().__init__(ttl=ttl, clock=clock)
        self._entries: Optional[Dict[str, Entry]] = None
        self._lock = threading.Lock()

    # ── Lifecycle ──────────────────────────────────────────────────────────────

    async def open(self) -> None:
        if self._entries is None:
            self._entries = {}
        logger.info("MemoryEntryStore ready — ttl=%s", self.ttl)

    async def close(self) -> None:
        dropped = len(self._entries or {})
        self._entries = None
        logger.info("MemoryEntryStore closed — %d entry(ies) dropped.", dropped)

    # ── EntryStore interface ───────────────────────────────────────────────────

    async def put(self, entry: Entry) -> None:
        entries = self._require_open()
        now = self.now()
        with self._lock:
            current = entries.get(entry.code)
            if current is not None and current.is_live(now, self.ttl):
                raise DuplicateKeyError(f"Code {entry.code} is already in use.")
            entries[entry.code] = entry

    async def get(self, code: str) -> Entry:
        entry = self._live_entry(code)
        if entry is None:
            raise EntryNotFoundError(code)
        return entry

    async def exists(self, code: str) -> bool:
        return self._live_entry(code) is not None

    async def expire(self) -> int:
        entries = self._require_open()
        now = self.now()
        removed = 0
        for code in list(entries):
            with self._lock:
                entry = entries.get(code)
                if entry is not None and not entry.is_live(now, self.ttl):
                    del entries[code]
                    removed += 1
        return removed

    async def count(self) -> int:
        entries = self._require_open()
        now = self.now()
        return sum(1 for e in list(entries.values()) if e.is_live(now, self.ttl))

    # ── Internals ──────────────────────────────────────────────────────────────

    def _require_open(self) -> Dict[str, Entry]:
        if self._entries is None:
            raise StorageUnavailableError("Memory store is not open.")
        return self._entries

    def _live_entry(self, code: str) -> Optional[Entry]:
        entry = self._require_open().get(code)
        if entry is None or not entry.is_live(self.now(), self.ttl):
            return None
        return entry
