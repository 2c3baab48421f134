"""
codedrop/store/base.py

Abstract interface for the entry store layer.

Design goals:
  - Services depend only on this interface, never on a concrete backend.
  - Entry and EntryShape are the shared vocabulary across all layers.
  - Expiry is the store's job: an entry older than the TTL is invisible to
    get()/exists() even before expire() has physically reclaimed it.
"""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from codedrop.core.constants import ENTRY_TTL

#: Returns the current time as an aware UTC datetime. Injected so tests can
#: move time forward without sleeping.
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ── Shared data-transfer objects ──────────────────────────────────────────────

class EntryShape(str, enum.Enum):
    """Discriminant between inline text and binary file entries."""

    TEXT = "text"
    FILE = "file"


@dataclass(frozen=True)
class Entry:
    """
    A single stored drop.

    Attributes:
        code       : 4-digit retrieval code, primary key of the store.
        shape      : TEXT or FILE, fixed at creation.
        created_at : Aware UTC insertion time; the only input to expiry.
        text       : Payload of a TEXT entry, None for FILE.
        data       : Raw bytes of a FILE entry, None for TEXT.
        file_name  : Client-supplied name of a FILE entry (untrusted).
        mime_type  : Client-declared MIME type of a FILE entry (unverified).
    """

    code: str
    shape: EntryShape
    created_at: datetime
    text: Optional[str] = None
    data: Optional[bytes] = None
    file_name: Optional[str] = None
    mime_type: Optional[str] = None

    def __post_init__(self) -> None:
        if self.shape is EntryShape.TEXT:
            if self.text is None or self.data is not None:
                raise ValueError("A text entry carries text and no file data.")
        else:
            if self.text is not None or self.data is None:
                raise ValueError("A file entry carries file data and no text.")
            if self.file_name is None or self.mime_type is None:
                raise ValueError("A file entry needs a file name and a MIME type.")

    @classmethod
    def text_entry(cls, code: str, text: str, created_at: datetime) -> "Entry":
        return cls(code=code, shape=EntryShape.TEXT, created_at=created_at, text=text)

    @classmethod
    def file_entry(
        cls,
        code: str,
        data: bytes,
        file_name: str,
        mime_type: str,
        created_at: datetime,
    ) -> "Entry":
        return cls(
            code=code,
            shape=EntryShape.FILE,
            created_at=created_at,
            data=data,
            file_name=file_name,
            mime_type=mime_type,
        )

    @property
    def size(self) -> int:
        """Payload size in bytes (UTF-8 length for text)."""
        if self.shape is EntryShape.TEXT:
            return len(self.text.encode("utf-8"))  # type: ignore[union-attr]
        return len(self.data)  # type: ignore[arg-type]

    def expires_at(self, ttl: timedelta = ENTRY_TTL) -> datetime:
        return self.created_at + ttl

    def is_live(self, now: datetime, ttl: timedelta = ENTRY_TTL) -> bool:
        """An entry is live strictly before created_at + ttl."""
        return now < self.expires_at(ttl)


# ── Abstract base ──────────────────────────────────────────────────────────────

class EntryStore(ABC):
    """
    Contract every entry-store backend must fulfil.

    Concrete implementations (MemoryEntryStore, SqlEntryStore) wrap a
    specific medium and translate its failures to StorageUnavailableError.
    There is deliberately no update or delete-by-code operation: entries
    leave the store only through the TTL.
    """

    def __init__(self, ttl: timedelta = ENTRY_TTL, clock: Clock = utc_now) -> None:
        self.ttl = ttl
        self.clock = clock

    def now(self) -> datetime:
        return self.clock()

    # ── Lifecycle ──────────────────────────────────────────────────────────────

    @abstractmethod
    async def open(self) -> None:
        """
        Connect to the backing medium and prepare it (schema, indexes).

        Raises:
            StorageUnavailableError: If the medium cannot be reached.
        """

    @abstractmethod
    async def close(self) -> None:
        """Release the medium. Any later call raises StorageUnavailableError."""

    # ── Entry operations ───────────────────────────────────────────────────────

    @abstractmethod
    async def put(self, entry: Entry) -> None:
        """
        Insert a new entry.

        An expired entry still physically holding the same code is replaced.

        Raises:
            DuplicateKeyError       : ``entry.code`` is held by a live entry.
            StorageUnavailableError : The backend operation failed.
        """

    @abstractmethod
    async def get(self, code: str) -> Entry:
        """
        Return the live entry stored under ``code``.

        Raises:
            EntryNotFoundError      : No live entry has this code.
            StorageUnavailableError : The backend operation failed.
        """

    @abstractmethod
    async def exists(self, code: str) -> bool:
        """
        True when ``code`` is held by a live entry.

        Raises:
            StorageUnavailableError: If the backend operation failed.
        """

    @abstractmethod
    async def expire(self) -> int:
        """
        Physically remove every entry older than the TTL.

        Returns:
            Number of entries reclaimed.

        Raises:
            StorageUnavailableError: If the backend operation failed.
        """

    @abstractmethod
    async def count(self) -> int:
        """
        Number of live entries.

        Raises:
            StorageUnavailableError: If the backend operation failed.
        """
