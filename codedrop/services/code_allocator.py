"""
codedrop/services/code_allocator.py

Hands out retrieval codes that no live entry is using.

    random draw in [low, high]
      └─ EntryStore.exists()   → collision? draw again
           └─ EntryStore.put() → DuplicateKeyError? allocate again

Checking exists() first keeps collisions cheap; the store's own key
constraint on put() closes the window between "looked free" and
"inserted", so two concurrent submissions can never share a code.
Both loops are bounded by ``max_attempts``.
"""

from __future__ import annotations

import random
from typing import Callable

from codedrop.core.config import settings
from codedrop.core.constants import CODE_MAX, CODE_MIN
from codedrop.core.exceptions import CapacityExhaustedError, DuplicateKeyError
from codedrop.core.logger import get_logger
from codedrop.store.base import Entry, EntryStore

logger = get_logger(__name__)


class CodeAllocator:
    """
    Draw-check-retry allocator over an inclusive integer code space.

    ``low``/``high`` default to the 4-digit space; tests shrink it to
    exercise exhaustion.
    """

    def __init__(
        self,
        store: EntryStore,
        max_attempts: int | None = None,
        low: int = CODE_MIN,
        high: int = CODE_MAX,
        rng: random.Random | None = None,
    ) -> None:
        if low > high:
            raise ValueError(f"Empty code space: [{low}, {high}]")
        self._store = store
        self._max_attempts = max_attempts or settings.code_max_attempts
        self._low = low
        self._high = high
        self._rng = rng or random.SystemRandom()

    @property
    def space_size(self) -> int:
        return self._high - self._low + 1

    # ── Public API ─────────────────────────────────────────────────────────────

    async def allocate(self) -> str:
        """
        Return a code not held by any live entry at the time of the check.

        Raises:
            CapacityExhaustedError  : Every draw collided.
            StorageUnavailableError : The liveness query failed.
        """
        for _ in range(self._max_attempts):
            candidate = str(self._rng.randint(self._low, self._high))
            if not await self._store.exists(candidate):
                return candidate

        logger.warning(
            "No free code after %d draws over %d codes.",
            self._max_attempts,
            self.space_size,
        )
        raise CapacityExhaustedError("No free code available, try again later.")

    async def insert(self, build: Callable[[str], Entry]) -> Entry:
        """
        Allocate a code, build the entry for it and store it.

        A DuplicateKeyError from the store means another submission claimed
        the same code in the meantime; a fresh code is allocated and the
        insert retried.

        Args:
            build: Turns an allocated code into the Entry to store.

        Returns:
            The stored Entry.

        Raises:
            CapacityExhaustedError  : No code could be claimed.
            StorageUnavailableError : The store failed.
        """
        for _ in range(self._max_attempts):
            entry = build(await self.allocate())
            try:
                await self._store.put(entry)
            except DuplicateKeyError:
                logger.debug("Lost the race for code %s — reallocating.", entry.code)
                continue
            return entry

        raise CapacityExhaustedError("No free code available, try again later.")
