"""
codedrop/services/expiry_sweeper.py

Background task that periodically reclaims expired entries.

Reads never depend on it — the store already hides entries past their TTL —
so a slow or failed sweep only delays freeing space, it never serves stale
content.
"""

from __future__ import annotations

import asyncio
import time
from typing import Optional

from codedrop.core.config import settings
from codedrop.core.exceptions import StorageUnavailableError
from codedrop.core.logger import get_logger
from codedrop.store.base import EntryStore

logger = get_logger(__name__)


class ExpirySweeper:
    """Calls EntryStore.expire() every ``interval_seconds`` until stopped."""

    def __init__(self, store: EntryStore, interval_seconds: float | None = None) -> None:
        self._store = store
        self._interval = interval_seconds or settings.sweep_interval_seconds
        self._task: Optional[asyncio.Task] = None
        self.total_reclaimed = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> int:
        """Run a single sweep and return the number of entries reclaimed."""
        started = time.monotonic()
        removed = await self._store.expire()
        self.total_reclaimed += removed
        logger.debug(
            "sweep removed=%d duration=%.3fs total=%d",
            removed,
            time.monotonic() - started,
            self.total_reclaimed,
        )
        return removed

    async def run_forever(self) -> None:
        logger.info("Expiry sweeper started — interval=%ss", self._interval)
        while True:
            try:
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except StorageUnavailableError as exc:
                logger.warning("Expiry sweep skipped — %s", exc)
            except Exception as exc:  # noqa: BLE001
                logger.exception("Expiry sweep error: %s", exc)
            await asyncio.sleep(self._interval)

    def start(self) -> None:
        if not self.running:
            self._task = asyncio.create_task(self.run_forever())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            logger.info("Expiry sweeper stopped.")
        self._task = None
