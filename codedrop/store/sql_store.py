"""
codedrop/store/sql_store.py

SQLAlchemy implementation of the EntryStore interface.

Runs on the async engine (``sqlite+aiosqlite`` by default; any async driver
SQLAlchemy supports will do). All backend-specific details are fully
contained here — the rest of the application never imports from
`sqlalchemy` directly.

Uniqueness of live codes is enforced by the primary key: two racing inserts
of the same code cannot both commit, and the loser surfaces as
DuplicateKeyError.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Awaitable, Optional, TypeVar

from sqlalchemy import Column, DateTime, LargeBinary, String, Text, delete, func, select, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from codedrop.core.config import settings
from codedrop.core.constants import ENTRY_TTL
from codedrop.core.exceptions import (
    DuplicateKeyError,
    EntryNotFoundError,
    StorageUnavailableError,
)
from codedrop.core.logger import get_logger
from codedrop.store.base import Clock, Entry, EntryShape, EntryStore, utc_now

logger = get_logger(__name__)

T = TypeVar("T")

Base = declarative_base()


class EntryRow(Base):
    __tablename__ = "entries"

    code = Column(String(4), primary_key=True)
    shape = Column(String(8), nullable=False)
    text = Column(Text, nullable=True)
    data = Column(LargeBinary, nullable=True)
    file_name = Column(String, nullable=True)
    mime_type = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, index=True)


def _to_db(value: datetime) -> datetime:
    # Stored as naive UTC; not every backend keeps tzinfo.
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _from_db(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _row_to_entry(row: EntryRow) -> Entry:
    return Entry(
        code=row.code,
        shape=EntryShape(row.shape),
        created_at=_from_db(row.created_at),
        text=row.text,
        data=bytes(row.data) if row.data is not None else None,
        file_name=row.file_name,
        mime_type=row.mime_type,
    )


class SqlEntryStore(EntryStore):
    """
    EntryStore backed by a relational table accessed through SQLAlchemy.

    The engine is created in open() and disposed in close(); the instance is
    meant to live for the whole process and be shared by every request.
    """

    def __init__(
        self,
        database_url: str | None = None,
        timeout_seconds: float | None = None,
        ttl: timedelta = ENTRY_TTL,
        clock: Clock = utc_now,
    ) -> None:
        """
        Args:
            database_url    : SQLAlchemy async URL.
                              Defaults to ``settings.database_url``.
            timeout_seconds : Upper bound on any single storage call.
                              Defaults to ``settings.storage_timeout_seconds``.
            ttl             : Entry lifetime.
            clock           : Source of "now" (aware UTC).
        """
        super().__init__(ttl=ttl, clock=clock)
        self._database_url = database_url or settings.database_url
        self._timeout = timeout_seconds or settings.storage_timeout_seconds
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[sessionmaker] = None

    # ── Lifecycle ──────────────────────────────────────────────────────────────

    async def open(self) -> None:
        url = make_url(self._database_url)
        is_sqlite = url.get_backend_name() == "sqlite"
        connect_args: dict[str, Any] = {}

        if is_sqlite:
            connect_args = {"check_same_thread": False, "timeout": self._timeout}

        logger.info("Initialising SqlEntryStore — backend=%s", url.get_backend_name())

        try:
            if is_sqlite and url.database and url.database != ":memory:":
                Path(url.database).parent.mkdir(parents=True, exist_ok=True)
            self._engine = create_async_engine(
                self._database_url,
                connect_args=connect_args,
                echo=False,
            )
            self._session_factory = sessionmaker(
                bind=self._engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )
            async with self._engine.begin() as conn:
                if is_sqlite:
                    await conn.execute(text("PRAGMA journal_mode=WAL;"))
                await conn.run_sync(Base.metadata.create_all)
        except (SQLAlchemyError, OSError) as exc:
            raise StorageUnavailableError(
                f"Failed to initialise entry store at '{url.render_as_string(hide_password=True)}': {exc}"
            ) from exc

        logger.info("SqlEntryStore ready — %d live entry(ies).", await self.count())

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._session_factory = None
        logger.info("SqlEntryStore closed.")

    # ── EntryStore interface ───────────────────────────────────────────────────

    async def put(self, entry: Entry) -> None:
        try:
            await self._bounded(self._insert(entry))
        except IntegrityError as exc:
            raise DuplicateKeyError(f"Code {entry.code} is already in use.") from exc

    async def get(self, code: str) -> Entry:
        entry = await self._bounded(self._select_live(code))
        if entry is None:
            raise EntryNotFoundError(code)
        return entry

    async def exists(self, code: str) -> bool:
        return await self._bounded(self._code_is_live(code))

    async def expire(self) -> int:
        return await self._bounded(self._delete_expired())

    async def count(self) -> int:
        return await self._bounded(self._count_live())

    # ── Internals ──────────────────────────────────────────────────────────────

    def _cutoff(self) -> datetime:
        """Rows created at or before this instant are expired."""
        return _to_db(self.now() - self.ttl)

    def _session(self) -> AsyncSession:
        if self._session_factory is None:
            raise StorageUnavailableError("Entry store is not open.")
        return self._session_factory()

    async def _bounded(self, op: Awaitable[T]) -> T:
        """Run ``op`` under the storage timeout, mapping driver failures."""
        try:
            return await asyncio.wait_for(op, timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            raise StorageUnavailableError(
                f"Storage call timed out after {self._timeout}s."
            ) from exc
        except IntegrityError:
            raise
        except SQLAlchemyError as exc:
            raise StorageUnavailableError(f"Storage call failed: {exc}") from exc

    async def _insert(self, entry: Entry) -> None:
        async with self._session() as session:
            async with session.begin():
                # A stale row may still hold the code until the next sweep.
                await session.execute(
                    delete(EntryRow).where(
                        EntryRow.code == entry.code,
                        EntryRow.created_at <= self._cutoff(),
                    )
                )
                session.add(
                    EntryRow(
                        code=entry.code,
                        shape=entry.shape.value,
                        text=entry.text,
                        data=entry.data,
                        file_name=entry.file_name,
                        mime_type=entry.mime_type,
                        created_at=_to_db(entry.created_at),
                    )
                )

    async def _select_live(self, code: str) -> Optional[Entry]:
        async with self._session() as session:
            res = await session.execute(
                select(EntryRow).where(
                    EntryRow.code == code,
                    EntryRow.created_at > self._cutoff(),
                )
            )
            row = res.scalars().first()
            return _row_to_entry(row) if row is not None else None

    async def _code_is_live(self, code: str) -> bool:
        async with self._session() as session:
            res = await session.execute(
                select(EntryRow.code).where(
                    EntryRow.code == code,
                    EntryRow.created_at > self._cutoff(),
                )
            )
            return res.first() is not None

    async def _delete_expired(self) -> int:
        async with self._session() as session:
            async with session.begin():
                res = await session.execute(
                    delete(EntryRow).where(EntryRow.created_at <= self._cutoff())
                )
            return res.rowcount or 0

    async def _count_live(self) -> int:
        async with self._session() as session:
            res = await session.execute(
                select(func.count())
                .select_from(EntryRow)
                .where(EntryRow.created_at > self._cutoff())
            )
            return int(res.scalar_one())
