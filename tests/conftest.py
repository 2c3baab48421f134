"""
tests/conftest.py

Shared pytest fixtures available to all test modules.

Fixtures defined here are auto-discovered by pytest — no import needed.
"""

import io
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from codedrop.main import create_app
from codedrop.store.memory_store import MemoryEntryStore


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **delta: float) -> None:
        self.current += timedelta(**delta)


# ── Clock & store fixtures ─────────────────────────────────────────────────────

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store(clock: FakeClock) -> MemoryEntryStore:
    """An unopened MemoryEntryStore driven by the fake clock."""
    return MemoryEntryStore(clock=clock)


# ── Core client fixture ────────────────────────────────────────────────────────

@pytest.fixture
def client(memory_store: MemoryEntryStore) -> TestClient:
    """
    A synchronous TestClient wrapping a fresh app over an in-memory store.

    The lifespan context (store open/close, sweeper start/stop) is entered
    automatically. The sweep interval is long enough that it never runs
    during a test.
    """
    app = create_app(store=memory_store, sweep_interval_seconds=3600)
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


# ── Sample upload fixtures ─────────────────────────────────────────────────────

@pytest.fixture
def sample_bin_bytes() -> bytes:
    """Ten arbitrary bytes, including non-UTF-8 values."""
    return bytes([0, 1, 2, 3, 250, 251, 252, 253, 254, 255])


@pytest.fixture
def sample_bin_file(sample_bin_bytes) -> tuple:
    """
    A (field_name, (filename, file_obj, content_type)) tuple ready for
    use with TestClient's `files=` parameter.

    Usage:
        response = client.post("/api/upload-item", files=[sample_bin_file])
    """
    return ("file", ("a.bin", io.BytesIO(sample_bin_bytes), "application/octet-stream"))
