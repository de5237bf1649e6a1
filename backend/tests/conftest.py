"""Root conftest - shared test configuration and engine fixtures.

Invariants:
    - Tests never touch the default on-disk store (STORE_URL points at a throwaway file)
    - FakeImageStore counts every call so lifecycle tests can assert "exactly once"
    - Every manager fixture is closed after the test
"""

import asyncio
import os
from datetime import datetime, timezone

import pytest

from app.core.domain_types import StoreRecordInfo
from app.core.errors import StoreError
from app.infrastructure.engine import EngineLifecycleManager

os.environ.setdefault("STORE_URL", "sqlite+aiosqlite:///./test_store.db")
os.environ.setdefault("AUTO_INITIALIZE", "false")
os.environ.setdefault("LOG_FORMAT", "text")


class FakeImageStore:
    """In-memory ImageStore with call counters and switchable failures."""

    def __init__(self, data: bytes | None = None):
        self.data = data
        self.last_modified = None
        self.load_calls = 0
        self.save_calls = 0
        self.fail_saves = False
        self.load_gate: asyncio.Event | None = None

    async def save(self, data: bytes) -> None:
        self.save_calls += 1
        if self.fail_saves:
            raise StoreError("disk full", "save")
        self.data = bytes(data)
        self.last_modified = datetime.now(timezone.utc)

    async def load(self) -> bytes | None:
        """Snapshot the record, then wait on load_gate when one is set."""
        self.load_calls += 1
        data = self.data
        if self.load_gate is not None:
            await self.load_gate.wait()
        return data

    async def delete(self) -> None:
        self.data = None

    async def size(self) -> int:
        return len(self.data) if self.data else 0

    async def exists(self) -> bool:
        return await self.size() > 0

    async def info(self) -> StoreRecordInfo | None:
        if self.data is None:
            return None
        return StoreRecordInfo(len(self.data), self.last_modified)


@pytest.fixture
def make_store():
    """Factory for additional independent stores within one test."""
    return FakeImageStore


@pytest.fixture
def fake_store():
    return FakeImageStore()


@pytest.fixture
async def manager(fake_store):
    """Lifecycle manager over a fake store; not yet initialized."""
    mgr = EngineLifecycleManager(fake_store)
    yield mgr
    await mgr.close()


@pytest.fixture
async def ready_manager(manager):
    await manager.initialize()
    return manager


@pytest.fixture
def store_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'store.db'}"
