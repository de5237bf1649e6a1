"""Service test fixtures - DatabaseSession over a fake store + FastAPI test client.

Invariants:
    - Every test gets its own manager and fake store
    - get_database_session dependency overridden to use the test session
    - app.state.database set for the health probes, which read it directly

Design Decisions:
    - No lifespan in tests: ASGITransport does not send lifespan events, so the
      fixture wires the session the lifespan would have built
"""

from datetime import datetime, timezone

import pytest
from httpx import ASGITransport, AsyncClient

from app.api.dependencies import get_database_session
from app.main import app
from app.services.database_session import DatabaseSession

FIXED_NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def delivered():
    return []


@pytest.fixture
async def db_session(manager, fake_store, delivered):
    return DatabaseSession(
        manager, store=fake_store, deliver=delivered.append, clock=lambda: FIXED_NOW,
    )


@pytest.fixture
async def client(db_session):
    """FastAPI test client with the session dependency overridden."""
    app.dependency_overrides[get_database_session] = lambda: db_session
    app.state.database = db_session

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    del app.state.database
