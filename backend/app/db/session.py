"""Async Session Factory - engine and session factory for the durable image store.

Invariants:
    - NullPool: every checkout opens a new connection and every release closes it
    - Sessions never expire attributes on commit

Design Decisions:
    - No held connection across store calls: each save/load/delete opens and closes its own
      (ADR: avoids lock contention with other processes touching the store file)
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine,
)
from sqlalchemy.pool import NullPool


def create_store_engine(store_url: str) -> AsyncEngine:
    """Create an async engine that never pools connections."""
    return create_async_engine(store_url, echo=False, poolclass=NullPool)


def create_session_factory(
    engine: AsyncEngine,
) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to the given engine."""
    return async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False,
    )
