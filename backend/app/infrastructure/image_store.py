"""Durable Image Store - async key-value persistence for the serialized database image.

Invariants:
    - Exactly one record (fixed key) exists at any time; save overwrites, never appends
    - save is one transactional put: no reader observes a half-written blob
    - load returns None when nothing is stored - "not found" is never an error
    - Every call opens a fresh connection and closes it on completion or error
    - All SQLAlchemy exceptions mapped to StoreError (core/errors.py)

Design Decisions:
    - NullPool engine + one AsyncSession per call (ADR: no connection held across calls)
    - Table created lazily on first use: analogue of an object-store upgrade hook
    - size() and info() read only the row metadata needed, never decode the image
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from app.core.domain_types import StoreRecordInfo
from app.core.errors import StoreError
from app.db.base import Base
from app.db.session import create_session_factory, create_store_engine
from app.models.persisted_image import PersistedImage, epoch_ms_to_datetime

logger = logging.getLogger(__name__)

DEFAULT_STORE_KEY = "database"


class SqlAlchemyImageStore:
    """ImageStore backed by a single SQLAlchemy table."""

    def __init__(self, store_url: str, key: str = DEFAULT_STORE_KEY):
        self.key = key
        self.engine: AsyncEngine = create_store_engine(store_url)
        self._session_factory = create_session_factory(self.engine)
        self._schema_ready = False

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncGenerator[AsyncSession, None]:
        """Provide a per-call session; maps driver failures to StoreError."""
        try:
            await self._ensure_schema()
            async with self._session_factory() as session:
                try:
                    yield session
                except SQLAlchemyError:
                    await session.rollback()
                    raise
        except SQLAlchemyError as e:
            logger.error(
                f"Store {operation} failed: {e}",
                extra={"operation": operation},
            )
            raise StoreError(type(e).__name__, operation) from e

    async def _ensure_schema(self) -> None:
        if self._schema_ready:
            return
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self._schema_ready = True

    async def save(self, data: bytes) -> None:
        async with self._session("save") as session:
            await session.merge(PersistedImage(
                key=self.key,
                data=bytes(data),
                last_modified=int(time.time() * 1000),
            ))
            await session.commit()
        logger.debug(
            "Database image persisted",
            extra={"operation": "save", "size_bytes": len(data)},
        )

    async def load(self) -> bytes | None:
        async with self._session("load") as session:
            result = await session.execute(
                select(PersistedImage.data).where(PersistedImage.key == self.key),
            )
            return result.scalar_one_or_none()

    async def delete(self) -> None:
        async with self._session("delete") as session:
            await session.execute(
                delete(PersistedImage).where(PersistedImage.key == self.key),
            )
            await session.commit()
        logger.info("Database image removed from store", extra={"operation": "delete"})

    async def size(self) -> int:
        async with self._session("size") as session:
            result = await session.execute(
                select(func.length(PersistedImage.data))
                .where(PersistedImage.key == self.key),
            )
            return result.scalar_one_or_none() or 0

    async def exists(self) -> bool:
        return await self.size() > 0

    async def info(self) -> StoreRecordInfo | None:
        async with self._session("info") as session:
            result = await session.execute(
                select(
                    func.length(PersistedImage.data),
                    PersistedImage.last_modified,
                ).where(PersistedImage.key == self.key),
            )
            row = result.one_or_none()
        if row is None:
            return None
        return StoreRecordInfo(
            size_bytes=row[0] or 0, last_modified=epoch_ms_to_datetime(row[1]),
        )

    async def dispose(self) -> None:
        await self.engine.dispose()
