"""Engine Lifecycle Manager - owns the one live embedded database per session.

Invariants:
    - State machine: UNINITIALIZED -> INITIALIZING -> READY | FAILED; close() -> UNINITIALIZED
    - initialize() runs the load/migrate/persist sequence exactly once per success:
      concurrent callers await the same memoized task
    - query/execute before READY fail fast with NotInitializedError (never wait)
    - execute() does not persist; save_database() is the explicit checkpoint
    - save/import/reset/close are serialized by one lock around the live handle;
      initialize() installs its handle under the same lock
    - Every handle swap bumps a generation counter; an in-flight initialize() whose
      generation is stale discards its connection instead of installing it
    - import_database() validates the new image before discarding the old one (rollback on failure)

Design Decisions:
    - Explicit lifecycle object injected into callers, no module singleton
      (ADR: several independent managers in one test suite)
    - Bootstrap schema already has the latest shape, so a bootstrapped image is stamped
      with every registry version instead of replaying migrations
    - import_rollback=False keeps the legacy close-first behaviour behind a setting
"""

import asyncio
import logging
import sqlite3
from typing import Any

from app.core.domain_types import (
    EngineState, ExecuteResult, QueryResult, SQLParams,
)
from app.core.errors import (
    CorruptImageError, DatabaseImportError, NotInitializedError,
)
from app.core.repository_protocols import ImageStore
from app.db.migrations import MigrationRegistry, default_registry
from app.db.schema import BOOTSTRAP_SCHEMA_SQL
from app.infrastructure.engine_runtime import EngineRuntime

logger = logging.getLogger(__name__)

_IMAGE_ERRORS = (sqlite3.Error, ValueError, OverflowError)


class EngineLifecycleManager:
    """Loads, migrates, persists and swaps the embedded SQLite engine."""

    def __init__(
        self,
        store: ImageStore,
        registry: MigrationRegistry | None = None,
        runtime: EngineRuntime | None = None,
        bootstrap_sql: str = BOOTSTRAP_SCHEMA_SQL,
        import_rollback: bool = True,
    ):
        self._store = store
        self._registry = registry or default_registry()
        self._runtime = runtime or EngineRuntime()
        self._bootstrap_sql = bootstrap_sql
        self._import_rollback = import_rollback
        self._conn: sqlite3.Connection | None = None
        self._state = EngineState.UNINITIALIZED
        self._init_task: asyncio.Task | None = None
        self._handle_lock = asyncio.Lock()
        self._generation = 0

    # -- state -----------------------------------------------------------------

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is EngineState.READY and self._conn is not None

    @property
    def registry(self) -> MigrationRegistry:
        return self._registry

    def schema_version(self) -> int:
        return self._registry.current_version(self._require_conn("read schema version"))

    # -- initialization --------------------------------------------------------

    async def initialize(self) -> None:
        """Bring the session to READY, sharing one in-flight task among callers."""
        if self.is_ready:
            return
        if self._init_task is None:
            self._state = EngineState.INITIALIZING
            self._init_task = asyncio.ensure_future(self._initialize(self._generation))
            self._init_task.add_done_callback(_retrieve_exception)
        await asyncio.shield(self._init_task)

    async def _initialize(self, generation: int) -> None:
        logger.info("Initializing embedded database", extra={"state": "initializing"})
        conn: sqlite3.Connection | None = None
        try:
            await self._runtime.load()
            saved = await self._store.load()
            if saved:
                logger.info(
                    "Opening persisted database image",
                    extra={"size_bytes": len(saved)},
                )
                conn = self._open_persisted(saved)
            else:
                logger.info("No persisted image; creating a new database")
                conn = self._create_bootstrapped()
            self._registry.run(conn)
            async with self._handle_lock:
                if generation != self._generation:
                    conn.close()
                    logger.info(
                        "Initialization superseded by close/import/reset; discarding",
                        extra={"state": self._state.value},
                    )
                    return
                await self._store.save(self._runtime.serialize(conn))
                self._install(conn)
        except Exception as e:
            if conn is not None:
                conn.close()
            if generation == self._generation:
                self._state = EngineState.FAILED
                self._init_task = None
            logger.error(
                f"Database initialization failed: {e}",
                extra={"state": "failed", "error_code": getattr(e, "code", None)},
            )
            raise
        logger.info("Embedded database ready", extra={"state": "ready"})

    def _open_persisted(self, image: bytes) -> sqlite3.Connection:
        try:
            return self._runtime.open(image)
        except _IMAGE_ERRORS as e:
            raise CorruptImageError(str(e)) from e

    def _create_bootstrapped(self) -> sqlite3.Connection:
        conn = self._runtime.create()
        try:
            conn.executescript(self._bootstrap_sql)
            self._registry.stamp(conn)
        except Exception:
            conn.close()
            raise
        return conn

    # -- statements ------------------------------------------------------------

    def exec(self, sql: str, params: SQLParams = ()) -> list[QueryResult]:
        """Raw column/values pairs; the single execution primitive."""
        conn = self._require_conn("run queries")
        cursor = conn.execute(sql, tuple(params))
        try:
            if cursor.description is None:
                return []
            columns = [d[0] for d in cursor.description]
            return [QueryResult(columns, [list(row) for row in cursor.fetchall()])]
        finally:
            cursor.close()

    def query(self, sql: str, params: SQLParams = ()) -> list[dict[str, Any]]:
        results = self.exec(sql, params)
        return results[0].as_rows() if results else []

    def get_first_row(self, sql: str, params: SQLParams = ()) -> dict[str, Any] | None:
        rows = self.query(sql, params)
        return rows[0] if rows else None

    def execute(self, sql: str, params: SQLParams = ()) -> ExecuteResult:
        """Run a mutating statement. The in-memory image is dirtied, not persisted."""
        conn = self._require_conn("execute statements")
        cursor = conn.execute(sql, tuple(params))
        try:
            rows_affected = max(cursor.rowcount, 0)
        finally:
            cursor.close()
        # connection-wide: UPDATE/DELETE report the most recent INSERT
        last_insert_id = conn.execute("SELECT last_insert_rowid()").fetchone()[0]
        return ExecuteResult(last_insert_id=last_insert_id, rows_affected=rows_affected)

    # -- image operations ------------------------------------------------------

    async def save_database(self) -> None:
        async with self._handle_lock:
            data = self._runtime.serialize(self._require_conn("save"))
            await self._store.save(data)
        logger.info("Database saved", extra={"operation": "save", "size_bytes": len(data)})

    def export_database(self) -> bytes:
        """Serialized snapshot; touches neither the store nor session state."""
        return self._runtime.serialize(self._require_conn("export"))

    async def import_database(self, data: bytes) -> None:
        """Replace the live engine with one opened from data, then persist it."""
        async with self._handle_lock:
            await self._runtime.load()
            if not self._import_rollback:
                self._discard_handle()
            if not data:
                raise DatabaseImportError("file is empty")
            try:
                conn = self._runtime.open(data)
            except _IMAGE_ERRORS as e:
                logger.warning(
                    f"Rejected database import: {e}",
                    extra={"operation": "import", "size_bytes": len(data)},
                )
                raise DatabaseImportError("not a valid SQLite database") from e

            self._discard_handle()
            self._install(conn)
            await self._store.save(self._runtime.serialize(conn))
        logger.info(
            "Database imported", extra={"operation": "import", "size_bytes": len(data)},
        )

    async def reset_database(self) -> None:
        """Discard all data: fresh engine, bootstrap schema, persist. Irreversible."""
        async with self._handle_lock:
            await self._runtime.load()
            self._discard_handle()
            conn = self._create_bootstrapped()
            self._install(conn)
            await self._store.save(self._runtime.serialize(conn))
        logger.warning("Database reset", extra={"operation": "reset"})

    async def close(self) -> None:
        async with self._handle_lock:
            self._discard_handle()

    # -- handle helpers --------------------------------------------------------

    def _install(self, conn: sqlite3.Connection) -> None:
        self._generation += 1
        self._conn = conn
        self._state = EngineState.READY

    def _discard_handle(self) -> None:
        self._generation += 1
        if self._conn is not None:
            self._conn.close()
        self._conn = None
        self._init_task = None
        self._state = EngineState.UNINITIALIZED

    def _require_conn(self, operation: str) -> sqlite3.Connection:
        if self._state is not EngineState.READY or self._conn is None:
            raise NotInitializedError(operation)
        return self._conn


def _retrieve_exception(task: asyncio.Task) -> None:
    # callers await through shield(); if they are all cancelled nobody else reads it
    if not task.cancelled():
        task.exception()
