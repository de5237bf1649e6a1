"""Database Session Facade - observable wrapper around the engine lifecycle for UI callers.

Invariants:
    - Status {is_initialized, is_loading, error} is the only state callers observe
    - Every status change is pushed to all subscribers, in subscription order
    - start() triggers initialize() once per facade; later calls reuse the first task
    - Engine failures land in the single error channel; initialize() records and returns,
      every other operation records and re-raises
    - Import filenames must end in .db before the engine is touched

Design Decisions:
    - Subscribe/unsubscribe over per-operation callbacks: state flows upward, control downward
    - File delivery is an injected collaborator (download, share sheet, disk write);
      export also returns the ExportedFile so HTTP callers can stream it themselves
"""

import asyncio
import dataclasses
import inspect
import logging
from datetime import datetime, timezone
from typing import Any, Callable

from app.core.backup_files import (
    DEFAULT_BACKUP_PREFIX, backup_filename, is_backup_filename,
)
from app.core.domain_types import (
    ExecuteResult, ExportedFile, SessionStatus, SQLParams, StoreRecordInfo,
)
from app.core.errors import InvalidBackupFileError
from app.core.repository_protocols import FileDeliverer, ImageStore
from app.infrastructure.engine import EngineLifecycleManager

logger = logging.getLogger(__name__)

StatusListener = Callable[[SessionStatus], None]


class DatabaseSession:
    """Use/observe facade: loading/error state plus export/import/reset triggers."""

    def __init__(
        self,
        manager: EngineLifecycleManager,
        store: ImageStore | None = None,
        deliver: FileDeliverer | None = None,
        backup_prefix: str = DEFAULT_BACKUP_PREFIX,
        clock: Callable[[], datetime] | None = None,
    ):
        self._manager = manager
        self._store = store
        self._deliver = deliver
        self._backup_prefix = backup_prefix
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._status = SessionStatus()
        self._listeners: list[StatusListener] = []
        self._start_task: asyncio.Task | None = None

    # -- observation -----------------------------------------------------------

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def manager(self) -> EngineLifecycleManager:
        return self._manager

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _update(self, **changes: Any) -> None:
        self._status = dataclasses.replace(self._status, **changes)
        for listener in list(self._listeners):
            listener(self._status)

    def _fail(self, error: Exception, **changes: Any) -> None:
        logger.error(
            f"Database operation failed: {error}",
            extra={"error_code": getattr(error, "code", None)},
        )
        self._update(error=error, **changes)

    # -- lifecycle -------------------------------------------------------------

    async def start(self) -> bool:
        """Auto-initialize once for this session."""
        if self._start_task is None:
            self._start_task = asyncio.ensure_future(self.initialize())
        return await asyncio.shield(self._start_task)

    async def initialize(self) -> bool:
        self._update(is_loading=True, error=None)
        try:
            await self._manager.initialize()
        except Exception as e:
            self._fail(e, is_initialized=False, is_loading=False)
            return False
        self._update(is_initialized=True, is_loading=False)
        return True

    # -- statements ------------------------------------------------------------

    def query(self, sql: str, params: SQLParams = ()) -> list[dict[str, Any]]:
        try:
            return self._manager.query(sql, params)
        except Exception as e:
            self._fail(e)
            raise

    def execute(self, sql: str, params: SQLParams = ()) -> ExecuteResult:
        try:
            return self._manager.execute(sql, params)
        except Exception as e:
            self._fail(e)
            raise

    # -- backup & recovery -----------------------------------------------------

    async def save_database(self) -> None:
        try:
            await self._manager.save_database()
        except Exception as e:
            self._fail(e)
            raise

    async def export_database(self) -> ExportedFile:
        """Snapshot the engine, name the backup, hand it to the deliverer."""
        try:
            exported = ExportedFile(
                filename=backup_filename(self._clock(), self._backup_prefix),
                data=self._manager.export_database(),
            )
            if self._deliver is not None:
                delivered = self._deliver(exported)
                if inspect.isawaitable(delivered):
                    await delivered
        except Exception as e:
            self._fail(e)
            raise
        logger.info(
            f"Exported {exported.filename}",
            extra={"operation": "export", "size_bytes": exported.size_bytes},
        )
        return exported

    async def import_database(self, filename: str, data: bytes) -> None:
        if not is_backup_filename(filename):
            error = InvalidBackupFileError(filename)
            self._fail(error)
            raise error
        self._update(is_loading=True, error=None)
        try:
            await self._manager.import_database(data)
        except Exception as e:
            self._fail(e, is_initialized=self._manager.is_ready, is_loading=False)
            raise
        self._update(is_initialized=True, is_loading=False)

    async def reset_database(self) -> None:
        self._update(is_loading=True, error=None)
        try:
            await self._manager.reset_database()
        except Exception as e:
            self._fail(e, is_initialized=self._manager.is_ready, is_loading=False)
            raise
        self._update(is_initialized=True, is_loading=False)

    async def store_info(self) -> StoreRecordInfo | None:
        """Size and last-modified time of the persisted record, if any."""
        if self._store is None:
            return None
        return await self._store.info()

    async def database_size(self) -> int:
        """Bytes held by the durable store; 0 when unknown or absent."""
        if self._store is None:
            return 0
        return await self._store.size()
