"""Engine Runtime - loads the embedded SQL engine and materializes in-memory databases.

Invariants:
    - Connections are in-memory and in autocommit mode (isolation_level=None)
    - open() probes the image before returning, so garbage bytes fail here, not on first query
    - load() is idempotent; nothing else works before it succeeds

Design Decisions:
    - stdlib sqlite3 serialize()/deserialize() as the image codec (ADR: Python 3.11+, SQLite >= 3.36)
    - Module injectable: tests substitute a runtime that fails to load
"""

import logging
import sqlite3
from types import ModuleType

from app.core.errors import RuntimeLoadError

logger = logging.getLogger(__name__)

MIN_SQLITE_VERSION = (3, 36, 0)


class EngineRuntime:
    """Wraps the sqlite3 module: capability check, create, open, serialize."""

    def __init__(self, module: ModuleType = sqlite3):
        self._module = module
        self._loaded = False

    @property
    def loaded(self) -> bool:
        return self._loaded

    async def load(self) -> None:
        if self._loaded:
            return
        version = getattr(self._module, "sqlite_version_info", (0, 0, 0))
        if tuple(version) < MIN_SQLITE_VERSION:
            raise RuntimeLoadError(
                f"SQLite {'.'.join(map(str, version))} is older than "
                f"{'.'.join(map(str, MIN_SQLITE_VERSION))}",
            )
        connection_cls = getattr(self._module, "Connection", None)
        for capability in ("serialize", "deserialize"):
            if not hasattr(connection_cls, capability):
                raise RuntimeLoadError(f"sqlite3 lacks Connection.{capability}()")
        self._loaded = True
        logger.info(
            f"SQL engine runtime loaded (SQLite {self._module.sqlite_version})",
        )

    def create(self) -> sqlite3.Connection:
        """Empty in-memory database."""
        self._require_loaded()
        return self._module.connect(
            ":memory:", isolation_level=None, check_same_thread=False,
        )

    def open(self, image: bytes) -> sqlite3.Connection:
        """In-memory database materialized from a serialized image.

        Raises sqlite3.DatabaseError when the bytes are not a usable image.
        """
        conn = self.create()
        try:
            conn.deserialize(bytes(image))
            conn.execute("PRAGMA schema_version").fetchone()
            status = conn.execute("PRAGMA quick_check").fetchone()[0]
            if status != "ok":
                raise sqlite3.DatabaseError(f"integrity check failed: {status}")
        except Exception:
            conn.close()
            raise
        return conn

    def serialize(self, conn: sqlite3.Connection) -> bytes:
        return conn.serialize()

    def _require_loaded(self) -> None:
        if not self._loaded:
            raise RuntimeLoadError("runtime not loaded")
