"""Domain Types - value types shared by the engine, store and session facade.

Invariants:
    - Database images are plain bytes; nothing outside the engine manager holds a live connection
    - All valid lifecycle states encoded as Enums - no raw string matching
    - Result types are frozen (callers never mutate engine output in place)

Design Decisions:
    - str Enums: serialize to JSON without custom encoders (ADR: status endpoint returns state)
    - Frozen dataclasses over dicts for results: attribute access, type-checker support
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Sequence


# ─── Value Types ─────────────────────────────────────────────────

SQLValue = str | int | float | bytes | None
SQLParams = Sequence[SQLValue]

SQLITE_MEDIA_TYPE = "application/x-sqlite3"


# ─── Enums ───────────────────────────────────────────────────────

class EngineState(str, Enum):
    """Engine session lifecycle. FAILED may retry via initialize()."""
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


# ─── Result Types ────────────────────────────────────────────────

@dataclass(frozen=True)
class QueryResult:
    """Raw column/rows pair for one result set."""
    columns: list[str]
    values: list[list[Any]]

    def as_rows(self) -> list[dict[str, Any]]:
        """Row objects keyed by column name, engine column order preserved."""
        return [dict(zip(self.columns, row)) for row in self.values]


@dataclass(frozen=True)
class ExecuteResult:
    last_insert_id: int
    rows_affected: int


@dataclass(frozen=True)
class ExportedFile:
    """Backup ready to hand to a file-delivery collaborator."""
    filename: str
    data: bytes
    media_type: str = SQLITE_MEDIA_TYPE

    @property
    def size_bytes(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class StoreRecordInfo:
    size_bytes: int
    last_modified: datetime


@dataclass(frozen=True)
class SessionStatus:
    """Observable facade state pushed to subscribers on every change."""
    is_initialized: bool = False
    is_loading: bool = True
    error: Exception | None = field(default=None, compare=False)
