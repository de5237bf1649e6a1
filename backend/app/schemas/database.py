"""Database Schemas - Pydantic response models for the backup & restore endpoints.

Invariants:
    - Error text is the user-facing message only (never a traceback)
    - size_human always derived from size_bytes
"""

from datetime import datetime

from pydantic import BaseModel

from app.core.backup_files import format_bytes
from app.core.domain_types import EngineState, SessionStatus, StoreRecordInfo


class DatabaseStatusResponse(BaseModel):
    """Facade status plus durable store diagnostics."""
    state: EngineState
    is_initialized: bool
    is_loading: bool
    error: str | None = None
    schema_version: int | None = None
    size_bytes: int = 0
    size_human: str = "0 Bytes"
    last_modified: datetime | None = None

    @classmethod
    def build(
        cls,
        state: EngineState,
        status: SessionStatus,
        schema_version: int | None,
        record: StoreRecordInfo | None,
    ) -> "DatabaseStatusResponse":
        size = record.size_bytes if record else 0
        return cls(
            state=state,
            is_initialized=status.is_initialized,
            is_loading=status.is_loading,
            error=_error_message(status.error),
            schema_version=schema_version,
            size_bytes=size,
            size_human=format_bytes(size),
            last_modified=record.last_modified if record else None,
        )


class OperationResponse(BaseModel):
    """Acknowledgement for save / import / reset."""
    status: str
    operation: str
    schema_version: int | None = None


def _error_message(error: Exception | None) -> str | None:
    if error is None:
        return None
    return getattr(error, "message", None) or "Database operation failed"
