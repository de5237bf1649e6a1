"""Database Backup Routes - status, save, export, import and reset over HTTP.

Invariants:
    - Export streams the raw image as application/x-sqlite3 with a timestamped attachment name
    - Import reads the raw request body; the filename query parameter must end in .db
    - Routes never touch the engine directly (delegate to DatabaseSession)
    - Failures surface as FinoraError envelopes via the global handler

Design Decisions:
    - Raw body over multipart upload: no form-parsing dependency (ADR: backups are one blob)
"""

import logging

from fastapi import APIRouter, Depends, Query, Request, Response

from app.api.dependencies import get_database_session
from app.schemas.database import DatabaseStatusResponse, OperationResponse
from app.services.database_session import DatabaseSession

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/database", tags=["database"])


def _schema_version(session: DatabaseSession) -> int | None:
    manager = session.manager
    return manager.schema_version() if manager.is_ready else None


@router.get("/status", response_model=DatabaseStatusResponse)
async def database_status(session: DatabaseSession = Depends(get_database_session)):
    """Lifecycle state, schema version and persisted size."""
    return DatabaseStatusResponse.build(
        state=session.manager.state,
        status=session.status,
        schema_version=_schema_version(session),
        record=await session.store_info(),
    )


@router.post("/save", response_model=OperationResponse)
async def save_database(session: DatabaseSession = Depends(get_database_session)):
    """Checkpoint the live engine into the durable store."""
    await session.save_database()
    return OperationResponse(
        status="ok", operation="save", schema_version=_schema_version(session),
    )


@router.get("/export")
async def export_database(session: DatabaseSession = Depends(get_database_session)):
    """Download the full database image as a .db file."""
    exported = await session.export_database()
    return Response(
        content=exported.data,
        media_type=exported.media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{exported.filename}"',
        },
    )


@router.post("/import", response_model=OperationResponse)
async def import_database(
    request: Request,
    filename: str = Query(..., min_length=1, max_length=255),
    session: DatabaseSession = Depends(get_database_session),
):
    """Replace every table with the uploaded backup image."""
    data = await request.body()
    await session.import_database(filename, data)
    return OperationResponse(
        status="ok", operation="import", schema_version=_schema_version(session),
    )


@router.post("/reset", response_model=OperationResponse)
async def reset_database(session: DatabaseSession = Depends(get_database_session)):
    """Erase all data and start from the bootstrap schema. Irreversible."""
    await session.reset_database()
    return OperationResponse(
        status="ok", operation="reset", schema_version=_schema_version(session),
    )
