"""Health & Readiness Probes - process liveness and embedded engine readiness.

Invariants:
    - GET /health/ answers 200 whenever the process can serve requests
    - GET /health/ready answers 503 until the engine is READY, reporting its state
    - Probes never trigger initialization themselves

Design Decisions:
    - Readiness reads app.state directly instead of Depends(get_database_session):
      a missing session is a "not ready" answer, not an error envelope
"""

import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from app.core.domain_types import EngineState

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])

SERVICE_NAME = "finora-db-core"


@router.get("/", status_code=status.HTTP_200_OK)
async def liveness():
    return {"status": "healthy", "service": SERVICE_NAME}


@router.get("/ready")
async def readiness(request: Request):
    """503 with the current engine state unless the database is READY."""
    session = getattr(request.app.state, "database", None)
    state = session.manager.state if session else EngineState.UNINITIALIZED
    if session is None or not session.manager.is_ready:
        logger.debug("Readiness probe: not ready", extra={"state": state.value})
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "state": state.value},
        )
    return {
        "status": "ready",
        "state": state.value,
        "schema_version": session.manager.schema_version(),
    }
