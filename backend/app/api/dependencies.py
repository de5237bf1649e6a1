"""Route Dependencies - resolve the per-process database session for handlers.

Invariants:
    - The DatabaseSession lives on app.state (created in the lifespan), never in a module global
    - Handlers receive it through Depends() so tests can override it
"""

from fastapi import Request

from app.core.errors import NotInitializedError
from app.services.database_session import DatabaseSession


def get_database_session(request: Request) -> DatabaseSession:
    session = getattr(request.app.state, "database", None)
    if session is None:
        raise NotInitializedError("serve requests")
    return session
