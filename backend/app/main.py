"""Finora Database Core API - FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery - ExMA anti-pattern)
    - Global error handlers map FinoraError -> structured JSON responses
    - CORS configured from settings (not hardcoded)
    - One store, one lifecycle manager and one session per process, held on app.state
    - The embedded engine is closed and the store engine disposed on shutdown

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
      (ADR: FastAPI 0.128)
    - A failed auto-initialize keeps the process up; the error is visible through
      /api/v1/database/status and readiness stays 503
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.error_handlers import register_error_handlers
from app.api.routes import database_backup, health
from app.config import get_settings
from app.infrastructure.engine import EngineLifecycleManager
from app.infrastructure.image_store import SqlAlchemyImageStore
from app.infrastructure.observability import setup_logging
from app.services.database_session import DatabaseSession

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    store = SqlAlchemyImageStore(settings.store_url, key=settings.store_key)
    manager = EngineLifecycleManager(store, import_rollback=settings.import_rollback)
    app.state.database = DatabaseSession(
        manager, store=store, backup_prefix=settings.backup_filename_prefix,
    )
    if settings.auto_initialize:
        await app.state.database.start()
    logger.info("Finora database core started")
    yield
    logger.info("Finora database core shutting down")
    await manager.close()
    await store.dispose()


app = FastAPI(
    title="Finora Database Core", version="1.0.0", lifespan=lifespan,
)

# CORS - configured from settings, not hardcoded
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)

# Routes - explicit registration (ExMA: no convention-over-config)
app.include_router(health.router)
app.include_router(database_backup.router)

register_error_handlers(app)
