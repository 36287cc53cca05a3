"""Bibli API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map LibraryError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database initialized on startup via lifespan context manager

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Error handlers live in api/error_handlers.py to keep this module's imports small
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import bibli.infrastructure.database as db_module
from bibli.api.error_handlers import register_error_handlers
from bibli.api.routes import (
    authors, barcodes, borrower_groups, borrowers, duplicates, health,
    loans, locations, titles, volumes,
)
from bibli.config import get_settings
from bibli.infrastructure.database import init_db
from bibli.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    logger.info("Bibli API started")
    yield
    if db_module.db_manager:
        await db_module.db_manager.dispose()
    logger.info("Bibli API shutting down")


app = FastAPI(title="Bibli API", version="1.0.0", lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes: explicit registration
app.include_router(health.router)
app.include_router(titles.router)
app.include_router(volumes.router)
app.include_router(authors.router)
app.include_router(locations.router)
app.include_router(borrower_groups.router)
app.include_router(borrowers.router)
app.include_router(loans.router)
app.include_router(duplicates.router)
app.include_router(barcodes.router)

register_error_handlers(app)
