"""FastAPI application entry point for the Deal Room.

Lifecycle:
    1. Startup: Initialize logging, wait for the database, create tables (dev mode).
    2. Running: Serve the REST API at /api/v1/*.
    3. Shutdown: Dispose of the database engine.

Run with:
    uv run uvicorn deal_room.main:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from deal_room.config import get_settings
from deal_room.logging_config import get_logger, setup_logging

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown lifecycle."""
    settings = get_settings()

    # 1. Setup structured logging
    setup_logging(
        log_level=settings.app_log_level,
        json_logs=not settings.is_development,
    )
    logger = get_logger(__name__)
    logger.info(
        "app.starting",
        env=settings.app_env,
        debug=settings.app_debug,
    )

    # 2. Wait for the database, then create tables in development
    from deal_room.infrastructure.database.engine import close_db, init_db, wait_for_db

    await wait_for_db()
    await init_db()

    logger.info("app.started", host=settings.app_host, port=settings.app_port)

    yield

    # Shutdown
    logger.info("app.shutting_down")
    await close_db()
    logger.info("app.stopped")


def create_app() -> FastAPI:
    """Application factory — creates and configures the FastAPI app."""
    settings = get_settings()

    app = FastAPI(
        title="Deal Room",
        description=(
            "Multi-party real-estate deal coordination: proof of funds, escrow, "
            "PSBT signing and an append-only audit ledger."
        ),
        version="0.1.0",
        lifespan=lifespan,
        debug=settings.app_debug,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # --- Middleware ---
    from deal_room.api.middleware import setup_middleware

    setup_middleware(app)

    # --- REST API Routes ---
    from deal_room.api.routes.checklists import router as checklists_router
    from deal_room.api.routes.deals import router as deals_router
    from deal_room.api.routes.escrow import router as escrow_router
    from deal_room.api.routes.health import router as health_router
    from deal_room.api.routes.ledgers import router as ledgers_router
    from deal_room.api.routes.parties import router as parties_router
    from deal_room.api.routes.pof import router as pof_router
    from deal_room.api.routes.signing import router as signing_router

    app.include_router(health_router)
    app.include_router(deals_router)
    app.include_router(parties_router)
    app.include_router(pof_router)
    app.include_router(escrow_router)
    app.include_router(signing_router)
    app.include_router(checklists_router)
    app.include_router(ledgers_router)

    return app


# The app instance used by Uvicorn
app = create_app()
