"""
app.py - FastAPI application factory and startup lifecycle.

It wires the inventory services, registers routers, and runs startup
initialization.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from spotplanner.controllers.allocation_controller import router as allocation_router
from spotplanner.controllers.inventory_controller import router as inventory_router
from spotplanner.repository.data_repository import DataRepository
from spotplanner.services.allocation_service import BulkAllocationService
from spotplanner.services.availability_service import InventoryAvailabilityService
from spotplanner.services.inventory_service import ShowInventoryService
from spotplanner.utils.config import get_settings
from spotplanner.utils.logger import configure_logging, get_logger


logger = get_logger(__name__)


def create_app() -> FastAPI:
    """
    Build and wire the FastAPI application.

    Services are instantiated here and exposed through app.state so every
    dependency is traceable from this function.
    """
    settings = get_settings()
    configure_logging(settings.log_level)

    # --- Repository (SQLite connection factory) ---
    repository = DataRepository(settings)

    # --- Services ---
    availability_service = InventoryAvailabilityService(
        repository=repository,
        settings=settings,
    )
    allocation_service = BulkAllocationService(
        repository=repository,
        settings=settings,
        availability_service=availability_service,
    )
    inventory_service = ShowInventoryService(
        repository=repository,
        settings=settings,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run startup initialization before accepting requests."""
        _startup(app)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    # --- Routers ---
    app.include_router(allocation_router)
    app.include_router(inventory_router)

    app.state.repository = repository
    app.state.availability_service = availability_service
    app.state.allocation_service = allocation_service
    app.state.inventory_service = inventory_service

    return app


def _startup(app: FastAPI) -> None:
    """
    Idempotent startup sequence. Safe to re-run on server restarts.

    The schema must exist before seeding; seeding is skipped when shows exist.
    """
    repository: DataRepository = app.state.repository

    logger.info("Startup: initializing database schema")
    repository.initialize_database()

    logger.info("Startup: seeding synthetic inventory (skipped if Shows table not empty)")
    repository.seed_synthetic_data()

    logger.info("Startup complete | shows=%s", repository.count_shows())


# Module-level app object for uvicorn
app = create_app()
