"""Main FastAPI application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from motor.motor_asyncio import AsyncIOMotorClient
from starlette.exceptions import HTTPException as StarletteHTTPException

from infrastructure.config import settings
from infrastructure.document_stores.mongo_document_store import MongoDocumentStore
from infrastructure.logging import setup_logging
from interfaces.api.middleware import http_exception_handler
from interfaces.api.routes import client_router, project_router, task_router, team_router
from interfaces.dependencies import get_container

# Configure structured logging
setup_logging()

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:  # noqa: ARG001
    """Handle application startup and shutdown."""
    logger.info("app_starting", env=settings.app_env)

    try:
        document_store = get_container()[MongoDocumentStore]
        await document_store.ensure_indexes()
        logger.info("document_indexes_ready")
    except Exception as e:  # noqa: BLE001
        logger.warning("document_index_setup_failed", error=str(e))
        # Don't fail startup - reference lookups just run unindexed

    logger.info("app_ready")

    yield

    logger.info("app_shutting_down")
    get_container()[AsyncIOMotorClient].close()
    logger.info("app_stopped")


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        description="Referential-integrity cascade deletion API",
        version="1.0.0",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure properly for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)

    # Include routers
    app.include_router(team_router)
    app.include_router(task_router)
    app.include_router(project_router)
    app.include_router(client_router)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


# Create app instance
app = create_app()
