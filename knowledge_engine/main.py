"""
FastAPI application entry point.

Initializes FastAPI app, registers routers, adds middleware, and configures lifespan.

Dependencies: fastapi, uvicorn, knowledge_engine.api, knowledge_engine.observability, knowledge_engine.configs
System role: Application initialization and configuration
"""

from contextlib import asynccontextmanager
import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from knowledge_engine import __version__
from knowledge_engine.api import api_router
from knowledge_engine.api.deps.dependencies import get_service_cache
from knowledge_engine.boundary.db import dispose_engine
from knowledge_engine.configs import get_settings
from knowledge_engine.observability.logger import configure_logging
from knowledge_engine.observability.middleware import (
    RequestLoggingMiddleware,
    CorrelationMiddleware,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown events.
    Builds the embedding gateway once; closes it and the database pool on shutdown.
    """
    # Startup
    configure_logging()
    logger.info("Application startup: logging configured")

    cache = get_service_cache()
    gateway = cache.embedding_gateway
    logger.info(
        "Application startup complete",
        extra={"embedding_providers": [p.name for p in gateway.providers]},
    )

    yield

    # Shutdown
    await cache.aclose()
    await dispose_engine()
    logger.info("Application shutdown")


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application.

    Returns:
        FastAPI: Configured application instance
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Knowledge ingestion with keyword, semantic and hybrid retrieval",
        version=__version__,
        lifespan=lifespan,
    )

    # Add observability middleware (added first = last to execute)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(CorrelationMiddleware)

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register API routes
    app.include_router(api_router, prefix="/api/v1")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "knowledge_engine.main:app",
        host="localhost",
        port=8082,
        reload=True,
    )
