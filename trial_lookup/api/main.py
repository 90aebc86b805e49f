"""Main FastAPI application for the trial lookup service.

This module sets up the FastAPI application with all routes, middleware,
and configuration. The matcher is built once at startup from the
environment configuration and its code tables are loaded before the first
request is served.
"""

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from trial_lookup.api.middleware import setup_middleware
from trial_lookup.api.routes import health, trials
from trial_lookup.domain.ports import CodeTableError, ConfigurationError
from trial_lookup.infrastructure.logging_config import setup_logging
from trial_lookup.infrastructure.settings import APP_VERSION, settings
from trial_lookup.lookup import build_lookup

setup_logging(use_json=settings.json_logs, log_level=settings.log_level, service=settings.app_name)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    logger.info(f"{settings.app_name} API starting up...")

    try:
        lookup_config = settings.lookup_config
    except ValueError as e:
        logger.error(f"Invalid configuration: {str(e)}")
        lookup_config = None

    async with httpx.AsyncClient(timeout=lookup_config.request_timeout if lookup_config else 30.0) as client:
        app.state.matcher = None
        if lookup_config is not None:
            try:
                app.state.matcher = build_lookup(lookup_config, http_client=client)
            except ConfigurationError as e:
                logger.error(f"Trial lookup disabled: {str(e)}")

        if app.state.matcher is not None:
            try:
                await app.state.matcher.code_tables.get()
            except CodeTableError as e:
                logger.error(f"Failed to load code tables: {str(e)}")

        yield

    logger.info(f"{settings.app_name} API shutting down...")


app = FastAPI(
    title="Breast Cancer Trial Lookup API",
    description="Matches patient FHIR bundles to breast-cancer clinical trials",
    version=APP_VERSION,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan
)

setup_middleware(app)

app.include_router(health.router)
app.include_router(trials.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Breast Cancer Trial Lookup API",
        "version": APP_VERSION,
        "docs": "/api/docs",
        "health": "/api/health"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "trial_lookup.api.main:app",
        host="0.0.0.0",
        port=8000,
        log_level="info"
    )
