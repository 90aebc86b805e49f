"""Health check endpoint for the API."""

import logging

from fastapi import APIRouter, Request

from trial_lookup.api.models.health import HealthResponse
from trial_lookup.infrastructure.settings import APP_VERSION

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Health check endpoint.

    Returns:
        HealthResponse: ``healthy`` when the matcher is configured and its code
        tables are loaded, ``degraded`` while the tables are not loaded, and
        ``unhealthy`` when no endpoint is configured
    """
    matcher = getattr(request.app.state, "matcher", None)
    endpoint_configured = matcher is not None
    code_tables_loaded = endpoint_configured and matcher.code_tables_loaded

    if not endpoint_configured:
        status = "unhealthy"
    elif not code_tables_loaded:
        status = "degraded"
    else:
        status = "healthy"

    return HealthResponse(
        status=status,
        version=APP_VERSION,
        endpoint_configured=endpoint_configured,
        code_tables_loaded=code_tables_loaded,
        cache=matcher.cache.get_statistics() if endpoint_configured else None,
    )
