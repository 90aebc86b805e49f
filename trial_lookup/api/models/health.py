"""Health check models for the API."""

from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Health check response model.

    Attributes:
        status: Overall service status
        timestamp: Current timestamp
        version: Application version
        endpoint_configured: Whether a trial-search endpoint is configured
        code_tables_loaded: Whether the code-mapping tables have been loaded
        cache: Query cache statistics, when a matcher is configured
    """
    status: Literal["healthy", "degraded", "unhealthy"]
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), description="Current UTC timestamp")
    version: str = Field(default="1.0.0", description="Application version")
    endpoint_configured: bool
    code_tables_loaded: bool
    cache: Optional[dict[str, Any]] = None
