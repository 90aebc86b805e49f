"""API Pydantic models."""

from trial_lookup.api.models.health import HealthResponse
from trial_lookup.api.models.search import SearchRequest

__all__ = ["HealthResponse", "SearchRequest"]
