"""HTTP service for the trial lookup.

This module provides a FastAPI application exposing the matcher as a
trial-matching service endpoint, plus a health check.
"""

__version__ = "1.0.0"
