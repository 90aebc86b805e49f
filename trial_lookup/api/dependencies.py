"""Dependency injection for the API.

The matcher is built once in the application lifespan and stored on
``app.state``; routes receive it through ``MatcherDep``.
"""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request

from trial_lookup.lookup import ClinicalTrialMatcher

logger = logging.getLogger(__name__)


def get_matcher(request: Request) -> ClinicalTrialMatcher:
    """Get the application's matcher.

    Raises:
        HTTPException: 503 if the lookup could not be configured at startup
    """
    matcher = getattr(request.app.state, "matcher", None)
    if matcher is None:
        raise HTTPException(status_code=503, detail="Trial lookup is not configured")
    return matcher


# Type alias for dependency injection
MatcherDep = Annotated[ClinicalTrialMatcher, Depends(get_matcher)]
