"""Trial search endpoint for the API."""

import logging
from typing import Any

from fastapi import APIRouter, Body, HTTPException
from pydantic import ValidationError as PydanticValidationError

from trial_lookup.api.dependencies import MatcherDep
from trial_lookup.api.models.search import SearchRequest
from trial_lookup.domain.ports import APIError, CodeTableError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["trials"])


def _parse_request(payload: dict[str, Any]) -> SearchRequest:
    """Accept either ``{"patientData": Bundle, "options": {...}}`` or a bare Bundle."""
    if payload.get("resourceType") == "Bundle":
        payload = {"patientData": payload}
    try:
        return SearchRequest.model_validate(payload)
    except PydanticValidationError as e:
        messages = "; ".join(err["msg"] for err in e.errors())
        raise HTTPException(status_code=400, detail=f"Invalid search request: {messages}")


@router.post("/getClinicalTrial")
async def get_clinical_trial(matcher: MatcherDep, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
    """Find breast-cancer trials matching a patient bundle.

    Returns:
        FHIR searchset Bundle of ResearchStudy resources
    """
    search = _parse_request(payload)

    try:
        result = await matcher(search.patient_data, search.options)
    except APIError as e:
        logger.error(f"Trial search failed: {str(e)}", extra={"error_type": e.error_type})
        raise HTTPException(
            status_code=502,
            detail={"error": "Trial search failed", "error_type": e.error_type, "message": str(e)},
        )
    except CodeTableError as e:
        logger.error(f"Code tables unavailable: {str(e)}", extra={"error_type": e.error_type})
        raise HTTPException(status_code=503, detail="Code tables are unavailable")

    return result.to_fhir()
