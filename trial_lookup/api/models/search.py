"""Search request models for the API."""

from typing import Any

from pydantic import BaseModel, Field, field_validator


class SearchRequest(BaseModel):
    """Trial search request.

    Attributes:
        patient_data: FHIR Bundle describing the patient
        options: Per-request search options (e.g. zipCode, travelRadius)
    """
    patient_data: dict[str, Any] = Field(..., alias="patientData")
    options: dict[str, Any] = Field(default_factory=dict)

    @field_validator("patient_data")
    @classmethod
    def validate_bundle(cls, v: dict[str, Any]) -> dict[str, Any]:
        if v.get("resourceType") != "Bundle":
            raise ValueError("patientData must be a FHIR Bundle")
        entries = v.get("entry")
        if entries is not None and not isinstance(entries, list):
            raise ValueError("patientData.entry must be a list")
        return v
