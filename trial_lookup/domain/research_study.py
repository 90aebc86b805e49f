"""Trial Resource Schema Definitions.

This module defines the data models that flow through the lookup pipeline:
the raw trial summaries returned by the breastcancertrials.org search endpoint,
the registry records fetched from ClinicalTrials.gov, and the normalized FHIR
ResearchStudy resources (and the searchset that wraps them) returned to callers.

Architecture:
    - Pure domain models with zero infrastructure dependencies
    - Attributes are snake_case; FHIR element names are kept as aliases and
      used when serializing to JSON
    - Type safety enforced at runtime via Pydantic V2
"""

import logging
from typing import Any, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    ValidatorFunctionWrapHandler,
    field_validator,
)

logger = logging.getLogger(__name__)

SNOMED_SYSTEM = "http://snomed.info/sct"
RXNORM_SYSTEM = "http://www.nlm.nih.gov/research/umls/rxnorm"
AJCC_SYSTEM = "http://cancerstaging.org"
CLINICAL_TRIALS_GOV_SYSTEM = "http://clinicaltrials.gov"
BREAST_CANCER_TRIALS_SYSTEM = "https://www.breastcancertrials.org"
PHASE_SYSTEM = "http://terminology.hl7.org/CodeSystem/research-study-phase"

# Placeholders used when neither the search endpoint nor the registry supplies a value.
DEFAULT_TITLE = "Title"
DEFAULT_STATUS = "unknown"
DEFAULT_SPONSOR = "Unknown"
DEFAULT_CONDITION = "Breast Cancer"


class FHIRModel(BaseModel):
    """Base for FHIR element models: accepts snake_case or FHIR names."""

    model_config = ConfigDict(populate_by_name=True)

    def to_fhir(self) -> dict[str, Any]:
        """Serialize using FHIR element names, dropping unset elements."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class Coding(FHIRModel):
    system: Optional[str] = None
    code: Optional[str] = None
    display: Optional[str] = None


class CodeableConcept(FHIRModel):
    coding: Optional[list[Coding]] = None
    text: Optional[str] = None


class Identifier(FHIRModel):
    use: Optional[str] = None
    system: Optional[str] = None
    value: str


class Reference(FHIRModel):
    reference: Optional[str] = None
    display: Optional[str] = None


class ContactPoint(FHIRModel):
    system: Literal["phone", "email", "url"]
    value: str
    use: Optional[str] = None


class ContactDetail(FHIRModel):
    name: Optional[str] = None
    telecom: Optional[list[ContactPoint]] = None


class RelatedArtifact(FHIRModel):
    type: str = "documentation"
    display: Optional[str] = None
    url: Optional[str] = None


class TrialResponse(BaseModel):
    """A single trial summary as returned by the breastcancertrials.org endpoint.

    The endpoint returns a flat record per matching trial site. Only
    ``trial_id`` is semantically required (it is the join key into the
    registry); everything else is optional payload. A value of the wrong type
    in any other field is replaced by that field's default, and unknown
    fields are kept.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    result_number: Optional[Union[str, int]] = Field(None, alias="resultNumber")
    trial_id: Optional[str] = Field(None, alias="trialId", description="Registry identifier (NCT number)")
    trial_title: Optional[str] = Field(None, alias="trialTitle")
    scientific_title: Optional[str] = Field(None, alias="scientificTitle")
    phase_number: Optional[str] = Field(None, alias="phaseNumber")
    purpose: Optional[str] = None
    who_is_this_for: Optional[str] = Field(None, alias="whoIsThisFor")
    what_is_involved: Optional[str] = Field(None, alias="whatIsInvolved")
    what_is_being_studied: Optional[str] = Field(None, alias="whatIsBeingStudied")
    learn_more: Optional[str] = Field(None, alias="learnMore")
    ct_gov_link: Optional[str] = Field(None, alias="ctGovLink")
    eligibility_criteria_link: Optional[str] = Field(None, alias="eligibilityCriteriaLink")
    trial_categories: list[str] = Field(default_factory=list, alias="trialCategories")
    trial_mutations: list[Any] = Field(default_factory=list, alias="trialMutations")
    new_trial_flag: Optional[bool] = Field(None, alias="newTrialFlag")
    zip: Optional[Union[str, int]] = None
    distance: Optional[Union[str, int, float]] = None
    site_name: Optional[str] = Field(None, alias="siteName")
    city: Optional[str] = None
    state: Optional[str] = None
    visits: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    contact_name: Optional[str] = Field(None, alias="contactName")
    contact_phone: Optional[str] = Field(None, alias="contactPhone")
    contact_email: Optional[str] = Field(None, alias="contactEmail")
    no_visits_required_flag: Optional[bool] = Field(None, alias="noVisitsRequiredFlag")
    number_of_sites: Optional[Union[str, int]] = Field(None, alias="numberOfSites")

    @field_validator("*", mode="wrap")
    @classmethod
    def drop_malformed(cls, v: Any, handler: ValidatorFunctionWrapHandler, info: ValidationInfo) -> Any:
        """Replace a malformed optional value with the field default.

        ``trial_id`` is the only field whose errors are reported.
        """
        if info.field_name == "trial_id":
            return handler(v)
        try:
            return handler(v)
        except ValidationError:
            logger.debug(f"Ignoring malformed trial summary field '{info.field_name}'")
            return cls.model_fields[info.field_name].get_default(call_default_factory=True)


class RegistryStudy(BaseModel):
    """The subset of a ClinicalTrials.gov study record used for enrichment."""

    nct_id: str
    brief_title: Optional[str] = None
    official_title: Optional[str] = None
    lead_sponsor: Optional[str] = None
    overall_status: Optional[str] = None
    brief_summary: Optional[str] = None
    conditions: list[str] = Field(default_factory=list)
    phases: list[str] = Field(default_factory=list)


class ResearchStudy(FHIRModel):
    """Normalized trial resource (FHIR R4 ResearchStudy).

    ``identifier``, ``title``, ``status``, ``sponsor`` and ``condition`` are
    always populated; the translator fills them with the module-level
    placeholder defaults when the source has no value.

    ``defaulted_fields`` names the elements holding such a placeholder. It is
    never serialized.
    """

    resource_type: Literal["ResearchStudy"] = Field("ResearchStudy", alias="resourceType")
    id: str
    identifier: list[Identifier]
    title: str = DEFAULT_TITLE
    status: str = DEFAULT_STATUS
    sponsor: Reference = Field(default_factory=lambda: Reference(display=DEFAULT_SPONSOR))
    condition: list[CodeableConcept] = Field(
        default_factory=lambda: [CodeableConcept(text=DEFAULT_CONDITION)]
    )
    phase: Optional[CodeableConcept] = None
    description: Optional[str] = None
    keyword: Optional[list[CodeableConcept]] = None
    contact: Optional[list[ContactDetail]] = None
    related_artifact: Optional[list[RelatedArtifact]] = Field(None, alias="relatedArtifact")
    contained: Optional[list[dict[str, Any]]] = None
    site: Optional[list[Reference]] = None
    defaulted_fields: frozenset[str] = Field(default_factory=frozenset, exclude=True)


class SearchSetEntry(FHIRModel):
    resource: ResearchStudy
    search: dict[str, Any] = Field(default_factory=lambda: {"mode": "match"})


class SearchSet(FHIRModel):
    """FHIR searchset Bundle wrapping the matched ResearchStudy resources."""

    resource_type: Literal["Bundle"] = Field("Bundle", alias="resourceType")
    type: Literal["searchset"] = "searchset"
    total: int
    entry: list[SearchSetEntry] = Field(default_factory=list)

    @classmethod
    def from_studies(cls, studies: list[ResearchStudy]) -> "SearchSet":
        return cls(
            total=len(studies),
            entry=[SearchSetEntry(resource=study) for study in studies],
        )
