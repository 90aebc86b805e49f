"""Trial Response Translation Service.

Converts the breastcancertrials.org trial summaries into FHIR ResearchStudy
resources. The translation is one-to-one and order-preserving; required
ResearchStudy elements the endpoint does not supply are filled with the
placeholder defaults defined in ``trial_lookup.domain.research_study``.

Default table:
    - id / identifier: ``trialId`` (required, never defaulted)
    - title: ``trialTitle``, else ``"Title"``
    - status: always ``"unknown"`` (only the registry knows recruitment status)
    - sponsor: always ``{"display": "Unknown"}`` (only the registry knows it)
    - condition: always ``[{"text": "Breast Cancer"}]``
    - phase: ``phaseNumber`` mapped to the research-study-phase code system,
      else ``n-a``

Every element filled from this table is listed in the resource's
``defaulted_fields``, so later enrichment knows which values it may replace.
"""

import logging
import re
from typing import Any, Iterable, Optional

from pydantic import ValidationError as PydanticValidationError

from trial_lookup.domain.ports import APIError
from trial_lookup.domain.research_study import (
    BREAST_CANCER_TRIALS_SYSTEM,
    CLINICAL_TRIALS_GOV_SYSTEM,
    DEFAULT_TITLE,
    PHASE_SYSTEM,
    CodeableConcept,
    Coding,
    ContactDetail,
    ContactPoint,
    Identifier,
    Reference,
    RelatedArtifact,
    ResearchStudy,
    TrialResponse,
)

logger = logging.getLogger(__name__)

NCT_ID_PATTERN = re.compile(r"^NCT\d{8}$")

# phaseNumber as sent by the endpoint -> (code, display)
PHASE_CODES = {
    "0": ("early-phase-1", "Early Phase 1"),
    "EARLY I": ("early-phase-1", "Early Phase 1"),
    "I": ("phase-1", "Phase 1"),
    "I-II": ("phase-1-phase-2", "Phase 1/Phase 2"),
    "II": ("phase-2", "Phase 2"),
    "II-III": ("phase-2-phase-3", "Phase 2/Phase 3"),
    "III": ("phase-3", "Phase 3"),
    "IV": ("phase-4", "Phase 4"),
}
NOT_APPLICABLE_PHASE = ("n-a", "N/A")


def convert_phase(phase_number: Optional[str]) -> CodeableConcept:
    """Map a breastcancertrials.org phase label (e.g. ``"I-II"``) to a FHIR phase."""
    key = re.sub(r"\s*[-/]\s*", "-", (phase_number or "").strip().upper())
    code, display = PHASE_CODES.get(key, NOT_APPLICABLE_PHASE)
    return CodeableConcept(
        coding=[Coding(system=PHASE_SYSTEM, code=code, display=display)],
        text=display,
    )


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _build_identifier(trial_id: str) -> Identifier:
    system = CLINICAL_TRIALS_GOV_SYSTEM if NCT_ID_PATTERN.match(trial_id) else BREAST_CANCER_TRIALS_SYSTEM
    return Identifier(use="official", system=system, value=trial_id)


def _build_contact(trial: TrialResponse) -> Optional[list[ContactDetail]]:
    telecom = []
    if not _blank(trial.contact_phone):
        telecom.append(ContactPoint(system="phone", value=trial.contact_phone, use="work"))
    if not _blank(trial.contact_email):
        telecom.append(ContactPoint(system="email", value=trial.contact_email, use="work"))
    if _blank(trial.contact_name) and not telecom:
        return None
    return [ContactDetail(
        name=None if _blank(trial.contact_name) else trial.contact_name,
        telecom=telecom or None,
    )]


def _build_related_artifacts(trial: TrialResponse) -> Optional[list[RelatedArtifact]]:
    links = [
        (trial.ct_gov_link, "ClinicalTrials.gov"),
        (trial.eligibility_criteria_link, "Eligibility criteria"),
        (trial.learn_more, "Learn more"),
    ]
    # learnMore is sometimes prose rather than a link
    artifacts = [
        RelatedArtifact(type="documentation", display=display, url=url)
        for url, display in links
        if not _blank(url) and url.startswith(("http://", "https://"))
    ]
    return artifacts or None


def _build_site(trial: TrialResponse, trial_id: str) -> tuple[Optional[list[dict]], Optional[list[Reference]]]:
    """Build a contained Location for the matching site, if the summary names one."""
    has_address = any(not _blank(v) for v in (trial.city, trial.state, trial.zip))
    has_position = trial.latitude is not None and trial.longitude is not None
    if _blank(trial.site_name) and not has_address and not has_position:
        return None, None

    location_id = f"location-{trial_id}"
    location: dict[str, Any] = {"resourceType": "Location", "id": location_id}
    if not _blank(trial.site_name):
        location["name"] = trial.site_name
    if has_address:
        address = {"use": "work"}
        if not _blank(trial.city):
            address["city"] = trial.city
        if not _blank(trial.state):
            address["state"] = trial.state
        if not _blank(trial.zip):
            address["postalCode"] = str(trial.zip)
        location["address"] = address
    if has_position:
        location["position"] = {"latitude": trial.latitude, "longitude": trial.longitude}
    return [location], [Reference(reference=f"#{location_id}", display=trial.site_name or None)]


def to_research_study(summary: Any) -> ResearchStudy:
    """Translate a single trial summary.

    Raises:
        APIError: ``invalid_trial`` if the summary is not an object, fails
            validation, or has no ``trialId``
    """
    if isinstance(summary, TrialResponse):
        trial = summary
    elif isinstance(summary, dict):
        try:
            trial = TrialResponse.model_validate(summary)
        except PydanticValidationError as e:
            raise APIError(f"Invalid trial summary: {e}", error_type="invalid_trial") from e
    else:
        raise APIError(
            f"Invalid trial summary: expected an object, got {type(summary).__name__}",
            error_type="invalid_trial"
        )

    if _blank(trial.trial_id):
        raise APIError("Trial summary is missing trialId", error_type="invalid_trial")
    trial_id = trial.trial_id.strip()

    contained, site = _build_site(trial, trial_id)
    keywords = [CodeableConcept(text=category) for category in trial.trial_categories if not _blank(category)]
    phase = convert_phase(trial.phase_number)

    # status, sponsor and condition are never supplied by the endpoint
    defaulted = {"status", "sponsor", "condition"}
    if _blank(trial.trial_title):
        defaulted.add("title")
    if phase.coding[0].code == NOT_APPLICABLE_PHASE[0]:
        defaulted.add("phase")

    return ResearchStudy(
        id=trial_id,
        identifier=[_build_identifier(trial_id)],
        title=DEFAULT_TITLE if _blank(trial.trial_title) else trial.trial_title,
        phase=phase,
        description=None if _blank(trial.purpose) else trial.purpose,
        keyword=keywords or None,
        contact=_build_contact(trial),
        related_artifact=_build_related_artifacts(trial),
        contained=contained,
        site=site,
        defaulted_fields=frozenset(defaulted),
    )


def to_research_studies(summaries: Iterable[Any]) -> list[ResearchStudy]:
    """Translate trial summaries into ResearchStudy resources, preserving order.

    Parameters:
        summaries: Trial summaries (raw JSON objects or TrialResponse models)

    Returns:
        list[ResearchStudy]: One resource per summary, in the same order

    Raises:
        APIError: If any summary lacks its trial identifier
    """
    studies = [to_research_study(summary) for summary in summaries]
    logger.debug(f"Translated {len(studies)} trial summaries")
    return studies
