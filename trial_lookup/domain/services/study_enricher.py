"""Registry Enrichment Service.

Merges authoritative registry data (ClinicalTrials.gov) into the translated
ResearchStudy resources. Enrichment is best-effort: when the registry is
unavailable the translated resources are returned as they are.

Architecture:
    - ``enrich`` drives a RegistryPort and absorbs its failures
    - ``merge_registry_study`` is the field-level merge registry adapters use;
      it only replaces elements the translator defaulted, so re-running it is
      a no-op
"""

import logging
from typing import Optional

from trial_lookup.domain.ports import RegistryPort, Result
from trial_lookup.domain.research_study import (
    CodeableConcept,
    Reference,
    RegistryStudy,
    ResearchStudy,
)
from trial_lookup.domain.services.study_translator import NOT_APPLICABLE_PHASE, PHASE_CODES, convert_phase

logger = logging.getLogger(__name__)

# ClinicalTrials.gov overall status (either API spelling) -> FHIR ResearchStudy.status
REGISTRY_STATUS_MAP = {
    "RECRUITING": "active",
    "ENROLLING_BY_INVITATION": "active",
    "NOT_YET_RECRUITING": "approved",
    "ACTIVE_NOT_RECRUITING": "closed-to-accrual",
    "SUSPENDED": "temporarily-closed-to-accrual",
    "COMPLETED": "completed",
    "TERMINATED": "administratively-completed",
    "WITHDRAWN": "withdrawn",
}

# ClinicalTrials.gov phase enum -> breastcancertrials.org phase label
REGISTRY_PHASE_MAP = {
    "EARLY_PHASE1": "EARLY I",
    "PHASE1": "I",
    "PHASE2": "II",
    "PHASE3": "III",
    "PHASE4": "IV",
}


def convert_registry_status(overall_status: Optional[str]) -> Optional[str]:
    """Map a registry recruitment status to a FHIR status, or None if unknown."""
    if not overall_status:
        return None
    key = overall_status.strip().upper().replace(",", "").replace(" ", "_")
    return REGISTRY_STATUS_MAP.get(key)


def convert_registry_phases(phases: list[str]) -> Optional[CodeableConcept]:
    labels = [REGISTRY_PHASE_MAP[p] for p in phases if p in REGISTRY_PHASE_MAP]
    if not labels:
        return None
    label = "-".join(labels[:2])
    if label not in PHASE_CODES:
        label = labels[0]
    return convert_phase(label)


def _is_placeholder_phase(phase: Optional[CodeableConcept]) -> bool:
    if phase is None or not phase.coding:
        return True
    return all(coding.code == NOT_APPLICABLE_PHASE[0] for coding in phase.coding)


def merge_registry_study(study: ResearchStudy, registry_study: RegistryStudy) -> ResearchStudy:
    """Merge a registry record into a translated ResearchStudy.

    Registry values replace only the elements listed in
    ``study.defaulted_fields``; values supplied by the search endpoint always
    win, even when they happen to equal a placeholder. Merged elements leave
    ``defaulted_fields``, so applying the same registry record twice gives the
    same result as applying it once.

    Parameters:
        study: Translated ResearchStudy
        registry_study: Registry record for the same trial

    Returns:
        ResearchStudy: New resource with registry fields merged in
    """
    defaulted = study.defaulted_fields
    update = {}

    registry_title = registry_study.brief_title or registry_study.official_title
    if registry_title and "title" in defaulted:
        update["title"] = registry_title

    status = convert_registry_status(registry_study.overall_status)
    if status and "status" in defaulted:
        update["status"] = status

    if registry_study.lead_sponsor and "sponsor" in defaulted:
        update["sponsor"] = Reference(display=registry_study.lead_sponsor)

    if registry_study.conditions and "condition" in defaulted:
        update["condition"] = [CodeableConcept(text=text) for text in registry_study.conditions]

    if registry_study.brief_summary and not study.description:
        update["description"] = registry_study.brief_summary

    if "phase" in defaulted or study.phase is None:
        phase = convert_registry_phases(registry_study.phases)
        if phase is not None and not _is_placeholder_phase(phase):
            update["phase"] = phase

    if not update:
        return study
    update["defaulted_fields"] = defaulted.difference(update)
    return study.model_copy(update=update)


async def _try_update(studies: list[ResearchStudy], registry: RegistryPort) -> Result[list[ResearchStudy]]:
    try:
        updated = await registry.update_research_studies(studies)
    except Exception as e:
        return Result.failure_result(e, error_details={"batch_size": len(studies)})

    if not isinstance(updated, list) or len(updated) != len(studies) \
            or not all(isinstance(s, ResearchStudy) for s in updated):
        return Result.failure_result(
            "Registry returned an unexpected batch",
            error_type="RegistryShapeError",
            error_details={"batch_size": len(studies)}
        )
    return Result.success_result(updated)


async def enrich(studies: list[ResearchStudy], registry: RegistryPort) -> list[ResearchStudy]:
    """Enrich translated studies from the registry, degrading to a pass-through.

    Parameters:
        studies: Translated ResearchStudy resources
        registry: Registry capability (``NullRegistry`` when none is configured)

    Returns:
        list[ResearchStudy]: Enriched studies, or ``studies`` unchanged if the
        registry fails. Never raises.
    """
    if not studies:
        return studies

    result = await _try_update(studies, registry)
    if result.is_failure():
        logger.warning(
            f"Registry enrichment skipped ({result.error_type}): {result.error}",
            extra={"extra_fields": result.error_details}
        )
        return studies

    return result.value
