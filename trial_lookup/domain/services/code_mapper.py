"""Code Mapping Service.

This service rewrites clinical codes inside a patient bundle from their source
vocabularies (RxNorm, staging SNOMED CT, AJCC) into the SNOMED CT codes the
breastcancertrials.org endpoint understands.

Architecture:
    - Pure domain service with no infrastructure dependencies
    - Never mutates its input; returns a deep copy with only the targeted
      codings replaced
    - Bundle entries are classified into a closed set of resource kinds; any
      entry that is not recognised (or is malformed) is passed through
"""

import copy
import logging
from enum import Enum
from typing import Any, Callable, Mapping, MutableMapping

from trial_lookup.domain.code_tables import CodeLookup

logger = logging.getLogger(__name__)


class ResourceKind(str, Enum):
    """Resource kinds the mapper knows how to rewrite."""
    MEDICATION_STATEMENT = "MedicationStatement"
    CONDITION = "Condition"
    OTHER = "Other"

    @classmethod
    def of(cls, entry: Any) -> "ResourceKind":
        """Classify a bundle entry. Anything unrecognised is OTHER."""
        if not isinstance(entry, Mapping):
            return cls.OTHER
        resource = entry.get("resource")
        if not isinstance(resource, Mapping):
            return cls.OTHER
        try:
            return cls(resource.get("resourceType"))
        except ValueError:
            return cls.OTHER


def _map_codings(concept: Any, table: CodeLookup) -> int:
    """Replace every matching coding of a CodeableConcept in place.

    Returns:
        Number of codings replaced
    """
    if not isinstance(concept, MutableMapping):
        return 0
    codings = concept.get("coding")
    if not isinstance(codings, list):
        return 0

    replaced = 0
    for index, coding in enumerate(codings):
        if not isinstance(coding, Mapping):
            continue
        target = table.lookup(coding.get("system"), coding.get("code"))
        if target is not None:
            codings[index] = {"system": table.target_system, "code": target}
            replaced += 1
    return replaced


def _map_medication_statement(resource: MutableMapping, table: CodeLookup) -> int:
    return _map_codings(resource.get("medicationCodeableConcept"), table)


def _map_condition(resource: MutableMapping, table: CodeLookup) -> int:
    stages = resource.get("stage")
    if not isinstance(stages, list):
        return 0
    # Only the stage summary is translated; stage.type is left as-is.
    return sum(
        _map_codings(stage.get("summary"), table)
        for stage in stages
        if isinstance(stage, Mapping)
    )


_MAPPERS: dict[ResourceKind, Callable[[MutableMapping, CodeLookup], int]] = {
    ResourceKind.MEDICATION_STATEMENT: _map_medication_statement,
    ResourceKind.CONDITION: _map_condition,
}


def map_codes(record: Any, resource_kind: ResourceKind | str, table: CodeLookup) -> Any:
    """Translate the codings of one resource kind in a patient bundle.

    Parameters:
        record: FHIR Bundle as a JSON mapping
        resource_kind: Kind of resource whose codings should be translated
        table: Code table to translate with

    Returns:
        A new bundle with the matching codings replaced by
        ``{"system": "http://snomed.info/sct", "code": <mapped>}``.
        The input is left untouched; entries of other kinds, entries lacking
        the coding path and malformed entries are copied unchanged.
    """
    try:
        kind = ResourceKind(resource_kind)
    except ValueError:
        kind = ResourceKind.OTHER

    result = copy.deepcopy(record)
    mapper = _MAPPERS.get(kind)
    if mapper is None or not isinstance(result, MutableMapping):
        return result
    entries = result.get("entry")
    if not isinstance(entries, list):
        return result

    replaced = 0
    for entry in entries:
        if ResourceKind.of(entry) is kind:
            replaced += mapper(entry["resource"], table)

    if replaced:
        logger.debug(f"Mapped {replaced} {kind.value} coding(s) using table '{table.name}'")
    return result
