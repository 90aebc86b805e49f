"""Domain Services.

This package contains the pure pipeline stages of the trial lookup:
code mapping, response translation and registry enrichment.
"""

from trial_lookup.domain.services.code_mapper import ResourceKind, map_codes
from trial_lookup.domain.services.study_translator import to_research_studies
from trial_lookup.domain.services.study_enricher import enrich, merge_registry_study

__all__ = ['ResourceKind', 'map_codes', 'to_research_studies', 'enrich', 'merge_registry_study']
