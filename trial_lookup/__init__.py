"""Breast-cancer clinical trial lookup.

Matches a patient's FHIR bundle against the breastcancertrials.org search
endpoint and returns the results as FHIR ResearchStudy resources, enriched
from ClinicalTrials.gov.
"""

from trial_lookup.domain.ports import APIError, ConfigurationError
from trial_lookup.lookup import create_clinical_trial_lookup

__version__ = "1.0.0"

__all__ = ["APIError", "ConfigurationError", "create_clinical_trial_lookup"]
