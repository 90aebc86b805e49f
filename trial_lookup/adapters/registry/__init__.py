"""Registry adapters for the trial lookup.

This module contains adapters that implement the RegistryPort interface
for enriching ResearchStudy resources from an authoritative trial registry.
"""

from trial_lookup.adapters.registry.clinicaltrials_gov import ClinicalTrialsGovRegistry

__all__ = ["ClinicalTrialsGovRegistry"]
