"""Adapters layer for the trial lookup.

This module contains adapters that interface with external systems: the
breastcancertrials.org search endpoint, the ClinicalTrials.gov registry and
the query cache. Adapters implement Port interfaces defined in the domain layer.
"""
