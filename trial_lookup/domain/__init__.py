"""Domain layer for the trial lookup.

This module contains the pipeline's data models, ports and pure services.
All domain models are pure Python with no external dependencies beyond Pydantic.
"""

from .research_study import (
    TrialResponse,
    RegistryStudy,
    ResearchStudy,
    SearchSet,
)
from .code_tables import CodeTable, CodeTableGroup, CodeTables

__all__ = [
    "TrialResponse",
    "RegistryStudy",
    "ResearchStudy",
    "SearchSet",
    "CodeTable",
    "CodeTableGroup",
    "CodeTables",
]
