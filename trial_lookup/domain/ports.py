"""Domain Ports - Abstract Contracts for Trial Lookup Collaborators.

This module defines the Port interfaces (abstract contracts) that Adapters must implement,
together with the error taxonomy shared by every stage of the lookup pipeline.
Following Hexagonal Architecture, the Domain Core defines what it needs, not how it's provided.

Architecture:
    - Pure abstract interfaces with zero infrastructure dependencies
    - Adapters (in-memory cache, ClinicalTrials.gov registry, etc.) implement these ports
    - Null-object implementations make optional collaborators explicit, so the
      orchestrator never branches on whether a collaborator is present
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, List, Optional, TypeVar, Union, TYPE_CHECKING

if TYPE_CHECKING:
    from trial_lookup.domain.research_study import ResearchStudy

# Type variable for Result generic
T = TypeVar('T')


# ============================================================================
# Result Type for Success/Failure Communication
# ============================================================================

@dataclass(frozen=True)
class Result(Generic[T]):
    """Result type for communicating success or failure without exceptions.

    Used where a failure must be observed but never propagated, such as the
    best-effort registry enrichment step.

    Attributes:
        success: True if the operation succeeded, False otherwise
        value: The successful result value (only present if success=True)
        error: Error information (only present if success=False)
        error_type: Type of error (APIError, TypeError, etc.)
        error_details: Additional error context
    """

    success: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    error_details: Optional[dict] = None

    @classmethod
    def success_result(cls, value: T) -> 'Result[T]':
        """Create a successful result."""
        return cls(success=True, value=value)

    @classmethod
    def failure_result(
        cls,
        error: Union[str, Exception],
        error_type: Optional[str] = None,
        error_details: Optional[dict] = None
    ) -> 'Result[T]':
        """Create a failure result.

        Parameters:
            error: Error message or exception
            error_type: Type of error (defaults to the exception class name)
            error_details: Additional context

        Returns:
            Result: Failure result with error information
        """
        error_message = str(error) if isinstance(error, Exception) else error
        error_type_name = error_type or (type(error).__name__ if isinstance(error, Exception) else "UnknownError")

        return cls(
            success=False,
            value=None,
            error=error_message,
            error_type=error_type_name,
            error_details=error_details or {}
        )

    def is_failure(self) -> bool:
        """Check if result is a failure."""
        return not self.success


# ============================================================================
# Custom Exception Hierarchy
# ============================================================================

class TrialLookupError(Exception):
    """Base exception for all trial-lookup errors.

    Every subclass sets ``error_type`` so callers can branch on the kind of
    failure without matching on message text.
    """

    error_type: str = "lookup"


class ConfigurationError(TrialLookupError):
    """Raised when required setup is missing or invalid.

    Always raised while the lookup is being constructed, never while a
    request is being served.

    Attributes:
        field: Name of the offending configuration field, if known
    """

    error_type = "configuration"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class APIError(TrialLookupError):
    """Raised when the remote trial-search query fails.

    The ``error_type`` discriminant is one of:
        - ``connection``: the HTTP exchange could not complete
        - ``status``: the endpoint answered with a non-success status
        - ``parse``: the response body is not JSON
        - ``shape``: the JSON is not a list of trial summaries
        - ``invalid_trial``: a trial summary lacks its identifier

    Attributes:
        status_code: HTTP status code, for ``status`` errors
        body: Response text, for ``status`` and ``parse`` errors
    """

    error_type = "api"

    def __init__(
        self,
        message: str,
        error_type: str = "api",
        status_code: Optional[int] = None,
        body: Optional[str] = None
    ):
        super().__init__(message)
        self.error_type = error_type
        self.status_code = status_code
        self.body = body


class CodeTableError(TrialLookupError):
    """Raised when a code-mapping table cannot be loaded.

    Attributes:
        source: Path of the table that failed to load
    """

    error_type = "code_table"

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


# ============================================================================
# Cache Port
# ============================================================================

class CachePort(ABC):
    """Abstract contract for the query-result cache.

    The query client calls ``get`` and ``set`` with the serialized request
    body; the health endpoint reports ``get_statistics``. Key derivation and eviction policy belong to the adapter.
    Implementations must be safe for overlapping requests.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Return the cached value for ``key``, or None on a miss."""
        pass

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``."""
        pass

    def get_statistics(self) -> dict:
        """Describe the cache for health reporting."""
        return {"enabled": True}


class NullCache(CachePort):
    """Cache that never stores anything. Every ``get`` is a miss."""

    async def get(self, key: str) -> Optional[Any]:
        return None

    async def set(self, key: str, value: Any) -> None:
        return None

    def get_statistics(self) -> dict:
        return {"enabled": False}


# ============================================================================
# Registry Port
# ============================================================================

class RegistryPort(ABC):
    """Abstract contract for the authoritative trial registry.

    The registry enriches a batch of translated ResearchStudy resources,
    looking each one up by its registry identifier and merging the registry's
    fields into it. Enrichment is best-effort and must accept an empty batch.

    Example Usage:
        ```python
        registry = ClinicalTrialsGovRegistry()
        studies = await registry.update_research_studies(studies)
        ```
    """

    @abstractmethod
    async def update_research_studies(
        self, studies: List['ResearchStudy']
    ) -> List['ResearchStudy']:
        """Return the batch with registry data merged into each study.

        Parameters:
            studies: Translated ResearchStudy resources

        Returns:
            List[ResearchStudy]: Same length and order as ``studies``

        Raises:
            Any transport or parsing error. Callers treat failures as a
            signal to skip enrichment, not to fail the request.
        """
        pass


class NullRegistry(RegistryPort):
    """Registry used when no registry client is configured."""

    async def update_research_studies(
        self, studies: List['ResearchStudy']
    ) -> List['ResearchStudy']:
        return studies
