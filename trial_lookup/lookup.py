"""Trial lookup composition root.

This module wires the pipeline stages into a single asynchronous matcher:

    patient bundle
      -> code mapping (MedicationStatement, then Condition)
      -> trial-search query (cache checked)
      -> ResearchStudy translation
      -> registry enrichment
      -> searchset

Architecture:
    - Configuration problems are raised as ConfigurationError while the
      matcher is built, never while a request is served
    - Optional collaborators (registry, cache) are replaced by their null
      implementations here, so the pipeline never checks for their presence
"""

import logging
from typing import Any, Mapping, Optional, Union

import httpx
from pydantic import ValidationError as PydanticValidationError

from trial_lookup.adapters.cache import create_cache
from trial_lookup.adapters.registry import ClinicalTrialsGovRegistry
from trial_lookup.adapters.search_client import send_query, serialize_query
from trial_lookup.domain.code_tables import CodeTables
from trial_lookup.domain.ports import (
    CachePort,
    ConfigurationError,
    NullCache,
    NullRegistry,
    RegistryPort,
)
from trial_lookup.domain.research_study import SearchSet
from trial_lookup.domain.services import ResourceKind, enrich, map_codes, to_research_studies
from trial_lookup.infrastructure.code_table_loader import CodeTableLoader
from trial_lookup.infrastructure.config_manager import LookupConfig

logger = logging.getLogger(__name__)

MISSING_ENDPOINT_MESSAGE = "Missing API_ENDPOINT in configuration"


class _PreloadedTables:
    """Adapts an already built CodeTables value to the loader interface."""

    loaded = True

    def __init__(self, tables: CodeTables):
        self._tables = tables

    async def get(self) -> CodeTables:
        return self._tables


def _resolve_config(config: Union[LookupConfig, Mapping[str, Any], None]) -> LookupConfig:
    if isinstance(config, LookupConfig):
        lookup_config = config
    elif isinstance(config, Mapping):
        try:
            lookup_config = LookupConfig.model_validate(dict(config))
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e
    elif config is None:
        lookup_config = LookupConfig()
    else:
        raise ConfigurationError(f"Configuration must be a mapping, got {type(config).__name__}")

    if not lookup_config.endpoint:
        raise ConfigurationError(MISSING_ENDPOINT_MESSAGE, field="endpoint")
    return lookup_config


class ClinicalTrialMatcher:
    """Callable that runs the lookup pipeline for one patient bundle.

    Built by ``create_clinical_trial_lookup``; instances hold only read-only
    collaborators, so one matcher can serve overlapping requests.
    """

    def __init__(
        self,
        endpoint: str,
        registry: RegistryPort,
        cache: CachePort,
        code_tables: Union[CodeTableLoader, _PreloadedTables],
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self.endpoint = endpoint
        self.registry = registry
        self.cache = cache
        self.code_tables = code_tables
        self.http_client = http_client
        self.timeout = timeout

    @property
    def code_tables_loaded(self) -> bool:
        return self.code_tables.loaded

    async def __call__(self, record: Mapping[str, Any], options: Optional[Mapping[str, Any]] = None) -> SearchSet:
        """Find trials matching a patient bundle.

        Parameters:
            record: FHIR Bundle describing the patient
            options: Per-request search options (e.g. zipCode, travelRadius)

        Returns:
            SearchSet: Matching trials as ResearchStudy resources

        Raises:
            APIError: If the trial-search query fails
            CodeTableError: If the code tables cannot be loaded
        """
        tables = await self.code_tables.get()

        mapped = map_codes(record, ResourceKind.MEDICATION_STATEMENT, tables.medication)
        mapped = map_codes(mapped, ResourceKind.CONDITION, tables.staging)

        body = serialize_query(mapped, dict(options) if options else None)
        summaries = await send_query(
            self.endpoint, body, self.cache, client=self.http_client, timeout=self.timeout
        )

        studies = to_research_studies(summaries)
        studies = await enrich(studies, self.registry)

        logger.info(f"Trial lookup matched {len(studies)} trial(s)", extra={"trial_count": len(studies)})
        return SearchSet.from_studies(studies)


def create_clinical_trial_lookup(
    config: Union[LookupConfig, Mapping[str, Any], None],
    registry: Optional[RegistryPort] = None,
    *,
    cache: Optional[CachePort] = None,
    code_tables: Union[CodeTables, CodeTableLoader, None] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> ClinicalTrialMatcher:
    """Create the matcher function for the configured endpoint.

    Parameters:
        config: LookupConfig or mapping with an ``endpoint``/``api_endpoint`` key
        registry: Registry used for enrichment (enrichment skipped when None)
        cache: Query cache (no caching when None)
        code_tables: Prebuilt CodeTables, or a loader (packaged tables when None)
        http_client: Shared HTTP client for the trial-search endpoint

    Returns:
        ClinicalTrialMatcher: ``await matcher(bundle, options)`` returns a SearchSet

    Raises:
        ConfigurationError: If the endpoint is missing or the configuration is invalid
    """
    lookup_config = _resolve_config(config)

    if isinstance(code_tables, CodeTables):
        tables = _PreloadedTables(code_tables)
    elif code_tables is None:
        tables = CodeTableLoader(lookup_config.code_table_dir)
    else:
        tables = code_tables

    return ClinicalTrialMatcher(
        endpoint=lookup_config.endpoint,
        registry=registry if registry is not None else NullRegistry(),
        cache=cache if cache is not None else NullCache(),
        code_tables=tables,
        http_client=http_client,
        timeout=lookup_config.request_timeout,
    )


def build_lookup(
    config: Union[LookupConfig, Mapping[str, Any], None],
    http_client: Optional[httpx.AsyncClient] = None,
) -> ClinicalTrialMatcher:
    """Create a matcher with the registry and cache the configuration asks for.

    Raises:
        ConfigurationError: If the endpoint is missing or the configuration is invalid
    """
    lookup_config = _resolve_config(config)

    registry = None
    if lookup_config.registry_enabled:
        registry = ClinicalTrialsGovRegistry(
            base_url=lookup_config.registry_url,
            timeout=lookup_config.request_timeout,
        )
        logger.info(f"Registry enrichment enabled ({lookup_config.registry_url})")

    cache = create_cache(
        lookup_config.cache_enabled,
        ttl=lookup_config.cache_ttl,
        max_entries=lookup_config.cache_max_entries,
    )
    return create_clinical_trial_lookup(lookup_config, registry, cache=cache, http_client=http_client)
