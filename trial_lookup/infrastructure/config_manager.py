"""Configuration Manager for the trial lookup.

This module loads and validates the lookup configuration: the trial-search
endpoint, transport timeout, cache and registry settings, and the location of
the code-mapping tables.

Architecture:
    - Infrastructure layer isolated from domain
    - Supports environment variables (with an optional project .env file) and JSON files
    - Type-safe configuration using Pydantic models
    - A missing endpoint is not a validation error here: the lookup factory
      reports it as a ConfigurationError so it surfaces the same way for every
      configuration source
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_URL = "https://clinicaltrials.gov/api/v2"


class LookupConfig(BaseModel):
    """Lookup configuration model.

    Parameters:
        endpoint: breastcancertrials.org trial-search endpoint URL (``api_endpoint`` also accepted)
        request_timeout: HTTP timeout in seconds for outbound requests
        cache_enabled: Whether query results are cached in memory
        cache_ttl: Seconds a cached query result stays valid
        cache_max_entries: Maximum number of cached query results
        registry_enabled: Whether results are enriched from ClinicalTrials.gov
        registry_url: ClinicalTrials.gov API v2 base URL
        code_table_dir: Directory holding the code-mapping CSV files (packaged tables if unset)
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    endpoint: Optional[str] = Field(None, alias="api_endpoint", description="Trial-search endpoint URL")
    request_timeout: float = Field(default=30.0, gt=0, description="HTTP timeout in seconds")
    cache_enabled: bool = Field(default=True, description="Cache query results in memory")
    cache_ttl: float = Field(default=3600.0, gt=0, description="Cache entry lifetime in seconds")
    cache_max_entries: int = Field(default=256, gt=0, description="Maximum cached query results")
    registry_enabled: bool = Field(default=True, description="Enrich results from ClinicalTrials.gov")
    registry_url: str = Field(default=DEFAULT_REGISTRY_URL, description="ClinicalTrials.gov API v2 base URL")
    code_table_dir: Optional[str] = Field(None, description="Directory of code-mapping CSV files")

    @field_validator("endpoint", mode="before")
    @classmethod
    def validate_endpoint(cls, v: Any) -> Optional[str]:
        """Blank endpoints count as missing; present ones must be http(s) URLs."""
        if v is None:
            return None
        if not isinstance(v, str):
            raise ValueError("endpoint must be a string")
        v = v.strip()
        if not v:
            return None
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"endpoint must be an http(s) URL. Got: {v}")
        return v

    @field_validator("code_table_dir")
    @classmethod
    def validate_code_table_dir(cls, v: Optional[str]) -> Optional[str]:
        """Validate the code table directory exists (if provided)."""
        if v is None:
            return v
        if not Path(v).is_dir():
            raise ValueError(f"Code table directory does not exist: {v}")
        return v


def _env_bool(name: str) -> Optional[bool]:
    value = os.getenv(name)
    if value is None:
        return None
    return value.strip().lower() in ("1", "true", "yes", "on")


class ConfigManager:
    """Configuration manager for the lookup settings.

    Example Usage:
        ```python
        # Load from environment variables
        config = ConfigManager.from_environment()
        lookup_config = config.get_lookup_config()

        # Load from file
        config = ConfigManager.from_file("config.json")
        lookup_config = config.get_lookup_config()
        ```
    """

    def __init__(self, config_data: Dict[str, Any]):
        """Initialize configuration manager.

        Parameters:
            config_data: Configuration dictionary
        """
        self._config_data = config_data
        self._lookup_config: Optional[LookupConfig] = None

    @classmethod
    def from_environment(cls) -> 'ConfigManager':
        """Load configuration from environment variables.

        Environment Variables:
            - TL_API_ENDPOINT: Trial-search endpoint URL
            - TL_REQUEST_TIMEOUT: HTTP timeout in seconds
            - TL_CACHE_ENABLED: Enable the query cache (true/false)
            - TL_CACHE_TTL: Cache entry lifetime in seconds
            - TL_CACHE_MAX_ENTRIES: Maximum cached query results
            - TL_REGISTRY_ENABLED: Enable ClinicalTrials.gov enrichment (true/false)
            - TL_REGISTRY_URL: ClinicalTrials.gov API v2 base URL
            - TL_CODE_TABLE_DIR: Directory of code-mapping CSV files

        A ``.env`` file in the project root is loaded first if present.

        Returns:
            ConfigManager instance
        """
        env_path = Path(__file__).parent.parent.parent / ".env"
        if env_path.exists():
            load_dotenv(env_path)
            logger.debug(f"Loaded environment variables from {env_path}")

        lookup = {
            "api_endpoint": os.getenv("TL_API_ENDPOINT"),
            "request_timeout": os.getenv("TL_REQUEST_TIMEOUT"),
            "cache_enabled": _env_bool("TL_CACHE_ENABLED"),
            "cache_ttl": os.getenv("TL_CACHE_TTL"),
            "cache_max_entries": os.getenv("TL_CACHE_MAX_ENTRIES"),
            "registry_enabled": _env_bool("TL_REGISTRY_ENABLED"),
            "registry_url": os.getenv("TL_REGISTRY_URL"),
            "code_table_dir": os.getenv("TL_CODE_TABLE_DIR"),
        }
        # Unset variables fall back to the model defaults
        config_data = {"lookup": {k: v for k, v in lookup.items() if v is not None}}

        return cls(config_data)

    @classmethod
    def from_file(cls, config_path: str) -> 'ConfigManager':
        """Load configuration from a JSON file.

        The file may hold the lookup settings at the top level or under a
        ``"lookup"`` key.

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config file is invalid
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        try:
            with open(config_file, 'r') as f:
                config_data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file: {str(e)}")

        if not isinstance(config_data, dict):
            raise ValueError("Configuration file must contain a JSON object")
        if "lookup" not in config_data:
            config_data = {"lookup": config_data}
        return cls(config_data)

    def get_lookup_config(self) -> LookupConfig:
        """Get the validated lookup configuration.

        Raises:
            pydantic.ValidationError: If a configured value is invalid
        """
        if self._lookup_config is None:
            self._lookup_config = LookupConfig(**self._config_data.get("lookup", {}))
        return self._lookup_config

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by key.

        Parameters:
            key: Configuration key (supports dot notation, e.g., "lookup.api_endpoint")
            default: Default value if key not found
        """
        keys = key.split(".")
        value = self._config_data

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default

        return value if value is not None else default
