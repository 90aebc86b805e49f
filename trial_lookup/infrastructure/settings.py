"""Application Settings and Configuration.

This module provides application-wide settings that combine configuration
from the configuration manager with application-specific defaults.
"""

import os
from typing import Optional

from trial_lookup.infrastructure.config_manager import ConfigManager, LookupConfig

# Application metadata
APP_NAME = "Breast Cancer Trial Lookup"
APP_VERSION = "1.0.0"


class Settings:
    """Application settings loaded from configuration manager and environment.

    This class provides a unified interface for accessing application settings,
    combining values from the configuration manager with environment variables
    and sensible defaults.
    """

    def __init__(self):
        """Initialize settings from environment."""
        self._lookup_config: Optional[LookupConfig] = None
        self._config_manager: Optional[ConfigManager] = None

        self.app_name = os.getenv("TL_APP_NAME", APP_NAME)
        self.app_version = APP_VERSION

        # Logging
        self.log_level = os.getenv("TL_LOG_LEVEL", "INFO")
        self.json_logs = os.getenv("TL_JSON_LOGS", "false").lower() == "true"

    @property
    def config_manager(self) -> ConfigManager:
        """Get configuration manager instance."""
        if self._config_manager is None:
            self._config_manager = ConfigManager.from_environment()
        return self._config_manager

    @property
    def lookup_config(self) -> LookupConfig:
        """Get lookup configuration.

        Configuration is loaded lazily on first access.
        """
        if self._lookup_config is None:
            self._lookup_config = self.config_manager.get_lookup_config()
        return self._lookup_config


# Global settings instance
settings = Settings()
