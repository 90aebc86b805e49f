"""Tests for the configuration manager."""

import json

import pytest
from pydantic import ValidationError

from trial_lookup.infrastructure.config_manager import ConfigManager, LookupConfig

TL_VARIABLES = (
    "TL_API_ENDPOINT",
    "TL_REQUEST_TIMEOUT",
    "TL_CACHE_ENABLED",
    "TL_CACHE_TTL",
    "TL_CACHE_MAX_ENTRIES",
    "TL_REGISTRY_ENABLED",
    "TL_REGISTRY_URL",
    "TL_CODE_TABLE_DIR",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in TL_VARIABLES:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestLookupConfig:
    """Test the lookup configuration model."""

    def test_defaults(self):
        config = LookupConfig()

        assert config.endpoint is None
        assert config.request_timeout == 30.0
        assert config.cache_enabled is True
        assert config.registry_enabled is True
        assert config.registry_url == "https://clinicaltrials.gov/api/v2"

    def test_api_endpoint_alias(self):
        assert LookupConfig(api_endpoint="http://www.example.com/").endpoint == "http://www.example.com/"
        assert LookupConfig(endpoint="https://www.example.com/").endpoint == "https://www.example.com/"

    def test_blank_endpoint_is_missing(self):
        assert LookupConfig(api_endpoint="  ").endpoint is None

    def test_invalid_endpoint(self):
        with pytest.raises(ValidationError):
            LookupConfig(api_endpoint="ftp://www.example.com/")

    def test_invalid_timeout(self):
        with pytest.raises(ValidationError):
            LookupConfig(request_timeout=0)

    def test_code_table_dir_must_exist(self, tmp_path):
        assert LookupConfig(code_table_dir=str(tmp_path)).code_table_dir == str(tmp_path)
        with pytest.raises(ValidationError):
            LookupConfig(code_table_dir=str(tmp_path / "missing"))


class TestConfigManager:
    """Test suite for ConfigManager."""

    def test_from_environment(self, clean_env):
        clean_env.setenv("TL_API_ENDPOINT", "http://www.example.com/endpoint")
        clean_env.setenv("TL_REQUEST_TIMEOUT", "5")
        clean_env.setenv("TL_CACHE_ENABLED", "false")
        clean_env.setenv("TL_REGISTRY_ENABLED", "no")

        config = ConfigManager.from_environment().get_lookup_config()

        assert config.endpoint == "http://www.example.com/endpoint"
        assert config.request_timeout == 5.0
        assert config.cache_enabled is False
        assert config.registry_enabled is False
        assert config.cache_ttl == 3600.0

    def test_from_environment_without_variables(self, clean_env):
        manager = ConfigManager.from_environment()

        assert manager.get("lookup.api_endpoint") is None
        assert manager.get_lookup_config().endpoint is None

    def test_from_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"lookup": {"api_endpoint": "http://www.example.com/", "cache_ttl": 60}}))

        manager = ConfigManager.from_file(str(path))

        assert manager.get("lookup.api_endpoint") == "http://www.example.com/"
        assert manager.get_lookup_config().cache_ttl == 60.0

    def test_from_file_top_level(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"api_endpoint": "http://www.example.com/"}))

        manager = ConfigManager.from_file(str(path))

        assert manager.get_lookup_config().endpoint == "http://www.example.com/"

    def test_from_file_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ConfigManager.from_file(str(tmp_path / "missing.json"))

    def test_from_file_invalid_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json")
        with pytest.raises(ValueError):
            ConfigManager.from_file(str(path))

    def test_get_default(self):
        manager = ConfigManager({"lookup": {}})
        assert manager.get("lookup.cache_ttl", 10) == 10
        assert manager.get("missing.key", "fallback") == "fallback"
