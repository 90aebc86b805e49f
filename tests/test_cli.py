"""Tests for the command line interface."""

import json

import pytest
import typer
from typer.testing import CliRunner

from trial_lookup.cli import _parse_options, app

runner = CliRunner()


class TestParseOptions:
    def test_key_value_pairs(self):
        assert _parse_options(["zipCode=01780", " travelRadius = 25 "]) == {
            "zipCode": "01780",
            "travelRadius": "25",
        }

    def test_rejects_malformed_option(self):
        with pytest.raises(typer.BadParameter):
            _parse_options(["zipCode"])


class TestQueryCommand:
    """Test the query command's error handling."""

    def test_invalid_bundle_file(self, tmp_path):
        path = tmp_path / "bundle.json"
        path.write_text("{not json")

        result = runner.invoke(app, ["query", str(path)])

        assert result.exit_code == 1

    def test_missing_endpoint(self, tmp_path, monkeypatch):
        monkeypatch.delenv("TL_API_ENDPOINT", raising=False)
        bundle = tmp_path / "bundle.json"
        bundle.write_text(json.dumps({"resourceType": "Bundle", "type": "collection", "entry": []}))
        config = tmp_path / "config.json"
        config.write_text(json.dumps({"lookup": {"registry_enabled": False}}))

        result = runner.invoke(app, ["query", str(bundle), "--config", str(config)])

        assert result.exit_code == 1
        assert "Missing API_ENDPOINT" in result.output
