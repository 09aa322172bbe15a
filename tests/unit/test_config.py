"""
Tests for CLI Configuration Management
"""

import json
import os

import pytest
import yaml

from cli.config import DEFAULT_CONFIG, ConfigurationManager
from cli.output import OutputFormatter
from transaction.settings import BuilderSettings


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Remove BWT_* variables inherited from the developer's shell."""
    for key in list(os.environ):
        if key.startswith("BWT_"):
            monkeypatch.delenv(key)


@pytest.fixture
def yaml_config(tmp_path):
    path = tmp_path / "bwt.yml"
    path.write_text(yaml.safe_dump({
        "builder": {"sat_per_kb": 250, "default_description": "Shop order"},
        "cli": {"output_format": "json"},
    }))
    return str(path)


class TestConfigurationManager:
    """Test hierarchical configuration loading."""

    def test_defaults(self, tmp_path):
        manager = ConfigurationManager(config_file=str(tmp_path / "missing.yml"))
        assert manager.get("builder.sat_per_kb") == 100
        assert manager.get("cli.output_format") == "table"
        assert manager.get_sources() == ["defaults"]

    def test_yaml_file(self, yaml_config):
        manager = ConfigurationManager(config_file=yaml_config)
        assert manager.get("builder.sat_per_kb") == 250
        assert manager.get("builder.change_description") == "Change"
        assert manager.get_sources() == ["defaults", f"file:{yaml_config}"]

    def test_json_file(self, tmp_path):
        path = tmp_path / "bwt.json"
        path.write_text(json.dumps({"builder": {"input_description": "Coins"}}))
        manager = ConfigurationManager(config_file=str(path))
        assert manager.get("builder.input_description") == "Coins"

    def test_invalid_file_is_ignored(self, tmp_path):
        path = tmp_path / "bwt.yml"
        path.write_text("- just\n- a list\n")
        manager = ConfigurationManager(config_file=str(path))
        assert manager.get("builder.sat_per_kb") == 100

    def test_profile(self, tmp_path):
        manager = ConfigurationManager(config_file=str(tmp_path / "none.yml"), profile="priority")
        assert manager.get("builder.sat_per_kb") == 500
        assert "profile:priority" in manager.get_sources()

    def test_unknown_profile(self, tmp_path):
        manager = ConfigurationManager(config_file=str(tmp_path / "none.yml"), profile="turbo")
        assert manager.get("builder.sat_per_kb") == 100

    def test_file_overrides_profile(self, yaml_config):
        manager = ConfigurationManager(config_file=yaml_config, profile="economy")
        assert manager.get("builder.sat_per_kb") == 250

    def test_environment_overrides_file(self, yaml_config, monkeypatch):
        monkeypatch.setenv("BWT_BUILDER_SAT_PER_KB", "75")
        monkeypatch.setenv("BWT_CLI_VERBOSE", "1")
        monkeypatch.setenv("BWT_BUILDER_CHANGE_DESCRIPTION", "Leftover")
        manager = ConfigurationManager(config_file=yaml_config)

        assert manager.get("builder.sat_per_kb") == 75
        assert manager.get("cli.verbose") == 1
        assert manager.get("builder.change_description") == "Leftover"
        assert manager.get_sources()[-1] == "environment"

    @pytest.mark.parametrize("raw, parsed", [
        ("true", True), ("no", False), ("12.5", 12.5), ('["a"]', ["a"]), ("plain", "plain"),
    ])
    def test_parse_env_value(self, raw, parsed):
        assert ConfigurationManager()._parse_env_value(raw) == parsed

    def test_get_default_and_set(self, tmp_path):
        manager = ConfigurationManager(config_file=str(tmp_path / "none.yml"))
        assert manager.get("builder.missing", "fallback") == "fallback"

        manager.set("builder.sat_per_kb", 20)
        manager.set("extra.nested.value", 1)
        assert manager.get("builder.sat_per_kb") == 20
        assert manager.get("extra.nested.value") == 1
        assert DEFAULT_CONFIG["builder"]["sat_per_kb"] == 100

    def test_reset(self, tmp_path):
        manager = ConfigurationManager(config_file=str(tmp_path / "none.yml"))
        manager.set("builder.sat_per_kb", 20)
        manager.reset()
        assert manager.get("builder.sat_per_kb") == 100

    def test_validate(self, tmp_path):
        manager = ConfigurationManager(config_file=str(tmp_path / "none.yml"))
        assert manager.validate() == []

        manager.set("builder.sat_per_kb", -1)
        manager.set("builder.input_description", "")
        manager.set("cli.output_format", "xml")
        manager.set("cli.verbose", True)
        errors = manager.validate()

        assert len(errors) == 4
        assert "builder.sat_per_kb must be a non-negative number, got -1" in errors
        assert "Invalid output format: xml" in errors

    def test_builder_settings(self, yaml_config):
        settings = ConfigurationManager(config_file=yaml_config).builder_settings()
        assert isinstance(settings, BuilderSettings)
        assert settings.sat_per_kb == 250
        assert settings.default_description == "Shop order"
        assert settings.output_description == "Transaction output"


class TestOutputFormatter:
    """Test result rendering."""

    def setup_method(self):
        self.data = {"type": "P2PKH", "size": 25, "inscription": {"content_type": "text/plain"}}

    def test_json(self):
        assert json.loads(OutputFormatter("json").format(self.data)) == self.data

    def test_yaml(self):
        assert yaml.safe_load(OutputFormatter("yaml").format(self.data)) == self.data

    def test_table_flattens(self):
        lines = OutputFormatter("table").format(self.data).splitlines()
        assert lines[0].split() == ["type", "P2PKH"]
        assert lines[2].split() == ["inscription.content_type", "text/plain"]

    def test_table_lists(self):
        assert OutputFormatter().format({"fields": ["a", "b"]}).split() == ["fields", "a,", "b"]
