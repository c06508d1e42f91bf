"""
Tests for intunebatch.config module.

Tests configuration loading including:
- Run settings defaults and deep merging
- Path resolution relative to the settings file
- Override document parsing (YAML and JSON)
- Degrading to no overrides on malformed documents
"""

from __future__ import annotations

import json

import pytest

from intunebatch.config import (
    DEFAULT_SETTINGS,
    CommandOverride,
    OverrideConfig,
    load_overrides,
    load_settings,
)
from intunebatch.config.overrides import parse_overrides
from intunebatch.exceptions import ConfigError

# All tests in this file are unit tests (fast, mocked)
pytestmark = pytest.mark.unit


class TestLoadSettings:
    """Tests for run settings loading."""

    def test_defaults_without_file(self):
        """Test that no settings file gives the built-in defaults."""
        settings = load_settings(None)

        assert settings == DEFAULT_SETTINGS
        assert settings["install_test"]["enabled"] is False

    def test_defaults_are_copied(self):
        """Test that callers can't mutate the module defaults."""
        settings = load_settings(None)
        settings["packaging"]["timeout"] = 1

        assert DEFAULT_SETTINGS["packaging"]["timeout"] == 300

    def test_deep_merge(self, create_yaml_file):
        """Test that nested keys merge instead of replacing whole sections."""
        path = create_yaml_file("settings.yaml", {"packaging": {"timeout": 900}})

        settings = load_settings(path)

        assert settings["packaging"]["timeout"] == 900
        assert settings["packaging"]["tool_cache"] == "cache/tools"
        assert settings["install_test"]["timeout"] == 600

    def test_relative_paths_resolved_against_file(self, tmp_test_dir, create_yaml_file):
        """Test that relative paths are anchored at the settings file."""
        path = create_yaml_file(
            "conf/settings.yaml",
            {
                "packaging": {"tool_path": "tools/IntuneWinAppUtil.exe"},
                "overrides": "overrides.yaml",
                "report": {"path": "reports/out.csv"},
            },
        )

        settings = load_settings(path)

        conf_dir = (tmp_test_dir / "conf").resolve()
        assert settings["packaging"]["tool_path"] == str(
            conf_dir / "tools" / "IntuneWinAppUtil.exe"
        )
        assert settings["overrides"] == str(conf_dir / "overrides.yaml")
        assert settings["report"]["path"] == str(conf_dir / "reports" / "out.csv")

    def test_missing_file_raises(self, tmp_test_dir):
        """Test error for a settings file that doesn't exist."""
        with pytest.raises(ConfigError, match="not found"):
            load_settings(tmp_test_dir / "missing.yaml")

    def test_invalid_yaml_raises(self, tmp_test_dir):
        """Test error for unparsable YAML."""
        path = tmp_test_dir / "bad.yaml"
        path.write_text("packaging: [unclosed\n")

        with pytest.raises(ConfigError, match="Error parsing YAML"):
            load_settings(path)

    def test_empty_file_raises(self, tmp_test_dir):
        """Test error for an empty settings file."""
        path = tmp_test_dir / "empty.yaml"
        path.write_text("")

        with pytest.raises(ConfigError, match="empty"):
            load_settings(path)

    def test_non_mapping_raises(self, create_yaml_file):
        """Test error when the top level is a list."""
        path = create_yaml_file("list.yaml", ["a", "b"])

        with pytest.raises(ConfigError, match="must be a mapping"):
            load_settings(path)


class TestParseOverrides:
    """Tests for override document parsing."""

    def test_camel_case_keys(self):
        """Test the installCommand/uninstallCommand document format."""
        overrides = parse_overrides(
            {
                "Chrome": {"installCommand": "Chrome.msi /qn CUSTOM=1"},
                "7z2301-x64": {
                    "installCommand": "7z2301-x64.exe /S",
                    "uninstallCommand": '"C:\\Program Files\\7-Zip\\Uninstall.exe" /S',
                },
            }
        )

        assert len(overrides) == 2
        assert overrides.get("Chrome") == CommandOverride(
            install_command="Chrome.msi /qn CUSTOM=1"
        )
        assert overrides.uninstall_command("7z2301-x64").endswith("Uninstall.exe\" /S")

    def test_snake_case_aliases(self):
        """Test that snake_case keys are accepted."""
        overrides = parse_overrides({"App": {"install_command": "app.exe /quiet"}})

        assert overrides.install_command("App") == "app.exe /quiet"

    def test_lookup_case_insensitive(self):
        """Test that app names match regardless of case."""
        overrides = parse_overrides({"CHROME": {"installCommand": "x"}})

        assert overrides.install_command("chrome") == "x"

    def test_blank_commands_are_absent(self):
        """Test that empty or whitespace commands don't count as overrides."""
        overrides = parse_overrides({"App": {"installCommand": "  ", "uninstallCommand": ""}})

        assert overrides.install_command("App") is None
        assert overrides.uninstall_command("App") is None

    def test_non_mapping_entry_skipped(self):
        """Test that a bad entry doesn't discard the good ones."""
        overrides = parse_overrides({"Bad": "just a string", "Good": {"installCommand": "g"}})

        assert overrides.get("Bad") is None
        assert overrides.install_command("Good") == "g"

    def test_none_is_empty(self):
        """Test that an empty document means no overrides."""
        assert len(parse_overrides(None)) == 0

    def test_non_mapping_document_raises(self):
        """Test that a list document is rejected."""
        with pytest.raises(ValueError, match="must be a mapping"):
            parse_overrides(["Chrome"])

    def test_config_is_immutable(self):
        """Test that the override mapping can't be changed during a run."""
        overrides = parse_overrides({"App": {"installCommand": "a"}})

        with pytest.raises(TypeError):
            overrides.entries["other"] = CommandOverride()


class TestLoadOverrides:
    """Tests for override file loading."""

    def test_none_path(self):
        """Test that no path means no overrides."""
        assert load_overrides(None) == OverrideConfig()

    def test_yaml_file(self, create_yaml_file):
        """Test loading a YAML override document."""
        path = create_yaml_file(
            "overrides.yaml", {"Chrome": {"installCommand": "Chrome.msi /qn CUSTOM=1"}}
        )

        overrides = load_overrides(path)

        assert overrides.install_command("Chrome") == "Chrome.msi /qn CUSTOM=1"

    def test_json_file_with_bom(self, tmp_test_dir):
        """Test loading a JSON document saved with a UTF-8 BOM."""
        path = tmp_test_dir / "overrides.json"
        data = {"Chrome": {"uninstallCommand": "remove-chrome"}}
        path.write_text(json.dumps(data), encoding="utf-8-sig")

        overrides = load_overrides(path)

        assert overrides.uninstall_command("Chrome") == "remove-chrome"

    def test_tab_indented_json(self, tmp_test_dir):
        """Test a JSON document indented with tabs, which YAML rejects."""
        path = tmp_test_dir / "overrides.json"
        data = {"7z2301-x64": {"installCommand": "7z2301-x64.exe /S"}}
        path.write_text(json.dumps(data, indent="\t"), encoding="utf-8")

        overrides = load_overrides(path)

        assert overrides.install_command("7z2301-x64") == "7z2301-x64.exe /S"

    def test_malformed_json_degrades(self, tmp_test_dir):
        """Test that invalid JSON is not fatal."""
        path = tmp_test_dir / "overrides.json"
        path.write_text('{"Chrome": ')

        assert len(load_overrides(path)) == 0

    def test_missing_file_degrades(self, tmp_test_dir):
        """Test that a missing document is not fatal."""
        assert len(load_overrides(tmp_test_dir / "missing.yaml")) == 0

    def test_malformed_file_degrades(self, tmp_test_dir):
        """Test that a malformed document is not fatal."""
        path = tmp_test_dir / "overrides.yaml"
        path.write_text("Chrome: {installCommand: [unclosed\n")

        assert len(load_overrides(path)) == 0

    def test_malformed_file_warns(self, tmp_test_dir, capsys):
        """Test that the fallback is reported to the operator."""
        from intunebatch.logging import get_logger, set_global_logger

        set_global_logger(get_logger())
        path = tmp_test_dir / "overrides.yaml"
        path.write_text("- just\n- a list\n")

        load_overrides(path)

        assert "[WARNING] [CONFIG] Malformed override file" in capsys.readouterr().out
