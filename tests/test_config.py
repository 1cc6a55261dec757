# tests/test_config.py
"""Tests for .bsl-language-server.json loading and validation."""

import json

import pytest

from bsl_checkers.config import (
    DEFAULT_CONFIG_NAME,
    LinterConfiguration,
    find_configuration,
    load_configuration,
    parse_configuration,
)
from bsl_checkers.errors import ConfigurationError


class TestParseConfiguration:

    def test_defaults(self):
        config = parse_configuration({})
        assert config.language == "en"
        assert config.disabled == set()
        assert config.options == {}
        assert config.suppress == []

    def test_full_document(self):
        config = parse_configuration({
            "language": "ru",
            "diagnostics": {
                "parameters": {
                    "UsingObjectNotAvailableUnix": {"guardTokens": ["Linux_x86_64"]},
                    "Noisy": False,
                    "Default": True,
                },
                "suppress": ["Other"],
            },
        })
        assert config.language == "ru"
        assert config.disabled == {"Noisy"}
        assert config.options_for("UsingObjectNotAvailableUnix") == {
            "guardTokens": ["Linux_x86_64"]
        }
        assert config.options_for("Default") == {}
        assert config.suppress == ["Other"]
        assert not config.is_enabled("Noisy")
        assert config.is_enabled("Default")

    @pytest.mark.parametrize("language, expected", [
        ("ru_RU", "ru"), ("EN", "en"), ("de", "en"),
    ])
    def test_language_normalized(self, language, expected):
        assert parse_configuration({"language": language}).language == expected

    @pytest.mark.parametrize("data", [
        [],
        {"language": 1},
        {"diagnostics": []},
        {"diagnostics": {"parameters": []}},
        {"diagnostics": {"parameters": {"X": 5}}},
        {"diagnostics": {"suppress": "X"}},
        {"diagnostics": {"suppress": [1]}},
    ])
    def test_invalid_documents(self, data):
        with pytest.raises(ConfigurationError):
            parse_configuration(data)


class TestLoadConfiguration:

    def test_load(self, tmp_path):
        path = tmp_path / DEFAULT_CONFIG_NAME
        path.write_text(json.dumps({"language": "ru"}), encoding="utf-8")
        config = load_configuration(path)
        assert isinstance(config, LinterConfiguration)
        assert config.language == "ru"
        assert config.source == str(path)

    def test_invalid_json(self, tmp_path):
        path = tmp_path / DEFAULT_CONFIG_NAME
        path.write_text("{ not json", encoding="utf-8")
        with pytest.raises(ConfigurationError) as exc_info:
            load_configuration(path)
        assert str(exc_info.value).startswith(str(path))
        assert "invalid JSON" in str(exc_info.value)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_configuration(tmp_path / "absent.json")

    def test_find_in_parent_directory(self, tmp_path):
        config_path = tmp_path / DEFAULT_CONFIG_NAME
        config_path.write_text("{}", encoding="utf-8")
        nested = tmp_path / "src" / "CommonModules"
        nested.mkdir(parents=True)
        module = nested / "Module.bsl"
        module.write_text("", encoding="utf-8")
        assert find_configuration(module) == config_path.resolve()
        assert find_configuration(nested) == config_path.resolve()
