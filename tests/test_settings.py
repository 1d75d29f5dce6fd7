"""
Tests for .platform-spi.yml settings loading.
"""

import pytest
from platform_spi.hoisting import ItemGrammar
from platform_spi.settings import (
    GeneratorSettings,
    SettingsError,
    find_settings,
    load_settings,
    settings_from_dict,
    settings_to_dict,
)


class TestSettingsFromDict:
    def test_defaults(self):
        settings = settings_from_dict({})
        assert settings == GeneratorSettings()
        assert settings.grammar is ItemGrammar.WITH_CONTRACTS

    def test_core_grammar(self):
        assert settings_from_dict({"grammar": "core"}).grammar is ItemGrammar.CORE

    def test_extension_dot_stripped(self):
        assert settings_from_dict({"extension": ".rs"}).extension == "rs"

    def test_unknown_key(self):
        with pytest.raises(SettingsError, match="flavor"):
            settings_from_dict({"flavor": "x"})

    def test_bad_grammar(self):
        with pytest.raises(SettingsError, match="grammar"):
            settings_from_dict({"grammar": "everything"})

    @pytest.mark.parametrize("value", ["", 3, None, ["rs"]])
    def test_non_string_value(self, value):
        with pytest.raises(SettingsError):
            settings_from_dict({"extension": value})

    def test_round_trip(self):
        settings = GeneratorSettings(fallback_name="generic", grammar=ItemGrammar.CORE)
        assert settings_from_dict(settings_to_dict(settings)) == settings


class TestLoadSettings:
    """Test file discovery and YAML parsing."""

    def test_no_file_gives_defaults(self, tmp_path):
        assert load_settings(start_dir=str(tmp_path)) == GeneratorSettings()

    def test_explicit_file(self, tmp_path):
        path = tmp_path / "custom.yml"
        path.write_text("fallback_name: generic\ngrammar: core\n")
        settings = load_settings(str(path))
        assert settings.fallback_name == "generic"
        assert settings.grammar is ItemGrammar.CORE

    def test_found_in_parent(self, tmp_path):
        (tmp_path / ".platform-spi.yml").write_text("condition_key: target_family\n")
        nested = tmp_path / "src" / "sys"
        nested.mkdir(parents=True)
        assert find_settings(str(nested)) == str(tmp_path / ".platform-spi.yml")
        assert load_settings(start_dir=str(nested)).condition_key == "target_family"

    def test_empty_file(self, tmp_path):
        path = tmp_path / ".platform-spi.yml"
        path.write_text("")
        assert load_settings(str(path)) == GeneratorSettings()

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / ".platform-spi.yml"
        path.write_text("extension: [rs\n")
        with pytest.raises(SettingsError, match="Invalid YAML"):
            load_settings(str(path))

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / ".platform-spi.yml"
        path.write_text("- rs\n")
        with pytest.raises(SettingsError, match="mapping"):
            load_settings(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(SettingsError, match="Cannot read"):
            load_settings(str(tmp_path / "missing.yml"))

    def test_with_grammar(self):
        settings = GeneratorSettings().with_grammar(ItemGrammar.CORE)
        assert settings.grammar is ItemGrammar.CORE
        assert GeneratorSettings().grammar is ItemGrammar.WITH_CONTRACTS
