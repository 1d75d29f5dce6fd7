"""
Generator Settings: project-level .platform-spi.yml support.

Loads settings from .platform-spi.yml (or .platform-spi.yaml,
platform-spi.yml) found in the start directory or any parent. Lets a
project configure:
  - The file extension of per-platform sources
  - The condition key and fallback file name
  - The contract-assertion macro
  - Whether contract assertions are part of the item grammar

Example .platform-spi.yml:
    extension: rs
    condition_key: target_os
    fallback_name: unsupported
    assertion_macro: static_assertions::assert_impl_all
    attribute_name: platform_spi
    grammar: with_contracts      # or "core" to allow only type/use items
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional

import yaml

from platform_spi.hoisting import ItemGrammar


class SettingsError(Exception):
    """Raised when a settings file cannot be read or holds invalid values."""


@dataclass(frozen=True)
class GeneratorSettings:
    """Project-level generator settings."""

    extension: str = "rs"
    condition_key: str = "target_os"
    fallback_name: str = "unsupported"
    assertion_macro: str = "static_assertions::assert_impl_all"
    attribute_name: str = "platform_spi"
    grammar: ItemGrammar = ItemGrammar.WITH_CONTRACTS

    def with_grammar(self, grammar: ItemGrammar) -> "GeneratorSettings":
        return replace(self, grammar=grammar)


_SETTINGS_FILES = [
    ".platform-spi.yml",
    ".platform-spi.yaml",
    "platform-spi.yml",
]


def find_settings(start_dir: str = ".") -> Optional[str]:
    """Find the nearest settings file by walking up from start_dir."""
    current = os.path.abspath(start_dir)
    while True:
        for name in _SETTINGS_FILES:
            path = os.path.join(current, name)
            if os.path.isfile(path):
                return path
        parent = os.path.dirname(current)
        if parent == current:
            break
        current = parent
    return None


def settings_from_dict(data: Dict[str, Any]) -> GeneratorSettings:
    """
    Build settings from a plain mapping.

    Raises:
        SettingsError: On unknown keys, non-string values, or an unknown grammar
    """
    known = {f.name for f in fields(GeneratorSettings)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise SettingsError(f"Unknown settings keys: {unknown}")

    values: Dict[str, Any] = {}
    for key, value in data.items():
        if key == "grammar":
            try:
                values[key] = ItemGrammar(value)
            except ValueError:
                choices = [g.value for g in ItemGrammar]
                raise SettingsError(f"Invalid grammar {value!r}, expected one of {choices}")
            continue
        if not isinstance(value, str) or not value:
            raise SettingsError(f"Setting '{key}' must be a non-empty string")
        values[key] = value

    if "extension" in values:
        values["extension"] = values["extension"].lstrip(".")
    return GeneratorSettings(**values)


def settings_to_dict(settings: GeneratorSettings) -> Dict[str, Any]:
    return {
        "extension": settings.extension,
        "condition_key": settings.condition_key,
        "fallback_name": settings.fallback_name,
        "assertion_macro": settings.assertion_macro,
        "attribute_name": settings.attribute_name,
        "grammar": settings.grammar.value,
    }


def load_settings(path: Optional[str] = None, start_dir: str = ".") -> GeneratorSettings:
    """
    Load settings from a file.

    If no path is given, searches for a settings file starting from
    start_dir. If none is found, returns defaults.

    Raises:
        SettingsError: If the file exists but cannot be read or parsed
    """
    if path is None:
        path = find_settings(start_dir)

    if path is None:
        return GeneratorSettings()

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise SettingsError(f"Cannot read settings file {path}: {e}")
    except yaml.YAMLError as e:
        raise SettingsError(f"Invalid YAML in settings file {path}: {e}")

    if data is None:
        return GeneratorSettings()
    if not isinstance(data, dict):
        raise SettingsError(f"Settings file {path} must contain a mapping")
    return settings_from_dict(data)


__all__ = [
    "GeneratorSettings",
    "SettingsError",
    "find_settings",
    "load_settings",
    "settings_from_dict",
    "settings_to_dict",
]
