"""
Tests for attribute argument parsing.

Covers:
    - targets / module_path values and defaults
    - Key order, repeated keys and optional commas
    - Unexpected keys reported at the key
    - Duplicate and unknown platforms
    - Malformed argument text
"""

import warnings

import pytest
from platform_spi.attributes import UnknownPlatformWarning, parse_attributes
from platform_spi.diagnostics import DiagnosticKind
from platform_spi.model import Config


def parse_ok(source: str) -> Config:
    result = parse_attributes(source)
    assert result.ok, result.diagnostics
    return result.value


class TestValues:
    """Test recognised keys."""

    def test_targets_and_module_path(self):
        config = parse_ok('module_path = "example_basic", targets = [macos, windows, linux]')
        assert config.targets == ("macos", "windows", "linux")
        assert config.module_path == "example_basic"

    def test_module_path_defaults_to_current_dir(self):
        assert parse_ok("targets = [linux]").module_path == "."

    def test_empty_arguments(self):
        assert parse_ok("") == Config()

    def test_empty_target_list(self):
        assert parse_ok("targets = []").targets == ()

    def test_trailing_comma_in_list(self):
        assert parse_ok("targets = [linux, macos,]").targets == ("linux", "macos")

    def test_string_escapes(self):
        assert parse_ok(r'module_path = "a\\b"').module_path == "a\\b"

    def test_raw_string(self):
        assert parse_ok('module_path = r"imp/sys"').module_path == "imp/sys"


class TestPairSyntax:
    """Test separators and ordering between key/value pairs."""

    def test_any_order(self):
        a = parse_ok('targets = [linux], module_path = "x"')
        b = parse_ok('module_path = "x", targets = [linux]')
        assert a == b

    def test_last_write_wins(self):
        config = parse_ok('targets = [linux], targets = [macos], module_path = "a", module_path = "b"')
        assert config.targets == ("macos",)
        assert config.module_path == "b"

    def test_commas_optional(self):
        assert parse_ok('targets = [linux] module_path = "x"').module_path == "x"

    def test_trailing_comma(self):
        assert parse_ok("targets = [linux],").targets == ("linux",)


class TestUnexpectedKey:
    """Unknown keys fail with UnexpectedAttributeKey."""

    def test_reported_at_key(self):
        result = parse_attributes('targets = [linux], flavor = "x"')
        assert not result.ok
        (diag,) = result.diagnostics
        assert diag.kind == DiagnosticKind.UNEXPECTED_ATTRIBUTE_KEY
        assert diag.message == "Unexpected attribute 'flavor'"
        assert diag.location.line == 1
        assert diag.location.column == 20

    def test_position_offset(self):
        result = parse_attributes("flavor = 1", filename="lib.rs", line=7, column=16)
        diag = result.diagnostics[0]
        assert str(diag.location) == "lib.rs:7:16"


class TestTargets:
    """Test target list validation."""

    def test_duplicate_target(self):
        result = parse_attributes("targets = [linux, macos, linux]")
        (diag,) = result.diagnostics
        assert diag.kind == DiagnosticKind.DUPLICATE_TARGET
        assert diag.details["platform"] == "linux"
        assert diag.location.column == 26

    def test_unknown_platform_warns(self):
        with pytest.warns(UnknownPlatformWarning, match="plan9"):
            config = parse_ok("targets = [linux, plan9]")
        assert config.targets == ("linux", "plan9")

    def test_known_platforms_do_not_warn(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            parse_ok("targets = [macos, windows, linux, freebsd]")

    def test_check_can_be_disabled(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            assert parse_attributes("targets = [plan9]", known_platforms=None).ok


class TestMalformed:
    """Malformed argument text is a SyntaxError diagnostic, never an exception."""

    @pytest.mark.parametrize("source", [
        "targets",
        "targets = linux",
        "targets = [linux",
        'targets = ["linux"]',
        "module_path = dir",
        'module_path = b"dir"',
        "= [linux]",
    ])
    def test_syntax_error(self, source):
        result = parse_attributes(source)
        assert not result.ok
        assert result.diagnostics[0].kind == DiagnosticKind.SYNTAX_ERROR
