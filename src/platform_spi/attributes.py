"""
Attribute Argument Parser (configuration text → Config).

Format:
    key = value, key = value, ...

Recognized keys:
    targets      bracketed list of bare platform identifiers
    module_path  string literal, "." when absent

Syntax Notes:
    - Keys may appear in any order; a repeated key overwrites the earlier value
    - The comma between pairs and after the last pair is optional
    - Unknown keys fail with UnexpectedAttributeKey at the key
"""

import warnings
from typing import Dict, List, Optional

from platform_spi.diagnostics import (
    Diagnostic,
    SpiParseError,
    SpiResult,
    duplicate_target,
    unexpected_attribute_key,
)
from platform_spi.model import DEFAULT_MODULE_PATH, Config
from platform_spi.parser import Parser
from platform_spi.tokens import Token, TokenType, string_value, tokenize


class UnknownPlatformWarning(UserWarning):
    """A target is not one of the platform identifiers the host compiler knows."""


# target_os values understood by the host compiler
KNOWN_PLATFORMS = frozenset({
    "aix", "android", "cuda", "dragonfly", "emscripten", "espidf", "freebsd",
    "fuchsia", "haiku", "hermit", "horizon", "hurd", "illumos", "ios", "l4re",
    "linux", "macos", "netbsd", "none", "nto", "openbsd", "psp", "redox",
    "solaris", "solid_asp3", "teeos", "tvos", "uefi", "unknown", "visionos",
    "vita", "vxworks", "wasi", "watchos", "windows", "xous", "zkvm",
})


class AttributeParser(Parser):
    """Reads `key = value` pairs from attribute argument tokens."""

    def __init__(self, tokens: List[Token], filename: str = "<input>"):
        super().__init__(tokens, filename)
        self.duplicates: List[Diagnostic] = []

    def parse_config(self) -> Config:
        targets: List[Token] = []
        module_path = DEFAULT_MODULE_PATH

        while not self._at_eof():
            name = self._expect_ident("attribute name")
            self._expect_punct("=")

            if name.value == "targets":
                targets = self._parse_target_list()
            elif name.value == "module_path":
                module_path = self._parse_string()
            else:
                raise _UnexpectedKey(name)

            self._match_punct(",")

        self.duplicates = _find_duplicates(targets)
        return Config(targets=tuple(t.value for t in targets), module_path=module_path)

    def _parse_target_list(self) -> List[Token]:
        self._expect_punct("[")
        targets: List[Token] = []
        while not self._current().is_punct("]"):
            targets.append(self._expect_ident("platform identifier"))
            if not self._match_punct(","):
                break
        self._expect_punct("]")
        return targets

    def _parse_string(self) -> str:
        tok = self._current()
        if tok.type != TokenType.STRING or tok.value.startswith("b"):
            raise self._error("Expected string literal")
        self._advance()
        return string_value(tok)


class _UnexpectedKey(Exception):
    def __init__(self, token: Token):
        super().__init__(token.value)
        self.token = token


def _find_duplicates(targets: List[Token]) -> List[Diagnostic]:
    seen: Dict[str, Token] = {}
    diagnostics = []
    for tok in targets:
        if tok.value in seen:
            diagnostics.append(duplicate_target(tok.value, tok.location))
        else:
            seen[tok.value] = tok
    return diagnostics


def parse_attributes(
    source: str,
    filename: str = "<input>",
    line: int = 1,
    column: int = 1,
    known_platforms: Optional[frozenset] = KNOWN_PLATFORMS,
) -> SpiResult[Config]:
    """
    Parse attribute arguments into a Config.

    Args:
        source: Argument text, e.g. 'targets = [macos, linux], module_path = "imp"'
        filename, line, column: Where `source` starts, for diagnostics
        known_platforms: Identifiers accepted without a warning; None
            disables the check

    Returns:
        SpiResult carrying the Config, or the diagnostics that prevented it

    Warns:
        UnknownPlatformWarning: For each target outside `known_platforms`
    """
    try:
        parser = AttributeParser(tokenize(source, filename=filename, line=line, column=column), filename)
        config = parser.parse_config()
    except _UnexpectedKey as e:
        return SpiResult.failure([unexpected_attribute_key(e.token.value, e.token.location)])
    except SpiParseError as e:
        return SpiResult.failure([e.to_diagnostic()])

    if parser.duplicates:
        return SpiResult.failure(parser.duplicates)

    if known_platforms is not None:
        for platform in config.targets:
            if platform not in known_platforms:
                warnings.warn(
                    f"Unknown platform '{platform}' in targets, it is not a known target_os value",
                    UnknownPlatformWarning,
                )

    return SpiResult.success(config)


__all__ = [
    "AttributeParser",
    "KNOWN_PLATFORMS",
    "UnknownPlatformWarning",
    "parse_attributes",
]
