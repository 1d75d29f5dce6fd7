"""
Diagnostics and Result Types

Every failure the generator can report is a Diagnostic: a kind, a message
and the source location it is attached to. Diagnostics are data, never
raised one at a time from inside a pass.

Passes return a SpiResult, which carries either a success value or a
non-empty, ordered list of diagnostics. Only the public wrappers turn a
failed result into an exception (SpiExpansionError).
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar


T = TypeVar("T")


class DiagnosticKind(Enum):
    """
    Diagnostic taxonomy.

    The first five are the generator's own failures. SYNTAX_ERROR and
    DUPLICATE_TARGET are reported while reading the configuration or
    block text, before the generator proper runs.
    """

    UNEXPECTED_ATTRIBUTE_KEY = "UnexpectedAttributeKey"
    EXTERNAL_MODULE_NOT_SUPPORTED = "ExternalModuleNotSupported"
    PATH_ALIAS_ONLY = "PathAliasOnly"
    MALFORMED_CONTRACT_ASSERTION = "MalformedContractAssertion"
    UNSUPPORTED_ITEM_KIND = "UnsupportedItemKind"
    SYNTAX_ERROR = "SyntaxError"
    DUPLICATE_TARGET = "DuplicateTarget"


@dataclass(frozen=True)
class SourceLocation:
    """1-based line/column position inside a named source."""

    line: int
    column: int
    file: str = "<input>"

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"


@dataclass(frozen=True)
class Diagnostic:
    kind: DiagnosticKind
    message: str
    location: Optional[SourceLocation] = None
    details: Dict[str, Any] = field(default_factory=dict, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "kind": self.kind.value,
            "message": self.message,
        }
        if self.location:
            d["location"] = {
                "file": self.location.file,
                "line": self.location.line,
                "column": self.location.column,
            }
        if self.details:
            d["details"] = dict(self.details)
        return d

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def __str__(self) -> str:
        loc = f"{self.location}: " if self.location else ""
        return f"{loc}[{self.kind.value}] {self.message}"


# ---------------------------------------------------------------------------
# Constructors, one per kind
# ---------------------------------------------------------------------------


def unexpected_attribute_key(name: str, location: Optional[SourceLocation] = None) -> Diagnostic:
    return Diagnostic(
        kind=DiagnosticKind.UNEXPECTED_ATTRIBUTE_KEY,
        message=f"Unexpected attribute '{name}'",
        location=location,
        details={"name": name},
    )


def external_module_not_supported(module: str, location: Optional[SourceLocation] = None) -> Diagnostic:
    return Diagnostic(
        kind=DiagnosticKind.EXTERNAL_MODULE_NOT_SUPPORTED,
        message="External module imports are not supported, only inline module declarations.",
        location=location,
        details={"module": module},
    )


def path_alias_only(alias: str, location: Optional[SourceLocation] = None) -> Diagnostic:
    return Diagnostic(
        kind=DiagnosticKind.PATH_ALIAS_ONLY,
        message="Only path aliases are supported in an SPI module declaration",
        location=location,
        details={"alias": alias},
    )


def malformed_contract_assertion(reason: str, location: Optional[SourceLocation] = None) -> Diagnostic:
    return Diagnostic(
        kind=DiagnosticKind.MALFORMED_CONTRACT_ASSERTION,
        message=(
            "Impl block is incorrectly formed, only format of "
            f"'impl Trait for Type {{}}' is allowed ({reason})"
        ),
        location=location,
        details={"reason": reason},
    )


def unsupported_item_kind(
    kind_name: str,
    supported: List[str],
    location: Optional[SourceLocation] = None,
) -> Diagnostic:
    names = [f"'{k}'" for k in supported]
    if len(names) > 2:
        quoted = ", ".join(names[:-1]) + ", and " + names[-1]
    else:
        quoted = " and ".join(names)
    return Diagnostic(
        kind=DiagnosticKind.UNSUPPORTED_ITEM_KIND,
        message=(
            f"Only {quoted} items are supported in an SPI module declaration "
            f"but found '{kind_name}'"
        ),
        location=location,
        details={"kind": kind_name},
    )


def syntax_error(message: str, location: Optional[SourceLocation] = None) -> Diagnostic:
    return Diagnostic(kind=DiagnosticKind.SYNTAX_ERROR, message=message, location=location)


def duplicate_target(platform: str, location: Optional[SourceLocation] = None) -> Diagnostic:
    return Diagnostic(
        kind=DiagnosticKind.DUPLICATE_TARGET,
        message=f"Target '{platform}' is listed more than once",
        location=location,
        details={"platform": platform},
    )


# ---------------------------------------------------------------------------
# Result type
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SpiResult(Generic[T]):
    """
    Either a success value or a non-empty ordered list of diagnostics.

    Build with SpiResult.success(...) / SpiResult.failure(...), never
    with both fields set.
    """

    value: Optional[T] = None
    diagnostics: tuple = ()

    @classmethod
    def success(cls, value: T) -> "SpiResult[T]":
        return cls(value=value, diagnostics=())

    @classmethod
    def failure(cls, diagnostics) -> "SpiResult[T]":
        diagnostics = tuple(diagnostics)
        if not diagnostics:
            raise ValueError("A failed result needs at least one diagnostic")
        return cls(value=None, diagnostics=diagnostics)

    @property
    def ok(self) -> bool:
        return not self.diagnostics

    def unwrap(self) -> T:
        """Return the value or raise SpiExpansionError with every diagnostic."""
        if self.diagnostics:
            raise SpiExpansionError(self.diagnostics)
        return self.value


class SpiExpansionError(Exception):
    """Raised by the public wrappers when a generation failed."""

    def __init__(self, diagnostics):
        self.diagnostics = tuple(diagnostics)
        summary = "; ".join(str(d) for d in self.diagnostics)
        super().__init__(f"{len(self.diagnostics)} error(s): {summary}")


class SpiParseError(Exception):
    """Raised inside the parser when the source text is not well formed."""

    def __init__(self, message: str, location: Optional[SourceLocation] = None):
        super().__init__(f"{location}: {message}" if location else message)
        self.message = message
        self.location = location

    def to_diagnostic(self) -> Diagnostic:
        return syntax_error(self.message, self.location)


__all__ = [
    "Diagnostic",
    "DiagnosticKind",
    "SourceLocation",
    "SpiExpansionError",
    "SpiParseError",
    "SpiResult",
    "duplicate_target",
    "external_module_not_supported",
    "malformed_contract_assertion",
    "path_alias_only",
    "syntax_error",
    "unexpected_attribute_key",
    "unsupported_item_kind",
]
