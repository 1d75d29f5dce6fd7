"""
Core Generator Model Objects

Defines the data structures that flow through one expansion:

    - Config (parsed attribute arguments)
    - ModuleBlock (the annotated declarative block)
    - SPI items (type alias, re-export, contract assertion, anything else)
    - ContractPair (one interface obligation)
    - ConditionalInclusion / GeneratedOutput (what the emitter produces)

ARCHITECTURAL RULE:
    These objects:
        - Are immutable (frozen dataclasses, tuples instead of lists)
        - Live for a single expansion of a single use-site
        - Represent structure, not text
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

from platform_spi.diagnostics import SourceLocation
from platform_spi.syntax import Path, TypeNode, UseTree


DEFAULT_MODULE_PATH = "."


@dataclass(frozen=True)
class Config:
    """
    Parsed attribute configuration.

    Properties:
        targets: Platform identifiers in the order written. Empty is legal
            and degenerates to "always fallback".
        module_path: Directory holding the per-platform sources, relative
            to the annotated file ("." by default).
    """

    targets: Tuple[str, ...] = ()
    module_path: str = DEFAULT_MODULE_PATH


# ---------------------------------------------------------------------------
# SPI items
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TypeAlias:
    """
    `type Name<generics> = Target;`

    Properties:
        name: Alias name
        target: Aliased type (must be a PathType to be hoisted)
        generics: Generic parameters of the alias as written ("<T>") or ""
        where_clause: Trailing where clause as written or ""
    """

    name: str
    target: TypeNode
    generics: str = ""
    where_clause: str = ""
    visibility: str = ""
    attributes: Tuple[str, ...] = ()
    location: Optional[SourceLocation] = None

    kind_name = "type"


@dataclass(frozen=True)
class Reexport:
    """
    `use Tree;`

    Properties:
        tree: The use tree, including any rename clause
        leading_colon: True for `use ::a::b;`
    """

    tree: UseTree
    leading_colon: bool = False
    visibility: str = ""
    attributes: Tuple[str, ...] = ()
    location: Optional[SourceLocation] = None

    kind_name = "use"


@dataclass(frozen=True)
class ContractAssertion:
    """
    `impl InterfacePath for ImplementingType {}`

    The parser records the impl block's shape as written; whether it is a
    well-formed assertion is decided by the classifier.

    Properties:
        implementing_type: The `for` side of the impl
        interface_path: The trait side, or None for an inherent impl
        negative: True for `impl !Trait for T`
        generics: `impl<...>` parameters as written, or ""
        where_clause: where clause as written, or ""
        body_items: Number of items inside the impl body
        visibility: Visibility written before `impl` (never valid on an impl)
    """

    implementing_type: TypeNode
    interface_path: Optional[Path] = None
    negative: bool = False
    generics: str = ""
    where_clause: str = ""
    body_items: int = 0
    unsafe: bool = False
    visibility: str = ""
    attributes: Tuple[str, ...] = ()
    location: Optional[SourceLocation] = None

    kind_name = "impl"


@dataclass(frozen=True)
class OtherItem:
    """Any item that is not one of the SPI kinds (fn, struct, const, ...)."""

    kind: str
    name: Optional[str] = None
    visibility: str = ""
    attributes: Tuple[str, ...] = ()
    location: Optional[SourceLocation] = None

    @property
    def kind_name(self) -> str:
        return self.kind


SpiItem = Union[TypeAlias, Reexport, ContractAssertion, OtherItem]


@dataclass(frozen=True)
class ModuleBlock:
    """
    The user-authored declarative block.

    Properties:
        name: Module identifier (e.g., "platform")
        items: Inline item list, or None when the block is `mod name;`
        name_location: Position of the module name, where block-level
            diagnostics are attached
    """

    name: str
    items: Optional[Tuple[SpiItem, ...]]
    visibility: str = ""
    attributes: Tuple[str, ...] = ()
    location: Optional[SourceLocation] = None
    name_location: Optional[SourceLocation] = None

    @property
    def is_inline(self) -> bool:
        return self.items is not None


# ---------------------------------------------------------------------------
# Generator output
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ContractPair:
    """`(implementing_type, interface_path)`: verify the type provides the interface."""

    implementing_type: TypeNode
    interface_path: Path


@dataclass(frozen=True)
class HoistedItems:
    """Successful output of the classifier: hoisted declarations and contract pairs."""

    declarations: Tuple[Union[TypeAlias, Reexport], ...] = ()
    contracts: Tuple[ContractPair, ...] = ()


@dataclass(frozen=True)
class PlatformCondition:
    """Active only when compiling for `platform`."""

    platform: str

    def matches(self, platform: str) -> bool:
        return platform == self.platform


@dataclass(frozen=True)
class FallbackCondition:
    """Active only when compiling for a platform outside `excluded`."""

    excluded: Tuple[str, ...] = ()

    def matches(self, platform: str) -> bool:
        return platform not in self.excluded


Condition = Union[PlatformCondition, FallbackCondition]


@dataclass(frozen=True)
class ConditionalInclusion:
    """
    One platform-conditioned inclusion of an external module file.

    Properties:
        module_name: Name the module is declared under (same for all)
        condition: When this inclusion is active
        source_path: File the module body is read from
    """

    module_name: str
    condition: Condition
    source_path: str
    visibility: str = ""
    attributes: Tuple[str, ...] = ()


@dataclass(frozen=True)
class GeneratedOutput:
    """
    Everything that replaces the annotated block.

    INVARIANTS:
        - One platform inclusion per target, in target order
        - Exactly one fallback inclusion
        - For any platform, exactly one inclusion is active
    """

    platform_module_refs: Tuple[ConditionalInclusion, ...]
    fallback_module_ref: ConditionalInclusion
    hoisted_decls: Tuple[Union[TypeAlias, Reexport], ...] = ()
    assertions: Tuple[ContractPair, ...] = field(default=())

    @property
    def inclusions(self) -> Tuple[ConditionalInclusion, ...]:
        """All inclusions, platform-specific first and the fallback last."""
        return self.platform_module_refs + (self.fallback_module_ref,)

    def select(self, platform: str) -> ConditionalInclusion:
        """
        Return the inclusion a build for `platform` compiles.

        Raises:
            LookupError: If zero or several inclusions match, which would
                mean the conditions are not mutually exclusive
        """
        active = [inc for inc in self.inclusions if inc.condition.matches(platform)]
        if len(active) != 1:
            raise LookupError(
                f"{len(active)} inclusions active for platform '{platform}', expected exactly 1"
            )
        return active[0]
