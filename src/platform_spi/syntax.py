"""
Syntax Nodes for Paths, Types and Use Trees

The declarative block is read into immutable syntax trees, never kept as
strings. Hoisting is a structural rewrite over these trees: prepending a
path segment returns a new tree and leaves the input untouched.

ARCHITECTURAL RULE:
    Nodes are structure only.
    Turning them back into source text belongs in the backends.
"""

from abc import ABC
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class PathSegment:
    """
    One `::`-separated segment of a path.

    Properties:
        ident: Segment name (e.g., "ServiceImpl")
        arguments: Generic arguments exactly as written, including the
            delimiters, or "" when absent. Examples: "<T>", "::<u8>",
            "(u8) -> bool" for Fn-sugar.
    """

    ident: str
    arguments: str = ""


@dataclass(frozen=True)
class Path:
    """
    A qualified name such as `std::io::Error` or `ServiceImpl<T>`.

    Properties:
        segments: Ordered path segments (never empty)
        leading_colon: True for a global path written as `::a::b`
    """

    segments: Tuple[PathSegment, ...]
    leading_colon: bool = False

    def prefixed(self, ident: str) -> "Path":
        """
        Return a copy of this path with `ident` inserted as the first segment.

        Example:
            Path((PathSegment("Y"),)).prefixed("platform")  ->  platform::Y

        A leading `::` stays in front of the inserted segment.
        """
        return Path(
            segments=(PathSegment(ident),) + self.segments,
            leading_colon=self.leading_colon,
        )

    @property
    def last(self) -> PathSegment:
        return self.segments[-1]


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------


class TypeNode(ABC):
    """
    Base class for type syntax.

    Only PathType is structured all the way down because only a path can be
    re-rooted into the per-platform module. Every other type keeps the text
    it was written with, plus its kind for diagnostics.
    """

    kind = "type"


@dataclass(frozen=True)
class PathType(TypeNode):
    """A plain qualified-name type: `Foo`, `a::b::Foo<T>`."""

    path: Path
    kind = "path"


@dataclass(frozen=True)
class TupleType(TypeNode):
    """`()`, `(A, B)` and parenthesized `(A)`."""

    text: str
    kind = "tuple"


@dataclass(frozen=True)
class ArrayType(TypeNode):
    """`[T; N]`"""

    text: str
    kind = "array"


@dataclass(frozen=True)
class SliceType(TypeNode):
    """`[T]`"""

    text: str
    kind = "slice"


@dataclass(frozen=True)
class ReferenceType(TypeNode):
    """`&T`, `&'a mut T`"""

    text: str
    kind = "reference"


@dataclass(frozen=True)
class PointerType(TypeNode):
    """`*const T`, `*mut T`"""

    text: str
    kind = "pointer"


@dataclass(frozen=True)
class OpaqueType(TypeNode):
    """
    Any other type form the generator never rewrites.

    Examples: `fn(u8) -> u8` (kind "fn"), `dyn Trait` ("dyn"),
    `impl Trait` ("impl"), `!` ("never"), `_` ("infer"),
    `<T as Trait>::Out` ("qualified").
    """

    text: str
    form: str = "opaque"

    @property
    def kind(self) -> str:  # type: ignore[override]
        return self.form


# ---------------------------------------------------------------------------
# Use trees
# ---------------------------------------------------------------------------


class UseTree(ABC):
    """Base class for the tree of a `use` declaration."""


@dataclass(frozen=True)
class UsePath(UseTree):
    """`ident::tree`"""

    ident: str
    tree: UseTree


@dataclass(frozen=True)
class UseName(UseTree):
    """`ident`"""

    ident: str


@dataclass(frozen=True)
class UseRename(UseTree):
    """`ident as rename`"""

    ident: str
    rename: str


@dataclass(frozen=True)
class UseGlob(UseTree):
    """`*`"""


@dataclass(frozen=True)
class UseGroup(UseTree):
    """`{a, b::c, d as e}`"""

    items: Tuple[UseTree, ...]


def use_tree_rename(tree: UseTree):
    """Return the rename clause of a single-leaf use tree, or None."""
    while isinstance(tree, UsePath):
        tree = tree.tree
    if isinstance(tree, UseRename):
        return tree.rename
    return None


def use_tree_leaf_path(tree: UseTree) -> Tuple[str, ...]:
    """
    Return the path segments of a single-leaf use tree.

    For `a::b::C as D` this is ("a", "b", "C"). Group and glob trees
    yield the segments up to (not including) the group or glob.
    """
    parts = []
    while isinstance(tree, UsePath):
        parts.append(tree.ident)
        tree = tree.tree
    if isinstance(tree, (UseName, UseRename)):
        parts.append(tree.ident)
    return tuple(parts)
