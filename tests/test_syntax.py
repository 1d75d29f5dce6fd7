"""
Tests for syntax nodes.

These tests verify:
    - Nodes are immutable
    - Path prefixing is a pure structural rewrite
    - Use-tree helpers
"""

import pytest
from dataclasses import FrozenInstanceError
from platform_spi.syntax import (
    OpaqueType,
    Path,
    PathSegment,
    PathType,
    TupleType,
    UseGroup,
    UseName,
    UsePath,
    UseRename,
    use_tree_leaf_path,
    use_tree_rename,
)


class TestPath:
    """Test Path objects."""

    def test_prefixed_inserts_leading_segment(self):
        path = Path((PathSegment("Y"),))
        hoisted = path.prefixed("platform")
        assert [s.ident for s in hoisted.segments] == ["platform", "Y"]

    def test_prefixed_keeps_generic_arguments(self):
        path = Path((PathSegment("ServiceImpl", "<T>"),))
        hoisted = path.prefixed("platform")
        assert hoisted.last == PathSegment("ServiceImpl", "<T>")
        assert hoisted.segments[0].arguments == ""

    def test_prefixed_does_not_mutate(self):
        path = Path((PathSegment("a"), PathSegment("B")))
        path.prefixed("platform")
        assert [s.ident for s in path.segments] == ["a", "B"]

    def test_prefixed_keeps_leading_colon(self):
        path = Path((PathSegment("std"), PathSegment("X")), leading_colon=True)
        hoisted = path.prefixed("platform")
        assert hoisted.leading_colon is True
        assert hoisted.segments[0].ident == "platform"

    def test_prefix_twice(self):
        path = Path((PathSegment("Y"),))
        assert path.prefixed("a").prefixed("b") == Path(
            (PathSegment("b"), PathSegment("a"), PathSegment("Y"))
        )

    def test_path_immutable(self):
        path = Path((PathSegment("Y"),))
        with pytest.raises(FrozenInstanceError):
            path.leading_colon = True


class TestTypeNodes:
    """Test type node kinds."""

    def test_path_type_kind(self):
        assert PathType(Path((PathSegment("X"),))).kind == "path"

    def test_tuple_type_kind(self):
        assert TupleType("(u8, u16)").kind == "tuple"

    def test_opaque_kind_is_form(self):
        assert OpaqueType("dyn Trait", form="dyn").kind == "dyn"


class TestUseTrees:
    """Test use-tree helpers."""

    def test_leaf_path_with_rename(self):
        tree = UsePath("a", UsePath("b", UseRename("C", "D")))
        assert use_tree_leaf_path(tree) == ("a", "b", "C")
        assert use_tree_rename(tree) == "D"

    def test_leaf_path_without_rename(self):
        tree = UsePath("a", UseName("B"))
        assert use_tree_leaf_path(tree) == ("a", "B")
        assert use_tree_rename(tree) is None

    def test_group_stops_at_group(self):
        tree = UsePath("a", UseGroup((UseName("b"), UseName("c"))))
        assert use_tree_leaf_path(tree) == ("a",)
