"""
Declarative Block Parser (raw text → ModuleBlock).

Reads the annotated block the way the host compiler's own parser would:
attributes, visibility, `mod name { ... }` or `mod name;`, and every item
inside the body. The parser accepts any well-formed item; deciding which
items the generator supports is the classifier's job (hoisting.py).

Grammar (the subset read structurally):
    block      := attr* vis? 'mod' IDENT ( ';' | '{' item* '}' )
    item       := attr* vis? ( type_alias | use | impl | other )
    type_alias := 'type' IDENT generics? where? '=' type where? ';'
    use        := 'use' '::'? use_tree ';'
    impl       := 'unsafe'? 'impl' generics? '!'? type ( 'for' type )? where? '{' ... '}'
    other      := any other item, skipped as a balanced token run

Syntax Notes:
    - Doc comments (`/// ...`) are kept as attributes
    - Types other than plain paths are kept as text with their kind
"""

from typing import List, Optional, Tuple

from platform_spi.diagnostics import SourceLocation, SpiParseError
from platform_spi.model import (
    ContractAssertion,
    ModuleBlock,
    OtherItem,
    Reexport,
    SpiItem,
    TypeAlias,
)
from platform_spi.syntax import (
    ArrayType,
    OpaqueType,
    Path,
    PathSegment,
    PathType,
    PointerType,
    ReferenceType,
    SliceType,
    TupleType,
    TypeNode,
    UseGlob,
    UseGroup,
    UseName,
    UsePath,
    UseRename,
    UseTree,
)
from platform_spi.tokens import Token, TokenType, join_tokens, tokenize


_OPENERS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = {")", "]", "}"}

# Item keywords the generator does not support, with whether the item ends
# at a closing brace (True) or only at a semicolon (False).
_OTHER_ITEM_KINDS = {
    "fn": True,
    "struct": True,
    "enum": True,
    "union": True,
    "trait": True,
    "mod": True,
    "const": False,
    "static": False,
    "extern": True,
    "macro_rules": True,
}

_FN_TRAITS = {"Fn", "FnMut", "FnOnce"}


def _doc_lines(text: str) -> List[str]:
    """Render doc comment text as `///` lines, one per source line."""
    return [f"/// {line}".rstrip() for line in text.split("\n")]


class Parser:
    """Recursive-descent parser over a token list."""

    def __init__(self, tokens: List[Token], filename: str = "<input>"):
        self.tokens = tokens
        self.pos = 0
        self.filename = filename

    # -------------------------------------------------------------------
    # Cursor helpers
    # -------------------------------------------------------------------

    def _current(self) -> Token:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return self.tokens[-1]  # EOF

    def _peek_at(self, offset: int) -> Token:
        index = self.pos + offset
        if index < len(self.tokens):
            return self.tokens[index]
        return self.tokens[-1]

    def _loc(self) -> SourceLocation:
        return self._current().location

    def _at_eof(self) -> bool:
        return self._current().type == TokenType.EOF

    def _advance(self) -> Token:
        tok = self._current()
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        return tok

    def _error(self, message: str, token: Optional[Token] = None) -> SpiParseError:
        token = token or self._current()
        found = "end of input" if token.type == TokenType.EOF else f"'{token.value}'"
        return SpiParseError(f"{message}, found {found}", token.location)

    def _expect_punct(self, value: str) -> Token:
        if not self._current().is_punct(value):
            raise self._error(f"Expected '{value}'")
        return self._advance()

    def _expect_ident(self, what: str = "identifier") -> Token:
        if self._current().type != TokenType.IDENT:
            raise self._error(f"Expected {what}")
        return self._advance()

    def _expect_keyword(self, word: str) -> Token:
        if not self._current().is_ident(word):
            raise self._error(f"Expected '{word}'")
        return self._advance()

    def _match_punct(self, value: str) -> Optional[Token]:
        if self._current().is_punct(value):
            return self._advance()
        return None

    def _match_keyword(self, word: str) -> Optional[Token]:
        if self._current().is_ident(word):
            return self._advance()
        return None

    def expect_eof(self) -> None:
        if not self._at_eof():
            raise self._error("Unexpected trailing input")

    def _text_since(self, start: int) -> str:
        return join_tokens(self.tokens[start:self.pos])

    # -------------------------------------------------------------------
    # Balanced groups
    # -------------------------------------------------------------------

    def _skip_group(self) -> None:
        """Consume one balanced (), [] or {} group starting at the cursor."""
        opener = self._advance()
        stack = [_OPENERS[opener.value]]
        while stack:
            tok = self._current()
            if tok.type == TokenType.EOF:
                raise SpiParseError(f"Unclosed '{opener.value}'", opener.location)
            self._advance()
            if tok.type != TokenType.PUNCT:
                continue
            if tok.value in _OPENERS:
                stack.append(_OPENERS[tok.value])
            elif tok.value in _CLOSERS:
                if tok.value != stack[-1]:
                    raise SpiParseError(f"Mismatched '{tok.value}'", tok.location)
                stack.pop()

    def _skip_angle(self) -> None:
        """Consume a balanced `<...>` generic list starting at the cursor."""
        opener = self._advance()
        depth = 1
        while depth:
            tok = self._current()
            if tok.type == TokenType.EOF:
                raise SpiParseError("Unclosed '<'", opener.location)
            if tok.type == TokenType.PUNCT and tok.value in _OPENERS:
                self._skip_group()
                continue
            self._advance()
            if tok.is_punct("<"):
                depth += 1
            elif tok.is_punct(">"):
                depth -= 1

    def _skip_until(self, *stops: str) -> None:
        """Consume tokens up to (not including) one of `stops` at depth 0."""
        while True:
            tok = self._current()
            if tok.type == TokenType.EOF:
                raise self._error(f"Expected one of {', '.join(repr(s) for s in stops)}")
            if tok.type == TokenType.PUNCT and tok.value in stops:
                return
            if tok.type == TokenType.PUNCT and tok.value in _OPENERS:
                self._skip_group()
            elif tok.is_punct("<"):
                self._skip_angle()
            else:
                self._advance()

    # -------------------------------------------------------------------
    # Attributes and visibility
    # -------------------------------------------------------------------

    def _parse_outer_attributes(self) -> Tuple[str, ...]:
        attrs: List[str] = []
        while True:
            tok = self._current()
            if tok.type == TokenType.DOC:
                attrs.extend(_doc_lines(tok.value))
                self._advance()
            elif tok.is_punct("#") and self._peek_at(1).is_punct("["):
                attrs.append(self._parse_attribute())
            else:
                return tuple(attrs)

    def _parse_attribute(self) -> str:
        start = self.pos
        self._expect_punct("#")
        if not self._current().is_punct("["):
            raise self._error("Expected '['")
        self._skip_group()
        return self._text_since(start)

    def _parse_inner_attributes(self) -> Tuple[str, ...]:
        """Read inner docs and `#![...]` attributes at the top of a body, returned in outer form."""
        attrs: List[str] = []
        while True:
            if self._current().type == TokenType.INNER_DOC:
                attrs.extend(_doc_lines(self._advance().value))
                continue
            if not (self._current().is_punct("#") and self._peek_at(1).is_punct("!")):
                return tuple(attrs)
            self._advance()
            self._advance()
            start = self.pos
            if not self._current().is_punct("["):
                raise self._error("Expected '['")
            self._skip_group()
            attrs.append("#" + self._text_since(start))

    def _parse_visibility(self) -> str:
        if not self._current().is_ident("pub"):
            return ""
        start = self.pos
        self._advance()
        if self._current().is_punct("("):
            self._skip_group()
        return self._text_since(start)

    # -------------------------------------------------------------------
    # Module block
    # -------------------------------------------------------------------

    def parse_module_block(self) -> ModuleBlock:
        location = self._loc()
        attributes = self._parse_outer_attributes()
        visibility = self._parse_visibility()
        self._expect_keyword("mod")
        name_tok = self._expect_ident("module name")

        if self._match_punct(";"):
            return ModuleBlock(
                name=name_tok.value,
                items=None,
                visibility=visibility,
                attributes=attributes,
                location=location,
                name_location=name_tok.location,
            )

        self._expect_punct("{")
        attributes = attributes + self._parse_inner_attributes()
        items: List[SpiItem] = []
        while not self._current().is_punct("}"):
            if self._at_eof():
                raise self._error("Expected '}' to close module body")
            items.append(self.parse_item())
        self._expect_punct("}")

        return ModuleBlock(
            name=name_tok.value,
            items=tuple(items),
            visibility=visibility,
            attributes=attributes,
            location=location,
            name_location=name_tok.location,
        )

    # -------------------------------------------------------------------
    # Items
    # -------------------------------------------------------------------

    def parse_item(self) -> SpiItem:
        location = self._loc()
        attributes = self._parse_outer_attributes()
        if attributes:
            location = self._loc()
        visibility = self._parse_visibility()
        tok = self._current()

        if tok.is_ident("type"):
            return self._parse_type_alias(attributes, visibility, location)
        if tok.is_ident("use"):
            return self._parse_use(attributes, visibility, location)
        if tok.is_ident("impl") or (tok.is_ident("unsafe") and self._peek_at(1).is_ident("impl")):
            return self._parse_impl(attributes, visibility, location)
        return self._parse_other_item(attributes, visibility, location)

    def _parse_type_alias(self, attributes, visibility, location) -> TypeAlias:
        self._expect_keyword("type")
        name = self._expect_ident("type alias name").value
        generics = ""
        if self._current().is_punct("<"):
            start = self.pos
            self._skip_angle()
            generics = self._text_since(start)
        where_clause = self._parse_where_clause("=", ";")
        self._expect_punct("=")
        target = self.parse_type()
        if not where_clause:
            where_clause = self._parse_where_clause(";")
        self._expect_punct(";")
        return TypeAlias(
            name=name,
            target=target,
            generics=generics,
            where_clause=where_clause,
            visibility=visibility,
            attributes=attributes,
            location=location,
        )

    def _parse_use(self, attributes, visibility, location) -> Reexport:
        self._expect_keyword("use")
        leading_colon = self._match_punct("::") is not None
        tree = self.parse_use_tree()
        self._expect_punct(";")
        return Reexport(
            tree=tree,
            leading_colon=leading_colon,
            visibility=visibility,
            attributes=attributes,
            location=location,
        )

    def _parse_impl(self, attributes, visibility, location) -> ContractAssertion:
        unsafe = self._match_keyword("unsafe") is not None
        self._expect_keyword("impl")

        generics = ""
        # `impl <T as Trait>::Out` is a qualified self type, not a generic list.
        if self._current().is_punct("<") and not self._is_qualified_self_ahead():
            start = self.pos
            self._skip_angle()
            generics = self._text_since(start)

        negative = self._match_punct("!") is not None
        first_tok = self._current()
        first = self.parse_type()

        interface_path: Optional[Path] = None
        implementing_type: TypeNode = first
        if self._match_keyword("for"):
            if not isinstance(first, PathType):
                raise SpiParseError("Expected a trait path before 'for'", first_tok.location)
            interface_path = first.path
            implementing_type = self.parse_type()

        where_clause = self._parse_where_clause("{")
        self._expect_punct("{")
        self._parse_inner_attributes()
        body_items = 0
        while not self._current().is_punct("}"):
            if self._at_eof():
                raise self._error("Expected '}' to close impl body")
            self._skip_item_tokens(brace_terminated=True)
            body_items += 1
        self._expect_punct("}")

        return ContractAssertion(
            implementing_type=implementing_type,
            interface_path=interface_path,
            negative=negative,
            generics=generics,
            where_clause=where_clause,
            body_items=body_items,
            unsafe=unsafe,
            visibility=visibility,
            attributes=attributes,
            location=location,
        )

    def _is_qualified_self_ahead(self) -> bool:
        # `<` ... `as` at angle depth 1 means `<T as Trait>`
        depth = 0
        for tok in self.tokens[self.pos:]:
            if tok.is_punct("<"):
                depth += 1
            elif tok.is_punct(">"):
                depth -= 1
                if depth == 0:
                    return False
            elif tok.is_ident("as") and depth == 1:
                return True
            elif tok.type == TokenType.EOF or tok.is_punct("{") or tok.is_punct(";"):
                return False
        return False

    def _parse_other_item(self, attributes, visibility, location) -> OtherItem:
        kind, name = self._classify_other_item()
        self._skip_item_tokens(brace_terminated=_OTHER_ITEM_KINDS.get(kind, True))
        return OtherItem(
            kind=kind,
            name=name,
            visibility=visibility,
            attributes=attributes,
            location=location,
        )

    def _classify_other_item(self) -> Tuple[str, Optional[str]]:
        """Name the kind of an unsupported item without consuming it."""
        offset = 0
        # qualifiers that can precede the item keyword
        while self._peek_at(offset).type == TokenType.IDENT and self._peek_at(offset).value in (
            "async", "unsafe", "default", "auto",
        ):
            offset += 1
        tok = self._peek_at(offset)
        nxt = self._peek_at(offset + 1)

        if tok.is_ident("const") and (nxt.is_ident("fn") or nxt.is_ident("unsafe") or nxt.is_ident("async")):
            return "fn", None
        if tok.is_ident("extern"):
            if nxt.is_ident("crate"):
                return "extern crate", None
            return "extern", None
        if tok.is_ident("macro_rules") and nxt.is_punct("!"):
            name_tok = self._peek_at(offset + 2)
            return "macro", name_tok.value if name_tok.type == TokenType.IDENT else None
        if tok.type == TokenType.IDENT and tok.value in _OTHER_ITEM_KINDS:
            return tok.value, nxt.value if nxt.type == TokenType.IDENT else None
        if tok.type == TokenType.IDENT and nxt.is_punct("!"):
            return "macro", tok.value
        if tok.type == TokenType.IDENT and nxt.is_punct("::"):
            # path-qualified macro invocation such as `a::b!{...}`
            probe = offset
            while self._peek_at(probe).type == TokenType.IDENT and self._peek_at(probe + 1).is_punct("::"):
                probe += 2
            if self._peek_at(probe + 1).is_punct("!"):
                return "macro", self._peek_at(probe).value
        raise self._error("Expected an item")

    def _skip_item_tokens(self, brace_terminated: bool) -> None:
        """
        Consume one item as a balanced token run.

        Ends after a `;` at depth 0, or after a top-level `{...}` group when
        the item kind is closed by its body.
        """
        self._parse_outer_attributes()
        while True:
            tok = self._current()
            if tok.type == TokenType.EOF:
                raise self._error("Unexpected end of input inside item")
            if tok.is_punct(";"):
                self._advance()
                return
            if tok.is_punct("}"):
                raise self._error("Unexpected '}' inside item")
            if tok.type == TokenType.PUNCT and tok.value in _OPENERS:
                is_brace = tok.is_punct("{")
                self._skip_group()
                if is_brace and brace_terminated:
                    self._match_punct(";")
                    return
            else:
                self._advance()

    def _parse_where_clause(self, *stops: str) -> str:
        if not self._current().is_ident("where"):
            return ""
        start = self.pos
        self._advance()
        self._skip_until(*stops)
        return self._text_since(start)

    # -------------------------------------------------------------------
    # Types and paths
    # -------------------------------------------------------------------

    def parse_type(self) -> TypeNode:
        start = self.pos
        tok = self._current()

        if tok.is_punct("("):
            self._skip_group()
            return TupleType(self._text_since(start))

        if tok.is_punct("["):
            is_array = self._group_has_top_level(";")
            self._skip_group()
            text = self._text_since(start)
            return ArrayType(text) if is_array else SliceType(text)

        if tok.is_punct("&") or tok.is_punct("&&"):
            self._advance()
            if self._current().type == TokenType.LIFETIME:
                self._advance()
            self._match_keyword("mut")
            self.parse_type()
            return ReferenceType(self._text_since(start))

        if tok.is_punct("*"):
            self._advance()
            if not (self._match_keyword("const") or self._match_keyword("mut")):
                raise self._error("Expected 'const' or 'mut' after '*'")
            self.parse_type()
            return PointerType(self._text_since(start))

        if tok.is_punct("!"):
            self._advance()
            return OpaqueType(self._text_since(start), form="never")

        if tok.is_ident("_"):
            self._advance()
            return OpaqueType(self._text_since(start), form="infer")

        if tok.is_ident("fn") or tok.is_ident("unsafe") or tok.is_ident("extern") or tok.is_ident("for"):
            self._parse_fn_pointer()
            return OpaqueType(self._text_since(start), form="fn")

        if tok.is_ident("dyn") or tok.is_ident("impl"):
            self._advance()
            self._parse_bounds()
            return OpaqueType(self._text_since(start), form=tok.value)

        if tok.is_punct("<"):
            self._skip_angle()
            while self._match_punct("::"):
                self._parse_path_segment()
            return OpaqueType(self._text_since(start), form="qualified")

        if tok.is_punct("::") or tok.type == TokenType.IDENT:
            path = self.parse_path()
            if self._current().is_punct("!"):
                self._advance()
                if not (self._current().type == TokenType.PUNCT and self._current().value in _OPENERS):
                    raise self._error("Expected macro delimiter")
                self._skip_group()
                return OpaqueType(self._text_since(start), form="macro")
            if self._current().is_punct("+"):
                # bare trait object: `Trait + Send`
                while self._match_punct("+"):
                    self._parse_bound()
                return OpaqueType(self._text_since(start), form="dyn")
            return PathType(path)

        raise self._error("Expected a type")

    def _group_has_top_level(self, value: str) -> bool:
        depth = 0
        for tok in self.tokens[self.pos:]:
            if tok.type == TokenType.PUNCT and tok.value in _OPENERS:
                depth += 1
            elif tok.type == TokenType.PUNCT and tok.value in _CLOSERS:
                depth -= 1
                if depth == 0:
                    return False
            elif depth == 1 and tok.is_punct(value):
                return True
            elif tok.type == TokenType.EOF:
                return False
        return False

    def _parse_fn_pointer(self) -> None:
        if self._match_keyword("for"):
            if not self._current().is_punct("<"):
                raise self._error("Expected '<' after 'for'")
            self._skip_angle()
        self._match_keyword("unsafe")
        if self._match_keyword("extern"):
            if self._current().type == TokenType.STRING:
                self._advance()
        self._expect_keyword("fn")
        if not self._current().is_punct("("):
            raise self._error("Expected '('")
        self._skip_group()
        if self._match_punct("->"):
            self.parse_type()

    def _parse_bounds(self) -> None:
        self._parse_bound()
        while self._match_punct("+"):
            self._parse_bound()

    def _parse_bound(self) -> None:
        if self._current().type == TokenType.LIFETIME:
            self._advance()
            return
        if self._current().is_punct("("):
            self._skip_group()
            return
        self._match_punct("?")
        if self._current().is_ident("for") and self._peek_at(1).is_punct("<"):
            self._advance()
            self._skip_angle()
        self.parse_path()

    def parse_path(self) -> Path:
        leading_colon = self._match_punct("::") is not None
        segments = [self._parse_path_segment()]
        while self._current().is_punct("::") and self._peek_at(1).type == TokenType.IDENT:
            self._advance()
            segments.append(self._parse_path_segment())
        return Path(segments=tuple(segments), leading_colon=leading_colon)

    def _parse_path_segment(self) -> PathSegment:
        ident = self._expect_ident("path segment").value
        start = self.pos
        if self._current().is_punct("<"):
            self._skip_angle()
        elif self._current().is_punct("::") and self._peek_at(1).is_punct("<"):
            self._advance()
            self._skip_angle()
        elif ident in _FN_TRAITS and self._current().is_punct("("):
            self._skip_group()
            if self._match_punct("->"):
                self.parse_type()
        arguments = self._text_since(start) if self.pos > start else ""
        return PathSegment(ident=ident, arguments=arguments)

    # -------------------------------------------------------------------
    # Use trees
    # -------------------------------------------------------------------

    def parse_use_tree(self) -> UseTree:
        tok = self._current()
        if self._match_punct("*"):
            return UseGlob()
        if tok.is_punct("{"):
            self._advance()
            items: List[UseTree] = []
            while not self._current().is_punct("}"):
                items.append(self.parse_use_tree())
                if not self._match_punct(","):
                    break
            self._expect_punct("}")
            return UseGroup(tuple(items))

        ident = self._expect_ident("use path segment").value
        if self._match_punct("::"):
            return UsePath(ident=ident, tree=self.parse_use_tree())
        if self._match_keyword("as"):
            rename_tok = self._current()
            if rename_tok.type != TokenType.IDENT:
                raise self._error("Expected rename after 'as'")
            self._advance()
            return UseRename(ident=ident, rename=rename_tok.value)
        return UseName(ident=ident)


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def parse_module_block(source: str, filename: str = "<input>", line: int = 1, column: int = 1) -> ModuleBlock:
    """
    Parse an annotated block (without the generator attribute) into a ModuleBlock.

    Args:
        source: Block text, e.g. "mod platform { pub type X = Y; }"
        filename, line, column: Where `source` starts, for diagnostics

    Returns:
        ModuleBlock with every item parsed, supported or not

    Raises:
        SpiParseError: If the text is not a well-formed module declaration
    """
    tokens = tokenize(source, filename=filename, line=line, column=column)
    parser = Parser(tokens, filename=filename)
    block = parser.parse_module_block()
    parser.expect_eof()
    return block


def parse_type(source: str) -> TypeNode:
    """Parse a standalone type, mainly for building syntax in tests and examples."""
    parser = Parser(tokenize(source))
    node = parser.parse_type()
    parser.expect_eof()
    return node


def parse_path(source: str) -> Path:
    """Parse a standalone path such as `a::b::C<T>`."""
    parser = Parser(tokenize(source))
    path = parser.parse_path()
    parser.expect_eof()
    return path


__all__ = [
    "Parser",
    "parse_module_block",
    "parse_path",
    "parse_type",
]
