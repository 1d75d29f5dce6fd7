"""
Tokenizer for attribute arguments and declarative blocks.

Produces a flat token list with line/column and character offsets.
Comments are dropped except doc comments. Outer docs (`/// ...`,
`/** ... */`) become DOC tokens so they can travel with the item they
document; inner docs (`//! ...`, `/*! ... */`) become INNER_DOC tokens.
`>=` is never produced: `>` followed by `=` stays two tokens so generic
lists such as `X<T>= Y` close where the host lexer closes them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from platform_spi.diagnostics import SourceLocation, SpiParseError


class TokenType(Enum):
    IDENT = "ident"
    LIFETIME = "lifetime"
    STRING = "string"
    NUMBER = "number"
    CHAR = "char"
    DOC = "doc"
    INNER_DOC = "inner_doc"
    PUNCT = "punct"
    EOF = "eof"


@dataclass(frozen=True)
class Token:
    type: TokenType
    value: str
    location: SourceLocation
    start: int
    end: int

    def is_punct(self, value: str) -> bool:
        return self.type == TokenType.PUNCT and self.value == value

    def is_ident(self, value: str) -> bool:
        return self.type == TokenType.IDENT and self.value == value

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, {self.location})"


# Multi-character punctuation first so the alternation prefers it.
_PUNCT = [
    "::", "->", "=>", "==", "!=", "<=", "&&", "||", "..=", "...", "..",
    "+=", "-=", "*=", "/=",
    "#", "!", "=", "<", ">", "(", ")", "[", "]", "{", "}", ",", ";", ":",
    "&", "*", "+", "-", "/", "%", "^", "|", "?", ".", "@", "$", "~",
]

_TOKEN_RE = re.compile(
    r"""
    (?P<newline>\n)
  | (?P<space>[ \t\r\f\v]+)
  | (?P<doc>///[^/\n][^\n]*|///$|///(?=\n))
  | (?P<inner_doc>//![^\n]*)
  | (?P<line_comment>//[^\n]*)
  | (?P<block_comment>/\*)
  | (?P<string>b?"(?:\\.|[^"\\])*")
  | (?P<raw_string>b?r(?P<hashes>\#*)")
  | (?P<char>b?'(?:\\x[0-9A-Fa-f]{2}|\\u\{[0-9A-Fa-f_]{1,6}\}|\\.|[^'\\])')
  | (?P<lifetime>'[A-Za-z_][A-Za-z0-9_]*)
  | (?P<ident>(?:r\#)?[A-Za-z_][A-Za-z0-9_]*)
  | (?P<number>[0-9][0-9A-Za-z_]*(?:\.[0-9][0-9_]*)?)
  | (?P<punct>"""
    + "|".join(re.escape(p) for p in _PUNCT)
    + r""")
    """,
    re.VERBOSE | re.MULTILINE,
)


def tokenize(source: str, filename: str = "<input>", line: int = 1, column: int = 1) -> List[Token]:
    """
    Tokenize source text.

    Args:
        source: Text to tokenize
        filename: Name used in token locations
        line, column: Position of the first character of `source`
            (so a fragment of a larger file keeps real positions)

    Returns:
        Token list terminated by a single EOF token

    Raises:
        SpiParseError: On characters or literals that cannot be tokenized
    """
    tokens: List[Token] = []
    pos = 0
    line_start = pos - (column - 1)

    while pos < len(source):
        match = _TOKEN_RE.match(source, pos)
        if match is None:
            loc = SourceLocation(line, pos - line_start + 1, filename)
            raise SpiParseError(f"Unexpected character {source[pos]!r}", loc)

        kind = match.lastgroup
        if kind == "hashes":
            kind = "raw_string"
        text = match.group(0)
        loc = SourceLocation(line, pos - line_start + 1, filename)
        end = match.end()

        if kind == "block_comment":
            end = _skip_block_comment(source, pos, loc)
            text = source[pos:end]
        elif kind == "raw_string":
            closing = '"' + match.group("hashes")
            close_at = source.find(closing, match.end())
            if close_at < 0:
                raise SpiParseError("Unterminated raw string literal", loc)
            end = close_at + len(closing)
            text = source[pos:end]

        if kind == "doc":
            tokens.append(Token(TokenType.DOC, text[3:].strip(), loc, pos, end))
        elif kind == "inner_doc":
            tokens.append(Token(TokenType.INNER_DOC, text[3:].strip(), loc, pos, end))
        elif kind == "block_comment":
            doc = _block_doc(text)
            if doc is not None:
                tokens.append(Token(doc[0], doc[1], loc, pos, end))
        elif kind in ("string", "raw_string"):
            tokens.append(Token(TokenType.STRING, text, loc, pos, end))
        elif kind == "char":
            tokens.append(Token(TokenType.CHAR, text, loc, pos, end))
        elif kind == "lifetime":
            tokens.append(Token(TokenType.LIFETIME, text, loc, pos, end))
        elif kind == "ident":
            tokens.append(Token(TokenType.IDENT, text, loc, pos, end))
        elif kind == "number":
            tokens.append(Token(TokenType.NUMBER, text, loc, pos, end))
        elif kind == "punct":
            tokens.append(Token(TokenType.PUNCT, text, loc, pos, end))

        # Keep line bookkeeping for anything that spans newlines.
        newlines = source.count("\n", pos, end)
        if newlines:
            line += newlines
            line_start = source.rfind("\n", pos, end) + 1
        pos = end

    eof_loc = SourceLocation(line, pos - line_start + 1, filename)
    tokens.append(Token(TokenType.EOF, "", eof_loc, pos, pos))
    return tokens


def _skip_block_comment(source: str, pos: int, loc: SourceLocation) -> int:
    """Return the offset just past a (possibly nested) block comment."""
    depth = 0
    i = pos
    while i < len(source):
        if source.startswith("/*", i):
            depth += 1
            i += 2
        elif source.startswith("*/", i):
            depth -= 1
            i += 2
            if depth == 0:
                return i
        else:
            i += 1
    raise SpiParseError("Unterminated block comment", loc)


def _block_doc(text: str) -> Optional[Tuple[TokenType, str]]:
    """Classify a block comment as an outer or inner doc comment, with its text."""
    if text.startswith("/**") and not text.startswith("/***") and text != "/**/":
        token_type = TokenType.DOC
    elif text.startswith("/*!"):
        token_type = TokenType.INNER_DOC
    else:
        return None

    lines = []
    for raw in text[3:-2].split("\n"):
        line = raw.strip()
        if line.startswith("*"):
            line = line[1:].strip()
        lines.append(line)
    while lines and not lines[0]:
        lines.pop(0)
    while lines and not lines[-1]:
        lines.pop()
    return token_type, "\n".join(lines)


def string_value(token: Token) -> str:
    """Decode the value of a STRING token (plain or raw)."""
    text = token.value
    if text.startswith("b"):
        text = text[1:]
    if text.startswith("r"):
        hashes = len(text) - len(text[1:].lstrip("#")) - 1
        return text[2 + hashes:len(text) - 1 - hashes]
    body = text[1:-1]
    return re.sub(r"\\(.)", _unescape, body)


_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "0": "\0", "\\": "\\", '"': '"', "'": "'"}


def _unescape(match: "re.Match[str]") -> str:
    return _ESCAPES.get(match.group(1), match.group(1))


# ---------------------------------------------------------------------------
# Re-joining tokens into source text
# ---------------------------------------------------------------------------

_NO_SPACE_BEFORE = {",", ";", ")", "]", ">", "::", ".", "?", ":"}
_NO_SPACE_AFTER = {"(", "[", "<", "::", "&", "#", ".", "!", "*", "$"}


def join_tokens(tokens: List[Token]) -> str:
    """
    Render a token run as compact source text.

    The spacing is a readability convention only; the host parser treats
    whitespace as insignificant between these tokens.
    """
    out: List[str] = []
    prev: Token | None = None
    for tok in tokens:
        if tok.type == TokenType.EOF:
            break
        if prev is not None and _needs_space(prev, tok):
            out.append(" ")
        out.append(tok.value)
        prev = tok
    return "".join(out)


def _needs_space(prev: Token, tok: Token) -> bool:
    if tok.type == TokenType.PUNCT and tok.value in _NO_SPACE_BEFORE:
        # `a: T` keeps a space after the colon, not before it
        return False
    if tok.is_punct("<") and prev.type == TokenType.IDENT:
        return False
    if tok.is_punct("(") and prev.type == TokenType.IDENT:
        return False
    if prev.type == TokenType.PUNCT and prev.value in _NO_SPACE_AFTER:
        return False
    return True


__all__ = ["Token", "TokenType", "join_tokens", "string_value", "tokenize"]
