"""
Expansion Service: the generator's entry point for the host toolchain.

Given the attribute arguments and the annotated block, runs the whole
pipeline:

    parse_attributes ─┐
                      ├─> rewrite_module (validate + hoist) ─> emit ─> render
    parse_module_block┘

`expand` returns the structured result; `expand_to_source` returns the
replacement text; `preprocess_source` rewrites every annotated block in a
source file. Each use-site is expanded independently and no state is kept
between calls.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from platform_spi.attributes import parse_attributes
from platform_spi.backends.rust_source import render_diagnostics, render_output
from platform_spi.diagnostics import (
    Diagnostic,
    SourceLocation,
    SpiExpansionError,
    SpiParseError,
    SpiResult,
)
from platform_spi.emitter import emit
from platform_spi.hoisting import rewrite_module
from platform_spi.model import GeneratedOutput
from platform_spi.parser import Parser, parse_module_block
from platform_spi.settings import GeneratorSettings
from platform_spi.tokens import Token, TokenType, tokenize


logger = logging.getLogger(__name__)


def expand(
    args: str,
    item: str,
    settings: Optional[GeneratorSettings] = None,
    filename: str = "<input>",
    args_position: Tuple[int, int] = (1, 1),
    item_position: Tuple[int, int] = (1, 1),
) -> SpiResult[GeneratedOutput]:
    """
    Expand one annotated block.

    Args:
        args: Attribute arguments, e.g. 'targets = [macos, linux]'
        item: The annotated block, e.g. 'mod platform { pub type X = Y; }'
        settings: Generator settings (defaults if None)
        filename: Source name used in diagnostics
        args_position, item_position: (line, column) where `args` and
            `item` start inside `filename`

    Returns:
        SpiResult with the GeneratedOutput, or every diagnostic found.
        Attribute diagnostics come first, then block diagnostics.
    """
    settings = settings or GeneratorSettings()

    config_result = parse_attributes(args, filename, *args_position)

    try:
        block = parse_module_block(item, filename, *item_position)
    except SpiParseError as e:
        return SpiResult.failure(config_result.diagnostics + (e.to_diagnostic(),))

    hoisted = rewrite_module(block, settings.grammar)

    diagnostics = config_result.diagnostics + hoisted.diagnostics
    if diagnostics:
        logger.debug("Expansion of module '%s' failed with %d diagnostic(s)", block.name, len(diagnostics))
        return SpiResult.failure(diagnostics)

    output = emit(
        config_result.value,
        block,
        hoisted.value,
        extension=settings.extension,
        fallback_name=settings.fallback_name,
    )
    logger.debug(
        "Expanded module '%s': %d inclusion(s), %d declaration(s), %d assertion(s)",
        block.name,
        len(output.inclusions),
        len(output.hoisted_decls),
        len(output.assertions),
    )
    return SpiResult.success(output)


def expand_to_source(
    args: str,
    item: str,
    settings: Optional[GeneratorSettings] = None,
    filename: str = "<input>",
) -> str:
    """
    Expand one annotated block and render the replacement text.

    Raises:
        SpiExpansionError: Carrying every diagnostic, if the expansion failed
    """
    settings = settings or GeneratorSettings()
    output = expand(args, item, settings, filename).unwrap()
    return render_output(output, settings)


# ---------------------------------------------------------------------------
# Whole-file preprocessing
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class UseSite:
    """
    One annotated block found in a source file.

    Properties:
        start, end: Character span of attribute + block (replaced as a whole)
        args: Attribute argument text
        args_location: Where `args` starts
        item: Block text following the attribute
        item_location: Where `item` starts
    """

    start: int
    end: int
    args: str
    args_location: SourceLocation
    item: str
    item_location: SourceLocation


class _SiteScanner(Parser):
    """Finds `#[<attribute_name>(...)]` attributes and the blocks they annotate."""

    def __init__(self, tokens: List[Token], source: str, attribute_name: str, filename: str):
        super().__init__(tokens, filename)
        self.source = source
        self.attribute_name = attribute_name

    def scan(self) -> List[UseSite]:
        sites: List[UseSite] = []
        while not self._at_eof():
            if self._at_generator_attribute():
                sites.append(self._read_site())
            else:
                self._advance()
        return sites

    def _at_generator_attribute(self) -> bool:
        if not (self._current().is_punct("#") and self._peek_at(1).is_punct("[")):
            return False
        # the attribute path may be qualified: `#[platform_spi::platform_spi(...)]`
        offset = 2
        while self._peek_at(offset).type == TokenType.IDENT and self._peek_at(offset + 1).is_punct("::"):
            offset += 2
        name = self._peek_at(offset)
        after = self._peek_at(offset + 1)
        return name.is_ident(self.attribute_name) and (after.is_punct("(") or after.is_punct("]"))

    def _read_site(self) -> UseSite:
        attr_start = self._current()
        self._advance()  # '#'
        self._advance()  # '['
        while self._peek_at(1).is_punct("::"):
            self._advance()
            self._advance()
        self._expect_ident("attribute name")

        if self._current().is_punct("("):
            open_paren = self._current()
            self._skip_group()
            close_paren = self.tokens[self.pos - 1]
            args = self.source[open_paren.end:close_paren.start]
            loc = open_paren.location
            args_location = SourceLocation(loc.line, loc.column + 1, loc.file)
        else:
            args = ""
            args_location = self._loc()
        self._expect_punct("]")

        item_index = self.pos
        item_start = self._current()
        try:
            self.parse_module_block()
        except SpiParseError:
            # Re-scan from the item start just far enough to find where it ends;
            # the expansion itself reports the parse failure.
            self.pos = item_index
            self._skip_item_tokens(brace_terminated=True)
        item_end = self.tokens[self.pos - 1]

        return UseSite(
            start=attr_start.start,
            end=item_end.end,
            args=args,
            args_location=args_location,
            item=self.source[item_start.start:item_end.end],
            item_location=item_start.location,
        )


def find_use_sites(source: str, attribute_name: str = "platform_spi", filename: str = "<input>") -> List[UseSite]:
    """
    Locate every annotated block in a source file.

    Raises:
        SpiExpansionError: If the file cannot be tokenized, or an annotated
            item's extent cannot be determined
    """
    try:
        tokens = tokenize(source, filename=filename)
        return _SiteScanner(tokens, source, attribute_name, filename).scan()
    except SpiParseError as e:
        raise SpiExpansionError([e.to_diagnostic()])


def _indent_of(source: str, offset: int) -> str:
    line_start = source.rfind("\n", 0, offset) + 1
    prefix = source[line_start:offset]
    return prefix if prefix.strip() == "" else ""


def _reindent(text: str, indent: str) -> str:
    lines = text.rstrip("\n").split("\n")
    return "\n".join([lines[0]] + [f"{indent}{line}" if line else line for line in lines[1:]])


def preprocess_source(
    source: str,
    settings: Optional[GeneratorSettings] = None,
    filename: str = "<input>",
    inline_errors: bool = False,
) -> str:
    """
    Replace every annotated block in `source` with its expansion.

    Args:
        source: Full source file text
        settings: Generator settings (defaults if None)
        filename: Name used in diagnostics
        inline_errors: Render failed use-sites as compile_error! items
            instead of raising

    Returns:
        The rewritten source text

    Raises:
        SpiExpansionError: With the diagnostics of every failed use-site,
            unless inline_errors is set
    """
    settings = settings or GeneratorSettings()
    sites = find_use_sites(source, settings.attribute_name, filename)
    logger.info("%s: %d annotated block(s)", filename, len(sites))

    pieces: List[str] = []
    failures: List[Diagnostic] = []
    cursor = 0
    for site in sites:
        result = expand(
            site.args,
            site.item,
            settings,
            filename,
            args_position=(site.args_location.line, site.args_location.column),
            item_position=(site.item_location.line, site.item_location.column),
        )
        if result.ok:
            replacement = render_output(result.value, settings)
        else:
            failures.extend(result.diagnostics)
            replacement = render_diagnostics(result.diagnostics)

        pieces.append(source[cursor:site.start])
        pieces.append(_reindent(replacement, _indent_of(source, site.start)))
        cursor = site.end
    pieces.append(source[cursor:])

    if failures and not inline_errors:
        raise SpiExpansionError(failures)
    return "".join(pieces)


def preprocess_file(
    path: str,
    settings: Optional[GeneratorSettings] = None,
    inline_errors: bool = False,
) -> str:
    """Read a source file and return it with every annotated block expanded."""
    with open(path, "r", encoding="utf-8") as f:
        source = f.read()
    return preprocess_source(source, settings, filename=path, inline_errors=inline_errors)


__all__ = [
    "UseSite",
    "expand",
    "expand_to_source",
    "find_use_sites",
    "preprocess_file",
    "preprocess_source",
]
