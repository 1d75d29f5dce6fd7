"""
Source generator for expanded platform SPI blocks.

Renders a GeneratedOutput as the item text that replaces the annotated
block:

    #[cfg(target_os = "macos")]
    #[path = "./macos.rs"]
    mod platform;
    ...
    #[cfg(not(any(target_os = "macos", ...)))]
    #[path = "./unsupported.rs"]
    mod platform;

    pub type PlatformService = platform::ServiceImpl;
    pub use platform::ErrorImpl as PlatformError;

    static_assertions::assert_impl_all!(PlatformService: SomeTrait);

Failed generations render as one compile_error! per diagnostic.
"""

from typing import Iterable, List, Optional

from platform_spi.diagnostics import Diagnostic
from platform_spi.model import (
    ConditionalInclusion,
    ContractPair,
    FallbackCondition,
    GeneratedOutput,
    PlatformCondition,
    Reexport,
    TypeAlias,
)
from platform_spi.settings import GeneratorSettings
from platform_spi.syntax import (
    Path,
    PathType,
    TypeNode,
    UseGlob,
    UseGroup,
    UseName,
    UsePath,
    UseRename,
    UseTree,
)


def _escape_string(s: str) -> str:
    """Quote a value as a string literal."""
    s = s.replace("\\", "\\\\")
    s = s.replace('"', '\\"')
    s = s.replace("\n", "\\n")
    return f'"{s}"'


# ===========================================================================
# SYNTAX
# ===========================================================================


def render_path(path: Path) -> str:
    body = "::".join(f"{seg.ident}{seg.arguments}" for seg in path.segments)
    return f"::{body}" if path.leading_colon else body


def render_type(node: TypeNode) -> str:
    if isinstance(node, PathType):
        return render_path(node.path)
    return node.text


def render_use_tree(tree: UseTree) -> str:
    if isinstance(tree, UsePath):
        return f"{tree.ident}::{render_use_tree(tree.tree)}"
    if isinstance(tree, UseName):
        return tree.ident
    if isinstance(tree, UseRename):
        return f"{tree.ident} as {tree.rename}"
    if isinstance(tree, UseGlob):
        return "*"
    if isinstance(tree, UseGroup):
        return "{" + ", ".join(render_use_tree(t) for t in tree.items) + "}"
    raise TypeError(f"Unsupported use tree: {type(tree)}")


def _with_vis(visibility: str, text: str) -> str:
    return f"{visibility} {text}" if visibility else text


# ===========================================================================
# ITEMS
# ===========================================================================


def render_condition(inclusion: ConditionalInclusion, condition_key: str = "target_os") -> str:
    condition = inclusion.condition
    if isinstance(condition, PlatformCondition):
        return f"{condition_key} = {_escape_string(condition.platform)}"
    if isinstance(condition, FallbackCondition):
        options = ", ".join(f"{condition_key} = {_escape_string(p)}" for p in condition.excluded)
        return f"not(any({options}))"
    raise TypeError(f"Unsupported condition: {type(condition)}")


def render_inclusion(inclusion: ConditionalInclusion, condition_key: str = "target_os") -> List[str]:
    lines = [
        f"#[cfg({render_condition(inclusion, condition_key)})]",
        f"#[path = {_escape_string(inclusion.source_path)}]",
    ]
    lines.extend(inclusion.attributes)
    lines.append(_with_vis(inclusion.visibility, f"mod {inclusion.module_name};"))
    return lines


def render_declaration(item) -> List[str]:
    lines = list(item.attributes)
    if isinstance(item, TypeAlias):
        where = f" {item.where_clause}" if item.where_clause else ""
        decl = f"type {item.name}{item.generics} = {render_type(item.target)}{where};"
    elif isinstance(item, Reexport):
        colon = "::" if item.leading_colon else ""
        decl = f"use {colon}{render_use_tree(item.tree)};"
    else:
        raise TypeError(f"Unsupported hoisted declaration: {type(item)}")
    lines.append(_with_vis(item.visibility, decl))
    return lines


def render_assertion(pair: ContractPair, assertion_macro: str = "static_assertions::assert_impl_all") -> str:
    return f"{assertion_macro}!({render_type(pair.implementing_type)}: {render_path(pair.interface_path)});"


# ===========================================================================
# DOCUMENT
# ===========================================================================


def render_output(output: GeneratedOutput, settings: Optional[GeneratorSettings] = None) -> str:
    """
    Render the full replacement text for one annotated block.

    Args:
        output: Emitter result
        settings: Condition key and assertion macro to use (defaults if None)

    Returns:
        Source text, sections separated by a blank line, ending in a newline
    """
    settings = settings or GeneratorSettings()
    sections: List[List[str]] = []

    inclusions: List[str] = []
    for inclusion in output.inclusions:
        if inclusions:
            inclusions.append("")
        inclusions.extend(render_inclusion(inclusion, settings.condition_key))
    sections.append(inclusions)

    if output.hoisted_decls:
        decls: List[str] = []
        for item in output.hoisted_decls:
            decls.extend(render_declaration(item))
        sections.append(decls)

    if output.assertions:
        sections.append([render_assertion(pair, settings.assertion_macro) for pair in output.assertions])

    return "\n\n".join("\n".join(section) for section in sections) + "\n"


def render_diagnostics(diagnostics: Iterable[Diagnostic]) -> str:
    """Render failures the way the host compiler reports them: compile_error! items."""
    lines = []
    for d in diagnostics:
        message = f"{d.location}: {d.message}" if d.location else d.message
        lines.append(f"compile_error!({_escape_string(message)});")
    return "\n".join(lines) + "\n"


__all__ = [
    "render_assertion",
    "render_declaration",
    "render_diagnostics",
    "render_inclusion",
    "render_output",
    "render_path",
    "render_type",
    "render_use_tree",
]
