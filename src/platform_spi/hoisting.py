"""
Declaration Validator and Item Classifier/Hoister.

Turns a parsed ModuleBlock into hoisted forwarding declarations and
contract pairs:

    type X = Y;               ->  type X = platform::Y;
    use A as B;               ->  use platform::A as B;
    impl Trait for X {}       ->  ContractPair(X, Trait)   (X is NOT prefixed)

Every item is visited. Diagnostics are collected across the whole block
and returned together; nothing stops at the first bad item.

IMPORTANT: This pass never mutates its input. Rewritten items are new
objects built with dataclasses.replace.
"""

from dataclasses import replace
from enum import Enum
from typing import List, Tuple, Union

from platform_spi.diagnostics import (
    Diagnostic,
    SpiResult,
    external_module_not_supported,
    malformed_contract_assertion,
    path_alias_only,
    unsupported_item_kind,
)
from platform_spi.model import (
    ContractAssertion,
    ContractPair,
    HoistedItems,
    ModuleBlock,
    Reexport,
    SpiItem,
    TypeAlias,
)
from platform_spi.syntax import PathType, UsePath


class ItemGrammar(Enum):
    """
    Which item kinds a declarative block may contain.

    CORE: type aliases and re-exports only
    WITH_CONTRACTS: additionally contract assertions (`impl Trait for T {}`)
    """

    CORE = "core"
    WITH_CONTRACTS = "with_contracts"

    @property
    def supported_kinds(self) -> List[str]:
        if self is ItemGrammar.WITH_CONTRACTS:
            return ["type", "use", "impl"]
        return ["type", "use"]


def check_spi_items(block: ModuleBlock) -> SpiResult[Tuple[SpiItem, ...]]:
    """
    Confirm the block is inline and return its item list.

    Fails with ExternalModuleNotSupported, attached to the module name,
    when the block is a `mod name;` reference to another file.
    """
    if not block.is_inline:
        return SpiResult.failure([
            external_module_not_supported(block.name, block.name_location or block.location)
        ])
    return SpiResult.success(block.items)


def hoist_type_alias(alias: TypeAlias, parent_module: str) -> Union[TypeAlias, Diagnostic]:
    """Re-root the alias target into `parent_module`, or PathAliasOnly for non-path targets."""
    if not isinstance(alias.target, PathType):
        return path_alias_only(alias.name, alias.location)
    hoisted_target = PathType(alias.target.path.prefixed(parent_module))
    return replace(alias, target=hoisted_target)


def hoist_use_alias(alias: Reexport, parent_module: str) -> Reexport:
    """Wrap the whole use tree in `parent_module::`; renames are kept as written."""
    return replace(alias, tree=UsePath(ident=parent_module, tree=alias.tree))


def extract_contract(assertion: ContractAssertion) -> Union[ContractPair, Diagnostic]:
    """
    Turn a well-formed `impl Trait for Type {}` into a ContractPair.

    The implementing type is kept as written: it names the hoisted alias in
    the enclosing scope, not a member of the per-platform module.
    """
    reason = None
    if assertion.visibility:
        reason = "visibility is not allowed"
    elif assertion.body_items:
        reason = "the impl body must be empty"
    elif assertion.generics:
        reason = "generic parameters are not allowed"
    elif assertion.where_clause:
        reason = "where clauses are not allowed"
    elif assertion.negative:
        reason = "negative impls are not allowed"
    elif assertion.interface_path is None:
        reason = "a trait is required"

    if reason is not None:
        return malformed_contract_assertion(reason, assertion.location)
    return ContractPair(
        implementing_type=assertion.implementing_type,
        interface_path=assertion.interface_path,
    )


def hoist_items(
    items: Tuple[SpiItem, ...],
    parent_module: str,
    grammar: ItemGrammar = ItemGrammar.WITH_CONTRACTS,
) -> SpiResult[HoistedItems]:
    """
    Classify and rewrite every item of a block.

    Args:
        items: Items of the inline block, in source order
        parent_module: Name of the block; becomes the leading path segment
        grammar: Which item kinds are accepted

    Returns:
        SpiResult with HoistedItems (declarations and contract pairs, both
        in source order), or every diagnostic found in the block
    """
    invalid_items: List[Diagnostic] = []
    declarations: List[Union[TypeAlias, Reexport]] = []
    contracts: List[ContractPair] = []

    for item in items:
        if isinstance(item, ContractAssertion) and grammar is ItemGrammar.WITH_CONTRACTS:
            pair = extract_contract(item)
            if isinstance(pair, Diagnostic):
                invalid_items.append(pair)
            else:
                contracts.append(pair)
            continue

        if isinstance(item, TypeAlias):
            hoisted = hoist_type_alias(item, parent_module)
        elif isinstance(item, Reexport):
            hoisted = hoist_use_alias(item, parent_module)
        else:
            hoisted = unsupported_item_kind(item.kind_name, grammar.supported_kinds, item.location)

        if isinstance(hoisted, Diagnostic):
            invalid_items.append(hoisted)
        else:
            declarations.append(hoisted)

    if invalid_items:
        return SpiResult.failure(invalid_items)

    return SpiResult.success(HoistedItems(declarations=tuple(declarations), contracts=tuple(contracts)))


def rewrite_module(
    block: ModuleBlock,
    grammar: ItemGrammar = ItemGrammar.WITH_CONTRACTS,
) -> SpiResult[HoistedItems]:
    """Validate the block and hoist its items (the full validation/rewrite pass)."""
    checked = check_spi_items(block)
    if not checked.ok:
        return SpiResult.failure(checked.diagnostics)
    return hoist_items(checked.value, block.name, grammar)


__all__ = [
    "ItemGrammar",
    "check_spi_items",
    "extract_contract",
    "hoist_items",
    "hoist_type_alias",
    "hoist_use_alias",
    "rewrite_module",
]
