"""
Serialization helpers for generator objects (Config, GeneratedOutput, diagnostics).

Provides a stable dict representation with JSON/YAML renderings, used by
`platform-spi inspect` and by tooling that wants the structure of an
expansion rather than its source text. Config round-trips; output and
diagnostics are one-way reports.
"""
from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List

import yaml

from platform_spi.backends.rust_source import render_path, render_type, render_use_tree
from platform_spi.diagnostics import Diagnostic
from platform_spi.model import (
    Config,
    ConditionalInclusion,
    ContractPair,
    DEFAULT_MODULE_PATH,
    FallbackCondition,
    GeneratedOutput,
    PlatformCondition,
    Reexport,
    TypeAlias,
)
from platform_spi.syntax import Path, PathType, TypeNode, use_tree_leaf_path, use_tree_rename


def config_to_dict(c: Config) -> Dict[str, Any]:
    return {"targets": list(c.targets), "module_path": c.module_path}


def config_from_dict(d: Dict[str, Any]) -> Config:
    return Config(
        targets=tuple(d.get("targets", [])),
        module_path=d.get("module_path", DEFAULT_MODULE_PATH),
    )


def path_to_dict(p: Path) -> Dict[str, Any]:
    return {
        "text": render_path(p),
        "segments": [s.ident for s in p.segments],
        "global": p.leading_colon,
    }


def type_to_dict(t: TypeNode) -> Dict[str, Any]:
    if isinstance(t, PathType):
        return {"kind": "path", "path": path_to_dict(t.path)}
    return {"kind": t.kind, "text": t.text}


def inclusion_to_dict(inc: ConditionalInclusion) -> Dict[str, Any]:
    condition = inc.condition
    if isinstance(condition, PlatformCondition):
        cond = {"type": "platform", "platform": condition.platform}
    elif isinstance(condition, FallbackCondition):
        cond = {"type": "fallback", "excluded": list(condition.excluded)}
    else:
        raise TypeError(f"Unsupported condition type: {type(condition)}")
    return {
        "module": inc.module_name,
        "condition": cond,
        "source_path": inc.source_path,
        "visibility": inc.visibility,
        "attributes": list(inc.attributes),
    }


def declaration_to_dict(item) -> Dict[str, Any]:
    if isinstance(item, TypeAlias):
        return {
            "type": "type_alias",
            "name": item.name,
            "generics": item.generics,
            "target": type_to_dict(item.target),
            "visibility": item.visibility,
        }
    if isinstance(item, Reexport):
        return {
            "type": "reexport",
            "tree": render_use_tree(item.tree),
            "path": list(use_tree_leaf_path(item.tree)),
            "rename": use_tree_rename(item.tree),
            "visibility": item.visibility,
        }
    raise TypeError(f"Unsupported declaration type: {type(item)}")


def contract_to_dict(pair: ContractPair) -> Dict[str, Any]:
    return {
        "implementing_type": render_type(pair.implementing_type),
        "interface": render_path(pair.interface_path),
    }


def output_to_dict(o: GeneratedOutput) -> Dict[str, Any]:
    return {
        "platform_modules": [inclusion_to_dict(i) for i in o.platform_module_refs],
        "fallback_module": inclusion_to_dict(o.fallback_module_ref),
        "hoisted": [declaration_to_dict(d) for d in o.hoisted_decls],
        "assertions": [contract_to_dict(p) for p in o.assertions],
    }


def output_to_json(o: GeneratedOutput) -> str:
    return json.dumps(output_to_dict(o), indent=2)


def output_to_yaml(o: GeneratedOutput) -> str:
    return yaml.safe_dump(output_to_dict(o), sort_keys=False)


def diagnostics_to_list(diagnostics: Iterable[Diagnostic]) -> List[Dict[str, Any]]:
    return [d.to_dict() for d in diagnostics]


def diagnostics_to_yaml(diagnostics: Iterable[Diagnostic]) -> str:
    return yaml.safe_dump({"errors": diagnostics_to_list(diagnostics)}, sort_keys=False)


def diagnostics_to_json(diagnostics: Iterable[Diagnostic]) -> str:
    return json.dumps({"errors": diagnostics_to_list(diagnostics)}, indent=2)
