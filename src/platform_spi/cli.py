"""platform-spi CLI: expand platform SPI blocks in source files.

Commands:
  platform-spi expand <file> [-o OUT]     Rewrite every annotated block
  platform-spi inspect <file> [--format]  Dump the structured expansion per block

Exit codes:
  0  success
  1  one or more blocks failed to expand (diagnostics on stderr)
  2  usage, file or settings error
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

import yaml

from platform_spi import __version__
from platform_spi.diagnostics import SpiExpansionError
from platform_spi.expansion import expand, find_use_sites, preprocess_source
from platform_spi.hoisting import ItemGrammar
from platform_spi.serialization import diagnostics_to_list, output_to_dict
from platform_spi.settings import GeneratorSettings, SettingsError, load_settings


logger = logging.getLogger("platform_spi")


def _load_settings(args: argparse.Namespace) -> GeneratorSettings:
    settings = load_settings(args.config, start_dir=args.settings_dir)
    if args.core:
        settings = settings.with_grammar(ItemGrammar.CORE)
    return settings


def _read_source(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def _report(error: SpiExpansionError) -> None:
    for diagnostic in error.diagnostics:
        print(str(diagnostic), file=sys.stderr)


def cmd_expand(args: argparse.Namespace) -> int:
    """Expand every annotated block of a file and write the result."""
    settings = _load_settings(args)
    source = _read_source(args.file)
    filename = "<stdin>" if args.file == "-" else args.file

    try:
        expanded = preprocess_source(source, settings, filename=filename, inline_errors=args.inline_errors)
    except SpiExpansionError as e:
        _report(e)
        return 1

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(expanded)
        logger.info("Wrote %s", args.output)
    else:
        sys.stdout.write(expanded)
    return 0


def cmd_inspect(args: argparse.Namespace) -> int:
    """Print the structured expansion (or diagnostics) of each annotated block."""
    settings = _load_settings(args)
    source = _read_source(args.file)
    filename = "<stdin>" if args.file == "-" else args.file

    try:
        sites = find_use_sites(source, settings.attribute_name, filename)
    except SpiExpansionError as e:
        _report(e)
        return 1

    report = []
    failed = False
    for site in sites:
        result = expand(
            site.args,
            site.item,
            settings,
            filename,
            args_position=(site.args_location.line, site.args_location.column),
            item_position=(site.item_location.line, site.item_location.column),
        )
        entry = {"line": site.item_location.line}
        if result.ok:
            entry["output"] = output_to_dict(result.value)
        else:
            failed = True
            entry["errors"] = diagnostics_to_list(result.diagnostics)
        report.append(entry)

    if args.format == "json":
        print(json.dumps({"file": filename, "blocks": report}, indent=2))
    else:
        sys.stdout.write(yaml.safe_dump({"file": filename, "blocks": report}, sort_keys=False))
    return 1 if failed else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="platform-spi",
        description="Expand platform SPI module blocks into per-platform module inclusions.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase log verbosity")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("file", help="Source file to process ('-' for stdin)")
    common.add_argument("--config", default=None, help="Settings file (default: nearest .platform-spi.yml)")
    common.add_argument("--settings-dir", default=".", help="Directory to start the settings search from")
    common.add_argument(
        "--core",
        action="store_true",
        help="Only allow type and use items (no contract assertions)",
    )

    sub = parser.add_subparsers(dest="command")

    p_expand = sub.add_parser("expand", parents=[common], help="Rewrite every annotated block")
    p_expand.add_argument("-o", "--output", default=None, help="Write result here instead of stdout")
    p_expand.add_argument(
        "--inline-errors",
        action="store_true",
        help="Render failed blocks as compile_error! items instead of failing",
    )
    p_expand.set_defaults(func=cmd_expand)

    p_inspect = sub.add_parser("inspect", parents=[common], help="Show the structured expansion")
    p_inspect.add_argument("--format", choices=["yaml", "json"], default="yaml")
    p_inspect.set_defaults(func=cmd_inspect)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")

    if not getattr(args, "func", None):
        parser.print_help()
        return 2

    try:
        return args.func(args)
    except SettingsError as e:
        print(f"Settings error: {e}", file=sys.stderr)
        return 2
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
