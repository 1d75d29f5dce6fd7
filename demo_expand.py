#!/usr/bin/env python3
"""
Demo: expand the example platform SPI block.

Shows the full workflow:
1. Parse the attribute arguments and the annotated block
2. Validate and hoist the SPI items
3. Emit the conditional inclusions and render them as source
4. Show which inclusion each platform build would compile
"""

from platform_spi.backends import render_output
from platform_spi.examples import EXAMPLE_ARGS, EXAMPLE_BLOCK, EXAMPLE_SOURCE
from platform_spi.expansion import expand, preprocess_source
from platform_spi.serialization import output_to_yaml


def main():
    print("=" * 80)
    print("PLATFORM SPI EXPANSION DEMO")
    print("=" * 80)

    # =========================================================================
    # STEP 1-3: Expand one block
    # =========================================================================
    print("\n1. EXPANDING BLOCK...")
    result = expand(EXAMPLE_ARGS, EXAMPLE_BLOCK)
    output = result.unwrap()
    print(f"   ✓ Inclusions: {len(output.inclusions)}")
    print(f"   ✓ Hoisted declarations: {len(output.hoisted_decls)}")
    print(f"   ✓ Contract assertions: {len(output.assertions)}")

    print("\n2. GENERATED SOURCE:")
    print("-" * 80)
    print(render_output(output))

    print("3. STRUCTURE:")
    print("-" * 80)
    print(output_to_yaml(output))

    # =========================================================================
    # STEP 4: Compile-time selection
    # =========================================================================
    print("4. SELECTION PER PLATFORM:")
    for platform in ["macos", "windows", "linux", "freebsd"]:
        inclusion = output.select(platform)
        print(f"   {platform:<8} -> {inclusion.source_path}")

    print("\n5. WHOLE FILE:")
    print("-" * 80)
    print(preprocess_source(EXAMPLE_SOURCE, filename="example_basic.rs"))
    print("=" * 80)


if __name__ == "__main__":
    main()
