"""
Emitter: Config + hoisted items → GeneratedOutput.

Produces, in order:
    - one conditional inclusion per target, sourced from {module_path}/{P}.{ext}
    - one fallback inclusion, sourced from {module_path}/{fallback}.{ext},
      active only when no target matches
    - the hoisted declarations
    - one contract assertion per recorded ContractPair

The fallback file is referenced, never checked for: a missing file only
matters to a build that actually selects it.
"""

from platform_spi.model import (
    Config,
    ConditionalInclusion,
    FallbackCondition,
    GeneratedOutput,
    HoistedItems,
    ModuleBlock,
    PlatformCondition,
)


def source_path(module_path: str, name: str, extension: str) -> str:
    """Build `{module_path}/{name}.{extension}`."""
    return f"{module_path}/{name}.{extension}"


def emit(
    config: Config,
    block: ModuleBlock,
    hoisted: HoistedItems,
    extension: str = "rs",
    fallback_name: str = "unsupported",
) -> GeneratedOutput:
    """
    Assemble the output that replaces an annotated block.

    Args:
        config: Parsed attribute configuration
        block: The parsed block; its name, visibility and attributes are
            carried onto every inclusion
        hoisted: Successful classifier output
        extension: Source file extension, without the dot
        fallback_name: File stem used for unmatched platforms

    Returns:
        GeneratedOutput with len(config.targets) + 1 inclusions
    """
    platform_refs = tuple(
        ConditionalInclusion(
            module_name=block.name,
            condition=PlatformCondition(platform),
            source_path=source_path(config.module_path, platform, extension),
            visibility=block.visibility,
            attributes=block.attributes,
        )
        for platform in config.targets
    )

    fallback_ref = ConditionalInclusion(
        module_name=block.name,
        condition=FallbackCondition(excluded=config.targets),
        source_path=source_path(config.module_path, fallback_name, extension),
        visibility=block.visibility,
        attributes=block.attributes,
    )

    return GeneratedOutput(
        platform_module_refs=platform_refs,
        fallback_module_ref=fallback_ref,
        hoisted_decls=hoisted.declarations,
        assertions=hoisted.contracts,
    )


__all__ = ["emit", "source_path"]
