"""
Example platform SPI block for documentation, demos and tests.

Mirrors a small library that prints a platform name and describes how file
paths are written on macOS, Windows and Linux, with the implementations in
an `example_basic/` directory next to the annotated file.
"""
from platform_spi.model import ContractAssertion, ModuleBlock, Reexport, TypeAlias
from platform_spi.syntax import Path, PathSegment, PathType, UseRename


EXAMPLE_ARGS = 'module_path = "example_basic", targets = [macos, windows, linux]'

EXAMPLE_BLOCK = """mod platform {

    /// Declares a type to be implemented for each platform
    pub type FilePathDescriber = FilePathDescriberImpl;

    /// Declares a constant that must be provided for each platform
    pub use OS_NAME as PLATFORM_NAME;

    // each platform specific FilePathDescriberImpl must implement this trait
    impl FilePathDescription<String> for FilePathDescriber {}

}"""

EXAMPLE_SOURCE = f"""use platform_spi::platform_spi;

#[platform_spi({EXAMPLE_ARGS})]
{EXAMPLE_BLOCK}

trait FilePathDescription<T> {{
    fn description(&self) -> T;
}}

fn main() {{
    let os = FilePathDescriber {{}};
    println!("Platform is {{}}", PLATFORM_NAME);
    println!("In this platform file paths are written as: {{}}", os.description());
}}
"""


def _path(*idents: str, arguments: str = "") -> Path:
    segments = [PathSegment(i) for i in idents]
    segments[-1] = PathSegment(idents[-1], arguments)
    return Path(tuple(segments))


def build_example_block() -> ModuleBlock:
    """Build the parsed form of EXAMPLE_BLOCK by hand."""
    describer = TypeAlias(
        name="FilePathDescriber",
        target=PathType(_path("FilePathDescriberImpl")),
        visibility="pub",
        attributes=("/// Declares a type to be implemented for each platform",),
    )
    platform_name = Reexport(
        tree=UseRename(ident="OS_NAME", rename="PLATFORM_NAME"),
        visibility="pub",
        attributes=("/// Declares a constant that must be provided for each platform",),
    )
    contract = ContractAssertion(
        implementing_type=PathType(_path("FilePathDescriber")),
        interface_path=_path("FilePathDescription", arguments="<String>"),
    )
    return ModuleBlock(name="platform", items=(describer, platform_name, contract))
