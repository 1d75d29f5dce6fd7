"""
Tests for the source backend.

The full example expansion is compared line for line; smaller cases check
each section on its own.
"""

import pytest
from platform_spi.attributes import UnknownPlatformWarning
from platform_spi.backends import render_diagnostics, render_output
from platform_spi.backends.rust_source import render_declaration, render_inclusion
from platform_spi.diagnostics import SourceLocation, external_module_not_supported, syntax_error
from platform_spi.emitter import emit
from platform_spi.examples import EXAMPLE_ARGS, EXAMPLE_BLOCK
from platform_spi.expansion import expand
from platform_spi.hoisting import rewrite_module
from platform_spi.model import Config
from platform_spi.parser import parse_module_block
from platform_spi.settings import GeneratorSettings


EXPECTED_EXAMPLE = """\
#[cfg(target_os = "macos")]
#[path = "example_basic/macos.rs"]
mod platform;

#[cfg(target_os = "windows")]
#[path = "example_basic/windows.rs"]
mod platform;

#[cfg(target_os = "linux")]
#[path = "example_basic/linux.rs"]
mod platform;

#[cfg(not(any(target_os = "macos", target_os = "windows", target_os = "linux")))]
#[path = "example_basic/unsupported.rs"]
mod platform;

/// Declares a type to be implemented for each platform
pub type FilePathDescriber = platform::FilePathDescriberImpl;
/// Declares a constant that must be provided for each platform
pub use platform::OS_NAME as PLATFORM_NAME;

static_assertions::assert_impl_all!(FilePathDescriber: FilePathDescription<String>);
"""


def render(args: str, block: str, settings=None) -> str:
    return render_output(expand(args, block, settings).unwrap(), settings)


class TestRenderOutput:
    """Test whole-output rendering."""

    def test_example(self):
        assert render(EXAMPLE_ARGS, EXAMPLE_BLOCK) == EXPECTED_EXAMPLE

    def test_no_targets(self):
        text = render("", "mod platform { type X = Y; }")
        assert text == (
            "#[cfg(not(any()))]\n"
            '#[path = "./unsupported.rs"]\n'
            "mod platform;\n"
            "\n"
            "type X = platform::Y;\n"
        )

    def test_empty_block_has_only_inclusions(self):
        text = render("targets = [linux]", "mod platform {}")
        assert text.endswith("mod platform;\n")
        assert "static_assertions" not in text

    def test_settings_applied(self):
        settings = GeneratorSettings(condition_key="target_family", assertion_macro="assert_impl")
        with pytest.warns(UnknownPlatformWarning):
            text = render("targets = [unix]", "mod platform { impl Tr for X {} }", settings)
        assert '#[cfg(target_family = "unix")]' in text
        assert "assert_impl!(X: Tr);" in text

    def test_block_doc_comment_carried(self):
        text = render("", "mod platform {\n    /** Platform handle */\n    pub type H = HandleImpl;\n}")
        assert "/// Platform handle\npub type H = platform::HandleImpl;\n" in text

    def test_global_use_keeps_leading_colon(self):
        text = render("", "mod platform { use ::x::Y; }")
        assert "use ::platform::x::Y;" in text


class TestSections:
    """Test individual section renderers."""

    def test_inclusion_with_visibility_and_attributes(self):
        block = parse_module_block("#[allow(unused)]\npub mod sys {}")
        output = emit(Config(targets=("linux",)), block, rewrite_module(block).value)
        assert render_inclusion(output.platform_module_refs[0]) == [
            '#[cfg(target_os = "linux")]',
            '#[path = "./linux.rs"]',
            "#[allow(unused)]",
            "pub mod sys;",
        ]

    def test_generic_alias_with_where(self):
        block = parse_module_block("mod p { pub type S<T> = Imp<T> where T: Send; }")
        alias = rewrite_module(block).value.declarations[0]
        assert render_declaration(alias) == ["pub type S<T> = p::Imp<T> where T: Send;"]


class TestRenderDiagnostics:
    """Failures render as compile_error! items."""

    def test_one_line_per_diagnostic(self):
        diags = [
            external_module_not_supported("platform", SourceLocation(3, 5, "lib.rs")),
            external_module_not_supported("other"),
        ]
        text = render_diagnostics(diags)
        assert text == (
            'compile_error!("lib.rs:3:5: External module imports are not supported, '
            'only inline module declarations.");\n'
            'compile_error!("External module imports are not supported, '
            'only inline module declarations.");\n'
        )

    def test_quotes_escaped(self):
        text = render_diagnostics([syntax_error('Expected string literal, found "dir"')])
        assert text == 'compile_error!("Expected string literal, found \\"dir\\"");\n'
