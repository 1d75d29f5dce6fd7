"""
Tests for the expansion entry points.

Covers single-block expansion (structured and rendered) and whole-file
preprocessing: finding use-sites, replacing them in place, and collecting
every failure across the file.
"""

import pytest
from platform_spi.diagnostics import DiagnosticKind, SpiExpansionError
from platform_spi.examples import EXAMPLE_ARGS, EXAMPLE_BLOCK, EXAMPLE_SOURCE
from platform_spi.expansion import (
    expand,
    expand_to_source,
    find_use_sites,
    preprocess_file,
    preprocess_source,
)
from platform_spi.hoisting import ItemGrammar
from platform_spi.settings import GeneratorSettings


class TestExpand:
    """Test single-block expansion."""

    def test_example_succeeds(self):
        result = expand(EXAMPLE_ARGS, EXAMPLE_BLOCK)
        assert result.ok
        assert len(result.value.inclusions) == 4
        assert len(result.value.hoisted_decls) == 2
        assert len(result.value.assertions) == 1

    def test_config_and_block_diagnostics_combined(self):
        result = expand("flavor = 1", "mod platform { fn f() {} }")
        assert [d.kind for d in result.diagnostics] == [
            DiagnosticKind.UNEXPECTED_ATTRIBUTE_KEY,
            DiagnosticKind.UNSUPPORTED_ITEM_KIND,
        ]

    def test_escaped_char_in_unsupported_item(self):
        result = expand("targets = [linux]", r"mod platform { const C: char = '\x41'; }")
        (diag,) = result.diagnostics
        assert diag.kind == DiagnosticKind.UNSUPPORTED_ITEM_KIND
        assert diag.details["kind"] == "const"

    def test_generic_alias_without_space_before_equals(self):
        output = expand("targets = [linux]", "mod platform { pub type X<T>= Imp<T>; }").unwrap()
        assert output.hoisted_decls[0].generics == "<T>"

    def test_visibility_on_impl_rejected(self):
        result = expand("targets = [linux]", "mod platform { pub impl Tr for X {} }")
        (diag,) = result.diagnostics
        assert diag.kind == DiagnosticKind.MALFORMED_CONTRACT_ASSERTION
        assert result.value is None

    def test_block_syntax_error(self):
        result = expand("targets = [linux]", "mod platform { type X = ; }")
        (diag,) = result.diagnostics
        assert diag.kind == DiagnosticKind.SYNTAX_ERROR

    def test_positions_offset(self):
        result = expand("", "mod platform;", filename="lib.rs", item_position=(4, 1))
        loc = result.diagnostics[0].location
        assert (loc.file, loc.line, loc.column) == ("lib.rs", 4, 5)

    def test_core_grammar_from_settings(self):
        settings = GeneratorSettings(grammar=ItemGrammar.CORE)
        result = expand("", "mod platform { impl Tr for X {} }", settings)
        assert result.diagnostics[0].kind == DiagnosticKind.UNSUPPORTED_ITEM_KIND

    def test_expansions_independent(self):
        first = expand("targets = [linux]", "mod a { type X = Y; }").unwrap()
        second = expand("targets = [macos]", "mod b { type X = Y; }").unwrap()
        assert first.platform_module_refs[0].module_name == "a"
        assert second.platform_module_refs[0].module_name == "b"


class TestExpandToSource:
    def test_renders(self):
        text = expand_to_source("targets = [linux]", "mod platform { pub type X = Y; }")
        assert "pub type X = platform::Y;" in text

    def test_raises_with_all_diagnostics(self):
        with pytest.raises(SpiExpansionError) as excinfo:
            expand_to_source("flavor = 1", "mod platform;")
        assert len(excinfo.value.diagnostics) == 2


class TestFindUseSites:
    """Test locating annotated blocks in a file."""

    def test_example_source(self):
        (site,) = find_use_sites(EXAMPLE_SOURCE)
        assert site.args == EXAMPLE_ARGS
        assert site.item == EXAMPLE_BLOCK
        assert site.item_location.line == 4
        assert site.args_location.line == 3
        assert site.args_location.column == 16

    def test_qualified_attribute(self):
        source = "#[platform_spi::platform_spi(targets = [linux])]\nmod platform {}\n"
        (site,) = find_use_sites(source)
        assert site.args == "targets = [linux]"

    def test_other_attributes_ignored(self):
        source = "#[derive(Debug)]\nstruct S;\n#[cfg(test)]\nmod tests {}\n"
        assert find_use_sites(source) == []

    def test_custom_attribute_name(self):
        source = "#[sys_spi(targets = [linux])]\nmod platform {}\n"
        assert len(find_use_sites(source, attribute_name="sys_spi")) == 1
        assert find_use_sites(source) == []

    def test_unparseable_block_still_located(self):
        source = "#[platform_spi()]\nmod platform { let x = 1; }\nfn main() {}\n"
        (site,) = find_use_sites(source)
        assert site.item == "mod platform { let x = 1; }"


class TestPreprocessSource:
    """Test whole-file rewriting."""

    def test_example_source(self):
        text = preprocess_source(EXAMPLE_SOURCE)
        assert text.startswith("use platform_spi::platform_spi;\n\n#[cfg(target_os = \"macos\")]\n")
        assert "pub use platform::OS_NAME as PLATFORM_NAME;" in text
        assert "#[platform_spi(" not in text
        assert text.endswith(EXAMPLE_SOURCE[EXAMPLE_SOURCE.index("\n\ntrait"):])

    @pytest.mark.parametrize("literal", [r"'\x41'", r"'\u{1F600}'", r"b'\x7f'"])
    def test_escaped_char_literals_elsewhere_in_file(self, literal):
        source = (
            "#[platform_spi(targets = [linux])]\nmod platform { pub type X = Y; }\n"
            f"fn f() -> char {{ {literal} }}\n"
        )
        text = preprocess_source(source)
        assert "pub type X = platform::Y;" in text
        assert text.endswith(f"fn f() -> char {{ {literal} }}\n")

    def test_no_sites_unchanged(self):
        source = "fn main() {}\n"
        assert preprocess_source(source) == source

    def test_multiple_sites(self):
        source = (
            "#[platform_spi(targets = [linux])]\nmod a { type X = Y; }\n"
            "\n"
            "#[platform_spi(targets = [macos])]\nmod b { type Z = W; }\n"
        )
        text = preprocess_source(source)
        assert "type X = a::Y;" in text
        assert "type Z = b::W;" in text
        assert '#[path = "./macos.rs"]\nmod b;' in text

    def test_nested_site_reindented(self):
        source = (
            "mod outer {\n"
            "    #[platform_spi(targets = [linux])]\n"
            "    mod platform { pub type X = Y; }\n"
            "}\n"
        )
        text = preprocess_source(source)
        assert "    #[cfg(target_os = \"linux\")]\n    #[path = \"./linux.rs\"]\n    mod platform;\n" in text
        assert "\n    pub type X = platform::Y;\n}\n" in text

    def test_failures_aggregated_across_sites(self):
        source = (
            "#[platform_spi(flavor = 1)]\nmod a {}\n"
            "#[platform_spi()]\nmod b { fn f() {} }\n"
        )
        with pytest.raises(SpiExpansionError) as excinfo:
            preprocess_source(source, filename="lib.rs")
        diags = excinfo.value.diagnostics
        assert [d.kind for d in diags] == [
            DiagnosticKind.UNEXPECTED_ATTRIBUTE_KEY,
            DiagnosticKind.UNSUPPORTED_ITEM_KIND,
        ]
        assert [d.location.line for d in diags] == [1, 4]

    def test_inline_errors(self):
        source = "#[platform_spi()]\nmod platform;\n"
        text = preprocess_source(source, filename="lib.rs", inline_errors=True)
        assert text == (
            'compile_error!("lib.rs:2:5: External module imports are not supported, '
            'only inline module declarations.");\n'
        )

    def test_tokenize_failure(self):
        with pytest.raises(SpiExpansionError):
            preprocess_source("fn main() { /* unterminated }")

    def test_preprocess_file(self, tmp_path):
        path = tmp_path / "lib.rs"
        path.write_text(EXAMPLE_SOURCE)
        assert preprocess_file(str(path)) == preprocess_source(EXAMPLE_SOURCE, filename=str(path))
