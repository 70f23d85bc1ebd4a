"""Tests for the summum CLI, config, and error rendering."""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from summum.cli import main
from summum.config import SummumConfig, find_config, load_config, resolve_config
from summum.errors import (
    CompileError,
    Diagnostic,
    DiagnosticLabel,
    DiagnosticRenderer,
    Severity,
    Suggestion,
    has_errors,
)
from summum.source import SourceFile, Span

LIB_RS = (
    "use std::fmt;\n"
    "\n"
    "summum! {\n"
    "    type Num = f64 | i64;\n"
    "}\n"
)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def tmp_crate(tmp_path):
    """Create a minimal crate with one summum invocation."""
    src = tmp_path / "src"
    src.mkdir()
    (src / "lib.rs").write_text(LIB_RS)
    (src / "plain.rs").write_text("fn main() {}\n")
    return tmp_path


# --- CLI tests ---


class TestCLI:
    def test_help(self, runner):
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "summum" in result.output
        assert "expand" in result.output
        assert "check" in result.output
        assert "view" in result.output

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_expand_to_stdout(self, runner, tmp_crate):
        result = runner.invoke(main, ["expand", str(tmp_crate / "src" / "lib.rs")])
        assert result.exit_code == 0
        assert "enum Num {" in result.output
        assert "summum!" not in result.output

    def test_expand_to_file(self, runner, tmp_crate):
        out = tmp_crate / "out.rs"
        result = runner.invoke(main, ["expand", str(tmp_crate / "src" / "lib.rs"), "-o", str(out)])
        assert result.exit_code == 0
        assert "expanded" in result.output
        text = out.read_text()
        assert text.startswith("use std::fmt;\n")
        assert "impl From<f64> for Num {" in text

    def test_expand_check(self, runner, tmp_crate):
        result = runner.invoke(main, ["expand", "--check", str(tmp_crate / "src" / "lib.rs")])
        assert result.exit_code == 0
        assert "1 invocation(s), no errors" in result.output
        assert "enum Num" not in result.output

    def test_expand_reports_errors(self, runner, tmp_path):
        bad = tmp_path / "bad.rs"
        bad.write_text("summum! {\n    enum V { A }\n}\n")
        result = runner.invoke(main, ["expand", str(bad)])
        assert result.exit_code == 1
        assert "E200" in result.output

    def test_expand_unlexable_file(self, runner, tmp_path):
        bad = tmp_path / "bad.rs"
        bad.write_text("fn main() {\n")
        result = runner.invoke(main, ["expand", str(bad)])
        assert result.exit_code == 1
        assert "E100" in result.output

    def test_check_directory(self, runner, tmp_crate):
        result = runner.invoke(main, ["check", str(tmp_crate)])
        assert result.exit_code == 0
        assert "checked 2 file(s), 1 invocation(s), no errors" in result.output

    def test_check_fails_on_error(self, runner, tmp_crate):
        (tmp_crate / "src" / "broken.rs").write_text(
            "summum! {\n    impl Missing { fn f(&self) {} }\n}\n")
        result = runner.invoke(main, ["check", str(tmp_crate)])
        assert result.exit_code == 1
        assert "E300" in result.output

    def test_check_empty_directory(self, runner, tmp_path):
        result = runner.invoke(main, ["check", str(tmp_path)])
        assert result.exit_code == 0
        assert "no .rs files found" in result.output

    def test_config_option(self, runner, tmp_crate):
        toml = tmp_crate / "custom.toml"
        toml.write_text("[emit]\nbanner = false\n")
        result = runner.invoke(main, ["--config", str(toml), "expand", str(tmp_crate / "src" / "lib.rs")])
        assert result.exit_code == 0
        assert "Generated by summum" not in result.output

    def test_config_discovered(self, runner, tmp_crate):
        (tmp_crate / "summum.toml").write_text('[emit]\nmacro_name = "sum_type"\n')
        lib = tmp_crate / "src" / "lib.rs"
        lib.write_text("sum_type! { type A = u8; }\n")
        result = runner.invoke(main, ["expand", str(lib)])
        assert result.exit_code == 0
        assert "enum A {" in result.output

    def test_view_command(self, runner, tmp_path):
        body = tmp_path / "num.summum"
        body.write_text("type Num = f64 | i64 as Int;\n")
        result = runner.invoke(main, ["view", str(body)])
        assert result.exit_code == 0
        assert "GenerationUnit" in result.output
        assert "TypeDefinition" in result.output
        assert "name: 'Num'" in result.output
        assert "payload: i64" in result.output

    def test_view_syntax_error(self, runner, tmp_path):
        body = tmp_path / "bad.summum"
        body.write_text("enum V { A }\n")
        result = runner.invoke(main, ["view", str(body)])
        assert result.exit_code == 1


# --- Config tests ---


class TestConfig:
    def test_load_config(self, tmp_path):
        toml = tmp_path / "summum.toml"
        toml.write_text(
            '[naming]\nself_type = "Payload"\nvariant_suffix = "each"\n'
            "[emit]\nallow_dead_code = false\n"
        )
        config = load_config(toml)
        assert config.naming.self_type == "Payload"
        assert config.naming.variant_suffix == "each"
        assert config.naming.receiver == "_summum_self"
        assert config.emit.allow_dead_code is False
        assert config.emit.banner is True

    def test_load_config_defaults(self, tmp_path):
        toml = tmp_path / "summum.toml"
        toml.write_text("")
        config = load_config(toml)
        assert config == SummumConfig()

    def test_find_config(self, tmp_crate):
        (tmp_crate / "summum.toml").write_text("")
        found = find_config(tmp_crate / "src" / "lib.rs")
        assert found == tmp_crate.resolve() / "summum.toml"

    def test_find_config_not_found(self, tmp_path):
        empty = tmp_path / "empty"
        empty.mkdir()
        with pytest.raises(FileNotFoundError, match="No summum.toml found"):
            find_config(empty)

    def test_resolve_config_falls_back(self, tmp_path):
        empty = tmp_path / "empty"
        empty.mkdir()
        config = resolve_config(empty)
        assert config.naming.self_type == "InnerT"
        assert config.emit.macro_name == "summum"


# --- Error rendering tests ---


class TestDiagnostics:
    def test_render_error(self):
        diag = Diagnostic.error(
            "E300", "can't find definition for type `Missing` in summum block",
            Span("lib.rs", 2, 10, 2, 16), "not defined",
        )
        renderer = DiagnosticRenderer(color=False)
        renderer.add_source(SourceFile("lib.rs", "summum! {\n    impl Missing {}\n}\n"))
        output = renderer.render(diag)
        assert output.startswith("error[E300]: can't find definition")
        assert " --> lib.rs:2:10" in output
        assert "2 |     impl Missing {}" in output
        assert "  |          ^^^^^^^ not defined" in output

    def test_secondary_label(self):
        source = SourceFile("lib.rs", "type A = u8;\ntype A = u16;\n")
        diag = Diagnostic.error("E201", "`A` is defined more than once",
                                Span("lib.rs", 2, 1, 2, 13), "redefined here")
        diag.also(Span("lib.rs", 1, 1, 1, 12), "first defined here")
        renderer = DiagnosticRenderer(color=False)
        renderer.add_source(source)
        output = renderer.render(diag)
        assert "^^^^^^^^^^^^^ redefined here" in output
        assert "------------ first defined here" in output
        assert output.index("2 | type A = u16;") < output.index("1 | type A = u8;")

    def test_multiline_span(self):
        source = SourceFile("lib.rs", "impl V {\n    fn f() {}\n    fn g() {}\n}\n")
        diag = Diagnostic.error("E300", "bad block", Span("lib.rs", 1, 1, 4, 1), "in here")
        renderer = DiagnosticRenderer(color=False)
        renderer.add_source(source)
        output = renderer.render(diag)
        assert "1 | impl V {" in output
        assert "4 | }" in output
        assert "fn f()" not in output
        assert "^ in here" in output

    def test_notes_and_help(self):
        diag = Diagnostic.warning("W301", "shared payload", Span("<none>", 1, 1, 1, 1))
        diag.notes.append("`From<u8>` converts to the first variant")
        diag.suggestions.append(Suggestion("add an alias", "u8 as Other"))
        output = DiagnosticRenderer(color=False).render(diag)
        assert output.startswith("warning[W301]: shared payload")
        assert "= note: `From<u8>` converts to the first variant" in output
        assert "= help: add an alias: `u8 as Other`" in output

    def test_unknown_file_renders_location_only(self):
        diag = Diagnostic.note("N100", "superset recorded", Span("no/such/file.rs", 3, 2, 3, 5))
        output = DiagnosticRenderer(color=False).render(diag)
        assert "--> no/such/file.rs:3:2" in output
        assert "^^^^" in output

    def test_color_codes(self):
        diag = Diagnostic(severity=Severity.NOTE, code="N100", message="n")
        assert "\033[" in DiagnosticRenderer(color=True).render(diag)
        assert "\033[" not in DiagnosticRenderer(color=False).render(diag)

    def test_summary(self):
        span = Span("lib.rs", 1, 1, 1, 1)
        renderer = DiagnosticRenderer(color=False)
        errors = [Diagnostic.error("E200", "a", span), Diagnostic.error("E200", "b", span)]
        warning = Diagnostic.warning("W301", "w", span)
        assert renderer.summary(errors) == "error: aborting due to 2 previous errors"
        assert renderer.summary(errors[:1] + [warning]) == (
            "error: aborting due to 1 previous error; 1 warning emitted")
        assert renderer.summary([warning]) == "warning: 1 warning emitted"
        assert renderer.summary([Diagnostic.note("N100", "n", span)]) is None

    def test_compile_error(self):
        span = Span("lib.rs", 1, 1, 1, 1)
        diags = [
            Diagnostic.note("N100", "noted", span),
            Diagnostic.error("E200", "first", span),
            Diagnostic.error("E200", "second", span),
        ]
        err = CompileError(diags)
        assert err.diagnostics == diags
        assert err.first is diags[1]
        assert "3 error(s): noted; first; second" in str(err)

    def test_has_errors(self):
        span = Span("lib.rs", 1, 1, 1, 1)
        note = Diagnostic.note("N100", "n", span)
        assert not has_errors([note])
        assert has_errors([note, Diagnostic.error("E300", "e", span)])

    def test_diagnostic_span(self):
        span = Span("lib.rs", 1, 1, 1, 3)
        diag = Diagnostic.error("E100", "x", span)
        assert diag.span == span
        assert diag.labels == [DiagnosticLabel(span)]
        assert Diagnostic(severity=Severity.ERROR, code="E100", message="x").span is None


# --- Source tests ---


class TestSource:
    TEXT = "type Num = f64;\nenum V {\n    A(u8),\n}\n"

    def test_read(self, tmp_path):
        path = tmp_path / "lib.rs"
        path.write_text("fn a() {}\nfn b() {}\n")
        source = SourceFile.read(path)
        assert source.name == str(path)
        assert source.line(2) == "fn b() {}"
        assert source.line(5) is None

    def test_span_text(self):
        source = SourceFile("lib.rs", self.TEXT)
        assert source.span_text(Span("lib.rs", 1, 6, 1, 8)) == "Num"
        assert source.span_text(Span("lib.rs", 2, 6, 3, 5)) == "V {\n    A"

    def test_offsets_and_indent(self):
        source = SourceFile("lib.rs", self.TEXT)
        offset = source.offset(3, 5)
        assert source.text[offset] == "A"
        assert source.indent_at(offset) == "    "
        assert source.indent_at(source.offset(2, 1)) == ""

    def test_span_helpers(self):
        start = Span("lib.rs", 3, 5, 3, 9)
        end = Span("lib.rs", 4, 1, 4, 2)
        assert str(start) == "lib.rs:3:5"
        assert start.to(end) == Span("lib.rs", 3, 5, 4, 2)
        assert start.end_point() == Span.point("lib.rs", 3, 9)
        assert start.single_line
        assert not start.to(end).single_line
