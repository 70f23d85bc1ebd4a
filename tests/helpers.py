"""Shared test helpers for the summum test suite."""

from __future__ import annotations

from summum.ast_nodes import GenerationUnit, TypeDefinition
from summum.config import SummumConfig
from summum.errors import CompileError, Diagnostic
from summum.generator import generate
from summum.lexer import Lexer
from summum.parser import Parser


def parse(source: str) -> GenerationUnit:
    """Lex and parse source, return the GenerationUnit."""
    tokens = Lexer(source, "<test>").lex()
    return Parser(tokens, "<test>").parse()


def parse_one(source: str) -> TypeDefinition:
    """Parse source holding exactly one definition."""
    unit = parse(source)
    assert len(unit.definitions) == 1, unit.items
    return unit.definitions[0]


def gen(source: str, config: SummumConfig | None = None) -> str:
    """Generate code, asserting no error diagnostics. Returns the code."""
    result = generate(source, "<test>", config)
    errors = [d for d in result.diagnostics if d.severity.value == "error"]
    assert not errors, f"Unexpected errors: {[f'{d.code}: {d.message}' for d in errors]}"
    return result.code


def gen_fails(source: str, error_code: str) -> tuple[str, list[Diagnostic]]:
    """Generate code, asserting the given non-fatal error code appears."""
    result = generate(source, "<test>")
    matching = [d for d in result.diagnostics if d.code == error_code]
    assert matching, (
        f"Expected error {error_code} but got: "
        f"{[f'{d.code}: {d.message}' for d in result.diagnostics] or 'no diagnostics'}"
    )
    return result.code, matching


def gen_warns(source: str, warning_code: str) -> list[Diagnostic]:
    """Generate code, asserting the given warning code appears."""
    result = generate(source, "<test>")
    matching = [d for d in result.diagnostics if d.code == warning_code]
    assert matching, (
        f"Expected warning {warning_code} but got: "
        f"{[f'{d.code}: {d.message}' for d in result.diagnostics] or 'no diagnostics'}"
    )
    return matching


def syntax_error(source: str) -> CompileError:
    """Generate code, expecting a CompileError. Returns it."""
    try:
        generate(source, "<test>")
    except CompileError as e:
        return e
    raise AssertionError("expected a CompileError")


def no_banner() -> SummumConfig:
    config = SummumConfig()
    config.emit.banner = False
    return config
