"""summum command line."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from summum import __version__
from summum.config import SummumConfig, load_config, resolve_config
from summum.errors import CompileError, Diagnostic, DiagnosticRenderer
from summum.expand import ExpansionResult, expand_source
from summum.lexer import Lexer
from summum.parser import Parser
from summum.printer import render_inline
from summum.source import SourceFile
from summum.tokens import Group, Token


def _report(diagnostics: list[Diagnostic], source: SourceFile) -> None:
    if not diagnostics:
        return
    renderer = DiagnosticRenderer(color=True)
    renderer.add_source(source)
    for diag in diagnostics:
        click.echo(renderer.render(diag) + "\n", err=True)
    summary = renderer.summary(diagnostics)
    if summary:
        click.echo(summary, err=True)


def _config_for(ctx: click.Context, path: Path) -> SummumConfig:
    config_file = ctx.obj.get("config_file") if ctx.obj else None
    if config_file:
        return load_config(Path(config_file))
    return resolve_config(path)


def _expand_file(ctx: click.Context, rs_file: Path) -> ExpansionResult | None:
    """Expand one file, reporting diagnostics. None if the file cannot be lexed."""
    source = SourceFile.read(rs_file)
    try:
        result = expand_source(source.text, source.name, _config_for(ctx, rs_file))
    except CompileError as e:
        _report(e.diagnostics, source)
        return None
    _report(result.diagnostics, source)
    return result


@click.group()
@click.version_option(__version__, prog_name="summum")
@click.option("-v", "--verbose", is_flag=True, help="Log each generation stage.")
@click.option("--config", "config_file", type=click.Path(exists=True, dir_okay=False),
              default=None, help="Use this summum.toml instead of searching for one.")
@click.pass_context
def main(ctx: click.Context, verbose: bool, config_file: str | None) -> None:
    """Generate Rust sum types from summum! declarations."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["config_file"] = config_file


@main.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("-o", "--output", type=click.Path(dir_okay=False), default=None,
              help="Write the expanded file here instead of stdout.")
@click.option("--check", is_flag=True, help="Only report diagnostics; write nothing.")
@click.pass_context
def expand(ctx: click.Context, path: str, output: str | None, check: bool) -> None:
    """Expand every summum! invocation in a Rust source file."""
    result = _expand_file(ctx, Path(path))
    if result is None:
        raise SystemExit(1)
    if check:
        if not result.ok:
            raise SystemExit(1)
        click.echo(f"{path}: {result.units} invocation(s), no errors")
        return
    if output:
        Path(output).write_text(result.code)
        click.echo(f"expanded {path} -> {output}", err=True)
    else:
        click.echo(result.code, nl=False)
    if not result.ok:
        raise SystemExit(1)


@main.command()
@click.argument("path", default=".", type=click.Path(exists=True))
@click.pass_context
def check(ctx: click.Context, path: str) -> None:
    """Check every .rs file under PATH for summum errors."""
    target = Path(path)
    rs_files = sorted(target.rglob("*.rs")) if target.is_dir() else [target]
    if not rs_files:
        click.echo("warning: no .rs files found", err=True)
        return

    had_errors = False
    units = 0
    for rs_file in rs_files:
        result = _expand_file(ctx, rs_file)
        if result is None or not result.ok:
            had_errors = True
        if result is not None:
            units += result.units
    if had_errors:
        raise SystemExit(1)
    click.echo(f"checked {len(rs_files)} file(s), {units} invocation(s), no errors")


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def view(file: str) -> None:
    """View the parsed declarations of a summum body file."""
    source = SourceFile.read(Path(file))

    try:
        tokens = Lexer(source.text, source.name).lex()
        unit = Parser(tokens, source.name).parse()
    except CompileError as e:
        _report(e.diagnostics, source)
        raise SystemExit(1)

    _dump_ast(unit, 0)


def _dump_ast(node: object, depth: int) -> None:
    """Print a readable dump of the declarations, token lists rendered inline."""
    indent = "  " * depth
    name = type(node).__name__

    if hasattr(node, "__dataclass_fields__"):
        fields = node.__dataclass_fields__  # type: ignore[union-attr]
        click.echo(f"{indent}{name}")
        for field_name in fields:
            if field_name == "span":
                continue
            value = getattr(node, field_name)
            if isinstance(value, list) and value and isinstance(value[0], (Token, Group)):
                click.echo(f"{indent}  {field_name}: {render_inline(value)}")
            elif isinstance(value, Group):
                click.echo(f"{indent}  {field_name}: {render_inline([value])}")
            elif isinstance(value, list):
                if value:
                    click.echo(f"{indent}  {field_name}:")
                    for item in value:
                        _dump_ast(item, depth + 2)
                else:
                    click.echo(f"{indent}  {field_name}: []")
            elif isinstance(value, dict):
                for key, tokens in value.items():
                    click.echo(f"{indent}  {field_name}.{key}: {render_inline(tokens)}")
            elif hasattr(value, "__dataclass_fields__"):
                click.echo(f"{indent}  {field_name}:")
                _dump_ast(value, depth + 2)
            elif value is not None:
                click.echo(f"{indent}  {field_name}: {value!r}")
    elif isinstance(node, list):
        click.echo(f"{indent}{render_inline(node)}")
    else:
        click.echo(f"{indent}{name}: {node!r}")
