"""Expand `summum! { ... }` invocations inside Rust source text.

The whole file is lexed once so spans stay relative to the file; each
invocation's group is one generation unit, and its text range is replaced by
the generated code.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from summum.config import SummumConfig
from summum.errors import CompileError, Diagnostic, has_errors
from summum.generator import generate_trees
from summum.lexer import Lexer
from summum.source import SourceFile, Span
from summum.tokens import Group, TokenTree

logger = logging.getLogger(__name__)


@dataclass
class Invocation:
    start: Span
    end: Span
    body: Group


@dataclass
class ExpansionResult:
    code: str
    diagnostics: list[Diagnostic] = field(default_factory=list)
    units: int = 0

    @property
    def ok(self) -> bool:
        return not has_errors(self.diagnostics)


def find_invocations(trees: list[TokenTree], macro_name: str) -> list[Invocation]:
    """Locate `[path::]name! group [;]` at any nesting depth, in source order."""
    found: list[Invocation] = []
    i = 0
    while i < len(trees):
        tree = trees[i]
        if (tree.is_ident(macro_name) and i + 2 < len(trees)
                and trees[i + 1].is_punct('!') and isinstance(trees[i + 2], Group)):
            start = i
            # include a leading path such as `summum::summum!`
            while (start >= 3 and trees[start - 1].is_punct(':')
                   and trees[start - 2].is_punct(':') and trees[start - 3].is_ident()):
                start -= 3
            body = trees[i + 2]
            end = i + 3
            if end < len(trees) and trees[end].is_punct(';'):
                end += 1
            found.append(Invocation(trees[start].span, trees[end - 1].span, body))
            i = end
            continue
        if isinstance(tree, Group):
            found.extend(find_invocations(tree.children, macro_name))
        i += 1
    return found


def _compile_error_for(error: CompileError) -> str:
    first = error.first
    message = first.message if first else "summum expansion failed"
    where = f" at {first.span}" if first and first.span else ""
    escaped = f"summum: {message}{where}".replace("\\", "\\\\").replace('"', '\\"')
    return f'compile_error!("{escaped}");\n'


def _reindent(code: str, indent: str) -> str:
    lines = code.rstrip("\n").split("\n")
    return "\n".join([lines[0]] + [indent + ln if ln else ln for ln in lines[1:]])


def expand_source(text: str, filename: str = "<stdin>",
                  config: SummumConfig | None = None) -> ExpansionResult:
    """Replace every invocation in ``text`` with its generated code.

    A unit with syntax errors becomes a `compile_error!`; the others still
    expand. Raises CompileError only when the file itself cannot be lexed.
    """
    config = config or SummumConfig()
    trees = Lexer(text, filename).lex()
    invocations = find_invocations(trees, config.emit.macro_name)
    logger.debug("%s: %d invocation(s)", filename, len(invocations))

    source = SourceFile(filename, text)
    diagnostics: list[Diagnostic] = []
    pieces: list[str] = []
    cursor = 0
    for inv in invocations:
        start = source.offset(inv.start.start_line, inv.start.start_col)
        end = source.offset(inv.end.end_line, inv.end.end_col) + 1
        try:
            result = generate_trees(inv.body.children, filename, config)
            code = result.code
            diagnostics.extend(result.diagnostics)
        except CompileError as e:
            logger.debug("unit at %s failed with %d diagnostic(s)", inv.start, len(e.diagnostics))
            diagnostics.extend(e.diagnostics)
            code = _compile_error_for(e)
        pieces.append(text[cursor:start])
        pieces.append(_reindent(code, source.indent_at(start)))
        cursor = end
    pieces.append(text[cursor:])
    return ExpansionResult("".join(pieces), diagnostics, len(invocations))
