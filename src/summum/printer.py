"""Unparse token trees back into source text.

The lexer records, for every token, whether it followed nothing, a space or
a line break. The printer replays that, re-indenting line breaks from the
nesting depth instead of the original column, so user-written bodies keep
their shape wherever they are spliced.
"""

from __future__ import annotations

from summum.tokens import Group, Token, TokenTree

INDENT = "    "


class Printer:
    def __init__(self, depth: int = 0, *, inline: bool = False) -> None:
        self._depth = depth
        self._inline = inline
        self._parts: list[str] = []

    def render(self, trees: list[TokenTree]) -> str:
        self._parts = []
        for tree in trees:
            self._write(tree, self._depth)
        return "".join(self._parts)

    def _sep(self, ws: str, depth: int) -> None:
        if not self._parts:
            return
        if ws == "\n" and not self._inline:
            self._parts.append("\n" + INDENT * depth)
        elif ws:
            self._parts.append(" ")

    def _write(self, tree: TokenTree, depth: int) -> None:
        self._sep(tree.ws, depth)
        if isinstance(tree, Token):
            self._parts.append(tree.value)
            return
        self._write_group(tree, depth)

    def _write_group(self, group: Group, depth: int) -> None:
        self._parts.append(group.delimiter.open)
        for child in group.children:
            self._write(child, depth + 1)
        if group.close_ws == "\n" and not self._inline:
            self._parts.append("\n" + INDENT * depth)
        elif group.close_ws and group.children:
            self._parts.append(" ")
        self._parts.append(group.delimiter.close)


def render(trees: list[TokenTree], depth: int = 0) -> str:
    """Render trees, indenting line breaks relative to ``depth``."""
    return Printer(depth).render(trees)


def render_inline(trees: list[TokenTree]) -> str:
    """Render trees on a single line (types, paths, attribute arguments)."""
    return Printer(inline=True).render(trees)
