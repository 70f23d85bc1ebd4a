"""Token trees: the leaves and delimited groups the generator works on."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Union

from summum.source import Span


class TokenKind(Enum):
    IDENT = auto()
    LIFETIME = auto()
    LITERAL = auto()
    PUNCT = auto()

    # Special
    EOF = auto()


class Delimiter(Enum):
    PAREN = ("(", ")")
    BRACKET = ("[", "]")
    BRACE = ("{", "}")

    @property
    def open(self) -> str:
        return self.value[0]

    @property
    def close(self) -> str:
        return self.value[1]


GENERATED = Span("<generated>", 0, 0, 0, 0)


@dataclass(frozen=True)
class Token:
    """A leaf token.

    ``joint`` marks a punctuation character glued to the following one
    (``:`` in ``::``); ``ws`` is the whitespace that preceded the token in
    the source: ``""``, ``" "`` or ``"\\n"``.
    """

    kind: TokenKind
    value: str
    span: Span = GENERATED
    joint: bool = False
    ws: str = " "

    def is_ident(self, name: str | None = None) -> bool:
        return self.kind == TokenKind.IDENT and (name is None or self.value == name)

    def is_punct(self, ch: str) -> bool:
        return self.kind == TokenKind.PUNCT and self.value == ch


@dataclass(frozen=True)
class Group:
    """A delimited sequence of token trees."""

    delimiter: Delimiter
    children: list[TokenTree] = field(default_factory=list)
    span: Span = GENERATED
    ws: str = " "
    close_ws: str = ""

    def is_ident(self, name: str | None = None) -> bool:
        return False

    def is_punct(self, ch: str) -> bool:
        return False


TokenTree = Union[Token, Group]


# Strict and reserved keywords of the target language; used to decide
# whether a derived name needs the raw-identifier prefix.
KEYWORDS: frozenset[str] = frozenset({
    "as", "async", "await", "break", "const", "continue", "crate", "dyn",
    "else", "enum", "extern", "false", "fn", "for", "if", "impl", "in",
    "let", "loop", "match", "mod", "move", "mut", "pub", "ref", "return",
    "self", "Self", "static", "struct", "super", "trait", "true", "type",
    "unsafe", "use", "where", "while", "abstract", "become", "box", "do",
    "final", "macro", "override", "priv", "typeof", "unsized", "virtual",
    "yield", "try", "gen",
})


def ident(name: str, span: Span = GENERATED, ws: str = " ") -> Token:
    return Token(TokenKind.IDENT, name, span, ws=ws)


def punct(ch: str, *, joint: bool = False, ws: str = " ") -> Token:
    return Token(TokenKind.PUNCT, ch, GENERATED, joint=joint, ws=ws)


def puncts(text: str, ws: str = " ") -> list[Token]:
    """Split a multi-character operator such as ``::`` into joint puncts."""
    out = []
    for i, ch in enumerate(text):
        out.append(punct(ch, joint=i < len(text) - 1, ws=ws if i == 0 else ""))
    return out


def literal(text: str, ws: str = " ") -> Token:
    return Token(TokenKind.LITERAL, text, GENERATED, ws=ws)


def str_literal(value: str, ws: str = " ") -> Token:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return literal(f'"{escaped}"', ws=ws)


def with_ws(tree: TokenTree, ws: str) -> TokenTree:
    """Return ``tree`` with its leading whitespace replaced."""
    if tree.ws == ws:
        return tree
    if isinstance(tree, Token):
        return Token(tree.kind, tree.value, tree.span, tree.joint, ws)
    return Group(tree.delimiter, tree.children, tree.span, ws, tree.close_ws)
